"""Per-instrument allocation table handed to the recommendation service."""

from __future__ import annotations

from typing import Any

import pandas as pd

from portfolio_tracker.portfolio.aggregator import summarize_position
from portfolio_tracker.portfolio.models import Instrument

SNAPSHOT_COLUMNS = [
    "id",
    "name",
    "ticker",
    "type",
    "invested_amount",
    "current_value",
    "percentage",
    "profit_loss",
    "profit_loss_percent",
]


def build_snapshot_frame(instruments: list[Instrument]) -> pd.DataFrame:
    rows = []
    for instrument in instruments:
        position = summarize_position(instrument)
        rows.append(
            {
                "id": instrument.id,
                "name": instrument.name,
                "ticker": instrument.ticker,
                "type": instrument.type,
                "invested_amount": float(position.invested_amount),
                "current_value": float(position.current_value),
                "profit_loss": float(position.profit_loss),
                "profit_loss_percent": float(position.profit_loss_percent),
            }
        )
    frame = pd.DataFrame(rows, columns=[col for col in SNAPSHOT_COLUMNS if col != "percentage"])
    total_value = float(frame["current_value"].sum()) if not frame.empty else 0.0
    frame["percentage"] = (frame["current_value"] / total_value * 100.0) if total_value > 0 else 0.0
    return frame[SNAPSHOT_COLUMNS].sort_values("current_value", ascending=False, kind="stable").reset_index(drop=True)


def calculate_type_allocation(frame: pd.DataFrame) -> dict[str, float]:
    if frame.empty:
        return {}
    totals = frame.groupby("type")["percentage"].sum()
    return {str(kind): round(float(value), 2) for kind, value in totals.to_dict().items()}


def snapshot_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for row in frame.itertuples(index=False):
        out.append(
            {
                "id": row.id,
                "name": row.name,
                "ticker": row.ticker,
                "type": row.type,
                "invested_amount": round(float(row.invested_amount), 2),
                "current_value": round(float(row.current_value), 2),
                "percentage": round(float(row.percentage), 2),
                "profit_loss": round(float(row.profit_loss), 2),
                "profit_loss_percent": round(float(row.profit_loss_percent), 2),
            }
        )
    return out
