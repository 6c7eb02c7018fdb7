"""Response shaping helpers shared by MCP tools and HTTP routes."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, is_dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from portfolio_tracker.portfolio.aggregator import summarize_position
from portfolio_tracker.portfolio.models import Instrument, PortfolioSummary, Recommendation, RefreshOutcome
from portfolio_tracker.services.base import ServiceResult

DISCLAIMER = "Data is for informational purposes only and does not constitute financial advice."
CENTS = Decimal("0.01")
PRICE_SCALE = Decimal("0.00000001")
# Unit prices keep their precision; amounts and percentages are rounded to cents.
PRICE_FIELDS = frozenset({"price", "current_price", "change"})


def _decimal(value: Decimal, scale: Decimal) -> float:
    return float(value.quantize(scale, rounding=ROUND_HALF_UP))


def to_jsonable(data: Any, scale: Decimal = CENTS) -> Any:
    """Convert dataclasses, Decimals and datetimes into JSON-ready values.

    Decimals under a unit-price key are rounded to eight places, every other
    Decimal half-up to two places.
    """
    if is_dataclass(data) and not isinstance(data, type):
        return to_jsonable(asdict(data), scale)
    if isinstance(data, Decimal):
        return _decimal(data, scale)
    if isinstance(data, datetime):
        return data.isoformat()
    if isinstance(data, (list, tuple)):
        return [to_jsonable(item, scale) for item in data]
    if isinstance(data, dict):
        return {
            str(key): to_jsonable(value, PRICE_SCALE if key in PRICE_FIELDS else CENTS)
            for key, value in data.items()
        }
    return data


def _freshness(fetched_at: float | None) -> dict[str, Any]:
    ts = fetched_at or time.time()
    age_seconds = max(0.0, time.time() - ts)
    return {"timestamp": int(ts), "age_seconds": round(age_seconds, 3)}


def instrument_payload(instrument: Instrument) -> dict[str, Any]:
    position = summarize_position(instrument)
    payload = to_jsonable(instrument)
    payload["current_value"] = to_jsonable(position.current_value)
    payload["profit_loss"] = to_jsonable(position.profit_loss)
    payload["profit_loss_percent"] = to_jsonable(position.profit_loss_percent)
    return payload


def summary_payload(summary: PortfolioSummary) -> dict[str, Any]:
    return to_jsonable(summary)


def refresh_payload(outcome: RefreshOutcome) -> dict[str, Any]:
    return {
        "updated": outcome.updated_count,
        "total": outcome.total,
        "failed_tickers": list(outcome.failed_tickers),
        "instruments": [instrument_payload(item) for item in outcome.instruments],
    }


def analysis_payload(analysis: Recommendation) -> dict[str, Any]:
    return to_jsonable(analysis)


def result_payload(result: ServiceResult[Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "data": to_jsonable(result.data),
        "data_freshness": _freshness(result.fetched_at),
        "disclaimer": DISCLAIMER,
    }
    if result.source:
        payload["source"] = result.source
    if result.warning:
        payload["warning"] = result.warning
    return payload


def error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = to_jsonable(details)
    return {"error": error}


def success_response(data: Any) -> str:
    return json.dumps(data, ensure_ascii=True)


def error_response(code: str, message: str, details: Any = None) -> str:
    return json.dumps(error_body(code, message, details), ensure_ascii=True)
