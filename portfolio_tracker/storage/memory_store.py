"""Keyed in-memory portfolio store with optional JSON file persistence."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol

from portfolio_tracker.portfolio.models import Instrument, Recommendation

LOGGER = logging.getLogger(__name__)
STORE_VERSION = 1


class PortfolioStore(Protocol):
    def list(self) -> list[Instrument]: ...

    def get(self, instrument_id: str) -> Instrument | None: ...

    def get_by_ticker(self, ticker: str) -> Instrument | None: ...

    def save(self, instrument: Instrument) -> Instrument: ...

    def update_price(self, instrument_id: str, price: Decimal, updated_at: datetime) -> Instrument | None: ...

    def delete(self, instrument_id: str) -> bool: ...

    def save_analysis(self, analysis: Recommendation) -> Recommendation: ...

    def latest_analysis(self) -> Recommendation | None: ...


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    return datetime.fromisoformat(value)


def instrument_to_record(instrument: Instrument) -> dict[str, Any]:
    return {
        "id": instrument.id,
        "name": instrument.name,
        "ticker": instrument.ticker,
        "isin": instrument.isin,
        "type": instrument.type,
        "invested_amount": str(instrument.invested_amount),
        "current_price": str(instrument.current_price) if instrument.current_price is not None else None,
        "currency": instrument.currency,
        "price_last_updated": _iso(instrument.price_last_updated),
        "created_at": _iso(instrument.created_at),
    }


def instrument_from_record(record: dict[str, Any]) -> Instrument:
    current_price = record.get("current_price")
    created_at = _parse_dt(record.get("created_at"))
    extra = {"created_at": created_at} if created_at is not None else {}
    return Instrument(
        id=str(record["id"]),
        name=str(record["name"]),
        ticker=str(record["ticker"]),
        isin=record.get("isin"),
        type=record["type"],
        invested_amount=Decimal(str(record["invested_amount"])),
        current_price=Decimal(str(current_price)) if current_price is not None else None,
        currency=str(record.get("currency") or "EUR"),
        price_last_updated=_parse_dt(record.get("price_last_updated")),
        **extra,
    )


def analysis_to_record(analysis: Recommendation) -> dict[str, Any]:
    return {
        "id": analysis.id,
        "date": _iso(analysis.date),
        "source": analysis.source,
        "scenarios": analysis.scenarios,
        "optimized_allocation": analysis.optimized_allocation,
        "suggested_instruments": analysis.suggested_instruments,
        "portfolio_snapshot": analysis.portfolio_snapshot,
    }


def analysis_from_record(record: dict[str, Any]) -> Recommendation:
    return Recommendation(
        id=str(record["id"]),
        date=_parse_dt(record.get("date")) or datetime.fromtimestamp(0, tz=timezone.utc),
        source=record.get("source") or "fallback",
        scenarios=list(record.get("scenarios") or []),
        optimized_allocation=list(record.get("optimized_allocation") or []),
        suggested_instruments=list(record.get("suggested_instruments") or []),
        portfolio_snapshot=list(record.get("portfolio_snapshot") or []),
    )


class InMemoryPortfolioStore:
    """Thread-safe instrument map keyed by id; persisted after every mutation when a path is set."""

    def __init__(self, data_file: str | Path | None = None) -> None:
        self._path = Path(data_file) if data_file else None
        self._lock = threading.Lock()
        self._instruments: dict[str, Instrument] = {}
        self._analyses: dict[str, Recommendation] = {}
        self._load()

    def list(self) -> list[Instrument]:
        with self._lock:
            items = list(self._instruments.values())
        return sorted(items, key=lambda item: item.invested_amount, reverse=True)

    def get(self, instrument_id: str) -> Instrument | None:
        with self._lock:
            return self._instruments.get(instrument_id)

    def get_by_ticker(self, ticker: str) -> Instrument | None:
        needle = ticker.strip().lower()
        with self._lock:
            for instrument in self._instruments.values():
                if instrument.ticker.lower() == needle:
                    return instrument
        return None

    def save(self, instrument: Instrument) -> Instrument:
        with self._lock:
            self._instruments[instrument.id] = instrument
            self._persist()
        return instrument

    def update_price(self, instrument_id: str, price: Decimal, updated_at: datetime) -> Instrument | None:
        """Set the price of an instrument still in the store; returns None when it was removed."""
        with self._lock:
            current = self._instruments.get(instrument_id)
            if current is None:
                return None
            updated = replace(current, current_price=price, price_last_updated=updated_at)
            self._instruments[instrument_id] = updated
            self._persist()
        return updated

    def delete(self, instrument_id: str) -> bool:
        with self._lock:
            removed = self._instruments.pop(instrument_id, None) is not None
            if removed:
                self._persist()
        return removed

    def save_analysis(self, analysis: Recommendation) -> Recommendation:
        with self._lock:
            self._analyses[analysis.id] = analysis
            self._persist()
        return analysis

    def latest_analysis(self) -> Recommendation | None:
        with self._lock:
            analyses = list(self._analyses.values())
        if not analyses:
            return None
        return max(analyses, key=lambda item: item.date)

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8") or "{}")
            if not isinstance(payload, dict):
                raise ValueError("store root must be an object")
            instruments = [instrument_from_record(item) for item in payload.get("instruments") or []]
            analyses = [analysis_from_record(item) for item in payload.get("analyses") or []]
        except (OSError, ValueError, KeyError, TypeError, ArithmeticError) as error:
            LOGGER.warning("portfolio store unreadable, starting empty: path=%s error=%s", self._path, error)
            return
        self._instruments = {item.id: item for item in instruments}
        self._analyses = {item.id: item for item in analyses}

    def _persist(self) -> None:
        if self._path is None:
            return
        payload = {
            "version": STORE_VERSION,
            "instruments": [instrument_to_record(item) for item in self._instruments.values()],
            "analyses": [analysis_to_record(item) for item in self._analyses.values()],
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        tmp.replace(self._path)
