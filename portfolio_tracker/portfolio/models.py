"""Typed portfolio models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal

from portfolio_tracker.providers.models import INSTRUMENT_TYPES, InstrumentType

ZERO = Decimal("0")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Instrument:
    name: str
    ticker: str
    type: InstrumentType
    invested_amount: Decimal
    currency: str = "EUR"
    isin: str | None = None
    current_price: Decimal | None = None
    price_last_updated: datetime | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.ticker or not self.ticker.strip():
            raise ValueError("instrument.ticker must be non-empty")
        if self.type not in INSTRUMENT_TYPES:
            raise ValueError(f"instrument.type must be one of {list(INSTRUMENT_TYPES)}")
        if not isinstance(self.invested_amount, Decimal) or self.invested_amount <= 0:
            raise ValueError("instrument.invested_amount must be a positive Decimal")
        if self.current_price is not None and self.current_price < 0:
            raise ValueError("instrument.current_price must not be negative")


@dataclass
class ValidationIssue:
    field: str
    message: str
    code: str = "invalid_value"


@dataclass(frozen=True)
class PositionSummary:
    instrument_id: str
    ticker: str
    type: InstrumentType
    invested_amount: Decimal
    current_price: Decimal
    shares_implied: Decimal
    current_value: Decimal
    profit_loss: Decimal
    profit_loss_percent: Decimal


@dataclass(frozen=True)
class PortfolioSummary:
    total_invested: Decimal = ZERO
    total_current_value: Decimal = ZERO
    total_profit_loss: Decimal = ZERO
    total_profit_loss_percent: Decimal = ZERO
    by_type: dict[str, Decimal] = field(default_factory=dict)
    instrument_count: int = 0
    last_update: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class RefreshOutcome:
    instruments: list[Instrument]
    updated_count: int
    failed_tickers: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.instruments)


@dataclass
class Recommendation:
    date: datetime
    scenarios: list[dict[str, Any]]
    optimized_allocation: list[dict[str, Any]]
    suggested_instruments: list[dict[str, Any]]
    source: Literal["ai", "fallback"] = "fallback"
    id: str = field(default_factory=new_id)
    portfolio_snapshot: list[dict[str, Any]] = field(default_factory=list)
