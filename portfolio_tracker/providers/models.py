"""Normalized market-data models shared across providers and services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Literal, Protocol

ProviderName = Literal["yahoo", "alphavantage", "fmp", "anthropic"]
InstrumentType = Literal["equity", "etf", "bond", "crypto"]

INSTRUMENT_TYPES: tuple[InstrumentType, ...] = ("equity", "etf", "bond", "crypto")


@dataclass(frozen=True)
class MarketQuote:
    symbol: str
    price: Decimal
    change: Decimal
    change_percent: Decimal
    currency: str
    retrieved_at: datetime
    source: ProviderName


@dataclass(frozen=True)
class SearchResult:
    name: str
    ticker: str
    type: InstrumentType
    currency: str
    price: Decimal
    source: ProviderName
    isin: str | None = None


class QuoteProvider(Protocol):
    name: ProviderName

    def search(self, query: str) -> list[SearchResult]: ...

    def quote(self, ticker: str) -> MarketQuote: ...
