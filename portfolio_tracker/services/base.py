"""Shared service orchestration helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from portfolio_tracker.providers.http import ProviderError
from portfolio_tracker.services.provider_status import ProviderStatus
from portfolio_tracker.utils.rate_limit import RateLimiterRegistry

SYMBOL_PATTERN = re.compile(r"^[A-Z0-9^][A-Z0-9.\-=^]{0,14}$")
MAX_QUERY_LENGTH = 64
T = TypeVar("T")


@dataclass
class AllProvidersFailed(Exception):
    """Every configured provider failed or came back empty for one operation."""

    operation: str
    subject: str
    last_error: ProviderError | None = None
    attempted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def code(self) -> str:
        if self.last_error is None:
            return "RATE_LIMIT" if self.skipped else "NOT_FOUND"
        return self.last_error.code

    @property
    def not_found(self) -> bool:
        return self.code == "NOT_FOUND"

    def __str__(self) -> str:
        return f"{self.operation} failed for {self.subject}: no provider returned data."


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    retriable: bool = True


@dataclass
class ServiceResult(Generic[T]):
    data: T | None
    source: str | None = None
    warning: str | None = None
    error: AllProvidersFailed | None = None
    fetched_at: float | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None


@dataclass
class ServiceContext:
    providers: dict[str, object]
    rate_limiter: RateLimiterRegistry = field(default_factory=lambda: RateLimiterRegistry(0.0))
    provider_status: ProviderStatus = field(default_factory=ProviderStatus)
    provider_order: tuple[str, ...] = ("yahoo", "alphavantage", "fmp")
    rate_limit_disable_seconds: int = 60 * 60

    def get_provider(self, name: str) -> object | None:
        return self.providers.get(name)


def validate_symbol(symbol: str) -> str:
    clean = symbol.strip().upper()
    if not clean or not SYMBOL_PATTERN.match(clean):
        raise ValueError("Ticker must be 1-15 chars: A-Z, 0-9, dot, hyphen, caret or equals sign.")
    return clean


def validate_query(query: str) -> str:
    clean = " ".join(query.split())
    if not clean:
        raise ValueError("Search query must not be empty.")
    if len(clean) > MAX_QUERY_LENGTH:
        raise ValueError(f"Search query must be at most {MAX_QUERY_LENGTH} characters.")
    return clean


def envelope_from_failure(failure: AllProvidersFailed) -> ErrorEnvelope:
    if failure.not_found:
        return ErrorEnvelope(code="NOT_FOUND", message="No instrument matched the request.", retriable=False)
    return ErrorEnvelope(
        code="UPSTREAM",
        message="All market data providers are currently unavailable. Please try again later.",
        retriable=True,
    )
