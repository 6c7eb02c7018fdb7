"""Instrument draft validation logic."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from portfolio_tracker.portfolio.models import Instrument, ValidationIssue
from portfolio_tracker.providers.models import INSTRUMENT_TYPES
from portfolio_tracker.providers.normalize import to_decimal
from portfolio_tracker.services.base import validate_symbol

FIELD_ALIASES = {
    "investedAmount": "invested_amount",
    "currentPrice": "current_price",
}
ISIN_LENGTH = 12


def _canonical(payload: dict[str, Any]) -> dict[str, Any]:
    return {FIELD_ALIASES.get(key, key): value for key, value in payload.items()}


def validate_instrument_payload(payload: dict[str, Any]) -> list[ValidationIssue]:
    data = _canonical(payload)
    issues: list[ValidationIssue] = []

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        issues.append(ValidationIssue(field="name", code="missing_value", message="Name is required."))

    ticker = data.get("ticker")
    if not isinstance(ticker, str) or not ticker.strip():
        issues.append(ValidationIssue(field="ticker", code="missing_value", message="Ticker is required."))
    else:
        try:
            validate_symbol(ticker)
        except ValueError as error:
            issues.append(ValidationIssue(field="ticker", code="invalid_ticker", message=str(error)))

    kind = data.get("type")
    if kind not in INSTRUMENT_TYPES:
        issues.append(
            ValidationIssue(
                field="type",
                code="invalid_type",
                message=f"Type must be one of {list(INSTRUMENT_TYPES)}.",
            )
        )

    invested = to_decimal(data.get("invested_amount"))
    if invested is None or invested <= 0:
        issues.append(
            ValidationIssue(
                field="invested_amount",
                code="invalid_invested_amount",
                message="Invested amount must be a positive number.",
            )
        )

    if data.get("current_price") is not None:
        price = to_decimal(data.get("current_price"))
        if price is None or price < 0:
            issues.append(
                ValidationIssue(
                    field="current_price",
                    code="invalid_current_price",
                    message="Current price must be a non-negative number.",
                )
            )

    isin = data.get("isin")
    if isin not in (None, "") and (not isinstance(isin, str) or len(isin.strip()) != ISIN_LENGTH or not isin.strip().isalnum()):
        issues.append(ValidationIssue(field="isin", code="invalid_isin", message="ISIN must be 12 alphanumeric characters."))

    currency = data.get("currency")
    if currency not in (None, "") and (not isinstance(currency, str) or len(currency.strip()) != 3):
        issues.append(ValidationIssue(field="currency", code="invalid_currency", message="Currency must be a 3-letter code."))
    return issues


def build_instrument(payload: dict[str, Any], default_currency: str = "EUR") -> Instrument:
    """Build an instrument from a payload that passed ``validate_instrument_payload``."""
    data = _canonical(payload)
    isin = data.get("isin")
    currency = data.get("currency")
    current_price = to_decimal(data.get("current_price"))
    return Instrument(
        name=str(data["name"]).strip(),
        ticker=validate_symbol(str(data["ticker"])),
        type=data["type"],
        invested_amount=to_decimal(data["invested_amount"]) or Decimal("0"),
        currency=currency.strip().upper() if isinstance(currency, str) and currency.strip() else default_currency,
        isin=isin.strip().upper() if isinstance(isin, str) and isin.strip() else None,
        current_price=current_price,
    )
