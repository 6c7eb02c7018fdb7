"""Decoding of raw provider payloads into canonical market-data models.

Every provider-specific field name lives in this module. Clients fetch JSON and
hand it over together with a schema identity; the decoders validate the shape
before mapping and raise ``MalformedPayload`` instead of producing partial
quotes. A decoder returns ``None`` when the payload is well formed but the
provider reports no data for the symbol.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Literal

from portfolio_tracker.providers.models import InstrumentType, MarketQuote, ProviderName, SearchResult

QuoteSchema = Literal["yahoo_chart", "alphavantage_quote", "fmp_quote"]
SearchSchema = Literal["yahoo_search", "alphavantage_search", "fmp_search"]

MAX_SEARCH_RESULTS = 5
DEFAULT_QUOTE_CURRENCY = "USD"
ZERO = Decimal("0")
HUNDRED = Decimal("100")

PROVIDER_TYPE_MAP: dict[str, InstrumentType] = {
    "EQUITY": "equity",
    "ETF": "etf",
    "MUTUALFUND": "etf",
    "INDEX": "etf",
    "CRYPTOCURRENCY": "crypto",
    "CRYPTO": "crypto",
    "BOND": "bond",
}


class MalformedPayload(ValueError):
    def __init__(self, schema: str, message: str) -> None:
        self.schema = schema
        super().__init__(f"{schema}: {message}")


def map_instrument_type(raw: object) -> InstrumentType:
    """Map a provider type label onto the canonical set; unknown labels become equity."""
    if not isinstance(raw, str):
        return "equity"
    key = raw.strip().upper().replace(" ", "").replace("_", "")
    return PROVIDER_TYPE_MAP.get(key, "equity")


def to_decimal(value: object) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
        if not value:
            return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        out = Decimal(str(value))
    except InvalidOperation:
        return None
    return out if out.is_finite() else None


def compute_change(current: Decimal, previous_close: Decimal | None) -> tuple[Decimal, Decimal]:
    if previous_close is None:
        return ZERO, ZERO
    change = current - previous_close
    if previous_close == 0:
        return change, ZERO
    return change, change / previous_close * HUNDRED


def _text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _require_dict(schema: str, value: object, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedPayload(schema, f"expected an object for {what}")
    return value


def _require_list(schema: str, value: object, what: str) -> list[Any]:
    if not isinstance(value, list):
        raise MalformedPayload(schema, f"expected a list for {what}")
    return value


def _price(schema: str, value: object, field: str) -> Decimal:
    price = to_decimal(value)
    if price is None:
        raise MalformedPayload(schema, f"{field} is not numeric")
    if price < 0:
        raise MalformedPayload(schema, f"{field} is negative")
    return price


def _build_quote(
    symbol: str,
    current: Decimal,
    previous_close: Decimal | None,
    change: Decimal | None,
    change_percent: Decimal | None,
    currency: str | None,
    source: ProviderName,
    retrieved_at: datetime | None,
) -> MarketQuote:
    computed_change, computed_percent = compute_change(current, previous_close)
    return MarketQuote(
        symbol=symbol,
        price=current,
        change=change if change is not None else computed_change,
        change_percent=change_percent if change_percent is not None else computed_percent,
        currency=currency or DEFAULT_QUOTE_CURRENCY,
        retrieved_at=retrieved_at or datetime.now(timezone.utc),
        source=source,
    )


def _yahoo_chart_quote(payload: Any, symbol: str, retrieved_at: datetime | None) -> MarketQuote | None:
    schema = "yahoo_chart"
    chart = _require_dict(schema, _require_dict(schema, payload, "payload").get("chart"), "chart")
    results = chart.get("result")
    if not results:
        return None
    first = _require_dict(schema, _require_list(schema, results, "chart.result")[0], "chart.result[0]")
    meta = _require_dict(schema, first.get("meta"), "chart.result[0].meta")
    previous_close = to_decimal(meta.get("previousClose"))
    if previous_close is None:
        previous_close = to_decimal(meta.get("chartPreviousClose"))
    live = meta.get("regularMarketPrice")
    if live is not None:
        current = _price(schema, live, "regularMarketPrice")
    elif previous_close is not None:
        current = _price(schema, previous_close, "previousClose")
    else:
        raise MalformedPayload(schema, "neither regularMarketPrice nor previousClose present")
    return _build_quote(
        symbol=_text(meta.get("symbol")) or symbol,
        current=current,
        previous_close=previous_close,
        change=None,
        change_percent=None,
        currency=_text(meta.get("currency")),
        source="yahoo",
        retrieved_at=retrieved_at,
    )


def _alphavantage_quote(payload: Any, symbol: str, retrieved_at: datetime | None) -> MarketQuote | None:
    schema = "alphavantage_quote"
    quote = _require_dict(schema, _require_dict(schema, payload, "payload").get("Global Quote"), "Global Quote")
    if not quote:
        return None
    previous_close = to_decimal(quote.get("08. previous close"))
    live = quote.get("05. price")
    if live not in (None, ""):
        current = _price(schema, live, "05. price")
    elif previous_close is not None:
        current = _price(schema, previous_close, "08. previous close")
    else:
        raise MalformedPayload(schema, "neither price nor previous close present")
    return _build_quote(
        symbol=_text(quote.get("01. symbol")) or symbol,
        current=current,
        previous_close=previous_close,
        change=to_decimal(quote.get("09. change")),
        change_percent=to_decimal(quote.get("10. change percent")),
        currency=None,
        source="alphavantage",
        retrieved_at=retrieved_at,
    )


def _fmp_quote(payload: Any, symbol: str, retrieved_at: datetime | None) -> MarketQuote | None:
    schema = "fmp_quote"
    rows = _require_list(schema, payload, "payload")
    if not rows:
        return None
    item = _require_dict(schema, rows[0], "payload[0]")
    previous_close = to_decimal(item.get("previousClose"))
    live = item.get("price")
    if live is not None:
        current = _price(schema, live, "price")
    elif previous_close is not None:
        current = _price(schema, previous_close, "previousClose")
    else:
        raise MalformedPayload(schema, "neither price nor previousClose present")
    return _build_quote(
        symbol=_text(item.get("symbol")) or symbol,
        current=current,
        previous_close=previous_close,
        change=to_decimal(item.get("change")),
        change_percent=to_decimal(item.get("changesPercentage")),
        currency=_text(item.get("currency")),
        source="fmp",
        retrieved_at=retrieved_at,
    )


def _yahoo_search(payload: Any) -> list[SearchResult]:
    schema = "yahoo_search"
    quotes = _require_list(schema, _require_dict(schema, payload, "payload").get("quotes"), "quotes")
    results: list[SearchResult] = []
    for item in quotes:
        if not isinstance(item, dict):
            continue
        ticker = _text(item.get("symbol"))
        short_name = _text(item.get("shortname"))
        if not ticker or not short_name:
            continue
        results.append(
            SearchResult(
                name=short_name,
                ticker=ticker,
                isin=_text(item.get("isin")),
                type=map_instrument_type(item.get("quoteType") or item.get("typeDisp")),
                currency=_text(item.get("currency")) or DEFAULT_QUOTE_CURRENCY,
                price=to_decimal(item.get("regularMarketPrice")) or ZERO,
                source="yahoo",
            )
        )
        if len(results) == MAX_SEARCH_RESULTS:
            break
    return results


def _alphavantage_search(payload: Any) -> list[SearchResult]:
    schema = "alphavantage_search"
    matches = _require_list(schema, _require_dict(schema, payload, "payload").get("bestMatches"), "bestMatches")
    results: list[SearchResult] = []
    for item in matches:
        if not isinstance(item, dict):
            continue
        ticker = _text(item.get("1. symbol"))
        if not ticker:
            continue
        results.append(
            SearchResult(
                name=_text(item.get("2. name")) or ticker,
                ticker=ticker,
                type=map_instrument_type(item.get("3. type")),
                currency=_text(item.get("8. currency")) or DEFAULT_QUOTE_CURRENCY,
                price=ZERO,
                source="alphavantage",
            )
        )
        if len(results) == MAX_SEARCH_RESULTS:
            break
    return results


def _fmp_search(payload: Any) -> list[SearchResult]:
    schema = "fmp_search"
    rows = _require_list(schema, payload, "payload")
    results: list[SearchResult] = []
    for item in rows:
        if not isinstance(item, dict):
            continue
        ticker = _text(item.get("symbol"))
        if not ticker:
            continue
        results.append(
            SearchResult(
                name=_text(item.get("name")) or ticker,
                ticker=ticker,
                type=map_instrument_type(item.get("exchangeShortName")),
                currency=_text(item.get("currency")) or DEFAULT_QUOTE_CURRENCY,
                price=ZERO,
                source="fmp",
            )
        )
        if len(results) == MAX_SEARCH_RESULTS:
            break
    return results


_QUOTE_DECODERS: dict[str, Callable[[Any, str, datetime | None], MarketQuote | None]] = {
    "yahoo_chart": _yahoo_chart_quote,
    "alphavantage_quote": _alphavantage_quote,
    "fmp_quote": _fmp_quote,
}
_SEARCH_DECODERS: dict[str, Callable[[Any], list[SearchResult]]] = {
    "yahoo_search": _yahoo_search,
    "alphavantage_search": _alphavantage_search,
    "fmp_search": _fmp_search,
}


def normalize_quote(
    payload: Any,
    schema: QuoteSchema,
    symbol: str,
    retrieved_at: datetime | None = None,
) -> MarketQuote | None:
    decoder = _QUOTE_DECODERS.get(schema)
    if decoder is None:
        raise ValueError(f"Unknown quote schema: {schema}")
    return decoder(payload, symbol, retrieved_at)


def normalize_search(payload: Any, schema: SearchSchema) -> list[SearchResult]:
    decoder = _SEARCH_DECODERS.get(schema)
    if decoder is None:
        raise ValueError(f"Unknown search schema: {schema}")
    return decoder(payload)
