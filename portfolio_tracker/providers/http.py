"""HTTP utilities and normalized provider errors."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

import requests
from requests.adapters import HTTPAdapter

from portfolio_tracker.providers.models import MarketQuote, ProviderName, SearchResult
from portfolio_tracker.providers.normalize import (
    MalformedPayload,
    QuoteSchema,
    SearchSchema,
    normalize_quote,
    normalize_search,
)

ProviderErrorCode = Literal["NETWORK", "NOT_FOUND", "RATE_LIMIT", "MALFORMED"]

_SESSION = requests.Session()
_SESSION.mount("https://", HTTPAdapter(pool_connections=20, pool_maxsize=50))
_SESSION.mount("http://", HTTPAdapter(pool_connections=20, pool_maxsize=50))
_DEFAULT_HEADERS = {"Accept": "application/json", "User-Agent": "portfolio-tracker/1.0"}


@dataclass
class ProviderError(Exception):
    provider: ProviderName
    code: ProviderErrorCode
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message


def map_status_to_code(status: int) -> ProviderErrorCode:
    if status == 404:
        return "NOT_FOUND"
    if status == 429:
        return "RATE_LIMIT"
    return "NETWORK"


def fetch_json(
    url: str,
    provider: ProviderName,
    timeout_seconds: float = 15.0,
    headers: dict[str, str] | None = None,
) -> Any:
    """Fetch JSON once with uniform provider/network error mapping."""
    try:
        response = _SESSION.get(url, timeout=timeout_seconds, headers={**_DEFAULT_HEADERS, **(headers or {})})
    except requests.RequestException as error:
        raise ProviderError(provider, "NETWORK", "Provider request failed due to network error.") from error

    if not response.ok:
        raise ProviderError(
            provider,
            map_status_to_code(response.status_code),
            f"Provider request failed with status {response.status_code}.",
            response.status_code,
        )

    raw = response.text or ""
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as error:
        raise ProviderError(
            provider,
            "MALFORMED",
            "Provider returned non-JSON content.",
            response.status_code,
        ) from error


def decode_quote(provider: ProviderName, payload: Any, schema: QuoteSchema, symbol: str) -> MarketQuote:
    try:
        quote = normalize_quote(payload, schema, symbol)
    except MalformedPayload as error:
        raise ProviderError(provider, "MALFORMED", str(error)) from error
    if quote is None:
        raise ProviderError(provider, "NOT_FOUND", f"No quote data for {symbol}.")
    return quote


def decode_search(provider: ProviderName, payload: Any, schema: SearchSchema) -> list[SearchResult]:
    try:
        return normalize_search(payload, schema)
    except MalformedPayload as error:
        raise ProviderError(provider, "MALFORMED", str(error)) from error
