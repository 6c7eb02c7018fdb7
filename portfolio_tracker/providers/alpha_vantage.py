"""Alpha Vantage API client with normalized response models."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from portfolio_tracker.providers.http import ProviderError, decode_quote, decode_search, fetch_json
from portfolio_tracker.providers.models import MarketQuote, SearchResult

ALPHA_VANTAGE_BASE_URL = "https://www.alphavantage.co/query"


def parse_alpha_error(data: dict) -> ProviderError:
    note = data.get("Note") if isinstance(data.get("Note"), str) else None
    error_message = data.get("Error Message") if isinstance(data.get("Error Message"), str) else None
    information = data.get("Information") if isinstance(data.get("Information"), str) else None
    text = note or error_message or information or "Alpha Vantage returned an error."
    lower = text.lower()
    if "frequency" in lower or "rate limit" in lower or "requests per day" in lower:
        return ProviderError("alphavantage", "RATE_LIMIT", text)
    if error_message:
        return ProviderError("alphavantage", "NOT_FOUND", text)
    return ProviderError("alphavantage", "NETWORK", text)


class AlphaVantageClient:
    """Thin wrapper around the Alpha Vantage search and quote endpoints."""

    name = "alphavantage"

    def __init__(self, api_key: str, timeout_seconds: float = 15.0) -> None:
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def _request(self, params: dict[str, str]) -> Any:
        url = f"{ALPHA_VANTAGE_BASE_URL}?{urlencode({**params, 'apikey': self.api_key})}"
        data = fetch_json(url, provider="alphavantage", timeout_seconds=self.timeout_seconds)
        if isinstance(data, dict) and (data.get("Note") or data.get("Error Message") or data.get("Information")):
            raise parse_alpha_error(data)
        return data

    def search(self, query: str) -> list[SearchResult]:
        data = self._request({"function": "SYMBOL_SEARCH", "keywords": query})
        return decode_search("alphavantage", data, "alphavantage_search")

    def quote(self, ticker: str) -> MarketQuote:
        symbol = ticker.strip().upper()
        data = self._request({"function": "GLOBAL_QUOTE", "symbol": symbol})
        return decode_quote("alphavantage", data, "alphavantage_quote", symbol)
