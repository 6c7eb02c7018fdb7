"""Financial Modeling Prep adapter."""

from __future__ import annotations

from urllib.parse import quote_plus, urlencode

from portfolio_tracker.providers.http import decode_quote, decode_search, fetch_json
from portfolio_tracker.providers.models import MarketQuote, SearchResult


class FmpClient:
    name = "fmp"

    def __init__(self, api_key: str, timeout_seconds: float = 15.0) -> None:
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.base = "https://financialmodelingprep.com/api/v3"

    def _get(self, path: str) -> object:
        sep = "&" if "?" in path else "?"
        url = f"{self.base}{path}{sep}apikey={self.api_key}"
        return fetch_json(url, provider="fmp", timeout_seconds=self.timeout_seconds)

    def search(self, query: str) -> list[SearchResult]:
        data = self._get(f"/search?{urlencode({'query': query, 'limit': 10})}")
        return decode_search("fmp", data, "fmp_search")

    def quote(self, ticker: str) -> MarketQuote:
        symbol = ticker.strip().upper()
        data = self._get(f"/quote/{quote_plus(symbol)}")
        return decode_quote("fmp", data, "fmp_quote", symbol)
