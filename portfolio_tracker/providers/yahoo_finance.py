"""Yahoo Finance adapter with normalized outputs."""

from __future__ import annotations

from urllib.parse import quote, urlencode

from portfolio_tracker.providers.http import decode_quote, decode_search, fetch_json
from portfolio_tracker.providers.models import MarketQuote, SearchResult

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/"
YAHOO_SEARCH_URL = "https://query2.finance.yahoo.com/v1/finance/search"


class YahooFinanceClient:
    name = "yahoo"

    def __init__(self, timeout_seconds: float = 15.0) -> None:
        self.timeout_seconds = timeout_seconds

    def search(self, query: str) -> list[SearchResult]:
        params = urlencode({"q": query, "lang": "en-US", "region": "US", "quotesCount": 6, "newsCount": 0})
        data = fetch_json(f"{YAHOO_SEARCH_URL}?{params}", provider="yahoo", timeout_seconds=self.timeout_seconds)
        return decode_search("yahoo", data, "yahoo_search")

    def quote(self, ticker: str) -> MarketQuote:
        symbol = ticker.strip().upper()
        url = f"{YAHOO_CHART_URL}{quote(symbol, safe='')}"
        data = fetch_json(url, provider="yahoo", timeout_seconds=self.timeout_seconds)
        return decode_quote("yahoo", data, "yahoo_chart", symbol)
