"""Instrument search and quote lookup across the configured provider order."""

from __future__ import annotations

from portfolio_tracker.providers.models import MarketQuote, QuoteProvider, SearchResult
from portfolio_tracker.services.base import ServiceContext, ServiceResult, validate_query, validate_symbol
from portfolio_tracker.services.failover_resolver import FailoverResolver, ProviderAttempt

PROVIDER_LABELS = {
    "yahoo": "Yahoo Finance",
    "alphavantage": "Alpha Vantage",
    "fmp": "FMP",
}


class MarketDataService:
    def __init__(self, ctx: ServiceContext) -> None:
        self.ctx = ctx
        self.resolver = FailoverResolver(ctx)

    def configured_providers(self) -> list[tuple[str, QuoteProvider]]:
        out: list[tuple[str, QuoteProvider]] = []
        for key in self.ctx.provider_order:
            client = self.ctx.get_provider(key)
            if client is not None and callable(getattr(client, "quote", None)) and callable(getattr(client, "search", None)):
                out.append((key, client))  # type: ignore[arg-type]
        return out

    def search_instruments(self, query: str) -> ServiceResult[list[SearchResult]]:
        query_text = validate_query(query)
        attempts = [
            ProviderAttempt(key, PROVIDER_LABELS.get(key, key), lambda client=client: client.search(query_text))
            for key, client in self.configured_providers()
        ]
        return self.resolver.resolve(operation="search", subject=query_text, attempts=attempts)

    def get_quote(self, ticker: str) -> ServiceResult[MarketQuote]:
        symbol = validate_symbol(ticker)
        attempts = [
            ProviderAttempt(key, PROVIDER_LABELS.get(key, key), lambda client=client: client.quote(symbol))
            for key, client in self.configured_providers()
        ]
        return self.resolver.resolve(operation="quote", subject=symbol, attempts=attempts)
