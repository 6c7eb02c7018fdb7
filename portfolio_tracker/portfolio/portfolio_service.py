"""Portfolio use cases over the store, market data and recommendation services."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from portfolio_tracker.portfolio.aggregator import summarize_portfolio
from portfolio_tracker.portfolio.models import Instrument, PortfolioSummary, Recommendation, RefreshOutcome, ValidationIssue
from portfolio_tracker.portfolio.snapshot import build_snapshot_frame, calculate_type_allocation, snapshot_records
from portfolio_tracker.portfolio.validation import build_instrument, validate_instrument_payload
from portfolio_tracker.providers.models import MarketQuote
from portfolio_tracker.services.market_data_service import MarketDataService
from portfolio_tracker.services.price_refresher import BulkPriceRefresher
from portfolio_tracker.services.recommendation_service import RecommendationService
from portfolio_tracker.storage.memory_store import PortfolioStore

LOGGER = logging.getLogger(__name__)


@dataclass
class PortfolioError(Exception):
    code: str
    message: str
    issues: list[ValidationIssue] = field(default_factory=list)

    def __str__(self) -> str:
        return self.message


class PortfolioService:
    def __init__(
        self,
        store: PortfolioStore,
        market_data: MarketDataService,
        recommender: RecommendationService,
        refresher: BulkPriceRefresher | None = None,
        default_currency: str = "EUR",
    ) -> None:
        self.store = store
        self.market_data = market_data
        self.recommender = recommender
        self.refresher = refresher or BulkPriceRefresher(market_data)
        self.default_currency = default_currency

    def list_instruments(self) -> list[Instrument]:
        return self.store.list()

    def add_instrument(self, draft: dict[str, Any]) -> Instrument:
        issues = validate_instrument_payload(draft)
        if issues:
            raise PortfolioError("VALIDATION_ERROR", "Instrument data is invalid.", issues)
        instrument = build_instrument(draft, self.default_currency)
        if self.store.get_by_ticker(instrument.ticker) is not None:
            raise PortfolioError("DUPLICATE_INSTRUMENT", f"Instrument {instrument.ticker} is already in the portfolio.")
        if instrument.current_price is None:
            instrument = self._priced(instrument)
        saved = self.store.save(instrument)
        LOGGER.info("instrument added: id=%s ticker=%s type=%s", saved.id, saved.ticker, saved.type)
        return saved

    def _priced(self, instrument: Instrument) -> Instrument:
        result = self.market_data.get_quote(instrument.ticker)
        if not isinstance(result.data, MarketQuote):
            code = result.error.code if result.error else "EMPTY"
            LOGGER.warning("initial price unavailable: ticker=%s code=%s", instrument.ticker, code)
            return instrument
        return replace(instrument, current_price=result.data.price, price_last_updated=result.data.retrieved_at)

    def delete_instrument(self, instrument_id: str) -> None:
        if not self.store.delete(instrument_id):
            raise PortfolioError("NOT_FOUND", "Instrument not found.")
        LOGGER.info("instrument deleted: id=%s", instrument_id)

    async def refresh_prices(self) -> RefreshOutcome:
        instruments = self.store.list()
        outcome = await self.refresher.refresh(instruments)
        for before, after in zip(instruments, outcome.instruments):
            if after is before or after.current_price is None or after.price_last_updated is None:
                continue
            if self.store.update_price(after.id, after.current_price, after.price_last_updated) is None:
                LOGGER.info("refreshed instrument no longer held: id=%s ticker=%s", after.id, after.ticker)
        return outcome

    def get_summary(self) -> PortfolioSummary:
        return summarize_portfolio(self.store.list())

    def analyze(self) -> Recommendation:
        instruments = self.store.list()
        if not instruments:
            raise PortfolioError("EMPTY_PORTFOLIO", "Add at least one instrument before requesting an analysis.")
        frame = build_snapshot_frame(instruments)
        snapshot = snapshot_records(frame)
        analysis = self.recommender.analyze(snapshot)
        self.store.save_analysis(analysis)
        LOGGER.info(
            "portfolio analyzed: id=%s source=%s holdings=%s allocation=%s",
            analysis.id,
            analysis.source,
            len(snapshot),
            calculate_type_allocation(frame),
        )
        return analysis

    def latest_analysis(self) -> Recommendation | None:
        return self.store.latest_analysis()
