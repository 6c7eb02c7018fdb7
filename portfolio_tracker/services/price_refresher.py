"""Concurrent price refresh over held instruments."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from portfolio_tracker.portfolio.models import Instrument, RefreshOutcome
from portfolio_tracker.providers.models import MarketQuote
from portfolio_tracker.services.base import ServiceResult
from portfolio_tracker.services.market_data_service import MarketDataService

LOGGER = logging.getLogger(__name__)


class BulkPriceRefresher:
    """Looks up every ticker concurrently and settles all lookups before returning.

    A failed lookup leaves its instrument untouched (the same object is
    returned) and never affects the other instruments.
    """

    def __init__(self, market_data: MarketDataService) -> None:
        self.market_data = market_data

    async def refresh(self, instruments: list[Instrument]) -> RefreshOutcome:
        if not instruments:
            return RefreshOutcome(instruments=[], updated_count=0)
        lookups = [asyncio.to_thread(self.market_data.get_quote, instrument.ticker) for instrument in instruments]
        results = await asyncio.gather(*lookups, return_exceptions=True)

        updated: list[Instrument] = []
        failed: list[str] = []
        for instrument, result in zip(instruments, results):
            refreshed = self._apply(instrument, result)
            if refreshed is None:
                failed.append(instrument.ticker)
                updated.append(instrument)
            else:
                updated.append(refreshed)

        LOGGER.info(
            "price refresh settled: total=%s updated=%s failed=%s",
            len(instruments),
            len(instruments) - len(failed),
            ",".join(failed) or "-",
        )
        return RefreshOutcome(instruments=updated, updated_count=len(instruments) - len(failed), failed_tickers=failed)

    @staticmethod
    def _apply(instrument: Instrument, result: object) -> Instrument | None:
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            LOGGER.warning(
                "price lookup raised: ticker=%s error=%s: %s",
                instrument.ticker,
                type(result).__name__,
                result,
            )
            return None
        if not isinstance(result, ServiceResult) or not isinstance(result.data, MarketQuote):
            code = result.error.code if isinstance(result, ServiceResult) and result.error else "EMPTY"
            LOGGER.warning("price lookup failed: ticker=%s code=%s", instrument.ticker, code)
            return None
        quote = result.data
        return replace(instrument, current_price=quote.price, price_last_updated=quote.retrieved_at)
