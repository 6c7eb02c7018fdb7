import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from portfolio_tracker.portfolio.portfolio_service import PortfolioError, PortfolioService
from portfolio_tracker.providers.http import ProviderError
from portfolio_tracker.providers.models import MarketQuote
from portfolio_tracker.services.base import ServiceContext
from portfolio_tracker.services.market_data_service import MarketDataService
from portfolio_tracker.services.recommendation_service import RecommendationService
from portfolio_tracker.storage.memory_store import InMemoryPortfolioStore


class _FakeProvider:
    name = "yahoo"

    def __init__(self, prices: dict[str, str]) -> None:
        self.prices = prices

    def quote(self, ticker: str) -> MarketQuote:
        if ticker not in self.prices:
            raise ProviderError("yahoo", "NOT_FOUND", f"No quote data for {ticker}.", 404)
        return MarketQuote(
            symbol=ticker,
            price=Decimal(self.prices[ticker]),
            change=Decimal("0"),
            change_percent=Decimal("0"),
            currency="EUR",
            retrieved_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
            source="yahoo",
        )

    def search(self, query: str):
        return []


def _service(prices: dict[str, str], store: InMemoryPortfolioStore | None = None) -> PortfolioService:
    provider = _FakeProvider(prices)
    market_data = MarketDataService(ServiceContext(providers={"yahoo": provider}, provider_order=("yahoo",)))
    return PortfolioService(
        store=store or InMemoryPortfolioStore(),
        market_data=market_data,
        recommender=RecommendationService(None),
        default_currency="EUR",
    )


def _draft(ticker: str, invested: float, kind: str = "etf") -> dict:
    return {"name": f"{ticker} holding", "ticker": ticker, "type": kind, "investedAmount": invested}


def test_add_instrument_prices_it_through_market_data() -> None:
    service = _service({"VWCE": "104.2"})
    instrument = service.add_instrument(_draft("vwce", 1000))
    assert instrument.ticker == "VWCE"
    assert instrument.current_price == Decimal("104.2")
    assert instrument.price_last_updated is not None
    assert service.list_instruments() == [instrument]


def test_add_instrument_tolerates_missing_price() -> None:
    service = _service({})
    instrument = service.add_instrument(_draft("NOPE", 10))
    assert instrument.current_price is None


def test_add_instrument_rejects_invalid_and_duplicate() -> None:
    service = _service({"VWCE": "100"})
    with pytest.raises(PortfolioError) as invalid:
        service.add_instrument({"ticker": "VWCE"})
    assert invalid.value.code == "VALIDATION_ERROR"
    assert {issue.field for issue in invalid.value.issues} >= {"name", "type", "invested_amount"}

    service.add_instrument(_draft("VWCE", 500))
    with pytest.raises(PortfolioError) as duplicate:
        service.add_instrument(_draft("vwce", 100))
    assert duplicate.value.code == "DUPLICATE_INSTRUMENT"


def test_delete_missing_instrument() -> None:
    service = _service({})
    with pytest.raises(PortfolioError) as error:
        service.delete_instrument("missing")
    assert error.value.code == "NOT_FOUND"


def test_refresh_prices_writes_updates_back_to_store(tmp_path) -> None:
    store = InMemoryPortfolioStore(tmp_path / "portfolio.json")
    service = _service({}, store)
    first = service.add_instrument(_draft("AAA", 100))
    second = service.add_instrument(_draft("BBB", 50))
    service.market_data.ctx.providers["yahoo"].prices.update({"AAA": "12.5"})

    outcome = asyncio.run(service.refresh_prices())
    assert outcome.updated_count == 1
    assert outcome.failed_tickers == ["BBB"]
    assert store.get(first.id).current_price == Decimal("12.5")
    assert store.get(second.id).current_price is None
    assert InMemoryPortfolioStore(tmp_path / "portfolio.json").get(first.id).current_price == Decimal("12.5")


def test_refresh_does_not_restore_instrument_deleted_while_in_flight() -> None:
    service = _service({"AAA": "10", "BBB": "20"})
    kept = service.add_instrument(_draft("AAA", 100))
    removed = service.add_instrument(_draft("BBB", 50))
    service.market_data.ctx.providers["yahoo"].prices.update({"AAA": "11", "BBB": "21"})
    inner = service.refresher

    class _DeletingRefresher:
        async def refresh(self, instruments):
            outcome = await inner.refresh(instruments)
            service.delete_instrument(removed.id)
            return outcome

    service.refresher = _DeletingRefresher()
    outcome = asyncio.run(service.refresh_prices())

    assert outcome.updated_count == 2
    assert [item.ticker for item in service.list_instruments()] == ["AAA"]
    assert service.store.get(removed.id) is None
    assert service.store.get(kept.id).current_price == Decimal("11")


def test_summary_and_analysis() -> None:
    service = _service({"VWCE": "100", "DEAD": "0"})
    service.add_instrument(_draft("VWCE", 1000))
    service.add_instrument(_draft("DEAD", 500, kind="equity"))

    summary = service.get_summary()
    assert summary.total_invested == Decimal("1000") + Decimal("500")
    assert summary.total_current_value == Decimal("1000")

    assert service.latest_analysis() is None
    analysis = service.analyze()
    assert analysis.source == "fallback"
    assert [row["ticker"] for row in analysis.portfolio_snapshot] == ["VWCE", "DEAD"]
    assert service.latest_analysis() is analysis


def test_analyze_empty_portfolio() -> None:
    with pytest.raises(PortfolioError) as error:
        _service({}).analyze()
    assert error.value.code == "EMPTY_PORTFOLIO"
