import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from portfolio_tracker.portfolio.models import Instrument, Recommendation
from portfolio_tracker.storage.memory_store import InMemoryPortfolioStore


def _instrument(ticker: str, invested: str, price: str | None = None) -> Instrument:
    return Instrument(
        name=ticker,
        ticker=ticker,
        type="etf",
        invested_amount=Decimal(invested),
        current_price=Decimal(price) if price is not None else None,
        isin="IE00BK5BQT80",
    )


def test_list_is_ordered_by_invested_amount_and_ticker_lookup_is_case_insensitive() -> None:
    store = InMemoryPortfolioStore()
    small = store.save(_instrument("EMIM", "200"))
    large = store.save(_instrument("VWCE", "900"))
    assert [item.id for item in store.list()] == [large.id, small.id]
    assert store.get_by_ticker("vwce") is large
    assert store.get(small.id) is small
    assert store.delete(small.id) is True
    assert store.delete(small.id) is False
    assert store.get(small.id) is None


def test_update_price_only_touches_held_instruments() -> None:
    store = InMemoryPortfolioStore()
    held = store.save(_instrument("VWCE", "900", "100"))
    at = datetime(2024, 6, 1, tzinfo=timezone.utc)
    updated = store.update_price(held.id, Decimal("101.5"), at)
    assert updated is not None
    assert store.get(held.id).current_price == Decimal("101.5")
    assert store.get(held.id).price_last_updated == at

    store.delete(held.id)
    assert store.update_price(held.id, Decimal("102"), at) is None
    assert store.list() == []


def test_state_survives_reload_from_data_file(tmp_path) -> None:
    data_file = tmp_path / "portfolio.json"
    store = InMemoryPortfolioStore(data_file)
    saved = store.save(_instrument("VWCE", "1234.56", "101.25"))
    store.save_analysis(
        Recommendation(
            date=datetime(2024, 3, 1, tzinfo=timezone.utc),
            scenarios=[{"term": "short", "description": "hold"}],
            optimized_allocation=[],
            suggested_instruments=[],
        )
    )

    persisted = json.loads(data_file.read_text(encoding="utf-8"))
    assert persisted["version"] == 1
    assert persisted["instruments"][0]["invested_amount"] == "1234.56"

    reloaded = InMemoryPortfolioStore(data_file)
    restored = reloaded.get(saved.id)
    assert restored == saved
    latest = reloaded.latest_analysis()
    assert latest is not None
    assert latest.scenarios[0]["term"] == "short"


def test_latest_analysis_is_most_recent() -> None:
    store = InMemoryPortfolioStore()
    assert store.latest_analysis() is None
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for offset in (2, 5, 1):
        store.save_analysis(
            Recommendation(date=base + timedelta(days=offset), scenarios=[], optimized_allocation=[], suggested_instruments=[])
        )
    assert store.latest_analysis().date == base + timedelta(days=5)


def test_unreadable_data_file_starts_empty(tmp_path) -> None:
    data_file = tmp_path / "portfolio.json"
    data_file.write_text("{not json", encoding="utf-8")
    store = InMemoryPortfolioStore(data_file)
    assert store.list() == []
