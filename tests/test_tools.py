import asyncio
import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from mcp.server.fastmcp import FastMCP

from portfolio_tracker.prompts.portfolio_prompts import register_portfolio_prompts
from portfolio_tracker.providers.http import ProviderError
from portfolio_tracker.providers.models import MarketQuote, SearchResult
from portfolio_tracker.runtime.response import result_payload
from portfolio_tracker.services.base import ServiceContext, ServiceResult
from portfolio_tracker.services.recommendation_service import RecommendationService
from portfolio_tracker.storage.memory_store import InMemoryPortfolioStore
from portfolio_tracker.tools.registry import build_tool_services, register_all_tools


class _FakeProvider:
    name = "yahoo"

    def __init__(self, fail_code: str | None = None) -> None:
        self.fail_code = fail_code

    def quote(self, ticker: str) -> MarketQuote:
        if self.fail_code:
            raise ProviderError("yahoo", self.fail_code, "upstream said token invalid: abc123")
        return MarketQuote(
            symbol=ticker,
            price=Decimal("104.256"),
            change=Decimal("1.5"),
            change_percent=Decimal("1.4597"),
            currency="EUR",
            retrieved_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
            source="yahoo",
        )

    def search(self, query: str) -> list[SearchResult]:
        if self.fail_code:
            raise ProviderError("yahoo", self.fail_code, "upstream said token invalid: abc123")
        if query == "nothing":
            return []
        return [SearchResult(name="Vanguard FTSE All-World", ticker="VWCE.DE", type="etf", currency="EUR", price=Decimal("104.2"), source="yahoo")]


def _mcp(fail_code: str | None = None) -> FastMCP:
    ctx = ServiceContext(providers={"yahoo": _FakeProvider(fail_code)}, provider_order=("yahoo",))
    services = build_tool_services(ctx, store=InMemoryPortfolioStore(), recommender=RecommendationService(None))
    mcp = FastMCP(name="portfolio-tools-test")
    register_all_tools(mcp, services)
    return mcp


def _call(mcp: FastMCP, name: str, arguments: dict[str, object]) -> dict:
    _, metadata = asyncio.run(mcp.call_tool(name, arguments))
    return json.loads(str(metadata.get("result") or ""))


def test_tools_are_registered() -> None:
    tools = asyncio.run(_mcp().list_tools())
    assert {tool.name for tool in tools} == {
        "search_instruments",
        "get_instrument_quote",
        "list_instruments",
        "add_instrument",
        "delete_instrument",
        "refresh_prices",
        "portfolio_stats",
        "analyze_portfolio",
    }


def test_quote_tool_returns_rounded_json() -> None:
    parsed = _call(_mcp(), "get_instrument_quote", {"ticker": "vwce.de"})
    assert parsed["source"] == "Yahoo Finance"
    assert parsed["data"]["symbol"] == "VWCE.DE"
    assert parsed["data"]["price"] == 104.256
    assert parsed["data"]["retrieved_at"].startswith("2024-06-01")


def test_search_tool_errors_are_generic() -> None:
    payload = _call(_mcp(fail_code="NETWORK"), "search_instruments", {"query": "vanguard"})
    assert payload["error"]["code"] == "UPSTREAM"
    assert "abc123" not in json.dumps(payload)

    empty = _call(_mcp(), "search_instruments", {"query": "nothing"})
    assert empty["error"]["code"] == "NOT_FOUND"


def test_portfolio_tool_flow() -> None:
    mcp = _mcp()
    added = _call(mcp, "add_instrument", {"name": "All-World", "ticker": "VWCE", "type": "etf", "invested_amount": 1000})
    instrument_id = added["data"]["id"]
    assert added["data"]["current_price"] == 104.256

    duplicate = _call(mcp, "add_instrument", {"name": "Again", "ticker": "vwce", "type": "etf", "invested_amount": 5})
    assert duplicate["error"]["code"] == "DUPLICATE_INSTRUMENT"

    invalid = _call(mcp, "add_instrument", {"name": "Bad", "ticker": "BAD", "type": "stock", "invested_amount": 5})
    assert invalid["error"]["code"] == "VALIDATION_ERROR"
    assert invalid["error"]["details"][0]["field"] == "type"

    refreshed = _call(mcp, "refresh_prices", {})
    assert refreshed["data"]["updated"] == 1
    assert refreshed["data"]["total"] == 1

    stats = _call(mcp, "portfolio_stats", {})
    assert stats["data"]["total_invested"] == 1000.0
    assert stats["data"]["instrument_count"] == 1
    assert stats["data"]["by_type"] == {"etf": 1000.0}

    analysis = _call(mcp, "analyze_portfolio", {})
    assert analysis["data"]["source"] == "fallback"

    listed = _call(mcp, "list_instruments", {})
    assert [row["ticker"] for row in listed["data"]] == ["VWCE"]

    assert _call(mcp, "delete_instrument", {"instrument_id": instrument_id})["data"]["deleted"] == instrument_id
    assert _call(mcp, "delete_instrument", {"instrument_id": instrument_id})["error"]["code"] == "NOT_FOUND"
    assert _call(mcp, "analyze_portfolio", {})["error"]["code"] == "EMPTY_PORTFOLIO"


def test_rebalance_prompt() -> None:
    mcp = FastMCP(name="portfolio-prompts-test")
    register_portfolio_prompts(mcp)
    prompts = asyncio.run(mcp.list_prompts())
    assert any(prompt.name == "portfolio_rebalance" for prompt in prompts)

    result = asyncio.run(mcp.get_prompt("portfolio_rebalance", {"tickers": "vwce, emim"}))
    rendered = str(result.messages[0].content.text)
    assert "VWCE, EMIM" in rendered
    assert "portfolio_stats" in rendered

    with pytest.raises(ValueError):
        asyncio.run(mcp.get_prompt("portfolio_rebalance", {"tickers": " , "}))


def test_sub_cent_prices_keep_their_precision() -> None:
    quote = MarketQuote(
        symbol="PENNY",
        price=Decimal("0.00001234"),
        change=Decimal("0.000001"),
        change_percent=Decimal("8.8888"),
        currency="USD",
        retrieved_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        source="yahoo",
    )
    data = result_payload(ServiceResult(data=quote, source="Yahoo Finance"))["data"]
    assert data["price"] == 1.234e-05
    assert data["change"] == 1e-06
    assert data["change_percent"] == 8.89
