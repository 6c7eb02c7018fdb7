from datetime import datetime, timezone
from decimal import Decimal

from mcp.server.fastmcp import FastMCP
from starlette.testclient import TestClient

from portfolio_tracker.api.routes import register_api_routes
from portfolio_tracker.providers.http import ProviderError
from portfolio_tracker.providers.models import MarketQuote, SearchResult
from portfolio_tracker.runtime.monitoring import ServerMetrics
from portfolio_tracker.services.base import ServiceContext
from portfolio_tracker.services.recommendation_service import RecommendationService
from portfolio_tracker.storage.memory_store import InMemoryPortfolioStore
from portfolio_tracker.tools.registry import build_tool_services


class _FakeProvider:
    name = "fmp"

    def __init__(self) -> None:
        self.down = False

    def quote(self, ticker: str) -> MarketQuote:
        if self.down:
            raise ProviderError("fmp", "NETWORK", "timeout")
        return MarketQuote(
            symbol=ticker,
            price=Decimal("50"),
            change=Decimal("0"),
            change_percent=Decimal("0"),
            currency="USD",
            retrieved_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
            source="fmp",
        )

    def search(self, query: str) -> list[SearchResult]:
        if self.down:
            raise ProviderError("fmp", "NETWORK", "timeout")
        if query == "unknown":
            return []
        return [SearchResult(name="Microsoft", ticker="MSFT", type="equity", currency="USD", price=Decimal("0"), source="fmp")]


def _client() -> tuple[TestClient, _FakeProvider, ServerMetrics]:
    provider = _FakeProvider()
    ctx = ServiceContext(providers={"fmp": provider}, provider_order=("fmp",))
    services = build_tool_services(ctx, store=InMemoryPortfolioStore(), recommender=RecommendationService(None))
    metrics = ServerMetrics()
    mcp = FastMCP(name="portfolio-routes-test")
    register_api_routes(mcp, services, metrics)
    return TestClient(mcp.sse_app()), provider, metrics


def test_instrument_lifecycle_over_http() -> None:
    client, _provider, metrics = _client()

    created = client.post(
        "/api/instruments",
        json={"name": "Microsoft", "ticker": "msft", "type": "equity", "investedAmount": 1000},
    )
    assert created.status_code == 201
    instrument = created.json()["data"]
    assert instrument["ticker"] == "MSFT"
    assert instrument["current_price"] == 50.0

    duplicate = client.post("/api/instruments", json={"name": "Dup", "ticker": "MSFT", "type": "equity", "investedAmount": 1})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "DUPLICATE_INSTRUMENT"

    listed = client.get("/api/instruments")
    assert [row["id"] for row in listed.json()["data"]] == [instrument["id"]]

    refreshed = client.post("/api/instruments/update-prices")
    assert refreshed.json()["data"]["updated"] == 1

    stats = client.get("/api/portfolio/stats").json()["data"]
    assert stats["total_current_value"] == 1000.0
    assert stats["total_profit_loss"] == 0.0

    assert client.get("/api/portfolio/analysis/latest").status_code == 404
    analysis = client.post("/api/portfolio/analyze")
    assert analysis.status_code == 200
    latest = client.get("/api/portfolio/analysis/latest")
    assert latest.json()["data"]["id"] == analysis.json()["data"]["id"]

    assert client.delete(f"/api/instruments/{instrument['id']}").status_code == 200
    missing = client.delete(f"/api/instruments/{instrument['id']}")
    assert missing.status_code == 404
    assert missing.json() == {"error": {"code": "NOT_FOUND", "message": "Instrument not found."}}

    assert metrics.total_requests >= 10
    assert metrics.error_requests == 3


def test_validation_and_body_errors() -> None:
    client, _provider, _metrics = _client()
    invalid = client.post("/api/instruments", json={"name": "x", "ticker": "X", "type": "stock", "investedAmount": -1})
    assert invalid.status_code == 400
    assert {item["field"] for item in invalid.json()["error"]["details"]} == {"type", "invested_amount"}

    not_json = client.post("/api/instruments", content=b"{oops", headers={"content-type": "application/json"})
    assert not_json.status_code == 400

    assert client.post("/api/instruments/search", json={}).status_code == 400
    assert client.post("/api/portfolio/analyze").json()["error"]["code"] == "EMPTY_PORTFOLIO"


def test_search_status_codes() -> None:
    client, provider, _metrics = _client()
    found = client.post("/api/instruments/search", json={"query": "micro"})
    assert found.status_code == 200
    assert found.json()["data"][0]["ticker"] == "MSFT"

    assert client.post("/api/instruments/search", json={"query": "unknown"}).status_code == 404

    provider.down = True
    unavailable = client.post("/api/instruments/search", json={"query": "micro"})
    assert unavailable.status_code == 502
    assert unavailable.json()["error"]["code"] == "UPSTREAM"
