"""Application entrypoint for the portfolio tracker MCP server."""

from __future__ import annotations

import asyncio
import logging
import os

from mcp.server.fastmcp import FastMCP
from starlette.responses import JSONResponse, Response

from portfolio_tracker.api.routes import register_api_routes
from portfolio_tracker.config.settings import Settings, get_settings
from portfolio_tracker.prompts.portfolio_prompts import register_portfolio_prompts
from portfolio_tracker.providers.alpha_vantage import AlphaVantageClient
from portfolio_tracker.providers.anthropic_client import AnthropicClient
from portfolio_tracker.providers.fmp import FmpClient
from portfolio_tracker.providers.yahoo_finance import YahooFinanceClient
from portfolio_tracker.runtime.monitoring import ServerMetrics
from portfolio_tracker.services.base import ServiceContext
from portfolio_tracker.services.recommendation_service import RecommendationService
from portfolio_tracker.storage.memory_store import InMemoryPortfolioStore
from portfolio_tracker.tools.registry import build_tool_services, register_all_tools
from portfolio_tracker.utils.rate_limit import RateLimiterRegistry

LOGGER = logging.getLogger(__name__)


def resolve_transport_mode(configured_mode: str) -> str:
    if configured_mode in {"stdio", "http"}:
        return configured_mode
    if os.getenv("PORT"):
        return "http"
    return "stdio"


def build_service_context(settings: Settings) -> ServiceContext:
    yahoo_client = YahooFinanceClient(settings.request_timeout_seconds) if settings.yahoo_finance_enabled else None
    alpha_vantage_client = (
        AlphaVantageClient(settings.alphavantage_api_key, settings.request_timeout_seconds)
        if settings.alphavantage_api_key
        else None
    )
    fmp_client = FmpClient(settings.fmp_api_key, settings.request_timeout_seconds) if settings.fmp_api_key else None
    return ServiceContext(
        providers={
            "yahoo": yahoo_client,
            "alphavantage": alpha_vantage_client,
            "fmp": fmp_client,
        },
        rate_limiter=RateLimiterRegistry(min_interval_seconds=settings.provider_min_interval_seconds),
        provider_order=settings.provider_order,
        rate_limit_disable_seconds=settings.provider_rate_limit_disable_seconds,
    )


def build_recommender(settings: Settings) -> RecommendationService:
    client = (
        AnthropicClient(settings.claude_api_key, settings.claude_model)
        if settings.claude_api_key and settings.portfolio_enable_ai
        else None
    )
    return RecommendationService(client)


async def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    server_metrics = ServerMetrics()
    service_ctx = build_service_context(settings)
    store = InMemoryPortfolioStore(settings.portfolio_data_file)
    services = build_tool_services(
        service_ctx,
        store=store,
        recommender=build_recommender(settings),
        default_currency=settings.default_currency,
    )
    mcp = FastMCP(name=settings.app_name, host=settings.host, port=settings.port)
    register_all_tools(mcp, services)
    register_portfolio_prompts(mcp)
    register_api_routes(mcp, services, server_metrics)
    resolved_mode = resolve_transport_mode(settings.transport_mode)

    @mcp.custom_route(settings.health_path, methods=["GET"])
    async def health_check(_: object) -> Response:
        health = server_metrics.snapshot(service_ctx.provider_status.snapshot())
        return JSONResponse(
            {
                "status": "ok",
                "service": settings.app_name,
                "version": settings.app_version,
                "mode": resolved_mode,
                "providers": [key for key, _client in services.market_data.configured_providers()],
                "uptime_seconds": round(health.uptime_seconds, 3),
                "total_requests": health.total_requests,
                "error_rate": health.error_rate,
                "avg_latency_ms": health.avg_latency_ms,
                "disabled_providers": health.provider_status,
            }
        )

    LOGGER.info(
        "starting server: mode=%s providers=%s store=%s ai=%s",
        resolved_mode,
        ",".join(key for key, _client in services.market_data.configured_providers()) or "-",
        settings.portfolio_data_file or "memory",
        services.portfolio.recommender.client is not None,
    )
    if not services.market_data.configured_providers():
        LOGGER.warning("no market data providers configured; set YAHOO_FINANCE_ENABLED, ALPHAVANTAGE_API_KEY or FMP_API_KEY")
    if resolved_mode == "stdio":
        await mcp.run_stdio_async()
    else:
        await mcp.run_sse_async()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
