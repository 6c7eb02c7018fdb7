"""Tool service wiring."""

from __future__ import annotations

from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP

from portfolio_tracker.portfolio.portfolio_service import PortfolioService
from portfolio_tracker.services.base import ServiceContext
from portfolio_tracker.services.market_data_service import MarketDataService
from portfolio_tracker.services.price_refresher import BulkPriceRefresher
from portfolio_tracker.services.recommendation_service import RecommendationService
from portfolio_tracker.storage.memory_store import PortfolioStore
from portfolio_tracker.tools.instrument_tools import register_instrument_tools
from portfolio_tracker.tools.portfolio_tools import register_portfolio_tools


@dataclass
class ToolServices:
    market_data: MarketDataService
    portfolio: PortfolioService


def build_tool_services(
    ctx: ServiceContext,
    store: PortfolioStore,
    recommender: RecommendationService,
    default_currency: str = "EUR",
) -> ToolServices:
    market_data = MarketDataService(ctx)
    portfolio = PortfolioService(
        store=store,
        market_data=market_data,
        recommender=recommender,
        refresher=BulkPriceRefresher(market_data),
        default_currency=default_currency,
    )
    return ToolServices(market_data=market_data, portfolio=portfolio)


def register_all_tools(mcp: FastMCP, services: ToolServices) -> None:
    register_instrument_tools(mcp, services)
    register_portfolio_tools(mcp, services)
