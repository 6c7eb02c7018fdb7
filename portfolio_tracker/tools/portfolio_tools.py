"""Portfolio-domain MCP tools."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mcp.server.fastmcp import FastMCP

from portfolio_tracker.portfolio.portfolio_service import PortfolioError
from portfolio_tracker.runtime.response import (
    analysis_payload,
    error_response,
    instrument_payload,
    refresh_payload,
    success_response,
    summary_payload,
)

if TYPE_CHECKING:
    from portfolio_tracker.tools.registry import ToolServices


def _portfolio_error(error: PortfolioError) -> str:
    return error_response(error.code, error.message, error.issues)


def register_portfolio_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="List held instruments ordered by invested amount.")
    def list_instruments() -> str:
        rows = [instrument_payload(item) for item in services.portfolio.list_instruments()]
        return success_response({"data": rows})

    @mcp.tool(description="Add an instrument (type: equity, etf, bond or crypto) to the portfolio.")
    def add_instrument(
        name: str,
        ticker: str,
        type: str,
        invested_amount: float,
        currency: str | None = None,
        isin: str | None = None,
        current_price: float | None = None,
    ) -> str:
        draft: dict[str, Any] = {
            "name": name,
            "ticker": ticker,
            "type": type,
            "invested_amount": invested_amount,
            "currency": currency,
            "isin": isin,
            "current_price": current_price,
        }
        try:
            instrument = services.portfolio.add_instrument(draft)
        except PortfolioError as error:
            return _portfolio_error(error)
        return success_response({"data": instrument_payload(instrument)})

    @mcp.tool(description="Remove an instrument from the portfolio by id.")
    def delete_instrument(instrument_id: str) -> str:
        try:
            services.portfolio.delete_instrument(instrument_id)
        except PortfolioError as error:
            return _portfolio_error(error)
        return success_response({"data": {"deleted": instrument_id}})

    @mcp.tool(description="Refresh prices of every held instrument concurrently.")
    async def refresh_prices() -> str:
        outcome = await services.portfolio.refresh_prices()
        return success_response({"data": refresh_payload(outcome)})

    @mcp.tool(description="Return portfolio totals, profit/loss and current value by instrument type.")
    def portfolio_stats() -> str:
        return success_response({"data": summary_payload(services.portfolio.get_summary())})

    @mcp.tool(description="Generate scenarios, a target allocation and instrument suggestions for the portfolio.")
    def analyze_portfolio() -> str:
        try:
            analysis = services.portfolio.analyze()
        except PortfolioError as error:
            return _portfolio_error(error)
        return success_response({"data": analysis_payload(analysis)})
