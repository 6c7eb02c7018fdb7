"""Instrument search and quote tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

from portfolio_tracker.runtime.response import error_response, result_payload, success_response
from portfolio_tracker.services.base import envelope_from_failure

if TYPE_CHECKING:
    from portfolio_tracker.tools.registry import ToolServices

GENERIC_PROVIDER_ERROR = "All market data providers are currently unavailable. Please try again later."


def register_instrument_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="Search instruments by name, ticker or ISIN across the configured market data providers.")
    def search_instruments(query: str) -> str:
        result = services.market_data.search_instruments(query)
        if result.error is not None:
            envelope = envelope_from_failure(result.error)
            return error_response(envelope.code, envelope.message)
        if not result.data:
            return error_response("UPSTREAM", GENERIC_PROVIDER_ERROR)
        return success_response(result_payload(result))

    @mcp.tool(description="Get the latest price, change and change percent for a ticker.")
    def get_instrument_quote(ticker: str) -> str:
        result = services.market_data.get_quote(ticker)
        if result.error is not None:
            envelope = envelope_from_failure(result.error)
            return error_response(envelope.code, envelope.message)
        if result.data is None:
            return error_response("UPSTREAM", GENERIC_PROVIDER_ERROR)
        return success_response(result_payload(result))
