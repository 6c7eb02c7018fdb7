"""JSON HTTP routes mounted on the FastMCP Starlette app."""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from portfolio_tracker.portfolio.portfolio_service import PortfolioError
from portfolio_tracker.runtime.monitoring import ServerMetrics, log_request_event
from portfolio_tracker.runtime.response import (
    analysis_payload,
    error_body,
    instrument_payload,
    refresh_payload,
    result_payload,
    summary_payload,
)

if TYPE_CHECKING:
    from portfolio_tracker.tools.registry import ToolServices

LOGGER = logging.getLogger(__name__)
SLOW_REQUEST_MS = 2000.0
PORTFOLIO_ERROR_STATUS = {
    "VALIDATION_ERROR": 400,
    "EMPTY_PORTFOLIO": 400,
    "NOT_FOUND": 404,
    "DUPLICATE_INSTRUMENT": 409,
}

Handler = Callable[[Request], Awaitable[Response]]


def _error(code: str, message: str, status_code: int, details: Any = None) -> JSONResponse:
    return JSONResponse(error_body(code, message, details), status_code=status_code)


def _portfolio_error(error: PortfolioError) -> JSONResponse:
    return _error(error.code, error.message, PORTFOLIO_ERROR_STATUS.get(error.code, 400), error.issues)


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as error:
        raise ValueError("Request body must be valid JSON.") from error
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object.")
    return body


def _observed(metrics: ServerMetrics) -> Callable[[Handler], Handler]:
    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(request: Request) -> Response:
            started = time.perf_counter()
            try:
                response = await handler(request)
            except ValueError as error:
                response = _error("VALIDATION_ERROR", str(error), 400)
            except Exception:
                LOGGER.exception("request failed: method=%s path=%s", request.method, request.url.path)
                response = _error("INTERNAL_ERROR", "Request failed.", 500)
            latency_ms = (time.perf_counter() - started) * 1000.0
            log_request_event(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                latency_ms=latency_ms,
                warning="slow_response" if latency_ms > SLOW_REQUEST_MS else None,
            )
            metrics.record(latency_ms=latency_ms, success=response.status_code < 400)
            return response

        return wrapper

    return decorator


def register_api_routes(mcp: FastMCP, services: ToolServices, metrics: ServerMetrics) -> None:
    observed = _observed(metrics)
    portfolio = services.portfolio

    @mcp.custom_route("/api/instruments", methods=["GET"])
    @observed
    async def list_instruments(_: Request) -> Response:
        instruments = await asyncio.to_thread(portfolio.list_instruments)
        return JSONResponse({"data": [instrument_payload(item) for item in instruments]})

    @mcp.custom_route("/api/instruments/search", methods=["POST"])
    @observed
    async def search_instruments(request: Request) -> Response:
        body = await _json_body(request)
        query = body.get("query")
        if not isinstance(query, str):
            raise ValueError("query is required.")
        result = await asyncio.to_thread(services.market_data.search_instruments, query)
        if result.error is not None:
            if result.error.not_found:
                return _error("NOT_FOUND", "No instrument matched the query.", 404)
            return _error("UPSTREAM", "All market data providers are currently unavailable.", 502)
        return JSONResponse(result_payload(result))

    @mcp.custom_route("/api/instruments", methods=["POST"])
    @observed
    async def add_instrument(request: Request) -> Response:
        body = await _json_body(request)
        try:
            instrument = await asyncio.to_thread(portfolio.add_instrument, body)
        except PortfolioError as error:
            return _portfolio_error(error)
        return JSONResponse({"data": instrument_payload(instrument)}, status_code=201)

    @mcp.custom_route("/api/instruments/update-prices", methods=["POST"])
    @observed
    async def update_prices(_: Request) -> Response:
        outcome = await portfolio.refresh_prices()
        return JSONResponse({"data": refresh_payload(outcome)})

    @mcp.custom_route("/api/instruments/{instrument_id}", methods=["DELETE"])
    @observed
    async def delete_instrument(request: Request) -> Response:
        instrument_id = str(request.path_params.get("instrument_id") or "")
        try:
            await asyncio.to_thread(portfolio.delete_instrument, instrument_id)
        except PortfolioError as error:
            return _portfolio_error(error)
        return JSONResponse({"data": {"deleted": instrument_id}})

    @mcp.custom_route("/api/portfolio/stats", methods=["GET"])
    @observed
    async def portfolio_stats(_: Request) -> Response:
        return JSONResponse({"data": summary_payload(await asyncio.to_thread(portfolio.get_summary))})

    @mcp.custom_route("/api/portfolio/analyze", methods=["POST"])
    @observed
    async def analyze_portfolio(_: Request) -> Response:
        try:
            analysis = await asyncio.to_thread(portfolio.analyze)
        except PortfolioError as error:
            return _portfolio_error(error)
        return JSONResponse({"data": analysis_payload(analysis)})

    @mcp.custom_route("/api/portfolio/analysis/latest", methods=["GET"])
    @observed
    async def latest_analysis(_: Request) -> Response:
        analysis = await asyncio.to_thread(portfolio.latest_analysis)
        if analysis is None:
            return _error("NOT_FOUND", "No analysis has been generated yet.", 404)
        return JSONResponse({"data": analysis_payload(analysis)})
