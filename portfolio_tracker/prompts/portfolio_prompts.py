"""Portfolio prompt definitions."""

from __future__ import annotations

import json
from datetime import date
from typing import Any

from mcp.server.fastmcp import FastMCP

RESPONSE_SHAPE = {
    "scenarios": [{"term": "short|medium|long", "description": "string"}],
    "optimizedAllocation": [{"asset_id": "string", "new_percentage": 0, "rationale": "string"}],
    "suggestedInstruments": [{"name": "string", "ticker": "string", "isin": "string", "reason": "string"}],
}


def build_market_context(today: date | None = None) -> str:
    day = (today or date.today()).isoformat()
    return (
        f"Market context as of {day}: equity markets with moderate volatility, "
        "rates elevated in developed economies, continued interest in technology and sustainability themes."
    )


def build_recommendation_prompt(snapshot: list[dict[str, Any]], market_context: str) -> str:
    return (
        "Analyze the following portfolio and propose a reallocation.\n"
        f"{market_context}\n"
        f"Portfolio (one row per holding, percentages of current value):\n{json.dumps(snapshot, ensure_ascii=True)}\n"
        "Provide short, medium and long term scenarios, new target percentages for existing holdings "
        "(asset_id must be the holding id) and up to three new instruments to consider.\n"
        f"Respond with JSON shaped exactly like: {json.dumps(RESPONSE_SHAPE)}"
    )


def _build_rebalance_prompt(tickers: str) -> str:
    holdings = [item.strip().upper() for item in tickers.split(",") if item.strip()]
    if not holdings:
        raise ValueError("Missing required argument: tickers.")
    return (
        "You are a portfolio allocation assistant.\n"
        f"The portfolio holds: {', '.join(holdings)}.\n"
        "1) Call portfolio_stats for totals and allocation by type\n"
        "2) Call refresh_prices first if prices look stale\n"
        "3) Point out concentration by instrument type\n"
        "4) Suggest a rebalancing plan with target percentages."
    )


def register_portfolio_prompts(mcp: FastMCP) -> None:
    @mcp.prompt(
        name="portfolio_rebalance",
        title="Portfolio Rebalance Prompt",
        description="Generate a structured rebalancing prompt for a comma-separated list of tickers.",
    )
    def portfolio_rebalance(tickers: str) -> str:
        return _build_rebalance_prompt(tickers)
