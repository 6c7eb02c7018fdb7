"""Portfolio reallocation suggestions from the AI provider, with a deterministic fallback."""

from __future__ import annotations

import logging
from typing import Any

from portfolio_tracker.portfolio.models import Recommendation, utc_now
from portfolio_tracker.prompts.portfolio_prompts import build_market_context, build_recommendation_prompt
from portfolio_tracker.providers.anthropic_client import AnthropicClient
from portfolio_tracker.providers.http import ProviderError

LOGGER = logging.getLogger(__name__)

FALLBACK_WEIGHTS = (
    (40, "Core holding with the largest current weight."),
    (35, "Sector diversification."),
    (25, "Risk balancing."),
)
FALLBACK_SUGGESTIONS = [
    {
        "name": "Vanguard FTSE All-World UCITS ETF",
        "ticker": "VWCE",
        "isin": "IE00BK5BQT80",
        "reason": "Low-cost global diversification.",
    },
    {
        "name": "iShares Core MSCI Emerging Markets IMI UCITS ETF",
        "ticker": "EMIM",
        "isin": "IE00BKM4GZ66",
        "reason": "Exposure to emerging markets.",
    },
    {
        "name": "Vanguard ESG Global All Cap UCITS ETF",
        "ticker": "V3AA",
        "isin": "IE00BNG8L278",
        "reason": "Sustainable, ESG-screened equity exposure.",
    },
]


def _dict_rows(value: object) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def generate_fallback_recommendation(snapshot: list[dict[str, Any]]) -> Recommendation:
    distinct_types = {row.get("type") for row in snapshot if row.get("type")}
    diversification = "well diversified" if len(distinct_types) >= 3 else "in need of broader diversification"
    scenarios = [
        {
            "term": "short",
            "description": (
                f"In the short term the portfolio looks {diversification}. "
                "Keep some liquidity available for market opportunities."
            ),
        },
        {
            "term": "medium",
            "description": (
                "Over the medium term, focus on geographic and sector diversification; "
                "global ETFs and growth sectors such as clean technology are worth considering."
            ),
        },
        {
            "term": "long",
            "description": (
                "Over the long term, balance growth and stability, gradually increasing exposure "
                "to emerging markets and ESG investments."
            ),
        },
    ]
    ranked = sorted(snapshot, key=lambda row: float(row.get("current_value") or 0.0), reverse=True)
    allocation = [
        {"asset_id": row.get("id"), "new_percentage": weight, "rationale": rationale}
        for row, (weight, rationale) in zip(ranked, FALLBACK_WEIGHTS)
    ]
    return Recommendation(
        date=utc_now(),
        scenarios=scenarios,
        optimized_allocation=allocation,
        suggested_instruments=[dict(item) for item in FALLBACK_SUGGESTIONS],
        source="fallback",
        portfolio_snapshot=snapshot,
    )


class RecommendationService:
    def __init__(self, client: AnthropicClient | None = None) -> None:
        self.client = client

    def analyze(self, snapshot: list[dict[str, Any]]) -> Recommendation:
        if self.client is None:
            LOGGER.info("ai client not configured, using fallback recommendation")
            return generate_fallback_recommendation(snapshot)
        prompt = build_recommendation_prompt(snapshot, build_market_context())
        try:
            answer = self.client.generate_recommendation(prompt)
        except ProviderError as error:
            LOGGER.warning("ai recommendation failed, using fallback: code=%s status=%s", error.code, error.status)
            return generate_fallback_recommendation(snapshot)
        scenarios = _dict_rows(answer.get("scenarios"))
        allocation = _dict_rows(answer.get("optimizedAllocation") or answer.get("optimized_allocation"))
        suggestions = _dict_rows(answer.get("suggestedInstruments") or answer.get("suggested_instruments"))
        if not (scenarios or allocation or suggestions):
            LOGGER.warning("ai recommendation empty, using fallback")
            return generate_fallback_recommendation(snapshot)
        return Recommendation(
            date=utc_now(),
            scenarios=scenarios,
            optimized_allocation=allocation,
            suggested_instruments=suggestions,
            source="ai",
            portfolio_snapshot=snapshot,
        )
