"""Anthropic Messages client returning structured portfolio recommendations."""

from __future__ import annotations

import json
from typing import Any

import requests

from portfolio_tracker.providers.http import ProviderError

SYSTEM_PROMPT = (
    "You are a financial advisor specialised in portfolio allocation and risk management. "
    "Answer with a single valid JSON object and nothing else."
)


def extract_json_object(text: str) -> dict[str, Any] | None:
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        return None
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


class AnthropicClient:
    def __init__(self, api_key: str, model: str, timeout_seconds: float = 30.0) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.base_url = "https://api.anthropic.com/v1/messages"

    def generate_recommendation(self, prompt: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": 1500,
            "temperature": 0.7,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }
        try:
            response = requests.post(
                self.base_url,
                timeout=self.timeout_seconds,
                headers=headers,
                data=json.dumps(payload),
            )
        except requests.RequestException as error:
            raise ProviderError("anthropic", "NETWORK", f"Anthropic request failed: {error}") from error
        if response.status_code == 429:
            raise ProviderError("anthropic", "RATE_LIMIT", "Anthropic rate limit reached.", response.status_code)
        if not response.ok:
            raise ProviderError(
                "anthropic",
                "NETWORK",
                f"Anthropic request failed with status {response.status_code}.",
                response.status_code,
            )
        try:
            data = response.json()
        except ValueError as error:
            raise ProviderError(
                "anthropic", "MALFORMED", "Anthropic returned non-JSON response.", response.status_code
            ) from error
        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, list):
            raise ProviderError("anthropic", "MALFORMED", "Anthropic response has no content blocks.")
        texts = [item.get("text") for item in content if isinstance(item, dict) and isinstance(item.get("text"), str)]
        parsed = extract_json_object("\n".join(texts))
        if parsed is None:
            raise ProviderError("anthropic", "MALFORMED", "Anthropic answer is not a JSON object.")
        return parsed
