"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

KNOWN_PROVIDERS = ("yahoo", "alphavantage", "fmp")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for local/stdio and HTTP-hosted modes."""

    app_name: str = "portfolio-tracker"
    app_version: str = "1.0.0"
    transport_mode: str = "auto"
    host: str = "0.0.0.0"
    port: int = 8000
    health_path: str = "/health"
    log_level: str = "INFO"
    provider_order: tuple[str, ...] = KNOWN_PROVIDERS
    yahoo_finance_enabled: bool = True
    alphavantage_api_key: str = "demo"
    fmp_api_key: str | None = None
    request_timeout_seconds: float = 15.0
    provider_min_interval_seconds: float = 0.2
    provider_rate_limit_disable_seconds: int = 60 * 60
    portfolio_data_file: str | None = None
    default_currency: str = "EUR"
    claude_api_key: str | None = None
    claude_model: str = "claude-sonnet-4-5-20250929"
    portfolio_enable_ai: bool = True


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_provider_order(value: str | None) -> tuple[str, ...]:
    if value is None or not value.strip():
        return KNOWN_PROVIDERS
    order: list[str] = []
    for name in value.split(","):
        clean = name.strip().lower()
        if clean in KNOWN_PROVIDERS and clean not in order:
            order.append(clean)
    return tuple(order) or KNOWN_PROVIDERS


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    return Settings(
        app_name=os.getenv("APP_NAME", "portfolio-tracker"),
        transport_mode=os.getenv("TRANSPORT_MODE", "auto").strip().lower(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int(os.getenv("PORT"), 8000),
        health_path=os.getenv("HEALTH_PATH", "/health"),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        provider_order=_as_provider_order(os.getenv("PROVIDER_ORDER")),
        yahoo_finance_enabled=_as_bool(os.getenv("YAHOO_FINANCE_ENABLED"), True),
        alphavantage_api_key=(
            os.getenv("ALPHAVANTAGE_API_KEY")
            or os.getenv("ALPHA_VANTAGE_API_KEY")
            or "demo"
        ),
        fmp_api_key=os.getenv("FMP_API_KEY") or None,
        request_timeout_seconds=_as_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 15.0),
        provider_min_interval_seconds=_as_float(os.getenv("PROVIDER_MIN_INTERVAL_SECONDS"), 0.2),
        provider_rate_limit_disable_seconds=_as_int(os.getenv("PROVIDER_RATE_LIMIT_DISABLE_SECONDS"), 60 * 60),
        portfolio_data_file=os.getenv("PORTFOLIO_DATA_FILE") or None,
        default_currency=os.getenv("DEFAULT_CURRENCY", "EUR").strip().upper() or "EUR",
        claude_api_key=os.getenv("CLAUDE_API_KEY") or os.getenv("ANTHROPIC_API_KEY"),
        claude_model=(
            os.getenv("CLAUDE_MODEL")
            or os.getenv("ANTHROPIC_MODEL")
            or "claude-sonnet-4-5-20250929"
        ),
        portfolio_enable_ai=_as_bool(os.getenv("PORTFOLIO_ENABLE_AI"), True),
    )
