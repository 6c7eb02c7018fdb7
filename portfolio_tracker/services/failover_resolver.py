"""Ordered failover across independently unreliable market-data providers."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from portfolio_tracker.providers.http import ProviderError
from portfolio_tracker.services.base import AllProvidersFailed, ServiceContext, ServiceResult

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)
FALLBACK_WARNING = "Used fallback provider due to upstream issue."


@dataclass(frozen=True)
class ProviderAttempt(Generic[T]):
    key: str
    label: str
    call: Callable[[], T | None]


def _is_empty(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


class FailoverResolver:
    """Tries attempts in order and returns the first non-empty answer.

    Provider failures never escape: they are logged and folded into the
    returned ``ServiceResult`` as ``AllProvidersFailed`` once every attempt is
    exhausted. A provider answering with a rate-limit error is skipped for the
    context's disable window on later resolutions.
    """

    def __init__(self, ctx: ServiceContext) -> None:
        self._ctx = ctx

    def resolve(self, operation: str, subject: str, attempts: list[ProviderAttempt[T]]) -> ServiceResult[T]:
        had_fallback = False
        last_error: ProviderError | None = None
        attempted: list[str] = []
        skipped: list[str] = []
        status = self._ctx.provider_status

        for attempt in attempts:
            if status.is_disabled(attempt.key):
                had_fallback = True
                skipped.append(attempt.key)
                LOGGER.info(
                    "provider skipped (disabled window): op=%s subject=%s provider=%s disabled_until=%s",
                    operation,
                    subject,
                    attempt.key,
                    status.get_disabled_until(attempt.key),
                )
                continue

            attempted.append(attempt.key)
            started = time.perf_counter()
            try:
                self._ctx.rate_limiter.wait(attempt.key)
                value = attempt.call()
            except ProviderError as error:
                had_fallback = True
                last_error = error
                LOGGER.warning(
                    "provider attempt failed: op=%s subject=%s provider=%s code=%s status=%s latency_ms=%s",
                    operation,
                    subject,
                    attempt.key,
                    error.code,
                    error.status,
                    _elapsed_ms(started),
                )
                if error.code == "RATE_LIMIT" or error.status == 429:
                    disabled_until = status.disable_provider(attempt.key, self._ctx.rate_limit_disable_seconds)
                    LOGGER.warning(
                        "provider disabled after rate limit: provider=%s disabled_until=%s",
                        attempt.key,
                        disabled_until,
                    )
                continue
            except Exception:
                had_fallback = True
                LOGGER.exception(
                    "provider attempt unexpected failure: op=%s subject=%s provider=%s latency_ms=%s",
                    operation,
                    subject,
                    attempt.key,
                    _elapsed_ms(started),
                )
                continue

            empty = _is_empty(value)
            LOGGER.info(
                "provider attempt complete: op=%s subject=%s provider=%s empty=%s latency_ms=%s",
                operation,
                subject,
                attempt.key,
                empty,
                _elapsed_ms(started),
            )
            if empty:
                had_fallback = True
                continue
            return ServiceResult(
                data=value,
                source=attempt.label,
                warning=FALLBACK_WARNING if had_fallback else None,
                fetched_at=time.time(),
            )

        failure = AllProvidersFailed(
            operation=operation,
            subject=subject,
            last_error=last_error,
            attempted=attempted,
            skipped=skipped,
        )
        LOGGER.warning(
            "all providers exhausted: op=%s subject=%s attempted=%s skipped=%s code=%s",
            operation,
            subject,
            ",".join(attempted) or "-",
            ",".join(skipped) or "-",
            failure.code,
        )
        return ServiceResult(data=None, error=failure)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
