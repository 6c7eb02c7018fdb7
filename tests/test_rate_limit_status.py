from types import SimpleNamespace

from portfolio_tracker.services.provider_status import ProviderStatus
from portfolio_tracker.utils import rate_limit
from portfolio_tracker.utils.rate_limit import RateLimiterRegistry


def test_disabled_limiter_never_waits() -> None:
    limiter = RateLimiterRegistry(0.0)
    assert limiter.wait("yahoo") == 0.0
    assert limiter.wait("yahoo") == 0.0


def test_limiter_spaces_calls_per_provider(monkeypatch) -> None:
    slept: list[float] = []
    monkeypatch.setattr(rate_limit, "time", SimpleNamespace(monotonic=lambda: 100.0, sleep=slept.append))
    limiter = RateLimiterRegistry(0.5)
    assert limiter.wait("yahoo") == 0.0
    assert limiter.wait("yahoo") == 0.5
    assert limiter.wait("fmp") == 0.0
    assert slept == [0.5]


def test_provider_status_window_expires() -> None:
    now = [0.0]
    status = ProviderStatus(clock=lambda: now[0])
    status.disable_provider("alphavantage", 30)
    assert status.snapshot() == {"alphavantage": 30.0}
    now[0] = 31.0
    assert status.is_disabled("alphavantage") is False
    assert status.snapshot() == {}
