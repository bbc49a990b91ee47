"""Shared fixtures for the service tests."""

import logging
import signal
from collections.abc import Iterator

import pytest

from acme_market.core.config import Settings, get_settings
from tests.fakes.fake_redis import FakeRedis


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def settings() -> Settings:
    return Settings(TICK_INTERVAL_S=0.0, LOG_LEVEL="DEBUG")


@pytest.fixture
def restore_exit_signals() -> Iterator[None]:
    """Put SIGINT/SIGTERM handlers back after a test installs its own."""

    previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    yield
    for sig, handler in previous.items():
        signal.signal(sig, handler)


@pytest.fixture
def fast_ticks(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Make get_settings() hand the services a short tick interval."""

    monkeypatch.setenv("TICK_INTERVAL_S", "0.01")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def pristine_root_logger() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    root.__dict__.pop("_acme_market_service", None)
