"""Readiness flag and signal-driven cancellation."""

import logging
import signal
import threading

import pytest

from acme_market.core.lifecycle import HealthFlag, install_signal_handlers, request_shutdown


def test_health_flag_starts_unhealthy_and_toggles() -> None:
    health = HealthFlag()
    assert not health.is_healthy()

    health.mark_healthy()
    assert health.is_healthy()

    health.mark_unhealthy()
    assert not health.is_healthy()


def test_request_shutdown_logs_only_the_first_signal(caplog: pytest.LogCaptureFixture) -> None:
    shutdown_event = threading.Event()
    logger = logging.getLogger("test.lifecycle")

    with caplog.at_level(logging.INFO, logger="test.lifecycle"):
        request_shutdown(shutdown_event, logger, "seller", "SIGTERM")
        request_shutdown(shutdown_event, logger, "seller", "SIGINT")

    assert shutdown_event.is_set()
    [record] = caplog.records
    assert record.getMessage() == "seller_shutdown_signal"
    assert record.signal == "SIGTERM"


@pytest.mark.usefixtures("restore_exit_signals")
@pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGINT])
def test_exit_signals_set_the_cancellation_token(sig: signal.Signals, caplog: pytest.LogCaptureFixture) -> None:
    shutdown_event = threading.Event()
    logger = logging.getLogger("test.lifecycle")
    install_signal_handlers(shutdown_event, logger, "buyer")

    with caplog.at_level(logging.INFO, logger="test.lifecycle"):
        signal.raise_signal(sig)
        signal.raise_signal(signal.SIGTERM)

    assert shutdown_event.is_set()
    messages = [record.getMessage() for record in caplog.records]
    assert messages == ["buyer_shutdown_signal"]
    assert caplog.records[0].signal == sig.name
