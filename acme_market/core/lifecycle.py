"""Readiness flag and signal wiring used to stop service loops cooperatively."""

import logging
import signal
import threading


class HealthFlag:
    """Process-wide readiness state reported by /healthz."""

    def __init__(self) -> None:
        self._healthy = threading.Event()

    def mark_healthy(self) -> None:
        self._healthy.set()

    def mark_unhealthy(self) -> None:
        self._healthy.clear()

    def is_healthy(self) -> bool:
        return self._healthy.is_set()


def request_shutdown(
    shutdown_event: threading.Event, logger: logging.Logger, service: str, signal_name: str
) -> None:
    """Set the cancellation token once, logging which signal triggered it."""

    if shutdown_event.is_set():
        return
    logger.info(f"{service}_shutdown_signal", extra={"signal": signal_name})
    shutdown_event.set()


def install_signal_handlers(
    shutdown_event: threading.Event, logger: logging.Logger, service: str
) -> None:
    """Route SIGINT and SIGTERM to the given cancellation token."""

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal_name = sig.name
        signal.signal(
            sig,
            lambda *_args, signal_name=signal_name: request_shutdown(
                shutdown_event,
                logger,
                service,
                signal_name,
            ),
        )
