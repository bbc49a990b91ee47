"""Module entrypoint for running the dashboard with readiness-aware graceful shutdown."""

import logging
import signal
import socket
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType
from typing import Optional

import redis
import typer
import uvicorn

from acme_market.core.config import get_settings
from acme_market.core.lifecycle import HealthFlag
from acme_market.core.logging import configure_logging
from acme_market.core.store import connect
from acme_market.services.dashboard.main import build_context, create_app

_EXIT_SIGNALS = (signal.SIGINT, signal.SIGTERM)

logger = logging.getLogger("acme_market.services.dashboard")

cli = typer.Typer(add_completion=False, help="Serve the queue dashboard.")


class DashboardServer(uvicorn.Server):
    """Uvicorn server that drives the health flag from its own lifecycle."""

    def __init__(self, config: uvicorn.Config, health: HealthFlag) -> None:
        super().__init__(config)
        self.health = health

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        await super().startup(sockets=sockets)
        if self.should_exit:
            return
        self.health.mark_healthy()
        logger.info(
            "dashboard_ready",
            extra={"host": self.config.host, "port": self.config.port},
        )

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        if self.health.is_healthy():
            logger.info("dashboard_draining", extra={"signal": sig})
        self.health.mark_unhealthy()
        super().handle_exit(sig, frame)

    @contextmanager
    def capture_signals(self) -> Iterator[None]:
        """Route SIGINT and SIGTERM to handle_exit while serving; captured signals are not re-raised."""

        if threading.current_thread() is not threading.main_thread():
            yield
            return

        previous = {sig: signal.signal(sig, self.handle_exit) for sig in _EXIT_SIGNALS}
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)


def main(redis_address: str | None = None, binding: str | None = None) -> int:
    """Serve the dashboard until interrupted, draining in-flight requests first."""

    settings = get_settings()
    overrides = {}
    if redis_address:
        overrides["REDIS_ADDRESS"] = redis_address
    if binding:
        overrides["BINDING"] = binding
    if overrides:
        settings = settings.model_copy(update=overrides)
    configure_logging(settings.LOG_LEVEL, "dashboard")

    try:
        host, port = settings.binding_endpoint()
        client = connect(settings, logger)
    except ValueError as exc:
        logger.error(
            "dashboard_invalid_address",
            extra={"redis": settings.REDIS_ADDRESS, "binding": settings.BINDING, "error": str(exc)},
        )
        return 1
    except redis.RedisError as exc:
        logger.error(
            "dashboard_redis_connect_failed",
            extra={"address": settings.REDIS_ADDRESS, "error": str(exc)},
        )
        return 1

    context = build_context(settings, client)
    config = uvicorn.Config(
        create_app(context),
        host=host,
        port=port,
        log_config=None,
        access_log=False,
        timeout_keep_alive=settings.HTTP_IDLE_TIMEOUT_S,
        timeout_graceful_shutdown=settings.SHUTDOWN_GRACE_S,
    )
    server = DashboardServer(config, health=context.health)
    logger.info("dashboard_starting", extra={"binding": f"{host}:{port}"})

    try:
        server.run()
    finally:
        client.close()

    logger.info("dashboard_stopped")
    return 0


@cli.command()
def run(
    redis_address: Optional[str] = typer.Option(
        None, "--redis", "-redis", help="Redis host:port to connect to."
    ),
    binding: Optional[str] = typer.Option(
        None, "--binding", "-binding", help="host:port the HTTP server listens on."
    ),
) -> None:
    """Serve /size, /histogram, /healthz and the gauge page."""

    raise typer.Exit(main(redis_address=redis_address, binding=binding))


if __name__ == "__main__":
    cli()
