"""Buyer service that takes one order off the shared Redis queue per tick."""

import logging
import threading
from typing import Optional

import redis
import typer

from acme_market.core.config import Settings, get_settings
from acme_market.core.lifecycle import install_signal_handlers
from acme_market.core.logging import configure_logging
from acme_market.core.store import connect

cli = typer.Typer(add_completion=False, help="Pop one order off the queue every tick.")


def buy(client: redis.Redis, settings: Settings) -> str | None:
    """Pop the most recently sold order, or return None when the queue is empty."""

    return client.lpop(settings.QUEUE_KEY)


def _buy_once(client: redis.Redis, settings: Settings, logger: logging.Logger) -> bool:
    try:
        order = buy(client, settings)
    except redis.RedisError as exc:
        logger.info("buyer_nothing_to_buy", extra={"error": str(exc)})
        return False

    if order is None:
        logger.info("buyer_nothing_to_buy")
        return False

    logger.info("buyer_bought", extra={"order": order})
    return True


def _run_loop(
    client: redis.Redis,
    settings: Settings,
    shutdown_event: threading.Event,
    logger: logging.Logger,
) -> tuple[int, int]:
    ticks = 0
    bought = 0
    while not shutdown_event.wait(settings.TICK_INTERVAL_S):
        ticks += 1
        if _buy_once(client, settings, logger):
            bought += 1
    return ticks, bought


def main(redis_address: str | None = None) -> int:
    """Run the buyer until interrupted; always exits non-zero."""

    settings = get_settings()
    if redis_address:
        settings = settings.model_copy(update={"REDIS_ADDRESS": redis_address})
    configure_logging(settings.LOG_LEVEL, "buyer")
    logger = logging.getLogger(__name__)
    shutdown_event = threading.Event()

    try:
        client = connect(settings, logger)
    except ValueError as exc:
        logger.error("buyer_invalid_address", extra={"address": settings.REDIS_ADDRESS, "error": str(exc)})
        return 1
    except redis.RedisError as exc:
        logger.error(
            "buyer_redis_connect_failed",
            extra={"address": settings.REDIS_ADDRESS, "error": str(exc)},
        )
        return 1

    install_signal_handlers(shutdown_event, logger, "buyer")
    logger.info(
        "buyer_startup",
        extra={
            "address": settings.REDIS_ADDRESS,
            "queue_key": settings.QUEUE_KEY,
            "interval_s": settings.TICK_INTERVAL_S,
        },
    )

    try:
        ticks, bought = _run_loop(
            client=client,
            settings=settings,
            shutdown_event=shutdown_event,
            logger=logger,
        )
    finally:
        client.close()

    logger.info("buyer_shutdown", extra={"ticks": ticks, "bought": bought})
    return 1


@cli.command()
def run(
    redis_address: Optional[str] = typer.Option(
        None, "--redis", "-redis", help="Redis host:port to connect to."
    ),
) -> None:
    """Buy one order every tick until interrupted."""

    raise typer.Exit(main(redis_address=redis_address))


if __name__ == "__main__":
    cli()
