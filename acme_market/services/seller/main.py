"""Seller service that pushes randomized order batches onto the shared Redis queue."""

import logging
import random
import threading
from typing import Optional

import redis
import typer

from acme_market.core.config import Settings, get_settings
from acme_market.core.lifecycle import install_signal_handlers
from acme_market.core.logging import configure_logging
from acme_market.core.store import connect

_ORDER_VALUE = 1

cli = typer.Typer(add_completion=False, help="Push randomized order batches onto the queue.")


def sell(client: redis.Redis, settings: Settings, rng: random.Random) -> int:
    """Push one randomized batch of orders and record its size in the histogram.

    A failed push aborts the rest of the batch and propagates; nothing is
    written to the histogram for that tick.
    """

    count = rng.randint(0, max(0, settings.SELLER_MAX_BATCH))
    for _ in range(count):
        client.lpush(settings.QUEUE_KEY, _ORDER_VALUE)

    client.lpush(settings.HISTOGRAM_KEY, count)
    client.ltrim(settings.HISTOGRAM_KEY, 0, settings.histogram_trim_stop())
    return count


def _run_loop(
    client: redis.Redis,
    settings: Settings,
    shutdown_event: threading.Event,
    rng: random.Random,
    logger: logging.Logger,
) -> int:
    ticks = 0
    while not shutdown_event.wait(settings.TICK_INTERVAL_S):
        ticks += 1
        try:
            count = sell(client, settings, rng)
        except redis.RedisError as exc:
            logger.warning("seller_sell_failed", extra={"error": str(exc), "tick": ticks})
            continue
        logger.info("seller_sold", extra={"count": count, "tick": ticks})
    return ticks


def main(redis_address: str | None = None) -> int:
    """Run the seller until interrupted; always exits non-zero."""

    settings = get_settings()
    if redis_address:
        settings = settings.model_copy(update={"REDIS_ADDRESS": redis_address})
    configure_logging(settings.LOG_LEVEL, "seller")
    logger = logging.getLogger(__name__)
    shutdown_event = threading.Event()

    try:
        client = connect(settings, logger)
    except ValueError as exc:
        logger.error("seller_invalid_address", extra={"address": settings.REDIS_ADDRESS, "error": str(exc)})
        return 1
    except redis.RedisError as exc:
        logger.error(
            "seller_redis_connect_failed",
            extra={"address": settings.REDIS_ADDRESS, "error": str(exc)},
        )
        return 1

    install_signal_handlers(shutdown_event, logger, "seller")
    logger.info(
        "seller_startup",
        extra={
            "address": settings.REDIS_ADDRESS,
            "queue_key": settings.QUEUE_KEY,
            "histogram_key": settings.HISTOGRAM_KEY,
            "interval_s": settings.TICK_INTERVAL_S,
        },
    )

    try:
        ticks = _run_loop(
            client=client,
            settings=settings,
            shutdown_event=shutdown_event,
            rng=random.Random(),
            logger=logger,
        )
    finally:
        client.close()

    logger.info("seller_shutdown", extra={"ticks": ticks})
    return 1


@cli.command()
def run(
    redis_address: Optional[str] = typer.Option(
        None, "--redis", "-redis", help="Redis host:port to connect to."
    ),
) -> None:
    """Sell a random batch of orders every tick until interrupted."""

    raise typer.Exit(main(redis_address=redis_address))


if __name__ == "__main__":
    cli()
