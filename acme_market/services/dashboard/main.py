"""FastAPI dashboard reporting queue depth and a synthetic market series kept in Redis."""

import asyncio
import json
import logging
import math
import random
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import redis
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from acme_market.core.config import Settings
from acme_market.core.lifecycle import HealthFlag
from acme_market.core.time_utils import unix_seconds
from acme_market.core.types import Datapoint

REQUEST_ID_HEADER = "X-Request-Id"
_JSON_HEADERS = {"X-Content-Type-Options": "nosniff"}

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("acme_market.http")


class JsonResponse(JSONResponse):
    """JSON response that always advertises its charset."""

    media_type = "application/json; charset=utf-8"


class SyntheticSeries:
    """Random-walk OHLC generator whose seed is the previous tick's close."""

    def __init__(
        self,
        rng: random.Random,
        seed_base: float = 200.0,
        max_step: int = 4,
        seed: float | None = None,
    ) -> None:
        self._rng = rng
        self._max_step = max(0, max_step)
        self.seed = seed if seed is not None else seed_base + rng.random()

    def signed_step(self) -> float:
        """Return a whole-number step in [-max_step, max_step] with a random sign."""

        direction = 1.0 if self._rng.random() > 0.5 else -1.0
        return direction * self._rng.randint(0, self._max_step)

    def next_datapoint(self, timestamp: float) -> Datapoint:
        """Produce the next tick and carry its close forward as the new seed."""

        open_ = self.seed + self.signed_step()
        close = self.seed + self.signed_step()
        wick = open_ + self.signed_step()
        datapoint = Datapoint(
            timestamp=timestamp,
            open=open_,
            close=close,
            high=max(open_, close, wick),
            low=min(open_, close, wick),
        )
        self.seed = close
        return datapoint


@dataclass(slots=True)
class DashboardContext:
    """Everything the dashboard routes and background tasks share."""

    settings: Settings
    client: redis.Redis
    series: SyntheticSeries
    health: HealthFlag = field(default_factory=HealthFlag)


def build_context(
    settings: Settings, client: redis.Redis, rng: random.Random | None = None
) -> DashboardContext:
    """Assemble the per-process dashboard context."""

    series = SyntheticSeries(
        rng=rng or random.Random(),
        seed_base=settings.SERIES_SEED_BASE,
        max_step=settings.SERIES_MAX_STEP,
    )
    return DashboardContext(settings=settings, client=client, series=series)


def next_request_id() -> str:
    return str(time.time_ns())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-Id or mint one, and echo it on the response."""

    def __init__(self, app: ASGIApp, id_factory: Callable[[], str] = next_request_id) -> None:
        super().__init__(app)
        self._id_factory = id_factory

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or self._id_factory()
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Write one structured access log line per request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            client = request.client
            access_logger.info(
                "http_request",
                extra={
                    "request_id": getattr(request.state, "request_id", "unknown"),
                    "method": request.method,
                    "path": request.url.path,
                    "remote_addr": f"{client.host}:{client.port}" if client else "",
                    "user_agent": request.headers.get("user-agent", ""),
                    "status": status_code,
                },
            )


def _decode_datapoint(raw: str | None) -> list[float]:
    if raw is None:
        raise ValueError("histogram buffer is empty")

    values = json.loads(raw, parse_int=float)
    if not isinstance(values, list) or not all(isinstance(value, float) for value in values):
        raise ValueError("histogram entry is not a list of numbers")
    if not all(math.isfinite(value) for value in values):
        raise ValueError("histogram entry holds a non-finite number")
    return values


def _publish_datapoint(client: redis.Redis, settings: Settings, datapoint: Datapoint) -> None:
    payload = json.dumps(datapoint.as_list(), allow_nan=False, separators=(",", ":"))
    client.lpush(settings.HISTOGRAM_KEY, payload)
    client.ltrim(settings.HISTOGRAM_KEY, 0, settings.histogram_trim_stop())


async def run_series_generator(context: DashboardContext, stop_event: asyncio.Event) -> int:
    """Publish one synthetic tick per interval until stop_event is set; return ticks attempted."""

    settings = context.settings
    ticks = 0
    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=settings.TICK_INTERVAL_S)
            break
        except asyncio.TimeoutError:
            pass

        ticks += 1
        datapoint = context.series.next_datapoint(unix_seconds())
        try:
            await asyncio.to_thread(_publish_datapoint, context.client, settings, datapoint)
        except (ValueError, redis.RedisError) as exc:
            logger.warning(
                "series_write_failed",
                extra={"error": str(exc), "datapoint": datapoint.as_list()},
            )
            continue
        logger.debug("series_published", extra={"datapoint": datapoint.as_list()})
    return ticks


def create_app(context: DashboardContext) -> FastAPI:
    """Build the dashboard application around an explicit context."""

    settings = context.settings

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "dashboard_startup",
            extra={"env": settings.ENV, "version": settings.VERSION},
        )
        stop_event = asyncio.Event()
        generator = asyncio.create_task(run_series_generator(context, stop_event))
        try:
            yield
        finally:
            stop_event.set()
            ticks = await generator
            logger.info("dashboard_series_stopped", extra={"ticks": ticks})

    middleware = [
        Middleware(RequestIdMiddleware),
        Middleware(AccessLogMiddleware),
    ]
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
        middleware=middleware,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get("/size")
    def size() -> JsonResponse:
        """Return the number of unsold orders on the queue."""

        try:
            queue_length = int(context.client.llen(settings.QUEUE_KEY))
        except redis.RedisError as exc:
            logger.warning("dashboard_size_read_failed", extra={"error": str(exc)})
            queue_length = 0
        return JsonResponse({"size": queue_length}, headers=_JSON_HEADERS)

    @app.get("/histogram")
    def histogram() -> JsonResponse:
        """Consume and return the oldest buffered synthetic tick."""

        body: Any = None
        try:
            raw = context.client.rpop(settings.HISTOGRAM_KEY)
        except redis.RedisError as exc:
            logger.warning("dashboard_histogram_read_failed", extra={"error": str(exc)})
            return JsonResponse(body, headers=_JSON_HEADERS)

        logger.debug("dashboard_histogram_entry", extra={"entry": raw})
        try:
            body = _decode_datapoint(raw)
        except ValueError as exc:
            logger.warning(
                "dashboard_histogram_decode_failed",
                extra={"entry": raw, "error": str(exc)},
            )
        return JsonResponse(body, headers=_JSON_HEADERS)

    @app.get("/healthz")
    def healthz() -> Response:
        """Report readiness: 204 while serving, 503 once draining."""

        if context.health.is_healthy():
            return Response(status_code=204)
        return Response(status_code=503)

    app.mount("/", StaticFiles(directory=settings.static_dir(), html=True), name="static")
    return app
