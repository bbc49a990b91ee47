"""One-line JSON logs tagged with the emitting service, so the three processes can share stdout sinks."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

_RECORD_FIELDS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}
# uvicorn duplicates its message with ANSI escapes under this key
_DROPPED_FIELDS = frozenset({"color_message"})


def _context_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_FIELDS and key not in _DROPPED_FIELDS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """Render a record as a compact JSON object stamped with the service name."""

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        stamped = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {"timestamp": stamped.isoformat()}
        if self.service:
            payload["service"] = self.service
        payload.update(level=record.levelname, logger=record.name, message=record.getMessage())

        context = _context_fields(record)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=True, separators=(",", ":"), default=str)


def configure_logging(level: str = "INFO", service: str | None = None) -> None:
    """Send every record to stdout as JSON; later calls in the same process are ignored."""

    root = logging.getLogger()
    if getattr(root, "_acme_market_service", None) is not None:
        return

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter(service=service))
    root.handlers[:] = [handler]
    root.setLevel(level.upper())
    root._acme_market_service = service or ""  # type: ignore[attr-defined]
