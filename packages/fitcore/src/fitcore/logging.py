"""
Logging setup for fitness services and workers.

Every module logs through logging.getLogger(__name__) and passes structured
context with extra={...}. setup_logging() installs a single stdout handler
that renders those extra fields, either as one JSON object per line or as
key=value pairs appended to a plain text line.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from fitcore.settings import get_settings

# Attributes every LogRecord has; anything else came in through extra={...}
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


def _extra_fields(record: logging.LogRecord) -> dict:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including extra fields."""

    def __init__(self, service_name: str | None = None):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service_name:
            data["service"] = self.service_name
        data.update(_extra_fields(record))
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Plain text line with extra fields appended as key=value."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extra_fields(record)
        if extras:
            line += " " + " ".join(f"{key}={value}" for key, value in extras.items())
        return line


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure the root logger.

    Safe to call multiple times; the handler installed by a previous call is
    replaced rather than duplicated.
    """
    settings = get_settings()
    level = (level or settings.LOG_LEVEL).upper()
    log_format = log_format or settings.LOG_FORMAT

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "text":
        handler.setFormatter(TextFormatter())
    else:
        handler.setFormatter(JsonFormatter(settings.SERVICE_NAME))
    handler.set_name("fitcore")

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == "fitcore":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # Chatty libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
