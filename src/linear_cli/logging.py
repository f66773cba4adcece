"""Logging for the `linear` command.

Diagnostics are JSON lines on stderr, so stdout carries nothing but command
output (tables, messages or `--json` payloads) and can be piped safely.
The level comes from `log_level` in the config, or DEBUG with `-v`.

Modules attach context through `extra=`: the cache logs entity kinds, names
and file paths, the API client logs fetched entities and the
issues it creates or updates. Those keys end up under `"extra"` in each line.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from linear_cli.errors import LinearError

_RESERVED_LOG_RECORD_ATTRS: set[str] = set(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Values that are not JSON-native (paths, enums, datetimes) are stringified.
    A `LinearError` in `exc_info` also contributes its `kind` as `error_kind`,
    matching the `kind` of the error payload the CLI prints.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_LOG_RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
            error = record.exc_info[1]
            if isinstance(error, LinearError):
                payload["error_kind"] = error.kind

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Install a single stderr JSON handler on the root logger.

    Safe to call more than once; the previous handler is replaced.
    """

    root = logging.getLogger()

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter())

    root.addHandler(handler)
    root.setLevel(level.upper())

    # requests' connection pool is chatty at DEBUG.
    logging.getLogger("urllib3").setLevel(max(root.level, logging.WARNING))
