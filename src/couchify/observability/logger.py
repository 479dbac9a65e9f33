"""JSON log lines for couchify.

Each record is written as one JSON object per line so seed runs in a
deployment pipeline can be grepped or shipped to a log aggregator as is::

    {"ts": "2025-07-01T12:00:00.123456+00:00", "level": "INFO",
     "logger": "couchify.seed", "message": "seed complete",
     "op": "seed", "database": "game", "deleted": 1, "updated": 0,
     "added": 2, "duration_ms": 41.7}

Structured fields are passed as ``extra={"extra_fields": {...}}``.  They
go through :func:`~couchify.utils.redact.redact` before being written, so
a server URL with embedded credentials or a ``_users`` document body is
masked even when logged verbatim.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from couchify.utils.redact import redact

# Marks handlers installed by get_logger so repeated calls reuse them.
_HANDLER_FLAG = "_couchify_structured"


class StructuredFormatter(logging.Formatter):
    """Render a :class:`logging.LogRecord` as a single-line JSON object.

    ``ts`` is the record's creation time in UTC.  ``exception`` and
    ``stack_info`` are added when the record carries them.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        fields = getattr(record, "extra_fields", None)
        if fields:
            entry.update(redact(fields))

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


def get_logger(
    name: str = "couchify",
    *,
    level: int | str = logging.DEBUG,
    stream: Any | None = None,
) -> logging.Logger:
    """Return logger *name* with a :class:`StructuredFormatter` handler.

    The handler writes to *stream* (``sys.stderr`` by default) and is
    attached once; later calls return the logger unchanged.  *level* may be
    an ``int`` or a level name in any case.  The logger does not propagate
    to the root logger.
    """
    logger = logging.getLogger(name)
    if any(getattr(h, _HANDLER_FLAG, False) for h in logger.handlers):
        return logger

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(StructuredFormatter())
    setattr(handler, _HANDLER_FLAG, True)
    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False
    return logger
