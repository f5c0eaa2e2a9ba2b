"""Logging setup: one JSON line per record on stdout."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional

STRUCTURED_EXTRAS = ("inspection_id", "property_id", "photo_id", "room")


class JsonFormatter(logging.Formatter):
    """
    Minimal JSON formatter.
    Includes level, message, logger, timestamp, exception and any structured extras.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for k in STRUCTURED_EXTRAS:
            if hasattr(record, k):
                payload[k] = str(getattr(record, k))

        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: Optional[str] = None) -> None:
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(level)

    # Clear existing handlers (important for uvicorn reload)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel((os.getenv("SQL_LOG_LEVEL") or "WARNING").upper())
    # Pillow logs every plugin import at DEBUG
    logging.getLogger("PIL").setLevel(logging.INFO)
