"""JSON logging for the ingestion service and its audit trail."""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

AUDIT_LOGGER_NAME = "pdfquiz.ingest.audit"
APP_LOG_FILE = "pdfquiz.log"
AUDIT_LOG_FILE = "ingest_audit.log"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


class MinimalJSONFormatter(logging.Formatter):
    """Render one JSON object per record.

    Telemetry events are logged as dicts (``step``, ``namespace``,
    ``duration_ms``, ``details``, ``exc``) and are merged in at the top level;
    plain string messages land under ``message``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
        }

        if isinstance(record.msg, dict):
            entry.update(record.msg)
        else:
            entry["message"] = record.getMessage()

        # log_event already stores a formatted traceback under "exc".
        if record.exc_info and "exc" not in entry:
            entry["exc"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_"):
                entry.setdefault(key, value)

        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(log_dir: str | Path | None = None, level: str | None = None) -> None:
    """Install JSON handlers: stderr and a rotating app log, plus the ingest audit file.

    ``log_dir`` and ``level`` default to ``LOG_DIR`` (``logs``) and
    ``LOG_LEVEL`` (``INFO``).
    """

    log_dir = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": MinimalJSONFormatter}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                },
                "app_file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "filename": str(log_dir / APP_LOG_FILE),
                    "maxBytes": 5 * 1024 * 1024,
                    "backupCount": 3,
                    "encoding": "utf-8",
                    "formatter": "json",
                },
                "ingest_audit": {
                    "class": "logging.FileHandler",
                    "filename": str(log_dir / AUDIT_LOG_FILE),
                    "mode": "a",
                    "encoding": "utf-8",
                    "formatter": "json",
                },
            },
            "root": {"level": level, "handlers": ["console", "app_file"]},
            "loggers": {
                AUDIT_LOGGER_NAME: {
                    "level": "INFO",
                    "handlers": ["ingest_audit"],
                    "propagate": False,
                },
                # Chroma and HTTP clients are chatty at INFO.
                "chromadb": {"level": "WARNING"},
                "httpx": {"level": "WARNING"},
            },
        }
    )


__all__ = ["AUDIT_LOGGER_NAME", "MinimalJSONFormatter", "configure_logging"]
