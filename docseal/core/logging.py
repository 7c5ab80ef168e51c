"""Logging configuration for docseal.

Two output modes, chosen by LOG_JSON:

  _ContainerFormatter: one human-readable line per record for local
    development.  WARNING and above carry [file:line].

  _JsonFormatter: JSON Lines for log aggregation.  Context fields that
    the request middleware or the workflows attach via ``extra=`` (request
    id, letter id, signer id, ...) become top-level keys.

SECRET KEYS NEVER REACH A HANDLER
----------------------------------
Signer secret keys are bearer credentials.  The services never pass them
to a logger, and _SecretKeyRedactionFilter masks anything shaped like one
(``SK-XXXXXXXX-XXXXXXXXXXXXXXXX``) in case a caller interpolates a request
body into a message.
"""

from __future__ import annotations

import json
import logging
import re
import sys

_SECRET_KEY_RE = re.compile(r"SK-[0-9A-F]{8}-[0-9A-F]{16}", re.IGNORECASE)
_REDACTED = "SK-********-****************"


class _SecretKeyRedactionFilter(logging.Filter):
    """Rewrite the rendered message with secret keys masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if _SECRET_KEY_RE.search(message):
            record.msg = _SECRET_KEY_RE.sub(_REDACTED, message)
            record.args = None
        return True


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout."""

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter.  One object per record."""

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "client_ip",
        "status_code",
        "duration_ms",
        "letter_id",
        "signer_id",
        "event_id",
        "claim_id",
        "document_id",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger: one stdout handler, redaction, quiet deps.

    Args:
        level_name: debug/info/warning/error; unknown names fall back to info.
        json_format: emit JSON lines instead of the container format.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())
    handler.addFilter(_SecretKeyRedactionFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "sqlalchemy.engine",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
