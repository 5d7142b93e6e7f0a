"""Structured logging configuration for the re-signing service.

Driven by :class:`resigner.config.Settings`, so ``RS_LOG_FORMAT`` and
``RS_LOG_LEVEL`` may come from the environment or from ``.env``:

    RS_LOG_FORMAT  -- ``json`` for structured JSON output, ``text`` for human-readable (default).
    RS_LOG_LEVEL   -- Python log level name (default: ``INFO``).

Configured secret values are masked by :class:`SecretRedactionFilter`
before any handler sees a record.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from resigner.config import Settings

REDACTED = "[REDACTED]"

_STRUCTURED_FIELDS = (
    "request_id",
    "path",
    "method",
    "status_code",
    "duration_ms",
    "event_category",
    "action",
    "reason",
)


class StructuredJsonFormatter(logging.Formatter):
    """JSON formatter that emits one JSON object per log line.

    Request fields (request_id, path, method, status_code, duration_ms) and
    audit fields (event_category, action, reason) are carried through when
    present on the LogRecord.
    """

    def __init__(self) -> None:
        super().__init__()
        from pythonjsonlogger.json import JsonFormatter

        self._inner = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        extras: dict[str, Any] = {
            key: getattr(record, key)
            for key in _STRUCTURED_FIELDS
            if getattr(record, key, None) is not None
        }

        if record.exc_info and record.exc_info[1] is not None:
            extras["traceback"] = traceback.format_exception(*record.exc_info)
            # Keep the inner formatter from appending free-form traceback text.
            record.exc_info = None
            record.exc_text = None

        for k, v in extras.items():
            setattr(record, k, v)

        return self._inner.format(record)


class SecretRedactionFilter(logging.Filter):
    """Masks known secret values in a record's rendered message."""

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__()
        self._secrets = tuple(s for s in secrets if s)

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if not self._secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self._secrets:
            redacted = redacted.replace(secret, REDACTED)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


def setup_logging(settings: Settings | None = None) -> None:
    """Configure the root logger from ``settings`` (the module singleton by default)."""
    if settings is None:
        from resigner.config import settings as default_settings

        settings = default_settings

    level = logging.getLevelName(settings.log_level)
    root = logging.getLogger()
    root.setLevel(level)

    # Drop existing handlers so tests don't double-log.
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.addFilter(
        SecretRedactionFilter(
            [
                settings.bot_token.get_secret_value(),
                settings.client_secret.get_secret_value(),
            ]
        )
    )

    if settings.log_format == "json":
        handler.setFormatter(StructuredJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))

    root.addHandler(handler)


def log_startup_info(settings: Settings) -> None:
    """Emit a startup log line. Reports secret presence, never values."""
    import resigner

    logging.getLogger("resigner").info(
        "Re-signer started",
        extra={
            "version": resigner.__version__,
            "secrets_status": "configured" if settings.secrets_configured else "missing",
            "log_format": settings.log_format,
            "metrics_enabled": settings.metrics_enabled,
        },
    )
