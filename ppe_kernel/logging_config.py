"""
Structured JSON logging for the PPE kernel.

Every record under the ``ppe_kernel`` logger is written as one JSON object
per line.  ``LogContext`` carries the employee being served and the
interactive session id so that engine, ledger and audit records from one
issuance can be correlated without threading the values through every call.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
from contextvars import ContextVar, Token
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "ppe_kernel"


# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


class LogContext:
    """Context-local fields merged into every record."""

    _vars: dict[str, ContextVar[str | None]] = {
        "employee_code": ContextVar("log_employee_code", default=None),
        "session_id": ContextVar("log_session_id", default=None),
    }

    @classmethod
    def set(
        cls,
        *,
        employee_code: str | None = None,
        session_id: str | None = None,
    ) -> None:
        """Set context fields. None leaves a field unchanged."""
        for name, value in (("employee_code", employee_code), ("session_id", session_id)):
            if value is not None:
                cls._vars[name].set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in cls._vars.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    def bind(cls, **fields: str | None) -> "_BoundContext":
        """Set fields for the duration of a ``with`` block."""
        return _BoundContext(fields)


class _BoundContext:

    def __init__(self, fields: dict[str, str | None]):
        self._fields = fields
        self._tokens: list[tuple[ContextVar[str | None], Token]] = []

    def __enter__(self) -> type[LogContext]:
        for name, value in self._fields.items():
            if value is None:
                continue
            var = LogContext._vars[name]
            self._tokens.append((var, var.set(value)))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        # UUIDs, enums and anything else readable as text
        return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            code = getattr(exc, "code", None)
            if code is not None:
                payload["exc_code"] = code
            # PpeKernelError subclasses keep their context as public attributes
            payload.update(
                (f"exc_{key}", value)
                for key, value in vars(exc).items()
                if not key.startswith("_")
            )
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_configured = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ppe_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler (stderr unless one is given) to the ppe_kernel
    logger.  Only the first call has any effect.
    """
    global _configured
    if _configured:
        return
    _configured = True

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False

    handler = handler or logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(handler)


def reset_logging() -> None:
    """Undo configure_logging. For tests."""
    global _configured
    _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
    kernel_logger.propagate = True
