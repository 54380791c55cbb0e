from __future__ import annotations

import contextvars
import json
import logging
import time
from typing import Any

# Parent of every module logger in this package.
PACKAGE_LOGGER = "dupcheck_core"

_CONFIGURED = False

# Context variables for structured logging
_log_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "dupcheck_log_context", default=None
)


def get_log_context() -> dict[str, Any]:
    """Get the current logging context."""
    ctx = _log_context.get()
    return ctx.copy() if ctx else {}


class LogContext:
    """Context manager adding fields (input files, session ids) to log records."""

    def __init__(self, **kwargs: Any):
        self.kwargs = kwargs
        self.token: contextvars.Token | None = None

    def __enter__(self) -> LogContext:
        current = get_log_context()
        current.update(self.kwargs)
        self.token = _log_context.set(current)
        return self

    def __exit__(self, *args: Any) -> None:
        if self.token is not None:
            _log_context.reset(self.token)


def _format_context(context: dict[str, Any]) -> str:
    return " ".join(f"{key}={json.dumps(value, ensure_ascii=False, default=str)}" for key, value in context.items())


class TextFormatter(logging.Formatter):
    """``time | level | logger | message``, followed by ``[key=value ...]`` when a context is set."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = get_log_context()
        if not context:
            return line
        head, sep, tail = line.partition("\n")
        return f"{head} [{_format_context(context)}]{sep}{tail}"


class JsonFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__()
        self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = get_log_context()
        if context:
            payload["context"] = context

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        return logging.INFO
    return logging._nameToLevel.get(str(level).upper(), logging.INFO)


def configure_logging(*, level: str | int | None = None, fmt: str = "text") -> None:
    """Send ``dupcheck_core`` records at ``level`` and above to stderr.

    The level applies to the package logger only, so other libraries keep
    their own verbosity. A handler is added to the root logger unless one
    is already installed.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logging.getLogger(PACKAGE_LOGGER).setLevel(_resolve_level(level))

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        if fmt.lower() == "json":
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(TextFormatter())
        root.addHandler(handler)

    _CONFIGURED = True


def add_logging_args(parser: Any) -> None:
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Level for dupcheck log messages (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        default="text",
        choices=["text", "json"],
        help="Log line format on stderr (default: text)",
    )
