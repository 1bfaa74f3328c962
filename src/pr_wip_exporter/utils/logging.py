"""Structured logging configuration with token redaction.

Every entry passes through ``secret_sanitizer`` before rendering, so a token
echoed back by GitHub in an error body never reaches the log output. Entries
are rendered as JSON lines (default) or coloured console text on stderr;
stdout is left to the plain-text report printer.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, MutableMapping
from enum import StrEnum
from pathlib import Path
from typing import Any, cast

import structlog
from structlog.typing import Processor, WrappedLogger

from pr_wip_exporter.utils.security import SecretRedactor

SERVICE_NAME = "pr-wip-exporter"

# Libraries whose records are routed through our handlers
ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx")


class LogFormat(StrEnum):
    """Log output format options."""

    JSON = "json"
    CONSOLE = "console"


class LogLevel(StrEnum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_redactor = SecretRedactor()


def sanitize_log_value(value: Any) -> Any:
    """Recursively redact secrets from a log value.

    Strings are redacted, dicts, lists and tuples are walked, and anything
    else is returned unchanged.
    """
    if isinstance(value, str):
        return _redactor.redact(value)
    if isinstance(value, dict):
        return {k: sanitize_log_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(sanitize_log_value(v) for v in value)
    return value


def secret_sanitizer(
    logger: WrappedLogger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor that redacts secrets from every field."""
    return cast(MutableMapping[str, Any], sanitize_log_value(event_dict))


def add_context_processor(
    logger: WrappedLogger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Stamp ``service`` and ``version`` on every entry."""
    from pr_wip_exporter._version import __version__

    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def _renderer(log_format: LogFormat) -> Processor:
    if log_format == LogFormat.CONSOLE:
        return structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    return structlog.processors.JSONRenderer()


def _file_handler(file_path: Path) -> logging.Handler | None:
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(file_path)
    except OSError:
        return None


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    log_format: LogFormat | str = LogFormat.JSON,
    file_path: Path | str | None = None,
    file_enabled: bool = False,
    secrets: Iterable[str] = (),
) -> None:
    """Configure structured logging for the application.

    Safe to call more than once; the last call wins. ``__main__`` calls it
    first with CLI defaults and again once the configuration is loaded.

    Args:
        level: Log level name, case-insensitive
        log_format: ``json`` or ``console``
        file_path: Log file, used only when ``file_enabled`` is set
        file_enabled: Also write entries to ``file_path``
        secrets: Literal values to redact in addition to known token shapes,
            normally the configured GitHub token

    Example:
        configure_logging(level="DEBUG", log_format="console")
    """
    global _redactor
    _redactor = SecretRedactor(known_secrets=secrets)

    level = LogLevel(str(level).upper())
    log_format = LogFormat(str(log_format).lower())
    numeric_level = getattr(logging, level.value)

    processors: list[Processor] = [
        add_context_processor,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        secret_sanitizer,
        structlog.processors.UnicodeDecoder(),
        _renderer(log_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = Path(file_path) if file_enabled and file_path else None
    file_handler = _file_handler(log_file) if log_file else None
    if file_handler:
        handlers.append(file_handler)
    for handler in handlers:
        handler.setLevel(numeric_level)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=handlers,
        force=True,
    )

    for name in ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers.clear()
        routed.propagate = True
    # httpx logs every request at INFO; keep that for DEBUG only
    logging.getLogger("httpx").setLevel(
        logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    )

    if log_file and file_handler is None:
        structlog.get_logger(__name__).warning("log_file_unavailable", path=str(log_file))


def get_logger(name: str | None = None) -> WrappedLogger:
    """Get a structured logger instance."""
    return cast(WrappedLogger, structlog.get_logger(name))


class LogEventNames:
    """Event names shared across modules."""

    # Exporter lifecycle
    EXPORTER_STARTING = "exporter_starting"
    EXPORTER_STARTED = "exporter_started"
    EXPORTER_STOPPING = "exporter_stopping"
    EXPORTER_STOPPED = "exporter_stopped"

    # Refresh cycle
    REFRESH_STARTED = "refresh_started"
    REFRESH_COMPLETE = "refresh_complete"
    REFRESH_CYCLE_ERROR = "refresh_cycle_error"
    SCHEDULER_STOPPED = "scheduler_stopped"

    # Upstream
    FETCH_PAGE = "pull_request_page_fetched"
    FETCH_FAILED = "pull_request_fetch_failed"
    REVIEWS_TRUNCATED = "reviews_truncated"

    # Metrics
    METRICS_PUBLISHED = "metrics_published"
    SERVER_STARTED = "server_started"
    SERVER_STOPPED = "server_stopped"

    # Health checks
    HEALTH_CHECK_START = "health_check_start"
    HEALTH_CHECK_COMPLETE = "health_check_complete"
