"""Structured logging configuration for Khata."""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, Literal

import structlog

from khata.config.settings import get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]

# Event keys whose values never reach the log output in full.
MASKED_KEYS = frozenset({"gstin", "vendor_gstin", "buyer_gstin"})
SECRET_KEYS = frozenset({"api_key", "authorization", "token"})


def mask_identifier(value: str) -> str:
    """Keep the jurisdiction code and check digit, hide the entity code."""
    if len(value) <= 5:
        return "*" * len(value)
    return f"{value[:2]}{'*' * (len(value) - 5)}{value[-3:]}"


def mask_sensitive_fields(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor hiding registration IDs and credentials."""
    for key in list(event_dict):
        lowered = key.lower()
        if lowered in SECRET_KEYS:
            event_dict[key] = "[redacted]"
        elif lowered in MASKED_KEYS and isinstance(event_dict[key], str):
            event_dict[key] = mask_identifier(event_dict[key])
    return event_dict


def build_processors(log_format: LogFormat) -> list[structlog.types.Processor]:
    """Processor chain ending in a JSON or console renderer."""
    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        mask_sensitive_fields,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_logging(
    level: LogLevel | None = None,
    format: LogFormat | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level. Defaults to ``KHATA_LOG_LEVEL``.
        format: Output format (json or console). Defaults to ``KHATA_LOG_FORMAT``.
    """
    if level is None or format is None:
        settings = get_settings()
        level = level or settings.log_level
        format = format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
        force=True,
    )

    structlog.configure(
        processors=build_processors(format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound to ``name`` (typically ``__name__``)."""
    return structlog.get_logger(name)
