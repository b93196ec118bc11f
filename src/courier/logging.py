"""Structured logging for Courier.

Delivery components emit key-value events through structlog. Output is JSON
in production and a colored console in development. Endpoint secrets and
signatures never reach the output: ``redact_secrets`` masks them before
rendering.

Per-attempt fields (``endpoint_id``, ``attempt``, ``event_name``) are bound
with ``log_context`` so that nested calls inherit them.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor, WrappedLogger

_configured = False

# Keys whose values are replaced before rendering
REDACTED_KEYS = frozenset({"secret", "signature", "authorization"})
REDACTED = "***"

# Third-party loggers that log every outbound request at INFO
_HTTP_LOGGERS = ("httpx", "httpcore")


def redact_secrets(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Mask secret-bearing values, including inside a ``headers`` mapping."""
    for key in event_dict.keys() & REDACTED_KEYS:
        event_dict[key] = REDACTED

    headers = event_dict.get("headers")
    if isinstance(headers, dict):
        event_dict["headers"] = {
            name: REDACTED if name.lower().replace("x-webhook-", "") in REDACTED_KEYS else value
            for name, value in headers.items()
        }
    return event_dict


def configure_logging(
    level: str = "INFO",
    format: str = "json",
    http_level: str = "WARNING",
) -> None:
    """Configure structured logging for Courier.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format: Output format - "json" for production, "text" for development.
        http_level: Level for the httpx/httpcore loggers.

    Example:
        ```python
        from courier.logging import configure_logging, get_logger

        configure_logging(level="DEBUG", format="text")
        logger = get_logger(__name__)
        logger.info("worker_started", tick_seconds=1.0)
        ```
    """
    global _configured

    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(getattr(logging, http_level.upper(), logging.WARNING))

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if format.lower() == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)  # type: ignore[no-any-return]


@contextmanager
def log_context(**fields: object) -> Iterator[None]:
    """Bind fields to every log message emitted inside the block.

    Bindings are scoped to the current asyncio task, so concurrent
    attempts never see each other's fields.

    Example:
        ```python
        with log_context(endpoint_id=endpoint.id, attempt=2):
            logger.info("retry_scheduled")  # includes endpoint_id and attempt
        ```
    """
    with structlog.contextvars.bound_contextvars(**fields):
        yield
