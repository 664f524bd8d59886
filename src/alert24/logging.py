"""Structured logging configuration for Alert24 dispatch.

The dispatch modules log through the standard library. configure_logging
routes those records through the same structlog processors as structlog
loggers, so every line carries the bound dispatch context and has
credentials redacted before it is rendered as JSON or console text.
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.typing import Processor

REDACTED = "[REDACTED]"

# Event keys whose values never reach the log output
SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "auth_token",
        "api_key",
        "password",
        "secret",
        "signature",
        "token",
        "x-alert24-signature",
    }
)

_CREDENTIAL_PATTERNS = [
    re.compile(r"(password|secret|token|api[_-]?key)=\S+", re.IGNORECASE),
    re.compile(r"(Bearer|Basic)\s+\S+", re.IGNORECASE),
]

# Keys every log line already carries; bound values under these names never render
RESERVED_KEYS = frozenset({"event", "level", "logger", "timestamp"})

_HANDLER_NAME = "alert24"

_configured = False


def redact_text(text: str) -> str:
    """Mask credentials embedded in free text such as error messages."""
    for pattern in _CREDENTIAL_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text


def _redact_value(key: str, value: Any) -> Any:
    if key.lower() in SENSITIVE_KEYS:
        return REDACTED
    if isinstance(value, dict):
        return {k: _redact_value(str(k), v) for k, v in value.items()}
    return value


def redact_secrets(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor that masks secrets, auth headers and signatures."""
    for key, value in list(event_dict.items()):
        event_dict[key] = _redact_value(key, value)
    event = event_dict.get("event")
    if isinstance(event, str):
        event_dict["event"] = redact_text(event)
    return event_dict


def configure_logging(
    level: str = "INFO",
    format: str = "json",
) -> None:
    """Configure structured logging for Alert24.

    Safe to call repeatedly; the handler installed by a previous call is
    replaced rather than duplicated.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format: Output format - "json" for production, "text" for development.

    Example:
        ```python
        from alert24.logging import configure_logging, get_logger

        configure_logging(level="DEBUG", format="text")
        logger = get_logger()
        logger.info("Dispatcher started", batch_size=10)
        ```
    """
    global _configured

    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_secrets,
    ]

    renderer: list[Processor]
    if format.lower() == "json":
        renderer = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=True)]

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderer],
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name. Uses calling module name if None.

    Returns:
        A bound structlog logger.
    """
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)  # type: ignore[no-any-return]


def bind_context(**kwargs: object) -> None:
    """Bind context variables to all subsequent log messages.

    Example:
        ```python
        from alert24.logging import bind_context, get_logger

        bind_context(organization_id="org_123", event_type="incident.created")
        get_logger().info("Dispatching")  # Includes both keys
        ```
    """
    structlog.contextvars.bind_contextvars(**kwargs)


@contextmanager
def dispatch_context(**kwargs: object) -> Iterator[None]:
    """Bind keys for the duration of one dispatch run.

    Keys bound by an outer run are restored on exit. Values of None are
    not bound.

    Raises:
        ValueError: For keys structlog fills itself, such as "event",
            which would be silently dropped from every line.
    """
    reserved = RESERVED_KEYS.intersection(kwargs)
    if reserved:
        raise ValueError(f"Cannot bind reserved log keys: {sorted(reserved)}")
    values = {k: v for k, v in kwargs.items() if v is not None}
    with structlog.contextvars.bound_contextvars(**values):
        yield


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    """Remove specific keys from the logging context.

    Args:
        *keys: Keys to remove from context.
    """
    structlog.contextvars.unbind_contextvars(*keys)
