"""
Structlog configuration and helpers.

Every module logs through ``get_logger(name)`` with dotted event names
(``ai.call.start``, ``feature.fallback``). Request and caller ids come from
contextvars bound by the request middleware.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional

import structlog

DIAGNOSTIC_FIELDS = ("raw", "response", "prompt")
DIAGNOSTIC_LIMIT = 2000

QUIET_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")


def truncate_diagnostics(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Cap model text attached to an event at DIAGNOSTIC_LIMIT characters."""
    for field in DIAGNOSTIC_FIELDS:
        value = event_dict.get(field)
        if isinstance(value, str) and len(value) > DIAGNOSTIC_LIMIT:
            event_dict[field] = value[:DIAGNOSTIC_LIMIT]
            event_dict[f"{field}_truncated"] = True
    return event_dict


def setup_logging(
    log_level: Optional[str] = None, log_format: Optional[str] = None
) -> None:
    """Configure structlog for the application.

    Args:
        log_level: Optional log level name (e.g., "INFO"). Defaults from settings.
        log_format: "json" or "console". Defaults from settings.
    """
    from taskpilot.infra.config.settings import get_settings

    settings = get_settings()
    level_name = (log_level or settings.log_level or "INFO").upper()
    fmt = (log_format or settings.log_format or "json").lower()
    level = getattr(logging, level_name, logging.INFO)

    # Configure stdlib logging so 3rd-party libs also log
    logging.basicConfig(level=level, format="%(message)s")
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    renderer = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            truncate_diagnostics,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:  # type: ignore[name-defined]
    """Get a structlog logger bound with a name."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def bind_context(**kwargs) -> None:
    """Bind contextvars for correlation (request_id, user_id)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear bound contextvars (call at end of request)."""
    structlog.contextvars.clear_contextvars()
