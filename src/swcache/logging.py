"""
Logging configuration for swcache.

Library modules log through ``structlog.get_logger(__name__)``; applications
(and the CLI) call :func:`configure_logging` once at startup.
"""

import logging
import sys
from typing import Any

import structlog


def add_component(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Tag events with the swcache component that emitted them."""
    logger_name = event_dict.get("logger", "")
    if logger_name.startswith("swcache."):
        event_dict["component"] = logger_name.split(".")[-1]
    return event_dict


def configure_logging(log_level: str = "warning", json: bool = False) -> None:
    """Configure structured logging.

    Args:
        log_level: Minimum level name ("debug", "info", ...).
        json: Render events as JSON lines instead of console output.
    """
    renderer: Any
    if json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_component,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
        force=True,
    )
