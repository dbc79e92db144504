"""structlog setup for the portal.

Every event carries the id of the HTTP request being served and the path of
the view handling it, when there is one.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any, TextIO

import structlog

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
view_var: ContextVar[str] = ContextVar("view", default="")

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def set_request_id(rid: str) -> None:
    request_id_var.set(rid)


def set_view(view: str) -> None:
    view_var.set(view)


def add_request_context(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Attach request_id and view to the event when set."""
    rid = request_id_var.get()
    if rid:
        event_dict.setdefault("request_id", rid)

    view = view_var.get()
    if view:
        event_dict.setdefault("view", view)

    return event_dict


def configure_logging(
    level: str = "info",
    format_type: str = "json",
    stream: TextIO | None = None,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: debug, info, warn or error
        format_type: 'json' for one object per line, 'text' for the console
        stream: Where to write (default: sys.stderr)
    """
    stream = stream or sys.stderr
    log_level = LEVELS.get(level.lower(), logging.INFO)

    # uvicorn logs through the standard library
    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)

    renderer: structlog.types.Processor
    if format_type == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_request_context,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a logger, bound to logger_name when a name is given."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger


configure_logging()
