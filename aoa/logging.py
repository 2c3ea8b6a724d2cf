"""
structlog setup for the ``aoa`` logger tree.

Every module logs through ``get_logger(__name__)``, so records land on the
stdlib logger ``aoa.<module>``. ``configure_logging`` attaches one handler to
``aoa`` and leaves the root logger of the host application alone.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor

from .config import get_settings

ROOT = "aoa"

_handler: logging.Handler | None = None


def add_stage(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Pipeline stage (``threshold``, ``scorer`` ...) taken from the logger name."""
    name = event_dict.get("logger") or ""
    if name.startswith(ROOT + "."):
        event_dict["stage"] = name[len(ROOT) + 1:]
    return event_dict


def configure_logging(
    level: str | None = None,
    fmt: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Route ``aoa`` records through structlog.
    JSON lines when the format is "json", plain console lines otherwise.
    Calling it again replaces the previous handler.
    """
    global _handler
    settings = get_settings()
    level = level or settings.log_level
    fmt = fmt or settings.log_format

    root = logging.getLogger(ROOT)
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(_handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False

    if fmt == "json":
        renderer: Processor = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_stage,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = ROOT) -> structlog.BoundLogger:
    return structlog.get_logger(name)
