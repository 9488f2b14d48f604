"""
Structured Logging Module
=========================

structlog configuration for the Phone Agent: colored console output while
debugging, one JSON object per line otherwise.

Every entry carries the app name, the version and the ``task_id`` of the
run it belongs to (None outside a run). The orchestrator binds the id for
the duration of ``Orchestrator.run``:

    with LogContext(task_id=task_id):
        logger.info("Step decided", step=step, action=decision.action)

Usage:
    from phone_agent.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.warning("Heartbeat failed", error=str(e))
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from phone_agent import __version__
from phone_agent.config import get_settings

APP_NAME = "phone-agent"

# Third-party loggers that only matter when something goes wrong
QUIET_LOGGERS = ("aiohttp.access", "aiohttp.client", "uvicorn.access")


def add_run_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    Stamp an entry with the app identity and the current run.

    A ``task_id`` bound through LogContext wins over the None default.
    """
    event_dict["app"] = APP_NAME
    event_dict["version"] = __version__
    event_dict.setdefault("task_id", None)
    return event_dict


def _renderer(is_debug: bool) -> list[Processor]:
    if is_debug:
        return [
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.rich_traceback,
            )
        ]
    return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def setup_logging() -> None:
    """
    Configure structlog and the standard library root logger.

    Call once at startup (``phone_agent.main`` and ``scripts/run_task.py``).
    """
    settings = get_settings()
    level = getattr(logging, settings.server.log_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        add_run_context,
        *_renderer(settings.server.debug),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, typically ``get_logger(__name__)``."""
    return structlog.get_logger(name)


class LogContext:
    """
    Bind context variables to every log entry inside a ``with`` block.

    Usage:
        with LogContext(task_id=42):
            logger.info("Step started", step=1)  # includes task_id=42
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())
