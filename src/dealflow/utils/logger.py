"""
Logging Configuration

structlog setup shared by the pipelines, services, scripts and the DAG.
Every entry carries the service name and environment; pipeline runs bind the
tenant they work on so interleaved tenants stay distinguishable.
"""
import logging
import sys
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog
from structlog.types import EventDict, Processor

from config.settings import settings

SERVICE_NAME = "dealflow"

_configured = False


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp service and environment on every entry."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None, force: bool = False) -> None:
    """
    Configure structlog and the stdlib root logger.

    Safe to call more than once; only the first call (or a forced one)
    reconfigures.

    Args:
        level: Log level name (defaults to settings.log_level)
        log_format: "json" or "console" (defaults to settings.log_format)
        force: Reconfigure even if already configured
    """
    global _configured
    if _configured and not force:
        return

    level_name = (level or settings.log_level).upper()
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
        force=force,
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_context,
    ]

    if (log_format or settings.log_format) == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer(default=str)]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


@contextmanager
def tenant_context(org_id: str, **fields: Any) -> Generator[None, None, None]:
    """
    Bind ``org_id`` (and any extra fields) to every entry logged inside the block.

    Usage:
        with tenant_context("org-1", run="scheduled"):
            run_signals_pipeline("org-1")
    """
    with structlog.contextvars.bound_contextvars(org_id=org_id, **fields):
        yield


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Logger for a module (pass ``__name__``)."""
    return structlog.get_logger(name) if name else structlog.get_logger()
