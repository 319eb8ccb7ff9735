import logging
import sys
from typing import Optional

import structlog

LOG_FORMATS = ("json", "console")


def configure_logging(level: int = logging.INFO, log_format: str = "json") -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def bind_run_context(stack_name: Optional[str], endpoint: Optional[str]) -> None:
    """Attach the stack and endpoint of the current run to every log line."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(stack=stack_name, endpoint=endpoint)
