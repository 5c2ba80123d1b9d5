"""structlog setup shared by the API and the booking service."""
import logging
import sys
import uuid

import structlog


def setup_logging(log_level: str = "INFO", json: bool = False) -> None:
    """Configure structlog on top of the standard library logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        json: Render events as JSON lines instead of the console format
    """
    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """Return a short unique id used to correlate log lines of one request."""
    return f"req-{uuid.uuid4().hex[:12]}"
