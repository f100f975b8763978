import logging
from typing import Any

from fastapi import Request
from rich.logging import RichHandler

from redirector.config.settings import LoggingConfig

logger = logging.getLogger("redirector")

# "OFF" silences everything, including CRITICAL
LEVEL_OFF = logging.CRITICAL + 10


def setup_logging(config: LoggingConfig) -> None:
    """Install the root handler once, at process startup"""
    level = LEVEL_OFF if config.level == "OFF" else getattr(logging, config.level)

    if config.enable_rich:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(config.format))

    logging.basicConfig(level=level, handlers=[handler], force=True)
    logging.getLogger("redirector").setLevel(level)


def log_with_context(
    request: Request,
    level: int,
    message: str,
    **kwargs: Any
) -> None:
    """
    Log with request context.
    Automatically includes request_id for tracing.
    """
    extra = {
        "request_id": getattr(request.state, "request_id", "unknown"),
        **kwargs
    }
    logger.log(level, message, extra=extra)


def log_info(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.INFO, message, **kwargs)


def log_warning(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.WARNING, message, **kwargs)


def log_debug(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.DEBUG, message, **kwargs)
