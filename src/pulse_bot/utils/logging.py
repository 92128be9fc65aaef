"""
Logging setup for PulseBot.

structlog events and standard library records share one root handler:
rich console output in ``text`` mode, one JSON object per line in
``json`` mode. The helpers below give the LLM client, the request queue
and the insight generator consistent event names and fields.
"""

import logging
import sys
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional
from urllib.parse import urlparse

import structlog
from rich.console import Console
from rich.logging import RichHandler

from pulse_bot.config import LoggingConfig


NOISY_LIBRARY_LOGGERS = ("aiohttp.access", "aiohttp.client", "aiohttp.server", "asyncio")


def setup_logging(config: LoggingConfig) -> None:
    """
    Route structlog and standard library logging through one handler.

    Args:
        config: Logging configuration settings
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.format == "json":
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        renderer = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        handler = RichHandler(
            console=Console(width=120),
            show_path=False,
            rich_tracebacks=True,
        )
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(config.level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    for name in NOISY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> Any:
    """Return a structlog logger, usually named after the calling module."""
    return structlog.get_logger(name)


def new_request_id() -> str:
    """Short random id used to tie together the log lines of one request."""
    return uuid.uuid4().hex[:8]


def log_llm_request(url: str, request_id: str, model: str, message_count: int) -> None:
    """Log an outgoing chat completion call. Only the host and path are logged."""
    parsed = urlparse(url)
    get_logger("pulse_bot.llm").info(
        "LLM request sent",
        host=parsed.netloc,
        path=parsed.path,
        model=model,
        message_count=message_count,
        request_id=request_id,
    )


def log_llm_response(
    request_id: str,
    status_code: int,
    elapsed_ms: float,
    error: Optional[str] = None,
    **context: Any,
) -> None:
    """
    Log the outcome of a chat completion call.

    ``status_code`` is 0 when no response arrived. Client errors log at
    warning, server and transport errors at error.
    """
    if error is None:
        level = "info"
    elif 400 <= status_code < 500:
        level = "warning"
    else:
        level = "error"

    getattr(get_logger("pulse_bot.llm"), level)(
        "LLM request failed" if error else "LLM response received",
        status_code=status_code,
        elapsed_ms=round(elapsed_ms, 2),
        request_id=request_id,
        error=error,
        **context,
    )


@contextmanager
def timed_operation(operation: str, **context: Any) -> Iterator[str]:
    """
    Log the start, end and duration of a block.

    Yields the request id bound to every line. Exceptions are logged and
    re-raised.
    """
    request_id = context.pop("request_id", None) or new_request_id()
    logger = get_logger("pulse_bot.ops").bind(operation=operation, request_id=request_id, **context)
    started = time.monotonic()
    logger.info(f"{operation} started")

    try:
        yield request_id
    except Exception as e:
        logger.error(
            f"{operation} failed",
            elapsed_ms=round((time.monotonic() - started) * 1000, 2),
            error_type=type(e).__name__,
            error=str(e),
        )
        raise

    logger.info(f"{operation} finished", elapsed_ms=round((time.monotonic() - started) * 1000, 2))


def log_queue_event(event: str, task_id: str, level: str = "info", **context: Any) -> None:
    """
    Log one step of a queued task's life.

    Args:
        event: submitted, started, throttled, completed, failed, ...
        task_id: Id of the queued task
        level: Logger method name
        **context: Event-specific fields
    """
    getattr(get_logger("pulse_bot.queue"), level)(f"task {event}", task_id=task_id, **context)
