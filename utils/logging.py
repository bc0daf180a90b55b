"""
Structured logging configuration for the bot.

This module sets up structured logging using the structlog library,
providing more searchable and analyzable logs.
"""

import contextvars
import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any, Optional

import structlog
from structlog.contextvars import bind_contextvars, merge_contextvars, unbind_contextvars
from structlog.stdlib import LoggerFactory

# Create a context variable to store the request ID
request_id_var = contextvars.ContextVar("request_id", default=None)


def generate_request_id() -> str:
    """Generate a unique request ID.

    Returns:
        A unique request ID string.
    """
    return str(uuid.uuid4())


def get_request_id() -> Optional[str]:
    """Get the current request ID.

    Returns:
        The current request ID or None if not set.
    """
    return request_id_var.get()


# Configure standard logging
def configure_stdlib_logging(
    log_level: int = logging.INFO, log_file: Optional[str] = None
) -> None:
    """Configure standard logging.

    Args:
        log_level: The logging level to use.
        log_file: Optional name of a log file, written under ``logs/``.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        # Ensure logs directory exists
        os.makedirs("logs", exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=os.path.join("logs", f"{log_file}.log"),
            encoding="utf-8",
            maxBytes=32 * 1024 * 1024,  # 32 MB
            backupCount=10,
        )
        handlers.append(file_handler)

    logging.basicConfig(
        format="%(message)s", level=log_level, handlers=handlers, force=True
    )
    logging.getLogger("discord").setLevel(log_level)


# Configure structlog
def configure_structlog(log_format: str = "console") -> None:
    """Configure structlog with processors for formatting and output.

    Args:
        log_format: The format to use for log output. Either "json" or "console".
    """
    # Common processors for all formats
    processors = [
        # Add log level name
        structlog.stdlib.add_log_level,
        # Add logger name
        structlog.stdlib.add_logger_name,
        # Add timestamp
        structlog.processors.TimeStamper(fmt="iso"),
        # Add caller information
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        # Add context variables (including request_id)
        merge_contextvars,
        # Format the exception info
        structlog.processors.format_exc_info,
    ]

    # Add format-specific renderer
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# Initialize logging
def init_logging(
    log_level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_format: str = "console",
) -> structlog.stdlib.BoundLogger:
    """Initialize logging with both stdlib and structlog.

    Args:
        log_level: The logging level to use.
        log_file: Optional name of a log file.
        log_format: The format to use for log output. Either "json" or "console".

    Returns:
        A structlog logger instance.
    """
    configure_stdlib_logging(log_level, log_file)
    configure_structlog(log_format)

    return structlog.get_logger()


# Context manager for request tracking
class RequestContext:
    """Context manager for tracking requests with a unique ID.

    This context manager sets a unique request ID for the duration of the context,
    which will be included in all log messages within the context.

    Example:
        ```python
        async with RequestContext(logger, "interaction", interaction_id=123) as ctx:
            # All logs within this context will include the same request ID
            logger.info("dispatching", custom_id="gallery_delete_yes")
        ```
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation_name: str,
        request_id: Optional[str] = None,
        **bound: Any,
    ):
        """Initialize the request context.

        Args:
            logger: The logger to use.
            operation_name: A name for the operation being tracked.
            request_id: An optional request ID. If not provided, a new one will be generated.
            **bound: Extra key-value pairs bound to every log line inside the context.
        """
        self.logger = logger
        self.operation_name = operation_name
        self.request_id = request_id or generate_request_id()
        self.bound = bound
        self.token = None

    def __enter__(self) -> "RequestContext":
        """Enter the context manager."""
        self.token = request_id_var.set(self.request_id)
        bind_contextvars(request_id=self.request_id, **self.bound)
        self.logger.debug(f"{self.operation_name}_started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit the context manager."""
        if exc_type is None:
            self.logger.debug(f"{self.operation_name}_completed")
        else:
            self.logger.error(
                f"{self.operation_name}_failed",
                error=str(exc_val),
                error_type=exc_type.__name__,
            )
        unbind_contextvars("request_id", *self.bound)
        request_id_var.reset(self.token)

    async def __aenter__(self) -> "RequestContext":
        """Enter the async context manager."""
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit the async context manager."""
        self.__exit__(exc_type, exc_val, exc_tb)


# Context manager for timing blocks of code
class TimingContext:
    """Context manager for timing blocks of code.

    Example:
        ```python
        async with TimingContext(logger, "gallery_append_image") as ctx:
            index = await store.append_image("cats", image)
            ctx.add_info(index=index)
        ```
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger, operation_name: str):
        """Initialize the timing context.

        Args:
            logger: The logger to use.
            operation_name: A name for the operation being timed.
        """
        self.logger = logger
        self.operation_name = operation_name
        self.start_time = None
        self.additional_info = {}

    def add_info(self, **kwargs: Any) -> None:
        """Add additional information to be logged.

        Args:
            **kwargs: Key-value pairs to include in the log.
        """
        self.additional_info.update(kwargs)

    async def __aenter__(self) -> "TimingContext":
        """Enter the async context manager."""
        self.start_time = time.monotonic()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit the async context manager."""
        duration = time.monotonic() - self.start_time

        if exc_type is None:
            self.logger.debug(
                f"{self.operation_name}_completed",
                duration=duration,
                **self.additional_info,
            )
        else:
            self.logger.warning(
                f"{self.operation_name}_failed",
                duration=duration,
                error=str(exc_val),
                error_type=exc_type.__name__,
                **self.additional_info,
            )
