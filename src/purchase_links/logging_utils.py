"""Request-scoped logging utilities.

Every log line carries the id of the request (or script run) that produced it,
so a single purchase-link validation can be followed through the logs.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Optional

# Context variable to store the request ID for the current request/task
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

TOKEN_PREVIEW_CHARS = 8


class RequestIdFilter(logging.Filter):
    """Add request ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "no-request-id"
        return True


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure root logging for the service.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_format: Log format (json or text).
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper()))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)

    if log_format == "json":
        formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"request_id": "%(request_id)s", "name": "%(name)s", '
            '"message": "%(message)s"}'
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [%(request_id)s] %(name)s: %(message)s"
        )

    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    logger.addHandler(handler)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def generate_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def mask_token(token: Optional[str]) -> str:
    """Shorten a token for logging so full tokens never reach log storage.

    Args:
        token: The token (or any untrusted string) to mask.

    Returns:
        The first few characters followed by the original length.
    """
    if not token:
        return "<empty>"
    if not isinstance(token, str):
        return f"<{type(token).__name__}>"
    return f"{token[:TOKEN_PREVIEW_CHARS]}...({len(token)} chars)"


class RequestIdContext:
    """Context manager that scopes a request ID to a block of code."""

    def __init__(self, request_id: Optional[str] = None):
        """Initialize the context manager.

        Args:
            request_id: The request ID to set. If None, generates a new one.
        """
        self.request_id = request_id or generate_request_id()
        self._token = None

    def __enter__(self) -> str:
        self._token = request_id_var.set(self.request_id)
        return self.request_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        request_id_var.reset(self._token)
