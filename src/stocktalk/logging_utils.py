"""Logging utilities with security and observability features.

Provides:
- Secret redaction for LLM service API keys and authorization headers
- Structured logging helpers
- Request ID context management
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Any

# Context variable for request ID (thread-safe and async-safe)
_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Patterns for secret redaction
API_KEY_PATTERNS = [
    (re.compile(r"xai-[A-Za-z0-9_\-]+"), "xai-***REDACTED***"),  # xAI keys
    (re.compile(r"sk-[A-Za-z0-9_\-]{8,}"), "sk-***REDACTED***"),  # OpenAI-style keys
]

# Pattern for Authorization header values
AUTH_HEADER_PATTERN = re.compile(
    r"(Authorization[:\s=]+)(Bearer\s+)?([^\s,;]+)",
    re.IGNORECASE,
)


def redact_secrets(text: str | None) -> str:
    """Redact secrets from text (API keys, auth headers, etc.).

    Args:
        text: Text that may contain secrets

    Returns:
        Text with secrets redacted
    """
    if text is None:
        return ""

    if not isinstance(text, str):
        text = str(text)

    for pattern, replacement in API_KEY_PATTERNS:
        text = pattern.sub(replacement, text)

    text = AUTH_HEADER_PATTERN.sub(r"\1\2***REDACTED***", text)

    return text


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID (generates one if not provided)

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = str(uuid.uuid4())

    _request_id_var.set(request_id)
    return request_id


def get_request_id() -> str | None:
    """Get the request ID for the current context."""
    return _request_id_var.get()


def clear_request_id() -> None:
    """Clear the request ID from the current context."""
    _request_id_var.set(None)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **kwargs: Any,
) -> None:
    """Log a message with structured context (request_id, session_id, etc.).

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, logging.ERROR, etc.)
        message: Log message
        **kwargs: Additional structured fields to include
    """
    parts = [message]

    request_id = get_request_id()
    if request_id:
        parts.append(f"request_id={request_id}")

    for key, value in kwargs.items():
        safe_value = redact_secrets(str(value))
        parts.append(f"{key}={safe_value}")

    logger.log(level, " | ".join(parts))


def log_info(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    """Log an info message with structured context."""
    log_with_context(logger, logging.INFO, message, **kwargs)


def log_warning(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    """Log a warning message with structured context."""
    log_with_context(logger, logging.WARNING, message, **kwargs)


def log_error(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    """Log an error message with structured context."""
    log_with_context(logger, logging.ERROR, message, **kwargs)


def log_debug(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    """Log a debug message with structured context."""
    log_with_context(logger, logging.DEBUG, message, **kwargs)
