"""Sanitize error details before they reach logs or error payloads."""

from __future__ import annotations

import re
from typing import Any, Dict

REDACTED_VALUE = "<redacted>"
DEFAULT_MAX_STRING_LENGTH = 256

_TOKEN_PATTERNS = (
    re.compile(r"sk-[A-Za-z0-9_-]{10,}"),
    re.compile(r"(?i)bearer\s+[A-Za-z0-9._-]{10,}"),
    re.compile(r"(?i)authorization:\s*bearer\s+[A-Za-z0-9._-]{10,}"),
)


def sanitize_text(value: str, max_length: int = DEFAULT_MAX_STRING_LENGTH) -> str:
    """Redact secrets and cap a string value.

    Args:
        value: Input text value.
        max_length: Maximum length of the returned string.

    Returns:
        A redacted, length-capped string.
    """

    sanitized = value
    for pattern in _TOKEN_PATTERNS:
        sanitized = pattern.sub(REDACTED_VALUE, sanitized)
    if len(sanitized) <= max_length:
        return sanitized
    return f"{sanitized[:max_length]}...[truncated]"


def build_exception_details(
    error: BaseException,
    max_string_length: int = DEFAULT_MAX_STRING_LENGTH,
) -> Dict[str, Any]:
    """Build a sanitized error detail mapping from an exception.

    Args:
        error: Exception to summarize.
        max_string_length: Maximum length for message fields.

    Returns:
        A sanitized error detail dictionary.
    """

    details: Dict[str, Any] = {"error_class": error.__class__.__name__}
    message = str(error)
    if message:
        details["message"] = sanitize_text(message, max_length=max_string_length)
    cause = error.__cause__
    if isinstance(cause, BaseException):
        details["cause_class"] = cause.__class__.__name__
        cause_message = str(cause)
        if cause_message:
            details["cause_message"] = sanitize_text(
                cause_message, max_length=max_string_length
            )
    return details
