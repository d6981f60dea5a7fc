import asyncio
from typing import Any, Dict

import httpx
import openai

from agentloop.domain.error_sanitizer import build_exception_details
from agentloop.domain.exceptions import (
    AgentLoopError,
    ApiKeyError,
    ContextLengthError,
    GatewayError,
    GatewayTimeoutError,
    RateLimitError,
)


def map_gateway_error(error: Exception) -> AgentLoopError:
    """Map a provider exception into a typed gateway error.

    Errors that are already typed pass through unchanged.

    Args:
        error: Exception raised while calling the model.

    Returns:
        The typed error to raise in its place.
    """

    if isinstance(error, AgentLoopError):
        return error

    details = build_exception_details(error)
    message = details.get("message") or details["error_class"]

    if isinstance(
        error, (asyncio.TimeoutError, openai.APITimeoutError, httpx.TimeoutException)
    ):
        return GatewayTimeoutError(f"Model call timed out: {message}")
    if isinstance(error, openai.AuthenticationError):
        return ApiKeyError(f"Authentication failed: {message}")
    if isinstance(error, openai.PermissionDeniedError):
        return ApiKeyError(f"Permission denied: {message}")
    if isinstance(error, openai.RateLimitError):
        return RateLimitError(f"Rate limited: {message}")
    if isinstance(error, openai.BadRequestError):
        if _is_context_length_payload(error.body):
            return ContextLengthError(f"Context length exceeded: {message}")
        return GatewayError(f"Bad request: {message}")

    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
        if status_code == 429:
            return RateLimitError(f"Rate limited: {message}")
        if status_code in (401, 403):
            return ApiKeyError(f"Authentication failed: {message}")
        if _is_context_length_payload(_extract_error_payload(error)):
            return ContextLengthError(f"Context length exceeded: {message}")

    return GatewayError(f"Model call failed ({details['error_class']}): {message}")


def _extract_error_payload(error: httpx.HTTPStatusError) -> Dict[str, Any]:
    """Extract error payload from an HTTP status error."""

    try:
        payload = error.response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _is_context_length_payload(payload: Any) -> bool:
    """Return True when payload indicates a context-length error."""

    if not isinstance(payload, dict):
        return False
    error_info = payload.get("error", payload)
    if not isinstance(error_info, dict):
        return False
    code = error_info.get("code") or error_info.get("type")
    if isinstance(code, str) and code.strip().lower() in {
        "context_length_exceeded",
        "context_window_exceeded",
    }:
        return True
    message = error_info.get("message")
    if isinstance(message, str):
        normalized = message.strip().lower()
        return (
            "maximum context length" in normalized
            or "context length exceeded" in normalized
        )
    return False
