import asyncio

import httpx
import openai

from agentloop.domain.exceptions import (
    ApiKeyError,
    ContextLengthError,
    GatewayError,
    GatewayTimeoutError,
    RateLimitError,
    ToolExecutionError,
)
from agentloop.llm.error_mapper import map_gateway_error


def _status_error(status_code, payload=None):
    request = httpx.Request("POST", "https://example.invalid/v1/chat/completions")
    response = httpx.Response(status_code, json=payload or {}, request=request)
    return httpx.HTTPStatusError("failed", request=request, response=response)


def _openai_error(cls, status_code, body=None):
    request = httpx.Request("POST", "https://example.invalid/v1/chat/completions")
    response = httpx.Response(status_code, json=body or {}, request=request)
    return cls("failed", response=response, body=body)


def test_typed_errors_pass_through() -> None:
    error = ToolExecutionError("w", "boom")

    assert map_gateway_error(error) is error


def test_timeouts_map_to_gateway_timeout() -> None:
    assert isinstance(map_gateway_error(asyncio.TimeoutError()), GatewayTimeoutError)
    assert isinstance(
        map_gateway_error(httpx.ReadTimeout("slow")), GatewayTimeoutError
    )


def test_openai_status_errors() -> None:
    assert isinstance(
        map_gateway_error(_openai_error(openai.AuthenticationError, 401)), ApiKeyError
    )
    assert isinstance(
        map_gateway_error(_openai_error(openai.RateLimitError, 429)), RateLimitError
    )
    context_error = _openai_error(
        openai.BadRequestError,
        400,
        {"error": {"code": "context_length_exceeded", "message": "too long"}},
    )
    assert isinstance(map_gateway_error(context_error), ContextLengthError)
    other = map_gateway_error(_openai_error(openai.BadRequestError, 400, {}))
    assert type(other) is GatewayError


def test_httpx_status_errors() -> None:
    assert isinstance(map_gateway_error(_status_error(429)), RateLimitError)
    assert isinstance(map_gateway_error(_status_error(403)), ApiKeyError)
    context_error = _status_error(
        400, {"error": {"message": "This model's maximum context length is 8192"}}
    )
    assert isinstance(map_gateway_error(context_error), ContextLengthError)


def test_unknown_errors_become_gateway_error_with_redaction() -> None:
    mapped = map_gateway_error(RuntimeError("key sk-abcdefghijklmnop leaked"))

    assert type(mapped) is GatewayError
    assert "RuntimeError" in str(mapped)
    assert "sk-abcdefghijklmnop" not in str(mapped)
