"""Tests for error sanitization helpers."""

from agentloop.domain.error_sanitizer import (
    REDACTED_VALUE,
    build_exception_details,
    sanitize_text,
)


def test_sanitize_text_redacts_tokens() -> None:
    text = "Authorization: Bearer abcdefghijklmnop and sk-1234567890abcdef"

    sanitized = sanitize_text(text)

    assert "abcdefghijklmnop" not in sanitized
    assert "sk-1234567890abcdef" not in sanitized
    assert REDACTED_VALUE in sanitized


def test_sanitize_text_truncates() -> None:
    assert sanitize_text("x" * 20, max_length=5) == "xxxxx...[truncated]"


def test_build_exception_details_includes_cause() -> None:
    try:
        try:
            raise ValueError("inner")
        except ValueError as inner:
            raise RuntimeError("outer") from inner
    except RuntimeError as exc:
        details = build_exception_details(exc)

    assert details == {
        "error_class": "RuntimeError",
        "message": "outer",
        "cause_class": "ValueError",
        "cause_message": "inner",
    }
