"""Tests for mapping failures to user-facing chat messages."""

from __future__ import annotations

import asyncio

import anthropic
import httpx
import pytest

from ehr_assistant.errors import (
    GENERIC_ERROR_MESSAGE,
    HIGH_DEMAND_MESSAGE,
    TIMEOUT_MESSAGE,
    PermissionDenied,
    to_user_message,
)

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def test_anthropic_rate_limit() -> None:
    exc = anthropic.RateLimitError(
        "rate limited", response=httpx.Response(429, request=_REQUEST), body=None
    )
    assert to_user_message(exc) == HIGH_DEMAND_MESSAGE


@pytest.mark.parametrize(
    "exc",
    [
        anthropic.APITimeoutError(request=_REQUEST),
        httpx.ReadTimeout("read timed out"),
        asyncio.TimeoutError(),
        RuntimeError("upstream call timed out"),
    ],
)
def test_timeouts(exc: Exception) -> None:
    assert to_user_message(exc) == TIMEOUT_MESSAGE


@pytest.mark.parametrize("text", ["Overloaded", "quota exceeded", "HTTP 429 Too Many Requests"])
def test_demand_markers(text: str) -> None:
    assert to_user_message(RuntimeError(text)) == HIGH_DEMAND_MESSAGE


def test_permission_messages_pass_through() -> None:
    assert to_user_message(PermissionDenied("No access")) == "No access"
    assert to_user_message(RuntimeError("permission check failed")) == "permission check failed"


def test_everything_else_is_generic() -> None:
    assert to_user_message(ValueError("column x does not exist")) == GENERIC_ERROR_MESSAGE
