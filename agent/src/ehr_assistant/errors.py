"""Chat-level errors and their user-facing messages.

Only ``PermissionDenied`` messages are shown to users verbatim. Everything
else is translated by ``to_user_message`` into one of a few fixed strings
so raw internals (stack traces, upstream error bodies) never reach the
chat window.
"""

from __future__ import annotations

import asyncio

import anthropic
import httpx

RATE_LIMIT_MESSAGE = (
    "You're sending messages too quickly. Please wait a minute and try again."
)
LOOP_EXHAUSTED_MESSAGE = (
    "I wasn't able to complete that request. It needed more steps than I "
    "can take in one go. Please try asking in a simpler or more specific way."
)
HIGH_DEMAND_MESSAGE = (
    "The assistant is experiencing high demand right now. "
    "Please wait a moment and try again."
)
TIMEOUT_MESSAGE = "The request took too long to process. Please try again."
GENERIC_ERROR_MESSAGE = (
    "Sorry, I ran into a problem while processing your request. Please try again."
)


class ChatError(Exception):
    """Base class for errors raised by the chat orchestration layer."""


class RateLimitExceeded(ChatError):
    """The user sent too many messages in the current window."""

    def __init__(self, user_id: str, retry_after: float) -> None:
        self.user_id = user_id
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded for user {user_id}")


class PermissionDenied(ChatError):
    """The user's group is not allowed to use the AI chat feature."""


class LoopExhausted(ChatError):
    """The agent hit its iteration ceiling without a final answer."""

    def __init__(self, iterations: int) -> None:
        self.iterations = iterations
        super().__init__(f"Agent stopped after {iterations} iterations without an answer")


_DEMAND_MARKERS = ("rate limit", "rate_limit", "quota", "429", "overloaded", "too many requests")
_TIMEOUT_MARKERS = ("timeout", "timed out")


def to_user_message(exc: BaseException) -> str:
    """Map an exception to a message that is safe to show the user."""
    if isinstance(exc, RateLimitExceeded):
        return RATE_LIMIT_MESSAGE
    if isinstance(exc, PermissionDenied):
        return str(exc)
    if isinstance(exc, LoopExhausted):
        return LOOP_EXHAUSTED_MESSAGE
    if isinstance(exc, anthropic.RateLimitError):
        return HIGH_DEMAND_MESSAGE
    if isinstance(exc, (anthropic.APITimeoutError, httpx.TimeoutException, asyncio.TimeoutError)):
        return TIMEOUT_MESSAGE

    text = str(exc).lower()
    if "permission" in text:
        return str(exc)
    if any(marker in text for marker in _DEMAND_MARKERS):
        return HIGH_DEMAND_MESSAGE
    if any(marker in text for marker in _TIMEOUT_MARKERS):
        return TIMEOUT_MESSAGE
    return GENERIC_ERROR_MESSAGE
