"""Request-scoped bearer credential.

Each chat request runs the agent inside ``run_with_credential(token, ...)``.
Every tool call made during that run, including ones scheduled as separate
asyncio tasks (``asyncio.gather`` copies the current context into each
task), reads the caller's token with ``current_credential()``.

The token lives in a ``ContextVar`` rather than a module-level variable, so
two requests interleaving on the same event loop never see each other's
token.

Usage:
    result = await run_with_credential(token, run_agent, message, history)

    # inside a tool
    token = require_credential()
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from typing import Any, TypeVar

T = TypeVar("T")

_credential: ContextVar[str | None] = ContextVar("ehr_credential", default=None)


class AuthenticationRequired(Exception):
    """Raised when a tool needs the caller's token but none is bound."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


async def run_with_credential(
    token: str,
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Await ``fn(*args, **kwargs)`` with ``token`` bound as the credential.

    The binding is reset when ``fn`` finishes (or raises), so the token is
    never visible after the call returns.
    """
    reset_token = _credential.set(token)
    try:
        return await fn(*args, **kwargs)
    finally:
        _credential.reset(reset_token)


def current_credential() -> str | None:
    """Return the bound token, or None outside ``run_with_credential``."""
    return _credential.get()


def require_credential() -> str:
    """Return the bound token.

    Raises:
        AuthenticationRequired: If no credential is bound.
    """
    token = _credential.get()
    if not token:
        raise AuthenticationRequired()
    return token
