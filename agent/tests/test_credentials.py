"""Tests for the request-scoped credential."""

from __future__ import annotations

import asyncio

import pytest

from ehr_assistant.credentials import (
    AuthenticationRequired,
    current_credential,
    require_credential,
    run_with_credential,
)


def test_no_credential_outside_run() -> None:
    assert current_credential() is None
    with pytest.raises(AuthenticationRequired, match="Authentication required"):
        require_credential()


@pytest.mark.asyncio
async def test_credential_visible_inside_and_reset_after() -> None:
    async def read() -> str:
        return require_credential()

    assert await run_with_credential("abc", read) == "abc"
    assert current_credential() is None


@pytest.mark.asyncio
async def test_credential_reset_when_fn_raises() -> None:
    async def boom() -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await run_with_credential("abc", boom)
    assert current_credential() is None


@pytest.mark.asyncio
async def test_concurrent_runs_are_isolated() -> None:
    """Interleaved runs on one loop each see only their own token."""

    async def observe() -> list[str | None]:
        seen = []
        for _ in range(5):
            seen.append(current_credential())
            await asyncio.sleep(0)
        return seen

    first, second = await asyncio.gather(
        run_with_credential("token-1", observe),
        run_with_credential("token-2", observe),
    )

    assert first == ["token-1"] * 5
    assert second == ["token-2"] * 5


@pytest.mark.asyncio
async def test_nested_tasks_inherit_credential() -> None:
    async def child() -> str | None:
        await asyncio.sleep(0)
        return current_credential()

    async def parent() -> list[str | None]:
        return list(await asyncio.gather(child(), asyncio.create_task(child())))

    assert await run_with_credential("abc", parent) == ["abc", "abc"]


@pytest.mark.asyncio
async def test_empty_token_is_not_a_credential() -> None:
    async def read() -> str:
        return require_credential()

    with pytest.raises(AuthenticationRequired):
        await run_with_credential("", read)
