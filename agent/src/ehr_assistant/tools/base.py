"""Shared helpers for tool implementations.

Every tool returns a JSON string in one of two shapes:

    {"success": true, ...data}
    {"error": "<message>"}

The model branches on the presence of ``error``, so tools never raise:
API failures and a missing credential are turned into the error shape
here.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Coroutine
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field

from ehr_assistant.credentials import AuthenticationRequired
from ehr_assistant.ehr_client import EHRAPIError

# Exceptions a tool turns into an error envelope.
TOOL_ERRORS = (EHRAPIError, AuthenticationRequired)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def success(**data: Any) -> str:
    """Encode a successful tool result."""
    return json.dumps({"success": True, **data}, default=str)


def failure(error: Exception | str, **extra: Any) -> str:
    """Encode a failed tool result."""
    if isinstance(error, EHRAPIError):
        message = error.detail
    else:
        message = str(error)
    return json.dumps({"error": message, **extra}, default=str)


def compact(**params: Any) -> dict[str, Any]:
    """Drop unset (None or empty-string) values from a params/body dict."""
    return {key: value for key, value in params.items() if value is not None and value != ""}


def paging(page: int | None, limit: int | None) -> dict[str, int]:
    """Default page to 1 and clamp the page size to 1..MAX_PAGE_SIZE."""
    return {
        "page": max(page or 1, 1),
        "limit": max(min(limit or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE), 1),
    }


class PageArgs(BaseModel):
    """Pagination arguments shared by the search tools."""

    page: int | None = Field(default=None, ge=1, description="Page number (default 1)")
    limit: int | None = Field(
        default=None, ge=1, description="Results per page, max 100 (default 20)"
    )


class NoArgs(BaseModel):
    """Input schema for tools that take no arguments."""


def make_tool(
    fn: Callable[..., Coroutine[Any, Any, str]],
    args_schema: type[BaseModel],
) -> StructuredTool:
    """Wrap an async tool function as a StructuredTool.

    The function name becomes the tool name and its docstring the
    description the model reads when choosing a tool.
    """
    return StructuredTool.from_function(
        coroutine=fn,
        name=fn.__name__,
        description=(fn.__doc__ or fn.__name__).strip(),
        args_schema=args_schema,
    )


def listing(data: Any, key: str) -> dict[str, Any]:
    """Normalize a paginated response; a bare list becomes ``{key: [...]}``."""
    if isinstance(data, list):
        return {key: data, "total": len(data)}
    if isinstance(data, dict):
        return data
    return {}
