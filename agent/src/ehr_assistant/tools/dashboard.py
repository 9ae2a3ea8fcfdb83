"""Dashboard tools — daily KPIs, patient flow and revenue trend.

These endpoints already return ``{"success": ..., ...}`` bodies, so their
JSON is passed through as the tool result.

API endpoints used:
- GET /dashboard/metrics        — KPI metrics for a date
- GET /dashboard/pipeline       — Real-time patient flow for a date
- GET /dashboard/schedule       — Upcoming appointments timeline
- GET /dashboard/revenue-trend  — Billed vs collected over N days
"""

from __future__ import annotations

import json
from datetime import date as date_type
from typing import Any

from pydantic import BaseModel, Field

from ehr_assistant.ehr_client import get_client
from ehr_assistant.tools.base import TOOL_ERRORS, failure, make_tool, success


class DateArgs(BaseModel):
    date: str | None = Field(default=None, description="Date (YYYY-MM-DD), defaults to today")


class ScheduleArgs(DateArgs):
    limit: int | None = Field(
        default=None, description="Max number of appointments to return, defaults to 10"
    )


class RevenueTrendArgs(BaseModel):
    days: int | None = Field(default=None, description="Number of days to look back, defaults to 7")


def _today() -> str:
    return date_type.today().isoformat()


def _passthrough(body: Any) -> str:
    # Keep the success/error envelope even if the endpoint returns a bare payload.
    if isinstance(body, dict) and ("success" in body or "error" in body):
        return json.dumps(body, default=str)
    return success(data=body)


async def get_dashboard_metrics(date: str | None = None) -> str:
    """Get top KPI metrics for a date: appointment count, total revenue and
    patients registered. Use for questions like "what is our revenue
    today?", "how many patients today?" or "daily overview"."""
    try:
        client = await get_client()
        body = await client.get("/dashboard/metrics", params={"date": date or _today()})
    except TOOL_ERRORS as e:
        return failure(e)
    return _passthrough(body)


async def get_dashboard_pipeline(date: str | None = None) -> str:
    """Get the real-time patient flow pipeline for a day (booked,
    checked-in, with doctor, payment pending, completed)."""
    try:
        client = await get_client()
        body = await client.get("/dashboard/pipeline", params={"date": date or _today()})
    except TOOL_ERRORS as e:
        return failure(e)
    return _passthrough(body)


async def get_dashboard_schedule(date: str | None = None, limit: int | None = None) -> str:
    """Get the day's upcoming appointment schedule (timeline) with patient
    name, doctor, time and status."""
    try:
        client = await get_client()
        body = await client.get(
            "/dashboard/schedule",
            params={"date": date or _today(), "limit": limit or 10},
        )
    except TOOL_ERRORS as e:
        return failure(e)
    return _passthrough(body)


async def get_dashboard_revenue_trend(days: int | None = None) -> str:
    """Get the revenue trend (billed vs collected) over the past N days.
    Used for financial reporting."""
    try:
        client = await get_client()
        body = await client.get("/dashboard/revenue-trend", params={"days": days or 7})
    except TOOL_ERRORS as e:
        return failure(e)
    return _passthrough(body)


dashboard_tools = [
    make_tool(get_dashboard_metrics, DateArgs),
    make_tool(get_dashboard_pipeline, DateArgs),
    make_tool(get_dashboard_schedule, ScheduleArgs),
    make_tool(get_dashboard_revenue_trend, RevenueTrendArgs),
]
