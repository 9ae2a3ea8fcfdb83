"""Visit history tools.

API endpoints used:
- GET /visits                — Search visits (paginated)
- GET /visits/status-counts  — Visit counts grouped by status
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ehr_assistant.ehr_client import get_client, unwrap
from ehr_assistant.tools.base import (
    TOOL_ERRORS,
    PageArgs,
    compact,
    failure,
    listing,
    make_tool,
    paging,
    success,
)


class SearchVisitsArgs(PageArgs):
    date_from: str | None = Field(default=None, description="Start date (YYYY-MM-DD)")
    date_to: str | None = Field(default=None, description="End date (YYYY-MM-DD)")
    doctor: str | None = Field(default=None, description="Filter by doctor name or specialty")
    patient: str | None = Field(default=None, description="Filter by patient name or MRN")
    status: str | None = Field(default=None, description="Filter by appointment status")


class VisitStatusCountsArgs(BaseModel):
    date: str | None = Field(default=None, description="Date (YYYY-MM-DD), defaults to today")
    doctor_id: str | None = Field(default=None, description="Filter by doctor ID")


async def search_visits(
    date_from: str | None = None,
    date_to: str | None = None,
    doctor: str | None = None,
    patient: str | None = None,
    status: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> str:
    """Search visits with filters. Use for questions like "patient visits"
    or "visits today". Returns a paginated list with the total count."""
    params = compact(
        dateFrom=date_from,
        dateTo=date_to,
        doctor=doctor,
        patient=patient,
        status=status,
    )
    params.update(paging(page, limit))

    try:
        client = await get_client()
        data = listing(unwrap(await client.get("/visits", params=params)), "visits")
    except TOOL_ERRORS as e:
        return failure(e)

    return success(
        total=data.get("total", 0),
        page=data.get("page", 1),
        totalPages=data.get("totalPages", 1),
        visits=data.get("visits", []),
    )


async def get_visit_status_counts(date: str | None = None, doctor_id: str | None = None) -> str:
    """Get visit counts grouped by status (booked, checked-in, with doctor,
    checked-out) for a date and/or doctor. Useful for dashboard-style
    summaries."""
    try:
        client = await get_client()
        data = unwrap(
            await client.get(
                "/visits/status-counts", params=compact(date=date, doctorId=doctor_id)
            )
        )
    except TOOL_ERRORS as e:
        return failure(e)
    return success(statusCounts=data)


visit_tools = [
    make_tool(search_visits, SearchVisitsArgs),
    make_tool(get_visit_status_counts, VisitStatusCountsArgs),
]
