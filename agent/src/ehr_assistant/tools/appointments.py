"""Scheduling tools — appointments and the doctors who take them.

API endpoints used:
- GET    /appointments                 — Search appointments (paginated)
- GET    /appointments/completed       — Checked-out appointments
- GET    /appointments/doctors         — Doctors available for booking
- GET    /appointments/search/mrn      — Patient lookup by MRN prefix
- POST   /appointments                 — Book an appointment
- PUT    /appointments/{appointmentId} — Reschedule / change status
- DELETE /appointments/{appointmentId} — Cancel an appointment
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ehr_assistant.ehr_client import get_client, unwrap
from ehr_assistant.tools.base import (
    TOOL_ERRORS,
    NoArgs,
    PageArgs,
    compact,
    failure,
    listing,
    make_tool,
    paging,
    success,
)


class SearchAppointmentsArgs(PageArgs):
    date_from: str | None = Field(default=None, description="Start date filter (YYYY-MM-DD)")
    date_to: str | None = Field(default=None, description="End date filter (YYYY-MM-DD)")
    patient_name: str | None = Field(default=None, description="Filter by patient name")
    doctor_name: str | None = Field(default=None, description="Filter by doctor name")
    mrn: str | None = Field(default=None, description="Filter by patient MRN")
    search: str | None = Field(default=None, description="General search term")


class CheckedOutAppointmentsArgs(PageArgs):
    date_from: str | None = Field(default=None, description="Start date (YYYY-MM-DD)")
    date_to: str | None = Field(default=None, description="End date (YYYY-MM-DD)")


class SearchPatientMrnArgs(BaseModel):
    search: str = Field(description="MRN prefix to search")


class CreateAppointmentArgs(BaseModel):
    patient_id: int = Field(description="Patient ID (numeric)")
    doctor_id: str = Field(description="Doctor ID (UUID)")
    appointment_date: str = Field(description="Appointment date (YYYY-MM-DD)")
    start_time: str = Field(description="Start time (ISO datetime)")
    end_time: str = Field(description="End time (ISO datetime)")
    appointment_type: str = Field(description="Type (Consultation, Follow-up, etc.)")
    reason_for_visit: str | None = None
    appointment_status: str | None = Field(default=None, description="Status (default BOOKED)")
    notes: str | None = None


class UpdateAppointmentArgs(BaseModel):
    appointment_id: int = Field(description="Appointment ID")
    appointment_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    appointment_status: str | None = None
    reason_for_visit: str | None = None
    notes: str | None = None


class CancelAppointmentArgs(BaseModel):
    appointment_id: int = Field(description="Appointment ID to cancel")


def _join(*parts: Any) -> str:
    return " ".join(str(p) for p in parts if p).strip()


def _flatten_appointment(a: dict[str, Any]) -> dict[str, Any]:
    """Reduce a raw appointment row to the fields the model needs."""
    return {
        "appointmentId": a.get("appointment_id"),
        "appointmentDate": a.get("appointment_date"),
        "startTime": a.get("start_time"),
        "endTime": a.get("end_time"),
        "appointmentType": a.get("appointment_type"),
        "appointmentStatus": a.get("appointment_status"),
        "reasonForVisit": a.get("reason_for_visit"),
        "patientName": _join(a.get("patient_firstName"), a.get("patient_lastName")),
        "patientMrn": a.get("patient_mrn"),
        "doctorName": _join(
            a.get("doctor_title"), a.get("doctor_firstName"), a.get("doctor_lastName")
        ),
        "doctorSpecialty": a.get("doctor_specialty"),
    }


async def search_appointments(
    date_from: str | None = None,
    date_to: str | None = None,
    patient_name: str | None = None,
    doctor_name: str | None = None,
    mrn: str | None = None,
    search: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> str:
    """Search appointments with filters. Use date_from and date_to for date
    range queries; for "today's appointments" use today's date for both.
    Returns a paginated list with the total count."""
    params = compact(
        dateFrom=date_from,
        dateTo=date_to,
        patientName=patient_name,
        doctorName=doctor_name,
        mrn=mrn,
        search=search,
    )
    params.update(paging(page, limit))

    try:
        client = await get_client()
        data = listing(unwrap(await client.get("/appointments", params=params)), "appointments")
    except TOOL_ERRORS as e:
        return failure(e)

    return success(
        total=data.get("total", 0),
        page=data.get("page", 1),
        totalPages=data.get("totalPages", 1),
        appointments=[_flatten_appointment(a) for a in data.get("appointments", [])],
    )


async def get_checked_out_appointments(
    date_from: str | None = None,
    date_to: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> str:
    """Get completed/checked-out appointments. Useful for visit history
    queries."""
    params = compact(dateFrom=date_from, dateTo=date_to)
    params.update(paging(page, limit))

    try:
        client = await get_client()
        data = unwrap(await client.get("/appointments/completed", params=params))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(data=data)


async def get_appointment_doctors() -> str:
    """Get the list of doctors available for appointments."""
    try:
        client = await get_client()
        data = unwrap(await client.get("/appointments/doctors"))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(doctors=data)


async def search_patient_mrn(search: str) -> str:
    """Search for patients by MRN prefix. Returns matching patients and
    their MRNs."""
    try:
        client = await get_client()
        data = unwrap(
            await client.get("/appointments/search/mrn", params={"search": search})
        )
    except TOOL_ERRORS as e:
        return failure(e)
    return success(results=data)


async def create_appointment(**fields: Any) -> str:
    """Book a new appointment. Requires patient_id, doctor_id,
    appointment_date, start_time, end_time and appointment_type. Confirm the
    details with the user before calling this."""
    try:
        client = await get_client()
        data = await client.post("/appointments", json_data=compact(**fields))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Appointment created successfully", data=data)


async def update_appointment(appointment_id: int, **fields: Any) -> str:
    """Update an existing appointment (reschedule, change status, notes)."""
    try:
        client = await get_client()
        data = await client.put(
            f"/appointments/{appointment_id}", json_data=compact(**fields)
        )
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Appointment updated successfully", data=data)


async def cancel_appointment(appointment_id: int) -> str:
    """Cancel (soft delete) an appointment. Always ask the user for
    confirmation before calling this."""
    try:
        client = await get_client()
        data = await client.delete(f"/appointments/{appointment_id}")
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Appointment cancelled successfully", data=data)


appointment_tools = [
    make_tool(search_appointments, SearchAppointmentsArgs),
    make_tool(get_checked_out_appointments, CheckedOutAppointmentsArgs),
    make_tool(get_appointment_doctors, NoArgs),
    make_tool(search_patient_mrn, SearchPatientMrnArgs),
    make_tool(create_appointment, CreateAppointmentArgs),
    make_tool(update_appointment, UpdateAppointmentArgs),
    make_tool(cancel_appointment, CancelAppointmentArgs),
]
