"""Doctor record tools (create, update, soft delete).

API endpoints used:
- POST   /doctors              — Add a doctor
- PUT    /doctors/{doctorId}   — Update a doctor
- DELETE /doctors/{doctorId}   — Soft delete a doctor
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ehr_assistant.ehr_client import get_client
from ehr_assistant.tools.base import TOOL_ERRORS, compact, failure, make_tool, success


class DoctorFields(BaseModel):
    title: str | None = Field(default=None, description="Usually 'Dr.'")
    first_name: str | None = None
    last_name: str | None = None
    specialty: str | None = None
    email: str | None = None
    phone: str | None = None
    license_number: str | None = None
    bio: str | None = None


class CreateDoctorArgs(DoctorFields):
    first_name: str
    last_name: str
    specialty: str
    email: str


class UpdateDoctorArgs(DoctorFields):
    doctor_id: str = Field(description="Doctor ID (UUID)")


class DeleteDoctorArgs(BaseModel):
    doctor_id: str = Field(description="Doctor ID (UUID)")


def _doctor_body(
    title: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    specialty: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    license_number: str | None = None,
    bio: str | None = None,
) -> dict[str, object]:
    return compact(
        title=title,
        firstName=first_name,
        lastName=last_name,
        specialty=specialty,
        email=email,
        phone=phone,
        licenseNumber=license_number,
        bio=bio,
    )


async def create_doctor(**fields: str | None) -> str:
    """Add a new doctor. Requires first_name, last_name, specialty and
    email; title, phone, license_number and bio are optional."""
    try:
        client = await get_client()
        data = await client.post("/doctors", json_data=_doctor_body(**fields))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Doctor created successfully", data=data)


async def update_doctor(doctor_id: str, **fields: str | None) -> str:
    """Update an existing doctor record. Pass doctor_id and only the fields
    that should change."""
    try:
        client = await get_client()
        data = await client.put(f"/doctors/{doctor_id}", json_data=_doctor_body(**fields))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Doctor updated successfully", data=data)


async def delete_doctor(doctor_id: str) -> str:
    """Soft delete a doctor record. Always ask the user for confirmation
    before calling this."""
    try:
        client = await get_client()
        data = await client.delete(f"/doctors/{doctor_id}")
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Doctor deleted successfully", data=data)


doctor_tools = [
    make_tool(create_doctor, CreateDoctorArgs),
    make_tool(update_doctor, UpdateDoctorArgs),
    make_tool(delete_doctor, DeleteDoctorArgs),
]
