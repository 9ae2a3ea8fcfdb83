"""Patient record tools (create, update, soft delete).

Reading and searching patients goes through the appointment/visit search
tools or, when enabled, the read-only database tools.

API endpoints used:
- POST   /patients               — Register a patient
- PUT    /patients/{patientId}   — Update a patient
- DELETE /patients/{patientId}   — Soft delete a patient
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ehr_assistant.ehr_client import get_client
from ehr_assistant.tools.base import TOOL_ERRORS, compact, failure, make_tool, success


class PatientFields(BaseModel):
    title: str | None = Field(default=None, description="Mr, Mrs, Ms, Dr, ...")
    first_name: str | None = None
    last_name: str | None = None
    gender: str | None = None
    date_of_birth: str | None = Field(default=None, description="YYYY-MM-DD")
    mobile_number: str | None = None
    address: str | None = None
    area: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    pincode: str | None = None
    aadhar: str | None = None
    referral_source: str | None = None
    comments: str | None = None


class CreatePatientArgs(PatientFields):
    first_name: str
    last_name: str
    gender: str
    mobile_number: str


class UpdatePatientArgs(PatientFields):
    patient_id: int = Field(description="Numeric patient ID")


class DeletePatientArgs(BaseModel):
    patient_id: int = Field(description="Numeric patient ID")


def _patient_body(
    title: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    gender: str | None = None,
    date_of_birth: str | None = None,
    mobile_number: str | None = None,
    address: str | None = None,
    area: str | None = None,
    city: str | None = None,
    state: str | None = None,
    country: str | None = None,
    pincode: str | None = None,
    aadhar: str | None = None,
    referral_source: str | None = None,
    comments: str | None = None,
) -> dict[str, object]:
    # The EHR API speaks camelCase (and spells "referalSource" that way).
    return compact(
        title=title,
        firstName=first_name,
        lastName=last_name,
        gender=gender,
        dateOfBirth=date_of_birth,
        mobileNumber=mobile_number,
        address=address,
        area=area,
        city=city,
        state=state,
        country=country,
        pincode=pincode,
        aadhar=aadhar,
        referalSource=referral_source,
        comments=comments,
    )


async def create_patient(**fields: str | None) -> str:
    """Register a new patient. Requires first_name, last_name, gender and
    mobile_number; address details, date_of_birth (YYYY-MM-DD), aadhar,
    referral_source and comments are optional. Confirm the details with the
    user before calling this."""
    try:
        client = await get_client()
        data = await client.post("/patients", json_data=_patient_body(**fields))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Patient created successfully", data=data)


async def update_patient(patient_id: int, **fields: str | None) -> str:
    """Update an existing patient record. Pass patient_id and only the
    fields that should change."""
    try:
        client = await get_client()
        data = await client.put(f"/patients/{patient_id}", json_data=_patient_body(**fields))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Patient updated successfully", data=data)


async def delete_patient(patient_id: int) -> str:
    """Soft delete a patient record. Always ask the user for confirmation
    before calling this."""
    try:
        client = await get_client()
        data = await client.delete(f"/patients/{patient_id}")
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Patient deleted successfully", data=data)


patient_tools = [
    make_tool(create_patient, CreatePatientArgs),
    make_tool(update_patient, UpdatePatientArgs),
    make_tool(delete_patient, DeletePatientArgs),
]
