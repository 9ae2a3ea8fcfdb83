"""Patient medical context tools — allergies, emergency contacts, extended info.

API endpoints used:
- GET /patients/{patientId}/allergies  — Allergy list with severity
- GET /patients/{patientId}/emergency  — Emergency contacts
- GET /patients/{patientId}/info       — Blood group, occupation, primary doctor
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ehr_assistant.ehr_client import get_client, unwrap
from ehr_assistant.tools.base import TOOL_ERRORS, failure, make_tool, success


class PatientIdArgs(BaseModel):
    patient_id: int = Field(description="The numeric patient ID")


async def get_patient_allergies(patient_id: int) -> str:
    """Get the allergies (with severity and notes) recorded for a patient.
    Use this when asked about patient allergies or adverse reactions."""
    try:
        client = await get_client()
        data = unwrap(await client.get(f"/patients/{patient_id}/allergies"))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(allergies=data)


async def get_patient_emergency(patient_id: int) -> str:
    """Get the emergency contacts (name, relation, phone number) for a
    patient."""
    try:
        client = await get_client()
        data = unwrap(await client.get(f"/patients/{patient_id}/emergency"))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(emergencyContacts=data)


async def get_patient_info(patient_id: int) -> str:
    """Get extended patient information such as blood group, occupation,
    overseas status and primary doctor."""
    try:
        client = await get_client()
        data = unwrap(await client.get(f"/patients/{patient_id}/info"))
    except TOOL_ERRORS as e:
        return failure(e)
    return success(patientInfo=data)


patient_context_tools = [
    make_tool(get_patient_allergies, PatientIdArgs),
    make_tool(get_patient_emergency, PatientIdArgs),
    make_tool(get_patient_info, PatientIdArgs),
]
