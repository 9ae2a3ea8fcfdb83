"""Prescription tools, scoped to a visit.

API endpoints used:
- GET    /visits/{visitId}/prescriptions                   — List
- POST   /visits/{visitId}/prescriptions                   — Create
- PUT    /visits/{visitId}/prescriptions/{prescriptionId}  — Update
- DELETE /visits/{visitId}/prescriptions/{prescriptionId}  — Soft delete
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ehr_assistant.ehr_client import get_client, unwrap
from ehr_assistant.tools.base import TOOL_ERRORS, compact, failure, make_tool, success


class VisitPrescriptionsArgs(BaseModel):
    visit_id: int = Field(description="The visit ID to get prescriptions for")


class CreatePrescriptionArgs(BaseModel):
    visit_id: int = Field(description="Visit ID")
    drug_name: str = Field(description="Drug/medication name")
    drug_generic: str | None = Field(default=None, description="Generic name")
    drug_type: str | None = None
    drug_dosage: str | None = None
    drug_measure: str | None = Field(default=None, description="Measure unit")
    instruction: str | None = None
    duration: int | None = None
    duration_type: str | None = Field(default=None, description="days, weeks or months")
    quantity: int | None = None
    notes: str | None = None


class UpdatePrescriptionArgs(BaseModel):
    visit_id: int = Field(description="Visit ID")
    prescription_id: int = Field(description="Prescription ID")
    drug_name: str | None = None
    drug_dosage: str | None = None
    instruction: str | None = None
    duration: int | None = None
    duration_type: str | None = None
    quantity: int | None = None
    notes: str | None = None


class DeletePrescriptionArgs(BaseModel):
    visit_id: int = Field(description="Visit ID")
    prescription_id: int = Field(description="Prescription ID")


async def get_visit_prescriptions(visit_id: int) -> str:
    """Get all prescriptions for a specific visit. Use after searching
    visits to get medication details."""
    try:
        client = await get_client()
        data = unwrap(await client.get(f"/visits/{visit_id}/prescriptions"))
    except TOOL_ERRORS as e:
        return failure(e)

    if isinstance(data, dict):
        data = data.get("prescriptions", [])
    return success(prescriptions=data)


async def create_prescription(visit_id: int, **fields: Any) -> str:
    """Create a new prescription for a visit. Requires visit_id and
    drug_name at minimum."""
    body = compact(visit_id=visit_id, **fields)
    try:
        client = await get_client()
        data = await client.post(f"/visits/{visit_id}/prescriptions", json_data=body)
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Prescription created successfully", data=data)


async def update_prescription(visit_id: int, prescription_id: int, **fields: Any) -> str:
    """Update an existing prescription."""
    try:
        client = await get_client()
        data = await client.put(
            f"/visits/{visit_id}/prescriptions/{prescription_id}",
            json_data=compact(**fields),
        )
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Prescription updated successfully", data=data)


async def delete_prescription(visit_id: int, prescription_id: int) -> str:
    """Soft delete a prescription. Always ask the user for confirmation
    before calling this."""
    try:
        client = await get_client()
        data = await client.delete(f"/visits/{visit_id}/prescriptions/{prescription_id}")
    except TOOL_ERRORS as e:
        return failure(e)
    return success(message="Prescription deleted successfully", data=data)


prescription_tools = [
    make_tool(get_visit_prescriptions, VisitPrescriptionsArgs),
    make_tool(create_prescription, CreatePrescriptionArgs),
    make_tool(update_prescription, UpdatePrescriptionArgs),
    make_tool(delete_prescription, DeletePrescriptionArgs),
]
