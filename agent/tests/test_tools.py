"""Tests for the EHR API tool functions.

Each test mocks the get_client() singleton so no real EHR API is needed.
We verify that tools send the right endpoint/params, return the JSON
envelope the agent expects, and turn API failures into ``{"error": ...}``.
"""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pydantic import ValidationError

from ehr_assistant.ehr_client import EHRAPIError, EHRClient

# We patch get_client in each tool module to return a mock client.
# The mock client's verb methods return fake API responses.


def _mock_client(response: Any = None) -> AsyncMock:
    """Create a mock EHRClient whose verbs all return ``response``."""
    client = AsyncMock()
    client.get.return_value = response
    client.post.return_value = response
    client.put.return_value = response
    client.delete.return_value = response
    return client


# --- search_appointments ---


@pytest.mark.asyncio
@patch("ehr_assistant.tools.appointments.get_client")
async def test_search_appointments_flattens_rows(mock_gc: AsyncMock) -> None:
    """Rows should be reduced to readable names plus the total count."""
    client = _mock_client(
        {
            "data": {
                "total": 1,
                "page": 1,
                "totalPages": 1,
                "appointments": [
                    {
                        "appointment_id": 12,
                        "appointment_date": "2026-03-02",
                        "start_time": "09:00",
                        "appointment_status": "BOOKED",
                        "patient_firstName": "Asha",
                        "patient_lastName": "Rao",
                        "patient_mrn": "P001",
                        "doctor_title": "Dr.",
                        "doctor_firstName": "Vikram",
                        "doctor_lastName": "Nair",
                        "doctor_specialty": "Cardiology",
                    }
                ],
            }
        }
    )
    mock_gc.return_value = client
    from ehr_assistant.tools.appointments import search_appointments

    result = json.loads(await search_appointments(date_from="2026-03-02", date_to="2026-03-02"))

    assert result["success"] is True
    assert result["total"] == 1
    row = result["appointments"][0]
    assert row["patientName"] == "Asha Rao"
    assert row["doctorName"] == "Dr. Vikram Nair"
    assert row["patientMrn"] == "P001"

    path = client.get.call_args.args[0]
    params = client.get.call_args.kwargs["params"]
    assert path == "/appointments"
    assert params == {"dateFrom": "2026-03-02", "dateTo": "2026-03-02", "page": 1, "limit": 20}


@pytest.mark.asyncio
@patch("ehr_assistant.tools.appointments.get_client")
async def test_search_appointments_caps_page_size(mock_gc: AsyncMock) -> None:
    client = _mock_client({"data": {"total": 0, "appointments": []}})
    mock_gc.return_value = client
    from ehr_assistant.tools.appointments import search_appointments

    await search_appointments(limit=500, page=3)

    params = client.get.call_args.kwargs["params"]
    assert params["limit"] == 100
    assert params["page"] == 3


@pytest.mark.asyncio
@patch("ehr_assistant.tools.appointments.get_client")
async def test_search_appointments_clamps_non_positive_paging(mock_gc: AsyncMock) -> None:
    client = _mock_client({"data": {"total": 0, "appointments": []}})
    mock_gc.return_value = client
    from ehr_assistant.tools.appointments import search_appointments

    await search_appointments(limit=-5, page=-2)

    params = client.get.call_args.kwargs["params"]
    assert params["limit"] == 1
    assert params["page"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", [{"limit": -5}, {"page": 0}])
@patch("ehr_assistant.tools.appointments.get_client")
async def test_search_appointments_schema_rejects_non_positive_paging(
    mock_gc: AsyncMock, bad: dict[str, int]
) -> None:
    client = _mock_client({"data": {"total": 0, "appointments": []}})
    mock_gc.return_value = client
    from ehr_assistant.tools.appointments import appointment_tools

    tool = next(t for t in appointment_tools if t.name == "search_appointments")
    with pytest.raises(ValidationError):
        await tool.ainvoke(bad)

    client.get.assert_not_awaited()


@pytest.mark.asyncio
@patch("ehr_assistant.tools.appointments.get_client")
async def test_search_appointments_accepts_bare_list(mock_gc: AsyncMock) -> None:
    mock_gc.return_value = _mock_client({"data": [{"appointment_id": 1}, {"appointment_id": 2}]})
    from ehr_assistant.tools.appointments import search_appointments

    result = json.loads(await search_appointments())
    assert result["total"] == 2
    assert [a["appointmentId"] for a in result["appointments"]] == [1, 2]


@pytest.mark.asyncio
@patch("ehr_assistant.tools.appointments.get_client")
async def test_search_appointments_api_error(mock_gc: AsyncMock) -> None:
    """API errors come back as an error envelope, not an exception."""
    client = AsyncMock()
    client.get.side_effect = EHRAPIError(500, "Database unavailable")
    mock_gc.return_value = client
    from ehr_assistant.tools.appointments import search_appointments

    result = json.loads(await search_appointments())
    assert result == {"error": "Database unavailable"}


@pytest.mark.asyncio
async def test_tool_without_credential_returns_error() -> None:
    """With no caller token bound, the tool reports it and sends nothing."""
    sent: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(200, json={})

    client = EHRClient(base_url="http://ehr.test/api/v1")
    client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    with patch("ehr_assistant.tools.appointments.get_client", AsyncMock(return_value=client)):
        from ehr_assistant.tools.appointments import get_appointment_doctors

        result = json.loads(await get_appointment_doctors())

    assert result == {"error": "Authentication required"}
    assert sent == []
    await client.close()


# --- write tools ---


@pytest.mark.asyncio
@patch("ehr_assistant.tools.patients.get_client")
async def test_create_patient_maps_fields(mock_gc: AsyncMock) -> None:
    client = _mock_client({"success": True, "data": {"mrn": "P042"}})
    mock_gc.return_value = client
    from ehr_assistant.tools.patients import create_patient

    result = json.loads(
        await create_patient(
            first_name="Asha",
            last_name="Rao",
            gender="Female",
            mobile_number="9876543210",
            referral_source="Walk-in",
        )
    )

    assert result["success"] is True
    assert result["message"] == "Patient created successfully"
    client.post.assert_awaited_once_with(
        "/patients",
        json_data={
            "firstName": "Asha",
            "lastName": "Rao",
            "gender": "Female",
            "mobileNumber": "9876543210",
            "referalSource": "Walk-in",
        },
    )


@pytest.mark.asyncio
@patch("ehr_assistant.tools.patients.get_client")
async def test_update_patient_sends_only_changes(mock_gc: AsyncMock) -> None:
    client = _mock_client({"success": True})
    mock_gc.return_value = client
    from ehr_assistant.tools.patients import update_patient

    await update_patient(7, city="Pune")
    client.put.assert_awaited_once_with("/patients/7", json_data={"city": "Pune"})


@pytest.mark.asyncio
@patch("ehr_assistant.tools.appointments.get_client")
async def test_cancel_appointment(mock_gc: AsyncMock) -> None:
    client = _mock_client({"success": True})
    mock_gc.return_value = client
    from ehr_assistant.tools.appointments import cancel_appointment

    result = json.loads(await cancel_appointment(12))
    assert result["message"] == "Appointment cancelled successfully"
    client.delete.assert_awaited_once_with("/appointments/12")


@pytest.mark.asyncio
@patch("ehr_assistant.tools.doctors.get_client")
async def test_delete_doctor_not_found(mock_gc: AsyncMock) -> None:
    client = AsyncMock()
    client.delete.side_effect = EHRAPIError(404, "Doctor not found")
    mock_gc.return_value = client
    from ehr_assistant.tools.doctors import delete_doctor

    result = json.loads(await delete_doctor("d-1"))
    assert result == {"error": "Doctor not found"}


@pytest.mark.asyncio
@patch("ehr_assistant.tools.billing.get_client")
async def test_create_invoice_through_tool_schema(mock_gc: AsyncMock) -> None:
    """Invoking through the StructuredTool validates nested line items."""
    client = _mock_client({"success": True, "data": {"invoice_id": 3}})
    mock_gc.return_value = client
    from ehr_assistant.tools.billing import billing_tools

    tool = next(t for t in billing_tools if t.name == "create_invoice")
    result = json.loads(
        await tool.ainvoke(
            {
                "patient_id": 1,
                "visit_id": 2,
                "items": [{"item_type": "procedure", "item_name": "ECG", "unit_amount": 500}],
            }
        )
    )

    assert result["success"] is True
    body = client.post.call_args.kwargs["json_data"]
    assert body["patient_id"] == 1
    assert body["items"] == [{"item_type": "procedure", "item_name": "ECG", "unit_amount": 500.0}]


@pytest.mark.asyncio
@patch("ehr_assistant.tools.visits.get_client")
async def test_visit_status_counts_params(mock_gc: AsyncMock) -> None:
    client = _mock_client({"data": {"booked": 3, "checkedOut": 5}})
    mock_gc.return_value = client
    from ehr_assistant.tools.visits import get_visit_status_counts

    result = json.loads(await get_visit_status_counts(doctor_id="abc"))
    assert result["statusCounts"] == {"booked": 3, "checkedOut": 5}
    assert client.get.call_args.kwargs["params"] == {"doctorId": "abc"}


# --- dashboard ---


@pytest.mark.asyncio
@patch("ehr_assistant.tools.dashboard.get_client")
async def test_dashboard_metrics_passes_envelope_through(mock_gc: AsyncMock) -> None:
    client = _mock_client({"success": True, "data": {"visitsToday": 14}})
    mock_gc.return_value = client
    from ehr_assistant.tools.dashboard import get_dashboard_metrics

    result = json.loads(await get_dashboard_metrics(date="2026-03-02"))
    assert result == {"success": True, "data": {"visitsToday": 14}}
    assert client.get.call_args.kwargs["params"] == {"date": "2026-03-02"}


@pytest.mark.asyncio
@patch("ehr_assistant.tools.dashboard.get_client")
async def test_revenue_trend_defaults_to_seven_days(mock_gc: AsyncMock) -> None:
    client = _mock_client([{"date": "2026-03-01", "revenue": 1200}])
    mock_gc.return_value = client
    from ehr_assistant.tools.dashboard import get_dashboard_revenue_trend

    result = json.loads(await get_dashboard_revenue_trend())
    assert result["success"] is True
    assert result["data"][0]["revenue"] == 1200
    assert client.get.call_args.kwargs["params"] == {"days": 7}


# --- patient context ---


@pytest.mark.asyncio
@patch("ehr_assistant.tools.patient_context.get_client")
async def test_patient_allergies(mock_gc: AsyncMock) -> None:
    client = _mock_client({"data": [{"allergen": "Penicillin", "severity": "severe"}]})
    mock_gc.return_value = client
    from ehr_assistant.tools.patient_context import get_patient_allergies

    result = json.loads(await get_patient_allergies(5))
    assert result["allergies"][0]["allergen"] == "Penicillin"
    client.get.assert_awaited_once_with("/patients/5/allergies")


# --- catalog ---


def test_catalog_names_are_unique() -> None:
    from ehr_assistant.tools import build_catalog

    names = [t.name for t in build_catalog(include_database=True)]
    assert len(names) == len(set(names))


def test_catalog_database_tools_are_optional() -> None:
    from ehr_assistant.tools import build_catalog

    without = {t.name for t in build_catalog()}
    with_db = {t.name for t in build_catalog(include_database=True)}

    assert "query_database" not in without
    assert {"list_database_tables", "get_table_schema", "query_database"} <= with_db
    assert without < with_db


def test_every_tool_has_a_description() -> None:
    from ehr_assistant.tools import build_catalog

    for tool in build_catalog(include_database=True):
        assert tool.description, tool.name
