"""EHR tools for the AI agent.

Each module in this package contains "tools": async functions the agent
can call, wrapped as StructuredTools with a pydantic input schema. The
model reads each tool's description (the docstring) to decide which one
to use. Every tool returns a JSON string, either ``{"success": true, ...}``
or ``{"error": "..."}``, and never raises.

Tools are organized by domain:
- patients.py:         Create, update, delete patients
- doctors.py:          Create, update, delete doctors
- appointments.py:     Search and manage appointments
- visits.py:           Visit search and status counts
- prescriptions.py:    Visit prescriptions
- billing.py:          Invoices, receipts, billing visits
- dashboard.py:        Daily KPIs, patient flow, revenue trend
- patient_context.py:  Allergies, emergency contacts, extended info
- database.py:         Read-only SQL (only when DATABASE_URL is set)
"""

from __future__ import annotations

from langchain_core.tools import BaseTool

from ehr_assistant.tools.appointments import appointment_tools
from ehr_assistant.tools.billing import billing_tools
from ehr_assistant.tools.dashboard import dashboard_tools
from ehr_assistant.tools.database import database_tools
from ehr_assistant.tools.doctors import doctor_tools
from ehr_assistant.tools.patient_context import patient_context_tools
from ehr_assistant.tools.patients import patient_tools
from ehr_assistant.tools.prescriptions import prescription_tools
from ehr_assistant.tools.visits import visit_tools

API_TOOLS: list[BaseTool] = [
    *patient_tools,
    *doctor_tools,
    *appointment_tools,
    *visit_tools,
    *prescription_tools,
    *billing_tools,
    *dashboard_tools,
    *patient_context_tools,
]


def build_catalog(include_database: bool = False) -> list[BaseTool]:
    """Return the ordered list of tools exposed to the model.

    Raises:
        ValueError: If two tools share a name (dispatch is by name).
    """
    tools = list(API_TOOLS)
    if include_database:
        tools.extend(database_tools)

    seen: set[str] = set()
    for tool in tools:
        if tool.name in seen:
            raise ValueError(f"Duplicate tool name: {tool.name}")
        seen.add(tool.name)
    return tools
