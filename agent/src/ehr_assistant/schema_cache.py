"""Database schema cache for the system prompt.

Introspects the public tables once, keeps only the columns that are safe to
show clinic staff (no IDs, audit fields or secrets), and formats them as a
prompt section. ``clear_schema_cache`` drops the cache so a schema change is
picked up on the next load without a restart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ehr_assistant import db

logger = logging.getLogger(__name__)

HIDDEN_COLUMNS = frozenset(
    name.lower()
    for name in (
        # Primary/foreign keys
        "id",
        "patient_id",
        "doctor_id",
        "visit_id",
        "appointment_id",
        "prescription_id",
        "user_id",
        "group_id",
        "module_id",
        "location_id",
        "drug_id",
        "allergy_id",
        "clinical_note_id",
        "invoice_id",
        "receipt_id",
        "document_id",
        # Audit fields
        "createdAt",
        "createdBy",
        "updatedAt",
        "updatedBy",
        "created_at",
        "created_by",
        "updated_at",
        "updated_by",
        # Secrets
        "password",
        "passwordHash",
        "salt",
        "refreshToken",
        "token",
    )
)

STATUS_COLUMNS = ("status", "activeStatus", "active_status", "isActive", "is_active", "active")


@dataclass
class TableSchema:
    table_name: str
    columns: list[dict[str, Any]] = field(default_factory=list)
    display_columns: list[str] = field(default_factory=list)
    status_column: str | None = None


def is_hidden_column(name: str) -> bool:
    """True for ID-like, audit and secret columns.

    Anything ending in ``_id`` is hidden; ``mrn`` is the patient-facing
    record number and always stays visible.
    """
    lower = name.lower()
    if lower == "mrn":
        return False
    return lower in HIDDEN_COLUMNS or lower.endswith("_id")


def find_status_column(column_names: list[str]) -> str | None:
    """Return the column used to filter out soft-deleted rows, if any."""
    for name in column_names:
        if name in STATUS_COLUMNS:
            return name
    return None


def build_table_schema(table_name: str, columns: list[dict[str, Any]]) -> TableSchema:
    names = [c["column_name"] for c in columns]
    return TableSchema(
        table_name=table_name,
        columns=columns,
        display_columns=[n for n in names if not is_hidden_column(n)],
        status_column=find_status_column(names),
    )


_schema_cache: list[TableSchema] | None = None


async def load_schema() -> list[TableSchema]:
    """Load (once) and return the filtered schema of all public tables.

    A failed load is logged and returns an empty list without caching, so
    the next call tries again.
    """
    global _schema_cache  # noqa: PLW0603
    if _schema_cache is not None:
        return _schema_cache

    try:
        tables = await db.fetch(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public' AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """
        )
        schema: list[TableSchema] = []
        for table in tables:
            columns = await db.fetch(
                """
                SELECT column_name, data_type, is_nullable
                FROM information_schema.columns
                WHERE table_schema = 'public' AND table_name = $1
                ORDER BY ordinal_position
                """,
                table["table_name"],
            )
            schema.append(build_table_schema(table["table_name"], columns))
    except Exception:
        logger.exception("Failed to load database schema")
        return []

    _schema_cache = schema
    logger.info("Loaded schema for %d tables", len(schema))
    return schema


def get_schema_cache() -> list[TableSchema] | None:
    return _schema_cache


def clear_schema_cache() -> None:
    global _schema_cache  # noqa: PLW0603
    _schema_cache = None


def format_schema_for_prompt(schema: list[TableSchema]) -> str:
    """Render the display columns of each table as a prompt section."""
    if not schema:
        return "Schema not available."

    lines = [
        "## DATABASE SCHEMA (only showing columns safe to display):",
        "",
        "**IMPORTANT: Only use these columns in SELECT. Never select or display ID columns!**",
        "",
    ]
    for table in schema:
        if not table.display_columns:
            continue
        columns = ", ".join(f'"{c}"' for c in table.display_columns)
        status_note = f' | Filter: "{table.status_column}" = 1' if table.status_column else ""
        lines.append(f'### "{table.table_name}"{status_note}')
        lines.append(f"Columns: {columns}")
        lines.append("")

    return "\n".join(lines)
