"""Read-only database tools — table listing, table schema and SELECT queries.

Only registered when DATABASE_URL is configured. Like the API tools they
require a bound caller credential, even though the query itself runs on the
assistant's own connection pool, so an unauthenticated run can never read
clinic data.

``query_database`` only executes statements that pass ``validate_select``:
the text must start with SELECT, must not contain a mutating keyword or a
side-effecting function call, and gets a LIMIT appended unless it already
ends with one. It then runs inside a read-only transaction, so anything
the text checks miss is refused by PostgreSQL itself.
"""

from __future__ import annotations

import json
import logging
import re

from pydantic import BaseModel, Field

from ehr_assistant import db
from ehr_assistant.config import QUERY_DEFAULT_LIMIT
from ehr_assistant.credentials import AuthenticationRequired, require_credential
from ehr_assistant.tools.base import NoArgs, failure, make_tool, success

logger = logging.getLogger(__name__)

FORBIDDEN_KEYWORDS = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "ALTER",
    "TRUNCATE",
    "CREATE",
    "GRANT",
    "REVOKE",
    "INTO",
    "COPY",
    "LOCK",
)

# Functions with side effects that a plain SELECT can still call.
FORBIDDEN_FUNCTIONS = (
    "nextval",
    "setval",
    "pg_terminate_backend",
    "pg_cancel_backend",
    "pg_reload_conf",
    "pg_sleep",
    "pg_read_file",
    "pg_read_binary_file",
    "lo_import",
    "lo_export",
    "dblink",
    "dblink_exec",
    "set_config",
)

# Only a LIMIT closing the statement caps the outer result.
_TRAILING_LIMIT_RE = re.compile(r"\bLIMIT\s+\d+(\s+OFFSET\s+\d+)?\s*;?\s*$", re.IGNORECASE)
_KEYWORD_RES = {kw: re.compile(rf"\b{kw}\b", re.IGNORECASE) for kw in FORBIDDEN_KEYWORDS}
_FUNCTION_RES = {fn: re.compile(rf"\b{fn}\s*\(", re.IGNORECASE) for fn in FORBIDDEN_FUNCTIONS}

QUERY_HINT = (
    'Check table/column names. Tables are PascalCase with double quotes: "Patient", "Doctor"'
)


class QueryRejected(ValueError):
    """A query failed the read-only checks and was not executed."""


class TableSchemaArgs(BaseModel):
    table_name: str = Field(description='Table name, e.g. "Patient"')


class QueryDatabaseArgs(BaseModel):
    query: str = Field(
        description=(
            "A single SQL SELECT statement. May also be a JSON object string "
            'like {"query": "SELECT ...", "limit": 20}.'
        )
    )
    limit: int | None = Field(
        default=None, description="Row cap appended when the query has no LIMIT (default 50)"
    )


def unwrap_query(raw: str, limit: int | None = None) -> tuple[str, int | None]:
    """Accept either plain SQL or a JSON object carrying ``query``/``limit``."""
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return raw, limit
    if isinstance(parsed, dict) and isinstance(parsed.get("query"), str):
        inner_limit = parsed.get("limit")
        if isinstance(inner_limit, int) and not isinstance(inner_limit, bool):
            limit = inner_limit
        return parsed["query"], limit
    if isinstance(parsed, str):
        return parsed, limit
    return raw, limit


def validate_select(query: str, limit: int | None = None) -> str:
    """Return the query to execute, or raise QueryRejected.

    Keywords are matched as whole words anywhere in the text, so quoted
    column names like "createdAt" or "isDeleted" are not rejected.
    A LIMIT counts only when it closes the statement; one inside a
    subquery or a string literal does not cap the result.
    """
    sql = (query or "").strip()
    if not sql:
        raise QueryRejected("Query is required. Please provide a SQL SELECT query.")

    for keyword, pattern in _KEYWORD_RES.items():
        if pattern.search(sql):
            raise QueryRejected(
                f"Query contains forbidden keyword: {keyword}. Only SELECT queries are allowed."
            )

    for function, pattern in _FUNCTION_RES.items():
        if pattern.search(sql):
            raise QueryRejected(
                f"Query calls forbidden function: {function}. Only read-only queries are allowed."
            )

    if not sql.upper().startswith("SELECT"):
        raise QueryRejected("Only SELECT queries are allowed. Query must start with SELECT.")

    if _TRAILING_LIMIT_RE.search(sql):
        return sql

    cap = limit if limit and limit > 0 else QUERY_DEFAULT_LIMIT
    return f"{sql.rstrip(';').rstrip()} LIMIT {cap}"


async def list_database_tables() -> str:
    """List all tables in the clinic database."""
    try:
        require_credential()
        rows = await db.fetch(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public' AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """
        )
    except AuthenticationRequired as e:
        return failure(e)
    except Exception as e:
        logger.warning("list_database_tables failed: %s", e)
        return failure(e)
    return success(tables=[r["table_name"] for r in rows], count=len(rows))


async def get_table_schema(table_name: str) -> str:
    """Get the columns and foreign-key relationships of one table."""
    try:
        require_credential()
        columns = await db.fetch(
            """
            SELECT column_name, data_type, is_nullable, column_default,
                   character_maximum_length
            FROM information_schema.columns
            WHERE table_schema = 'public' AND table_name = $1
            ORDER BY ordinal_position
            """,
            table_name,
        )
        foreign_keys = await db.fetch(
            """
            SELECT kcu.column_name AS column,
                   ccu.table_name AS foreign_table,
                   ccu.column_name AS foreign_column
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.key_column_usage AS kcu
              ON tc.constraint_name = kcu.constraint_name
            JOIN information_schema.constraint_column_usage AS ccu
              ON ccu.constraint_name = tc.constraint_name
            WHERE tc.constraint_type = 'FOREIGN KEY' AND tc.table_name = $1
            """,
            table_name,
        )
    except AuthenticationRequired as e:
        return failure(e)
    except Exception as e:
        logger.warning("get_table_schema(%s) failed: %s", table_name, e)
        return failure(e)
    return success(table=table_name, columns=columns, foreignKeys=foreign_keys)


async def query_database(query: str, limit: int | None = None) -> str:
    """Execute a read-only SELECT query on the clinic database. Example:
    SELECT "firstName", "lastName", "mrn" FROM "Patient" WHERE "firstName"
    ILIKE '%john%' LIMIT 10. Never select ID or audit columns."""
    try:
        require_credential()
    except AuthenticationRequired as e:
        return failure(e)

    sql, limit = unwrap_query(query, limit)
    try:
        safe_sql = validate_select(sql, limit)
    except QueryRejected as e:
        return failure(e)

    logger.debug("Executing read-only query: %s", safe_sql)
    try:
        rows = await db.fetch_readonly(safe_sql)
    except Exception as e:
        logger.warning("query_database failed: %s", e)
        return json.dumps({"success": False, "error": str(e), "hint": QUERY_HINT})
    return success(rowCount=len(rows), data=rows)


database_tools = [
    make_tool(list_database_tables, NoArgs),
    make_tool(get_table_schema, TableSchemaArgs),
    make_tool(query_database, QueryDatabaseArgs),
]
