"""Schema introspection against the SQLite catalog.

Everything here goes through QueryExecutor, so introspection shares the
connection cache and error classification with ordinary statements.
"""

import logging
from typing import Any

from sqlite_mcp_models import ColumnInfo, MetaResult, SchemaResult

from sqlite_mcp.db.executor import QueryExecutor

logger = logging.getLogger(__name__)

LIST_TABLES_SQL = """
    SELECT name
    FROM sqlite_master
    WHERE type = 'table'
      AND name NOT LIKE 'sqlite_%'
    ORDER BY name
"""

TABLE_EXISTS_SQL = """
    SELECT name
    FROM sqlite_master
    WHERE type = 'table'
      AND name = ?
      AND name NOT LIKE 'sqlite_%'
"""

TABLE_DDL_SQL = """
    SELECT sql
    FROM sqlite_master
    WHERE type = 'table'
      AND name = ?
"""

TABLES_AND_VIEWS_SQL = """
    SELECT name, type
    FROM sqlite_master
    WHERE type IN ('table', 'view')
      AND name NOT LIKE 'sqlite_%'
    ORDER BY type, name
"""

SCHEMA_FOR_NAME_SQL = """
    SELECT sql
    FROM sqlite_master
    WHERE name = ?
      AND type IN ('table', 'view', 'index', 'trigger')
      AND sql IS NOT NULL
"""

SCHEMA_ALL_SQL = """
    SELECT sql
    FROM sqlite_master
    WHERE type IN ('table', 'view', 'index', 'trigger')
      AND name NOT LIKE 'sqlite_%'
      AND sql IS NOT NULL
    ORDER BY type, name
"""

INDEXES_FOR_TABLE_SQL = """
    SELECT name, sql
    FROM sqlite_master
    WHERE type = 'index'
      AND tbl_name = ?
      AND name NOT LIKE 'sqlite_%'
    ORDER BY name
"""

INDEXES_ALL_SQL = """
    SELECT name, tbl_name, sql
    FROM sqlite_master
    WHERE type = 'index'
      AND name NOT LIKE 'sqlite_%'
    ORDER BY tbl_name, name
"""

# Rendered by `.pragma` without a target
PRAGMA_SUMMARY = (
    "database_list",
    "user_version",
    "schema_version",
    "page_size",
    "cache_size",
    "journal_mode",
    "synchronous",
    "foreign_keys",
)


# =============================================================================
# get_schema
# =============================================================================


def list_tables(executor: QueryExecutor, db_path: str) -> SchemaResult:
    """Names of all user tables, sorted."""
    result = executor.execute(db_path, LIST_TABLES_SQL)
    if not result.success:
        return SchemaResult(success=False, error=result.error or "Failed to list tables")
    return SchemaResult(success=True, tables=[row["name"] for row in result.data or []])


def describe_table(executor: QueryExecutor, db_path: str, table_name: str) -> SchemaResult:
    """Column metadata and DDL of one table.

    ``table_name`` must already be a validated identifier; it is interpolated
    into ``PRAGMA table_info``.
    """
    exists = executor.execute(db_path, TABLE_EXISTS_SQL, [table_name])
    if not exists.success:
        return SchemaResult(success=False, error=exists.error or "Failed to look up table")
    if not exists.data:
        return SchemaResult(success=False, error=f"Table '{table_name}' does not exist")

    info = executor.execute(db_path, f"PRAGMA table_info({table_name})")
    if not info.success:
        return SchemaResult(success=False, error=info.error or "Failed to read table info")

    ddl = executor.execute(db_path, TABLE_DDL_SQL, [table_name])
    ddl_text = ""
    if ddl.success and ddl.data:
        ddl_text = ddl.data[0].get("sql") or ""

    columns = [
        ColumnInfo(
            name=row["name"],
            type=row["type"],
            notnull=bool(row["notnull"]),
            dflt_value=row["dflt_value"],
            pk=bool(row["pk"]),
        )
        for row in info.data or []
    ]
    return SchemaResult(success=True, tables=[table_name], ddl=ddl_text, columns=columns)


# =============================================================================
# meta_commands
# =============================================================================


def _failed(result, fallback: str) -> MetaResult:
    return MetaResult(success=False, error=result.error or fallback)


def _render_row(row: dict[str, Any]) -> str:
    return " | ".join("NULL" if value is None else str(value) for value in row.values())


def tables_command(executor: QueryExecutor, db_path: str) -> MetaResult:
    result = executor.execute(db_path, TABLES_AND_VIEWS_SQL)
    if not result.success:
        return _failed(result, ".tables failed")
    rows = result.data or []
    if not rows:
        return MetaResult(success=True, result="No tables or views")
    return MetaResult(
        success=True, result="\n".join(f"{row['name']} ({row['type']})" for row in rows)
    )


def schema_command(executor: QueryExecutor, db_path: str, target: str | None = None) -> MetaResult:
    if target:
        result = executor.execute(db_path, SCHEMA_FOR_NAME_SQL, [target])
    else:
        result = executor.execute(db_path, SCHEMA_ALL_SQL)
    if not result.success:
        return _failed(result, ".schema failed")

    statements = [row["sql"] for row in result.data or [] if row.get("sql")]
    if not statements:
        message = f"No schema found for '{target}'" if target else "No schema"
        return MetaResult(success=True, result=message)
    return MetaResult(success=True, result=";\n\n".join(statements) + ";")


def indexes_command(
    executor: QueryExecutor, db_path: str, target: str | None = None
) -> MetaResult:
    if target:
        result = executor.execute(db_path, INDEXES_FOR_TABLE_SQL, [target])
    else:
        result = executor.execute(db_path, INDEXES_ALL_SQL)
    if not result.success:
        return _failed(result, ".indexes failed")

    rows = result.data or []
    if not rows:
        message = f"No indexes on '{target}'" if target else "No indexes"
        return MetaResult(success=True, result=message)

    lines = []
    for row in rows:
        sql = row.get("sql") or "AUTO INDEX"
        name = row["name"] if target else f"{row['tbl_name']}.{row['name']}"
        lines.append(f"{name}: {sql}")
    return MetaResult(success=True, result="\n".join(lines))


def pragma_command(
    executor: QueryExecutor, db_path: str, target: str | None = None
) -> MetaResult:
    """Run ``PRAGMA <target>``, or render a fixed summary when no target is given.

    ``target`` must already match the PRAGMA target pattern.
    """
    if not target:
        return _pragma_summary(executor, db_path)

    result = executor.execute(db_path, f"PRAGMA {target.strip()}")
    if not result.success:
        return _failed(result, ".pragma failed")
    rows = result.data or []
    if not rows:
        return MetaResult(success=True, result="No results")
    return MetaResult(success=True, result="\n".join(_render_row(row) for row in rows))


def _pragma_summary(executor: QueryExecutor, db_path: str) -> MetaResult:
    lines = []
    for name in PRAGMA_SUMMARY:
        result = executor.execute(db_path, f"PRAGMA {name}")
        if not result.success:
            logger.debug(f"Skipping PRAGMA {name}: {result.error}")
            continue
        for row in result.data or []:
            lines.append(f"{name} = {_render_row(row)}")

    if not lines:
        return MetaResult(success=False, error="No PRAGMA values could be read")
    return MetaResult(success=True, result="\n".join(lines))


META_COMMANDS = {
    ".tables": lambda executor, db_path, target: tables_command(executor, db_path),
    ".schema": schema_command,
    ".indexes": indexes_command,
    ".pragma": pragma_command,
}


def run_meta_command(
    executor: QueryExecutor, db_path: str, command: str, target: str | None = None
) -> MetaResult:
    handler = META_COMMANDS.get(command)
    if handler is None:
        return MetaResult(success=False, error=f"Unsupported meta command: {command}")
    return handler(executor, db_path, target)
