"""SQL generation for the structured tools.

Identifiers reaching these functions have already passed the input models'
validators; values always travel as positional parameters.
"""

import json
from datetime import date, datetime, time
from typing import Any

from sqlite_mcp_models import CreateTableInput, InsertDataInput


def build_create_table_sql(args: CreateTableInput) -> str:
    definitions = []
    for column in args.columns:
        definition = f"{column.name} {column.type}"
        if column.constraints:
            definition += f" {column.constraints}"
        definitions.append(definition)
    return f"CREATE TABLE {args.table_name} ({', '.join(definitions)})"


def coerce_value(value: Any) -> Any:
    """Convert a JSON-ish value into something SQLite stores natively.

    None stays NULL, booleans become 0/1, dates become ISO-8601 text and
    containers become JSON text.
    """
    if value is None or isinstance(value, (str, bytes)):
        return value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def build_insert_sql(args: InsertDataInput) -> tuple[str, list[Any]]:
    """INSERT statement and its parameters, in the mapping's column order."""
    columns = list(args.data)
    placeholders = ", ".join("?" for _ in columns)
    sql = f"INSERT INTO {args.table_name} ({', '.join(columns)}) VALUES ({placeholders})"
    return sql, [coerce_value(args.data[column]) for column in columns]
