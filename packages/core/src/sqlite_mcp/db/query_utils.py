"""Helpers for building and checking parameterized statements."""

import re
from collections.abc import Mapping, Sequence
from typing import Any

from sqlite_mcp_models import Operation, QueryResult, is_valid_identifier

QUERY_TYPES = ("SELECT", "INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER", "PRAGMA")

INJECTION_PATTERNS = (
    re.compile(r";\s*(drop|delete|update|insert|create|alter)\s+", re.IGNORECASE),
    re.compile(r"union\s+select", re.IGNORECASE),
    re.compile(r"--"),
    re.compile(r"/\*"),
    re.compile(r"\*/"),
)

DEFAULT_BATCH_SIZE = 100


def detect_query_type(sql: str) -> str:
    """Leading keyword of a statement, or ``UNKNOWN``."""
    head = sql.strip().upper()
    for query_type in QUERY_TYPES:
        if head.startswith(query_type):
            return query_type
    return "UNKNOWN"


def count_placeholders(sql: str) -> int:
    return sql.count("?")


def validate_sql_params(sql: str, params: Sequence[Any] | None) -> bool:
    """Check that the number of ``?`` placeholders matches the parameters."""
    return count_placeholders(sql) == len(params or ())


def validate_identifier(name: str) -> bool:
    return is_valid_identifier(name)


def basic_injection_check(sql: str) -> bool:
    """Return False when the statement looks stacked, unioned, or commented."""
    return not any(pattern.search(sql) for pattern in INJECTION_PATTERNS)


def is_expected_result(result: QueryResult, query_type: str) -> bool:
    """A successful SELECT carries rows; anything else carries a row count."""
    if not result.success:
        return False
    if query_type.upper() == "SELECT":
        return result.data is not None
    return result.rows_affected is not None


def _require_table(table_name: str) -> None:
    if not validate_identifier(table_name):
        raise ValueError(f"Invalid table name: {table_name}")


def _require_columns(columns: Sequence[str]) -> None:
    for column in columns:
        if not validate_identifier(column):
            raise ValueError(f"Invalid column name: {column}")


def insert_sql(table_name: str, columns: Sequence[str]) -> str:
    _require_table(table_name)
    _require_columns(columns)
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table_name} ({', '.join(columns)}) VALUES ({placeholders})"


class TransactionBuilder:
    """Accumulate operations for a TransactionRunner.

    Example:
        ops = (
            TransactionBuilder()
            .insert("users", {"name": "John"})
            .update("users", {"active": 1}, "name = ?", ["John"])
            .build()
        )
    """

    def __init__(self):
        self._operations: list[Operation] = []

    def __len__(self) -> int:
        return len(self._operations)

    def add(self, sql: str, params: Sequence[Any] | None = None) -> "TransactionBuilder":
        self._operations.append(Operation(sql=sql, params=list(params or [])))
        return self

    def insert(self, table_name: str, data: Mapping[str, Any]) -> "TransactionBuilder":
        columns = list(data)
        return self.add(insert_sql(table_name, columns), [data[c] for c in columns])

    def update(
        self,
        table_name: str,
        data: Mapping[str, Any],
        where: str,
        where_params: Sequence[Any] | None = None,
    ) -> "TransactionBuilder":
        _require_table(table_name)
        columns = list(data)
        _require_columns(columns)
        set_clause = ", ".join(f"{column} = ?" for column in columns)
        params = [data[c] for c in columns] + list(where_params or [])
        return self.add(f"UPDATE {table_name} SET {set_clause} WHERE {where}", params)

    def delete(
        self, table_name: str, where: str, where_params: Sequence[Any] | None = None
    ) -> "TransactionBuilder":
        _require_table(table_name)
        return self.add(f"DELETE FROM {table_name} WHERE {where}", where_params)

    def build(self) -> list[Operation]:
        """Copy of the accumulated operations."""
        return list(self._operations)

    def clear(self) -> "TransactionBuilder":
        self._operations = []
        return self


def batch_insert_operations(
    table_name: str,
    records: Sequence[Mapping[str, Any]],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> list[list[Operation]]:
    """Split records into batches of INSERT operations.

    Column order comes from the first record; records missing a column insert
    NULL for it.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    _require_table(table_name)
    if not records:
        return []

    columns = list(records[0])
    sql = insert_sql(table_name, columns)
    return [
        [
            Operation(sql=sql, params=[record.get(column) for column in columns])
            for record in records[i : i + batch_size]
        ]
        for i in range(0, len(records), batch_size)
    ]
