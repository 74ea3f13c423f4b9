"""Database connectivity, execution and introspection."""

from sqlite_mcp.db.connection import ConnectionCache, ConnectionEntry, create_sqlite_engine
from sqlite_mcp.db.executor import QueryExecutor, TransactionRunner, is_read_statement
from sqlite_mcp.db.paths import resolve_db_path

__all__ = [
    "resolve_db_path",
    "create_sqlite_engine",
    "ConnectionCache",
    "ConnectionEntry",
    "QueryExecutor",
    "TransactionRunner",
    "is_read_statement",
]
