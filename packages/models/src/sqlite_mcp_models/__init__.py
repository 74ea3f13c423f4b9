"""Shared Pydantic models for sqlite-mcp."""

from sqlite_mcp_models.query import Operation, QueryResult, TransactionResult
from sqlite_mcp_models.tools import (
    ALLOWED_COLUMN_TYPES,
    ColumnDefinition,
    ColumnInfo,
    CreateTableInput,
    DeleteDataInput,
    EchoInput,
    GetSchemaInput,
    InsertDataInput,
    MetaCommandInput,
    MetaResult,
    SchemaResult,
    SelectDataInput,
    UpdateDataInput,
    base_column_type,
    is_valid_identifier,
)

__version__ = "0.1.0"

__all__ = [
    # Query
    "Operation",
    "QueryResult",
    "TransactionResult",
    # Tool inputs
    "ColumnDefinition",
    "CreateTableInput",
    "InsertDataInput",
    "SelectDataInput",
    "GetSchemaInput",
    "UpdateDataInput",
    "DeleteDataInput",
    "MetaCommandInput",
    "EchoInput",
    # Tool outputs
    "ColumnInfo",
    "SchemaResult",
    "MetaResult",
    # Identifier rules
    "ALLOWED_COLUMN_TYPES",
    "is_valid_identifier",
    "base_column_type",
]
