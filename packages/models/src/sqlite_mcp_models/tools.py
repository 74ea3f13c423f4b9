"""Tool input and output models.

Each tool's argument contract is a pydantic model; the validators below are
the only gate between a raw argument object and a handler.
"""

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
IDENTIFIER_MAX_LENGTH = 64

ALLOWED_COLUMN_TYPES = frozenset(
    {
        "INTEGER",
        "TEXT",
        "REAL",
        "BLOB",
        "NUMERIC",
        "VARCHAR",
        "CHAR",
        "BOOLEAN",
        "DATE",
        "DATETIME",
        "TIMESTAMP",
        "DECIMAL",
        "FLOAT",
        "DOUBLE",
    }
)

# Statements that may not appear inside an update_data / delete_data query
UPDATE_FORBIDDEN_PATTERNS = (
    re.compile(r"\bdrop\s+table\b", re.IGNORECASE),
    re.compile(r"\bdelete\s+from\b", re.IGNORECASE),
    re.compile(r"\btruncate\b", re.IGNORECASE),
    re.compile(r"\balter\s+table\b", re.IGNORECASE),
    re.compile(r"\bcreate\s+table\b", re.IGNORECASE),
)
DELETE_FORBIDDEN_PATTERNS = (
    re.compile(r"\bdrop\s+table\b", re.IGNORECASE),
    re.compile(r"\btruncate\b", re.IGNORECASE),
    re.compile(r"\balter\s+table\b", re.IGNORECASE),
    re.compile(r"\bcreate\s+table\b", re.IGNORECASE),
    re.compile(r"\bupdate\s+", re.IGNORECASE),
    re.compile(r"\binsert\s+", re.IGNORECASE),
)

# PRAGMA name, optionally followed by "(arg)" or "= value"
PRAGMA_TARGET_PATTERN = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_]*"
    r"(\s*\(\s*[A-Za-z_][A-Za-z0-9_]*\s*\)|\s*=\s*[A-Za-z0-9_'\-]+)?$"
)

MetaCommand = Literal[".tables", ".schema", ".indexes", ".pragma"]


def is_valid_identifier(name: str) -> bool:
    """Table/column names: letter or underscore first, then word characters."""
    return (
        isinstance(name, str)
        and len(name) <= IDENTIFIER_MAX_LENGTH
        and IDENTIFIER_PATTERN.match(name) is not None
    )


def base_column_type(column_type: str) -> str:
    """Type name before any length/precision suffix, e.g. VARCHAR(20) -> VARCHAR."""
    return column_type.split("(", 1)[0].strip().upper()


def _check_identifier(value: str, kind: str) -> str:
    if not is_valid_identifier(value):
        raise ValueError(f"Invalid {kind} name: {value!r}")
    return value


class _ToolInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    db_path: str = Field(
        ..., alias="dbPath", min_length=1, description="Path to the SQLite database file"
    )


# =============================================================================
# Create
# =============================================================================


class ColumnDefinition(BaseModel):
    """One column of a CREATE TABLE statement."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Column name")
    type: str = Field(..., min_length=1, description="Column type, e.g. INTEGER or VARCHAR(20)")
    constraints: str | None = Field(
        default=None, description="Column constraints, e.g. PRIMARY KEY or NOT NULL"
    )

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        return _check_identifier(value, "column")

    @field_validator("type")
    @classmethod
    def _type(cls, value: str) -> str:
        if base_column_type(value) not in ALLOWED_COLUMN_TYPES:
            raise ValueError(f"Invalid column type: {value!r}")
        return value


class CreateTableInput(_ToolInput):
    """Arguments of create_table."""

    table_name: str = Field(..., alias="tableName", description="Name of the table to create")
    columns: list[ColumnDefinition] = Field(
        ..., min_length=1, description="Column definitions, in order"
    )

    @field_validator("table_name")
    @classmethod
    def _table_name(cls, value: str) -> str:
        return _check_identifier(value, "table")


class InsertDataInput(_ToolInput):
    """Arguments of insert_data."""

    table_name: str = Field(..., alias="tableName", description="Target table")
    data: dict[str, Any] = Field(..., min_length=1, description="Column name to value mapping")

    @field_validator("table_name")
    @classmethod
    def _table_name(cls, value: str) -> str:
        return _check_identifier(value, "table")

    @field_validator("data")
    @classmethod
    def _columns(cls, value: dict[str, Any]) -> dict[str, Any]:
        for column in value:
            _check_identifier(column, "column")
        return value


# =============================================================================
# Read
# =============================================================================


class _StatementInput(_ToolInput):
    query: str = Field(..., min_length=1, description="SQL statement with ? placeholders")
    params: list[Any] | None = Field(default=None, description="Positional parameters")


class SelectDataInput(_StatementInput):
    """Arguments of select_data."""

    @field_validator("query")
    @classmethod
    def _select_only(cls, value: str) -> str:
        if not value.strip().lower().startswith("select"):
            raise ValueError("Only SELECT queries are allowed")
        return value


class GetSchemaInput(_ToolInput):
    """Arguments of get_schema."""

    table_name: str | None = Field(
        default=None, alias="tableName", description="Table to describe (omit to list tables)"
    )

    @field_validator("table_name")
    @classmethod
    def _table_name(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _check_identifier(value, "table")


# =============================================================================
# Update / Delete
# =============================================================================


class UpdateDataInput(_StatementInput):
    """Arguments of update_data."""

    @field_validator("query")
    @classmethod
    def _update_only(cls, value: str) -> str:
        lowered = value.strip().lower()
        if not lowered.startswith("update"):
            raise ValueError("Only UPDATE queries are allowed")
        if not re.search(r"\bset\b", lowered):
            raise ValueError("UPDATE query requires a SET clause")
        if any(pattern.search(value) for pattern in UPDATE_FORBIDDEN_PATTERNS):
            raise ValueError("Query contains a forbidden SQL statement")
        return value


class DeleteDataInput(_StatementInput):
    """Arguments of delete_data."""

    @field_validator("query")
    @classmethod
    def _delete_only(cls, value: str) -> str:
        lowered = value.strip().lower()
        if not lowered.startswith("delete"):
            raise ValueError("Only DELETE queries are allowed")
        if not re.search(r"\bfrom\b", lowered):
            raise ValueError("DELETE query requires a FROM clause")
        if any(pattern.search(value) for pattern in DELETE_FORBIDDEN_PATTERNS):
            raise ValueError("Query contains a forbidden SQL statement")
        return value


# =============================================================================
# Meta commands
# =============================================================================


class MetaCommandInput(_ToolInput):
    """Arguments of meta_commands."""

    command: MetaCommand = Field(..., description="Meta command to run")
    target: str | None = Field(
        default=None, description="Command target: table name, or PRAGMA name for .pragma"
    )

    @model_validator(mode="after")
    def _pragma_target(self) -> "MetaCommandInput":
        if self.command == ".pragma" and self.target is not None:
            if not PRAGMA_TARGET_PATTERN.match(self.target.strip()):
                raise ValueError(f"Invalid PRAGMA target: {self.target!r}")
        return self


class EchoInput(BaseModel):
    """Arguments of the diagnostic test_tool."""

    model_config = ConfigDict(extra="forbid")

    message: str = Field(..., description="Message to echo back")


# =============================================================================
# Outputs
# =============================================================================


class ColumnInfo(BaseModel):
    """Column metadata as reported by PRAGMA table_info."""

    name: str
    type: str
    notnull: bool
    dflt_value: Any = None
    pk: bool


class SchemaResult(BaseModel):
    """Result of get_schema."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    tables: list[str] | None = Field(default=None, description="Table names")
    ddl: str | None = Field(default=None, alias="schema", description="CREATE TABLE statement")
    columns: list[ColumnInfo] | None = Field(default=None, description="Column metadata")
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class MetaResult(BaseModel):
    """Result of meta_commands."""

    success: bool
    result: str = ""
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
