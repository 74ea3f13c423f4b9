"""Error taxonomy and classification.

Every failure is mapped into one of three disjoint families:

- DatabaseFailure - connection/file level (tagged with the database path)
- SQLFailure - statement level (tagged with the query text)
- ProtocolFailure - tool-call level (tagged with a JSON-RPC style code)

Classification is first-match over the ordered rule tables below. Each rule
is a tuple of lowercase substrings and the category it selects; the last
line of each table is the fallback. These tables are the single source of
truth for error categories.
"""

import json
import logging
from enum import Enum
from typing import Any

from mcp.types import CallToolResult, TextContent
from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import DBAPIError

logger = logging.getLogger(__name__)


class DatabaseErrorType(str, Enum):
    """Connection/file level failure categories."""

    INVALID_PATH = "INVALID_PATH"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    DISK_FULL = "DISK_FULL"
    CORRUPTED_DATABASE = "CORRUPTED_DATABASE"
    CONNECTION_FAILED = "CONNECTION_FAILED"


class SQLErrorType(str, Enum):
    """Statement level failure categories."""

    SYNTAX_ERROR = "SYNTAX_ERROR"
    TABLE_NOT_EXISTS = "TABLE_NOT_EXISTS"
    COLUMN_NOT_EXISTS = "COLUMN_NOT_EXISTS"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    TYPE_MISMATCH = "TYPE_MISMATCH"


class ProtocolErrorType(str, Enum):
    """Tool-call level failure categories."""

    INVALID_REQUEST = "INVALID_REQUEST"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    INTERNAL_ERROR = "INTERNAL_ERROR"


PROTOCOL_ERROR_CODES: dict[ProtocolErrorType, int] = {
    ProtocolErrorType.INVALID_REQUEST: -32600,
    ProtocolErrorType.TOOL_NOT_FOUND: -32601,
    ProtocolErrorType.INVALID_PARAMETERS: -32602,
    ProtocolErrorType.INTERNAL_ERROR: -32603,
}

# =============================================================================
# Rule tables (evaluated top to bottom, first match wins)
# =============================================================================

DATABASE_RULES: list[tuple[tuple[str, ...], DatabaseErrorType]] = [
    (("no such file", "cannot open", "unable to open"), DatabaseErrorType.INVALID_PATH),
    (("permission", "access denied"), DatabaseErrorType.PERMISSION_DENIED),
    (("disk full", "no space"), DatabaseErrorType.DISK_FULL),
    (("corrupt", "malformed", "not a database"), DatabaseErrorType.CORRUPTED_DATABASE),
]
DATABASE_FALLBACK = DatabaseErrorType.CONNECTION_FAILED

# Needles are raw substrings of the lowered message, so "near" also matches
# "linear" inside a quoted identifier and labels it a syntax error.
SQL_RULES: list[tuple[tuple[str, ...], SQLErrorType]] = [
    (("syntax error", "near"), SQLErrorType.SYNTAX_ERROR),
    (("no such table",), SQLErrorType.TABLE_NOT_EXISTS),
    (("no such column",), SQLErrorType.COLUMN_NOT_EXISTS),
    (("constraint", "unique", "foreign key"), SQLErrorType.CONSTRAINT_VIOLATION),
    (("type", "affinity"), SQLErrorType.TYPE_MISMATCH),
]
# Unclassified statement errors are reported as syntax errors. This mislabels
# e.g. "database is locked"; kept for compatibility with existing clients.
SQL_FALLBACK = SQLErrorType.SYNTAX_ERROR

PROTOCOL_RULES: list[tuple[tuple[str, ...], ProtocolErrorType]] = [
    (("tool not found", "unknown tool"), ProtocolErrorType.TOOL_NOT_FOUND),
    (("invalid parameters", "validation"), ProtocolErrorType.INVALID_PARAMETERS),
    (("invalid request", "malformed"), ProtocolErrorType.INVALID_REQUEST),
]
PROTOCOL_FALLBACK = ProtocolErrorType.INTERNAL_ERROR

# Words that tie a generic failure to the storage engine
ENGINE_MARKERS = ("database", "sqlite")


def _first_match(message: str, rules, fallback):
    lowered = message.lower()
    for needles, category in rules:
        if any(needle in lowered for needle in needles):
            return category
    return fallback


# =============================================================================
# Classified errors
# =============================================================================


class DatabaseFailure(BaseModel):
    """A classified connection/file level failure."""

    model_config = ConfigDict(frozen=True)

    type: DatabaseErrorType
    message: str
    path: str | None = None


class SQLFailure(BaseModel):
    """A classified statement level failure."""

    model_config = ConfigDict(frozen=True)

    type: SQLErrorType
    message: str
    query: str | None = None


class ProtocolFailure(BaseModel):
    """A classified tool-call level failure."""

    model_config = ConfigDict(frozen=True)

    type: ProtocolErrorType
    message: str
    code: int
    data: dict[str, Any] | None = None


ClassifiedError = DatabaseFailure | SQLFailure | ProtocolFailure


# =============================================================================
# Exceptions
# =============================================================================


class DatabaseError(Exception):
    """Connection or database file error."""

    def __init__(
        self,
        message: str,
        error_type: DatabaseErrorType = DatabaseErrorType.CONNECTION_FAILED,
        path: str | None = None,
        original: BaseException | None = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.path = path
        self.original = original


class InvalidPath(DatabaseError):
    """Database path rejected before touching the filesystem."""

    def __init__(self, message: str, path: Any = None):
        super().__init__(
            message,
            error_type=DatabaseErrorType.INVALID_PATH,
            path=None if path is None else str(path),
        )


def error_message(error: BaseException | str) -> str:
    """Best human-readable message for a raw failure.

    SQLAlchemy wraps driver errors and appends the statement; the driver's own
    message is what the rule tables are written against.
    """
    if isinstance(error, str):
        return error
    if isinstance(error, DBAPIError) and error.orig is not None:
        return str(error.orig)
    return str(error) or error.__class__.__name__


# =============================================================================
# Classifiers
# =============================================================================


def classify_database_error(error: BaseException | str, path: str | None = None) -> DatabaseFailure:
    """Classify a connection/file level failure."""
    if isinstance(error, DatabaseError):
        return DatabaseFailure(
            type=error.error_type, message=error_message(error), path=error.path or path
        )
    message = error_message(error)
    return DatabaseFailure(
        type=_first_match(message, DATABASE_RULES, DATABASE_FALLBACK),
        message=message,
        path=path,
    )


def classify_sql_error(error: BaseException | str, query: str | None = None) -> SQLFailure:
    """Classify a statement level failure."""
    message = error_message(error)
    return SQLFailure(
        type=_first_match(message, SQL_RULES, SQL_FALLBACK),
        message=message,
        query=query,
    )


def classify_protocol_error(
    error: BaseException | str, data: dict[str, Any] | None = None
) -> ProtocolFailure:
    """Classify a tool-call level failure."""
    message = error_message(error)
    error_type = _first_match(message, PROTOCOL_RULES, PROTOCOL_FALLBACK)
    return ProtocolFailure(
        type=error_type,
        message=message,
        code=PROTOCOL_ERROR_CODES[error_type],
        data=data,
    )


def protocol_error(
    error_type: ProtocolErrorType, message: str, data: dict[str, Any] | None = None
) -> ProtocolFailure:
    """Build a protocol failure of a known category."""
    return ProtocolFailure(
        type=error_type, message=message, code=PROTOCOL_ERROR_CODES[error_type], data=data
    )


def classify_error(
    error: BaseException | str,
    *,
    path: str | None = None,
    query: str | None = None,
    tool: str | None = None,
) -> ClassifiedError:
    """Pick a taxonomy from the available context and classify.

    Order: database (path given and the message names the engine), then SQL
    (query given), then protocol (tool given), then a generic internal error.
    """
    if isinstance(error, DatabaseError):
        return classify_database_error(error, path)

    message = error_message(error)
    lowered = message.lower()

    if path and any(marker in lowered for marker in ENGINE_MARKERS):
        return classify_database_error(error, path)
    if query:
        return classify_sql_error(error, query)
    if tool:
        data: dict[str, Any] = {"tool": tool}
        if path:
            data["path"] = path
        return classify_protocol_error(error, data)
    return protocol_error(ProtocolErrorType.INTERNAL_ERROR, message)


def prefixed(classified: ClassifiedError) -> str:
    """Machine-readable form embedded in result ``error`` fields."""
    return f"{classified.type.value}: {classified.message}"


# =============================================================================
# Reply formatting and logging
# =============================================================================


def error_payload(classified: ClassifiedError) -> dict[str, Any]:
    """Structured body of an error reply."""
    payload: dict[str, Any] = {
        "success": False,
        "error": classified.message,
        "errorType": classified.type.value,
    }
    if isinstance(classified, ProtocolFailure):
        payload["code"] = classified.code
    elif isinstance(classified, DatabaseFailure) and classified.path:
        payload["path"] = classified.path
    elif isinstance(classified, SQLFailure) and classified.query:
        payload["query"] = classified.query
    return payload


def format_error_reply(classified: ClassifiedError) -> CallToolResult:
    """Convert a classified error into an error envelope."""
    payload = error_payload(classified)
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(payload, indent=2, default=str))],
        structured_content=payload,
        is_error=True,
    )


def log_error(classified: ClassifiedError, context: dict[str, Any] | None = None) -> None:
    """Log a classified error with its type and context."""
    logger.error(
        f"{classified.type.value}: {classified.message} "
        f"(context: {json.dumps(context or {}, default=str)})"
    )
