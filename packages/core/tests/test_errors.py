"""Tests for error classification and reply formatting."""

import sqlite3

import pytest
from sqlalchemy.exc import OperationalError

from sqlite_mcp.errors import (
    DatabaseError,
    DatabaseErrorType,
    DatabaseFailure,
    InvalidPath,
    ProtocolErrorType,
    ProtocolFailure,
    SQLErrorType,
    SQLFailure,
    classify_database_error,
    classify_error,
    classify_protocol_error,
    classify_sql_error,
    error_message,
    format_error_reply,
    prefixed,
    protocol_error,
)


class TestDatabaseRules:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("unable to open database file", DatabaseErrorType.INVALID_PATH),
            ("No such file or directory", DatabaseErrorType.INVALID_PATH),
            ("Permission denied", DatabaseErrorType.PERMISSION_DENIED),
            ("database or disk is full: no space left", DatabaseErrorType.DISK_FULL),
            ("database disk image is malformed", DatabaseErrorType.CORRUPTED_DATABASE),
            ("file is not a database", DatabaseErrorType.CORRUPTED_DATABASE),
            ("something odd happened", DatabaseErrorType.CONNECTION_FAILED),
        ],
    )
    def test_categories(self, message, expected):
        failure = classify_database_error(message, path="/tmp/x.db")
        assert failure.type == expected
        assert failure.message == message
        assert failure.path == "/tmp/x.db"

    def test_first_match_wins(self):
        # Matches both the path rule and the permission rule
        failure = classify_database_error("cannot open: permission denied")
        assert failure.type == DatabaseErrorType.INVALID_PATH

    def test_database_error_keeps_its_type(self):
        error = DatabaseError("boom", DatabaseErrorType.DISK_FULL, path="/data/a.db")
        failure = classify_database_error(error)
        assert failure.type == DatabaseErrorType.DISK_FULL
        assert failure.path == "/data/a.db"


class TestSQLRules:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ('near "SELEC": syntax error', SQLErrorType.SYNTAX_ERROR),
            ("no such table: users", SQLErrorType.TABLE_NOT_EXISTS),
            ("no such column: nope", SQLErrorType.COLUMN_NOT_EXISTS),
            ("UNIQUE constraint failed: users.name", SQLErrorType.CONSTRAINT_VIOLATION),
            ("FOREIGN KEY constraint failed", SQLErrorType.CONSTRAINT_VIOLATION),
            ("datatype mismatch", SQLErrorType.TYPE_MISMATCH),
        ],
    )
    def test_categories(self, message, expected):
        failure = classify_sql_error(message, query="SELECT 1")
        assert failure.type == expected
        assert failure.query == "SELECT 1"

    def test_unmatched_falls_back_to_syntax_error(self):
        assert classify_sql_error("database is locked").type == SQLErrorType.SYNTAX_ERROR

    def test_case_insensitive(self):
        assert classify_sql_error("NO SUCH TABLE: X").type == SQLErrorType.TABLE_NOT_EXISTS

    def test_near_matches_inside_identifiers(self):
        failure = classify_sql_error("no such table: linear_scale")
        assert failure.type == SQLErrorType.SYNTAX_ERROR


class TestProtocolRules:
    @pytest.mark.parametrize(
        "message,expected,code",
        [
            ("Unknown tool: frobnicate", ProtocolErrorType.TOOL_NOT_FOUND, -32601),
            ("validation failed for field", ProtocolErrorType.INVALID_PARAMETERS, -32602),
            ("malformed request body", ProtocolErrorType.INVALID_REQUEST, -32600),
            ("worker crashed", ProtocolErrorType.INTERNAL_ERROR, -32603),
        ],
    )
    def test_categories_and_codes(self, message, expected, code):
        failure = classify_protocol_error(message, {"tool": "x"})
        assert failure.type == expected
        assert failure.code == code
        assert failure.data == {"tool": "x"}

    def test_protocol_error_uses_fixed_code(self):
        failure = protocol_error(ProtocolErrorType.INVALID_PARAMETERS, "bad")
        assert failure.code == -32602


class TestClassifyError:
    def test_database_error_exception(self):
        failure = classify_error(InvalidPath("Path traversal not allowed", "../x"))
        assert isinstance(failure, DatabaseFailure)
        assert failure.type == DatabaseErrorType.INVALID_PATH

    def test_path_and_engine_word_picks_database(self):
        failure = classify_error(
            RuntimeError("database disk image is malformed"), path="/a.db", query="SELECT 1"
        )
        assert isinstance(failure, DatabaseFailure)
        assert failure.type == DatabaseErrorType.CORRUPTED_DATABASE

    def test_query_picks_sql(self):
        failure = classify_error(RuntimeError("no such table: t"), path="/a.db", query="SELECT 1")
        assert isinstance(failure, SQLFailure)
        assert failure.type == SQLErrorType.TABLE_NOT_EXISTS

    def test_tool_picks_protocol(self):
        failure = classify_error(RuntimeError("worker crashed"), path="/a.db", tool="select_data")
        assert isinstance(failure, ProtocolFailure)
        assert failure.type == ProtocolErrorType.INTERNAL_ERROR
        assert failure.data == {"tool": "select_data", "path": "/a.db"}

    def test_no_context_is_internal_error(self):
        failure = classify_error(ValueError("boom"))
        assert isinstance(failure, ProtocolFailure)
        assert failure.type == ProtocolErrorType.INTERNAL_ERROR
        assert failure.message == "boom"


class TestMessages:
    def test_unwraps_sqlalchemy_errors(self):
        wrapped = OperationalError("SELECT * FROM x", {}, sqlite3.OperationalError("no such table: x"))
        assert error_message(wrapped) == "no such table: x"
        assert classify_sql_error(wrapped).type == SQLErrorType.TABLE_NOT_EXISTS

    def test_empty_exception_uses_class_name(self):
        assert error_message(RuntimeError()) == "RuntimeError"

    def test_prefixed(self):
        assert prefixed(classify_sql_error("no such table: t")) == "TABLE_NOT_EXISTS: no such table: t"


class TestFormatErrorReply:
    def test_protocol_reply(self):
        reply = format_error_reply(
            protocol_error(ProtocolErrorType.TOOL_NOT_FOUND, "Unknown tool: x")
        )
        assert reply.is_error
        assert reply.structured_content == {
            "success": False,
            "error": "Unknown tool: x",
            "errorType": "TOOL_NOT_FOUND",
            "code": -32601,
        }
        assert '"errorType": "TOOL_NOT_FOUND"' in reply.content[0].text

    def test_database_reply_carries_path(self):
        reply = format_error_reply(classify_database_error("Permission denied", path="/a.db"))
        assert reply.structured_content["path"] == "/a.db"
        assert "code" not in reply.structured_content

    def test_sql_reply_carries_query(self):
        reply = format_error_reply(classify_sql_error("no such table: t", query="SELECT * FROM t"))
        assert reply.structured_content["query"] == "SELECT * FROM t"
