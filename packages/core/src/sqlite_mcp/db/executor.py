"""Statement execution and transactions.

QueryExecutor runs one statement against a cached connection and never
raises: every failure is classified and returned inline as a failed
QueryResult. TransactionRunner runs an ordered list of statements as one
atomic unit on a single connection.
"""

import logging
import re
import time
from collections.abc import Iterable, Sequence
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from sqlite_mcp_models import Operation, QueryResult, TransactionResult

from sqlite_mcp.db.connection import ConnectionCache, ConnectionEntry
from sqlite_mcp.errors import (
    DatabaseError,
    classify_database_error,
    classify_sql_error,
    error_message,
    log_error,
    prefixed,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer("sqlite_mcp.query")

READ_PREFIXES = ("select", "pragma")
INSERT_PREFIXES = ("insert", "replace")
TRANSACTION_CONTROL_PREFIXES = ("begin", "commit", "end", "rollback", "savepoint", "release")

# Whitespace, -- line comments and /* */ block comments before the first keyword
LEADING_COMMENTS = re.compile(r"^(?:\s+|--[^\n]*(?:\n|$)|/\*.*?(?:\*/|$))*", re.DOTALL)


def _starts_with(sql: str, prefixes: tuple[str, ...]) -> bool:
    return sql.strip().lower().startswith(prefixes)


def is_transaction_control(sql: str) -> bool:
    """True for BEGIN/COMMIT/END/ROLLBACK/SAVEPOINT/RELEASE, ignoring leading comments."""
    return _starts_with(LEADING_COMMENTS.sub("", sql, count=1), TRANSACTION_CONTROL_PREFIXES)


def is_read_statement(sql: str) -> bool:
    """A statement is a read iff it begins with SELECT or PRAGMA."""
    return _starts_with(sql, READ_PREFIXES)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


def _preview(sql: str) -> str:
    sql = " ".join(sql.split())
    return sql[:200] + "..." if len(sql) > 200 else sql


class QueryExecutor:
    """Execute single statements with positional parameters."""

    def __init__(self, cache: ConnectionCache):
        self.cache = cache

    def execute(self, raw_path, sql: str, params: Sequence[Any] | None = None) -> QueryResult:
        """Execute one statement in its own transaction.

        Args:
            raw_path: Database path as supplied by the caller.
            sql: Statement with ``?`` placeholders.
            params: Positional parameters, one per placeholder.

        Returns:
            QueryResult with ``data`` for reads, ``rows_affected`` (and
            ``last_insert_id`` for inserts) for writes, or ``error``.
        """
        start = time.perf_counter()
        try:
            with self.cache.checkout(raw_path) as entry:
                result = self.execute_on(entry, sql, params)
                try:
                    if result.success:
                        entry.handle.commit()
                    else:
                        entry.handle.rollback()
                except Exception as e:
                    failure = classify_sql_error(e, sql)
                    log_error(failure, {"path": entry.canonical_path})
                    return QueryResult.failure(prefixed(failure), _elapsed_ms(start))
        except DatabaseError as e:
            failure = classify_database_error(e)
            log_error(failure, {"path": str(raw_path)})
            return QueryResult.failure(prefixed(failure), _elapsed_ms(start))
        return result

    def execute_on(
        self, entry: ConnectionEntry, sql: str, params: Sequence[Any] | None = None
    ) -> QueryResult:
        """Execute one statement inside whatever transaction is open on ``entry``.

        The caller must hold ``entry.lock`` and owns commit/rollback.
        """
        params = tuple(params or ())
        read = is_read_statement(sql)
        start = time.perf_counter()

        with tracer.start_as_current_span(
            "execute_query",
            attributes={
                "db.path": entry.canonical_path,
                "query.kind": "read" if read else "write",
                "query.params": len(params),
                "sql.preview": _preview(sql),
            },
        ) as span:
            try:
                if read:
                    rows = self._fetch_rows(entry, sql, params)
                    result = QueryResult(success=True, data=rows, duration_ms=_elapsed_ms(start))
                    span.set_attribute("rows.returned", len(rows))
                else:
                    result = self._write(entry, sql, params, start)
                    span.set_attribute("rows.affected", result.rows_affected or 0)
            except Exception as e:
                failure = classify_sql_error(e, sql)
                log_error(failure, {"path": entry.canonical_path})
                span.set_status(Status(StatusCode.ERROR, failure.message))
                return QueryResult.failure(prefixed(failure), _elapsed_ms(start))

        logger.debug(f"Executed in {result.duration_ms}ms: {_preview(sql)}")
        return result

    def _fetch_rows(
        self, entry: ConnectionEntry, sql: str, params: tuple
    ) -> list[dict[str, Any]]:
        if _starts_with(sql, ("pragma",)) and not entry.handle.in_transaction():
            # PRAGMA settings are no-ops inside a transaction; run them directly
            cursor = entry.handle.connection.cursor()
            try:
                cursor.execute(sql, params)
                if cursor.description is None:
                    return []
                columns = [desc[0] for desc in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
            finally:
                cursor.close()

        result = entry.handle.exec_driver_sql(sql, params or None)
        return [dict(row) for row in result.mappings()]

    def _write(
        self, entry: ConnectionEntry, sql: str, params: tuple, start: float
    ) -> QueryResult:
        result = entry.handle.exec_driver_sql(sql, params or None)
        try:
            rows_affected = max(result.rowcount, 0)
            last_insert_id = None
            if _starts_with(sql, INSERT_PREFIXES) and rows_affected > 0:
                lastrowid = result.lastrowid
                if isinstance(lastrowid, int):
                    last_insert_id = lastrowid
        finally:
            result.close()

        return QueryResult(
            success=True,
            rows_affected=rows_affected,
            last_insert_id=last_insert_id,
            duration_ms=_elapsed_ms(start),
        )


class TransactionRunner:
    """Run an ordered list of statements as one atomic unit.

    BEGIN, then each operation in order; the first failure rolls everything
    back and stops. All operations succeeding commits.
    """

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    def run(
        self, raw_path, operations: Iterable[Operation | dict[str, Any]]
    ) -> TransactionResult:
        """Execute ``operations`` atomically against one database.

        Returns:
            TransactionResult whose ``results`` holds one entry per attempted
            operation; on failure the last entry is the failing one.
        """
        ops = [
            op if isinstance(op, Operation) else Operation.model_validate(op) for op in operations
        ]

        results: list[QueryResult] = []
        try:
            with self.executor.cache.checkout(raw_path) as entry, tracer.start_as_current_span(
                "run_transaction",
                attributes={"db.path": entry.canonical_path, "transaction.operations": len(ops)},
            ) as span:
                try:
                    transaction = entry.handle.begin()
                    for op in ops:
                        result = self._run_one(entry, op)
                        results.append(result)

                        if not result.success:
                            self._rollback(entry, transaction)
                            span.set_attribute("transaction.failed_at", len(results) - 1)
                            span.set_status(Status(StatusCode.ERROR, result.error or ""))
                            logger.info(
                                f"Rolled back transaction on {entry.canonical_path} "
                                f"at operation {len(results) - 1}"
                            )
                            return TransactionResult(
                                success=False,
                                results=results,
                                error=result.error or "Operation failed",
                            )

                    transaction.commit()
                except Exception as e:
                    self._rollback_quietly(entry)
                    message = error_message(e)
                    logger.error(f"Transaction on {entry.canonical_path} failed: {message}")
                    span.set_status(Status(StatusCode.ERROR, message))
                    return TransactionResult(success=False, results=results, error=message)
        except DatabaseError as e:
            failure = classify_database_error(e)
            log_error(failure, {"path": str(raw_path)})
            return TransactionResult(success=False, results=[], error=prefixed(failure))

        return TransactionResult(success=True, results=results)

    def _run_one(self, entry: ConnectionEntry, op: Operation) -> QueryResult:
        if is_transaction_control(op.sql):
            failure = classify_sql_error(
                "Transaction control statements are not allowed in a transaction", op.sql
            )
            return QueryResult.failure(prefixed(failure))

        result = self.executor.execute_on(entry, op.sql, op.params)
        if result.success and not self._in_transaction(entry):
            failure = classify_sql_error("Statement ended the transaction early", op.sql)
            log_error(failure, {"path": entry.canonical_path})
            return QueryResult.failure(prefixed(failure), result.duration_ms)
        return result

    @staticmethod
    def _in_transaction(entry: ConnectionEntry) -> bool:
        return entry.handle.connection.dbapi_connection.in_transaction

    def _rollback(self, entry: ConnectionEntry, transaction) -> None:
        try:
            transaction.rollback()
        except Exception as e:
            logger.debug(f"Transaction rollback failed on {entry.canonical_path}: {e}")
            self._rollback_quietly(entry)

    @staticmethod
    def _rollback_quietly(entry: ConnectionEntry) -> None:
        try:
            entry.handle.rollback()
        except Exception as e:
            logger.debug(f"Rollback after failure also failed on {entry.canonical_path}: {e}")
