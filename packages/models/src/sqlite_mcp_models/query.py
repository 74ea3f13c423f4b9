"""Query and transaction result models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Operation(BaseModel):
    """One statement of a transaction."""

    sql: str = Field(..., min_length=1, description="SQL statement with positional ? placeholders")
    params: list[Any] = Field(default_factory=list, description="Positional parameters")


class QueryResult(BaseModel):
    """Result of executing a single statement.

    Read statements carry ``data``; write statements carry ``rows_affected``
    (and ``last_insert_id`` for inserts that generated a row id). Failures
    carry ``error`` prefixed with the classified error type.
    """

    model_config = ConfigDict(populate_by_name=True, ser_json_bytes="base64")

    success: bool = Field(..., description="Whether the statement succeeded")
    data: list[dict[str, Any]] | None = Field(default=None, description="Rows for read statements")
    rows_affected: int | None = Field(
        default=None, alias="rowsAffected", description="Rows changed by a write statement"
    )
    last_insert_id: int | None = Field(
        default=None, alias="lastInsertId", description="Row id generated by an insert"
    )
    error: str | None = Field(default=None, description="Error message, prefixed with its type")
    duration_ms: float | None = Field(
        default=None, alias="durationMs", description="Execution time in milliseconds"
    )

    @model_validator(mode="after")
    def _check_shape(self) -> "QueryResult":
        if self.data is not None and self.rows_affected is not None:
            raise ValueError("data and rowsAffected are mutually exclusive")
        if self.success and self.data is None and self.rows_affected is None:
            raise ValueError("a successful result needs data or rowsAffected")
        if not self.success and (self.data is not None or self.rows_affected is not None):
            raise ValueError("a failed result carries no data or rowsAffected")
        return self

    @classmethod
    def failure(cls, error: str, duration_ms: float | None = None) -> "QueryResult":
        return cls(success=False, error=error, duration_ms=duration_ms)

    @property
    def is_read(self) -> bool:
        return self.data is not None

    def to_dict(self) -> dict[str, Any]:
        """Wire form: camelCase keys, unset fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TransactionResult(BaseModel):
    """Result of running a list of operations as one atomic unit."""

    model_config = ConfigDict(ser_json_bytes="base64")

    success: bool = Field(..., description="Whether every operation committed")
    results: list[QueryResult] = Field(
        default_factory=list,
        description="One result per attempted operation, truncated at the first failure",
    )
    error: str | None = Field(default=None, description="The failing operation's error")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
