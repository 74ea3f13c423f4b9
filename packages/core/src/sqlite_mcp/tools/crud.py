"""Data tools: create_table, insert_data, select_data, update_data, delete_data.

Execution failures are not raised: they come back as ``success: false``
results inside a normal reply.
"""

from sqlite_mcp_models import (
    CreateTableInput,
    DeleteDataInput,
    InsertDataInput,
    SelectDataInput,
    UpdateDataInput,
)

from sqlite_mcp.db.executor import QueryExecutor
from sqlite_mcp.tools.base import ToolOutput
from sqlite_mcp.tools.builders import build_create_table_sql, build_insert_sql


def create_table(executor: QueryExecutor, args: CreateTableInput) -> ToolOutput:
    result = executor.execute(args.db_path, build_create_table_sql(args))
    if result.success:
        text = f"Table '{args.table_name}' created"
    else:
        text = f"Failed to create table '{args.table_name}': {result.error}"
    return ToolOutput.text(text, result.to_dict())


def insert_data(executor: QueryExecutor, args: InsertDataInput) -> ToolOutput:
    sql, params = build_insert_sql(args)
    result = executor.execute(args.db_path, sql, params)
    if result.success:
        row_id = result.last_insert_id if result.last_insert_id is not None else "N/A"
        text = f"Inserted {result.rows_affected} row(s) into '{args.table_name}' (row id: {row_id})"
    else:
        text = f"Failed to insert into '{args.table_name}': {result.error}"
    return ToolOutput.text(text, result.to_dict())


def select_data(executor: QueryExecutor, args: SelectDataInput) -> ToolOutput:
    result = executor.execute(args.db_path, args.query, args.params)
    return ToolOutput.json(result.to_dict())


def update_data(executor: QueryExecutor, args: UpdateDataInput) -> ToolOutput:
    result = executor.execute(args.db_path, args.query, args.params)
    if result.success:
        text = f"Updated {result.rows_affected} row(s)"
    else:
        text = f"Update failed: {result.error}"
    return ToolOutput.text(text, result.to_dict())


def delete_data(executor: QueryExecutor, args: DeleteDataInput) -> ToolOutput:
    result = executor.execute(args.db_path, args.query, args.params)
    if result.success:
        text = f"Deleted {result.rows_affected} row(s)"
    else:
        text = f"Delete failed: {result.error}"
    return ToolOutput.text(text, result.to_dict())
