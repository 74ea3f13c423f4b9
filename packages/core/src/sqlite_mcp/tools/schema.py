"""Introspection tools: get_schema and meta_commands."""

from sqlite_mcp_models import GetSchemaInput, MetaCommandInput

from sqlite_mcp.db.executor import QueryExecutor
from sqlite_mcp.db.introspection import describe_table, list_tables, run_meta_command
from sqlite_mcp.tools.base import ToolOutput


def get_schema(executor: QueryExecutor, args: GetSchemaInput) -> ToolOutput:
    """List tables, or describe one table when a name is given."""
    if args.table_name:
        result = describe_table(executor, args.db_path, args.table_name)
    else:
        result = list_tables(executor, args.db_path)
    return ToolOutput.json(result.to_dict())


def meta_commands(executor: QueryExecutor, args: MetaCommandInput) -> ToolOutput:
    result = run_meta_command(executor, args.db_path, args.command, args.target)
    text = result.result if result.success else f"Error: {result.error}"
    return ToolOutput.text(text, result.to_dict())
