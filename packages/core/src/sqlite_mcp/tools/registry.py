"""The fixed set of tools exposed by the server."""

from functools import partial

from sqlite_mcp_models import (
    CreateTableInput,
    DeleteDataInput,
    EchoInput,
    GetSchemaInput,
    InsertDataInput,
    MetaCommandInput,
    MetaResult,
    QueryResult,
    SchemaResult,
    SelectDataInput,
    UpdateDataInput,
)

from sqlite_mcp.db.executor import QueryExecutor
from sqlite_mcp.tools import crud, echo, schema
from sqlite_mcp.tools.base import ToolDefinition

TOOL_NAMES = (
    "create_table",
    "insert_data",
    "select_data",
    "get_schema",
    "update_data",
    "delete_data",
    "meta_commands",
    "test_tool",
)


def build_tools(executor: QueryExecutor) -> tuple[ToolDefinition, ...]:
    """Build the tool list bound to one executor.

    The order is stable and matches TOOL_NAMES.
    """
    return (
        ToolDefinition(
            name="create_table",
            description="Create a new table in a SQLite database.",
            input_model=CreateTableInput,
            output_model=QueryResult,
            handler=partial(crud.create_table, executor),
        ),
        ToolDefinition(
            name="insert_data",
            description="Insert one row into a SQLite table.",
            input_model=InsertDataInput,
            output_model=QueryResult,
            handler=partial(crud.insert_data, executor),
        ),
        ToolDefinition(
            name="select_data",
            description="Run a SELECT query with optional positional parameters and return the rows.",
            input_model=SelectDataInput,
            output_model=QueryResult,
            handler=partial(crud.select_data, executor),
        ),
        ToolDefinition(
            name="get_schema",
            description=(
                "List the tables of a SQLite database. With tableName, return that "
                "table's columns and CREATE TABLE statement."
            ),
            input_model=GetSchemaInput,
            output_model=SchemaResult,
            handler=partial(schema.get_schema, executor),
        ),
        ToolDefinition(
            name="update_data",
            description="Run an UPDATE query and report the number of rows changed.",
            input_model=UpdateDataInput,
            output_model=QueryResult,
            handler=partial(crud.update_data, executor),
        ),
        ToolDefinition(
            name="delete_data",
            description="Run a DELETE query and report the number of rows removed.",
            input_model=DeleteDataInput,
            output_model=QueryResult,
            handler=partial(crud.delete_data, executor),
        ),
        ToolDefinition(
            name="meta_commands",
            description="Run a SQLite meta command: .tables, .schema, .indexes or .pragma.",
            input_model=MetaCommandInput,
            output_model=MetaResult,
            handler=partial(schema.meta_commands, executor),
        ),
        ToolDefinition(
            name="test_tool",
            description="Echo a message back. Used to check that the server responds.",
            input_model=EchoInput,
            handler=echo.echo_message,
        ),
    )
