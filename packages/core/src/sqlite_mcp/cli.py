"""Click command group for sqlite-mcp.

Commands stay thin: they delegate to the dispatcher, the executor and the
trace reader.
"""

import asyncio
import json
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from sqlite_mcp.config import get_settings
from sqlite_mcp.db.connection import ConnectionCache
from sqlite_mcp.db.executor import QueryExecutor, TransactionRunner
from sqlite_mcp.db.query_utils import batch_insert_operations
from sqlite_mcp.dispatcher import ToolDispatcher
from sqlite_mcp.tools.builders import coerce_value

console = Console()


def _get_cli_version() -> str:
    """Get installed package version.

    Falls back to "unknown" when package metadata isn't available
    (e.g. running from a source checkout without installation).
    """
    try:
        return version("sqlite-mcp")
    except PackageNotFoundError:
        return "unknown"


@click.group()
@click.version_option(version=_get_cli_version())
def main():
    """sqlite-mcp - SQLite CRUD and introspection MCP server."""
    pass


@main.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "http"]),
    default=None,
    help="Transport to serve (default: SQLITE_MCP_MCP_TRANSPORT or stdio)",
)
def start(transport: str | None):
    """Start the MCP server."""
    from sqlite_mcp.server import main as run_server

    run_server(transport)


@main.command()
def tools():
    """List the tools the server exposes."""
    dispatcher = ToolDispatcher.from_executor(QueryExecutor(ConnectionCache()))

    table = Table(title="sqlite-mcp tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for tool in dispatcher.list_tools():
        table.add_row(tool.name, tool.description)
    console.print(table)


@main.command()
@click.argument("name")
@click.argument("args_json", default="{}", required=False)
def call(name: str, args_json: str):
    """Call one tool locally and print its reply.

    ARGS_JSON is the tool's argument object, e.g.

        sqlite-mcp call get_schema '{"dbPath": "./app.db"}'
    """
    try:
        arguments = json.loads(args_json)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON arguments: {e}[/red]")
        sys.exit(2)

    cache = ConnectionCache.from_settings(get_settings())
    dispatcher = ToolDispatcher.from_executor(QueryExecutor(cache))
    try:
        envelope = asyncio.run(dispatcher.call(name, arguments))
    finally:
        cache.release_all()

    style = "red" if envelope.is_error else "green"
    for block in envelope.content:
        console.print(block.text, style=style, markup=False, highlight=False)
    if envelope.structured_content is not None and not envelope.is_error:
        console.print("\n[dim]--- structured ---[/dim]")
        console.print_json(data=envelope.structured_content, default=str)

    if envelope.is_error:
        sys.exit(1)


@main.command("import-json")
@click.argument("db_path")
@click.argument("table_name")
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--batch-size", default=100, show_default=True, help="Rows per transaction")
def import_json(db_path: str, table_name: str, json_file: Path, batch_size: int):
    """Insert the objects of a JSON array into a table.

    Each batch is one transaction; the import stops at the first failed batch.
    """
    try:
        records = json.loads(json_file.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON file: {e}[/red]")
        sys.exit(2)
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        console.print("[red]JSON file must contain an array of objects.[/red]")
        sys.exit(2)
    records = [{column: coerce_value(value) for column, value in r.items()} for r in records]

    try:
        batches = batch_insert_operations(table_name, records, batch_size=batch_size)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)

    cache = ConnectionCache.from_settings(get_settings())
    runner = TransactionRunner(QueryExecutor(cache))
    inserted = 0
    try:
        for number, batch in enumerate(batches, start=1):
            result = runner.run(db_path, batch)
            if not result.success:
                console.print(
                    f"[red]Batch {number} rolled back at row {len(result.results)}: "
                    f"{result.error}[/red]"
                )
                console.print(f"[dim]{inserted} row(s) committed before the failure.[/dim]")
                sys.exit(1)
            inserted += len(batch)
    finally:
        cache.release_all()

    console.print(f"[green]✓ Inserted {inserted} row(s) into {table_name}[/green]")


@main.command()
@click.option("--day", default=None, help="Day to show (YYYY-MM-DD, default: today)")
@click.option("--limit", default=20, show_default=True, help="Most recent spans to show")
def traces(day: str | None, limit: int):
    """Show recorded query and transaction spans."""
    from sqlite_mcp.traces import load_spans

    traces_path = get_settings().get_traces_path()
    if traces_path is None:
        console.print("[yellow]Trace export is disabled.[/yellow]")
        console.print("[dim]Set SQLITE_MCP_TRACES_DIR to enable it.[/dim]")
        return

    spans = load_spans(traces_path, day)
    if not spans:
        console.print("[dim]No spans recorded.[/dim]")
        return

    table = Table(title=f"Spans ({len(spans)} total)")
    table.add_column("Span", style="cyan")
    table.add_column("Status")
    table.add_column("ms", justify="right")
    table.add_column("Statement")
    for span in spans[-limit:]:
        attrs = span.get("attrs", {})
        status = span.get("status", "")
        table.add_row(
            span.get("name", ""),
            f"[red]{status}[/red]" if status == "ERROR" else status,
            f"{span.get('duration_ms', 0):.1f}",
            attrs.get("sql.preview", attrs.get("db.path", "")),
        )
    console.print(table)


if __name__ == "__main__":
    main()
