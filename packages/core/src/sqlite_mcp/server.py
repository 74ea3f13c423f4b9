"""FastMCP server for sqlite-mcp."""

import logging
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from functools import partial
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools import Tool, ToolResult
from mcp.types import CallToolResult, TextContent
from pydantic import Field
from starlette.requests import Request
from starlette.responses import JSONResponse

from sqlite_mcp.config import Settings, get_settings
from sqlite_mcp.db.connection import ConnectionCache
from sqlite_mcp.db.executor import QueryExecutor
from sqlite_mcp.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)

INSTRUCTIONS = """
SQLite database server. Every tool takes a `dbPath`; the file (and its parent
directories) is created on first use.

- Schema: create_table, get_schema, meta_commands (.tables, .schema, .indexes, .pragma)
- Data: insert_data, select_data, update_data, delete_data

Use `?` placeholders with `params` for values. Query failures are reported
as `success: false` with an error prefixed by its category, e.g.
`TABLE_NOT_EXISTS: no such table: users`.
"""


class DispatchedTool(Tool):
    """FastMCP tool whose calls are forwarded to the ToolDispatcher."""

    forward: Callable[[dict[str, Any]], Awaitable[CallToolResult]] = Field(exclude=True)

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        return to_tool_result(await self.forward(arguments))


def to_tool_result(envelope: CallToolResult) -> ToolResult:
    """Convert a dispatcher envelope into FastMCP's result type.

    Raises:
        ToolError: For error envelopes, carrying their text.
    """
    if envelope.is_error:
        raise ToolError(
            "\n".join(block.text for block in envelope.content if isinstance(block, TextContent))
        )
    return ToolResult(content=envelope.content, structured_content=envelope.structured_content)


# =============================================================================
# Server Creation
# =============================================================================


def _create_server(settings: Settings | None = None) -> FastMCP:
    """Create the MCP server with its connection cache and tools."""
    settings = settings or get_settings()
    cache = ConnectionCache.from_settings(settings)
    dispatcher = ToolDispatcher.from_executor(QueryExecutor(cache))

    @asynccontextmanager
    async def server_lifespan(server: FastMCP) -> AsyncIterator[None]:
        """Start the optional idle sweep; close every connection on shutdown."""
        if settings.idle_sweep_interval_seconds > 0:
            await cache.start_idle_sweep(settings.idle_sweep_interval_seconds)

        try:
            yield
        finally:
            await cache.stop_idle_sweep()
            cache.release_all()
            logger.info("Released all database connections")

    server = FastMCP(
        name="sqlite-mcp",
        lifespan=server_lifespan,
        instructions=INSTRUCTIONS,
    )

    # Health check endpoint for the HTTP transport
    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "healthy",
                "service": "sqlite-mcp",
                "connections": len(cache),
                "max_connections": cache.max_connections,
            }
        )

    for definition in dispatcher.list_tools():
        server.add_tool(
            DispatchedTool(
                name=definition.name,
                description=definition.description,
                parameters=definition.input_schema,
                output_schema=definition.output_schema,
                forward=partial(dispatcher.call, definition.name),
            )
        )

    return server


# Create the server instance
mcp = _create_server()


def _configure_logging():
    """Configure logging before anything else.

    Logs go to stderr; stdout belongs to the stdio transport.
    """
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _configure_observability():
    """Attach the JSONL span exporter when a traces directory is configured."""
    from sqlite_mcp.traces import setup_trace_exporter

    exporter = setup_trace_exporter(get_settings())
    if exporter is None:
        return

    from opentelemetry import trace
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import SimpleSpanProcessor

    provider = trace.get_tracer_provider()
    if not isinstance(provider, TracerProvider):
        provider = TracerProvider()
        trace.set_tracer_provider(provider)

    provider.add_span_processor(SimpleSpanProcessor(exporter))
    logger.info(f"JSONL trace exporter enabled: {exporter.traces_dir}")


def main(transport: str | None = None):
    """Run the MCP server."""
    _configure_logging()
    _configure_observability()

    settings = get_settings()
    transport = transport or settings.mcp_transport
    logger.info(
        f"Starting sqlite-mcp over {transport} "
        f"(max connections: {settings.max_connections})"
    )

    if transport == "http":
        mcp.run(
            transport="http",
            host=settings.mcp_host,
            port=settings.mcp_port,
            path=settings.mcp_path,
        )
    else:
        # Default: stdio for local clients
        mcp.run()


if __name__ == "__main__":
    main()
