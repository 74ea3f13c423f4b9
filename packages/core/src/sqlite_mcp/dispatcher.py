"""Tool call dispatch.

A call goes through three steps: look up the tool, validate its arguments
against the tool's input model, run the handler. Every outcome, including
unknown tools, bad arguments and handler crashes, becomes a reply envelope;
nothing escapes ``call``.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from mcp.types import CallToolResult, TextContent
from pydantic import ValidationError

from sqlite_mcp.db.executor import QueryExecutor
from sqlite_mcp.errors import (
    ProtocolErrorType,
    classify_error,
    format_error_reply,
    log_error,
    protocol_error,
)
from sqlite_mcp.tools import ToolDefinition, ToolOutput, build_tools

logger = logging.getLogger(__name__)

EMPTY_SEGMENT_PLACEHOLDER = "(no output)"


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors(include_url=False):
        location = ".".join(str(part) for part in detail["loc"]) or "arguments"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


class ToolDispatcher:
    """Route tool calls to handlers and build reply envelopes."""

    def __init__(self, tools: Sequence[ToolDefinition]):
        self._tools = tuple(tools)
        self._by_name: dict[str, ToolDefinition] = {}
        for tool in self._tools:
            if tool.name in self._by_name:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self._by_name[tool.name] = tool

    @classmethod
    def from_executor(cls, executor: QueryExecutor) -> "ToolDispatcher":
        return cls(build_tools(executor))

    def list_tools(self) -> tuple[ToolDefinition, ...]:
        return self._tools

    def get(self, name: str) -> ToolDefinition | None:
        return self._by_name.get(name)

    async def call(self, name: str, arguments: Any = None) -> CallToolResult:
        """Run one tool call and return its envelope.

        Args:
            name: Tool name.
            arguments: Raw argument object as received from the client.

        Returns:
            A success envelope, or an error envelope (``isError`` set) for
            unknown tools, invalid arguments and unexpected handler failures.
        """
        tool = self._by_name.get(name)
        if tool is None:
            failure = protocol_error(
                ProtocolErrorType.TOOL_NOT_FOUND, f"Unknown tool: {name}", {"tool": name}
            )
            log_error(failure, {"tool": name})
            return format_error_reply(failure)

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            failure = protocol_error(
                ProtocolErrorType.INVALID_REQUEST,
                "Tool arguments must be an object",
                {"tool": name},
            )
            log_error(failure, {"tool": name})
            return format_error_reply(failure)

        try:
            args = tool.input_model.model_validate(arguments)
        except ValidationError as e:
            failure = protocol_error(
                ProtocolErrorType.INVALID_PARAMETERS,
                f"Invalid parameters for {name}: {_describe_validation_error(e)}",
                {"tool": name},
            )
            log_error(failure, {"tool": name})
            return format_error_reply(failure)

        try:
            output = await asyncio.to_thread(tool.handler, args)
        except Exception as e:
            path = getattr(args, "db_path", None)
            query = getattr(args, "query", None)
            failure = classify_error(e, path=path, query=query, tool=name)
            log_error(failure, {"tool": name, "path": path})
            return format_error_reply(failure)

        return self._envelope(name, output)

    def _envelope(self, name: str, output: Any) -> CallToolResult:
        if not isinstance(output, ToolOutput):
            logger.warning(f"Tool {name} returned {type(output).__name__}, not ToolOutput")
            output = ToolOutput(texts=())

        segments = []
        for text in output.texts:
            if isinstance(text, str) and text:
                segments.append(text)
            else:
                logger.warning(f"Tool {name} produced a malformed text segment: {text!r}")
                segments.append(EMPTY_SEGMENT_PLACEHOLDER)
        if not segments:
            segments.append(EMPTY_SEGMENT_PLACEHOLDER)

        structured = output.structured if isinstance(output.structured, dict) else None
        return CallToolResult(
            content=[TextContent(type="text", text=text) for text in segments],
            structured_content=structured,
            is_error=False,
        )
