"""MCP tools for sqlite-mcp."""

from sqlite_mcp.tools.base import ToolDefinition, ToolOutput
from sqlite_mcp.tools.registry import TOOL_NAMES, build_tools

__all__ = ["ToolDefinition", "ToolOutput", "TOOL_NAMES", "build_tools"]
