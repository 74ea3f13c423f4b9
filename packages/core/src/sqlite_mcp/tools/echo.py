"""Diagnostic echo tool."""

import logging

from sqlite_mcp_models import EchoInput

from sqlite_mcp.tools.base import ToolOutput

logger = logging.getLogger(__name__)


def echo_message(args: EchoInput) -> ToolOutput:
    logger.debug(f"test_tool called with: {args.message!r}")
    return ToolOutput.text(f"Test succeeded: {args.message}")
