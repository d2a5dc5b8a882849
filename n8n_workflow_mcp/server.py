"""MCP protocol wiring for the n8n tool adapter."""

from __future__ import annotations

import logging

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from n8n_workflow_mcp.config import ServerConfig
from n8n_workflow_mcp.errors import ProtocolError
from n8n_workflow_mcp.tools import TOOL_DEFINITIONS, ToolAdapter

SERVER_NAME = "n8n-workflow-mcp"
SERVER_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def create_server(adapter: ToolAdapter) -> Server:
    """Create an MCP server whose tools are served by ``adapter``."""
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return list(TOOL_DEFINITIONS)

    async def call_tool(request: types.CallToolRequest) -> types.ServerResult:
        outcome = await adapter.invoke(request.params.name, request.params.arguments)
        if isinstance(outcome, ProtocolError):
            raise McpError(
                types.ErrorData(code=outcome.code, message=outcome.message, data=outcome.data)
            )
        return types.ServerResult(
            types.CallToolResult(content=[types.TextContent(type="text", text=outcome.text)])
        )

    # Raw handler: protocol errors must reach the host as JSON-RPC errors.
    server.request_handlers[types.CallToolRequest] = call_tool
    return server


async def run_stdio_server(config: ServerConfig) -> None:
    """Serve tools over stdio until the host closes the stream."""
    async with ToolAdapter.from_config(config) as adapter:
        server = create_server(adapter)
        async with stdio_server() as (read_stream, write_stream):
            logger.info("%s server running on stdio", SERVER_NAME)
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
