"""Tests for the MCP request handlers."""

from __future__ import annotations

import json

import httpx
import pytest
from mcp import types
from mcp.shared.exceptions import McpError

from n8n_workflow_mcp.config import ServerConfig
from n8n_workflow_mcp.server import SERVER_NAME, create_server
from n8n_workflow_mcp.tools import TOOL_DEFINITIONS, ToolAdapter


def make_adapter() -> ToolAdapter:
    """Build an adapter against a fake instance with no workflows."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": []})

    config = ServerConfig(base_url="https://n8n.example.com", api_key="api-key")
    return ToolAdapter.from_config(config, transport=httpx.MockTransport(handler))


def call_request(name: str, arguments: dict[str, object] | None) -> types.CallToolRequest:
    return types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )


@pytest.mark.unit
@pytest.mark.anyio
async def test_list_tools_handler_returns_four_descriptors() -> None:
    async with make_adapter() as adapter:
        server = create_server(adapter)
        handler = server.request_handlers[types.ListToolsRequest]
        result = await handler(types.ListToolsRequest(method="tools/list"))

    tools = result.root.tools
    assert server.name == SERVER_NAME
    assert [tool.name for tool in tools] == [
        "trigger_workflow",
        "list_workflows",
        "get_workflow_status",
        "create_patient_task",
    ]


@pytest.mark.unit
@pytest.mark.anyio
async def test_list_tools_handler_is_stable_across_calls() -> None:
    async with make_adapter() as adapter:
        server = create_server(adapter)
        handler = server.request_handlers[types.ListToolsRequest]
        first = await handler(types.ListToolsRequest(method="tools/list"))
        second = await handler(types.ListToolsRequest(method="tools/list"))

    assert first.root.model_dump_json(by_alias=True) == second.root.model_dump_json(by_alias=True)
    assert [tool.model_dump(by_alias=True) for tool in first.root.tools] == [
        tool.model_dump(by_alias=True) for tool in TOOL_DEFINITIONS
    ]


@pytest.mark.unit
@pytest.mark.anyio
async def test_call_tool_handler_returns_text_content() -> None:
    async with make_adapter() as adapter:
        server = create_server(adapter)
        handler = server.request_handlers[types.CallToolRequest]
        result = await handler(call_request("list_workflows", {}))

    content = result.root.content
    assert len(content) == 1
    assert content[0].type == "text"
    assert json.loads(content[0].text) == {"success": True, "count": 0, "workflows": []}
    assert result.root.isError is False


@pytest.mark.unit
@pytest.mark.anyio
@pytest.mark.parametrize(
    ("name", "arguments", "expected_code"),
    [
        ("delete_workflow", {}, types.METHOD_NOT_FOUND),
        ("get_workflow_status", None, types.INVALID_PARAMS),
        ("trigger_workflow", {"workflowName": "Ghost"}, types.INTERNAL_ERROR),
    ],
)
async def test_call_tool_handler_raises_protocol_errors(
    name: str, arguments: dict[str, object] | None, expected_code: int
) -> None:
    async with make_adapter() as adapter:
        server = create_server(adapter)
        handler = server.request_handlers[types.CallToolRequest]
        with pytest.raises(McpError) as exc_info:
            await handler(call_request(name, arguments))

    assert exc_info.value.error.code == expected_code
