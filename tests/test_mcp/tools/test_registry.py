"""Tests for ToolSpec dispatch and error translation."""

import mcp.types as types
import pytest

from confluence_sync.errors import FileWriteError
from confluence_sync.mcp.tools import ToolRegistry, ToolSpec


def _tool(name):
    return types.Tool(name=name, inputSchema={"type": "object", "properties": {}})


def _spec(name, handler, writes_vault=False):
    return ToolSpec(tool=_tool(name), writes_vault=writes_vault, handler=handler)


async def _ok(client, args):
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=f"ok {args}")]
    )


def _raising(exc):
    async def handler(client, args):
        raise exc

    return handler


class TestFiltering:
    def test_read_only(self):
        specs = [_spec("read", _ok), _spec("write", _ok, writes_vault=True)]
        assert ToolRegistry(specs).tool_count() == 2
        registry = ToolRegistry(specs, read_only=True)
        assert [t.name for t in registry.list_tools()] == ["read"]


class TestCallTool:
    async def test_dispatch(self):
        registry = ToolRegistry([_spec("echo", _ok)])
        result = await registry.call_tool("echo", None, client=None)
        assert result.content[0].text == "ok {}"

    async def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown tool: nope"):
            await ToolRegistry([]).call_tool("nope", {}, client=None)

    async def test_sync_error(self):
        registry = ToolRegistry(
            [_spec("w", _raising(FileWriteError("disk full")))]
        )
        result = await registry.call_tool("w", {}, client=None)
        assert result.isError
        assert result.content[0].text.startswith("Error (file_write): disk full")

    async def test_validation_error(self):
        registry = ToolRegistry([_spec("v", _raising(ValueError("bad force")))])
        result = await registry.call_tool("v", {}, client=None)
        assert "Error (validation_error): bad force" in result.content[0].text

    async def test_unexpected_error(self):
        registry = ToolRegistry([_spec("x", _raising(KeyError("boom")))])
        result = await registry.call_tool("x", {}, client=None)
        assert result.isError
        assert "server_error" in result.content[0].text
