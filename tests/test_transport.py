"""Tests for server command resolution and MCP result conversion."""
import os
import sys
from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest
from mcp import types

from toolbridge.common.types import ConfigurationError
from toolbridge.core.settings import Settings
from toolbridge.tools.catalogue import discover
from toolbridge.transport import mcp_provider
from toolbridge.transport.mcp_provider import (
    McpToolProvider,
    mcp_field,
    resolve_server_command,
    to_call_result,
)


@pytest.mark.parametrize("target,expected", [
    ("server.py", (sys.executable, ["server.py"])),
    ("server.js", ("node", ["server.js"])),
    ("App.csproj", ("dotnet", ["run", "--project", "App.csproj", "--no-build"])),
    ("App.dll", ("dotnet", ["App.dll"])),
    ("App.exe", ("App.exe", [])),
    ('"quoted server.py"', (sys.executable, ["quoted server.py"])),
])
def test_resolve_by_extension(target, expected):
    assert resolve_server_command(target) == expected


def test_resolve_directory_as_project(tmp_path):
    command, args = resolve_server_command(str(tmp_path))
    assert command == "dotnet"
    assert args == ["run", "--project", str(tmp_path), "--no-build"]


def test_resolve_executable_file(tmp_path):
    server = tmp_path / "server"
    server.write_text("#!/bin/sh\n")
    server.chmod(0o755)

    command, args = resolve_server_command(str(server))

    assert command == os.path.abspath(server)
    assert args == []


def test_resolve_with_extra_args():
    assert resolve_server_command("server.py", extra_args=["--db", "x"]) == (
        sys.executable, ["server.py", "--db", "x"]
    )


def test_command_override():
    assert resolve_server_command("tools", command="uvx", extra_args=["--verbose"]) == (
        "uvx", ["tools", "--verbose"]
    )


def test_empty_target_is_configuration_error():
    with pytest.raises(ConfigurationError) as exc_info:
        resolve_server_command("  ")
    assert exc_info.value.missing == ["MCP_SERVER"]


def test_unsupported_target():
    with pytest.raises(ConfigurationError):
        resolve_server_command("no-such-file.txt")


def test_provider_from_settings_uses_sse_for_urls():
    settings = Settings(_env_file=None, MCP_SERVER="http://localhost:8000/sse")
    provider = McpToolProvider.from_settings(settings)

    assert provider.url == "http://localhost:8000/sse"
    assert provider.command is None
    assert not provider.connected


def test_provider_from_settings_spawns_script():
    settings = Settings(_env_file=None, MCP_SERVER="server.py", MCP_SERVER_ARGS=["--x"])
    provider = McpToolProvider.from_settings(settings)

    assert provider.command == sys.executable
    assert provider.args == ["server.py", "--x"]


def test_provider_requires_command_or_url():
    with pytest.raises(ConfigurationError):
        McpToolProvider()


@pytest.mark.asyncio
async def test_calls_before_connect_fail():
    provider = McpToolProvider(command="node", args=["server.js"])

    with pytest.raises(ConnectionError):
        await provider.list_tools()
    await provider.aclose()


def test_call_result_conversion():
    result = types.CallToolResult.model_validate({
        "content": [
            {"type": "text", "text": "A"},
            {"type": "image", "data": "aGk=", "mimeType": "image/png"},
            {"type": "text", "text": "B"},
        ],
        "isError": False,
    })

    converted = to_call_result(result)

    assert [block.type for block in converted.content] == ["text", "image", "text"]
    assert [block.text for block in converted.content if block.is_text] == ["A", "B"]
    assert converted.content[1].mime_type == "image/png"
    assert converted.is_error is False


def test_error_flag_conversion():
    result = types.CallToolResult.model_validate({
        "content": [{"type": "text", "text": "bad input"}],
        "isError": True,
    })
    assert to_call_result(result).is_error is True


@pytest.mark.parametrize("error_field,mime_field", [
    ("is_error", "mime_type"),
    ("isError", "mimeType"),
])
def test_fields_read_in_either_spelling(error_field, mime_field):
    block = SimpleNamespace(type="text", text="x", **{mime_field: "text/plain"})
    result = SimpleNamespace(content=[block], **{error_field: True})

    converted = to_call_result(result)

    assert converted.is_error is True
    assert converted.content[0].mime_type == "text/plain"


def test_mcp_field_defaults():
    assert mcp_field(SimpleNamespace(), "is_error", False) is False
    assert mcp_field(SimpleNamespace(server_info="s"), "server_info") == "s"
    assert mcp_field(SimpleNamespace(serverInfo="s"), "server_info") == "s"


class FakeClientSession:
    """Stands in for the SDK session, answering with wire-format payloads."""

    def __init__(self, read_stream, write_stream):
        self.calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def initialize(self):
        return types.InitializeResult.model_validate({
            "protocolVersion": "2024-11-05",
            "capabilities": {},
            "serverInfo": {"name": "fake-server", "version": "1.0"},
        })

    async def list_tools(self):
        return types.ListToolsResult.model_validate({
            "tools": [{
                "name": "X",
                "description": "test tool",
                "inputSchema": {
                    "type": "object",
                    "properties": {"id": {"type": "integer"}},
                    "required": ["id"],
                },
            }],
        })

    async def call_tool(self, name, arguments=None):
        self.calls.append((name, arguments))
        return types.CallToolResult.model_validate({
            "content": [{"type": "text", "text": "A"}],
            "isError": False,
        })


@pytest.fixture
def fake_session(monkeypatch):
    @asynccontextmanager
    async def open_transport(self):
        yield None, None

    monkeypatch.setattr(mcp_provider, "ClientSession", FakeClientSession)
    monkeypatch.setattr(McpToolProvider, "_open_transport", open_transport)


@pytest.mark.asyncio
async def test_provider_session_round_trip(fake_session):
    provider = McpToolProvider(command="node", args=["server.js"])

    await provider.connect()
    try:
        assert provider.connected
        assert mcp_field(provider.server_info, "name") == "fake-server"

        catalogue = await discover(provider)
        assert catalogue.get("X").parameters["id"].required is True

        assert await catalogue.adapter("X").invoke({"id": 1}) == "A"
        assert provider._session.calls == [("X", {"id": 1})]
    finally:
        await provider.aclose()

    assert not provider.connected
    await provider.aclose()
