"""Tests for the MCP protocol types, project resources and the stdio server dispatch."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from xcodemcp.core.config import ServerConfig
from xcodemcp.core.context import ServerContext
from xcodemcp.mcp.protocol import (
    PROTOCOL_VERSION,
    ErrorCode,
    ProtocolError,
    Request,
    ServerCapabilities,
    ToolCall,
    encode,
    error_reply,
    resource_uri,
    tool_call_result,
)
from xcodemcp.mcp.resources import PROJECT_MIME_TYPE, PROJECTS_URI, ProjectResources, project_uri
from xcodemcp.mcp.server import MCPServer, create_server


# =============================================================================
# Protocol Tests
# =============================================================================


class TestRequest:
    def test_parse_request(self):
        request = Request.parse({"jsonrpc": "2.0", "id": 7, "method": "tools/list"})
        assert request.id == 7
        assert request.method == "tools/list"
        assert request.params == {}
        assert not request.is_notification

    def test_parse_notification(self):
        request = Request.parse({"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert request.is_notification

    def test_null_id_is_still_a_request(self):
        assert not Request.parse({"jsonrpc": "2.0", "id": None, "method": "ping"}).is_notification

    @pytest.mark.parametrize("data", [
        [],
        "ping",
        {"jsonrpc": "2.0", "id": 1},
        {"jsonrpc": "2.0", "id": 1, "method": ""},
        {"jsonrpc": "2.0", "id": 1, "method": "ping", "params": [1]},
    ])
    def test_invalid_requests(self, data):
        with pytest.raises(ProtocolError) as excinfo:
            Request.parse(data)
        assert excinfo.value.code is ErrorCode.INVALID_REQUEST

    def test_reply(self):
        request = Request.parse({"jsonrpc": "2.0", "id": "abc", "method": "ping"})
        assert request.reply({"ok": True}) == {"jsonrpc": "2.0", "id": "abc", "result": {"ok": True}}


class TestProtocolError:
    def test_error_reply(self):
        error = ProtocolError(ErrorCode.METHOD_NOT_FOUND, "Unknown method: x")
        assert error_reply(3, error) == {
            "jsonrpc": "2.0",
            "id": 3,
            "error": {"code": -32601, "message": "Unknown method: x"},
        }

    def test_data_included_when_set(self):
        error = ProtocolError(ErrorCode.RESOURCE_NOT_FOUND, "gone", {"uri": "xcode://projects/x"})
        assert error.to_dict() == {"code": -32002, "message": "gone", "data": {"uri": "xcode://projects/x"}}

    @pytest.mark.parametrize("code,value", [
        (ErrorCode.PARSE_ERROR, -32700),
        (ErrorCode.INVALID_REQUEST, -32600),
        (ErrorCode.METHOD_NOT_FOUND, -32601),
        (ErrorCode.INVALID_PARAMS, -32602),
        (ErrorCode.INTERNAL_ERROR, -32603),
    ])
    def test_error_codes(self, code, value):
        assert int(code) == value

    def test_encode_is_one_line(self):
        line = encode({"jsonrpc": "2.0", "id": 1, "result": {"text": "a\nb"}})
        assert "\n" not in line
        assert json.loads(line)["result"]["text"] == "a\nb"


class TestPayloads:
    def test_capabilities(self):
        assert ServerCapabilities().to_dict() == {
            "tools": {"listChanged": False},
            "resources": {"subscribe": False, "listChanged": False},
        }
        assert ServerCapabilities(resources=False).to_dict() == {"tools": {"listChanged": False}}

    def test_tool_call(self):
        call = ToolCall.from_params({"name": "read_file", "arguments": {"path": "a"}})
        assert call.name == "read_file"
        assert call.arguments == {"path": "a"}

    def test_tool_call_defaults_arguments(self):
        assert ToolCall.from_params({"name": "pop_directory"}).arguments == {}

    @pytest.mark.parametrize("params", [{}, {"name": 3}, {"name": "x", "arguments": ["a"]}])
    def test_tool_call_invalid(self, params):
        with pytest.raises(ProtocolError) as excinfo:
            ToolCall.from_params(params)
        assert excinfo.value.code is ErrorCode.INVALID_PARAMS

    def test_tool_call_result(self):
        assert tool_call_result("hi") == {"content": [{"type": "text", "text": "hi"}], "isError": False}
        assert tool_call_result("bad", is_error=True)["isError"] is True

    def test_resource_uri_required(self):
        assert resource_uri({"uri": PROJECTS_URI}) == PROJECTS_URI
        with pytest.raises(ProtocolError) as excinfo:
            resource_uri({})
        assert excinfo.value.code is ErrorCode.INVALID_PARAMS


# =============================================================================
# Resource Tests
# =============================================================================


@pytest.fixture
def apps(projects_dir: Path, make_xcodeproj) -> Path:
    make_xcodeproj(projects_dir / "App", "App")
    make_xcodeproj(projects_dir / "Game Kit", "Game Kit")
    return projects_dir


class TestProjectResources:
    def test_project_uri_is_quoted(self):
        assert project_uri("Game Kit") == "xcode://projects/Game%20Kit"

    def test_listing(self, context: ServerContext):
        resources = ProjectResources(context)
        assert [r["uri"] for r in resources.list_resources()] == [PROJECTS_URI]
        assert [t["uriTemplate"] for t in resources.list_templates()] == ["xcode://projects/{name}"]

    @pytest.mark.asyncio
    async def test_read_project_list(self, context: ServerContext, apps: Path):
        contents = await ProjectResources(context).read(PROJECTS_URI)
        assert sorted(c["text"] for c in contents) == ["App", "Game Kit"]
        assert {c["mimeType"] for c in contents} == {PROJECT_MIME_TYPE}
        assert "xcode://projects/Game%20Kit" in {c["uri"] for c in contents}

    @pytest.mark.asyncio
    async def test_read_one_project(self, context: ServerContext, apps: Path):
        contents = await ProjectResources(context).read("xcode://projects/Game%20Kit")
        assert len(contents) == 1
        assert contents[0]["mimeType"] == "application/json"
        assert json.loads(contents[0]["text"]) == {
            "path": str(apps / "Game Kit" / "Game Kit.xcodeproj"),
            "name": "Game Kit",
            "kind": "standalone",
            "containedProjects": [],
        }

    @pytest.mark.asyncio
    async def test_unknown_project(self, context: ServerContext, apps: Path):
        with pytest.raises(ProtocolError) as excinfo:
            await ProjectResources(context).read("xcode://projects/Missing")
        assert excinfo.value.code is ErrorCode.RESOURCE_NOT_FOUND
        assert excinfo.value.message == "Project Missing not found"

    @pytest.mark.parametrize("uri", ["file:///etc/hosts", "xcode://projects/", "xcode://other"])
    @pytest.mark.asyncio
    async def test_unknown_uri(self, context: ServerContext, uri: str):
        with pytest.raises(ProtocolError) as excinfo:
            await ProjectResources(context).read(uri)
        assert excinfo.value.code is ErrorCode.RESOURCE_NOT_FOUND
        assert excinfo.value.data == {"uri": uri}

    @pytest.mark.asyncio
    async def test_no_base_dir_is_internal_error(self, process_root: Path, fake_ide):
        bare = ServerContext(ServerConfig(logs_dir=None), process_root=process_root, ide=fake_ide)
        with pytest.raises(ProtocolError) as excinfo:
            await ProjectResources(bare).read(PROJECTS_URI)
        assert excinfo.value.code is ErrorCode.INTERNAL_ERROR


# =============================================================================
# Server Tests
# =============================================================================


@pytest.fixture
def server(context: ServerContext) -> MCPServer:
    return create_server(context)


def _request(method: str, params: dict | None = None, request_id: int = 1) -> dict:
    data = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        data["params"] = params
    return data


class TestMCPServer:
    @pytest.mark.asyncio
    async def test_initialize(self, server: MCPServer):
        reply = await server.handle_message(_request("initialize", {
            "protocolVersion": PROTOCOL_VERSION,
            "clientInfo": {"name": "test-client", "version": "1.0"},
        }))
        assert "error" not in reply
        assert reply["result"]["protocolVersion"] == PROTOCOL_VERSION
        assert reply["result"]["serverInfo"]["name"] == "xcode-mcp-server"
        assert set(reply["result"]["capabilities"]) == {"tools", "resources"}
        assert server.initialized

    @pytest.mark.asyncio
    async def test_notification_gets_no_reply(self, server: MCPServer):
        assert await server.handle_message({"jsonrpc": "2.0", "method": "notifications/initialized"}) is None

    @pytest.mark.asyncio
    async def test_ping(self, server: MCPServer):
        assert (await server.handle_message(_request("ping")))["result"] == {}

    @pytest.mark.asyncio
    async def test_tools_list(self, server: MCPServer):
        reply = await server.handle_message(_request("tools/list"))
        tools = {t["name"]: t for t in reply["result"]["tools"]}
        assert len(tools) == 24
        assert tools["write_file"]["inputSchema"]["required"] == ["path", "content"]
        assert tools["set_project_path"]["inputSchema"]["properties"]["open_in_xcode"]["type"] == "boolean"
        assert tools["find_files"]["inputSchema"]["properties"]["max_depth"]["type"] == "integer"
        assert "project_path" not in tools["list_project_files"]["inputSchema"].get("required", [])

    @pytest.mark.asyncio
    async def test_tools_call_success(self, server: MCPServer, projects_dir: Path):
        (projects_dir / "notes.md").write_text("# Notes\n")
        reply = await server.handle_message(_request("tools/call", {
            "name": "read_file",
            "arguments": {"path": str(projects_dir / "notes.md")},
        }))
        assert reply["result"] == {"content": [{"type": "text", "text": "# Notes\n"}], "isError": False}

    @pytest.mark.asyncio
    async def test_tools_call_failure_is_tool_error(self, server: MCPServer):
        reply = await server.handle_message(_request("tools/call", {
            "name": "write_file",
            "arguments": {"path": "/etc/passwd", "content": "x"},
        }))
        assert "error" not in reply
        assert reply["result"]["isError"] is True
        assert "Access denied" in reply["result"]["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_tools_call_invalid_params(self, server: MCPServer):
        reply = await server.handle_message(_request("tools/call", {"arguments": {}}))
        assert reply["error"]["code"] == ErrorCode.INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_resources_list(self, server: MCPServer):
        reply = await server.handle_message(_request("resources/list"))
        assert [r["uri"] for r in reply["result"]["resources"]] == [PROJECTS_URI]
        templates = await server.handle_message(_request("resources/templates/list"))
        assert templates["result"]["resourceTemplates"][0]["name"] == "xcode-project"

    @pytest.mark.asyncio
    async def test_resources_read(self, server: MCPServer, apps: Path):
        reply = await server.handle_message(_request("resources/read", {"uri": "xcode://projects/App"}))
        assert json.loads(reply["result"]["contents"][0]["text"])["name"] == "App"

    @pytest.mark.asyncio
    async def test_resources_read_unknown(self, server: MCPServer, apps: Path):
        reply = await server.handle_message(
            _request("resources/read", {"uri": "xcode://projects/Nope"}, request_id=5)
        )
        assert reply["id"] == 5
        assert reply["error"] == {
            "code": -32002,
            "message": "Project Nope not found",
            "data": {"uri": "xcode://projects/Nope"},
        }

    @pytest.mark.asyncio
    async def test_unknown_method(self, server: MCPServer):
        reply = await server.handle_message(_request("prompts/list", request_id=9))
        assert reply["id"] == 9
        assert reply["error"] == {"code": -32601, "message": "Unknown method: prompts/list"}

    @pytest.mark.asyncio
    async def test_invalid_message(self, server: MCPServer):
        reply = await server.handle_message({"jsonrpc": "2.0", "id": 4})
        assert reply["id"] == 4
        assert reply["error"]["code"] == ErrorCode.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_internal_error(self, server: MCPServer, monkeypatch):
        async def explode(name, arguments=None):
            raise RuntimeError("boom")

        monkeypatch.setattr(server.registry, "execute", explode)
        reply = await server.handle_message(_request("tools/call", {"name": "read_file"}))
        assert reply["error"] == {"code": -32603, "message": "boom"}


class TestProcessLine:
    @pytest.mark.asyncio
    async def test_blank_line_ignored(self, server: MCPServer):
        assert await server.process_line("   \n") is None

    @pytest.mark.asyncio
    async def test_parse_error(self, server: MCPServer):
        reply = json.loads(await server.process_line("{not json"))
        assert reply["id"] is None
        assert reply["error"]["code"] == ErrorCode.PARSE_ERROR

    @pytest.mark.asyncio
    async def test_round_trip(self, server: MCPServer):
        reply = json.loads(await server.process_line(json.dumps(_request("ping", request_id=42)) + "\n"))
        assert reply == {"jsonrpc": "2.0", "id": 42, "result": {}}

    @pytest.mark.asyncio
    async def test_notification_line(self, server: MCPServer):
        line = json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert await server.process_line(line) is None
