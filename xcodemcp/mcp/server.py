"""MCP server exposing the Xcode tools and project resources over stdio."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable, Optional

from xcodemcp import __version__
from xcodemcp.core.context import ServerContext
from xcodemcp.mcp.protocol import (
    ErrorCode,
    Method,
    ProtocolError,
    Request,
    ServerCapabilities,
    ToolCall,
    encode,
    error_reply,
    initialize_result,
    resource_uri,
    tool_call_result,
)
from xcodemcp.mcp.resources import ProjectResources
from xcodemcp.tools import ToolRegistry, create_default_registry

logger = logging.getLogger(__name__)

Handler = Callable[[dict], Awaitable[Any]]


class MCPServer:
    """Dispatches JSON-RPC requests to the tool registry and project resources."""

    def __init__(
        self,
        context: ServerContext,
        registry: Optional[ToolRegistry] = None,
        name: str = "xcode-mcp-server",
        version: str = __version__,
    ):
        """Initialize MCP server.

        Args:
            context: Shared session state the tools operate on
            registry: Tools to expose (defaults to every server tool)
            name: Server name reported by ``initialize``
            version: Server version reported by ``initialize``
        """
        self.context = context
        self.registry = registry or create_default_registry(context)
        self.resources = ProjectResources(context)
        self.name = name
        self.version = version
        self.capabilities = ServerCapabilities()
        self._initialized = False
        self._handlers: dict[str, Handler] = {
            Method.INITIALIZE.value: self._initialize,
            Method.PING.value: self._ping,
            Method.TOOLS_LIST.value: self._tools_list,
            Method.TOOLS_CALL.value: self._tools_call,
            Method.RESOURCES_LIST.value: self._resources_list,
            Method.RESOURCE_TEMPLATES_LIST.value: self._resource_templates_list,
            Method.RESOURCES_READ.value: self._resources_read,
        }

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def handle_message(self, data: Any) -> Optional[dict]:
        """Handle one decoded message. Notifications produce no reply."""
        try:
            request = Request.parse(data)
        except ProtocolError as e:
            request_id = data.get("id") if isinstance(data, dict) else None
            return error_reply(request_id, e)

        if request.is_notification:
            logger.debug("Notification %s", request.method)
            return None

        handler = self._handlers.get(request.method)
        if handler is None:
            return error_reply(
                request.id, ProtocolError(ErrorCode.METHOD_NOT_FOUND, f"Unknown method: {request.method}")
            )
        try:
            return request.reply(await handler(request.params))
        except ProtocolError as e:
            return error_reply(request.id, e)
        except Exception as e:
            logger.exception("Unhandled error in %s", request.method)
            return error_reply(request.id, ProtocolError(ErrorCode.INTERNAL_ERROR, str(e)))

    async def _initialize(self, params: dict) -> dict:
        self._initialized = True
        client = params.get("clientInfo") or {}
        logger.info("Client connected: %s %s", client.get("name", "unknown"), client.get("version", ""))
        return initialize_result(self.name, self.version, self.capabilities)

    async def _ping(self, params: dict) -> dict:
        return {}

    async def _tools_list(self, params: dict) -> dict:
        return {"tools": [
            {"name": t.name, "description": t.description, "inputSchema": t.input_schema()}
            for t in self.registry.list_tools()
        ]}

    async def _tools_call(self, params: dict) -> dict:
        call = ToolCall.from_params(params)
        result = await self.registry.execute(call.name, call.arguments)
        if result.success:
            return tool_call_result(result.output)
        return tool_call_result(result.error or "Tool failed", is_error=True)

    async def _resources_list(self, params: dict) -> dict:
        return {"resources": self.resources.list_resources()}

    async def _resource_templates_list(self, params: dict) -> dict:
        return {"resourceTemplates": self.resources.list_templates()}

    async def _resources_read(self, params: dict) -> dict:
        return {"contents": await self.resources.read(resource_uri(params))}

    async def process_line(self, line: str) -> Optional[str]:
        """Handle one line of the stdio stream and return the reply line, if any."""
        line = line.strip()
        if not line:
            return None
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            return encode(error_reply(None, ProtocolError(ErrorCode.PARSE_ERROR, str(e))))
        reply = await self.handle_message(data)
        return encode(reply) if reply is not None else None

    async def run_stdio(self) -> None:
        """Serve newline-delimited JSON-RPC on stdin/stdout until stdin closes."""
        logger.info("MCP server '%s' v%s starting on stdio", self.name, self.version)
        await self.context.startup()

        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)

        writer_transport, writer_protocol = await loop.connect_write_pipe(
            asyncio.streams.FlowControlMixin, sys.stdout
        )
        writer = asyncio.StreamWriter(writer_transport, writer_protocol, reader, loop)

        while True:
            raw = await reader.readline()
            if not raw:
                break
            reply = await self.process_line(raw.decode("utf-8", errors="replace"))
            if reply is not None:
                writer.write((reply + "\n").encode("utf-8"))
                await writer.drain()

        logger.info("stdin closed, shutting down")


def create_server(context: ServerContext) -> MCPServer:
    """Create an MCP server with every tool registered against *context*."""
    return MCPServer(context=context)
