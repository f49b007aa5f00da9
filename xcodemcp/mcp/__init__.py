"""MCP module - JSON-RPC framing, project resources and the stdio server."""

from xcodemcp.mcp.protocol import (
    PROTOCOL_VERSION,
    ErrorCode,
    Method,
    ProtocolError,
    Request,
    ServerCapabilities,
    ToolCall,
)
from xcodemcp.mcp.resources import PROJECTS_URI, ProjectResources
from xcodemcp.mcp.server import MCPServer, create_server

__all__ = [
    "PROTOCOL_VERSION",
    "ErrorCode",
    "Method",
    "ProtocolError",
    "Request",
    "ServerCapabilities",
    "ToolCall",
    "PROJECTS_URI",
    "ProjectResources",
    "MCPServer",
    "create_server",
]
