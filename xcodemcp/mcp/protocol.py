"""JSON-RPC 2.0 framing for the subset of the Model Context Protocol this server speaks.

https://modelcontextprotocol.io/

Only the methods in :class:`Method` are dispatched. Handlers raise
:class:`ProtocolError` for request-level failures; tool failures are not
protocol errors and travel inside a successful ``tools/call`` result.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Union

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"

RequestId = Union[str, int, None]


class Method(str, Enum):
    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    PING = "ping"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    RESOURCES_LIST = "resources/list"
    RESOURCE_TEMPLATES_LIST = "resources/templates/list"
    RESOURCES_READ = "resources/read"


class ErrorCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    RESOURCE_NOT_FOUND = -32002


class ProtocolError(Exception):
    """A request that gets a JSON-RPC error reply."""

    def __init__(self, code: ErrorCode, message: str, data: Any = None):
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


@dataclass
class Request:
    """An incoming request, or a notification when ``is_notification``."""
    method: str
    params: dict = field(default_factory=dict)
    id: RequestId = None
    is_notification: bool = False

    @classmethod
    def parse(cls, data: Any) -> "Request":
        """Validate a decoded JSON value as a request or notification.

        Raises:
            ProtocolError: INVALID_REQUEST for anything that is not an object
                with a string ``method`` and object-or-absent ``params``.
        """
        if not isinstance(data, dict):
            raise ProtocolError(ErrorCode.INVALID_REQUEST, "Request must be a JSON object")
        method = data.get("method")
        if not isinstance(method, str) or not method:
            raise ProtocolError(ErrorCode.INVALID_REQUEST, "Request has no method")
        params = data.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise ProtocolError(ErrorCode.INVALID_REQUEST, "params must be an object")
        return cls(
            method=method,
            params=params,
            id=data.get("id"),
            is_notification="id" not in data,
        )

    def reply(self, result: Any) -> dict[str, Any]:
        return {"jsonrpc": JSONRPC_VERSION, "id": self.id, "result": result}


def error_reply(request_id: RequestId, error: ProtocolError) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_dict()}


def encode(message: dict[str, Any]) -> str:
    """One line of the stdio stream."""
    return json.dumps(message, default=str)


def _require_string(params: dict, key: str, method: Method) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value:
        raise ProtocolError(ErrorCode.INVALID_PARAMS, f"{method.value} requires a string '{key}'")
    return value


@dataclass
class ToolCall:
    """Parameters of ``tools/call``."""
    name: str
    arguments: dict = field(default_factory=dict)

    @classmethod
    def from_params(cls, params: dict) -> "ToolCall":
        name = _require_string(params, "name", Method.TOOLS_CALL)
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise ProtocolError(ErrorCode.INVALID_PARAMS, "tools/call arguments must be an object")
        return cls(name=name, arguments=arguments)


def tool_call_result(text: str, is_error: bool = False) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}], "isError": is_error}


def resource_uri(params: dict) -> str:
    """The ``uri`` parameter of ``resources/read``."""
    return _require_string(params, "uri", Method.RESOURCES_READ)


@dataclass
class ServerCapabilities:
    """What ``initialize`` advertises. Neither list ever changes at runtime."""
    tools: bool = True
    resources: bool = True

    def to_dict(self) -> dict[str, Any]:
        caps: dict[str, Any] = {}
        if self.tools:
            caps["tools"] = {"listChanged": False}
        if self.resources:
            caps["resources"] = {"subscribe": False, "listChanged": False}
        return caps


def initialize_result(
    name: str,
    version: str,
    capabilities: ServerCapabilities,
) -> dict[str, Any]:
    """Reply to ``initialize``.

    The server speaks one protocol revision and answers with it whatever
    the client asked for; the client decides whether it can continue.
    """
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": capabilities.to_dict(),
        "serverInfo": {"name": name, "version": version},
    }
