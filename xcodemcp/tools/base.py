"""Base classes for MCP tools."""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from xcodemcp.core.errors import XcodeServerError
from xcodemcp.core.logging import log_tool_call

if TYPE_CHECKING:
    from xcodemcp.core.context import ServerContext


class ToolCategory(str, Enum):
    """Categories of tools."""
    PROJECT = "project"
    DIRECTORY = "directory"
    FILESYSTEM = "filesystem"


@dataclass
class ToolParameter:
    """A parameter for a tool."""
    name: str
    type: str  # "string", "integer", "boolean", "array", "object"
    description: str
    required: bool = True
    default: Any = None
    enum: Optional[list[str]] = None


@dataclass
class ToolResult:
    """Result from tool execution."""
    success: bool
    output: str
    error: Optional[str] = None
    data: Any = None  # Structured data if applicable
    metadata: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, output: str, data: Any = None) -> "ToolResult":
        return cls(success=True, output=output, data=data)

    @classmethod
    def json(cls, data: Any) -> "ToolResult":
        """Successful result whose output is *data* rendered as indented JSON."""
        return cls(success=True, output=json.dumps(data, indent=2, default=str), data=data)

    @classmethod
    def failure(cls, error: str, **metadata: Any) -> "ToolResult":
        return cls(success=False, output="", error=error, metadata=metadata)


class Tool(ABC):
    """
    Base class for server tools.

    Each tool operates on the shared ServerContext handed to it at
    construction.
    """

    def __init__(self, context: "ServerContext"):
        self.context = context

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name (used in tools/call)."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Tool description for the client."""
        ...

    @property
    @abstractmethod
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        ...

    @property
    def category(self) -> ToolCategory:
        """Tool category for organization."""
        return ToolCategory.FILESYSTEM

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolResult:
        """
        Execute the tool with given parameters.

        Args:
            **kwargs: Tool parameters.

        Returns:
            ToolResult with output or error.
        """
        ...

    def input_schema(self) -> dict:
        """JSON Schema for the tool arguments."""
        properties = {}
        required = []

        for param in self.parameters:
            prop: dict[str, Any] = {
                "type": param.type,
                "description": param.description,
            }
            if param.enum:
                prop["enum"] = param.enum
            if param.default is not None:
                prop["default"] = param.default

            properties[param.name] = prop

            if param.required:
                required.append(param.name)

        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }

    def missing_arguments(self, arguments: dict) -> list[str]:
        return [p.name for p in self.parameters if p.required and arguments.get(p.name) is None]


class ToolRegistry:
    """Registry of available tools."""

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        """List all registered tools."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def by_category(self, category: ToolCategory) -> list[Tool]:
        """Get tools by category."""
        return [t for t in self._tools.values() if t.category == category]

    async def execute(self, name: str, arguments: Optional[dict] = None) -> ToolResult:
        """Run a tool by name.

        Server errors become failed results carrying the error message and its
        structured form in ``metadata``. Anything else propagates.
        """
        arguments = arguments or {}
        tool = self.get(name)
        if tool is None:
            return ToolResult.failure(f"Unknown tool: {name}")

        missing = tool.missing_arguments(arguments)
        if missing:
            return ToolResult.failure(f"Missing required argument(s): {', '.join(missing)}")

        known = {p.name for p in tool.parameters}
        unknown = sorted(set(arguments) - known)
        if unknown:
            return ToolResult.failure(f"Unknown argument(s) for {name}: {', '.join(unknown)}")

        start = time.monotonic()
        try:
            result = await tool.execute(**arguments)
        except XcodeServerError as e:
            log_tool_call(name, arguments, (time.monotonic() - start) * 1000, error=e)
            return ToolResult.failure(e.message, **e.to_dict())

        log_tool_call(name, arguments, (time.monotonic() - start) * 1000, error=result.error)
        return result
