"""Directory tools: the session's active directory and its push/pop stack."""

from __future__ import annotations

import os
from typing import Any

from xcodemcp.core.errors import FileOperationError
from xcodemcp.tools.base import Tool, ToolCategory, ToolParameter, ToolResult

_DIRECTORY_PARAM = ToolParameter(
    name="directory_path",
    type="string",
    description=(
        "Directory to make active. Absolute, relative to the active directory, "
        "or starting with ~."
    ),
)


class DirectoryTool(Tool):

    @property
    def category(self) -> ToolCategory:
        return ToolCategory.DIRECTORY

    def _existing_directory(self, directory_path: str, operation: str) -> str:
        resolved = self.context.boundary.validate_path_for_reading(
            self.context.resolve(directory_path), expand=False
        )
        if not os.path.isdir(resolved):
            raise FileOperationError(operation, resolved, "Path is not a directory")
        return resolved


class ChangeDirectoryTool(DirectoryTool):

    @property
    def name(self) -> str:
        return "change_directory"

    @property
    def description(self) -> str:
        return "Changes the active directory used to resolve relative paths."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [_DIRECTORY_PARAM]

    async def execute(self, directory_path: str, **kwargs: Any) -> ToolResult:
        resolved = self._existing_directory(directory_path, "change directory")
        self.context.directory.set_active_directory(resolved, expand=False)
        return ToolResult.ok(f"Active directory changed to: {resolved}", data={"directory": resolved})


class PushDirectoryTool(DirectoryTool):

    @property
    def name(self) -> str:
        return "push_directory"

    @property
    def description(self) -> str:
        return "Pushes the active directory onto a stack and changes to a new directory."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [_DIRECTORY_PARAM]

    async def execute(self, directory_path: str, **kwargs: Any) -> ToolResult:
        resolved = self._existing_directory(directory_path, "push directory")
        self.context.directory.push_directory(resolved, expand=False)
        return ToolResult.ok(
            f"Directory stack pushed, active directory changed to: {resolved}",
            data={"directory": resolved, "stack": self.context.directory.stack},
        )


class PopDirectoryTool(DirectoryTool):

    @property
    def name(self) -> str:
        return "pop_directory"

    @property
    def description(self) -> str:
        return "Pops a directory from the stack and makes it active."

    @property
    def parameters(self) -> list[ToolParameter]:
        return []

    async def execute(self, **kwargs: Any) -> ToolResult:
        previous = self.context.directory.pop_directory()
        if previous is None:
            return ToolResult.ok("Directory stack is empty, no directory to pop.")
        return ToolResult.ok(
            f"Directory popped, active directory changed to: {previous}",
            data={"directory": previous},
        )


class GetCurrentDirectoryTool(DirectoryTool):

    @property
    def name(self) -> str:
        return "get_current_directory"

    @property
    def description(self) -> str:
        return "Returns the active directory."

    @property
    def parameters(self) -> list[ToolParameter]:
        return []

    async def execute(self, **kwargs: Any) -> ToolResult:
        directory = self.context.directory.get_active_directory()
        return ToolResult.ok(directory, data={"directory": directory})


class GetDirectoryStackTool(DirectoryTool):
    """Show the stack (top last) and recent directory changes."""

    @property
    def name(self) -> str:
        return "get_directory_stack"

    @property
    def description(self) -> str:
        return "Lists the directory stack and recent directory changes."

    @property
    def parameters(self) -> list[ToolParameter]:
        return []

    async def execute(self, **kwargs: Any) -> ToolResult:
        state = self.context.directory
        return ToolResult.json({
            "activeDirectory": state.get_active_directory(),
            "stack": state.stack,
            "history": state.history,
        })


def create_directory_tools(context) -> list[Tool]:
    return [
        ChangeDirectoryTool(context),
        PushDirectoryTool(context),
        PopDirectoryTool(context),
        GetCurrentDirectoryTool(context),
        GetDirectoryStackTool(context),
    ]
