"""Tools module - project, directory and filesystem tools exposed over MCP."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from xcodemcp.core.context import ServerContext

from xcodemcp.tools.base import (
    Tool,
    ToolParameter,
    ToolResult,
    ToolCategory,
    ToolRegistry,
)
from xcodemcp.tools.project import (
    SetProjectsBaseDirTool,
    SetProjectPathTool,
    GetActiveProjectTool,
    DetectActiveProjectTool,
    FindProjectsTool,
    GetProjectConfigurationTool,
    create_project_tools,
)
from xcodemcp.tools.directory import (
    ChangeDirectoryTool,
    PushDirectoryTool,
    PopDirectoryTool,
    GetCurrentDirectoryTool,
    GetDirectoryStackTool,
    create_directory_tools,
)
from xcodemcp.tools.filesystem import (
    ReadFileTool,
    WriteFileTool,
    ListDirectoryTool,
    CreateDirectoryTool,
    GetFileInfoTool,
    DeleteFileTool,
    CopyFileTool,
    MoveFileTool,
    ResolvePathTool,
    CheckFileExistsTool,
    FindFilesTool,
    SearchInFilesTool,
    ListProjectFilesTool,
    create_filesystem_tools,
)


def create_default_registry(context: "ServerContext") -> ToolRegistry:
    """Create a registry with every server tool bound to *context*."""
    registry = ToolRegistry()
    for factory in (create_project_tools, create_directory_tools, create_filesystem_tools):
        for t in factory(context):
            registry.register(t)
    return registry


__all__ = [
    # Base
    "Tool",
    "ToolParameter",
    "ToolResult",
    "ToolCategory",
    "ToolRegistry",
    "create_default_registry",
    # Project
    "SetProjectsBaseDirTool",
    "SetProjectPathTool",
    "GetActiveProjectTool",
    "DetectActiveProjectTool",
    "FindProjectsTool",
    "GetProjectConfigurationTool",
    # Directory
    "ChangeDirectoryTool",
    "PushDirectoryTool",
    "PopDirectoryTool",
    "GetCurrentDirectoryTool",
    "GetDirectoryStackTool",
    # Filesystem
    "ReadFileTool",
    "WriteFileTool",
    "ListDirectoryTool",
    "CreateDirectoryTool",
    "GetFileInfoTool",
    "DeleteFileTool",
    "CopyFileTool",
    "MoveFileTool",
    "ResolvePathTool",
    "CheckFileExistsTool",
    "FindFilesTool",
    "SearchInFilesTool",
    "ListProjectFilesTool",
]
