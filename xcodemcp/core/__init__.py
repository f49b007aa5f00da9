"""Core module - path boundary, directory state, file access and project resolution."""

from xcodemcp.core.config import ConfigManager, ServerConfig
from xcodemcp.core.errors import (
    AccessKind,
    CommandExecutionError,
    ErrorCategory,
    FileOperationError,
    InvalidProjectError,
    PathAccessError,
    ProjectNotFoundError,
    XcodeServerError,
)
from xcodemcp.core.boundary import BoundaryRoot, PathBoundary
from xcodemcp.core.directory import DirectoryState
from xcodemcp.core.files import FileContent, FileInfo, SafeFileAccessor, mime_type_for
from xcodemcp.core.workspace_manifest import parse_workspace_document
from xcodemcp.core.xcode import ProjectInfo, XcodeIDE
from xcodemcp.core.project import (
    ActiveProject,
    ProjectKind,
    ProjectResolver,
    ProjectSummary,
    ResolverState,
    classify_project,
    describe_project,
    strip_embedded_workspace,
)
from xcodemcp.core.context import ServerContext

__all__ = [
    # Config
    "ConfigManager",
    "ServerConfig",
    # Errors
    "AccessKind",
    "CommandExecutionError",
    "ErrorCategory",
    "FileOperationError",
    "InvalidProjectError",
    "PathAccessError",
    "ProjectNotFoundError",
    "XcodeServerError",
    # Paths and files
    "BoundaryRoot",
    "PathBoundary",
    "DirectoryState",
    "FileContent",
    "FileInfo",
    "SafeFileAccessor",
    "mime_type_for",
    # Projects
    "parse_workspace_document",
    "ProjectInfo",
    "XcodeIDE",
    "ActiveProject",
    "ProjectKind",
    "ProjectResolver",
    "ProjectSummary",
    "ResolverState",
    "classify_project",
    "describe_project",
    "strip_embedded_workspace",
    # Context
    "ServerContext",
]
