"""Error taxonomy for the Xcode MCP server.

Every failure that crosses the core boundary is one of the classes below so
that tools can build an actionable message from the attached fields.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional


class ErrorCategory(Enum):
    """Categories of errors surfaced to MCP clients."""
    PATH_ACCESS = "path_access"              # Outside every permitted root
    FILE_OPERATION = "file_operation"        # Filesystem primitive failed
    PROJECT_NOT_FOUND = "project_not_found"  # No active project
    INVALID_PROJECT = "invalid_project"      # Not a recognized project container
    COMMAND_FAILURE = "command_failure"      # External process failed
    UNKNOWN = "unknown"


class AccessKind(str, Enum):
    """Access level requested from the path boundary."""
    READ = "read"
    WRITE = "write"


class XcodeServerError(Exception):
    """Base exception for server-specific errors."""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN):
        super().__init__(message)
        self.message = message
        self.category = category

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for tool results or logging."""
        return {
            "type": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class PathAccessError(XcodeServerError):
    """A path falls outside every boundary root granting the requested access."""

    def __init__(
        self,
        path: str,
        access: AccessKind = AccessKind.READ,
        message: Optional[str] = None,
    ):
        access = AccessKind(access)
        if message is None:
            message = (
                f"Access denied - path not allowed for {access.value}: {path}. "
                "Ensure the path is within the active project or the projects "
                "base directory (see set_projects_base_dir)."
            )
        super().__init__(message, ErrorCategory.PATH_ACCESS)
        self.path = path
        self.access = access

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["path"] = self.path
        d["access"] = self.access.value
        return d


class FileOperationError(XcodeServerError):
    """A filesystem primitive failed after the path passed validation."""

    def __init__(
        self,
        operation: str,
        path: str,
        cause: Optional[BaseException | str] = None,
    ):
        if cause is None:
            message = f"Failed to {operation} file at {path}"
        else:
            message = f"Failed to {operation} file at {path}: {cause}"
        super().__init__(message, ErrorCategory.FILE_OPERATION)
        self.operation = operation
        self.path = path
        self.cause = cause
        if isinstance(cause, BaseException):
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["operation"] = self.operation
        d["path"] = self.path
        d["cause"] = str(self.cause) if self.cause is not None else None
        return d


class ProjectNotFoundError(XcodeServerError):
    """No active project could be established, or one is required but unset."""

    def __init__(
        self,
        message: str = "No active project set. Set one with set_project_path.",
    ):
        super().__init__(message, ErrorCategory.PROJECT_NOT_FOUND)


class InvalidProjectError(XcodeServerError):
    """A path is not a recognized project container."""

    def __init__(self, path: str, message: Optional[str] = None):
        if message is None:
            message = (
                f"Invalid project path: {path}. Expected a .xcodeproj bundle, "
                "a .xcworkspace bundle, or a directory containing Package.swift."
            )
        super().__init__(message, ErrorCategory.INVALID_PROJECT)
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["path"] = self.path
        return d


class CommandExecutionError(XcodeServerError):
    """An external command exited with failure."""

    def __init__(self, command: str, stderr: Optional[str] = None):
        if stderr:
            message = f"Command execution failed: {command}\nError: {stderr}"
        else:
            message = f"Command execution failed: {command}"
        super().__init__(message, ErrorCategory.COMMAND_FAILURE)
        self.command = command
        self.stderr = stderr

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["command"] = self.command
        d["stderr"] = self.stderr
        return d
