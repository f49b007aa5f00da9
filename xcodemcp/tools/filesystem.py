"""Filesystem tools: every path goes through the DirectoryState and PathBoundary."""

from __future__ import annotations

import os
from typing import Any, Optional

from xcodemcp.core.files import DEFAULT_SEARCH_RESULTS, MAX_FIND_RESULTS, mime_type_for
from xcodemcp.core.project import PROJECT_SUFFIX, WORKSPACE_SUFFIX
from xcodemcp.tools.base import Tool, ToolCategory, ToolParameter, ToolResult

# Matching lines longer than this are truncated in search output
MAX_LINE_DISPLAY = 100


def _path_param(description: str = "File path", name: str = "path") -> ToolParameter:
    return ToolParameter(
        name=name,
        type="string",
        description=f"{description}. Absolute, relative to the active directory, or starting with ~.",
    )


class FileTool(Tool):

    @property
    def category(self) -> ToolCategory:
        return ToolCategory.FILESYSTEM

    @property
    def files(self):
        return self.context.files


class ReadFileTool(FileTool):

    @property
    def name(self) -> str:
        return "read_file"

    @property
    def description(self) -> str:
        return "Reads a UTF-8 text file and reports its MIME type."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [_path_param("File to read")]

    async def execute(self, path: str, **kwargs: Any) -> ToolResult:
        result = await self.files.read_file(self.context.resolve(path))
        return ToolResult(
            success=True,
            output=result.content,
            data=result.to_dict(),
            metadata={"mimeType": result.mime_type},
        )


class WriteFileTool(FileTool):

    @property
    def name(self) -> str:
        return "write_file"

    @property
    def description(self) -> str:
        return "Replaces the content of a file, optionally creating it."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            _path_param("File to write"),
            ToolParameter(name="content", type="string", description="The full new content"),
            ToolParameter(
                name="create_if_missing",
                type="boolean",
                description="Create the file and its parent directories if they don't exist",
                required=False,
                default=False,
            ),
        ]

    async def execute(
        self,
        path: str,
        content: str,
        create_if_missing: bool = False,
        **kwargs: Any,
    ) -> ToolResult:
        resolved = self.context.resolve(path)
        await self.files.write_file(resolved, content, create_if_missing=create_if_missing)
        return ToolResult.ok(f"Successfully wrote {len(content)} characters to {resolved}")


class ListDirectoryTool(FileTool):

    @property
    def name(self) -> str:
        return "list_directory"

    @property
    def description(self) -> str:
        return "Lists a directory as 'd <path>' and 'f <path>' lines."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            _path_param("Directory to list"),
            ToolParameter(
                name="show_hidden",
                type="boolean",
                description="Include entries whose name starts with '.'",
                required=False,
                default=False,
            ),
        ]

    async def execute(self, path: str, show_hidden: bool = False, **kwargs: Any) -> ToolResult:
        entries = await self.files.list_directory(self.context.resolve(path))
        if not show_hidden:
            entries = [e for e in entries if not os.path.basename(e[2:]).startswith(".")]
        if not entries:
            return ToolResult.ok("Directory is empty.", data=[])
        return ToolResult.ok("\n".join(entries), data=entries)


class CreateDirectoryTool(FileTool):

    @property
    def name(self) -> str:
        return "create_directory"

    @property
    def description(self) -> str:
        return "Creates a directory and any missing parents."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [_path_param("Directory to create")]

    async def execute(self, path: str, **kwargs: Any) -> ToolResult:
        created = await self.files.create_directory(self.context.resolve(path))
        return ToolResult.ok(f"Created directory: {created}")


class GetFileInfoTool(FileTool):

    @property
    def name(self) -> str:
        return "get_file_info"

    @property
    def description(self) -> str:
        return "Returns size, timestamps, type and permissions of a file or directory."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [_path_param("File or directory")]

    async def execute(self, path: str, **kwargs: Any) -> ToolResult:
        info = await self.files.get_file_info(self.context.resolve(path))
        data = info.to_dict()
        if info.type == "file":
            data["mimeType"] = mime_type_for(info.path)
        return ToolResult.json(data)


class DeleteFileTool(FileTool):

    @property
    def name(self) -> str:
        return "delete_file"

    @property
    def description(self) -> str:
        return "Deletes a file or directory."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            _path_param("Path to delete"),
            ToolParameter(
                name="recursive",
                type="boolean",
                description="Delete non-empty directories recursively",
                required=False,
                default=False,
            ),
        ]

    async def execute(self, path: str, recursive: bool = False, **kwargs: Any) -> ToolResult:
        resolved = self.context.resolve(path)
        kind = await self.files.delete_path(resolved, recursive=recursive)
        return ToolResult.ok(f"Deleted {kind}: {resolved}")


class CopyFileTool(FileTool):

    @property
    def name(self) -> str:
        return "copy_file"

    @property
    def description(self) -> str:
        return "Copies a file or directory. Copying into an existing directory keeps the source name."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            _path_param("Source path", name="source"),
            _path_param("Destination path", name="destination"),
            ToolParameter(
                name="recursive",
                type="boolean",
                description="Copy directories recursively",
                required=False,
                default=False,
            ),
        ]

    async def execute(
        self,
        source: str,
        destination: str,
        recursive: bool = False,
        **kwargs: Any,
    ) -> ToolResult:
        src = self.context.resolve(source)
        target = await self.files.copy_path(src, self.context.resolve(destination), recursive=recursive)
        return ToolResult.ok(f"Copied {src} to {target}")


class MoveFileTool(FileTool):

    @property
    def name(self) -> str:
        return "move_file"

    @property
    def description(self) -> str:
        return "Moves or renames a file or directory."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            _path_param("Source path", name="source"),
            _path_param("Destination path", name="destination"),
        ]

    async def execute(self, source: str, destination: str, **kwargs: Any) -> ToolResult:
        src = self.context.resolve(source)
        target = await self.files.move_path(src, self.context.resolve(destination))
        return ToolResult.ok(f"Moved {src} to {target}")


class ResolvePathTool(FileTool):
    """Show how a path resolves and what the boundary allows for it."""

    @property
    def name(self) -> str:
        return "resolve_path"

    @property
    def description(self) -> str:
        return "Resolves a path against the active directory and reports read/write access."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [_path_param("Path to resolve")]

    async def execute(self, path: str, **kwargs: Any) -> ToolResult:
        resolved = self.context.resolve(path)
        boundary = self.context.boundary
        return ToolResult.json({
            "input": path,
            "resolved": resolved,
            "exists": os.path.exists(resolved),
            "readable": boundary.admits(resolved),
            "writable": boundary.admits(resolved, for_write=True),
            "activeDirectory": self.context.directory.get_active_directory(),
        })


class CheckFileExistsTool(FileTool):

    @property
    def name(self) -> str:
        return "check_file_exists"

    @property
    def description(self) -> str:
        return "Checks whether a file or directory exists."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [_path_param("Path to check")]

    async def execute(self, path: str, **kwargs: Any) -> ToolResult:
        resolved = self.context.boundary.validate_path_for_reading(
            self.context.resolve(path), expand=False
        )
        if os.path.isdir(resolved):
            kind = "directory"
        elif os.path.exists(resolved):
            kind = "file"
        else:
            return ToolResult.ok(f"Does not exist: {resolved}", data={"exists": False})
        return ToolResult.ok(f"Exists ({kind}): {resolved}", data={"exists": True, "type": kind})


def _relative_to(root: str, paths: list[str]) -> list[str]:
    return [os.path.relpath(p, root) for p in paths]


def _optional_flag(name: str, description: str) -> ToolParameter:
    return ToolParameter(name=name, type="boolean", description=description, required=False, default=False)


class FindFilesTool(FileTool):

    @property
    def name(self) -> str:
        return "find_files"

    @property
    def description(self) -> str:
        return "Finds files under a directory whose name or relative path matches a glob pattern."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            _path_param("Directory to search"),
            ToolParameter(
                name="pattern",
                type="string",
                description="Glob such as '*.swift'. Patterns containing '/' match the relative path.",
            ),
            ToolParameter(
                name="max_depth",
                type="integer",
                description="Limit recursion; 1 means direct children only",
                required=False,
            ),
            _optional_flag("include_hidden", "Descend into and report entries starting with '.'"),
        ]

    async def execute(
        self,
        path: str,
        pattern: str,
        max_depth: Optional[int] = None,
        include_hidden: bool = False,
        **kwargs: Any,
    ) -> ToolResult:
        root = self.context.resolve(path)
        found = await self.files.find_files(root, pattern, max_depth=max_depth, include_hidden=include_hidden)
        if not found:
            return ToolResult.ok(f"No files found matching pattern '{pattern}' in {root}", data=[])
        lines = [f"Found {len(found)} files matching pattern '{pattern}':", ""]
        lines.extend(_relative_to(root, found))
        if len(found) >= MAX_FIND_RESULTS:
            lines.append(f"(stopped after {MAX_FIND_RESULTS} results)")
        return ToolResult.ok("\n".join(lines), data=found)


class SearchInFilesTool(FileTool):

    @property
    def name(self) -> str:
        return "search_in_files"

    @property
    def description(self) -> str:
        return "Searches the text files under a directory for a string or regular expression."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            _path_param("Directory to search"),
            ToolParameter(name="pattern", type="string", description="Glob selecting the files, e.g. '*.swift'"),
            ToolParameter(name="text", type="string", description="Text or regular expression to look for"),
            _optional_flag("is_regex", "Treat text as a regular expression"),
            _optional_flag("case_sensitive", "Match case exactly"),
            ToolParameter(
                name="max_results",
                type="integer",
                description="Stop after this many matching lines",
                required=False,
                default=DEFAULT_SEARCH_RESULTS,
            ),
            _optional_flag("include_hidden", "Also search files and directories starting with '.'"),
        ]

    async def execute(
        self,
        path: str,
        pattern: str,
        text: str,
        is_regex: bool = False,
        case_sensitive: bool = False,
        max_results: int = DEFAULT_SEARCH_RESULTS,
        include_hidden: bool = False,
        **kwargs: Any,
    ) -> ToolResult:
        root = self.context.resolve(path)
        matches = await self.files.search_in_files(
            root,
            pattern,
            text,
            is_regex=is_regex,
            case_sensitive=case_sensitive,
            max_results=max_results,
            include_hidden=include_hidden,
        )
        data = [m.to_dict() for m in matches]
        if not matches:
            return ToolResult.ok(f"No matches for '{text}' in files matching '{pattern}'", data=data)

        by_file: dict[str, list] = {}
        for m in matches:
            by_file.setdefault(m.path, []).append(m)
        lines = [f"Found {len(matches)} match(es) for '{text}' in {len(by_file)} file(s):"]
        for file_path, file_matches in by_file.items():
            lines.append("")
            lines.append(os.path.relpath(file_path, root))
            for m in file_matches:
                shown = m.text if len(m.text) <= MAX_LINE_DISPLAY else m.text[:MAX_LINE_DISPLAY] + "..."
                lines.append(f"  {m.line}: {shown}")
        if len(matches) >= max_results:
            lines.append("")
            lines.append(f"(stopped after {max_results} matches)")
        return ToolResult.ok("\n".join(lines), data=data)


class ListProjectFilesTool(FileTool):

    @property
    def name(self) -> str:
        return "list_project_files"

    @property
    def description(self) -> str:
        return "Lists the files of a project, optionally only those with a given extension."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="project_path",
                type="string",
                description="Project, workspace or package directory (defaults to the active project)",
                required=False,
            ),
            ToolParameter(
                name="file_extension",
                type="string",
                description="Only list files with this extension, e.g. 'swift'",
                required=False,
            ),
        ]

    async def execute(
        self,
        project_path: Optional[str] = None,
        file_extension: Optional[str] = None,
        **kwargs: Any,
    ) -> ToolResult:
        if project_path:
            target = self.context.resolve(project_path)
        else:
            target = self.context.resolver.require_active_project().path
        found = await self.files.list_project_files(target, extension=file_extension)
        kind = f".{file_extension.lstrip('.')} files" if file_extension else "files"
        if not found:
            return ToolResult.ok(f"No {kind} found in project {target}", data=[])
        root = os.path.dirname(target) if target.endswith((PROJECT_SUFFIX, WORKSPACE_SUFFIX)) else target
        lines = [f"Found {len(found)} {kind} in project {target}:", ""]
        lines.extend(_relative_to(root, found))
        return ToolResult.ok("\n".join(lines), data=found)


def create_filesystem_tools(context) -> list[Tool]:
    return [
        ReadFileTool(context),
        WriteFileTool(context),
        ListDirectoryTool(context),
        CreateDirectoryTool(context),
        GetFileInfoTool(context),
        DeleteFileTool(context),
        CopyFileTool(context),
        MoveFileTool(context),
        ResolvePathTool(context),
        CheckFileExistsTool(context),
        FindFilesTool(context),
        SearchInFilesTool(context),
        ListProjectFilesTool(context),
    ]
