"""Boundary-checked file operations.

Paths arrive already resolved by DirectoryState.resolve_path, so they are
made absolute but not expanded a second time. Each operation validates its
path(s) through the PathBoundary, runs the blocking primitive in the default
executor and translates OSErrors into FileOperationError.
"""

from __future__ import annotations

import asyncio
import errno
import fnmatch
import logging
import os
import re
import shutil
import stat
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, TypeVar

from xcodemcp.core.boundary import PathBoundary
from xcodemcp.core.errors import (
    AccessKind,
    FileOperationError,
    InvalidProjectError,
    PathAccessError,
    XcodeServerError,
)
from xcodemcp.core.project import PACKAGE_MANIFEST, PROJECT_SUFFIX, WORKSPACE_SUFFIX

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MIME_TYPE = "text/plain"
MAX_FIND_RESULTS = 1000
DEFAULT_SEARCH_RESULTS = 100

# Non-text/* MIME types that search_in_files still reads
SEARCHABLE_MIME_MARKERS = ("javascript", "typescript", "json", "xml", "html", "yaml")

MIME_TYPES: dict[str, str] = {
    ".swift": "text/x-swift",
    ".m": "text/x-objective-c",
    ".mm": "text/x-objective-c++",
    ".h": "text/x-c",
    ".c": "text/x-c",
    ".cpp": "text/x-c++",
    ".json": "application/json",
    ".plist": "application/x-plist",
    ".entitlements": "application/x-plist",
    ".storyboard": "application/x-xcode-storyboard",
    ".xib": "application/x-xcode-xib",
    ".pbxproj": "text/x-pbxproj",
    ".xcworkspacedata": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".js": "application/javascript",
    ".ts": "application/typescript",
    ".html": "text/html",
    ".css": "text/css",
    ".xml": "application/xml",
    ".yaml": "application/x-yaml",
    ".yml": "application/x-yaml",
}

_CAUSE_MESSAGES: dict[int, str] = {
    errno.ENOENT: "File does not exist",
    errno.EACCES: "Permission denied",
    errno.EPERM: "Permission denied",
    errno.EISDIR: "Path is a directory, not a file",
    errno.ENOTDIR: "Path is not a directory",
    errno.ENOTEMPTY: "Directory is not empty. Use recursive=true to delete non-empty directories.",
    errno.EEXIST: "Path already exists",
}


def mime_type_for(path: str | Path) -> str:
    """Look up the MIME type for a file extension, defaulting to text/plain."""
    return MIME_TYPES.get(os.path.splitext(str(path))[1].lower(), DEFAULT_MIME_TYPE)


@dataclass
class FileContent:
    """Text content of a file and its MIME type."""
    content: str
    mime_type: str = DEFAULT_MIME_TYPE

    def to_dict(self) -> dict[str, str]:
        return {"content": self.content, "mimeType": self.mime_type}


@dataclass
class FileInfo:
    """Stat information for a single path."""
    name: str
    path: str
    type: str  # "file", "directory", "symlink", "other"
    size: int
    modified: datetime
    created: Optional[datetime] = None
    permissions: str = ""
    is_hidden: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "type": self.type,
            "size": self.size,
            "modified": self.modified.isoformat(),
            "created": self.created.isoformat() if self.created else None,
            "permissions": self.permissions,
            "isHidden": self.is_hidden,
        }


@dataclass
class SearchMatch:
    """One line matching a search_in_files query."""
    path: str
    line: int
    text: str
    match: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "line": self.line, "text": self.text, "match": self.match}


def _describe_cause(operation: str, error: OSError) -> str:
    if operation == "list" and error.errno == errno.ENOENT:
        return "Directory does not exist"
    return _CAUSE_MESSAGES.get(error.errno or 0, error.strerror or str(error))


class SafeFileAccessor:
    """File read/write/list operations gated by the PathBoundary."""

    def __init__(self, boundary: PathBoundary) -> None:
        self._boundary = boundary

    def _readable(self, path: str | Path) -> str:
        return self._boundary.validate_path_for_reading(path, expand=False)

    def _writable(self, path: str | Path) -> str:
        return self._boundary.validate_path_for_writing(path, expand=False)

    async def _run(self, operation: str, path: str, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(func, *args))
        except FileOperationError:
            raise
        except OSError as e:
            raise FileOperationError(operation, path, _describe_cause(operation, e)) from e
        except ValueError as e:
            # UnicodeDecodeError and friends
            raise FileOperationError(operation, path, e) from e

    async def read_file(self, path: str | Path) -> FileContent:
        """Read a UTF-8 text file."""
        validated = self._readable(path)
        content = await self._run("read", validated, _read_text, validated)
        return FileContent(content=content, mime_type=mime_type_for(validated))

    async def write_file(
        self,
        path: str | Path,
        content: str,
        create_if_missing: bool = False,
    ) -> None:
        """Overwrite a file, optionally creating it and its parent directories."""
        validated = self._writable(path)
        await self._run("write", validated, _write_text, validated, content, create_if_missing)
        logger.info("Wrote %d characters to %s", len(content), validated)

    async def list_directory(self, path: str | Path) -> list[str]:
        """List children as ``"d <path>"`` or ``"f <path>"`` entries, sorted by name."""
        validated = self._readable(path)
        return await self._run("list", validated, _list_entries, validated)

    async def create_directory(self, path: str | Path) -> str:
        validated = self._writable(path)
        await self._run("create directory", validated, partial(os.makedirs, exist_ok=True), validated)
        return validated

    async def get_file_info(self, path: str | Path) -> FileInfo:
        validated = self._readable(path)
        return await self._run("stat", validated, _stat_info, validated)

    async def delete_path(self, path: str | Path, recursive: bool = False) -> str:
        """Delete a file or directory and return the kind deleted.

        Non-empty directories need ``recursive``.
        """
        validated = self._writable(path)
        return await self._run("delete", validated, _delete, validated, recursive)

    async def copy_path(
        self,
        source: str | Path,
        destination: str | Path,
        recursive: bool = False,
    ) -> str:
        """Copy *source* to *destination*; returns the final target path."""
        src = self._readable(source)
        dst = self._writable(destination)
        target = _target_for(src, dst)
        self._writable(target)
        return await self._run("copy", src, _copy, src, target, recursive)

    async def move_path(self, source: str | Path, destination: str | Path) -> str:
        """Move *source* to *destination*; returns the final target path."""
        src = self._writable(source)
        dst = self._writable(destination)
        target = _target_for(src, dst)
        self._writable(target)
        return await self._run("move", src, _move, src, target)

    async def find_files(
        self,
        directory: str | Path,
        pattern: str,
        max_depth: Optional[int] = None,
        include_hidden: bool = False,
        limit: int = MAX_FIND_RESULTS,
    ) -> list[str]:
        """Files under *directory* matching a glob, in sorted walk order.

        A pattern without ``/`` is matched against file names. One with ``/``
        is matched against the path relative to *directory*; there ``*``
        stays within a segment and ``**/`` spans zero or more directories.
        ``max_depth`` counts like ``find -maxdepth``: 1 means direct children
        only.
        """
        validated = self._readable(directory)
        return await self._run(
            "find", validated, _find_files, validated, pattern, max_depth, include_hidden, limit
        )

    async def search_in_files(
        self,
        directory: str | Path,
        pattern: str,
        text: str,
        is_regex: bool = False,
        case_sensitive: bool = False,
        max_results: int = DEFAULT_SEARCH_RESULTS,
        include_hidden: bool = False,
    ) -> list[SearchMatch]:
        """Lines matching *text* in the text files under *directory* that match *pattern*.

        Files that are not valid UTF-8 are skipped. The search stops after
        ``max_results`` matches.
        """
        validated = self._readable(directory)
        if max_results < 1:
            raise XcodeServerError("max_results must be at least 1")
        flags = 0 if case_sensitive else re.IGNORECASE
        try:
            regex = re.compile(text if is_regex else re.escape(text), flags)
        except re.error as e:
            raise XcodeServerError(f"Invalid regular expression: {e}") from e
        return await self._run(
            "search", validated, _search_files, validated, pattern, regex, max_results, include_hidden
        )

    async def list_project_files(
        self,
        project_path: str | Path,
        extension: Optional[str] = None,
    ) -> list[str]:
        """Every file belonging to a project, optionally filtered by extension.

        For a ``.xcodeproj`` or ``.xcworkspace`` the directory holding the
        bundle is listed; for a Swift package, the package directory.
        Hidden directories and project/workspace bundles are not descended.
        """
        validated = self._readable(project_path)
        if validated.endswith((PROJECT_SUFFIX, WORKSPACE_SUFFIX)):
            root = os.path.dirname(validated)
        elif os.path.isfile(os.path.join(validated, PACKAGE_MANIFEST)):
            root = validated
        else:
            raise InvalidProjectError(validated)
        if not self._boundary.admits(root):
            raise PathAccessError(root, AccessKind.READ)
        pattern = f"*.{extension.lstrip('.')}" if extension else "*"
        return await self._run(
            "list", root, _find_files, root, pattern, None, False, None, (PROJECT_SUFFIX, WORKSPACE_SUFFIX)
        )


# ----------------------------------------------------------------------
# Blocking primitives (run in the executor)
# ----------------------------------------------------------------------


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _write_text(path: str, content: str, create_if_missing: bool) -> None:
    if not os.path.exists(path) and not create_if_missing:
        raise FileOperationError(
            "write", path, "File does not exist and create_if_missing is false"
        )
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


def _list_entries(path: str) -> list[str]:
    entries = []
    with os.scandir(path) as it:
        for entry in sorted(it, key=lambda e: e.name):
            tag = "d" if entry.is_dir() else "f"
            entries.append(f"{tag} {os.path.join(path, entry.name)}")
    return entries


def _stat_info(path: str) -> FileInfo:
    st = os.lstat(path)
    if stat.S_ISLNK(st.st_mode):
        kind = "symlink"
    elif stat.S_ISDIR(st.st_mode):
        kind = "directory"
    elif stat.S_ISREG(st.st_mode):
        kind = "file"
    else:
        kind = "other"
    birth = getattr(st, "st_birthtime", None)
    name = os.path.basename(path)
    return FileInfo(
        name=name,
        path=path,
        type=kind,
        size=st.st_size,
        modified=datetime.fromtimestamp(st.st_mtime),
        created=datetime.fromtimestamp(birth) if birth is not None else None,
        permissions=stat.filemode(st.st_mode),
        is_hidden=name.startswith("."),
    )


def _delete(path: str, recursive: bool) -> str:
    if os.path.isdir(path) and not os.path.islink(path):
        if recursive:
            shutil.rmtree(path)
        else:
            os.rmdir(path)
        return "directory"
    os.unlink(path)
    return "file"


def _target_for(source: str, destination: str) -> str:
    """Copying or moving into an existing directory places the source inside it."""
    if os.path.isdir(destination):
        return os.path.join(destination, os.path.basename(source))
    return destination


def _copy(source: str, target: str, recursive: bool) -> str:
    if not os.path.exists(source):
        raise FileOperationError("copy", source, "Source file or directory does not exist")
    os.makedirs(os.path.dirname(target), exist_ok=True)
    if os.path.isdir(source):
        if not recursive:
            raise FileOperationError(
                "copy", source, "Source is a directory. Use recursive=true to copy directories."
            )
        shutil.copytree(source, target)
    else:
        shutil.copy2(source, target)
    return target


def _move(source: str, target: str) -> str:
    if not os.path.exists(source):
        raise FileOperationError("move", source, "Source file or directory does not exist")
    os.makedirs(os.path.dirname(target), exist_ok=True)
    shutil.move(source, target)
    return target


def _require_directory(operation: str, path: str) -> None:
    if not os.path.exists(path):
        raise FileOperationError(operation, path, "Directory does not exist")
    if not os.path.isdir(path):
        raise FileOperationError(operation, path, "Path is not a directory")


def _walk_files(
    root: str,
    include_hidden: bool = False,
    max_depth: Optional[int] = None,
    skip_suffixes: tuple[str, ...] = (),
) -> Iterator[str]:
    """Yield files under *root*, sorted within each directory, parents first."""
    for dirpath, dirnames, filenames in os.walk(root):
        rel = os.path.relpath(dirpath, root)
        depth = 0 if rel == os.curdir else rel.count(os.sep) + 1
        dirnames[:] = sorted(
            d for d in dirnames
            if (include_hidden or not d.startswith(".")) and not d.endswith(skip_suffixes)
        )
        if max_depth is not None:
            if depth >= max_depth:
                dirnames[:] = []
                continue
            if depth + 1 >= max_depth:
                dirnames[:] = []
        for name in sorted(filenames):
            if include_hidden or not name.startswith("."):
                yield os.path.join(dirpath, name)


def _glob_matcher(pattern: str) -> Callable[[str], bool]:
    """Build a predicate over paths relative to the search root.

    Without ``/`` the pattern is matched against the file name. With ``/``,
    ``*`` and ``?`` stay within one path segment and ``**/`` spans any
    number of directories, including none.
    """
    if "/" not in pattern:
        return lambda rel: fnmatch.fnmatchcase(os.path.basename(rel), pattern)
    regex = _glob_to_regex(pattern)
    return lambda rel: regex.match(rel.replace(os.sep, "/")) is not None


def _glob_to_regex(pattern: str) -> re.Pattern:
    out = []
    i, n = 0, len(pattern)
    while i < n:
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        elif pattern[i] == "[" and "]" in pattern[i + 2:]:
            end = pattern.index("]", i + 2)
            body = pattern[i + 1:end].replace("\\", "\\\\")
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append(f"[{body}]")
            i = end + 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out) + r"\Z")


def _find_files(
    root: str,
    pattern: str,
    max_depth: Optional[int],
    include_hidden: bool,
    limit: Optional[int],
    skip_suffixes: tuple[str, ...] = (),
) -> list[str]:
    _require_directory("find", root)
    matches = _glob_matcher(pattern)
    found = []
    for path in _walk_files(root, include_hidden, max_depth, skip_suffixes):
        if matches(os.path.relpath(path, root)):
            found.append(path)
            if limit is not None and len(found) >= limit:
                break
    return found


def _is_searchable(path: str) -> bool:
    mime = mime_type_for(path)
    return mime.startswith("text/") or any(marker in mime for marker in SEARCHABLE_MIME_MARKERS)


def _search_files(
    root: str,
    pattern: str,
    regex: re.Pattern,
    max_results: int,
    include_hidden: bool,
) -> list[SearchMatch]:
    _require_directory("search", root)
    matches = _glob_matcher(pattern)
    results: list[SearchMatch] = []
    for path in _walk_files(root, include_hidden):
        if not matches(os.path.relpath(path, root)) or not _is_searchable(path):
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Skipping %s during search: %s", path, e)
            continue
        for number, line in enumerate(lines, start=1):
            for m in regex.finditer(line):
                results.append(SearchMatch(path, number, line.strip(), m.group(0)))
                if len(results) >= max_results:
                    return results
    return results
