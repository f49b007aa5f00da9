"""Queries against Xcode and its command-line tools.

All external processes run through ``asyncio.create_subprocess_exec`` with a
timeout. Failures surface as CommandExecutionError.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shlex
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from xcodemcp.core.errors import CommandExecutionError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

FRONTMOST_DOCUMENT_SCRIPT = """
if application "Xcode" is running then
    tell application "Xcode"
        if (count of documents) > 0 then
            return POSIX path of (path of document 1 as text)
        end if
    end tell
end if
return ""
"""

RECENT_DOCUMENTS_DOMAIN = "com.apple.dt.Xcode"
RECENT_DOCUMENTS_KEY = "IDERecentWorkspaceDocuments"

# Escaped path inside a bookmark dictionary, e.g. ``= \"/Users/me/App.xcodeproj\"``
_ESCAPED_PATH_RE = re.compile(r'= \\"([^"\\]+)')
# Plain quoted bundle path
_QUOTED_BUNDLE_RE = re.compile(r'"(/[^"]+\.(?:xcodeproj|xcworkspace))/?"')

_DEFAULT_CONFIGURATION_RE = re.compile(
    r'If no build configuration is specified and -scheme is not passed then "([^"]+)" is used'
)

_SECTION_HEADERS = {
    "Targets:": "targets",
    "Build Configurations:": "configurations",
    "Schemes:": "schemes",
}


@dataclass
class ProjectInfo:
    """Targets, build configurations and schemes of a project."""
    path: str
    targets: list[str] = field(default_factory=list)
    configurations: list[str] = field(default_factory=list)
    schemes: list[str] = field(default_factory=list)
    default_configuration: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def package_project_info(path: str) -> ProjectInfo:
    """Swift packages have no xcodebuild listing; report the SwiftPM defaults."""
    return ProjectInfo(
        path=path,
        targets=["all"],
        configurations=["debug", "release"],
        schemes=["all"],
        default_configuration="debug",
    )


def parse_xcodebuild_list(output: str, path: str) -> ProjectInfo:
    """Parse the text printed by ``xcodebuild -list``.

    Sections start at a ``Targets:``, ``Build Configurations:`` or
    ``Schemes:`` header and end at the next blank line.
    """
    info = ProjectInfo(path=path)
    section: Optional[str] = None
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped:
            section = None
            continue
        header = _SECTION_HEADERS.get(stripped)
        if header:
            section = header
            continue
        if section and ":" not in stripped:
            getattr(info, section).append(stripped)

    match = _DEFAULT_CONFIGURATION_RE.search(output)
    if match:
        info.default_configuration = match.group(1)
    elif info.configurations:
        info.default_configuration = info.configurations[0]
    return info


def extract_recent_document(output: str) -> Optional[str]:
    """Pull the first project path out of ``defaults read`` output."""
    for pattern in (_ESCAPED_PATH_RE, _QUOTED_BUNDLE_RE):
        match = pattern.search(output)
        if match:
            return match.group(1).rstrip("/")
    return None


class XcodeIDE:
    """Thin async wrapper over osascript, defaults, xcodebuild and open."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    async def run(self, *cmd: str) -> str:
        """Run a command and return its stdout.

        Raises:
            CommandExecutionError: on a missing binary, non-zero exit or timeout.
        """
        command = shlex.join(cmd)
        logger.debug("Running %s", command)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CommandExecutionError(command, e.strerror or str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise CommandExecutionError(
                command, f"Command timed out after {self.timeout} seconds"
            ) from e

        if process.returncode != 0:
            raise CommandExecutionError(command, stderr.decode("utf-8", errors="replace").strip())
        return stdout.decode("utf-8", errors="replace")

    async def frontmost_document_path(self) -> Optional[str]:
        """Path of the document in Xcode's front window, or None when Xcode has none open."""
        output = await self.run("osascript", "-e", FRONTMOST_DOCUMENT_SCRIPT)
        path = output.strip()
        return path.rstrip("/") or None

    async def recent_document_path(self) -> Optional[str]:
        """Most recent entry from Xcode's recent workspace documents."""
        output = await self.run("defaults", "read", RECENT_DOCUMENTS_DOMAIN, RECENT_DOCUMENTS_KEY)
        return extract_recent_document(output)

    async def project_info(self, path: str | Path) -> ProjectInfo:
        """List targets, configurations and schemes for a project container."""
        path = str(path)
        if path.endswith(".xcworkspace"):
            cmd = ("xcodebuild", "-list", "-workspace", path)
        elif path.endswith(".xcodeproj"):
            cmd = ("xcodebuild", "-list", "-project", path)
        elif os.path.isfile(os.path.join(path, "Package.swift")):
            return package_project_info(path)
        else:
            cmd = ("xcodebuild", "-list", "-project", path)
        return parse_xcodebuild_list(await self.run(*cmd), path)

    async def open_project(self, path: str | Path) -> None:
        """Open a project in Xcode and bring it to the front."""
        await self.run("open", "-a", "Xcode", str(path))
        logger.info("Opened %s in Xcode", path)
