"""Active project resolution.

The ProjectResolver owns the active project and keeps the PathBoundary and
DirectoryState in step with it. Detection tries three sources in order:

1. the document in Xcode's front window,
2. the newest project container under the projects base directory,
3. the first entry of Xcode's recent documents.

An explicitly set project wins over detection until the server restarts.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any, Awaitable, Callable, NamedTuple, Optional

from xcodemcp.core.boundary import BoundaryRoot, PathBoundary
from xcodemcp.core.directory import DirectoryState
from xcodemcp.core.errors import (
    FileOperationError,
    InvalidProjectError,
    ProjectNotFoundError,
    XcodeServerError,
)
from xcodemcp.core.workspace_manifest import find_main_project, parse_workspace_document
from xcodemcp.core.xcode import XcodeIDE

logger = logging.getLogger(__name__)

PROJECT_SUFFIX = ".xcodeproj"
WORKSPACE_SUFFIX = ".xcworkspace"
PACKAGE_MANIFEST = "Package.swift"
EMBEDDED_WORKSPACE = "project.xcworkspace"


class ProjectKind(str, Enum):
    STANDALONE = "standalone"
    WORKSPACE = "workspace"
    PACKAGE_MANIFEST = "package_manifest"


class ResolverState(Enum):
    UNSET = "unset"
    DETECTED = "detected"
    EXPLICITLY_SET = "explicitly_set"


@dataclass(frozen=True)
class ActiveProject:
    """The project container that project-relative operations target."""
    path: str
    name: str
    kind: ProjectKind
    associated_project_path: Optional[str] = None
    package_manifest_path: Optional[str] = None

    @property
    def is_workspace(self) -> bool:
        return self.kind is ProjectKind.WORKSPACE

    @property
    def root(self) -> str:
        return os.path.dirname(self.path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "kind": self.kind.value,
            "associatedProjectPath": self.associated_project_path,
            "packageManifestPath": self.package_manifest_path,
        }


@dataclass
class ProjectSummary:
    """One entry in a project search result."""
    path: str
    name: str
    kind: ProjectKind
    contained_projects: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "kind": self.kind.value,
            "containedProjects": self.contained_projects,
        }


# ----------------------------------------------------------------------
# Pure helpers
# ----------------------------------------------------------------------


def strip_embedded_workspace(path: str) -> str:
    """Rewrite ``X.xcodeproj/project.xcworkspace`` to ``X.xcodeproj``.

    Xcode reports the workspace it keeps inside every project bundle as the
    open document; it must not be mistaken for a real workspace.
    """
    trimmed = path.rstrip(os.sep) or path
    parent, name = os.path.split(trimmed)
    if name == EMBEDDED_WORKSPACE and parent.endswith(PROJECT_SUFFIX):
        return parent
    return path


def project_name(path: str) -> str:
    base = os.path.basename(path)
    stem, ext = os.path.splitext(base)
    if ext in (PROJECT_SUFFIX, WORKSPACE_SUFFIX):
        return stem
    return base


def classify_project(path: str) -> ProjectKind:
    """Determine the container kind by suffix, falling back to a Package.swift check."""
    if path.endswith(WORKSPACE_SUFFIX):
        return ProjectKind.WORKSPACE
    if path.endswith(PROJECT_SUFFIX):
        return ProjectKind.STANDALONE
    if os.path.isfile(os.path.join(path, PACKAGE_MANIFEST)):
        return ProjectKind.PACKAGE_MANIFEST
    raise InvalidProjectError(path)


def describe_project(path: str | Path) -> ActiveProject:
    """Build an ActiveProject from an externally supplied path.

    Raises InvalidProjectError when the path does not exist or is not a
    recognized project container.
    """
    normalized = strip_embedded_workspace(os.path.normpath(os.path.abspath(str(path))))
    if not os.path.exists(normalized):
        raise InvalidProjectError(normalized, f"Project not found: {normalized} does not exist.")
    kind = classify_project(normalized)

    associated = None
    manifest = None
    if kind is ProjectKind.WORKSPACE:
        associated = find_main_project(normalized)
    elif kind is ProjectKind.PACKAGE_MANIFEST:
        manifest = os.path.join(normalized, PACKAGE_MANIFEST)

    return ActiveProject(
        path=normalized,
        name=project_name(normalized),
        kind=kind,
        associated_project_path=associated,
        package_manifest_path=manifest,
    )


def find_project_containers(
    root: str,
    include_workspaces: bool = True,
    include_packages: bool = True,
) -> list[str]:
    """Enumerate project containers under *root* in a stable order.

    Bundles and hidden directories are not descended into, so the workspace
    embedded in every ``.xcodeproj`` is never reported.
    """
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        if include_packages and PACKAGE_MANIFEST in filenames:
            found.append(dirpath)
        descend = []
        for name in dirnames:
            if name.startswith("."):
                continue
            full = os.path.join(dirpath, name)
            if name.endswith(PROJECT_SUFFIX):
                found.append(full)
            elif name.endswith(WORKSPACE_SUFFIX):
                if include_workspaces:
                    found.append(full)
            else:
                descend.append(name)
        dirnames[:] = descend
    return found


def newest_container(candidates: list[str]) -> Optional[str]:
    """Pick the most recently modified candidate; the first enumerated wins ties."""
    stamped = []
    for candidate in candidates:
        try:
            stamped.append((candidate, os.stat(candidate).st_mtime))
        except OSError as e:
            logger.debug("Skipping %s: %s", candidate, e)
    if not stamped:
        return None
    return max(stamped, key=lambda item: item[1])[0]


def summarize_projects(
    directory: str,
    include_workspaces: bool = True,
    include_packages: bool = False,
) -> list[ProjectSummary]:
    summaries = []
    for path in find_project_containers(directory, include_workspaces, include_packages):
        kind = classify_project(path)
        contained: list[str] = []
        if kind is ProjectKind.WORKSPACE:
            try:
                contained = parse_workspace_document(path)
            except FileOperationError as e:
                logger.warning("Could not parse workspace %s: %s", path, e)
        summaries.append(ProjectSummary(path, project_name(path), kind, contained))
    return summaries


# ----------------------------------------------------------------------
# Resolver
# ----------------------------------------------------------------------


class DetectionTier(NamedTuple):
    """One detection source. ``lookup`` returns a candidate path or None."""
    name: str
    lookup: Callable[[], Awaitable[Optional[str]]]
    warn_outside_base_dir: bool


class ProjectResolver:
    """Owns the active project and its UNSET/DETECTED/EXPLICITLY_SET state."""

    def __init__(
        self,
        boundary: PathBoundary,
        directory: DirectoryState,
        ide: XcodeIDE,
    ) -> None:
        self._boundary = boundary
        self._directory = directory
        self._ide = ide
        self._project: Optional[ActiveProject] = None
        self._state = ResolverState.UNSET
        self._lock = asyncio.Lock()
        self.tiers: list[DetectionTier] = [
            DetectionTier("frontmost document", self._from_frontmost_document, True),
            DetectionTier("projects base directory", self._from_base_directory, False),
            DetectionTier("recent documents", self._from_recent_documents, True),
        ]

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def active_project(self) -> Optional[ActiveProject]:
        return self._project

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def detect(self, force: bool = False) -> ActiveProject:
        """Run detection and make the result the active project.

        An explicitly set project is returned as-is unless *force* is true.

        Raises:
            ProjectNotFoundError: when every tier comes up empty. The
                previous state is left untouched.
        """
        async with self._lock:
            if self._state is ResolverState.EXPLICITLY_SET and self._project and not force:
                return self._project
            project = await self._first_success()
            if project is None:
                raise ProjectNotFoundError(
                    "No active Xcode project found. Open a project in Xcode or "
                    "set one with set_project_path."
                )
            self._apply(project, ResolverState.DETECTED)
            return project

    async def set_explicit(
        self,
        project: ActiveProject | str | Path,
        change_directory: bool = True,
    ) -> ActiveProject:
        """Make *project* the active project regardless of the current state.

        With ``change_directory=False`` the current directory is left as is.
        """
        if not isinstance(project, ActiveProject):
            project = describe_project(project)
        async with self._lock:
            self._apply(project, ResolverState.EXPLICITLY_SET, change_directory)
        logger.info("Active project explicitly set to %s", project.path)
        return project

    def _apply(
        self,
        project: ActiveProject,
        state: ResolverState,
        change_directory: bool = True,
    ) -> None:
        # No awaits here: the three updates are observed together. project.path
        # comes from the filesystem, so it is not expanded again.
        self._project = project
        self._state = state
        self._boundary.set_active_project(project.path, expand=False)
        if change_directory:
            self._directory.set_active_directory(project.root, expand=False)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    async def get_active_project(self) -> ActiveProject:
        """Return the active project, detecting one only if none is set."""
        if self._project is None:
            return await self.detect()
        return self._project

    def require_active_project(self) -> ActiveProject:
        if self._project is None:
            raise ProjectNotFoundError()
        return self._project

    async def set_projects_base_dir(self, path: str | Path) -> str:
        """Grant access under *path* and re-run detection.

        A detection miss is not an error here.
        """
        expanded = self._boundary.normalize(path)
        if not os.path.isdir(expanded):
            raise FileOperationError("set base directory", expanded, "Directory does not exist")
        self._boundary.set_projects_base_dir(expanded)
        try:
            await self.detect()
        except ProjectNotFoundError as e:
            logger.info("No project detected after base directory change: %s", e)
        return expanded

    async def find_projects(
        self,
        directory: Optional[str | Path] = None,
        include_workspaces: bool = True,
        include_packages: bool = False,
    ) -> list[ProjectSummary]:
        """List project containers under *directory* (default: the projects base directory)."""
        if directory is None:
            directory = self._boundary.projects_base_dir
            if not directory:
                raise XcodeServerError(
                    "No projects base directory set. Pass a directory or call set_projects_base_dir."
                )
        search_dir = self._boundary.validate_path_for_reading(directory, expand=False)
        if not os.path.isdir(search_dir):
            raise FileOperationError("search", search_dir, "Directory does not exist")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(summarize_projects, search_dir, include_workspaces, include_packages)
        )

    # ------------------------------------------------------------------
    # Detection tiers
    # ------------------------------------------------------------------

    async def _first_success(self) -> Optional[ActiveProject]:
        for tier in self.tiers:
            try:
                candidate = await tier.lookup()
                if not candidate:
                    logger.debug("Detection tier '%s' found nothing", tier.name)
                    continue
                project = describe_project(candidate)
            except XcodeServerError as e:
                logger.info("Detection tier '%s' skipped: %s", tier.name, e.message)
                continue
            except OSError as e:
                logger.info("Detection tier '%s' skipped: %s", tier.name, e)
                continue
            except Exception:
                logger.exception("Detection tier '%s' failed unexpectedly", tier.name)
                continue
            if tier.warn_outside_base_dir:
                self._warn_outside_base_dir(project.path, tier.name)
            logger.info("Detected project %s via %s", project.path, tier.name)
            return project
        return None

    def _warn_outside_base_dir(self, path: str, source: str) -> None:
        base = self._boundary.projects_base_dir
        if base and not BoundaryRoot("projects_base_dir", base, writable=False).contains(path):
            logger.warning("Project from %s is outside the projects base directory: %s", source, path)

    async def _from_frontmost_document(self) -> Optional[str]:
        return await self._ide.frontmost_document_path()

    async def _from_base_directory(self) -> Optional[str]:
        base = self._boundary.projects_base_dir
        if not base:
            return None
        loop = asyncio.get_running_loop()
        candidates = await loop.run_in_executor(None, find_project_containers, base)
        return newest_container(candidates)

    async def _from_recent_documents(self) -> Optional[str]:
        return await self._ide.recent_document_path()
