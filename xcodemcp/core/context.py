"""Server context: the single owner of all mutable session state.

Tools receive a ServerContext instead of reaching for module globals, so
tests can build as many isolated contexts as they like.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from xcodemcp.core.boundary import PathBoundary
from xcodemcp.core.config import ServerConfig
from xcodemcp.core.directory import DirectoryState
from xcodemcp.core.errors import ProjectNotFoundError
from xcodemcp.core.files import SafeFileAccessor
from xcodemcp.core.project import ActiveProject, ProjectResolver
from xcodemcp.core.xcode import XcodeIDE

logger = logging.getLogger(__name__)


class ServerContext:
    """Boundary, directory state, file accessor, IDE bridge and resolver for one server."""

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        process_root: Optional[str | Path] = None,
        ide: Optional[XcodeIDE] = None,
    ) -> None:
        self.config = config or ServerConfig()
        base_dir = self.config.projects_base_dir
        if base_dir is not None and not os.path.isdir(base_dir):
            logger.warning("Configured projects base directory does not exist: %s", base_dir)
        self.boundary = PathBoundary(base_dir, process_root)
        self.directory = DirectoryState(self.boundary)
        self.files = SafeFileAccessor(self.boundary)
        self.ide = ide or XcodeIDE(timeout=self.config.command_timeout)
        self.resolver = ProjectResolver(self.boundary, self.directory, self.ide)

    async def startup(self) -> Optional[ActiveProject]:
        """Detect an initial project. A miss is logged, never raised."""
        try:
            return await self.resolver.detect()
        except ProjectNotFoundError as e:
            logger.warning("Starting without an active project: %s", e.message)
            return None

    def resolve(self, path: str | Path) -> str:
        """Resolve a client-supplied path against the current directory."""
        return self.directory.resolve_path(path)
