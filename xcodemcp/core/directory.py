"""Session-level current directory with a push/pop stack.

The current directory is independent of the server process's own working
directory. Relative paths supplied by MCP clients are resolved against it.
"""

from __future__ import annotations

import logging
import os
from collections import deque
from pathlib import Path
from typing import Optional

from xcodemcp.core.boundary import PathBoundary
from xcodemcp.core.errors import AccessKind, PathAccessError

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100


class DirectoryState:
    """Mutable current directory plus a LIFO stack of prior directories.

    All boundary decisions are delegated to the shared PathBoundary.
    """

    def __init__(self, boundary: PathBoundary) -> None:
        self._boundary = boundary
        self._current: Optional[str] = None
        self._stack: list[str] = []
        self._history: deque[str] = deque(maxlen=HISTORY_LIMIT)

    @property
    def current_directory(self) -> Optional[str]:
        """The explicitly set directory, or None when unset."""
        return self._current

    @property
    def stack(self) -> list[str]:
        return list(self._stack)

    @property
    def history(self) -> list[str]:
        """Recent directory changes as ``"from → to"`` strings, oldest first."""
        return list(self._history)

    def set_active_directory(self, path: str | Path, expand: bool = True) -> None:
        """Make *path* the current directory. Raises PathAccessError outside the boundary.

        With ``expand=False`` a ``$`` in *path* is taken literally.
        """
        if expand:
            normalized = self._boundary.normalize(path)
        else:
            normalized = self._boundary.collapse(path)
        if not self._boundary.admits(normalized):
            raise PathAccessError(
                normalized,
                AccessKind.READ,
                f"Cannot set active directory outside of permitted boundaries: {normalized}",
            )
        self._change_to(normalized)

    def get_active_directory(self) -> str:
        """Current directory, else the active project root, else the process cwd."""
        if self._current:
            return self._current
        project_root = self._boundary.active_project_root
        if project_root:
            return project_root
        return os.getcwd()

    def push_directory(self, path: str | Path, expand: bool = True) -> None:
        """Save the current directory on the stack and switch to *path*.

        The stack is left untouched when validation of *path* fails.
        """
        previous = self._current
        if previous:
            self._stack.append(previous)
        try:
            self.set_active_directory(path, expand)
        except PathAccessError:
            if previous:
                self._stack.pop()
            raise

    def pop_directory(self) -> Optional[str]:
        """Restore the most recently pushed directory.

        Returns None on an empty stack. Entries were validated when pushed
        and are not validated again.
        """
        if not self._stack:
            return None
        previous = self._stack.pop()
        self._change_to(previous)
        return previous

    def peek(self) -> Optional[str]:
        return self._stack[-1] if self._stack else None

    def clear_stack(self) -> None:
        self._stack.clear()

    def clear_history(self) -> None:
        self._history.clear()

    def resolve_path(self, path: str | Path) -> str:
        """Resolve *path* against the current directory.

        ``~`` and ``$VAR`` references are expanded first, so ``~/x`` counts
        as absolute.
        """
        expanded = self._boundary.expand_variables(path)
        if not os.path.isabs(expanded):
            expanded = os.path.join(self.get_active_directory(), expanded)
        return self._boundary.collapse(expanded)

    def _change_to(self, directory: str) -> None:
        if self._current and self._current != directory:
            self._history.append(f"{self._current} → {directory}")
        logger.debug("Active directory: %s", directory)
        self._current = directory
