"""Path normalization and read/write boundary enforcement.

Every tool that touches the filesystem asks the PathBoundary first. The
boundary holds up to three roots:

* the active project root (parent directory of the active project),
* the configured projects base directory,
* the server process root, which only ever grants read access.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from xcodemcp.core.errors import AccessKind, PathAccessError

logger = logging.getLogger(__name__)

_VAR_RE = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*))")


def _env_value(match: re.Match) -> str:
    return os.environ.get(match.group(1) or match.group(2), "")


@dataclass(frozen=True)
class BoundaryRoot:
    """A directory under which access is granted."""
    name: str
    path: str
    writable: bool

    def contains(self, candidate: str) -> bool:
        """Separator-delimited containment: /a/Proj does not contain /a/ProjOther."""
        if candidate == self.path:
            return True
        prefix = self.path if self.path.endswith(os.sep) else self.path + os.sep
        return candidate.startswith(prefix)


class PathBoundary:
    """Normalizes path strings and decides read/write admissibility."""

    def __init__(
        self,
        projects_base_dir: Optional[str | Path] = None,
        process_root: Optional[str | Path] = None,
    ) -> None:
        self._process_root = self.normalize(str(process_root) if process_root else os.getcwd())
        self._projects_base_dir: Optional[str] = None
        self._active_project_path: Optional[str] = None
        self._active_project_root: Optional[str] = None
        if projects_base_dir:
            self.set_projects_base_dir(projects_base_dir)

    # ------------------------------------------------------------------
    # Expansion and normalization
    # ------------------------------------------------------------------

    def expand_variables(self, raw: str | Path) -> str:
        """Expand a leading ``~`` and ``$NAME``/``${NAME}`` references.

        The leading ``~`` alone is replaced, so ``~Documents`` becomes
        ``$HOME/Documents``. Both variable forms are substituted in a single
        pass; a value that itself contains ``$NAME`` is not expanded again,
        which means normalize() is idempotent only for results free of ``$``.
        Unset variables expand to the empty string. Malformed references
        such as ``${`` are left as literal text.
        """
        text = str(raw)
        if not text:
            return text
        if text.startswith("~"):
            rest = text[1:].lstrip(os.sep)
            text = os.path.join(str(Path.home()), rest) if rest else str(Path.home())
        return _VAR_RE.sub(_env_value, text)

    def expand(self, raw: str | Path) -> str:
        """Expand ``~`` and environment variables, then make the path absolute."""
        text = str(raw)
        if not text:
            return text
        expanded = self.expand_variables(text)
        if os.path.isabs(expanded):
            return expanded
        return os.path.join(os.getcwd(), expanded)

    def normalize(self, raw: str | Path) -> str:
        """Expand and collapse ``.``/``..`` segments. Empty input is returned as-is."""
        text = str(raw)
        if not text:
            return text
        return os.path.normpath(self.expand(text))

    def collapse(self, path: str | Path) -> str:
        """Make a filesystem path absolute and collapse it without expanding ``~`` or ``$``.

        For paths that came from the filesystem or went through normalize()
        already, where a ``$`` is a literal character.
        """
        return os.path.normpath(os.path.abspath(str(path)))

    # ------------------------------------------------------------------
    # Boundary set
    # ------------------------------------------------------------------

    @property
    def process_root(self) -> str:
        return self._process_root

    @property
    def projects_base_dir(self) -> Optional[str]:
        return self._projects_base_dir

    @property
    def active_project_path(self) -> Optional[str]:
        return self._active_project_path

    @property
    def active_project_root(self) -> Optional[str]:
        return self._active_project_root

    def set_projects_base_dir(self, path: str | Path) -> None:
        """Grant read/write access under a projects base directory."""
        self._projects_base_dir = self.normalize(path)
        logger.info("Projects base directory set to %s", self._projects_base_dir)

    def set_active_project(self, project_path: str | Path, expand: bool = True) -> None:
        """Record the active project; its parent directory becomes a writable root.

        Pass ``expand=False`` for a path taken from the filesystem.
        """
        normalized = self.normalize(project_path) if expand else self.collapse(project_path)
        self._active_project_path = normalized
        self._active_project_root = os.path.dirname(normalized)
        logger.info("Active project root set to %s", self._active_project_root)

    def roots(self) -> list[BoundaryRoot]:
        """The current BoundarySet, in precedence order."""
        roots = []
        if self._active_project_root:
            roots.append(BoundaryRoot("active_project", self._active_project_root, writable=True))
        if self._projects_base_dir:
            roots.append(BoundaryRoot("projects_base_dir", self._projects_base_dir, writable=True))
        roots.append(BoundaryRoot("process_root", self._process_root, writable=False))
        return roots

    # ------------------------------------------------------------------
    # Admissibility
    # ------------------------------------------------------------------

    def is_path_allowed(self, path: str | Path, for_write: bool = False) -> bool:
        """Check whether *path* falls under a root granting the requested access."""
        return self.admits(self.normalize(path), for_write)

    def admits(self, candidate: str, for_write: bool = False) -> bool:
        """Like is_path_allowed, for a path that is already normalized."""
        if not candidate:
            return False
        for root in self.roots():
            if for_write and not root.writable:
                continue
            if root.contains(candidate):
                return True
        return False

    def validate_path_for_reading(self, path: str | Path, expand: bool = True) -> str:
        """Return the normalized path or raise PathAccessError.

        Pass ``expand=False`` for a path that was already resolved, so that a
        literal ``$`` or ``~`` in it is kept.
        """
        return self._validate(path, AccessKind.READ, expand)

    def validate_path_for_writing(self, path: str | Path, expand: bool = True) -> str:
        """Return the normalized path or raise PathAccessError."""
        return self._validate(path, AccessKind.WRITE, expand)

    def _validate(self, path: str | Path, access: AccessKind, expand: bool) -> str:
        normalized = self.normalize(path) if expand else self.collapse(path)
        if not self.admits(normalized, for_write=access is AccessKind.WRITE):
            logger.debug("Rejected %s access", access.value,
                         extra={"path": normalized, "access": access.value})
            raise PathAccessError(normalized, access)
        return normalized

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def is_path_within(self, parent: str | Path, child: str | Path) -> bool:
        """Check whether *child* equals or lies under *parent*."""
        root = BoundaryRoot("parent", self.normalize(parent), writable=False)
        return root.contains(self.normalize(child))

    def join_paths(self, *parts: str | Path) -> str:
        return self.normalize(os.path.join(*[str(p) for p in parts]))

    def relative_path(self, start: str | Path, target: str | Path) -> str:
        return os.path.relpath(self.normalize(target), self.normalize(start))
