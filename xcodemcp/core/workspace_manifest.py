"""Member-project discovery in ``.xcworkspace`` manifests.

Xcode has written the same FileRef reference in several textual shapes over
the years. Each shape gets its own extractor; results are unioned in
extractor order and deduplicated by absolute path.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from xcodemcp.core.errors import FileOperationError

logger = logging.getLogger(__name__)

WORKSPACE_CONTENTS = "contents.xcworkspacedata"
PROJECT_SUFFIX = ".xcodeproj"


@dataclass(frozen=True)
class ReferenceExtractor:
    """One textual shape of a member-project reference."""
    name: str
    pattern: re.Pattern

    def extract(self, text: str) -> list[str]:
        return [m.group("ref") for m in self.pattern.finditer(text)]


EXTRACTORS: tuple[ReferenceExtractor, ...] = (
    # location group:="App.xcodeproj" / location group="App.xcodeproj"
    ReferenceExtractor(
        "bare_group_attribute",
        re.compile(r'\blocation\s+group:?\s*=?\s*"(?P<ref>[^"]+)"'),
    ),
    # <FileRef location="group:App.xcodeproj"/>
    ReferenceExtractor(
        "self_closing_file_ref",
        re.compile(r'<FileRef\s+location\s*=\s*"(?:group|container):(?P<ref>[^"]+)"\s*/>'),
    ),
    # <FileRef location="group:App.xcodeproj"> ... </FileRef>
    ReferenceExtractor(
        "open_close_file_ref",
        re.compile(
            r'<FileRef\s+location\s*=\s*"(?:group|container):(?P<ref>[^"]+)"\s*>.*?</FileRef>',
            re.DOTALL,
        ),
    ),
    # location = "group:App.xcodeproj" in any element
    ReferenceExtractor(
        "location_assignment",
        re.compile(r'\blocation\s*=\s*"(?:group|container):(?P<ref>[^"]+\.xcodeproj)"'),
    ),
)


def manifest_path(workspace_path: str | Path) -> str:
    return os.path.join(str(workspace_path), WORKSPACE_CONTENTS)


def extract_project_references(
    text: str,
    base_dir: str,
    extractors: tuple[ReferenceExtractor, ...] = EXTRACTORS,
) -> list[str]:
    """Resolve every ``.xcodeproj`` reference in *text* against *base_dir*.

    Returns absolute paths in first-seen order without duplicates.
    """
    projects: list[str] = []
    seen: set[str] = set()
    for extractor in extractors:
        for ref in extractor.extract(text):
            if not ref.endswith(PROJECT_SUFFIX):
                continue
            absolute = os.path.normpath(os.path.join(base_dir, ref))
            if absolute not in seen:
                seen.add(absolute)
                projects.append(absolute)
    return projects


def parse_workspace_document(workspace_path: str | Path) -> list[str]:
    """List the member projects referenced by a workspace.

    References are resolved against the directory containing the workspace
    bundle. Raises FileOperationError when the manifest cannot be read.
    """
    workspace = os.path.normpath(os.path.abspath(str(workspace_path)))
    contents = manifest_path(workspace)
    try:
        with open(contents, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise FileOperationError("read", contents, e.strerror or str(e)) from e
    except ValueError as e:
        raise FileOperationError("read", contents, e) from e
    return extract_project_references(text, os.path.dirname(workspace))


def find_main_project(workspace_path: str | Path) -> Optional[str]:
    """First member project of a workspace, or None if there is none or the manifest is unreadable."""
    try:
        members = parse_workspace_document(workspace_path)
    except FileOperationError as e:
        logger.warning("Could not read workspace manifest: %s", e)
        return None
    if not members:
        logger.info("No project reference found in workspace %s", workspace_path)
        return None
    return members[0]
