"""Shared test fixtures and pytest configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import pytest

from xcodemcp.core.boundary import PathBoundary
from xcodemcp.core.config import ServerConfig
from xcodemcp.core.context import ServerContext
from xcodemcp.core.directory import DirectoryState
from xcodemcp.core.errors import CommandExecutionError
from xcodemcp.core.logging import reset_logger
from xcodemcp.core.xcode import ProjectInfo, XcodeIDE


class FakeXcodeIDE(XcodeIDE):
    """XcodeIDE that never spawns processes.

    Each query returns the configured value, or raises it when it is an
    exception instance.
    """

    def __init__(self):
        super().__init__(timeout=1.0)
        self.frontmost: object = None
        self.recent: object = None
        self.info: object = None
        self.open_error: Optional[BaseException] = None
        self.opened: list[str] = []
        self.calls: list[str] = []

    @staticmethod
    def _answer(value):
        if isinstance(value, BaseException):
            raise value
        return value

    async def frontmost_document_path(self) -> Optional[str]:
        self.calls.append("frontmost")
        return self._answer(self.frontmost)

    async def recent_document_path(self) -> Optional[str]:
        self.calls.append("recent")
        return self._answer(self.recent)

    async def project_info(self, path) -> ProjectInfo:
        self.calls.append("info")
        if self.info is None:
            return ProjectInfo(path=str(path), targets=["App"], configurations=["Debug", "Release"],
                               schemes=["App"], default_configuration="Release")
        return self._answer(self.info)

    async def open_project(self, path) -> None:
        self.calls.append("open")
        if self.open_error is not None:
            raise self.open_error
        self.opened.append(str(path))


@pytest.fixture(autouse=True)
def _reset_package_logger():
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def process_root(tmp_path: Path) -> Path:
    root = tmp_path / "server"
    root.mkdir()
    return root


@pytest.fixture
def projects_dir(tmp_path: Path) -> Path:
    root = tmp_path / "projects"
    root.mkdir()
    return root


@pytest.fixture
def boundary(process_root: Path) -> PathBoundary:
    return PathBoundary(process_root=process_root)


@pytest.fixture
def directory_state(boundary: PathBoundary) -> DirectoryState:
    return DirectoryState(boundary)


@pytest.fixture
def fake_ide() -> FakeXcodeIDE:
    ide = FakeXcodeIDE()
    ide.frontmost = CommandExecutionError("osascript", "Xcode is not running")
    ide.recent = CommandExecutionError("defaults read", "domain does not exist")
    return ide


@pytest.fixture
def context(projects_dir: Path, process_root: Path, fake_ide: FakeXcodeIDE) -> ServerContext:
    config = ServerConfig(projects_base_dir=projects_dir, logs_dir=None)
    return ServerContext(config, process_root=process_root, ide=fake_ide)


def _make_xcodeproj(parent: Path, name: str) -> Path:
    bundle = parent / f"{name}.xcodeproj"
    (bundle / "project.xcworkspace").mkdir(parents=True)
    (bundle / "project.pbxproj").write_text("// !$*UTF8*$!\n{}\n")
    (bundle / "project.xcworkspace" / "contents.xcworkspacedata").write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<Workspace version = "1.0">\n'
        '   <FileRef location = "self:">\n'
        '   </FileRef>\n'
        '</Workspace>\n'
    )
    return bundle


def _make_workspace(parent: Path, name: str, members: list[str]) -> Path:
    bundle = parent / f"{name}.xcworkspace"
    bundle.mkdir(parents=True)
    refs = "".join(
        f'   <FileRef\n      location = "group:{member}">\n   </FileRef>\n' for member in members
    )
    (bundle / "contents.xcworkspacedata").write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<Workspace\n   version = "1.0">\n{refs}</Workspace>\n'
    )
    return bundle


def _make_package(parent: Path, name: str) -> Path:
    package = parent / name
    (package / "Sources" / name).mkdir(parents=True)
    (package / "Package.swift").write_text(
        "// swift-tools-version:5.9\nimport PackageDescription\n"
        f'let package = Package(name: "{name}")\n'
    )
    return package


@pytest.fixture
def make_xcodeproj() -> Callable[[Path, str], Path]:
    """Factory creating ``<parent>/<name>.xcodeproj`` with its embedded workspace."""
    return _make_xcodeproj


@pytest.fixture
def make_workspace() -> Callable[[Path, str, list[str]], Path]:
    """Factory creating ``<parent>/<name>.xcworkspace`` referencing *members*."""
    return _make_workspace


@pytest.fixture
def make_package() -> Callable[[Path, str], Path]:
    """Factory creating a Swift package directory."""
    return _make_package
