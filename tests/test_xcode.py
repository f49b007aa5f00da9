"""Tests for the Xcode command-line bridge."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from xcodemcp.core.errors import CommandExecutionError
from xcodemcp.core.xcode import (
    FRONTMOST_DOCUMENT_SCRIPT,
    XcodeIDE,
    extract_recent_document,
    package_project_info,
    parse_xcodebuild_list,
)

XCODEBUILD_LIST_OUTPUT = """\
Command line invocation:
    /Applications/Xcode.app/Contents/Developer/usr/bin/xcodebuild -list -project App.xcodeproj

Information about project "App":
    Targets:
        App
        AppTests
        AppUITests

    Build Configurations:
        Debug
        Release
        Staging

    If no build configuration is specified and -scheme is not passed then "Release" is used.

    Schemes:
        App
        App (Staging)
"""

DEFAULTS_OUTPUT = """\
(
        {
        "IDEWorkspaceDocumentURL" = {
            bookmark = {length = 620, bytes = 0x626f6f6b};
            path = \\"/Users/dev/Code/App/App.xcodeproj\\";
        };
    },
        {
        path = \\"/Users/dev/Code/Other/Other.xcworkspace\\";
    }
)
"""


def _process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=returncode)
    process.returncode = returncode
    return process


class TestParseXcodebuildList:
    def test_sections(self):
        info = parse_xcodebuild_list(XCODEBUILD_LIST_OUTPUT, "/p/App.xcodeproj")
        assert info.path == "/p/App.xcodeproj"
        assert info.targets == ["App", "AppTests", "AppUITests"]
        assert info.configurations == ["Debug", "Release", "Staging"]
        assert info.schemes == ["App", "App (Staging)"]

    def test_default_configuration_from_output(self):
        info = parse_xcodebuild_list(XCODEBUILD_LIST_OUTPUT, "/p/App.xcodeproj")
        assert info.default_configuration == "Release"

    def test_default_configuration_falls_back_to_first(self):
        output = "    Build Configurations:\n        Debug\n        Release\n"
        assert parse_xcodebuild_list(output, "/p").default_configuration == "Debug"

    def test_empty_output(self):
        info = parse_xcodebuild_list("", "/p")
        assert info.targets == [] and info.configurations == [] and info.schemes == []
        assert info.default_configuration is None

    def test_to_dict(self):
        data = parse_xcodebuild_list(XCODEBUILD_LIST_OUTPUT, "/p/App.xcodeproj").to_dict()
        assert set(data) == {"path", "targets", "configurations", "schemes", "default_configuration"}

    def test_package_defaults(self):
        info = package_project_info("/p/Kit")
        assert info.targets == ["all"]
        assert info.configurations == ["debug", "release"]
        assert info.schemes == ["all"]
        assert info.default_configuration == "debug"


class TestExtractRecentDocument:
    def test_first_escaped_path(self):
        assert extract_recent_document(DEFAULTS_OUTPUT) == "/Users/dev/Code/App/App.xcodeproj"

    def test_quoted_bundle_fallback(self):
        output = '(\n    "/Users/dev/Code/App/App.xcworkspace/"\n)\n'
        assert extract_recent_document(output) == "/Users/dev/Code/App/App.xcworkspace"

    def test_nothing_found(self):
        assert extract_recent_document("(\n)\n") is None


class TestRun:
    @pytest.mark.asyncio
    async def test_returns_stdout(self):
        process = _process(stdout=b"hello\n")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as spawn:
            output = await XcodeIDE().run("echo", "hello")
        assert output == "hello\n"
        assert spawn.call_args.args == ("echo", "hello")

    @pytest.mark.asyncio
    async def test_nonzero_exit(self):
        process = _process(stderr=b"xcodebuild: error: no project\n", returncode=66)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(CommandExecutionError) as excinfo:
                await XcodeIDE().run("xcodebuild", "-list", "-project", "/p/My App.xcodeproj")
        err = excinfo.value
        assert err.command == "xcodebuild -list -project '/p/My App.xcodeproj'"
        assert err.stderr == "xcodebuild: error: no project"

    @pytest.mark.asyncio
    async def test_missing_binary(self):
        spawn = AsyncMock(side_effect=FileNotFoundError(2, "No such file or directory"))
        with patch("asyncio.create_subprocess_exec", spawn):
            with pytest.raises(CommandExecutionError) as excinfo:
                await XcodeIDE().run("osascript", "-e", "return 1")
        assert excinfo.value.stderr == "No such file or directory"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        async def hang():
            await asyncio.sleep(10)
            return b"", b""

        process = _process()
        process.communicate = hang
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(CommandExecutionError) as excinfo:
                await XcodeIDE(timeout=0.05).run("xcodebuild", "-list")
        assert "timed out" in excinfo.value.stderr
        process.kill.assert_called_once()


class TestQueries:
    @pytest.mark.asyncio
    async def test_frontmost_document(self):
        ide = XcodeIDE()
        ide.run = AsyncMock(return_value="/p/App.xcodeproj/\n")
        assert await ide.frontmost_document_path() == "/p/App.xcodeproj"
        ide.run.assert_awaited_once_with("osascript", "-e", FRONTMOST_DOCUMENT_SCRIPT)

    @pytest.mark.asyncio
    async def test_frontmost_document_none_open(self):
        ide = XcodeIDE()
        ide.run = AsyncMock(return_value="\n")
        assert await ide.frontmost_document_path() is None

    @pytest.mark.asyncio
    async def test_recent_document(self):
        ide = XcodeIDE()
        ide.run = AsyncMock(return_value=DEFAULTS_OUTPUT)
        assert await ide.recent_document_path() == "/Users/dev/Code/App/App.xcodeproj"
        ide.run.assert_awaited_once_with(
            "defaults", "read", "com.apple.dt.Xcode", "IDERecentWorkspaceDocuments"
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path,flag", [
        ("/p/App.xcworkspace", "-workspace"),
        ("/p/App.xcodeproj", "-project"),
    ])
    async def test_project_info_dispatch(self, path: str, flag: str):
        ide = XcodeIDE()
        ide.run = AsyncMock(return_value=XCODEBUILD_LIST_OUTPUT)
        info = await ide.project_info(path)
        ide.run.assert_awaited_once_with("xcodebuild", "-list", flag, path)
        assert info.schemes == ["App", "App (Staging)"]

    @pytest.mark.asyncio
    async def test_project_info_for_package(self, tmp_path: Path, make_package):
        pkg = make_package(tmp_path, "Kit")
        ide = XcodeIDE()
        ide.run = AsyncMock()
        info = await ide.project_info(pkg)
        ide.run.assert_not_awaited()
        assert info.path == str(pkg)
        assert info.default_configuration == "debug"

    @pytest.mark.asyncio
    async def test_open_project(self):
        ide = XcodeIDE()
        ide.run = AsyncMock(return_value="")
        await ide.open_project("/p/App.xcodeproj")
        ide.run.assert_awaited_once_with("open", "-a", "Xcode", "/p/App.xcodeproj")
