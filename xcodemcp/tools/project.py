"""Project tools: base directory, active project, detection and discovery."""

from __future__ import annotations

from typing import Any, Optional

from xcodemcp.core.errors import CommandExecutionError, FileOperationError
from xcodemcp.core.project import ActiveProject
from xcodemcp.core.workspace_manifest import parse_workspace_document
from xcodemcp.tools.base import Tool, ToolCategory, ToolParameter, ToolResult


class ProjectTool(Tool):
    """Shared helpers for tools that describe the active project."""

    @property
    def category(self) -> ToolCategory:
        return ToolCategory.PROJECT

    async def _with_project_info(self, project: ActiveProject) -> dict[str, Any]:
        data = project.to_dict()
        try:
            info = await self.context.ide.project_info(project.path)
        except CommandExecutionError as e:
            data["projectInfoError"] = e.message
        else:
            data.update(
                targets=info.targets,
                configurations=info.configurations,
                schemes=info.schemes,
                defaultConfiguration=info.default_configuration,
            )
        return data


class SetProjectsBaseDirTool(ProjectTool):
    """Grant access under a projects directory and re-run detection."""

    @property
    def name(self) -> str:
        return "set_projects_base_dir"

    @property
    def description(self) -> str:
        return "Sets the base directory where your Xcode projects are stored."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="base_dir",
                type="string",
                description="Directory containing your Xcode projects. Supports ~ and environment variables.",
            ),
        ]

    async def execute(self, base_dir: str, **kwargs: Any) -> ToolResult:
        expanded = await self.context.resolver.set_projects_base_dir(self.context.resolve(base_dir))
        output = f"Projects base directory set to: {expanded}"
        project = self.context.resolver.active_project
        if project:
            output += f"\nActive project: {project.path}"
        return ToolResult.ok(output, data={"baseDir": expanded})


class SetProjectPathTool(ProjectTool):
    """Explicitly choose the active project."""

    @property
    def name(self) -> str:
        return "set_project_path"

    @property
    def description(self) -> str:
        return (
            "Sets the active Xcode project by path: a .xcodeproj, a .xcworkspace, "
            "or a directory containing Package.swift."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="project_path",
                type="string",
                description="Path to the project container. Supports ~ and environment variables.",
            ),
            ToolParameter(
                name="set_active_directory",
                type="boolean",
                description="Also make the project's directory the active directory",
                required=False,
                default=True,
            ),
            ToolParameter(
                name="open_in_xcode",
                type="boolean",
                description="Also open the project in Xcode",
                required=False,
                default=False,
            ),
        ]

    async def execute(
        self,
        project_path: str,
        set_active_directory: bool = True,
        open_in_xcode: bool = False,
        **kwargs: Any,
    ) -> ToolResult:
        validated = self.context.boundary.validate_path_for_reading(
            self.context.resolve(project_path), expand=False
        )
        project = await self.context.resolver.set_explicit(
            validated, change_directory=set_active_directory
        )

        status = ""
        if open_in_xcode:
            try:
                await self.context.ide.open_project(project.path)
                status = " and opened in Xcode"
            except CommandExecutionError as e:
                status = f" (failed to open in Xcode: {e.stderr or e.message})"

        return ToolResult.ok(
            f"Active project set to: {project.path} ({project.kind.value}){status}",
            data=project.to_dict(),
        )


class GetActiveProjectTool(ProjectTool):
    """Report the active project, detecting one if needed."""

    @property
    def name(self) -> str:
        return "get_active_project"

    @property
    def description(self) -> str:
        return "Retrieves information about the currently active Xcode project."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="detailed",
                type="boolean",
                description="Include targets, configurations, schemes and workspace members",
                required=False,
                default=False,
            ),
        ]

    async def execute(self, detailed: bool = False, **kwargs: Any) -> ToolResult:
        project = await self.context.resolver.get_active_project()
        if detailed:
            data = await self._with_project_info(project)
            if project.is_workspace:
                try:
                    data["projects"] = parse_workspace_document(project.path)
                except FileOperationError as e:
                    data["projectsError"] = e.message
        else:
            data = project.to_dict()
        data["activeDirectory"] = self.context.directory.get_active_directory()
        data["state"] = self.context.resolver.state.value
        return ToolResult.json(data)


class DetectActiveProjectTool(ProjectTool):
    """Run (or re-run) project detection."""

    @property
    def name(self) -> str:
        return "detect_active_project"

    @property
    def description(self) -> str:
        return (
            "Detects the active Xcode project from the frontmost Xcode window, the "
            "projects base directory, or Xcode's recent documents."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="force_redetect",
                type="boolean",
                description="Detect again even if a project is already set",
                required=False,
                default=False,
            ),
        ]

    async def execute(self, force_redetect: bool = False, **kwargs: Any) -> ToolResult:
        resolver = self.context.resolver
        existing = resolver.active_project
        if existing and not force_redetect:
            prefix = "Using existing active project"
            project = existing
        else:
            prefix = "Detected active project"
            project = await resolver.detect(force=True)
        data = await self._with_project_info(project)
        return ToolResult(
            success=True,
            output=f"{prefix}: {project.path}\n\n{ToolResult.json(data).output}",
            data=data,
        )


class FindProjectsTool(ProjectTool):
    """Search a directory tree for project containers."""

    @property
    def name(self) -> str:
        return "find_projects"

    @property
    def description(self) -> str:
        return "Finds Xcode projects, workspaces and Swift packages in a directory."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="directory",
                type="string",
                description="Directory to search. Defaults to the projects base directory.",
                required=False,
            ),
            ToolParameter(
                name="include_workspaces",
                type="boolean",
                description="Include .xcworkspace bundles",
                required=False,
                default=True,
            ),
            ToolParameter(
                name="include_packages",
                type="boolean",
                description="Include Swift Package Manager packages",
                required=False,
                default=False,
            ),
        ]

    async def execute(
        self,
        directory: Optional[str] = None,
        include_workspaces: bool = True,
        include_packages: bool = False,
        **kwargs: Any,
    ) -> ToolResult:
        search_dir = self.context.resolve(directory) if directory else None
        summaries = await self.context.resolver.find_projects(
            search_dir, include_workspaces, include_packages
        )
        return ToolResult.json([s.to_dict() for s in summaries])


class GetProjectConfigurationTool(ProjectTool):
    """Targets, configurations and schemes of the active project."""

    @property
    def name(self) -> str:
        return "get_project_configuration"

    @property
    def description(self) -> str:
        return "Retrieves targets, build configurations and schemes for the active project."

    @property
    def parameters(self) -> list[ToolParameter]:
        return []

    async def execute(self, **kwargs: Any) -> ToolResult:
        project = self.context.resolver.require_active_project()
        info = await self.context.ide.project_info(project.path)
        data = info.to_dict()
        if project.is_workspace:
            data["workspaceProjects"] = parse_workspace_document(project.path)
        return ToolResult.json(data)


def create_project_tools(context) -> list[Tool]:
    return [
        SetProjectsBaseDirTool(context),
        SetProjectPathTool(context),
        GetActiveProjectTool(context),
        DetectActiveProjectTool(context),
        FindProjectsTool(context),
        GetProjectConfigurationTool(context),
    ]
