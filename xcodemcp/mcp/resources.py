"""Read-only MCP resources for the projects under the projects base directory.

``xcode://projects`` lists one entry per project container, and
``xcode://projects/{name}`` describes a single project as JSON. Both go
through ProjectResolver.find_projects, so the boundary applies.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, unquote

from xcodemcp.core.errors import XcodeServerError
from xcodemcp.mcp.protocol import ErrorCode, ProtocolError

if TYPE_CHECKING:
    from xcodemcp.core.context import ServerContext

PROJECTS_URI = "xcode://projects"
PROJECT_URI_TEMPLATE = "xcode://projects/{name}"
PROJECT_MIME_TYPE = "application/x-xcode-project"
JSON_MIME_TYPE = "application/json"


def project_uri(name: str) -> str:
    return f"{PROJECTS_URI}/{quote(name, safe='')}"


class ProjectResources:
    """Serves the two project resources from a ServerContext."""

    def __init__(self, context: "ServerContext"):
        self.context = context

    def list_resources(self) -> list[dict[str, Any]]:
        return [{
            "uri": PROJECTS_URI,
            "name": "xcode-projects",
            "description": "Xcode projects and workspaces under the projects base directory",
            "mimeType": PROJECT_MIME_TYPE,
        }]

    def list_templates(self) -> list[dict[str, Any]]:
        return [{
            "uriTemplate": PROJECT_URI_TEMPLATE,
            "name": "xcode-project",
            "description": "Details of one project found under the projects base directory",
            "mimeType": JSON_MIME_TYPE,
        }]

    async def read(self, uri: str) -> list[dict[str, Any]]:
        """Contents for *uri*.

        Raises:
            ProtocolError: RESOURCE_NOT_FOUND for an unknown URI or project
                name, INTERNAL_ERROR when the project search itself fails.
        """
        if uri == PROJECTS_URI:
            return [
                {"uri": project_uri(s.name), "mimeType": PROJECT_MIME_TYPE, "text": s.name}
                for s in await self._projects()
            ]

        prefix = PROJECTS_URI + "/"
        if not uri.startswith(prefix) or uri == prefix:
            raise ProtocolError(ErrorCode.RESOURCE_NOT_FOUND, f"Unknown resource: {uri}", {"uri": uri})

        name = unquote(uri[len(prefix):])
        # Duplicate names resolve to the first container in enumeration order
        for summary in await self._projects():
            if summary.name == name:
                return [{
                    "uri": uri,
                    "mimeType": JSON_MIME_TYPE,
                    "text": json.dumps(summary.to_dict(), indent=2),
                }]
        raise ProtocolError(ErrorCode.RESOURCE_NOT_FOUND, f"Project {name} not found", {"uri": uri})

    async def _projects(self):
        try:
            return await self.context.resolver.find_projects()
        except XcodeServerError as e:
            raise ProtocolError(ErrorCode.INTERNAL_ERROR, e.message, e.to_dict()) from e
