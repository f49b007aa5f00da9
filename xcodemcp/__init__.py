"""MCP server giving AI assistants bounded access to Xcode projects."""

__version__ = "0.3.0"
