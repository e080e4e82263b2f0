"""MCP Server package for workflow conversion.

This package provides a Model Context Protocol (MCP) server that exposes
the n8n/Make converter to AI agents.

Conversion:
    - convert_workflow: Convert workflow JSON between n8n and Make
    - convert_workflow_file: Convert a workflow file, optionally writing the result

Inspection:
    - validate_workflow: Check a workflow's structure
    - list_mappings: List mapping definitions for a direction
    - get_mapping_coverage: Report which entity types have mappings
    - refresh_mappings: Merge a remote mapping document

Example:
    Start the MCP server:

    >>> from flowbridge.mcp.server import mcp
    >>> if __name__ == "__main__":
    ...     mcp.run()
"""

from .server import mcp, main

__all__ = [
    "mcp",
    "main",
]
