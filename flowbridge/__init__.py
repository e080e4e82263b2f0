"""flowbridge - convert workflow automations between n8n and Make.

This package converts n8n workflows (nodes plus a connection map, with
``={{ }}`` expressions) into Make scenarios (modules plus routes, with
``{{ }}`` expressions) and back. Entity types are mapped through a
registry, expressions are transpiled, and whatever cannot be converted
mechanically becomes a placeholder or a review entry instead of an error.

Example:
    Convert a workflow:

    >>> import flowbridge
    >>> result = flowbridge.convert(n8n_workflow, "n8n", "make")
    >>> result.to_dict()["convertedWorkflow"]["flow"]

    Or serve the converter to agents:

    $ flowbridge-mcp

Key Features:
    - n8n to Make and Make to n8n conversion
    - Expression transpilation between both dialects
    - Placeholders and review flags for unmapped content
    - Mapping plugins and remote mapping refresh
    - HTTP API and MCP tool server

Modules:
    converter: Conversion orchestrator and its components
    expressions: Expression parser and transpiler
    mappings: Mapping registry, plugins and remote refresh
    api: FastAPI application
    mcp: Model Context Protocol server
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .converter import WorkflowConverter, convert, detect_platform
from .mappings import MappingRegistry
from .models import ConversionOptions, ConversionResult, Direction, Platform

__all__ = [
    "WorkflowConverter",
    "MappingRegistry",
    "ConversionOptions",
    "ConversionResult",
    "Direction",
    "Platform",
    "convert",
    "detect_platform",
]
