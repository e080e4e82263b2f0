"""flowbridge MCP Server

Provides tools for converting workflows between n8n and Make, checking
their structure and inspecting the mapping tables. Conversion problems are
reported in each result's logs and review entries rather than as errors.
"""

import asyncio
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError

from .. import __version__
from ..config import get_config
from ..converter import WorkflowConverter, detect_platform, entity_types
from ..expressions.functions import CURRENT_ITEM_ROOT, FUNCTION_RULES, NAMED_NODE_ROOT, VARIABLE_ROOTS
from ..mappings import refresh_from_remote
from ..models import Direction, Platform

logger = logging.getLogger(__name__)

# Create MCP server
mcp = FastMCP("flowbridge workflow converter")

# Security: file tools only touch paths under this directory
WORKFLOWS_BASE = Path(os.getenv("FLOWBRIDGE_WORKFLOWS_DIR", Path.cwd() / "workflows"))

converter = WorkflowConverter(config=get_config())


def validate_path(filepath: str, base: Optional[Path] = None) -> Path:
    """Resolve ``filepath`` (relative to the workflows directory) and keep it inside."""
    base = (base or WORKFLOWS_BASE).resolve()
    path = Path(filepath)
    if not path.is_absolute():
        path = base / path
    path = path.resolve()
    try:
        path.relative_to(base)
    except ValueError:
        raise ToolError(f"Access denied: {filepath} is outside allowed directory")
    return path


def _platform(value: str, workflow: Any) -> Platform:
    if value in (None, "auto"):
        platform = detect_platform(workflow)
        if platform is None:
            raise ToolError("Could not detect the workflow platform; pass 'n8n' or 'make'")
        return platform
    try:
        return Platform(value)
    except ValueError:
        raise ToolError(f"Unknown platform: {value}. Use 'n8n', 'make' or 'auto'")


# ===== CONVERSION TOOLS =====

@mcp.tool
async def convert_workflow(
    ctx: Context,
    workflow: dict,
    source_platform: str = "auto",
    target_platform: Optional[str] = None,
    options: Optional[dict] = None,
    review_format: str = "structured",
) -> dict:
    """Convert a workflow between n8n and Make.

    Entities without a mapping become placeholders and anything that could
    not be translated mechanically is listed in parametersNeedingReview.

    Args:
        workflow: Source workflow JSON
        source_platform: "n8n", "make" or "auto" (default: "auto")
        target_platform: "n8n" or "make" (default: the other platform)
        options: Conversion options, e.g. {"debug": true, "preserveIds": true}
        review_format: "structured" or "flattened" review entries

    Returns:
        Conversion result with convertedWorkflow, logs, parametersNeedingReview,
        unmappedNodes and isValidInput

    Examples:
        convert_workflow(n8n_workflow)
        convert_workflow(make_scenario, "make", "n8n", {"debug": true})
    """
    if review_format not in ("structured", "flattened"):
        raise ToolError(f"Unsupported review format: {review_format}. Use 'structured' or 'flattened'")

    await ctx.info(f"Converting workflow ({source_platform} -> {target_platform or 'auto'})")
    result = converter.convert(workflow, source_platform, target_platform, options)

    if not result.is_valid_input:
        await ctx.info(f"Invalid input: {'; '.join(result.errors())}")
    else:
        await ctx.info(
            f"Converted with {len(result.parameters_needing_review)} review entries "
            f"and {len(result.unmapped_nodes)} unmapped entities"
        )
    return result.to_dict(review_format=review_format)


@mcp.tool
async def convert_workflow_file(
    ctx: Context,
    input_path: str,
    output_path: Optional[str] = None,
    target_platform: Optional[str] = None,
    options: Optional[dict] = None,
) -> dict:
    """Convert a workflow JSON file and optionally write the result.

    Paths are relative to the workflows directory. The converted workflow
    is written only when the conversion finished without errors.

    Args:
        input_path: Source workflow file (.json)
        output_path: Where to write the converted workflow (optional)
        target_platform: "n8n" or "make" (default: the other platform)
        options: Conversion options

    Returns:
        Summary with output path, logs, review entries and unmapped types

    Examples:
        convert_workflow_file("n8n/orders.json", "make/orders.json")
    """
    source = validate_path(input_path)
    if not source.exists():
        raise ToolError(f"File not found: {input_path}")

    await ctx.info(f"Reading workflow from {input_path}")
    try:
        workflow = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ToolError(f"Invalid JSON in {input_path}: {e}")

    result = converter.convert(workflow, "auto", target_platform, options)
    summary = result.to_dict()
    summary.pop("convertedWorkflow")
    summary["input"] = str(source)
    summary["output"] = None

    if output_path and result.is_valid_input and not result.errors():
        destination = validate_path(output_path)
        if destination.exists():
            await ctx.info(f"File {output_path} already exists, will overwrite")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(json.dumps(result.converted_workflow, indent=2), encoding="utf-8")
        except OSError as e:
            raise ToolError(f"Error writing workflow: {e}")
        summary["output"] = str(destination)
        await ctx.info(f"Wrote converted workflow to {output_path}")

    return summary


# ===== INSPECTION TOOLS =====

@mcp.tool
def validate_workflow(workflow: dict, platform: str = "auto") -> dict:
    """Check a workflow's structure without converting it.

    Args:
        workflow: Workflow JSON
        platform: "n8n", "make" or "auto"

    Returns:
        Validation result with is_valid, platform and errors
    """
    if platform == "auto" and detect_platform(workflow) is None:
        return {
            "is_valid": False,
            "platform": None,
            "errors": ["Could not detect the workflow platform"],
        }
    resolved = _platform(platform, workflow)
    validation = converter.validators[resolved](workflow)
    return {
        "is_valid": validation.valid,
        "platform": resolved.value,
        "errors": validation.errors,
        "entity_count": len(entity_types(workflow, resolved)),
    }


@mcp.tool
def list_mappings(direction: str = "n8nToMake") -> dict:
    """List the mapping definitions for one direction.

    Args:
        direction: "n8nToMake" or "makeToN8n"

    Returns:
        Mapping definitions keyed by source type
    """
    try:
        direction = Direction(direction)
    except ValueError:
        raise ToolError(f"Unknown direction: {direction}. Use 'n8nToMake' or 'makeToN8n'")
    return {
        "direction": direction.value,
        "count": len(converter.registry.known_types(direction)),
        "mappings": converter.registry.to_dict(direction),
        "plugins": [plugin.info() for plugin in converter.registry.plugins()],
    }


@mcp.tool
def get_mapping_coverage(workflow: dict, source_platform: str = "auto") -> dict:
    """Report which entity types of a workflow have mappings.

    Args:
        workflow: Source workflow JSON
        source_platform: "n8n", "make" or "auto"

    Returns:
        Coverage with total, mapped, unmapped, percentage and unmappedTypes
    """
    source = _platform(source_platform, workflow)
    direction = Direction.between(source, source.other)
    report = converter.registry.coverage(entity_types(workflow, source), direction)
    return {"direction": direction.value, **report.to_dict()}


@mcp.tool
async def refresh_mappings(ctx: Context, url: Optional[str] = None) -> dict:
    """Refresh mapping definitions from a remote JSON document.

    Falls back to the last cached document when the fetch fails.

    Args:
        url: Mapping document URL (default: the configured source)

    Returns:
        Refresh status, merged definition count and any error
    """
    source = url or converter.config.mapping_source_url
    if not source:
        raise ToolError("No mapping source configured; pass a url")

    await ctx.info(f"Refreshing mappings from {source}")
    outcome = await refresh_from_remote(converter.registry, source, converter.config)
    if outcome.status == "error":
        raise ToolError(f"Failed to refresh mappings: {outcome.error}")
    await ctx.info(f"Merged {outcome.count} mappings ({outcome.status})")
    return outcome.to_dict()


# ===== RESOURCES =====

def expression_reference() -> str:
    """Markdown reference of the expression translation tables."""
    lines = [
        "# Expression translation",
        "",
        "n8n values are expressions when they start with `=` and contain `{{ }}`;",
        "Make values embed `{{ }}` segments directly.",
        "",
        "## References",
        "",
        "| n8n | Make |",
        "|---|---|",
        f"| `{CURRENT_ITEM_ROOT}.field` | `<upstream module id>.field` |",
        f'| `{NAMED_NODE_ROOT}["Name"].json.field` | `<module id of Name>.field` |',
    ]
    lines += [f"| `{source}` | `{target}` |" for source, target in VARIABLE_ROOTS.items()]
    lines += [
        "",
        "## Functions",
        "",
        "| n8n | Make | arguments |",
        "|---|---|---|",
    ]
    for rule in FUNCTION_RULES:
        arity = str(rule.min_args) if rule.min_args == rule.max_args else f"{rule.min_args}-{rule.max_args}"
        lines.append(f"| `{rule.node_graph_name}` | `{rule.module_flow_name}` | {arity} |")
    lines += [
        "",
        "n8n ternaries `a ? b : c` become `ifThenElse(a, b, c)`.",
        "Anything else is left as written and listed for review.",
    ]
    return "\n".join(lines)


@mcp.resource("flowbridge://docs/expressions")
async def docs_expressions() -> str:
    """Expression translation reference"""
    return expression_reference()


# ===== CLI SUPPORT =====

def main():
    """Main entry point for the CLI."""
    import argparse

    parser = argparse.ArgumentParser(
        description="flowbridge MCP Server - n8n and Make workflow conversion"
    )
    parser.add_argument(
        "--mapping-url",
        default=None,
        help="Remote mapping document to merge at startup"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"flowbridge {__version__}"
    )

    args = parser.parse_args()

    # Configure logging
    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(level=level)

    global converter
    if args.mapping_url:
        converter = WorkflowConverter(config=replace(get_config(), mapping_source_url=args.mapping_url))
        outcome = asyncio.run(refresh_from_remote(converter.registry, args.mapping_url, converter.config))
        if not outcome.ok:
            logger.warning("Starting with base mappings only: %s", outcome.error)

    logger.info("Starting flowbridge MCP Server %s", __version__)

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("flowbridge MCP Server stopped")
        sys.exit(0)


# ===== MAIN =====

if __name__ == "__main__":
    main()
