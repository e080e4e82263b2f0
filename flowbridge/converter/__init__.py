"""Converter package for n8n and Make workflows.

This package turns an n8n workflow into a Make scenario and back. Entities
are mapped through a ``MappingRegistry``, expressions are transpiled, edges
are translated between the adjacency map and the route list, and anything
that could not be converted mechanically is flagged for review.

Classes:
    WorkflowConverter: Run whole conversions
    ConversionStage: Stages of a conversion run
    EntityMapper: Map one entity to the target platform
    GraphTranslator: Translate edge sets and compute upstream lists
    IdCorrelation: Source id to output id map for one run
    ReviewFlagger: Build review entries for mapped entities
    DebugTracker: Per-run diagnostics
    ValidationResult: Outcome of structural validation

Functions:
    convert: Convert with the default converter
    detect_platform: Guess the platform of workflow JSON
    entity_types: Entity types listed in workflow JSON
    validate_node_graph: Validate n8n workflow JSON
    validate_module_flow: Validate Make scenario JSON
    is_placeholder: Check whether an entity stands in for an unmapped one
    placeholder_info: Original data kept on a placeholder
    encode_review: Flatten a review entry to a string
    decode_review: Parse a flattened review string
    to_legacy_result: Structured result to flattened reviews
    to_modern_result: Flattened result to structured reviews
    ensure_valid_log_entry: Coerce anything into a log entry
    create_error_result: Minimal result carrying one error
"""

from .adapter import (
    create_error_result,
    empty_workflow,
    ensure_valid_log_entry,
    to_legacy_result,
    to_modern_result,
)
from .graph import DroppedEdge, GraphTranslator, IdCorrelation, label_index, output_label
from .mapper import (
    STUB_INFO_KEY,
    EntityMapper,
    MappedEntity,
    MappingContext,
    is_placeholder,
    placeholder_info,
)
from .orchestrator import (
    ConversionStage,
    WorkflowConverter,
    convert,
    default_converter,
    detect_platform,
    entity_types,
)
from .review import ReviewFlagger, decode_review, encode_review
from .tracker import DebugTracker
from .validation import ValidationResult, validate_module_flow, validate_node_graph

__all__ = [
    "WorkflowConverter",
    "ConversionStage",
    "convert",
    "default_converter",
    "detect_platform",
    "entity_types",
    "EntityMapper",
    "MappedEntity",
    "MappingContext",
    "is_placeholder",
    "placeholder_info",
    "STUB_INFO_KEY",
    "GraphTranslator",
    "IdCorrelation",
    "DroppedEdge",
    "label_index",
    "output_label",
    "ReviewFlagger",
    "encode_review",
    "decode_review",
    "DebugTracker",
    "ValidationResult",
    "validate_module_flow",
    "validate_node_graph",
    "create_error_result",
    "empty_workflow",
    "ensure_valid_log_entry",
    "to_legacy_result",
    "to_modern_result",
]
