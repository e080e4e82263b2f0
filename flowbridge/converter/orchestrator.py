"""Conversion orchestrator: validate, map, translate edges, flag, report."""

import logging
from dataclasses import replace
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Optional

from ..config import ConverterConfig, get_config
from ..exceptions import StructuralValidationError
from ..expressions import ExpressionTranspiler, ReferenceContext
from ..mappings import MappingRegistry, refresh_from_remote
from ..models import (
    ConversionLog,
    ConversionOptions,
    ConversionResult,
    Direction,
    Entity,
    ModuleFlow,
    NodeGraph,
    ParameterReview,
    Platform,
)
from ..values import deep_copy
from .adapter import create_error_result
from .graph import DroppedEdge, GraphTranslator, IdCorrelation
from .mapper import EntityMapper, MappedEntity, MappingContext
from .review import ReviewFlagger
from .tracker import DebugTracker
from .validation import (
    ValidationResult,
    normalize_module_flow,
    validate_module_flow,
    validate_node_graph,
)

logger = logging.getLogger(__name__)

Validator = Callable[[Any], ValidationResult]


class ConversionStage(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    MAPPING = "mapping"
    GRAPH_TRANSLATING = "graph_translating"
    FLAGGING = "flagging"
    DONE = "done"
    FAILED = "failed"


def detect_platform(workflow: Any) -> Optional[Platform]:
    """Guess the platform of workflow JSON from its top-level keys."""
    if not isinstance(workflow, dict):
        return None
    if isinstance(workflow.get("flow"), list):
        return Platform.MODULE_FLOW
    if isinstance(workflow.get("modules"), list) and isinstance(workflow.get("blueprint"), dict):
        return Platform.MODULE_FLOW
    if isinstance(workflow.get("nodes"), list) and isinstance(workflow.get("connections"), dict):
        return Platform.NODE_GRAPH
    return None


def entity_types(workflow: Any, platform: Platform | str) -> list[str]:
    """Entity types in workflow JSON, in order, skipping malformed entries."""
    if not isinstance(workflow, dict):
        return []
    if Platform(platform) is Platform.NODE_GRAPH:
        items = workflow.get("nodes") or []
    else:
        items = workflow.get("flow") or workflow.get("modules") or []
    types = []
    for item in items:
        if isinstance(item, dict):
            entity_type = item.get("type") or item.get("module")
            if isinstance(entity_type, str) and entity_type:
                types.append(entity_type)
    return types


class _ConversionRun:
    """State of one conversion call."""

    def __init__(self, direction: Direction, options: ConversionOptions):
        self.direction = direction
        self.options = options
        self.tracker = DebugTracker()
        self.correlation = IdCorrelation()
        self.stage = ConversionStage.IDLE
        self.reviews: list[ParameterReview] = []
        self.unmapped: list[str] = []

    def enter(self, stage: ConversionStage) -> None:
        logger.debug("Conversion %s: %s -> %s", self.direction.value, self.stage.value, stage.value)
        self.stage = stage


class WorkflowConverter:
    """Converts workflows between n8n and Make.

    The registry is used by reference, so mappings merged into it later
    (by plugins or a remote refresh) apply to following conversions.
    """

    def __init__(
        self,
        registry: Optional[MappingRegistry] = None,
        config: Optional[ConverterConfig] = None,
        validators: Optional[dict[Platform, Validator]] = None,
        transpiler: Optional[ExpressionTranspiler] = None,
    ):
        self.registry = registry if registry is not None else MappingRegistry.with_defaults()
        self.config = config or get_config()
        self.validators: dict[Platform, Validator] = {
            Platform.NODE_GRAPH: validate_node_graph,
            Platform.MODULE_FLOW: validate_module_flow,
        }
        if validators:
            self.validators.update({Platform(k): v for k, v in validators.items()})
        self.mapper = EntityMapper(self.registry, transpiler or ExpressionTranspiler(), self.config)
        self.graph = GraphTranslator()
        self.flagger = ReviewFlagger(self.config)

    async def convert_async(
        self,
        workflow: Any,
        source_platform: Platform | str = "auto",
        target_platform: Platform | str | None = None,
        options: ConversionOptions | dict | None = None,
        refresh_url: Optional[str] = None,
    ) -> ConversionResult:
        """Refresh the registry once (when a mapping source is set), then convert."""
        url = refresh_url or self.config.mapping_source_url
        refresh_warning = None
        if url:
            outcome = await refresh_from_remote(self.registry, url, self.config)
            if outcome.status == "error":
                refresh_warning = f"Mapping refresh failed, using existing mappings: {outcome.error}"
            elif outcome.status == "cached":
                refresh_warning = f"Mapping refresh failed, using cached mappings: {outcome.error}"

        result = self.convert(workflow, source_platform, target_platform, options)
        if refresh_warning:
            result.logs.insert(0, ConversionLog(type="warning", message=refresh_warning))
        return result

    def convert(
        self,
        workflow: Any,
        source_platform: Platform | str = "auto",
        target_platform: Platform | str | None = None,
        options: ConversionOptions | dict | None = None,
    ) -> ConversionResult:
        """Convert ``workflow``. Never raises; problems are reported in the result."""
        try:
            options = ConversionOptions.coerce(options, self.config.default_options)
        except ValueError as e:
            return create_error_result(f"Invalid conversion options: {e}", target_platform, is_valid_input=True)

        if workflow is None:
            return create_error_result("Invalid workflow: source workflow is empty", target_platform)

        if source_platform in (None, "auto"):
            source = detect_platform(workflow)
            if source is None:
                return create_error_result(
                    "Invalid workflow: could not detect the source platform",
                    target_platform,
                )
        else:
            try:
                source = Platform(source_platform)
            except ValueError:
                return create_error_result(f"Unknown source platform: {source_platform}", target_platform, True)

        try:
            target = Platform(target_platform) if target_platform is not None else source.other
        except ValueError:
            return create_error_result(f"Unknown target platform: {target_platform}", None, True)

        if source is target:
            return create_error_result(
                f"Source and target platform are both '{source.value}'",
                target,
                is_valid_input=True,
            )

        run = _ConversionRun(Direction.between(source, target), options)
        run.tracker.start_timing()
        try:
            return self._run(run, workflow)
        except Exception as e:
            logger.exception("Conversion failed")
            run.enter(ConversionStage.FAILED)
            result = create_error_result(f"Conversion failed: {e}", target, is_valid_input=True)
            result.logs[:0] = run.tracker.logs
            return result

    def _run(self, run: _ConversionRun, workflow: Any) -> ConversionResult:
        direction = run.direction
        source = direction.source
        tracker = run.tracker

        run.enter(ConversionStage.VALIDATING)
        try:
            data = self._validated(source, workflow, run.options)
        except StructuralValidationError as e:
            run.enter(ConversionStage.FAILED)
            return create_error_result(str(e), direction.target)

        data = self.registry.before_conversion(data, direction)
        graph = NodeGraph.from_dict(data) if source is Platform.NODE_GRAPH else ModuleFlow.from_dict(data)
        tracker.add_log(
            "info",
            f"Converting {source.value} workflow '{graph.name}' with {len(graph.entities)} entities to {direction.target.value}",
        )

        # Mapping: assign every output id first, then map
        run.enter(ConversionStage.MAPPING)
        self._assign_ids(run, graph.entities)
        upstream = self.graph.predecessors(graph.edges, run.correlation)

        correlation = run.correlation
        references = ReferenceContext(
            output_ids=correlation.output_ids,
            output_names=correlation.output_names,
            ids_by_name=correlation.ids_by_name,
        )
        outcomes: list[tuple[Entity, MappedEntity]] = []
        for entity in graph.entities:
            entity_references = replace(references, upstream=upstream.get(entity.id, []))
            outcomes.append((entity, self._map_entity(run, entity, entity_references)))

        # Graph translating
        run.enter(ConversionStage.GRAPH_TRANSLATING)
        mapped_entities = [outcome.mapped for _, outcome in outcomes]
        if source is Platform.NODE_GRAPH:
            routes, dropped = self.graph.to_routes(graph.edges, run.correlation)
            dropped += [
                DroppedEdge(e.source_id, e.target_id, e.output_index, f"'{e.label}' connections have no counterpart")
                for e in graph.auxiliary_edges
            ]
            converted = ModuleFlow(
                name=graph.name,
                entities=mapped_entities,
                edges=routes,
                metadata=self._scenario_metadata(),
            )
        else:
            adjacency, dropped = self.graph.to_adjacency(graph.edges, run.correlation)
            converted = NodeGraph(
                name=graph.name,
                entities=mapped_entities,
                edges=adjacency,
                settings={"executionOrder": "v1"},
            )
        for edge in dropped:
            tracker.add_log("warning", edge.message())

        # Flagging
        run.enter(ConversionStage.FLAGGING)
        for entity, outcome in outcomes:
            run.reviews.extend(self.flagger.flag(entity, outcome))
            if outcome.used_placeholder and not outcome.error:
                run.unmapped.append(entity.type)

        output = self.registry.after_conversion(converted.to_dict(), direction)

        run.enter(ConversionStage.DONE)
        tracker.finish_timing()
        summary = tracker.summary()
        tracker.add_log(
            "info",
            f"Converted {summary['nodeCount']} entities: {summary['successfulNodes']} full, "
            f"{summary['partialNodes']} partial, {summary['stubNodes']} placeholders",
        )
        return ConversionResult(
            converted_workflow=output,
            logs=tracker.logs,
            parameters_needing_review=run.reviews,
            unmapped_nodes=run.unmapped,
            is_valid_input=True,
            debug=tracker.debug_info(direction) if run.options.debug else None,
        )

    def _validated(self, source: Platform, workflow: Any, options: ConversionOptions) -> dict[str, Any]:
        """Working copy of the input, after validation unless it is skipped."""
        if not isinstance(workflow, dict):
            raise StructuralValidationError(["workflow must be a JSON object"])
        if options.skip_validation:
            return normalize_module_flow(workflow) if source is Platform.MODULE_FLOW else deep_copy(workflow)
        validation = self.validators[source](workflow)
        if not validation.valid:
            raise StructuralValidationError(validation.errors)
        return validation.normalized_workflow

    def _assign_ids(self, run: _ConversionRun, entities: list[Entity]) -> None:
        """Correlate every source entity with its output id and name."""
        used_names: set[str] = set()
        for index, entity in enumerate(entities, start=1):
            if run.direction is Direction.A_TO_B:
                output_id = entity.id if run.options.preserve_ids else str(index)
                output_name = entity.name or f"{entity.type} {index}"
            else:
                output_id = entity.id
                output_name = self._unique_name(entity.name or f"Module {entity.id}", used_names)
            used_names.add(output_name)
            run.correlation.add(entity.id, output_id, entity.name, output_name)

    @staticmethod
    def _unique_name(base: str, used: set[str]) -> str:
        """n8n node names must be unique within a workflow."""
        if base not in used:
            return base
        suffix = 1
        while f"{base} {suffix}" in used:
            suffix += 1
        return f"{base} {suffix}"

    def _map_entity(self, run: _ConversionRun, entity: Entity, references: ReferenceContext) -> MappedEntity:
        context = MappingContext(
            output_id=run.correlation.output_id(entity.id),
            output_name=run.correlation.output_name(entity.id),
            options=run.options,
            references=references,
            tracker=run.tracker,
        )
        try:
            return self.mapper.map(entity, run.direction, context)
        except Exception as e:
            logger.exception("Mapping %s (%s) failed", entity.id, entity.type)
            run.tracker.add_log("error", f"Failed to map {entity.name or entity.id} ({entity.type}): {e}")
            return self.mapper.placeholder(entity, run.direction, context, error=str(e))

    @staticmethod
    def _scenario_metadata() -> dict[str, Any]:
        return {
            "instant": False,
            "version": 1,
            "scenario": {
                "roundtrips": 1,
                "maxErrors": 3,
                "autoCommit": True,
                "sequential": False,
                "confidential": False,
                "dataloss": False,
                "dlq": False,
            },
            "designer": {"orphans": []},
        }


@lru_cache(maxsize=1)
def default_converter() -> WorkflowConverter:
    """Converter over a registry with the default mappings, built once per process."""
    return WorkflowConverter(MappingRegistry.with_defaults())


def convert(
    workflow: Any,
    source_platform: Platform | str = "auto",
    target_platform: Platform | str | None = None,
    options: ConversionOptions | dict | None = None,
) -> ConversionResult:
    """Convert with the default converter."""
    return default_converter().convert(workflow, source_platform, target_platform, options)
