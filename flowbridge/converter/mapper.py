"""Map one entity to the target platform.

The mapper looks up the entity type in the registry, renames parameters,
applies value transforms and transpiles expressions in string leaves. A
type with no mapping becomes a placeholder of the target's catch-all type
that keeps everything needed to finish the job by hand.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from ..config import ConverterConfig, get_config
from ..expressions import (
    AMBIGUOUS_UPSTREAM,
    Dialect,
    ExpressionTranspiler,
    ReferenceContext,
    find_embedded,
)
from ..mappings import MappingRegistry
from ..models import ConversionOptions, Direction, Entity, MappingDefinition
from ..values import deep_copy, map_strings
from .tracker import DebugTracker

logger = logging.getLogger(__name__)

STUB_INFO_KEY = "__stubInfo"
# Make keeps the connection (credential) reference among module parameters
CONNECTION_KEY = "__IMTCONN__"

_DIALECTS = {
    Direction.A_TO_B: (Dialect.NODE_GRAPH, Dialect.MODULE_FLOW),
    Direction.B_TO_A: (Dialect.MODULE_FLOW, Dialect.NODE_GRAPH),
}


@dataclass
class MappingContext:
    """Everything the mapper needs to know about one entity's run."""

    output_id: str
    output_name: str
    options: ConversionOptions = field(default_factory=ConversionOptions)
    references: ReferenceContext = field(default_factory=ReferenceContext)
    tracker: DebugTracker = field(default_factory=DebugTracker)


@dataclass
class MappedEntity:
    """Mapped entity plus the facts the review flagger needs."""

    mapped: Entity
    used_placeholder: bool = False
    untranslated_paths: list[str] = field(default_factory=list)
    unevaluated_paths: list[str] = field(default_factory=list)
    ambiguous_paths: list[str] = field(default_factory=list)
    credential_paths: list[str] = field(default_factory=list)
    # Source parameter name -> output parameter name, for parameters kept
    key_map: dict[str, str] = field(default_factory=dict)
    notes: list[str] = field(default_factory=list)
    error: str | None = None


def _parameters_of(entity: Entity | dict) -> dict:
    if isinstance(entity, Entity):
        return entity.parameters
    return entity.get("parameters") or entity.get("mapper") or {}


def is_placeholder(entity: Entity | dict, config: ConverterConfig | None = None) -> bool:
    """True for entities produced in place of an unmapped one."""
    config = config or get_config()
    entity_type = entity.type if isinstance(entity, Entity) else entity.get("type") or entity.get("module")
    return entity_type in config.placeholder_types.values() and STUB_INFO_KEY in _parameters_of(entity)


def placeholder_info(entity: Entity | dict) -> dict[str, Any] | None:
    """The original type, id, name and parameters kept on a placeholder."""
    info = _parameters_of(entity).get(STUB_INFO_KEY)
    return deep_copy(info) if isinstance(info, dict) else None


class EntityMapper:
    """Maps entities through a registry."""

    def __init__(
        self,
        registry: MappingRegistry,
        transpiler: ExpressionTranspiler | None = None,
        config: ConverterConfig | None = None,
    ):
        self.registry = registry
        self.transpiler = transpiler or ExpressionTranspiler()
        self.config = config or get_config()

    def map(self, entity: Entity, direction: Direction, context: MappingContext) -> MappedEntity:
        """Map ``entity``; an unknown type yields a placeholder."""
        direction = Direction(direction)
        definition = self.registry.lookup(entity.type, direction)
        if definition is None:
            context.tracker.add_log(
                "warning",
                f"No mapping found for type {entity.type} ({entity.name or entity.id}), created placeholder",
            )
            return self.placeholder(entity, direction, context)

        outcome = MappedEntity(mapped=entity)
        parameters = self._map_parameters(entity, definition, direction, context, outcome)

        credentials: dict[str, Any] = {}
        if direction is Direction.A_TO_B and entity.credentials:
            parameters[CONNECTION_KEY] = deep_copy(entity.credentials)
            outcome.credential_paths.append(CONNECTION_KEY)
        elif direction is Direction.B_TO_A and CONNECTION_KEY in entity.parameters:
            connection = entity.parameters[CONNECTION_KEY]
            if isinstance(connection, dict):
                credentials = deep_copy(connection)
            else:
                credentials = {"makeConnection": {"id": connection}}
            outcome.credential_paths.extend(f"credentials.{name}" for name in credentials)

        target = Entity(
            id=context.output_id,
            name=context.output_name,
            type=definition.target_type,
            parameters=parameters,
            position=entity.position,
            flags=dict(entity.flags),
            credentials=credentials,
        )
        target = self.registry.after_entity_mapping(entity, target, direction)
        target = target.model_copy(update={"id": context.output_id, "name": context.output_name})
        outcome.mapped = target

        unmapped = context.tracker.entities.get(entity.id)
        complete = not outcome.untranslated_paths and not (unmapped and unmapped.unmapped_parameters)
        context.tracker.track_mapping(
            entity,
            target,
            success=complete,
            plugin_source=definition.source if definition.source != "base" else None,
        )
        return outcome

    def placeholder(
        self,
        entity: Entity,
        direction: Direction,
        context: MappingContext,
        error: str | None = None,
    ) -> MappedEntity:
        """Catch-all entity standing in for ``entity``."""
        direction = Direction(direction)
        info = {
            "originalType": entity.type,
            "originalId": entity.id,
            "originalName": entity.name,
            "originalParameters": deep_copy(entity.parameters),
        }
        if entity.credentials:
            info["originalCredentials"] = deep_copy(entity.credentials)
        if error:
            info["error"] = error

        kind = "module" if direction is Direction.A_TO_B else "node"
        target = Entity(
            id=context.output_id,
            name=context.output_name,
            type=self.config.placeholder_type(direction),
            parameters={
                "note": f"This {kind} could not be converted automatically. Original type: {entity.type}",
                STUB_INFO_KEY: info,
            },
            position=entity.position,
            flags=dict(entity.flags),
        )
        context.tracker.track_mapping(entity, target, success=False, is_stub=True)
        return MappedEntity(mapped=target, used_placeholder=True, error=error)

    def _map_parameters(
        self,
        entity: Entity,
        definition: MappingDefinition,
        direction: Direction,
        context: MappingContext,
        outcome: MappedEntity,
    ) -> dict[str, Any]:
        options = context.options
        tracker = context.tracker
        parameters: dict[str, Any] = {}

        names = [name for name in entity.parameters if not (direction is Direction.B_TO_A and name == CONNECTION_KEY)]
        mapped_names = [name for name in names if name in definition.parameter_map]
        other_names = [name for name in names if name not in definition.parameter_map]

        for name in mapped_names + other_names:
            target_name = definition.parameter_map.get(name)
            reason = None
            if target_name is None:
                if not options.copy_non_mapped_parameters:
                    tracker.track_parameter(entity.id, name, None, False, "no parameter mapping")
                    continue
                target_name = name
                reason = "copied without mapping"

            if target_name in parameters:
                tracker.add_warning(entity.id, f"Parameter '{name}' skipped: '{target_name}' is already set")
                tracker.track_parameter(entity.id, name, None, False, "target parameter already set")
                continue

            value = entity.parameters[name]
            if options.transform_parameter_values:
                value = definition.transform(name, value)
            parameters[target_name] = self._convert_expressions(value, target_name, direction, context, outcome)
            outcome.key_map[name] = target_name
            tracker.track_parameter(entity.id, name, target_name, True, reason)

        return parameters

    def _convert_expressions(
        self,
        value: Any,
        path: str,
        direction: Direction,
        context: MappingContext,
        outcome: MappedEntity,
    ) -> Any:
        source, target = _DIALECTS[direction]

        def convert(leaf_path: str, text: str) -> str:
            if not context.options.evaluate_expressions:
                if find_embedded(text, source):
                    outcome.unevaluated_paths.append(leaf_path)
                return text

            result = self.transpiler.transpile_value(text, source, target, context.references)
            if result.found and not result.translated:
                outcome.untranslated_paths.append(leaf_path)
            if AMBIGUOUS_UPSTREAM in result.notes:
                outcome.ambiguous_paths.append(leaf_path)
            for note in result.notes:
                if note not in outcome.notes:
                    outcome.notes.append(note)
            return result.value

        return map_strings(value, convert, path)
