"""Registry of mapping definitions and converter plugins."""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..exceptions import MappingNotFoundError
from ..models import Direction, Entity, MappingDefinition
from ..values import deep_copy
from .base import base_mappings
from .plugins import ConverterPlugin, builtin_plugins

logger = logging.getLogger(__name__)


@dataclass
class CoverageReport:
    """How many of a workflow's entity types have a mapping."""

    total: int
    mapped: int
    unmapped: int
    percentage: int
    unmapped_types: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "mapped": self.mapped,
            "unmapped": self.unmapped,
            "percentage": self.percentage,
            "unmappedTypes": list(self.unmapped_types),
        }


class MappingRegistry:
    """Mapping definitions per direction plus registered plugins.

    Lookup is an exact dictionary hit on ``(type, direction)``. There is no
    fuzzy matching or inference; a miss means the entity becomes a
    placeholder.
    """

    def __init__(self, mappings: dict | None = None):
        self._tables: dict[Direction, dict[str, MappingDefinition]] = {
            Direction.A_TO_B: {},
            Direction.B_TO_A: {},
        }
        self._plugins: dict[str, ConverterPlugin] = {}
        if mappings:
            self.merge(mappings)

    @classmethod
    def with_defaults(cls) -> "MappingRegistry":
        """Registry with the base table and the built-in plugins."""
        registry = cls(base_mappings())
        for plugin in builtin_plugins():
            registry.register_plugin(plugin)
        return registry

    def lookup(self, entity_type: str, direction: Direction | str) -> MappingDefinition | None:
        """Definition for a source type, or None."""
        return self._tables[Direction(direction)].get(entity_type)

    def require(self, entity_type: str, direction: Direction | str) -> MappingDefinition:
        definition = self.lookup(entity_type, direction)
        if definition is None:
            raise MappingNotFoundError(entity_type, Direction(direction).value)
        return definition

    def register(self, definition: MappingDefinition, direction: Direction | str) -> None:
        """Add or replace the definition for ``definition.source_type``."""
        table = self._tables[Direction(direction)]
        existing = table.get(definition.source_type)
        if existing is not None and existing != definition:
            logger.warning(
                "Mapping for %s (%s) from '%s' overridden by '%s'",
                definition.source_type,
                Direction(direction).value,
                existing.source,
                definition.source,
            )
        table[definition.source_type] = definition

    def merge(self, mappings: dict, source: str = "user") -> int:
        """Merge ``{direction: {source_type: definition | dict}}``.

        Plain dicts are read with ``MappingDefinition.from_dict``. Later
        merges override earlier ones. Returns the number of definitions
        merged.
        """
        count = 0
        for direction, table in mappings.items():
            direction = Direction(direction)
            for source_type, entry in (table or {}).items():
                if isinstance(entry, MappingDefinition):
                    definition = entry
                else:
                    definition = MappingDefinition.from_dict(source_type, entry, source=source)
                self.register(definition, direction)
                count += 1
        return count

    def known_types(self, direction: Direction | str) -> list[str]:
        return sorted(self._tables[Direction(direction)])

    def definitions(self, direction: Direction | str) -> dict[str, MappingDefinition]:
        return dict(self._tables[Direction(direction)])

    def coverage(self, types: Iterable[str], direction: Direction | str) -> CoverageReport:
        """Mapping coverage for a collection of entity types (duplicates count once)."""
        unique = list(dict.fromkeys(types))
        unmapped = [t for t in unique if self.lookup(t, direction) is None]
        total = len(unique)
        mapped = total - len(unmapped)
        percentage = round(100 * mapped / total) if total else 0
        return CoverageReport(
            total=total,
            mapped=mapped,
            unmapped=len(unmapped),
            percentage=percentage,
            unmapped_types=unmapped,
        )

    # Plugins

    def register_plugin(self, plugin: ConverterPlugin) -> None:
        """Merge a plugin's mappings and keep it for its hooks."""
        if plugin.id in self._plugins:
            logger.warning("Plugin '%s' is already registered, overwriting", plugin.id)
        self._plugins[plugin.id] = plugin
        count = self.merge(plugin.node_mappings(), source=plugin.id)
        logger.debug("Registered plugin '%s' with %d mappings", plugin.id, count)

    def unregister_plugin(self, plugin_id: str) -> bool:
        """Stop running a plugin's hooks. Its merged mappings stay."""
        return self._plugins.pop(plugin_id, None) is not None

    def plugins(self) -> list[ConverterPlugin]:
        return list(self._plugins.values())

    def before_conversion(self, workflow: dict[str, Any], direction: Direction) -> dict[str, Any]:
        for plugin in self._plugins.values():
            workflow = plugin.before_conversion(deep_copy(workflow), direction)
        return workflow

    def after_entity_mapping(self, source: Entity, target: Entity, direction: Direction) -> Entity:
        for plugin in self._plugins.values():
            target = plugin.after_entity_mapping(source.model_copy(deep=True), target.model_copy(deep=True), direction)
        return target

    def after_conversion(self, workflow: dict[str, Any], direction: Direction) -> dict[str, Any]:
        for plugin in self._plugins.values():
            workflow = plugin.after_conversion(deep_copy(workflow), direction)
        return workflow

    def to_dict(self, direction: Direction | str) -> dict[str, dict[str, Any]]:
        """JSON view of one direction's table."""
        return {
            source_type: definition.to_dict()
            for source_type, definition in sorted(self._tables[Direction(direction)].items())
        }
