"""Data model shared by the mapping registry and the converter.

Two workflow shapes are modelled. ``NodeGraph`` is the node/connection
graph used by n8n, where edges live in an adjacency map keyed by source
node and output index. ``ModuleFlow`` is the module/route flow used by
Make, where edges are a flat list of routes. Both hold ``Entity`` objects
and are read from and written to their platform's JSON wire shape.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .values import deep_copy, normalize_json


class Platform(str, Enum):
    """Workflow platforms the engine converts between."""

    NODE_GRAPH = "n8n"
    MODULE_FLOW = "make"

    @property
    def other(self) -> "Platform":
        if self is Platform.NODE_GRAPH:
            return Platform.MODULE_FLOW
        return Platform.NODE_GRAPH


class Direction(str, Enum):
    """Conversion direction, also the key of mapping tables."""

    A_TO_B = "n8nToMake"
    B_TO_A = "makeToN8n"

    @classmethod
    def between(cls, source: Platform, target: Platform) -> "Direction":
        """Direction for a source/target platform pair."""
        if source == target:
            raise ValueError(f"Source and target platform are both '{Platform(source).value}'")
        if Platform(source) is Platform.NODE_GRAPH:
            return cls.A_TO_B
        return cls.B_TO_A

    @property
    def source(self) -> Platform:
        return Platform.NODE_GRAPH if self is Direction.A_TO_B else Platform.MODULE_FLOW

    @property
    def target(self) -> Platform:
        return self.source.other

    @property
    def reverse(self) -> "Direction":
        return Direction.B_TO_A if self is Direction.A_TO_B else Direction.A_TO_B


# Per-entity execution flags carried verbatim in both wire shapes
FLAG_NAMES = ("disabled", "continueOnFail", "retryOnFail", "alwaysOutputData", "executeOnce")


def create_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Entity(BaseModel):
    """A node (n8n) or module (Make)."""

    id: str
    name: str = ""
    type: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    position: tuple[float, float] = (0.0, 0.0)
    flags: dict[str, bool] = Field(default_factory=dict)
    credentials: dict[str, Any] = Field(default_factory=dict)
    type_version: int | float | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @classmethod
    def from_node(cls, node: dict[str, Any]) -> "Entity":
        """Build an entity from an n8n node object."""
        position = node.get("position") or (0, 0)
        return cls(
            id=node["id"],
            name=node.get("name") or "",
            type=node["type"],
            parameters=deep_copy(node.get("parameters") or {}),
            position=(float(position[0]), float(position[1])),
            flags={key: bool(node[key]) for key in FLAG_NAMES if key in node},
            credentials=deep_copy(node.get("credentials") or {}),
            type_version=node.get("typeVersion"),
        )

    @classmethod
    def from_module(cls, module: dict[str, Any]) -> "Entity":
        """Build an entity from a Make module object.

        ``module``, ``label`` and ``mapper`` are accepted in place of
        ``type``, ``name`` and ``parameters``. When both ``parameters`` and
        ``mapper`` are present they are merged, ``mapper`` winning.
        """
        designer = (module.get("metadata") or {}).get("designer") or {}
        parameters = deep_copy(module.get("parameters") or {})
        parameters.update(deep_copy(module.get("mapper") or {}))
        return cls(
            id=module["id"],
            name=module.get("name") or module.get("label") or "",
            type=module.get("type") or module["module"],
            parameters=parameters,
            position=(float(designer.get("x", 0)), float(designer.get("y", 0))),
            flags={key: bool(module[key]) for key in FLAG_NAMES if key in module},
        )

    def to_node(self) -> dict[str, Any]:
        """Render as an n8n node object."""
        node = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "typeVersion": self.type_version if self.type_version is not None else 1,
            "position": [self.position[0], self.position[1]],
            "parameters": normalize_json(self.parameters),
        }
        if self.credentials:
            node["credentials"] = normalize_json(self.credentials)
        node.update(self.flags)
        return node

    def to_module(self) -> dict[str, Any]:
        """Render as a Make module object."""
        module = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "parameters": normalize_json(self.parameters),
            "metadata": {"designer": {"x": self.position[0], "y": self.position[1]}},
        }
        module.update(self.flags)
        return module


class Edge(BaseModel):
    """Directed edge between two entities.

    ``output_index`` is the source output slot. ``input_index`` is the n8n
    target input slot and has no Make counterpart.
    """

    source_id: str
    target_id: str
    output_index: int = 0
    input_index: int = 0
    label: str | None = None


class NodeGraph(BaseModel):
    """n8n workflow: nodes plus an adjacency map of ``main`` connections."""

    name: str = ""
    entities: list[Entity] = Field(default_factory=list)
    edges: dict[str, dict[int, list[Edge]]] = Field(default_factory=dict)
    active: bool = False
    settings: dict[str, Any] = Field(default_factory=dict)
    # Connections of types other than "main" (ai_tool, ai_memory, ...)
    auxiliary_edges: list[Edge] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NodeGraph":
        """Read the n8n wire shape."""
        edges: dict[str, dict[int, list[Edge]]] = {}
        auxiliary: list[Edge] = []

        for source_key, outputs in (data.get("connections") or {}).items():
            for connection_type, slots in (outputs or {}).items():
                for index, targets in enumerate(slots or []):
                    for target in targets or []:
                        edge = Edge(
                            source_id=str(source_key),
                            target_id=str(target["node"]),
                            output_index=index,
                            input_index=int(target.get("index", 0)),
                        )
                        if connection_type == "main":
                            edges.setdefault(str(source_key), {}).setdefault(index, []).append(edge)
                        else:
                            auxiliary.append(edge.model_copy(update={"label": connection_type}))

        return cls(
            name=data.get("name") or "",
            entities=[Entity.from_node(node) for node in data.get("nodes") or []],
            edges=edges,
            active=bool(data.get("active", False)),
            settings=deep_copy(data.get("settings") or {}),
            auxiliary_edges=auxiliary,
        )

    def to_dict(self) -> dict[str, Any]:
        """Render the n8n wire shape."""
        connections = {}
        for source_id, by_index in self.edges.items():
            width = max(by_index) + 1 if by_index else 0
            main = [
                [
                    {"node": edge.target_id, "type": "main", "index": edge.input_index}
                    for edge in by_index.get(index, [])
                ]
                for index in range(width)
            ]
            connections[source_id] = {"main": main}

        return {
            "name": self.name,
            "nodes": [entity.to_node() for entity in self.entities],
            "connections": connections,
            "active": self.active,
            "settings": normalize_json(self.settings),
        }

    def edge_count(self) -> int:
        return sum(len(edges) for by_index in self.edges.values() for edges in by_index.values())


class ModuleFlow(BaseModel):
    """Make scenario: modules plus a flat route list."""

    name: str = ""
    entities: list[Entity] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModuleFlow":
        """Read the Make wire shape."""
        edges = [
            Edge(
                source_id=str(route["sourceId"]),
                target_id=str(route["targetId"]),
                label=route.get("label"),
            )
            for route in data.get("routes") or []
        ]
        return cls(
            name=data.get("name") or "",
            entities=[Entity.from_module(module) for module in data.get("flow") or []],
            edges=edges,
            metadata=deep_copy(data.get("metadata") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Render the Make wire shape."""
        routes = []
        for edge in self.edges:
            route = {"sourceId": edge.source_id, "targetId": edge.target_id}
            if edge.label is not None:
                route["label"] = edge.label
            routes.append(route)

        return {
            "name": self.name,
            "flow": [entity.to_module() for entity in self.entities],
            "routes": routes,
            "metadata": normalize_json(self.metadata),
        }

    def edge_count(self) -> int:
        return len(self.edges)


def _boolean_to_string(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _string_to_boolean(value: Any) -> Any:
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


# Fixed table of value transforms a mapping definition may name
VALUE_TRANSFORMS: dict[str, Callable[[Any], Any]] = {
    "upper": lambda value: value.upper() if isinstance(value, str) else value,
    "lower": lambda value: value.lower() if isinstance(value, str) else value,
    "boolean_to_string": _boolean_to_string,
    "string_to_boolean": _string_to_boolean,
}


@dataclass(frozen=True)
class MappingDefinition:
    """How one source entity type becomes one target entity type."""

    source_type: str
    target_type: str
    parameter_map: dict[str, str] = field(default_factory=dict)
    value_transforms: dict[str, str] = field(default_factory=dict)
    description: str = ""
    source: str = "base"

    def __post_init__(self):
        unknown = set(self.value_transforms.values()) - set(VALUE_TRANSFORMS)
        if unknown:
            raise ValueError(f"Unknown value transforms: {', '.join(sorted(unknown))}")

    @classmethod
    def from_dict(cls, source_type: str, data: dict[str, Any], source: str = "remote") -> "MappingDefinition":
        """Build from the JSON form used by mapping documents.

        Accepts ``type`` or ``targetType`` for the target type and
        ``parameterMap`` or ``parameters`` for the parameter map.
        """
        target_type = data.get("targetType") or data.get("type")
        if not target_type:
            raise ValueError(f"Mapping for '{source_type}' has no target type")
        return cls(
            source_type=source_type,
            target_type=target_type,
            parameter_map=dict(data.get("parameterMap") or data.get("parameters") or {}),
            value_transforms=dict(data.get("valueTransforms") or {}),
            description=data.get("description", ""),
            source=source,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceType": self.source_type,
            "targetType": self.target_type,
            "parameterMap": dict(self.parameter_map),
            "valueTransforms": dict(self.value_transforms),
            "description": self.description,
            "source": self.source,
        }

    def transform(self, parameter: str, value: Any) -> Any:
        """Apply the value transform registered for a source parameter."""
        name = self.value_transforms.get(parameter)
        if name is None:
            return value
        return VALUE_TRANSFORMS[name](value)


class ParameterReview(BaseModel):
    """Parameters of one entity that need manual review."""

    node_id: str
    parameters: list[str] = Field(default_factory=list)
    reason: str = ""

    def encode(self) -> str:
        """Flattened form: ``"<nodeId> - <p1, p2>: <reason>"``."""
        params = ", ".join(self.parameters) or "unknown"
        return f"{self.node_id} - {params}: {self.reason}"

    @classmethod
    def decode(cls, text: str) -> "ParameterReview":
        """Parse the flattened form.

        The reason follows the first ``": "`` (empty when absent). The head
        splits at its first ``" - "`` into node id and a ``", "`` separated
        parameter list. A head without ``" - "`` yields an ``unknown`` entry
        that keeps the whole text as its reason.
        """
        head, sep, reason = text.partition(": ")
        if not sep:
            head, reason = text, ""

        node_id, sep, params = head.partition(" - ")
        if not sep:
            return cls(node_id="unknown", parameters=["unknown"], reason=text)

        parameters = [p for p in params.split(", ") if p]
        return cls(node_id=node_id, parameters=parameters or ["unknown"], reason=reason)

    def to_dict(self) -> dict[str, Any]:
        return {"nodeId": self.node_id, "parameters": list(self.parameters), "reason": self.reason}


class ConversionLog(BaseModel):
    """User-facing diagnostic collected during one conversion."""

    type: Literal["info", "warning", "error"] = "info"
    message: str
    timestamp: str = Field(default_factory=create_timestamp)

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "message": self.message, "timestamp": self.timestamp}


class DebugInfo(BaseModel):
    """Per-entity mapping outcome lists, returned when debugging is enabled."""

    mapped_modules: list[dict[str, Any]] = Field(default_factory=list)
    unmapped_modules: list[dict[str, Any]] = Field(default_factory=list)
    mapped_nodes: list[dict[str, Any]] = Field(default_factory=list)
    unmapped_nodes: list[dict[str, Any]] = Field(default_factory=list)
    summary: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mappedModules": deep_copy(self.mapped_modules),
            "unmappedModules": deep_copy(self.unmapped_modules),
            "mappedNodes": deep_copy(self.mapped_nodes),
            "unmappedNodes": deep_copy(self.unmapped_nodes),
            "summary": deep_copy(self.summary),
        }


class ConversionOptions(BaseModel):
    """Caller options for one conversion. camelCase keys are accepted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    evaluate_expressions: bool = True
    skip_validation: bool = False
    transform_parameter_values: bool = True
    debug: bool = False
    copy_non_mapped_parameters: bool = True
    preserve_ids: bool = False

    @classmethod
    def coerce(cls, options: "ConversionOptions | dict[str, Any] | None", defaults: dict[str, Any] | None = None) -> "ConversionOptions":
        """Accept an options model, a plain dict or ``None``."""
        if isinstance(options, cls):
            return options
        if options is not None and not isinstance(options, Mapping):
            raise ValueError(f"expected a mapping, got {type(options).__name__}")
        merged = dict(defaults or {})
        merged.update(options or {})
        return cls.model_validate(merged)


class ConversionResult(BaseModel):
    """Outcome of one conversion."""

    converted_workflow: dict[str, Any] = Field(default_factory=dict)
    logs: list[ConversionLog] = Field(default_factory=list)
    parameters_needing_review: list[ParameterReview] = Field(default_factory=list)
    unmapped_nodes: list[str] = Field(default_factory=list)
    is_valid_input: bool = True
    debug: DebugInfo | None = None

    def to_dict(self, review_format: Literal["structured", "flattened"] = "structured") -> dict[str, Any]:
        """Canonical camelCase JSON form.

        ``review_format="flattened"`` renders each review as its encoded
        string, the shape older consumers expect.
        """
        if review_format == "flattened":
            reviews: list[Any] = [review.encode() for review in self.parameters_needing_review]
        elif review_format == "structured":
            reviews = [review.to_dict() for review in self.parameters_needing_review]
        else:
            raise ValueError(f"Unknown review format: {review_format}")

        result = {
            "convertedWorkflow": deep_copy(self.converted_workflow),
            "logs": [log.to_dict() for log in self.logs],
            "parametersNeedingReview": reviews,
            "unmappedNodes": list(self.unmapped_nodes),
            "isValidInput": self.is_valid_input,
        }
        if self.debug is not None:
            result["debug"] = self.debug.to_dict()
        return result

    def errors(self) -> list[str]:
        return [log.message for log in self.logs if log.type == "error"]

    def warnings(self) -> list[str]:
        return [log.message for log in self.logs if log.type == "warning"]
