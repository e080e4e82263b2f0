"""Structural validation of workflow JSON.

Each platform's wire shape is described by pydantic models. Validation only
checks structure; the returned ``normalized_workflow`` is a copy of the
input (with the legacy Make envelope unwrapped) that the converter reads.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..values import deep_copy


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="allow")


def _coerce_id(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class N8nConnectionTarget(_WireModel):
    node: str
    type: str = "main"
    index: int = 0


class N8nNode(_WireModel):
    id: str
    name: str
    type: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    position: list[float] = Field(default_factory=lambda: [0, 0], min_length=2, max_length=2)
    typeVersion: Optional[Union[int, float]] = None
    credentials: Optional[dict[str, Any]] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return _coerce_id(value)


class N8nWorkflow(_WireModel):
    name: str = ""
    nodes: list[N8nNode]
    connections: dict[str, dict[str, list[Optional[list[N8nConnectionTarget]]]]]
    active: bool = False
    settings: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_unique_ids(self):
        seen = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id: {node.id}")
            seen.add(node.id)
        return self


class MakeModule(_WireModel):
    id: str
    name: Optional[str] = None
    label: Optional[str] = None
    type: Optional[str] = None
    module: Optional[str] = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    mapper: Optional[dict[str, Any]] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return _coerce_id(value)

    @model_validator(mode="after")
    def check_type(self):
        if not (self.type or self.module):
            raise ValueError("Module needs a 'type' or 'module'")
        return self


class MakeRoute(_WireModel):
    sourceId: str
    targetId: str
    label: Optional[str] = None

    @field_validator("sourceId", "targetId", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _coerce_id(value)


class MakeWorkflow(_WireModel):
    name: str
    flow: list[MakeModule]
    routes: list[MakeRoute] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_unique_ids(self):
        seen = set()
        for module in self.flow:
            if module.id in seen:
                raise ValueError(f"Duplicate module id: {module.id}")
            seen.add(module.id)
        return self


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    normalized_workflow: Optional[dict[str, Any]] = None


def format_validation_errors(error: ValidationError) -> list[str]:
    """Readable messages for pydantic validation errors."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        if item["type"] == "missing":
            messages.append(f"Missing required property: {location}")
        elif location:
            messages.append(f"{location} {item['msg']}")
        else:
            messages.append(item["msg"])
    return messages


def normalize_module_flow(data: dict[str, Any]) -> dict[str, Any]:
    """Unwrap the legacy ``{"blueprint": {...}, "modules": [...]}`` envelope."""
    if "flow" in data or not isinstance(data.get("modules"), list):
        return deep_copy(data)
    blueprint = data.get("blueprint") or {}
    normalized = {key: deep_copy(value) for key, value in data.items() if key not in ("blueprint", "modules")}
    normalized["name"] = data.get("name") or blueprint.get("name") or ""
    normalized["flow"] = deep_copy(data["modules"])
    if "metadata" not in normalized and isinstance(blueprint.get("metadata"), dict):
        normalized["metadata"] = deep_copy(blueprint["metadata"])
    return normalized


def _validate(model: type[BaseModel], data: Any) -> ValidationResult:
    if not isinstance(data, dict):
        return ValidationResult(valid=False, errors=["Workflow must be a JSON object"])
    try:
        model.model_validate(data)
    except ValidationError as e:
        return ValidationResult(valid=False, errors=format_validation_errors(e))
    return ValidationResult(valid=True, normalized_workflow=deep_copy(data))


def validate_node_graph(data: Any) -> ValidationResult:
    """Validate n8n workflow JSON."""
    return _validate(N8nWorkflow, data)


def validate_module_flow(data: Any) -> ValidationResult:
    """Validate Make scenario JSON, accepting the legacy envelope."""
    if isinstance(data, dict):
        data = normalize_module_flow(data)
    return _validate(MakeWorkflow, data)
