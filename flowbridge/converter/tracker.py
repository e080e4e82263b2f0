"""Per-conversion diagnostics: entity outcomes, parameter traces and logs.

A fresh ``DebugTracker`` is created for every conversion run.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Literal

from ..models import ConversionLog, DebugInfo, Direction, Entity

logger = logging.getLogger(__name__)

MappingStatus = Literal["full", "partial", "failed", "stub"]

_LOG_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


@dataclass
class ParameterTrace:
    source: str
    target: str | None
    success: bool
    reason: str | None = None


@dataclass
class EntityTrace:
    """Mapping outcome of one source entity."""

    source_id: str
    source_name: str = ""
    source_type: str = "unknown"
    target_id: str | None = None
    target_type: str | None = None
    success: bool = False
    is_stub: bool = False
    status: MappingStatus = "failed"
    plugin_source: str | None = None
    parameters: list[ParameterTrace] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    unmapped_parameters: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceId": self.source_id,
            "sourceName": self.source_name,
            "sourceType": self.source_type,
            "targetId": self.target_id,
            "targetType": self.target_type,
            "success": self.success,
            "isStub": self.is_stub,
            "mappingStatus": self.status,
            "pluginSource": self.plugin_source,
            "parameterMappings": [
                {"source": p.source, "target": p.target, "success": p.success, "reason": p.reason}
                for p in self.parameters
            ],
            "warnings": list(self.warnings),
            "unmappedParameters": list(self.unmapped_parameters),
        }


def mapping_status(success: bool, is_stub: bool, has_target: bool) -> MappingStatus:
    if is_stub:
        return "stub"
    if success:
        return "full"
    if has_target:
        return "partial"
    return "failed"


class DebugTracker:
    """Collects what happened to every entity during one conversion."""

    def __init__(self):
        self._entities: dict[str, EntityTrace] = {}
        self._logs: list[ConversionLog] = []
        self._started: float | None = None
        self._elapsed_ms: int | None = None

    def _entry(self, node_id: str) -> EntityTrace:
        if node_id not in self._entities:
            self._entities[node_id] = EntityTrace(source_id=node_id, source_name=f"Node {node_id}")
        return self._entities[node_id]

    def track_mapping(
        self,
        source: Entity,
        target: Entity | None,
        success: bool,
        is_stub: bool = False,
        plugin_source: str | None = None,
    ) -> "DebugTracker":
        """Record the outcome for ``source``. Parameter traces already recorded are kept."""
        entry = self._entry(source.id)
        entry.source_name = source.name or f"Node {source.id}"
        entry.source_type = source.type
        entry.target_id = target.id if target is not None else None
        entry.target_type = target.type if target is not None else None
        entry.success = success and not is_stub
        entry.is_stub = is_stub
        entry.status = mapping_status(success, is_stub, target is not None)
        entry.plugin_source = plugin_source
        return self

    def track_parameter(
        self,
        node_id: str,
        source: str,
        target: str | None,
        success: bool,
        reason: str | None = None,
    ) -> "DebugTracker":
        entry = self._entry(node_id)
        entry.parameters.append(ParameterTrace(source, target, success, reason))
        if not success and target is None:
            entry.unmapped_parameters.append(source)
        return self

    def add_warning(self, node_id: str, message: str) -> "DebugTracker":
        self._entry(node_id).warnings.append(message)
        return self

    def add_log(self, level: str, message: str) -> "DebugTracker":
        """Add a user-facing log entry and mirror it to the process log."""
        if level not in _LOG_LEVELS:
            level = "info"
        self._logs.append(ConversionLog(type=level, message=message))
        logger.log(_LOG_LEVELS[level], message)
        return self

    @property
    def logs(self) -> list[ConversionLog]:
        return list(self._logs)

    @property
    def entities(self) -> dict[str, EntityTrace]:
        return dict(self._entities)

    def start_timing(self) -> "DebugTracker":
        self._started = time.perf_counter()
        self._elapsed_ms = None
        return self

    def finish_timing(self) -> "DebugTracker":
        if self._started is None:
            return self
        self._elapsed_ms = round((time.perf_counter() - self._started) * 1000)
        self.add_log("info", f"Conversion completed in {self._elapsed_ms}ms")
        return self

    def summary(self) -> dict[str, Any]:
        traces = list(self._entities.values())
        total = len(traces)
        successful = sum(1 for t in traces if t.success)

        plugin_usage: dict[str, int] = {}
        for trace in traces:
            if trace.plugin_source:
                plugin_usage[trace.plugin_source] = plugin_usage.get(trace.plugin_source, 0) + 1

        summary = {
            "nodeCount": total,
            "successfulNodes": successful,
            "partialNodes": sum(1 for t in traces if t.status == "partial"),
            "failedNodes": sum(1 for t in traces if t.status == "failed"),
            "stubNodes": sum(1 for t in traces if t.is_stub),
            "warningCount": sum(len(t.warnings) for t in traces),
            "unmappedParamsCount": sum(len(t.unmapped_parameters) for t in traces),
            "pluginUsage": plugin_usage,
            # Half-up rounding
            "successRate": math.floor(100 * successful / total + 0.5) if total else 0,
        }
        if self._elapsed_ms is not None:
            summary["conversionTime"] = self._elapsed_ms
        return summary

    def report(self) -> dict[str, Any]:
        return {
            "nodes": {node_id: trace.to_dict() for node_id, trace in self._entities.items()},
            "logs": [log.to_dict() for log in self._logs],
            "summary": self.summary(),
        }

    def debug_info(self, direction: Direction) -> DebugInfo:
        """Mapped and unmapped entity lists for the result's ``debug`` block."""
        mapped, unmapped = [], []
        for trace in self._entities.values():
            item = {
                "id": trace.source_id,
                "name": trace.source_name,
                "type": trace.source_type,
                "mappedType": trace.target_type,
                "status": trace.status,
            }
            (unmapped if trace.status in ("stub", "failed") else mapped).append(item)

        if Direction(direction) is Direction.A_TO_B:
            return DebugInfo(mapped_nodes=mapped, unmapped_nodes=unmapped, summary=self.summary())
        return DebugInfo(mapped_modules=mapped, unmapped_modules=unmapped, summary=self.summary())
