"""Translate edges between the adjacency map and the route list.

n8n keeps edges as ``{source: {output_index: [edge, ...]}}`` and Make as a
flat list of routes where outputs past the first are told apart by an
``"Output N"`` label. Endpoints are re-keyed through an ``IdCorrelation``.
An edge whose endpoint cannot be correlated is dropped, never guessed.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from ..models import Edge

logger = logging.getLogger(__name__)

_OUTPUT_LABEL = re.compile(r"^Output (\d+)$")


class IdCorrelation:
    """Source entity id -> output entity id for one run.

    Names can be registered as aliases for source ids, since n8n exports
    key connections by node name.
    """

    def __init__(self):
        self._output_ids: dict[str, str] = {}
        self._output_names: dict[str, str] = {}
        self._aliases: dict[str, str] = {}
        self._ambiguous: set[str] = set()

    def add(self, source_id: str, output_id: str, source_name: str = "", output_name: str = "") -> None:
        if source_id in self._output_ids:
            raise ValueError(f"Source id {source_id!r} is already correlated")
        if output_id in self._output_ids.values():
            raise ValueError(f"Output id {output_id!r} is already assigned")
        self._output_ids[source_id] = output_id
        self._output_names[source_id] = output_name
        if source_name:
            if source_name in self._aliases or source_name in self._ambiguous:
                self._aliases.pop(source_name, None)
                self._ambiguous.add(source_name)
            else:
                self._aliases[source_name] = source_id

    def source_id(self, key: str) -> str | None:
        """Resolve an id or a unique name to a source id."""
        if key in self._output_ids:
            return key
        return self._aliases.get(key)

    def output_id(self, key: str) -> str | None:
        source_id = self.source_id(key)
        return self._output_ids.get(source_id) if source_id is not None else None

    def output_name(self, source_id: str) -> str | None:
        return self._output_names.get(source_id)

    @property
    def output_ids(self) -> dict[str, str]:
        return dict(self._output_ids)

    @property
    def output_names(self) -> dict[str, str]:
        return dict(self._output_names)

    @property
    def ids_by_name(self) -> dict[str, str]:
        return dict(self._aliases)

    def __len__(self) -> int:
        return len(self._output_ids)

    def __contains__(self, source_id: str) -> bool:
        return source_id in self._output_ids


@dataclass
class DroppedEdge:
    """An edge left out of the output, with why."""

    source: str
    target: str
    output_index: int
    reason: str

    def message(self) -> str:
        return f"Dropped connection {self.source} -> {self.target} (output {self.output_index}): {self.reason}"


def output_label(index: int) -> str | None:
    """Route label for an output index; the first output has none."""
    return f"Output {index + 1}" if index > 0 else None


def label_index(label: str | None) -> int:
    """Output index encoded in a route label, 0 when absent or unrecognized."""
    if not label:
        return 0
    match = _OUTPUT_LABEL.match(label)
    if not match:
        return 0
    return max(int(match.group(1)) - 1, 0)


def _ordered_adjacency(adjacency: dict[str, dict[int, list[Edge]]]) -> Iterable[tuple[str, int, Edge]]:
    for source_key, by_index in adjacency.items():
        for index in sorted(by_index):
            for edge in by_index[index]:
                yield source_key, index, edge


class GraphTranslator:
    """Convert edge sets and compute upstream lists."""

    def to_routes(
        self,
        adjacency: dict[str, dict[int, list[Edge]]],
        correlation: IdCorrelation,
    ) -> tuple[list[Edge], list[DroppedEdge]]:
        """Adjacency map -> route list, in source order then output index order."""
        routes: list[Edge] = []
        dropped: list[DroppedEdge] = []

        for source_key, index, edge in _ordered_adjacency(adjacency):
            source_id = correlation.output_id(source_key)
            target_id = correlation.output_id(edge.target_id)
            if source_id is None or target_id is None:
                missing = source_key if source_id is None else edge.target_id
                dropped.append(DroppedEdge(source_key, edge.target_id, index, f"unknown entity '{missing}'"))
                continue
            routes.append(Edge(
                source_id=source_id,
                target_id=target_id,
                output_index=index,
                label=output_label(index),
            ))

        return routes, dropped

    def to_adjacency(
        self,
        routes: list[Edge],
        correlation: IdCorrelation,
    ) -> tuple[dict[str, dict[int, list[Edge]]], list[DroppedEdge]]:
        """Route list -> adjacency map, grouped by source in first-seen order."""
        adjacency: dict[str, dict[int, list[Edge]]] = {}
        dropped: list[DroppedEdge] = []

        for route in routes:
            index = label_index(route.label) if route.label else route.output_index
            source_id = correlation.output_id(route.source_id)
            target_id = correlation.output_id(route.target_id)
            if source_id is None or target_id is None:
                missing = route.source_id if source_id is None else route.target_id
                dropped.append(DroppedEdge(route.source_id, route.target_id, index, f"unknown entity '{missing}'"))
                continue
            edge = Edge(source_id=source_id, target_id=target_id, output_index=index)
            adjacency.setdefault(source_id, {}).setdefault(index, []).append(edge)

        for source_id, by_index in adjacency.items():
            adjacency[source_id] = dict(sorted(by_index.items()))
        return adjacency, dropped

    def predecessors(
        self,
        edges: dict[str, dict[int, list[Edge]]] | list[Edge],
        correlation: IdCorrelation,
    ) -> dict[str, list[str]]:
        """Source id -> ordered, de-duplicated list of upstream source ids."""
        if isinstance(edges, dict):
            pairs = ((source_key, edge.target_id) for source_key, _, edge in _ordered_adjacency(edges))
        else:
            pairs = ((edge.source_id, edge.target_id) for edge in edges)

        upstream: dict[str, list[str]] = {}
        for source_key, target_key in pairs:
            source_id = correlation.source_id(source_key)
            target_id = correlation.source_id(target_key)
            if source_id is None or target_id is None:
                continue
            parents = upstream.setdefault(target_id, [])
            if source_id not in parents:
                parents.append(source_id)
        return upstream
