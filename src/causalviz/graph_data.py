"""
graph_data.py — Load causal-graph JSON documents into primitives.

Two document shapes are accepted::

    {"nodes": [...], "edges": [...]}

    {"time_unit": "year",
     "timestamps": [{"t": 2001, "nodes": [...], "edges": [...]}, ...]}

Nodes need ``id`` (str), ``label`` (str), ``value`` (number) and
``category`` (str); edges need ``source`` / ``target`` / ``relationship``
(str) and ``strength`` (number in ``[0, 1]``).  Structural problems raise
``ValueError``.  Edges pointing at unknown nodes are kept: the diagram skips
them at render time.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from numbers import Real
from pathlib import Path

from causalviz.primitives import Edge, Node

logger = logging.getLogger(__name__)

_NODE_KEYS = ("id", "label", "value", "category")
_EDGE_KEYS = ("source", "target", "relationship", "strength")


@dataclass
class GraphData:
    """
    One renderable graph snapshot.

    :param nodes: Nodes in document order.
    :param edges: Edges in document order.
    :param timestamp: Selected ``t`` for timestamped documents.
    :param time_unit: Time unit for timestamped documents.
    :param timestamps: All distinct ``t`` values, sorted.
    """

    nodes: list[Node]
    edges: list[Edge]
    timestamp: float | None = None
    time_unit: str | None = None
    timestamps: list[float] = field(default_factory=list)

    def dangling_edges(self) -> list[Edge]:
        """Edges whose source or target is not a node of this snapshot."""
        ids = {n.id for n in self.nodes}
        return [e for e in self.edges if e.source not in ids or e.target not in ids]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _check_keys(kind: str, item, keys: tuple[str, ...]) -> None:
    if not isinstance(item, dict):
        raise ValueError(f"Invalid {kind}, must be an object")
    missing = [k for k in keys if k not in item]
    if missing:
        raise ValueError(f"Missing/Incorrect required keys: {', '.join(missing)}")


def _parse_node(item) -> Node:
    _check_keys("node", item, _NODE_KEYS)
    for key in ("id", "label", "category"):
        if not isinstance(item[key], str):
            raise ValueError(f"Invalid node, {key} must be a string")
    if not _is_number(item["value"]):
        raise ValueError("Invalid node, value must be a number")
    return Node.from_dict(item)


def _parse_edge(item) -> Edge:
    _check_keys("edge", item, _EDGE_KEYS)
    for key in ("source", "target", "relationship"):
        if not isinstance(item[key], str):
            raise ValueError(f"Invalid edge, {key} must be a string")
    if not _is_number(item["strength"]):
        raise ValueError("Invalid edge, strength must be a number")
    if not 0 <= item["strength"] <= 1:
        raise ValueError("Invalid edge, strength must be between 0 and 1")
    return Edge.from_dict(item)


def _parse_lists(nodes, edges) -> tuple[list[Node], list[Edge]]:
    if not isinstance(nodes, list):
        raise ValueError("Invalid graph, nodes must be an array")
    if not isinstance(edges, list):
        raise ValueError("Invalid graph, edges must be an array")
    return [_parse_node(n) for n in nodes], [_parse_edge(e) for e in edges]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_graph_data(data, timestamp: float | None = None) -> GraphData:
    """
    Convert a decoded graph document to :class:`GraphData`.

    :param data: Decoded JSON document.
    :param timestamp: For timestamped documents, the ``t`` to select
        (default: the first entry).
    :return: :class:`GraphData`.
    :raises ValueError: If the document is malformed or *timestamp* is absent.
    """
    if not isinstance(data, dict):
        raise ValueError("Invalid graph JSON format")

    if "timestamps" in data and "time_unit" in data:
        if not isinstance(data["time_unit"], str):
            raise ValueError("Invalid time_unit, must be a string")
        entries = data["timestamps"]
        if not isinstance(entries, list):
            raise ValueError("Invalid timestamps, must be an array")
        if not entries:
            raise ValueError("Timestamps array cannot be empty")
        for entry in entries:
            _check_keys("timestamp", entry, ("t", "nodes", "edges"))
            if not _is_number(entry["t"]):
                raise ValueError("Invalid timestamp, must be a number")

        if timestamp is None:
            chosen = entries[0]
        else:
            chosen = next((e for e in entries if e["t"] == timestamp), None)
            if chosen is None:
                raise ValueError(f"Timestamp {timestamp!r} not found")
        nodes, edges = _parse_lists(chosen["nodes"], chosen["edges"])
        return GraphData(
            nodes=nodes,
            edges=edges,
            timestamp=chosen["t"],
            time_unit=data["time_unit"],
            timestamps=sorted({e["t"] for e in entries}),
        )

    if "nodes" in data and "edges" in data:
        nodes, edges = _parse_lists(data["nodes"], data["edges"])
        return GraphData(nodes=nodes, edges=edges)

    raise ValueError(
        "Invalid graph format, for timestamp format use keys:'timestamps' and "
        "'time_unit', for non-timestamp format use 'nodes' and 'edges'"
    )


def load_graph_data(path: str | Path, timestamp: float | None = None) -> GraphData:
    """
    Read and parse a graph JSON file.

    :param path: Path to the JSON document.
    :param timestamp: See :func:`parse_graph_data`.
    :return: :class:`GraphData`.
    :raises FileNotFoundError: If *path* does not exist.
    :raises ValueError: If the file is not valid JSON or not a valid graph.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Graph file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON syntax: {exc}") from exc

    graph = parse_graph_data(data, timestamp=timestamp)
    logger.info("Loaded %s: %d nodes, %d edges", path.name, len(graph.nodes), len(graph.edges))
    return graph
