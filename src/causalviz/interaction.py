"""
interaction.py — Hover/click interaction state and causal-path dimming.

The state machine has three modes:

- ``idle`` — nothing is dimmed.
- ``hovering`` — the hovered node and its one-hop *causal* neighbours stay
  lit; everything else is dimmed.
- ``clicked`` — the clicked node, everything causally downstream of it and
  everything causally upstream of it stay lit; everything else is dimmed.
  A click overrides any hover.

Only ``causal`` edges take part in neighbour lookups and path traversal.
Traversals use explicit stacks with a visited set, so cycles and very deep
chains are safe.

The module also holds :class:`EdgeFilter`, the strength-range and
relationship-visibility filter with its auto-declutter rule.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from causalviz.primitives import (
    ALL_RELATIONSHIPS,
    REL_CAUSAL,
    REL_CORRELATED,
    REL_INHIBITORY,
    Edge,
    edge_key,
)

logger = logging.getLogger(__name__)

MODE_IDLE = "idle"
MODE_HOVERING = "hovering"
MODE_CLICKED = "clicked"

# Above either threshold the relationship toggles start switched off.
DECLUTTER_MAX_EDGES = 150
DECLUTTER_MAX_NODES = 500


# ---------------------------------------------------------------------------
# Causal graph queries
# ---------------------------------------------------------------------------


def causal_neighbors(node_id: str, edges: Iterable[Edge]) -> set[str]:
    """
    Return the IDs one causal hop away from *node_id*, in either direction.

    :param node_id: Node to inspect.
    :param edges: All edges.
    :return: Set of neighbour node IDs.
    """
    out: set[str] = set()
    for e in edges:
        if e.relationship != REL_CAUSAL:
            continue
        if e.source == node_id:
            out.add(e.target)
        elif e.target == node_id:
            out.add(e.source)
    return out


def traverse_forward(
    start: str,
    edges: Sequence[Edge],
    visited_nodes: set[str] | None = None,
    visited_edges: set[str] | None = None,
) -> tuple[set[str], set[str]]:
    """
    Collect everything causally downstream of *start*.

    Follows causal edges ``source → target``.  Nodes already in
    *visited_nodes* are not expanded again, but *start* itself always is.

    :param start: Node to start from.
    :param edges: All edges.
    :param visited_nodes: Accumulator for node IDs (created if omitted).
    :param visited_edges: Accumulator for edge keys (created if omitted).
    :return: ``(visited_nodes, visited_edges)``.
    """
    return _traverse(start, edges, forward=True, nodes=visited_nodes, keys=visited_edges)


def traverse_backward(
    start: str,
    edges: Sequence[Edge],
    visited_nodes: set[str] | None = None,
    visited_edges: set[str] | None = None,
) -> tuple[set[str], set[str]]:
    """
    Collect everything causally upstream of *start*.

    Follows causal edges ``target → source``.  See :func:`traverse_forward`.

    :param start: Node to start from.
    :param edges: All edges.
    :param visited_nodes: Accumulator for node IDs (created if omitted).
    :param visited_edges: Accumulator for edge keys (created if omitted).
    :return: ``(visited_nodes, visited_edges)``.
    """
    return _traverse(start, edges, forward=False, nodes=visited_nodes, keys=visited_edges)


def _traverse(
    start: str,
    edges: Sequence[Edge],
    *,
    forward: bool,
    nodes: set[str] | None,
    keys: set[str] | None,
) -> tuple[set[str], set[str]]:
    nodes = set() if nodes is None else nodes
    keys = set() if keys is None else keys

    adjacency: dict[str, list[Edge]] = {}
    for e in edges:
        if e.relationship == REL_CAUSAL:
            adjacency.setdefault(e.source if forward else e.target, []).append(e)

    nodes.add(start)
    stack = [start]
    while stack:
        current = stack.pop()
        for e in adjacency.get(current, ()):
            keys.add(edge_key(e.source, e.target))
            nxt = e.target if forward else e.source
            if nxt not in nodes:
                nodes.add(nxt)
                stack.append(nxt)
    return nodes, keys


def causal_path(node_id: str, edges: Sequence[Edge]) -> tuple[set[str], set[str]]:
    """
    Highlight sets for a clicked node: downstream then upstream.

    Both passes share one visited set, so a node reached downstream is not
    expanded again on the upstream pass.

    :param node_id: Clicked node.
    :param edges: All edges.
    :return: ``(node_ids, edge_keys)``.
    """
    nodes, keys = traverse_forward(node_id, edges)
    return traverse_backward(node_id, edges, nodes, keys)


# ---------------------------------------------------------------------------
# InteractionState
# ---------------------------------------------------------------------------


class InteractionState:
    """
    Hover/click state plus the derived highlight sets.

    Every event recomputes the derived sets synchronously.  Clicking the
    already-clicked node clears the click; clicking the empty canvas clears
    it too.  Pointer-out clears only the hover.

    :param edges: Edge set the dimming is computed over.
    """

    def __init__(self, edges: Sequence[Edge] = ()) -> None:
        self.edges: list[Edge] = list(edges)
        self.hovered_node_id: str | None = None
        self.clicked_node_id: str | None = None
        self.highlighted_node_ids: set[str] = set()
        self.highlighted_edge_ids: set[str] = set()
        self._hover_neighbors: set[str] = set()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def set_edges(self, edges: Sequence[Edge]) -> None:
        """Replace the edge set and recompute highlights for the current state."""
        self.edges = list(edges)
        self._refresh_hover()
        self._refresh_click()

    def pointer_over(self, node_id: str) -> None:
        self.hovered_node_id = node_id
        self._refresh_hover()

    def pointer_out(self) -> None:
        self.hovered_node_id = None
        self._refresh_hover()

    def click(self, node_id: str) -> None:
        """Toggle the click on *node_id*."""
        if self.clicked_node_id == node_id:
            self.clicked_node_id = None
        else:
            self.clicked_node_id = node_id
        self._refresh_click()

    def canvas_click(self) -> None:
        """A click that hit no node clears the click state."""
        self.clicked_node_id = None
        self._refresh_click()

    def reset(self) -> None:
        self.hovered_node_id = None
        self.clicked_node_id = None
        self._refresh_hover()
        self._refresh_click()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def mode(self) -> str:
        """``clicked``, ``hovering`` or ``idle``."""
        if self.clicked_node_id is not None:
            return MODE_CLICKED
        if self.hovered_node_id is not None:
            return MODE_HOVERING
        return MODE_IDLE

    def is_node_dimmed(self, node_id: str) -> bool:
        """
        Whether *node_id* renders dimmed in the current state.

        :param node_id: Node to test.
        :return: ``True`` if the node is outside the current focus set.
        """
        mode = self.mode
        if mode == MODE_CLICKED:
            return node_id != self.clicked_node_id and node_id not in self.highlighted_node_ids
        if mode == MODE_HOVERING:
            return node_id != self.hovered_node_id and node_id not in self._hover_neighbors
        return False

    def is_edge_dimmed(self, edge: Edge) -> bool:
        """
        Whether *edge* renders dimmed in the current state.

        :param edge: Edge to test.
        :return: ``True`` if the edge is outside the current focus set.
        """
        mode = self.mode
        if mode == MODE_CLICKED:
            return edge.key not in self.highlighted_edge_ids
        if mode == MODE_HOVERING:
            hovered = self.hovered_node_id
            incident = edge.source == hovered or edge.target == hovered
            return not (incident and edge.relationship == REL_CAUSAL)
        return False

    def _refresh_hover(self) -> None:
        if self.hovered_node_id is None:
            self._hover_neighbors = set()
        else:
            self._hover_neighbors = causal_neighbors(self.hovered_node_id, self.edges)

    def _refresh_click(self) -> None:
        if self.clicked_node_id is None:
            self.highlighted_node_ids = set()
            self.highlighted_edge_ids = set()
            return
        self.highlighted_node_ids, self.highlighted_edge_ids = causal_path(
            self.clicked_node_id, self.edges
        )
        logger.debug(
            "Causal path of %s: %d nodes, %d edges",
            self.clicked_node_id,
            len(self.highlighted_node_ids),
            len(self.highlighted_edge_ids),
        )


# ---------------------------------------------------------------------------
# EdgeFilter
# ---------------------------------------------------------------------------


@dataclass
class EdgeFilter:
    """
    Strength-range and relationship-visibility filter for rendered edges.

    :param min_strength: Lowest strength shown (inclusive).
    :param max_strength: Highest strength shown (inclusive).
    :param show_causal: Show ``causal`` edges.
    :param show_correlated: Show ``correlated`` edges.
    :param show_inhibitory: Show ``inhibitory`` edges.
    """

    min_strength: float = 0.0
    max_strength: float = 1.0
    show_causal: bool = True
    show_correlated: bool = True
    show_inhibitory: bool = True

    def visible(self, edge: Edge) -> bool:
        """
        Whether *edge* passes the filter.

        Edges with an unknown relationship never pass.

        :param edge: Edge to test.
        :return: ``True`` if the edge should be rendered.
        """
        if not (self.min_strength <= edge.strength <= self.max_strength):
            return False
        return self.relationship_visible(edge.relationship)

    def relationship_visible(self, relationship: str) -> bool:
        if relationship == REL_CAUSAL:
            return self.show_causal
        if relationship == REL_CORRELATED:
            return self.show_correlated
        if relationship == REL_INHIBITORY:
            return self.show_inhibitory
        return False

    def apply(self, edges: Iterable[Edge]) -> list[Edge]:
        """Return the edges that pass the filter, in input order."""
        return [e for e in edges if self.visible(e)]

    def toggle(self, relationship: str) -> bool:
        """
        Flip the visibility of *relationship*.

        :param relationship: ``causal``, ``correlated`` or ``inhibitory``.
        :return: The new visibility.
        :raises ValueError: If *relationship* is unknown.
        """
        if relationship not in ALL_RELATIONSHIPS:
            raise ValueError(f"unknown relationship {relationship!r}")
        attr = f"show_{relationship}"
        setattr(self, attr, not getattr(self, attr))
        return getattr(self, attr)

    def set_strength_range(self, min_strength: float, max_strength: float) -> None:
        self.min_strength = float(min_strength)
        self.max_strength = float(max_strength)

    def apply_declutter(self, node_count: int, edge_count: int) -> bool:
        """
        Switch all relationship toggles off for large graphs.

        Triggered when ``edge_count > 150`` or ``node_count > 500``.  Smaller
        graphs leave the toggles untouched.

        :param node_count: Nodes in the loaded graph.
        :param edge_count: Edges in the loaded graph.
        :return: ``True`` if the toggles were switched off.
        """
        if edge_count > DECLUTTER_MAX_EDGES or node_count > DECLUTTER_MAX_NODES:
            self.show_causal = False
            self.show_correlated = False
            self.show_inhibitory = False
            logger.info(
                "Decluttering: %d nodes, %d edges; relationship toggles off",
                node_count,
                edge_count,
            )
            return True
        return False
