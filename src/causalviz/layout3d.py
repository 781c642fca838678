"""
layout3d.py — 3-D layout engine for causal graphs.

Provides an abstract :class:`Layout3D` base class and the
:class:`CategoryRingLayout` used by the diagram:

- Each distinct node category gets an anchor point on a ring in the XY plane.
- Nodes are scattered around their category anchor with a deterministic
  noise term derived from their position in the input list, so the same
  input order always produces the same layout.
- Z depth is assigned once per node ID and cached for the lifetime of the
  layout instance, so adding or removing nodes does not make existing nodes
  jump in depth.
- A single corrective pass pushes apart pairs closer than the minimum
  separation.  The pass does not iterate to convergence; dense layouts may
  keep some close pairs.

No physics simulation is involved.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence

import numpy as np

from causalviz.primitives import Edge, Node

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

RING_RADIUS = 200.0
SCALE_PER_SQRT_NODE = 0.25
MIN_SEPARATION = 50.0


def scale_factor(node_count: int) -> float:
    """
    Global spread factor for a graph of *node_count* nodes.

    Grows with ``sqrt(node_count)`` so density stays roughly bounded as the
    graph grows.

    :param node_count: Number of nodes in the layout pass.
    :return: ``sqrt(node_count) * 0.25``.
    """
    return math.sqrt(node_count) * SCALE_PER_SQRT_NODE


def category_anchors(
    categories: Sequence[str],
    radius: float = RING_RADIUS,
) -> dict[str, np.ndarray]:
    """
    Place each category on a circle in the XY plane.

    Category *k* of *n* sits at angle ``k * 2π / n``; a single category sits
    at angle 0.

    :param categories: Distinct categories in first-seen order.
    :param radius: Circle radius.
    :return: Mapping from category to ``[x, y]``.
    """
    if not categories:
        return {}
    step = 2.0 * math.pi / len(categories)
    return {
        cat: np.array([math.cos(k * step) * radius, math.sin(k * step) * radius])
        for k, cat in enumerate(categories)
    }


def separate(positions: np.ndarray, min_distance: float) -> np.ndarray:
    """
    One corrective minimum-separation pass over *positions* (in place).

    For every ordered pair ``(i, j)`` with ``i != j``, if node *j* lies closer
    than *min_distance* to node *i*, node *j* is shifted by *min_distance* on
    all three axes.  Node *i* is compared at its position when its turn
    begins; moves made during the pass are visible to later turns.  The pass
    is order-dependent and is not repeated.

    :param positions: ``(n, 3)`` array of node positions.
    :param min_distance: Minimum allowed distance.
    :return: The same array, for chaining.
    """
    n = len(positions)
    for i in range(n):
        anchor = positions[i].copy()
        too_close = np.linalg.norm(positions - anchor, axis=1) < min_distance
        too_close[i] = False
        positions[too_close] += min_distance
    return positions


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------


class Layout3D(ABC):
    """
    Abstract base class for 3-D graph layout strategies.

    Subclasses implement :meth:`compute` to assign a 3-D position to every
    node, returning a ``{node_id: np.ndarray([x, y, z])}`` mapping that the
    diagram and renderer consume.
    """

    @abstractmethod
    def compute(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge] = (),
    ) -> dict[str, np.ndarray]:
        """
        Compute 3-D positions for all *nodes*.

        :param nodes: All nodes in the graph, in input order.
        :param edges: All edges in the graph.
        :return: Mapping from node ID to ``[x, y, z]`` position.
        """
        ...


# ---------------------------------------------------------------------------
# CategoryRingLayout
# ---------------------------------------------------------------------------


class CategoryRingLayout(Layout3D):
    """
    Category-ring layout with index noise and session-stable depth.

    For a node at list index ``i`` with ``s = sqrt(n) * 0.25``:

    - ``x = (anchor_x + ((i % 10) - 5) * 10 * s) * s``
    - ``y = (anchor_y + (((i // 10) % 10) - 5) * 10 * s) * s``
    - ``z = ((i % 5) - 5) * 100 * s`` on the first pass that sees the node ID,
      reused from the cache afterwards.

    The Z cache belongs to this instance.  Pass an existing dict as
    *z_cache* to share it, and call :meth:`reset` when a new graph is loaded.

    :param radius: Radius of the category ring.
    :param min_separation: Minimum separation before scaling by ``s``.
    :param z_cache: Optional externally owned ``{node_id: z}`` cache.
    """

    def __init__(
        self,
        radius: float = RING_RADIUS,
        min_separation: float = MIN_SEPARATION,
        z_cache: dict[str, float] | None = None,
    ) -> None:
        self.radius = radius
        self.min_separation = min_separation
        self.z_cache: dict[str, float] = z_cache if z_cache is not None else {}

    def reset(self) -> None:
        """Forget all cached Z depths."""
        self.z_cache.clear()

    def compute(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge] = (),
    ) -> dict[str, np.ndarray]:
        """
        Compute category-ring positions for all nodes.

        :param nodes: All nodes in the graph, in input order.
        :param edges: Unused by this layout (present for API compatibility).
        :return: Mapping from node ID to ``[x, y, z]`` position.
        """
        if not nodes:
            return {}

        categories = list(dict.fromkeys(n.category for n in nodes))
        anchors = category_anchors(categories, self.radius)

        s = scale_factor(len(nodes))
        min_distance = self.min_separation * s

        coords = np.empty((len(nodes), 3), dtype=float)
        for i, node in enumerate(nodes):
            if node.id not in self.z_cache:
                self.z_cache[node.id] = ((i % 5) - 5) * 100.0 * s
            ax, ay = anchors[node.category]
            noise_x = ((i % 10) - 5) * 10.0 * s
            noise_y = (((i // 10) % 10) - 5) * 10.0 * s
            coords[i] = ((ax + noise_x) * s, (ay + noise_y) * s, self.z_cache[node.id])

        separate(coords, min_distance)

        logger.debug(
            "Laid out %d nodes in %d categories (scale=%.3f, min_distance=%.3f)",
            len(nodes),
            len(categories),
            s,
            min_distance,
        )
        return {node.id: coords[i] for i, node in enumerate(nodes)}
