"""
diagram.py — CausalDiagram: per-instance owner of the visualization state.

Owns the full render pipeline for one diagram:
    {nodes, edges} → CategoryRingLayout → positions → node / edge props

and the mutable per-instance state that goes with it: the Z-depth cache, the
category colour map, the hover/click state, the edge filter and the camera
controller.  Nothing is module-global; loading a new graph with
:meth:`CausalDiagram.load` starts from a clean slate.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from causalviz.camera import CameraController
from causalviz.colors import PALETTE, CategoryPalette
from causalviz.edges import ARROW_OFFSET, NODE_RADIUS, EdgeGeometry, build_edge_geometry
from causalviz.graph_data import GraphData
from causalviz.interaction import EdgeFilter, InteractionState
from causalviz.layout3d import MIN_SEPARATION, RING_RADIUS, CategoryRingLayout
from causalviz.presets import PresetStore
from causalviz.primitives import Edge, Node, Preset

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Config and result types
# ---------------------------------------------------------------------------


@dataclass
class DiagramConfig:
    """
    Tunables for a :class:`CausalDiagram`.

    :param ring_radius: Radius of the category ring.
    :param min_separation: Node separation before scaling.
    :param node_radius: Edge trimming distance at each end.
    :param arrow_offset: Arrowhead setback from the target node.
    :param palette: Category colours.
    :param min_camera_distance: Smallest zoom-in distance.
    :param base_node_scale: Node sphere scale before size and selection factors.
    :param selected_scale: Extra scale for the selected node.
    :param min_node_scale: Lower bound on the node sphere scale.
    :param sphere_radius: Unscaled node sphere radius.
    """

    ring_radius: float = RING_RADIUS
    min_separation: float = MIN_SEPARATION
    node_radius: float = NODE_RADIUS
    arrow_offset: float = ARROW_OFFSET
    palette: tuple[str, ...] = PALETTE
    min_camera_distance: float = 10.0
    base_node_scale: float = 2.0
    selected_scale: float = 5.0
    min_node_scale: float = 2.0
    sphere_radius: float = 6.0


@dataclass
class NodeProps:
    """
    Render props for one node.

    :param id: Node ID.
    :param label: Display label.
    :param value: Node value.
    :param category: Node category.
    :param position: ``[x, y, z]``.
    :param color: Category colour.
    :param is_selected: Whether this is the externally selected node.
    :param is_dimmed: Whether the node is outside the current focus set.
    :param scale: Sphere scale factor.
    :param tooltip: Hover tooltip text.
    """

    id: str
    label: str
    value: float
    category: str
    position: np.ndarray
    color: str
    is_selected: bool
    is_dimmed: bool
    scale: float
    tooltip: str

    @property
    def opacity(self) -> float:
        return 0.3 if self.is_dimmed else 1.0


@dataclass
class EdgeProps:
    """
    Render props for one visible edge.

    :param edge: The source edge.
    :param source_position: Source node ``[x, y, z]``.
    :param target_position: Target node ``[x, y, z]``.
    :param is_dimmed: Whether the edge is outside the current focus set.
    :param geometry: Trimmed segment, arrow and hit-box.
    """

    edge: Edge
    source_position: np.ndarray
    target_position: np.ndarray
    is_dimmed: bool
    geometry: EdgeGeometry

    @property
    def relationship(self) -> str:
        return self.edge.relationship

    @property
    def strength(self) -> float:
        return self.edge.strength


# ---------------------------------------------------------------------------
# CausalDiagram
# ---------------------------------------------------------------------------


class CausalDiagram:
    """
    One interactive causal-graph diagram.

    Typical usage::

        diagram = CausalDiagram()
        diagram.set_data(nodes, edges)
        diagram.click(nodes[0].id)
        for props in diagram.node_props():
            ...
        for props in diagram.edge_props():
            ...

    :param config: Tunables (defaults if omitted).
    :param presets: Preset view-model to wire to the camera.
    """

    def __init__(
        self,
        config: DiagramConfig | None = None,
        presets: PresetStore | None = None,
    ) -> None:
        self.config = config or DiagramConfig()
        self.layout = CategoryRingLayout(
            radius=self.config.ring_radius,
            min_separation=self.config.min_separation,
        )
        self.palette = CategoryPalette(self.config.palette)
        self.interaction = InteractionState()
        self.edge_filter = EdgeFilter()
        self.camera = CameraController(min_distance=self.config.min_camera_distance)

        self.nodes: Sequence[Node] = []
        self.edges: Sequence[Edge] = []
        self.positions: dict[str, np.ndarray] = {}
        self.selected_node_id: str | None = None

        self.presets: PresetStore | None = None
        self._unsubscribe: list = []
        if presets is not None:
            self.bind_presets(presets)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def bind_presets(self, presets: PresetStore) -> None:
        """
        Connect a preset view-model to the camera in both directions.

        Views pushed by :meth:`PresetStore.load_preset` are applied to the
        camera, and live camera state is written back as the current view.
        """
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self.presets = presets
        self._unsubscribe = [
            presets.subscribe(self.camera.apply_view),
            self.camera.subscribe(presets.set_current_view),
        ]

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def set_data(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> None:
        """
        Feed a new node/edge set.

        A different node-list object triggers a new layout pass, new camera
        bounds and an auto-fit; the same object is left alone.  A different
        edge-list object updates the interaction state and re-evaluates the
        declutter rule.

        :param nodes: Nodes in layout order.
        :param edges: Edges.
        """
        nodes_changed = nodes is not self.nodes
        edges_changed = edges is not self.edges
        self.nodes = nodes
        self.edges = edges

        if nodes_changed:
            self.positions = self.layout.compute(nodes, edges)
            self.camera.update_bounds(len(nodes))
            self.camera.auto_fit(self.positions)

        if edges_changed:
            self.interaction.set_edges(edges)
            self.edge_filter.apply_declutter(len(nodes), len(edges))

    def load(self, graph: GraphData) -> None:
        """Load a new graph, discarding all per-graph state first."""
        self.reset()
        self.set_data(graph.nodes, graph.edges)
        dangling = graph.dangling_edges()
        if dangling:
            logger.warning("%d edge(s) reference unknown nodes and will not render", len(dangling))

    def reset(self) -> None:
        """Clear the Z cache, colours, interaction state and edge filter."""
        self.layout.reset()
        self.palette.reset()
        self.interaction.reset()
        self.edge_filter = EdgeFilter()
        self.nodes = []
        self.edges = []
        self.positions = {}
        self.selected_node_id = None

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------

    def pointer_over(self, node_id: str) -> bool:
        """
        Hover *node_id*, unless the camera is being dragged.

        :return: ``True`` if the hover was accepted.
        """
        if self.camera.is_interacting:
            return False
        self.interaction.pointer_over(node_id)
        return True

    def pointer_out(self) -> None:
        self.interaction.pointer_out()

    def click(self, node_id: str) -> None:
        self.interaction.click(node_id)

    def canvas_click(self) -> None:
        self.interaction.canvas_click()

    def select_node(self, node_id: str | None) -> None:
        """Mark *node_id* as the externally selected node (e.g. from search)."""
        self.selected_node_id = node_id

    def apply_preset(self, preset: Preset) -> None:
        """Load *preset* through the bound view-model, or apply it directly."""
        if self.presets is not None:
            self.presets.load_preset(preset)
        else:
            self.camera.apply_preset(preset)

    # ------------------------------------------------------------------
    # Render props
    # ------------------------------------------------------------------

    def node_scale(self, is_selected: bool) -> float:
        """
        Sphere scale for a node: ``2 × sqrt(n) × 0.1``, ×5 when selected,
        never below the configured minimum.
        """
        cfg = self.config
        scale = cfg.base_node_scale * math.sqrt(len(self.nodes)) * 0.1
        if is_selected:
            scale *= cfg.selected_scale
        return max(scale, cfg.min_node_scale)

    def sphere_radius(self, is_selected: bool) -> float:
        """Drawn sphere radius: ``sphere_radius × node_scale``."""
        return self.config.sphere_radius * self.node_scale(is_selected)

    def node_props(self) -> list[NodeProps]:
        """Props for every laid-out node, in input order."""
        if not self.positions:
            return []
        out: list[NodeProps] = []
        for node in self.nodes:
            selected = node.id == self.selected_node_id
            out.append(
                NodeProps(
                    id=node.id,
                    label=node.label,
                    value=node.value,
                    category=node.category,
                    position=self.positions[node.id],
                    color=self.palette.get_color(node.category),
                    is_selected=selected,
                    is_dimmed=self.interaction.is_node_dimmed(node.id),
                    scale=self.node_scale(selected),
                    tooltip=f"{node.label}\nValue: {node.value}\nCategory: {node.category}",
                )
            )
        return out

    def edge_props(self) -> list[EdgeProps]:
        """
        Props for every edge that passes the filter and has both endpoints.

        Dangling edges are skipped.
        """
        if not self.positions:
            return []
        out: list[EdgeProps] = []
        for edge in self.edge_filter.apply(self.edges):
            src = self.positions.get(edge.source)
            dst = self.positions.get(edge.target)
            if src is None or dst is None:
                continue
            dimmed = self.interaction.is_edge_dimmed(edge)
            geometry = build_edge_geometry(
                src,
                dst,
                edge.relationship,
                edge.strength,
                dimmed,
                node_radius=self.config.node_radius,
                arrow_offset=self.config.arrow_offset,
            )
            out.append(
                EdgeProps(
                    edge=edge,
                    source_position=src,
                    target_position=dst,
                    is_dimmed=dimmed,
                    geometry=geometry,
                )
            )
        return out

    def node_at(self, point, tolerance: float | None = None) -> str | None:
        """
        ID of the nearest node whose sphere contains *point*.

        Used by renderers that pick by world coordinate.

        :param point: ``[x, y, z]`` world point.
        :param tolerance: Max distance for every node (default: each node's
            drawn radius, so the selected node's larger sphere counts).
        :return: Node ID or ``None``.
        """
        if not self.positions:
            return None
        point = np.asarray(point, dtype=float)
        ids = list(self.positions)
        coords = np.vstack([self.positions[i] for i in ids])
        dists = np.linalg.norm(coords - point, axis=1)
        if tolerance is None:
            limits = np.array([self.sphere_radius(i == self.selected_node_id) for i in ids])
        else:
            limits = np.full(len(ids), float(tolerance))
        hits = np.flatnonzero(dists <= limits)
        if len(hits) == 0:
            return None
        return ids[int(hits[np.argmin(dists[hits])])]

    def edge_at(self, point) -> EdgeProps | None:
        """
        First visible edge whose tooltip hit-box contains *point*.

        :param point: ``[x, y, z]`` world point.
        :return: :class:`EdgeProps` or ``None``.
        """
        for props in self.edge_props():
            if props.geometry.hitbox.contains(point):
                return props
        return None
