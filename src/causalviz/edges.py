"""
edges.py — Edge geometry: trimmed segments, arrowheads, styling.

Given two resolved node positions, :func:`build_edge_geometry` produces
everything a renderer needs for one edge:

- a line segment trimmed by the node radius at both ends, so it meets the
  sphere surfaces instead of their centres;
- for ``causal`` edges an arrowhead cone set back from the target and
  rotated from +Y onto the edge direction;
- an invisible hit-box at the arrow point carrying the tooltip text;
- colour, width and opacity derived from relationship, strength and dimming.

Bad data never raises: a missing endpoint or an unknown relationship is
logged and the edge is skipped or drawn in the default style.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from causalviz.primitives import REL_CAUSAL, REL_CORRELATED, REL_INHIBITORY

logger = logging.getLogger(__name__)

NODE_RADIUS = 12.0
ARROW_OFFSET = 16.0
ARROW_RADIUS = 5.0
ARROW_HEIGHT = 10.0
HITBOX_THICKNESS = 5.0
DIMMED_OPACITY = 0.3

DEFAULT_COLOR = "black"
INHIBITORY_COLOR = "red"

_UP = np.array([0.0, 1.0, 0.0])


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EdgeStyle:
    """
    Relationship-derived edge style.

    :param color: Line and arrow colour.
    :param arrow: Whether an arrowhead is drawn at the target end.
    """

    color: str = DEFAULT_COLOR
    arrow: bool = False


@dataclass
class ArrowGeometry:
    """
    Arrowhead cone placement.

    :param position: Cone centre.
    :param quaternion: ``(x, y, z, w)`` rotation taking +Y onto the edge direction.
    :param direction: Unit edge direction.
    :param radius: Cone base radius.
    :param height: Cone height.
    :param opacity: Cone opacity.
    """

    position: np.ndarray
    quaternion: np.ndarray
    direction: np.ndarray
    radius: float
    height: float
    opacity: float


@dataclass
class HitBox:
    """
    Invisible hover target used for the relationship/strength tooltip.

    :param center: Box centre (the arrow point).
    :param size: ``(length, thickness, thickness)``.
    :param rotation_z: Rotation about Z, ``atan2(dy, dx)`` of the edge.
    :param tooltip: Tooltip text.
    """

    center: np.ndarray
    size: tuple[float, float, float]
    rotation_z: float
    tooltip: str

    def contains(self, point) -> bool:
        """
        Whether *point* lies inside the box.

        :param point: ``[x, y, z]`` world point.
        :return: ``True`` if inside (boundary included).
        """
        local = np.asarray(point, dtype=float) - self.center
        c, s = math.cos(self.rotation_z), math.sin(self.rotation_z)
        along = c * local[0] + s * local[1]
        across = -s * local[0] + c * local[1]
        length, thickness, depth = self.size
        return (
            abs(along) <= length / 2.0
            and abs(across) <= thickness / 2.0
            and abs(local[2]) <= depth / 2.0
        )


@dataclass
class EdgeGeometry:
    """
    Everything needed to render one edge.

    :param start: Trimmed line start.
    :param end: Trimmed line end.
    :param width: Line width, ``0.1 + 3 * strength``.
    :param color: Line colour.
    :param opacity: Line opacity.
    :param relationship: Relationship of the edge.
    :param strength: Strength of the edge.
    :param arrow: Arrowhead, or ``None`` for non-causal edges.
    :param hitbox: Tooltip hit-box.
    """

    start: np.ndarray
    end: np.ndarray
    width: float
    color: str
    opacity: float
    relationship: str
    strength: float
    arrow: ArrowGeometry | None
    hitbox: HitBox


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def line_width(strength: float) -> float:
    """Map strength in ``[0, 1]`` to a line width in ``[0.1, 3.1]``."""
    return 0.1 + strength * 3


def edge_style(relationship: str) -> EdgeStyle:
    """
    Return the style for *relationship*.

    Unknown relationships are logged and get the default style.

    :param relationship: ``causal``, ``correlated`` or ``inhibitory``.
    :return: :class:`EdgeStyle`.
    """
    if relationship == REL_CAUSAL:
        return EdgeStyle(color=DEFAULT_COLOR, arrow=True)
    if relationship == REL_CORRELATED:
        return EdgeStyle(color=DEFAULT_COLOR, arrow=False)
    if relationship == REL_INHIBITORY:
        return EdgeStyle(color=INHIBITORY_COLOR, arrow=False)
    logger.error("Unknown relationship type %r", relationship)
    return EdgeStyle()


def unit_direction(source: np.ndarray, target: np.ndarray) -> np.ndarray:
    """
    Unit vector from *source* to *target*; the zero vector if they coincide.
    """
    direction = target - source
    length = float(np.linalg.norm(direction))
    if length == 0.0:
        return np.zeros(3)
    return direction / length


def quaternion_from_unit_vectors(v_from: np.ndarray, v_to: np.ndarray) -> np.ndarray:
    """
    Shortest-arc rotation taking unit vector *v_from* onto *v_to*.

    Opposite vectors rotate by π about an axis perpendicular to *v_from*.

    :param v_from: Unit start vector.
    :param v_to: Unit end vector.
    :return: Normalised ``(x, y, z, w)`` quaternion.
    """
    r = float(np.dot(v_from, v_to)) + 1.0
    if r < 1e-8:
        if abs(v_from[0]) > abs(v_from[2]):
            q = np.array([-v_from[1], v_from[0], 0.0, 0.0])
        else:
            q = np.array([0.0, -v_from[2], v_from[1], 0.0])
    else:
        axis = np.cross(v_from, v_to)
        q = np.array([axis[0], axis[1], axis[2], r])
    return q / np.linalg.norm(q)


def edge_tooltip(relationship: str, strength: float) -> str:
    return f"Relationship: {relationship}\nStrength: {strength}"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def build_edge_geometry(
    source_position,
    target_position,
    relationship: str,
    strength: float,
    is_dimmed: bool = False,
    *,
    node_radius: float = NODE_RADIUS,
    arrow_offset: float = ARROW_OFFSET,
) -> EdgeGeometry | None:
    """
    Build render geometry for one edge.

    :param source_position: Source node ``[x, y, z]``, or ``None``.
    :param target_position: Target node ``[x, y, z]``, or ``None``.
    :param relationship: Edge relationship.
    :param strength: Edge strength in ``[0, 1]``.
    :param is_dimmed: Render at reduced opacity.
    :param node_radius: Distance trimmed from each end of the line.
    :param arrow_offset: Distance of the arrowhead back from the target node.
    :return: :class:`EdgeGeometry`, or ``None`` if an endpoint is missing.
    """
    if source_position is None or target_position is None:
        logger.error(
            "Invalid source or target position for edge: source=%s target=%s",
            source_position,
            target_position,
        )
        return None

    source = np.asarray(source_position, dtype=float)
    target = np.asarray(target_position, dtype=float)
    style = edge_style(relationship)
    opacity = DIMMED_OPACITY if is_dimmed else 1.0

    delta = target - source
    direction = unit_direction(source, target)
    arrow_point = target - direction * arrow_offset

    arrow = None
    if style.arrow:
        arrow = ArrowGeometry(
            position=arrow_point,
            quaternion=quaternion_from_unit_vectors(_UP, direction),
            direction=direction,
            radius=ARROW_RADIUS,
            height=ARROW_HEIGHT,
            opacity=opacity,
        )

    hitbox = HitBox(
        center=arrow_point,
        size=(float(np.linalg.norm(delta)), HITBOX_THICKNESS, HITBOX_THICKNESS),
        rotation_z=math.atan2(delta[1], delta[0]),
        tooltip=edge_tooltip(relationship, strength),
    )

    return EdgeGeometry(
        start=source + direction * node_radius,
        end=target - direction * node_radius,
        width=line_width(strength),
        color=style.color,
        opacity=opacity,
        relationship=relationship,
        strength=strength,
        arrow=arrow,
        hitbox=hitbox,
    )
