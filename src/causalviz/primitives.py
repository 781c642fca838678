"""
primitives.py — Core data types for the causalviz 3-D causal-graph engine.

Defines the Node, Edge, ViewPosition, Preset and Graph dataclasses, the
relationship constants, the ``edge_key()`` constructor, and the dict
(de)serialisation used by the graph document and the preset persistence API.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone


# ---------------------------------------------------------------------------
# Relationship constants
# ---------------------------------------------------------------------------

REL_CAUSAL = "causal"
REL_CORRELATED = "correlated"
REL_INHIBITORY = "inhibitory"

ALL_RELATIONSHIPS = (REL_CAUSAL, REL_CORRELATED, REL_INHIBITORY)


def edge_key(source: str, target: str) -> str:
    """
    Build the key identifying an edge in highlight sets.

    Examples::

        edge_key("rain", "wet_grass")  → "rain-wet_grass"

    :param source: Source node ID.
    :param target: Target node ID.
    :return: ``"<source>-<target>"``.
    """
    return f"{source}-{target}"


# ---------------------------------------------------------------------------
# Node / Edge
# ---------------------------------------------------------------------------


@dataclass
class Node:
    """
    A node of the causal graph.

    :param id: Unique node identifier.
    :param label: Display label.
    :param value: Numeric value shown in the tooltip.
    :param category: Category used for ring placement and colour.
    """

    id: str
    label: str
    value: float
    category: str

    @classmethod
    def from_dict(cls, d: dict) -> Node:
        """
        Construct from a graph-document node dict.

        :param d: Dict with keys ``id``, ``label``, ``value``, ``category``.
        :return: New :class:`Node`.
        """
        return cls(id=d["id"], label=d["label"], value=d["value"], category=d["category"])

    def to_dict(self) -> dict:
        """Serialise to a plain dict."""
        return {"id": self.id, "label": self.label, "value": self.value, "category": self.category}


@dataclass
class Edge:
    """
    A directed edge of the causal graph.

    :param source: Source node ID.
    :param target: Target node ID.
    :param relationship: ``causal``, ``correlated`` or ``inhibitory``.
    :param strength: Edge strength in ``[0, 1]``.
    """

    source: str
    target: str
    relationship: str
    strength: float

    @property
    def key(self) -> str:
        """Highlight-set key, see :func:`edge_key`."""
        return edge_key(self.source, self.target)

    @property
    def is_causal(self) -> bool:
        return self.relationship == REL_CAUSAL

    @classmethod
    def from_dict(cls, d: dict) -> Edge:
        """
        Construct from a graph-document edge dict.

        :param d: Dict with keys ``source``, ``target``, ``relationship``, ``strength``.
        :return: New :class:`Edge`.
        """
        return cls(
            source=d["source"],
            target=d["target"],
            relationship=d["relationship"],
            strength=d["strength"],
        )

    def to_dict(self) -> dict:
        """Serialise to a plain dict."""
        return {
            "source": self.source,
            "target": self.target,
            "relationship": self.relationship,
            "strength": self.strength,
        }


# ---------------------------------------------------------------------------
# Camera pose
# ---------------------------------------------------------------------------


@dataclass
class Orientation:
    """
    Camera orientation in radians.

    :param pitch: Polar angle of the orbit controls (vertical rotation).
    :param yaw: Azimuthal angle of the orbit controls (horizontal rotation).
    :param roll: Camera rotation about its viewing axis.
    """

    pitch: float
    yaw: float
    roll: float

    @classmethod
    def from_dict(cls, d: dict) -> Orientation:
        return cls(pitch=float(d["pitch"]), yaw=float(d["yaw"]), roll=float(d["roll"]))

    def to_dict(self) -> dict:
        return {"pitch": self.pitch, "yaw": self.yaw, "roll": self.roll}


@dataclass
class ViewPosition:
    """
    Exact camera pose: position plus optional orientation.

    ``orientation`` is ``None`` only for default or unset views.

    :param x: Camera X position.
    :param y: Camera Y position.
    :param z: Camera Z position.
    :param orientation: Pitch/yaw/roll, or ``None``.
    :raises ValueError: If any numeric field is not finite.
    """

    x: float
    y: float
    z: float
    orientation: Orientation | None = None

    def __post_init__(self) -> None:
        values = [self.x, self.y, self.z]
        if self.orientation is not None:
            values += [self.orientation.pitch, self.orientation.yaw, self.orientation.roll]
        if not all(math.isfinite(v) for v in values):
            raise ValueError(f"ViewPosition fields must be finite, got {self!r}")

    @property
    def position(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @classmethod
    def from_dict(cls, d: dict) -> ViewPosition:
        """
        Construct from a wire dict ``{x, y, z, orientation}``.

        :param d: View dict; ``orientation`` may be missing or ``None``.
        :return: New :class:`ViewPosition`.
        """
        orientation = d.get("orientation")
        return cls(
            x=float(d["x"]),
            y=float(d["y"]),
            z=float(d["z"]),
            orientation=Orientation.from_dict(orientation) if orientation else None,
        )

    def to_dict(self) -> dict:
        """Serialise to a plain dict."""
        return {
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "orientation": self.orientation.to_dict() if self.orientation else None,
        }


# ---------------------------------------------------------------------------
# Preset / Graph
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str | dict | datetime | None) -> datetime:
    """
    Accept ISO-8601 strings and server timestamp objects.

    Timestamp objects come as ``{"seconds", "nanoseconds"}`` or, from the
    admin SDK, ``{"_seconds", "_nanoseconds"}``.
    """
    if value is None:
        return _utcnow()
    if isinstance(value, datetime):
        return value
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            raise ValueError(f"Unrecognised timestamp object: {value!r}")
        nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
        return datetime.fromtimestamp(seconds + nanos / 1e9, timezone.utc)
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


@dataclass
class Preset:
    """
    A named camera snapshot attached to a graph.

    Identity is ``name``: saving a preset with an existing name replaces it.

    :param name: Preset name, unique per graph.
    :param updated: Time of the last save (timezone-aware).
    :param filters: Optional filter metadata.
    :param pathways: Optional pathway metadata.
    :param view: Captured camera pose, or ``None``.
    """

    name: str
    updated: datetime = field(default_factory=_utcnow)
    filters: list[str] | None = None
    pathways: list[str] | None = None
    view: ViewPosition | None = None

    def copy(self) -> Preset:
        """Return a deep copy, so later edits do not leak into stored presets."""
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, d: dict) -> Preset:
        """
        Construct from a wire dict.

        :param d: Dict with ``name`` and optional ``updated`` (ISO-8601 or a
            ``{seconds, nanoseconds}`` timestamp object),
            ``filters``, ``pathways``, ``view``.
        :return: New :class:`Preset`.
        """
        view = d.get("view")
        return cls(
            name=d["name"],
            updated=_parse_timestamp(d.get("updated")),
            filters=list(d["filters"]) if d.get("filters") is not None else None,
            pathways=list(d["pathways"]) if d.get("pathways") is not None else None,
            view=ViewPosition.from_dict(view) if view else None,
        )

    def to_dict(self) -> dict:
        """Serialise to a plain dict (``updated`` as ISO-8601)."""
        return {
            "name": self.name,
            "updated": self.updated.isoformat(),
            "filters": self.filters,
            "pathways": self.pathways,
            "view": self.view.to_dict() if self.view else None,
        }


@dataclass
class Graph:
    """
    The graph aggregate that owns presets.

    Only the fields used by the preset flow are modelled.

    :param id: Graph document ID.
    :param owner: UID of the owning user.
    :param name: Display name.
    :param shared_emails: Emails with shared access.
    :param presets: Saved camera presets, in insertion order.
    """

    id: str
    owner: str
    name: str = ""
    shared_emails: list[str] = field(default_factory=list)
    presets: list[Preset] = field(default_factory=list)

    def preset(self, name: str) -> Preset | None:
        """
        Look up a preset by name.

        :param name: Preset name.
        :return: The preset or ``None``.
        """
        for p in self.presets:
            if p.name == name:
                return p
        return None

    @classmethod
    def from_dict(cls, d: dict) -> Graph:
        return cls(
            id=d["id"],
            owner=d["owner"],
            name=d.get("name", ""),
            shared_emails=list(d.get("shared_emails") or []),
            presets=[Preset.from_dict(p) for p in d.get("presets") or []],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner": self.owner,
            "name": self.name,
            "shared_emails": list(self.shared_emails),
            "presets": [p.to_dict() for p in self.presets],
        }
