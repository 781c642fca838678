"""
camera.py — Camera and orbit-control model with preset application.

:class:`OrbitControls` keeps the camera on a sphere around a target point,
described by a radius, a polar angle (measured from +Y) and an azimuthal
angle (measured about +Y from +Z).  :class:`CameraController` bridges user
gestures and presets to that model:

- **Auto-fit** — when the node layout changes, the camera is placed on +Z
  from the centre of the nodes' bounding box at ``1.5 ×`` its largest extent
  and aimed at the centre.
- **Distance bounds** — user zoom is clamped to
  ``[10, max(2000, 10 × node_count)]``.
- **Live state** — every change event publishes a
  :class:`~causalviz.primitives.ViewPosition` to subscribers.
- **Presets** — applying a view sets the camera position exactly and, when
  an orientation is given, the polar angle, azimuthal angle and roll
  exactly.  The orbit target moves to stay consistent with the pose, so
  applying the same view twice gives the same pose.
- **Interaction flag** — gesture start/end toggles ``is_interacting``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

import numpy as np

from causalviz.primitives import Orientation, Preset, ViewPosition

logger = logging.getLogger(__name__)

MIN_DISTANCE = 10.0
BASE_MAX_DISTANCE = 2000.0
DISTANCE_PER_NODE = 10.0
FIT_OFFSET = 1.5

BASE_FAR_PLANE = 5000.0
FAR_PLANE_PER_NODE = 20.0

_EPS = 1e-6

ViewListener = Callable[[ViewPosition], None]


def max_distance_for(node_count: int) -> float:
    """Largest allowed zoom-out distance for a graph of *node_count* nodes."""
    return max(BASE_MAX_DISTANCE, node_count * DISTANCE_PER_NODE)


def far_plane_for(node_count: int) -> float:
    """Far clipping plane for a graph of *node_count* nodes."""
    return max(BASE_FAR_PLANE, node_count * FAR_PLANE_PER_NODE)


def bounding_box(positions: Mapping[str, np.ndarray]) -> tuple[np.ndarray, np.ndarray]:
    """
    Axis-aligned bounding box of all positions.

    :param positions: Mapping from node ID to ``[x, y, z]``; must be non-empty.
    :return: ``(min_corner, max_corner)``.
    """
    pts = np.vstack([np.asarray(p, dtype=float) for p in positions.values()])
    return pts.min(axis=0), pts.max(axis=0)


# ---------------------------------------------------------------------------
# Camera
# ---------------------------------------------------------------------------


@dataclass
class PerspectiveCamera:
    """
    Minimal perspective camera state.

    :param position: Camera position.
    :param roll: Rotation about the viewing axis, radians.
    :param fov: Vertical field of view, degrees.
    :param near: Near clipping plane.
    :param far: Far clipping plane.
    """

    position: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 100.0]))
    roll: float = 0.0
    fov: float = 50.0
    near: float = 0.1
    far: float = BASE_FAR_PLANE


# ---------------------------------------------------------------------------
# OrbitControls
# ---------------------------------------------------------------------------


class OrbitControls:
    """
    Orbit/pan/zoom controls around a target point.

    The spherical coordinates are the source of truth for the angles; the
    camera position is written from them on every gesture.

    :param camera: Camera being controlled.
    :param target: Point the camera orbits and looks at.
    :param min_distance: Smallest zoom-in distance.
    :param max_distance: Largest zoom-out distance.
    """

    def __init__(
        self,
        camera: PerspectiveCamera,
        target=(0.0, 0.0, 0.0),
        min_distance: float = MIN_DISTANCE,
        max_distance: float = BASE_MAX_DISTANCE,
    ) -> None:
        self.camera = camera
        self.target = np.asarray(target, dtype=float)
        self.min_distance = min_distance
        self.max_distance = max_distance
        self.radius = 0.0
        self.polar = 0.0
        self.azimuth = 0.0
        self.sync_from_camera()

    # ------------------------------------------------------------------
    # Spherical <-> Cartesian
    # ------------------------------------------------------------------

    @staticmethod
    def offset_from_spherical(radius: float, polar: float, azimuth: float) -> np.ndarray:
        sin_polar = math.sin(polar)
        return np.array([
            radius * sin_polar * math.sin(azimuth),
            radius * math.cos(polar),
            radius * sin_polar * math.cos(azimuth),
        ])

    def sync_from_camera(self) -> None:
        """Recompute radius and angles from the camera position and target."""
        offset = self.camera.position - self.target
        self.radius = float(np.linalg.norm(offset))
        if self.radius == 0.0:
            self.polar = 0.0
            self.azimuth = 0.0
            return
        self.azimuth = math.atan2(offset[0], offset[2])
        self.polar = math.acos(min(max(offset[1] / self.radius, -1.0), 1.0))

    def _write_camera(self) -> None:
        self.camera.position = self.target + self.offset_from_spherical(
            self.radius, self.polar, self.azimuth
        )

    # ------------------------------------------------------------------
    # Angles
    # ------------------------------------------------------------------

    def get_polar_angle(self) -> float:
        return self.polar

    def get_azimuthal_angle(self) -> float:
        return self.azimuth

    def get_distance(self) -> float:
        return self.radius

    def set_polar_angle(self, value: float) -> None:
        """Orbit to polar angle *value*, keeping target and distance."""
        self.polar = value
        self._write_camera()

    def set_azimuthal_angle(self, value: float) -> None:
        """Orbit to azimuthal angle *value*, keeping target and distance."""
        self.azimuth = value
        self._write_camera()

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    def rotate(self, d_azimuth: float, d_polar: float) -> None:
        """Orbit by the given angle deltas; polar stays strictly inside (0, π)."""
        self.azimuth += d_azimuth
        self.polar = min(max(self.polar + d_polar, _EPS), math.pi - _EPS)
        self._write_camera()

    def dolly(self, scale: float) -> None:
        """Multiply the orbit distance by *scale*, clamped to the distance bounds."""
        self.radius = min(max(self.radius * scale, self.min_distance), self.max_distance)
        self._write_camera()

    def pan(self, delta) -> None:
        """Translate camera and target together by *delta*."""
        delta = np.asarray(delta, dtype=float)
        self.target = self.target + delta
        self.camera.position = self.camera.position + delta


# ---------------------------------------------------------------------------
# CameraController
# ---------------------------------------------------------------------------


class CameraController:
    """
    Auto-fit, live state publishing and preset application for one diagram.

    Listeners registered with :meth:`subscribe` receive a
    :class:`~causalviz.primitives.ViewPosition` on every change event.

    :param camera: Camera to control (a default one is created if omitted).
    :param min_distance: Smallest zoom-in distance.
    """

    def __init__(
        self,
        camera: PerspectiveCamera | None = None,
        min_distance: float = MIN_DISTANCE,
    ) -> None:
        self.camera = camera or PerspectiveCamera()
        self.controls = OrbitControls(self.camera, min_distance=min_distance)
        self.is_interacting = False
        self.node_count = 0
        self._listeners: list[ViewListener] = []

    # ------------------------------------------------------------------
    # Publish / subscribe
    # ------------------------------------------------------------------

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """
        Register *listener* for live camera state.

        :param listener: Called with a :class:`ViewPosition` on each change.
        :return: A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def camera_state(self) -> ViewPosition:
        """Current pose as a :class:`ViewPosition`."""
        x, y, z = (float(v) for v in self.camera.position)
        return ViewPosition(
            x=x,
            y=y,
            z=z,
            orientation=Orientation(
                pitch=self.controls.get_polar_angle(),
                yaw=self.controls.get_azimuthal_angle(),
                roll=self.camera.roll,
            ),
        )

    def on_change(self) -> None:
        """Publish the current state to every listener."""
        state = self.camera_state()
        for listener in list(self._listeners):
            listener(state)

    def on_start(self) -> None:
        self.is_interacting = True

    def on_end(self) -> None:
        self.is_interacting = False

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    def rotate(self, d_azimuth: float, d_polar: float) -> None:
        self.controls.rotate(d_azimuth, d_polar)
        self.on_change()

    def dolly(self, scale: float) -> None:
        self.controls.dolly(scale)
        self.on_change()

    def pan(self, delta) -> None:
        self.controls.pan(delta)
        self.on_change()

    # ------------------------------------------------------------------
    # Layout-driven framing
    # ------------------------------------------------------------------

    def update_bounds(self, node_count: int) -> None:
        """Scale the zoom-out bound and far plane with the graph size."""
        self.node_count = node_count
        self.controls.max_distance = max_distance_for(node_count)
        self.camera.far = far_plane_for(node_count)

    def auto_fit(self, positions: Mapping[str, np.ndarray]) -> bool:
        """
        Frame all *positions*.

        The camera moves to ``centre + (0, 0, 1.5 × max(w, h, d))`` and looks
        at the box centre; roll is reset.  A degenerate box (single node)
        falls back to the minimum distance.

        :param positions: Mapping from node ID to ``[x, y, z]``.
        :return: ``False`` when there is nothing to frame.
        """
        if not positions:
            return False

        lo, hi = bounding_box(positions)
        center = (lo + hi) / 2.0
        distance = float(np.max(hi - lo)) * FIT_OFFSET
        if distance <= 0.0:
            distance = self.controls.min_distance

        self.camera.position = center + np.array([0.0, 0.0, distance])
        self.camera.roll = 0.0
        self.controls.target = center
        self.controls.sync_from_camera()
        logger.debug("Auto-fit: center=%s distance=%.2f", center, distance)
        self.on_change()
        return True

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    def apply_view(self, view: ViewPosition | None) -> bool:
        """
        Move the camera to *view*.

        The position is set exactly.  With an orientation, polar angle, azimuth
        and roll are set exactly and the orbit target is placed so that the
        pose is consistent; without one, the current target is kept.

        :param view: Pose to apply; ``None`` is ignored.
        :return: ``True`` if the camera moved.
        """
        if view is None:
            return False

        position = np.array([view.x, view.y, view.z], dtype=float)
        controls = self.controls

        if view.orientation is not None:
            radius = float(np.linalg.norm(position - controls.target))
            radius = min(max(radius, controls.min_distance), controls.max_distance)
            controls.radius = radius
            controls.polar = view.orientation.pitch
            controls.azimuth = view.orientation.yaw
            controls.target = position - controls.offset_from_spherical(
                radius, controls.polar, controls.azimuth
            )
            self.camera.position = position
            self.camera.roll = view.orientation.roll
        else:
            self.camera.position = position
            controls.sync_from_camera()

        self.on_change()
        return True

    def apply_preset(self, preset: Preset | None) -> bool:
        """Apply ``preset.view`` if the preset has one."""
        if preset is None or preset.view is None:
            return False
        logger.info("Applying preset %r", preset.name)
        return self.apply_view(preset.view)
