"""
viz3d.py — Interactive 3-D rendering of causal graphs using PyVista.

:class:`DiagramViewer` draws a :class:`~causalviz.diagram.CausalDiagram`
into a PyVista plotter and routes window events back into it:

- node spheres coloured by category, edge lines, arrow cones on causal edges;
- mouse-over a node highlights it and its causal neighbours, left-click
  toggles the full causal path, ``c`` clears the click;
- mouse-over an edge's hit-box shows its relationship and strength;
- camera gestures are mirrored into the diagram's camera controller (and
  from there into the preset view-model);
- ``1``–``9`` load stored presets, ``s`` saves the current view.

:func:`launch` is the entry point used by ``causalviz-3d``.
"""

from __future__ import annotations

import logging
import math
import sys
from pathlib import Path
from typing import Any

from causalviz.diagram import CausalDiagram
from causalviz.preset_api import PresetAPI, PresetAPIError
from causalviz.presets import PresetStore, save_current_view

logger = logging.getLogger(__name__)


class DiagramViewer:
    """
    Binds a :class:`CausalDiagram` to a PyVista plotter.

    :param diagram: Diagram to render.
    :param plotter: ``pyvista.Plotter`` (or compatible) instance.
    :param presets: Preset view-model bound to the diagram, if any.
    :param api: Persistence API for saving presets from the window.
    :param save_name: Preset name used by the ``s`` key.
    :param uid: Acting user's UID for the access policy.
    :param email: Acting user's email for the access policy.
    """

    def __init__(
        self,
        diagram: CausalDiagram,
        plotter: Any,
        *,
        presets: PresetStore | None = None,
        api: PresetAPI | None = None,
        save_name: str | None = None,
        uid: str | None = None,
        email: str | None = None,
    ) -> None:
        import pyvista as pv

        self.pv = pv
        self.diagram = diagram
        self.plotter = plotter
        self.presets = presets
        self.api = api
        self.save_name = save_name
        self.uid = uid
        self.email = email
        self._actor_names: set[str] = set()
        self._pushing_camera = False
        self._edge_tooltip: str | None = None

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def draw(self) -> None:
        """(Re)draw all nodes and visible edges; stale actors are removed."""
        pv = self.pv
        pl = self.plotter
        names: set[str] = set()

        for props in self.diagram.node_props():
            name = f"node:{props.id}"
            radius = self.diagram.config.sphere_radius * props.scale
            sphere = pv.Sphere(radius=radius, center=props.position)
            pl.add_mesh(
                sphere,
                color=props.color,
                opacity=props.opacity,
                name=name,
                pickable=True,
            )
            names.add(name)

        for props in self.diagram.edge_props():
            geom = props.geometry
            edge = props.edge
            name = f"edge:{edge.key}:{edge.relationship}"
            pl.add_mesh(
                pv.Line(geom.start, geom.end),
                color=geom.color,
                opacity=geom.opacity,
                line_width=geom.width,
                name=name,
                pickable=False,
            )
            names.add(name)
            if geom.arrow is not None:
                arrow = geom.arrow
                cone = pv.Cone(
                    center=arrow.position,
                    direction=arrow.direction,
                    height=arrow.height,
                    radius=arrow.radius,
                )
                pl.add_mesh(
                    cone,
                    color=geom.color,
                    opacity=arrow.opacity,
                    name=name + ":arrow",
                    pickable=False,
                )
                names.add(name + ":arrow")

        for stale in self._actor_names - names:
            pl.remove_actor(stale)
        self._actor_names = names

        self._draw_tooltip()

    def _draw_tooltip(self) -> None:
        hovered = self.diagram.interaction.hovered_node_id
        text = self._edge_tooltip or ""
        if hovered is not None:
            for props in self.diagram.node_props():
                if props.id == hovered:
                    text = props.tooltip
                    break
        self.plotter.add_text(text, position="upper_left", font_size=10, name="tooltip")

    def redraw(self) -> None:
        self.draw()
        self.plotter.render()

    # ------------------------------------------------------------------
    # Camera sync
    # ------------------------------------------------------------------

    def push_camera(self) -> None:
        """Copy the controller's pose into the PyVista camera."""
        cam = self.diagram.camera.camera
        target = self.diagram.camera.controls.target
        pv_cam = self.plotter.camera
        self._pushing_camera = True
        try:
            pv_cam.position = tuple(float(v) for v in cam.position)
            pv_cam.focal_point = tuple(float(v) for v in target)
            pv_cam.up = (0.0, 1.0, 0.0)
            pv_cam.roll = math.degrees(cam.roll)
            pv_cam.view_angle = cam.fov
            pv_cam.clipping_range = (cam.near, cam.far)
        finally:
            self._pushing_camera = False

    def pull_camera(self) -> None:
        """Copy the PyVista camera pose into the controller and publish it."""
        if self._pushing_camera:
            return
        pv_cam = self.plotter.camera
        ctrl = self.diagram.camera
        ctrl.camera.position = self._array(pv_cam.position)
        ctrl.camera.roll = math.radians(pv_cam.roll)
        ctrl.controls.target = self._array(pv_cam.focal_point)
        ctrl.controls.sync_from_camera()
        ctrl.on_change()

    @staticmethod
    def _array(values):
        import numpy as np

        return np.asarray(values, dtype=float)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _on_start(self, *_: object) -> None:
        self.diagram.camera.on_start()

    def _on_end(self, *_: object) -> None:
        self.diagram.camera.on_end()
        self.pull_camera()

    def _on_interaction(self, *_: object) -> None:
        self.pull_camera()

    def _on_move(self, *_: object) -> None:
        """Hover the node under the pointer, else show the edge tooltip there."""
        if self.diagram.camera.is_interacting:
            return
        point = self.plotter.pick_mouse_position()
        node_id = self.diagram.node_at(point) if point is not None else None
        edge_tooltip = None
        if node_id is None and point is not None:
            hit = self.diagram.edge_at(point)
            edge_tooltip = hit.geometry.hitbox.tooltip if hit is not None else None

        current = self.diagram.interaction.hovered_node_id
        if node_id == current and edge_tooltip == self._edge_tooltip:
            return
        self._edge_tooltip = edge_tooltip
        if node_id != current:
            if node_id is None:
                self.diagram.pointer_out()
            else:
                self.diagram.pointer_over(node_id)
        self.redraw()

    def _on_pick(self, point) -> None:
        node_id = self.diagram.node_at(point) if point is not None else None
        if node_id is None:
            self.diagram.canvas_click()
        else:
            self.diagram.click(node_id)
        self.redraw()

    def _on_clear(self) -> None:
        self.diagram.canvas_click()
        self.redraw()

    def _load_preset(self, index: int) -> None:
        if self.presets is None:
            return
        presets = self.presets.presets
        if index >= len(presets):
            return
        self.presets.load_preset(presets[index])
        print(f"Loaded preset: {presets[index].name}", file=sys.stderr)
        self.push_camera()
        self.plotter.render()

    def _save_preset(self) -> None:
        if self.presets is None or self.api is None or not self.save_name:
            print("Preset saving needs --db, --graph-id and --save-as", file=sys.stderr)
            return
        try:
            preset = save_current_view(
                self.presets, self.api, self.save_name, uid=self.uid, email=self.email
            )
        except (ValueError, PermissionError, PresetAPIError) as exc:
            print(f"ERROR: failed to save preset: {exc}", file=sys.stderr)
            return
        print(f"Saved preset: {preset.name}", file=sys.stderr)

    def attach(self) -> None:
        """Register observers, picking and key bindings on the plotter."""
        pl = self.plotter
        pl.iren.add_observer("StartInteractionEvent", self._on_start)
        pl.iren.add_observer("InteractionEvent", self._on_interaction)
        pl.iren.add_observer("EndInteractionEvent", self._on_end)
        pl.iren.add_observer("MouseMoveEvent", self._on_move)
        pl.enable_point_picking(
            callback=self._on_pick,
            use_picker=False,
            left_clicking=True,
            show_message=False,
            show_point=False,
        )
        pl.add_key_event("c", self._on_clear)
        pl.add_key_event("s", self._save_preset)
        for i in range(9):
            pl.add_key_event(str(i + 1), lambda i=i: self._load_preset(i))


def launch(
    graph_path: str,
    *,
    timestamp: float | None = None,
    db_path: str | None = None,
    graph_id: str | None = None,
    preset_name: str | None = None,
    save_name: str | None = None,
    uid: str | None = None,
    email: str | None = None,
    width: int = 1400,
    height: int = 900,
    export_html: str | None = None,
    export_png: str | None = None,
) -> None:
    """
    Launch the 3D causal-graph viewer.

    :param graph_path: Path to the graph JSON document.
    :param timestamp: Timestamp to show for timestamped documents.
    :param db_path: SQLite preset database (optional).
    :param graph_id: Graph ID whose presets to use (requires *db_path*).
    :param preset_name: Preset to apply on startup.
    :param save_name: Name used when saving the current view with ``s``.
    :param uid: Acting user's UID.
    :param email: Acting user's email.
    :param width: Window width in pixels (default: 1400).
    :param height: Window height in pixels (default: 900).
    :param export_html: If provided, export to HTML file instead of launching GUI.
    :param export_png: If provided, export to PNG file instead of launching GUI.
    """
    try:
        import pyvista as pv
    except ImportError:
        print(
            "ERROR: PyVista is not installed.\n"
            "Install visualization support with: pip install 'causalviz[viz3d]'",
            file=sys.stderr,
        )
        sys.exit(1)

    from causalviz.graph_data import load_graph_data
    from causalviz.preset_api import SQLitePresetAPI

    graph = load_graph_data(Path(graph_path), timestamp=timestamp)
    if not graph.nodes:
        print("WARNING: No nodes found in the graph file", file=sys.stderr)
        return
    print(f"Loaded {len(graph.nodes)} nodes and {len(graph.edges)} edges", file=sys.stderr)

    api = None
    store = PresetStore()
    if db_path and graph_id:
        api = SQLitePresetAPI(db_path)
        store.set_graph(api.graph(graph_id))
        if store.graph is None:
            print(f"WARNING: graph {graph_id!r} not found in {db_path}", file=sys.stderr)

    try:
        diagram = CausalDiagram(presets=store)
        diagram.load(graph)

        pl = pv.Plotter(window_size=(width, height), off_screen=bool(export_html or export_png))
        viewer = DiagramViewer(
            diagram, pl, presets=store, api=api, save_name=save_name, uid=uid, email=email
        )
        viewer.draw()

        if preset_name:
            preset = store.graph.preset(preset_name) if store.graph else None
            if preset is None:
                print(f"WARNING: preset {preset_name!r} not found", file=sys.stderr)
            else:
                store.load_preset(preset)
        viewer.push_camera()

        title = Path(graph_path).stem
        if graph.timestamp is not None:
            title += f" ({graph.time_unit} {graph.timestamp})"
        pl.add_title(f"causalviz: {title}")

        if export_html:
            print(f"Exporting to HTML: {export_html}", file=sys.stderr)
            pl.export_html(str(export_html))
        elif export_png:
            print(f"Exporting to PNG: {export_png}", file=sys.stderr)
            pl.screenshot(str(export_png))
        else:
            print("Launching interactive 3D viewer...", file=sys.stderr)
            viewer.attach()
            pl.show()
    finally:
        if api is not None:
            api.close()
