"""
cli.py — Command-line entry points for causalviz.

Commands
--------
causalviz-3d       Open the interactive 3D viewer (see :mod:`causalviz.causalviz_3d`).
causalviz-layout   Print the computed layout of a graph document as JSON.
causalviz-preset   List, save, delete camera presets in the preset database.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from causalviz.causalviz_3d import DEFAULT_DB


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# ---------------------------------------------------------------------------
# causalviz-3d
# ---------------------------------------------------------------------------


def viz3d_main(argv: list | None = None) -> None:
    """
    CLI entry point: ``causalviz-3d``.

    Argument parsing is handled by :mod:`causalviz.causalviz_3d`.
    """
    from causalviz.causalviz_3d import main as viz3d_main_func

    viz3d_main_func(argv)


# ---------------------------------------------------------------------------
# causalviz-layout
# ---------------------------------------------------------------------------


def _layout_args(argv: list | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="causalviz-layout",
        description="Compute the 3D category-ring layout of a causal graph and print it as JSON.",
    )
    p.add_argument("graph", help="Graph JSON document")
    p.add_argument(
        "--timestamp", type=float, default=None,
        help="Timestamp to lay out for timestamped documents (default: first)",
    )
    p.add_argument(
        "--output", "-o", default=None, metavar="FILE",
        help="Write JSON to FILE instead of stdout",
    )
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def layout_main(argv: list | None = None) -> None:
    """
    CLI entry point: ``causalviz-layout``.

    :param argv: Argument list; defaults to ``sys.argv[1:]``.
    """
    args = _layout_args(argv)
    _configure_logging(args.verbose)

    from causalviz.diagram import CausalDiagram
    from causalviz.graph_data import load_graph_data

    try:
        graph = load_graph_data(args.graph, timestamp=args.timestamp)
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    diagram = CausalDiagram()
    diagram.load(graph)
    result = {
        "nodes": [
            {
                "id": p.id,
                "category": p.category,
                "color": p.color,
                "position": [float(v) for v in p.position],
            }
            for p in diagram.node_props()
        ],
        "camera": diagram.camera.camera_state().to_dict(),
        "declutter": not (
            diagram.edge_filter.show_causal
            or diagram.edge_filter.show_correlated
            or diagram.edge_filter.show_inhibitory
        ),
    }
    text = json.dumps(result, indent=2)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        print(f"Layout written to {args.output}", file=sys.stderr)
    else:
        print(text)


# ---------------------------------------------------------------------------
# causalviz-preset
# ---------------------------------------------------------------------------


def _preset_args(argv: list | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="causalviz-preset",
        description="Manage camera presets stored in the causalviz preset database.",
    )
    p.add_argument(
        "--db", default=DEFAULT_DB,
        help=f"Preset database path (default: {DEFAULT_DB}, env CAUSALVIZ_DB)",
    )
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    reg = sub.add_parser("register", help="Create or update a graph record")
    reg.add_argument("graph_id")
    reg.add_argument("--owner", required=True, help="Owner UID")
    reg.add_argument("--name", default="", help="Graph display name")
    reg.add_argument("--share", action="append", default=[], metavar="EMAIL",
                     help="Email with shared access (repeatable)")

    ls = sub.add_parser("list", help="List presets of a graph")
    ls.add_argument("graph_id")
    ls.add_argument("--json", action="store_true", help="Print JSON")

    save = sub.add_parser("save", help="Save a camera view as a preset")
    save.add_argument("graph_id")
    save.add_argument("name")
    for axis in ("x", "y", "z"):
        save.add_argument(f"--{axis}", type=float, required=True)
    for angle in ("pitch", "yaw", "roll"):
        save.add_argument(f"--{angle}", type=float, default=None)
    save.add_argument("--uid", required=True, help="Acting user UID")
    save.add_argument("--email", default=None, help="Acting user email")

    rm = sub.add_parser("delete", help="Delete a preset")
    rm.add_argument("graph_id")
    rm.add_argument("name")
    rm.add_argument("--uid", required=True, help="Acting user UID")
    rm.add_argument("--email", default=None, help="Acting user email")
    return p.parse_args(argv)


def _format_preset(preset) -> str:
    line = f"{preset.name}  (updated {preset.updated:%Y-%m-%d %H:%M})"
    view = preset.view
    if view is None:
        return line
    line += f"\n  position    X: {view.x:.2f}  Y: {view.y:.2f}  Z: {view.z:.2f}"
    if view.orientation is not None:
        o = view.orientation
        line += f"\n  orientation pitch: {o.pitch:.2f}  yaw: {o.yaw:.2f}  roll: {o.roll:.2f}"
    return line


def preset_main(argv: list | None = None) -> None:
    """
    CLI entry point: ``causalviz-preset``.

    :param argv: Argument list; defaults to ``sys.argv[1:]``.
    """
    args = _preset_args(argv)
    _configure_logging(args.verbose)

    from causalviz.preset_api import PresetAPIError, SQLitePresetAPI
    from causalviz.presets import PresetStore, delete_preset, save_current_view
    from causalviz.primitives import Graph, Orientation, ViewPosition

    with SQLitePresetAPI(args.db) as api:
        try:
            if args.command == "register":
                api.register_graph(
                    Graph(id=args.graph_id, owner=args.owner, name=args.name,
                          shared_emails=args.share)
                )
                print(f"Registered graph {args.graph_id}", file=sys.stderr)
                return

            graph = api.graph(args.graph_id)
            if graph is None:
                raise PresetAPIError("Graph not found", status=404)
            store = PresetStore(graph)

            if args.command == "list":
                if args.json:
                    print(json.dumps([p.to_dict() for p in graph.presets], indent=2))
                elif not graph.presets:
                    print("(no presets)")
                else:
                    for preset in graph.presets:
                        print(_format_preset(preset))

            elif args.command == "save":
                angles = (args.pitch, args.yaw, args.roll)
                orientation = None
                if any(a is not None for a in angles):
                    orientation = Orientation(*(a or 0.0 for a in angles))
                store.set_current_view(
                    ViewPosition(x=args.x, y=args.y, z=args.z, orientation=orientation)
                )
                preset = save_current_view(store, api, args.name, uid=args.uid, email=args.email)
                print(_format_preset(preset))

            elif args.command == "delete":
                preset = graph.preset(args.name)
                if preset is None:
                    raise PresetAPIError(f"Preset not found: {args.name}", status=404)
                delete_preset(store, api, preset, uid=args.uid, email=args.email)
                print(f"Deleted preset {args.name}", file=sys.stderr)

        except (ValueError, PermissionError, PresetAPIError) as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    preset_main()
