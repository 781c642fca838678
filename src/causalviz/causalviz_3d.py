#!/usr/bin/env python3
"""
causalviz_3d.py — CLI launcher for the causalviz 3-D PyVista viewer.

Usage::

    causalviz-3d GRAPH.json [--timestamp T]
                 [--db PATH --graph-id ID [--preset NAME] [--save-as NAME]]
                 [--width WIDTH] [--height HEIGHT]
                 [--export-html PATH | --export-png PATH]

Examples::

    # Open an interactive window
    causalviz-3d examples/smoking.json

    # Start from a stored camera preset
    causalviz-3d examples/smoking.json --graph-id g1 --preset "Overview"

    # Render to PNG without opening a window
    causalviz-3d examples/smoking.json --export-png smoking.png

Window keys: left-click a node to toggle its causal path, ``c`` clears it,
``1``-``9`` load presets, ``s`` saves the current view as ``--save-as``.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path

DEFAULT_DB = os.environ.get("CAUSALVIZ_DB", ".causalviz/presets.sqlite")


def main(argv: list | None = None) -> None:
    """
    Parse CLI arguments and launch the 3-D causal-graph viewer.

    Delegates to :func:`~causalviz.viz3d.launch`.
    """
    parser = argparse.ArgumentParser(
        prog="causalviz-3d",
        description="causalviz 3D: interactive PyVista causal-graph explorer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("graph", metavar="GRAPH", help="Graph JSON document")
    parser.add_argument(
        "--timestamp",
        type=float,
        default=None,
        help="Timestamp to show for timestamped documents (default: first)",
    )
    parser.add_argument(
        "--db",
        default=DEFAULT_DB,
        metavar="PATH",
        help=f"Preset database (default: {DEFAULT_DB}, env CAUSALVIZ_DB)",
    )
    parser.add_argument("--graph-id", default=None, help="Graph ID whose presets to use")
    parser.add_argument("--preset", default=None, metavar="NAME", help="Preset to apply on start")
    parser.add_argument("--save-as", default=None, metavar="NAME", help="Preset name for the 's' key")
    parser.add_argument("--uid", default=os.environ.get("CAUSALVIZ_UID"), help="Acting user UID")
    parser.add_argument("--email", default=os.environ.get("CAUSALVIZ_EMAIL"), help="Acting user email")
    parser.add_argument("--width", type=int, default=1400, help="Window width in pixels (default: 1400)")
    parser.add_argument("--height", type=int, default=900, help="Window height in pixels (default: 900)")
    parser.add_argument(
        "--export-html",
        metavar="PATH",
        help="Export to HTML file instead of opening interactive window",
    )
    parser.add_argument("--export-png", metavar="PATH", help="Export to PNG file")

    args = parser.parse_args(argv)

    graph = Path(args.graph)
    if not graph.exists():
        parser.error(f"Graph file not found: {graph}")
    if args.preset and not args.graph_id:
        parser.error("--preset requires --graph-id")

    from causalviz.viz3d import launch

    launch(
        str(graph),
        timestamp=args.timestamp,
        db_path=args.db if args.graph_id else None,
        graph_id=args.graph_id,
        preset_name=args.preset,
        save_name=args.save_as,
        uid=args.uid,
        email=args.email,
        width=args.width,
        height=args.height,
        export_html=args.export_html,
        export_png=args.export_png,
    )


if __name__ == "__main__":
    main()
