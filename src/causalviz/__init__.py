"""
causalviz — 3-D causal-graph visualization engine.

Lays out categorized node/edge graphs in 3D, tracks hover/click causal-path
highlighting, builds edge geometry, and controls a camera whose pose can be
saved and restored as named presets.

Quick start::

    from causalviz import CausalDiagram, load_graph_data

    diagram = CausalDiagram()
    diagram.load(load_graph_data("graph.json"))
    diagram.click("smoking")
    for props in diagram.node_props():
        print(props.id, props.position, props.is_dimmed)
"""

from causalviz.diagram import CausalDiagram, DiagramConfig
from causalviz.graph_data import GraphData, load_graph_data
from causalviz.presets import PresetStore
from causalviz.primitives import Edge, Graph, Node, Orientation, Preset, ViewPosition

__all__ = [
    "CausalDiagram",
    "DiagramConfig",
    "Edge",
    "Graph",
    "GraphData",
    "Node",
    "Orientation",
    "Preset",
    "PresetStore",
    "ViewPosition",
    "load_graph_data",
]
