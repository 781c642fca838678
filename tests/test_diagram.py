"""
Tests for causalviz.diagram — CausalDiagram render pipeline and state.
"""

import numpy as np
import pytest

from causalviz.camera import bounding_box
from causalviz.colors import PALETTE
from causalviz.diagram import CausalDiagram, DiagramConfig
from causalviz.graph_data import GraphData
from causalviz.primitives import Edge, Node


@pytest.fixture
def nodes():
    return [
        Node("A", "Alpha", 1, "habit"),
        Node("B", "Beta", 2, "habit"),
        Node("C", "Gamma", 3, "disease"),
        Node("D", "Delta", 4, "environment"),
    ]


@pytest.fixture
def edges():
    return [
        Edge("A", "B", "causal", 0.9),
        Edge("B", "C", "causal", 0.8),
        Edge("B", "D", "correlated", 0.5),
    ]


@pytest.fixture
def diagram(nodes, edges):
    d = CausalDiagram()
    d.set_data(nodes, edges)
    return d


def _many_nodes(n):
    return [Node(f"n{i}", f"N{i}", i, f"c{i % 4}") for i in range(n)]


class TestSetData:
    def test_every_node_has_props(self, diagram, nodes):
        props = diagram.node_props()
        assert [p.id for p in props] == [n.id for n in nodes]

    def test_category_colors(self, diagram):
        colors = {p.id: p.color for p in diagram.node_props()}
        assert colors["A"] == colors["B"] == PALETTE[0]
        assert colors["C"] == PALETTE[1]
        assert colors["D"] == PALETTE[2]

    def test_tooltip(self, diagram):
        props = diagram.node_props()[0]
        assert props.tooltip == "Alpha\nValue: 1\nCategory: habit"

    def test_same_node_list_skips_layout(self, diagram, nodes, edges, monkeypatch):
        calls = []
        original = diagram.layout.compute

        def counting(*args, **kwargs):
            calls.append(args)
            return original(*args, **kwargs)

        monkeypatch.setattr(diagram.layout, "compute", counting)
        diagram.set_data(nodes, edges)
        assert calls == []
        diagram.set_data(list(nodes), edges)
        assert len(calls) == 1

    def test_camera_fits_layout(self, diagram):
        lo, hi = bounding_box(diagram.positions)
        np.testing.assert_allclose(diagram.camera.controls.target, (lo + hi) / 2.0)

    def test_camera_bounds_follow_node_count(self):
        d = CausalDiagram()
        d.set_data(_many_nodes(300), [])
        assert d.camera.camera.far == 6000.0
        assert d.camera.controls.max_distance == 3000.0

    def test_empty_graph(self):
        d = CausalDiagram()
        d.set_data([], [])
        assert d.node_props() == []
        assert d.edge_props() == []


class TestEdgeProps:
    def test_all_edges_rendered(self, diagram):
        assert [p.edge.key for p in diagram.edge_props()] == ["A-B", "B-C", "B-D"]

    def test_geometry_trimmed(self, diagram):
        p = diagram.edge_props()[0]
        direction = p.target_position - p.source_position
        direction = direction / np.linalg.norm(direction)
        np.testing.assert_allclose(p.geometry.start, p.source_position + direction * 12.0)
        assert p.geometry.arrow is not None

    def test_dangling_edge_skipped(self, nodes, edges):
        d = CausalDiagram()
        d.set_data(nodes, edges + [Edge("A", "ghost", "causal", 0.5)])
        assert "A-ghost" not in [p.edge.key for p in d.edge_props()]

    def test_filter_applies(self, diagram):
        diagram.edge_filter.toggle("correlated")
        assert [p.edge.key for p in diagram.edge_props()] == ["A-B", "B-C"]

    def test_declutter_large_graph(self):
        d = CausalDiagram()
        nodes = _many_nodes(600)
        d.set_data(nodes, [Edge("n0", "n1", "causal", 0.5)])
        assert not d.edge_filter.show_causal
        assert d.edge_props() == []


class TestInteraction:
    def test_click_dims_off_path(self, diagram):
        diagram.click("A")
        dimmed = {p.id: p.is_dimmed for p in diagram.node_props()}
        assert dimmed == {"A": False, "B": False, "C": False, "D": True}
        edge_dim = {p.edge.key: p.is_dimmed for p in diagram.edge_props()}
        assert edge_dim == {"A-B": False, "B-C": False, "B-D": True}

    def test_dimmed_props_opacity(self, diagram):
        diagram.click("A")
        props = {p.id: p for p in diagram.node_props()}
        assert props["D"].opacity == 0.3
        assert props["A"].opacity == 1.0
        edge = {p.edge.key: p for p in diagram.edge_props()}["B-D"]
        assert edge.geometry.opacity == 0.3

    def test_hover_suppressed_while_dragging(self, diagram):
        diagram.camera.on_start()
        assert diagram.pointer_over("A") is False
        assert diagram.interaction.hovered_node_id is None
        diagram.camera.on_end()
        assert diagram.pointer_over("A") is True

    def test_canvas_click(self, diagram):
        diagram.click("A")
        diagram.canvas_click()
        assert not any(p.is_dimmed for p in diagram.node_props())

    def test_selected_scale(self):
        d = CausalDiagram()
        d.set_data(_many_nodes(100), [])
        d.select_node("n3")
        scales = {p.id: p.scale for p in d.node_props()}
        assert scales["n3"] == pytest.approx(10.0)
        assert scales["n0"] == pytest.approx(2.0)

    def test_small_graph_scale_floor(self, diagram):
        assert diagram.node_scale(False) == 2.0

    def test_node_at(self, diagram):
        pos = diagram.positions["C"]
        assert diagram.node_at(pos + 0.5) == "C"
        assert diagram.node_at(pos + 1000.0) is None

    def test_node_at_uses_selected_sphere_size(self):
        d = CausalDiagram(DiagramConfig(min_node_scale=1.0, selected_scale=20.0))
        d.set_data([Node("X", "X", 0, "a"), Node("Y", "Y", 0, "b")], [])
        point = d.positions["X"] + np.array([20.0, 0.0, 0.0])
        assert d.node_at(point) is None
        d.select_node("X")
        assert d.sphere_radius(True) > 20.0
        assert d.node_at(point) == "X"

    def test_edge_at(self, diagram):
        ab = next(p for p in diagram.edge_props() if p.edge.key == "A-B")
        hit = diagram.edge_at(ab.geometry.hitbox.center)
        assert hit.edge.key == "A-B"
        assert hit.geometry.hitbox.tooltip == "Relationship: causal\nStrength: 0.9"
        assert diagram.edge_at(ab.geometry.hitbox.center + 1000.0) is None

    def test_edge_at_skips_filtered_edges(self, diagram):
        center = next(p for p in diagram.edge_props() if p.edge.key == "A-B").geometry.hitbox.center
        diagram.edge_filter.toggle("causal")
        hit = diagram.edge_at(center)
        assert hit is None or hit.edge.key != "A-B"


class TestLoad:
    def test_load_resets_state(self, diagram, nodes):
        diagram.click("A")
        diagram.edge_filter.toggle("causal")
        diagram.load(GraphData(nodes=[Node("X", "X", 0, "other")], edges=[]))
        assert diagram.interaction.clicked_node_id is None
        assert diagram.edge_filter.show_causal
        assert set(diagram.layout.z_cache) == {"X"}
        assert diagram.palette.assigned() == {}
        assert diagram.node_props()[0].color == PALETTE[0]

    def test_load_warns_about_dangling(self, caplog, nodes):
        d = CausalDiagram()
        d.load(GraphData(nodes=nodes, edges=[Edge("A", "ghost", "causal", 0.5)]))
        assert "reference unknown nodes" in caplog.text

    def test_custom_config(self, nodes, edges):
        d = CausalDiagram(DiagramConfig(node_radius=20.0))
        d.set_data(nodes, edges)
        p = d.edge_props()[0]
        dist = np.linalg.norm(p.geometry.start - p.source_position)
        assert dist == pytest.approx(20.0)
