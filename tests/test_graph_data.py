"""
Tests for causalviz.graph_data — document parsing and validation.
"""

import json

import pytest

from causalviz.graph_data import load_graph_data, parse_graph_data

NODES = [
    {"id": "smoking", "label": "Smoking", "value": 3, "category": "habit"},
    {"id": "cancer", "label": "Cancer", "value": 1.5, "category": "disease"},
]
EDGES = [
    {"source": "smoking", "target": "cancer", "relationship": "causal", "strength": 0.9},
]


class TestParseGraphData:
    def test_plain_document(self):
        g = parse_graph_data({"nodes": NODES, "edges": EDGES})
        assert [n.id for n in g.nodes] == ["smoking", "cancer"]
        assert g.edges[0].relationship == "causal"
        assert g.timestamp is None

    def test_timestamped_defaults_to_first(self):
        doc = {
            "time_unit": "year",
            "timestamps": [
                {"t": 2001, "nodes": NODES, "edges": EDGES},
                {"t": 2002, "nodes": NODES[:1], "edges": []},
            ],
        }
        g = parse_graph_data(doc)
        assert g.timestamp == 2001
        assert g.time_unit == "year"
        assert g.timestamps == [2001, 2002]
        assert len(g.nodes) == 2

    def test_timestamped_select(self):
        doc = {
            "time_unit": "year",
            "timestamps": [
                {"t": 2001, "nodes": NODES, "edges": EDGES},
                {"t": 2002, "nodes": NODES[:1], "edges": []},
            ],
        }
        g = parse_graph_data(doc, timestamp=2002)
        assert [n.id for n in g.nodes] == ["smoking"]
        assert g.edges == []

    def test_missing_timestamp(self):
        doc = {"time_unit": "year", "timestamps": [{"t": 1, "nodes": [], "edges": []}]}
        with pytest.raises(ValueError, match="not found"):
            parse_graph_data(doc, timestamp=5)

    def test_empty_timestamps(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            parse_graph_data({"time_unit": "year", "timestamps": []})

    def test_missing_node_key(self):
        with pytest.raises(ValueError, match="Missing/Incorrect required keys: category"):
            parse_graph_data({"nodes": [{"id": "a", "label": "A", "value": 1}], "edges": []})

    def test_strength_out_of_range(self):
        bad = dict(EDGES[0], strength=1.5)
        with pytest.raises(ValueError, match="between 0 and 1"):
            parse_graph_data({"nodes": NODES, "edges": [bad]})

    def test_boolean_value_rejected(self):
        bad = dict(NODES[0], value=True)
        with pytest.raises(ValueError, match="value must be a number"):
            parse_graph_data({"nodes": [bad], "edges": []})

    def test_unknown_shape(self):
        with pytest.raises(ValueError, match="Invalid graph format"):
            parse_graph_data({"foo": []})

    def test_dangling_edges_kept(self):
        dangling = {"source": "smoking", "target": "ghost", "relationship": "causal", "strength": 0.1}
        g = parse_graph_data({"nodes": NODES, "edges": EDGES + [dangling]})
        assert len(g.edges) == 2
        assert [e.target for e in g.dangling_edges()] == ["ghost"]


class TestLoadGraphData:
    def test_load(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps({"nodes": NODES, "edges": EDGES}), encoding="utf-8")
        g = load_graph_data(path)
        assert len(g.nodes) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_graph_data(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{nodes: ", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON syntax"):
            load_graph_data(path)
