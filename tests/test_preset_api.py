"""
Tests for causalviz.preset_api — SQLite and HTTP preset persistence.
"""

import io
import json
from datetime import datetime, timezone
from urllib.error import HTTPError, URLError

import pytest

from causalviz import preset_api
from causalviz.preset_api import HTTPPresetAPI, PresetAPIError, SQLitePresetAPI
from causalviz.primitives import Graph, Orientation, Preset, ViewPosition

VIEW = ViewPosition(1.25, -2.5, 300.125, Orientation(0.1, 0.2, 0.3))


@pytest.fixture
def api(tmp_path):
    a = SQLitePresetAPI(tmp_path / "presets.sqlite")
    a.register_graph(Graph(id="g1", owner="u1", name="Demo", shared_emails=["x@example.org"]))
    yield a
    a.close()


class TestSQLitePresetAPI:
    def test_add_and_get(self, api):
        api.add_preset("g1", Preset(name="A", view=VIEW))
        got = api.get_preset("g1", "A")
        assert got.name == "A"
        assert got.view == VIEW

    def test_view_without_orientation(self, api):
        api.add_preset("g1", Preset(name="A", view=ViewPosition(1.0, 2.0, 3.0)))
        assert api.get_preset("g1", "A").view.orientation is None

    def test_preset_without_view(self, api):
        api.add_preset("g1", Preset(name="A", filters=[], pathways=None))
        got = api.get_preset("g1", "A")
        assert got.view is None
        assert got.filters == []
        assert got.pathways is None

    def test_updated_roundtrip(self, api):
        ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        api.add_preset("g1", Preset(name="A", updated=ts))
        assert api.get_preset("g1", "A").updated == ts

    def test_upsert_keeps_order(self, api):
        for name in ("A", "B", "C"):
            api.add_preset("g1", Preset(name=name))
        api.add_preset("g1", Preset(name="A", view=VIEW))
        presets = api.get_presets("g1")
        assert [p.name for p in presets] == ["A", "B", "C"]
        assert presets[0].view == VIEW

    def test_delete(self, api):
        api.add_preset("g1", Preset(name="A"))
        api.add_preset("g1", Preset(name="B"))
        api.delete_preset("g1", "A")
        assert [p.name for p in api.get_presets("g1")] == ["B"]

    def test_missing_preset(self, api):
        assert api.get_preset("g1", "nope") is None

    def test_unknown_graph(self, api):
        with pytest.raises(PresetAPIError) as exc_info:
            api.add_preset("missing", Preset(name="A"))
        assert exc_info.value.status == 404

    def test_empty_preset_name_on_delete(self, api):
        with pytest.raises(PresetAPIError) as exc_info:
            api.delete_preset("g1", "")
        assert exc_info.value.status == 400

    def test_graph_with_presets(self, api):
        api.add_preset("g1", Preset(name="A"))
        g = api.graph("g1")
        assert g.owner == "u1"
        assert g.name == "Demo"
        assert g.shared_emails == ["x@example.org"]
        assert [p.name for p in g.presets] == ["A"]

    def test_graph_not_found(self, api):
        assert api.graph("missing") is None

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "db.sqlite"
        with SQLitePresetAPI(path) as a:
            a.register_graph(Graph(id="g", owner="u"))
            a.add_preset("g", Preset(name="A", view=VIEW))
        with SQLitePresetAPI(path) as b:
            assert b.get_preset("g", "A").view == VIEW


class _FakeResponse:
    def __init__(self, payload: dict):
        self._body = json.dumps(payload).encode()

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def captured(monkeypatch):
    """Patch urlopen; returns a dict holding the last request and the reply."""
    state = {"reply": {}, "request": None, "timeout": None}

    def fake_urlopen(req, timeout=None):
        state["request"] = req
        state["timeout"] = timeout
        return _FakeResponse(state["reply"])

    monkeypatch.setattr(preset_api, "urlopen", fake_urlopen)
    return state


class TestHTTPPresetAPI:
    def test_add_posts_body(self, captured):
        api = HTTPPresetAPI("https://example.org/", token="tok")
        api.add_preset("g1", Preset(name="A", view=VIEW))
        req = captured["request"]
        assert req.get_method() == "POST"
        assert req.full_url == "https://example.org/api/data/presets/add"
        assert req.get_header("Authorization") == "Bearer tok"
        body = json.loads(req.data)
        assert body["graphId"] == "g1"
        assert body["preset"]["name"] == "A"
        assert body["preset"]["view"]["orientation"]["roll"] == 0.3
        assert captured["timeout"] == 10.0

    def test_delete_sends_name(self, captured):
        HTTPPresetAPI("https://example.org").delete_preset("g1", "A")
        req = captured["request"]
        assert req.get_method() == "DELETE"
        assert json.loads(req.data) == {"graphId": "g1", "presetName": "A"}

    def test_get_presets(self, captured):
        captured["reply"] = {"presets": [Preset(name="A", view=VIEW).to_dict()]}
        presets = HTTPPresetAPI("https://example.org").get_presets("g1")
        assert captured["request"].full_url.endswith("/api/data/presets/getAll?graphId=g1")
        assert [p.name for p in presets] == ["A"]
        assert presets[0].view == VIEW

    def test_get_presets_with_timestamp_objects(self, captured):
        captured["reply"] = {"presets": [
            {"name": "A", "updated": {"_seconds": 1700000000, "_nanoseconds": 0},
             "filters": [], "pathways": None, "view": VIEW.to_dict()},
            {"name": "B", "updated": {"seconds": 1700000000, "nanoseconds": 500000000},
             "filters": [], "pathways": None, "view": None},
        ]}
        a, b = HTTPPresetAPI("https://example.org").get_presets("g1")
        assert a.updated == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        assert a.view == VIEW
        assert b.updated == datetime(2023, 11, 14, 22, 13, 20, 500000, tzinfo=timezone.utc)

    def test_get_preset_missing(self, captured):
        captured["reply"] = {"preset": None}
        assert HTTPPresetAPI("https://example.org").get_preset("g1", "A") is None
        assert "presetName=A" in captured["request"].full_url

    def test_http_error_carries_message(self, monkeypatch):
        def fail(req, timeout=None):
            raise HTTPError(req.full_url, 404, "Not Found", {},
                            io.BytesIO(b'{"error": "Graph not found"}'))

        monkeypatch.setattr(preset_api, "urlopen", fail)
        with pytest.raises(PresetAPIError, match="Graph not found") as exc_info:
            HTTPPresetAPI("https://example.org").add_preset("g1", Preset(name="A"))
        assert exc_info.value.status == 404

    def test_unreachable(self, monkeypatch):
        def fail(req, timeout=None):
            raise URLError("connection refused")

        monkeypatch.setattr(preset_api, "urlopen", fail)
        with pytest.raises(PresetAPIError, match="Could not reach"):
            HTTPPresetAPI("https://example.org").get_presets("g1")
