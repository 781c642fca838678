"""
Tests for causalviz.presets — PresetStore view-model and the save/delete flow.
"""

import pytest

from causalviz.diagram import CausalDiagram
from causalviz.preset_api import PresetAPI, PresetAPIError
from causalviz.presets import (
    PresetStore,
    can_modify_presets,
    delete_preset,
    save_current_view,
)
from causalviz.primitives import Graph, Orientation, Preset, ViewPosition

VIEW_A = ViewPosition(1.0, 2.0, 3.0, Orientation(0.1, 0.2, 0.3))
VIEW_B = ViewPosition(4.0, 5.0, 6.0, Orientation(0.4, 0.5, 0.6))


class RecordingAPI(PresetAPI):
    """In-memory PresetAPI that records calls and can be told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def _record(self, *call):
        self.calls.append(call)
        if self.fail:
            raise PresetAPIError("Internal server error", status=500)

    def add_preset(self, graph_id, preset):
        self._record("add", graph_id, preset.name)

    def delete_preset(self, graph_id, preset_name):
        self._record("delete", graph_id, preset_name)

    def get_presets(self, graph_id):
        return []

    def get_preset(self, graph_id, preset_name):
        return None


@pytest.fixture
def graph():
    return Graph(id="g1", owner="owner-uid", shared_emails=["friend@example.org"])


@pytest.fixture
def store(graph):
    return PresetStore(graph)


class TestPresetStore:
    def test_upsert_replaces_by_name(self, store):
        store.add_preset_to_graph(Preset(name="A", view=VIEW_A))
        store.add_preset_to_graph(Preset(name="A", view=VIEW_B))
        assert len(store.presets) == 1
        assert store.presets[0].view == VIEW_B

    def test_upsert_keeps_position(self, store):
        for name in ("A", "B", "C"):
            store.add_preset_to_graph(Preset(name=name))
        store.add_preset_to_graph(Preset(name="B", view=VIEW_B))
        assert [p.name for p in store.presets] == ["A", "B", "C"]

    def test_no_graph_is_noop(self):
        store = PresetStore()
        store.add_preset_to_graph(Preset(name="A"))
        store.delete_preset_from_graph(Preset(name="A"))
        assert store.presets == []

    def test_delete_by_name(self, store):
        store.add_preset_to_graph(Preset(name="A"))
        store.add_preset_to_graph(Preset(name="B"))
        store.delete_preset_from_graph(Preset(name="A"))
        assert [p.name for p in store.presets] == ["B"]

    def test_load_preset_pushes_view(self, store):
        seen = []
        store.subscribe(seen.append)
        preset = Preset(name="A", view=VIEW_A)
        store.load_preset(preset)
        assert store.active_preset == preset
        assert store.active_preset is not preset
        assert store.current_view == VIEW_A
        assert seen == [VIEW_A]

    def test_load_preset_without_view(self, store):
        seen = []
        store.subscribe(seen.append)
        store.set_current_view(VIEW_B)
        store.load_preset(Preset(name="empty"))
        assert store.active_preset.name == "empty"
        assert store.current_view == VIEW_B
        assert seen == []

    def test_clear_active_keeps_view(self, store):
        store.load_preset(Preset(name="A", view=VIEW_A))
        store.clear_active_preset()
        assert store.active_preset is None
        assert store.current_view == VIEW_A


class TestDiagramWiring:
    def test_loaded_preset_moves_camera_exactly(self, store):
        diagram = CausalDiagram(presets=store)
        store.load_preset(Preset(name="A", view=VIEW_A))
        assert diagram.camera.camera_state() == VIEW_A
        # the camera publishes its new state back into the store
        assert store.current_view == VIEW_A

    def test_camera_moves_update_current_view(self, store):
        diagram = CausalDiagram(presets=store)
        diagram.camera.rotate(0.25, 0.0)
        assert store.current_view == diagram.camera.camera_state()


class TestAccessPolicy:
    def test_owner(self, graph):
        assert can_modify_presets(graph, "owner-uid", None)

    def test_shared_email(self, graph):
        assert can_modify_presets(graph, "other", "friend@example.org")

    def test_stranger(self, graph):
        assert not can_modify_presets(graph, "other", "stranger@example.org")

    def test_signed_out(self, graph):
        assert not can_modify_presets(graph, None, "friend@example.org")


class TestSaveCurrentView:
    def test_saves_and_upserts(self, store):
        api = RecordingAPI()
        store.set_current_view(VIEW_A)
        preset = save_current_view(store, api, "Overview", uid="owner-uid")
        assert api.calls == [("add", "g1", "Overview")]
        assert preset.view == VIEW_A
        assert preset.filters == []
        assert preset.pathways is None
        assert store.presets == [preset]

    def test_same_name_replaces(self, store):
        api = RecordingAPI()
        store.set_current_view(VIEW_A)
        save_current_view(store, api, "Overview", uid="owner-uid")
        store.set_current_view(VIEW_B)
        save_current_view(store, api, "Overview", uid="owner-uid")
        assert len(store.presets) == 1
        assert store.presets[0].view == VIEW_B

    def test_blank_name_rejected_before_api(self, store):
        api = RecordingAPI()
        with pytest.raises(ValueError, match="Please enter a preset name"):
            save_current_view(store, api, "   ", uid="owner-uid")
        assert api.calls == []

    def test_signed_out_rejected(self, store):
        api = RecordingAPI()
        with pytest.raises(PermissionError, match="logged in"):
            save_current_view(store, api, "A", uid=None)
        assert api.calls == []

    def test_not_shared_rejected(self, store):
        api = RecordingAPI()
        with pytest.raises(PermissionError, match="shared with you"):
            save_current_view(store, api, "A", uid="other", email="stranger@example.org")
        assert api.calls == []

    def test_shared_user_allowed(self, store):
        save_current_view(store, RecordingAPI(), "A", uid="other", email="friend@example.org")
        assert [p.name for p in store.presets] == ["A"]

    def test_api_failure_leaves_state(self, store):
        store.add_preset_to_graph(Preset(name="kept"))
        with pytest.raises(PresetAPIError):
            save_current_view(store, RecordingAPI(fail=True), "A", uid="owner-uid")
        assert [p.name for p in store.presets] == ["kept"]

    def test_no_graph(self):
        with pytest.raises(RuntimeError):
            save_current_view(PresetStore(), RecordingAPI(), "A", uid="owner-uid")


class TestDeletePreset:
    def test_deletes(self, store):
        api = RecordingAPI()
        preset = Preset(name="A")
        store.add_preset_to_graph(preset)
        delete_preset(store, api, preset, uid="owner-uid")
        assert api.calls == [("delete", "g1", "A")]
        assert store.presets == []

    def test_api_failure_leaves_state(self, store):
        preset = Preset(name="A")
        store.add_preset_to_graph(preset)
        with pytest.raises(PresetAPIError):
            delete_preset(store, RecordingAPI(fail=True), preset, uid="owner-uid")
        assert store.presets == [preset]

    def test_stranger_rejected(self, store):
        with pytest.raises(PermissionError):
            delete_preset(store, RecordingAPI(), Preset(name="A"), uid="other")
