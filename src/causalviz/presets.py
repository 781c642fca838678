"""
presets.py — Preset view-model and the save/delete flow around it.

:class:`PresetStore` is the in-memory state behind the preset sidebar: the
graph being viewed (with its preset list), the active preset and the current
camera view.  It performs no I/O and no permission checks.

:func:`save_current_view` and :func:`delete_preset` are the caller-side
flows.  They validate input, check the access policy, call the persistence
API, and only then update the view-model.  A failed API call leaves local
state untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from causalviz.primitives import Graph, Preset, ViewPosition

if TYPE_CHECKING:
    from causalviz.preset_api import PresetAPI

logger = logging.getLogger(__name__)

ViewListener = Callable[[ViewPosition], None]


class PresetStore:
    """
    View-model for the presets of one graph.

    Subscribers registered with :meth:`subscribe` are told whenever a loaded
    preset pushes a view; the diagram's camera controller listens here to
    apply it.

    :param graph: Graph aggregate owning the presets, if already loaded.
    """

    def __init__(self, graph: Graph | None = None) -> None:
        self.graph = graph
        self.active_preset: Preset | None = None
        self.current_view: ViewPosition | None = None
        self._view_listeners: list[ViewListener] = []

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """
        Register *listener* for views pushed by :meth:`load_preset`.

        :return: A function that removes the listener.
        """
        self._view_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._view_listeners:
                self._view_listeners.remove(listener)

        return unsubscribe

    def set_graph(self, graph: Graph | None) -> None:
        self.graph = graph

    def set_current_view(self, view: ViewPosition | None) -> None:
        """Record the live camera view (camera controller callback)."""
        self.current_view = view

    @property
    def presets(self) -> list[Preset]:
        return self.graph.presets if self.graph is not None else []

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def load_preset(self, preset: Preset) -> None:
        """
        Make *preset* active and push its view to the camera.

        A preset without a view only becomes active.

        :param preset: Preset to load.
        """
        self.active_preset = preset.copy()
        if preset.view is not None:
            self.current_view = preset.view
            for listener in list(self._view_listeners):
                listener(preset.view)

    def clear_active_preset(self) -> None:
        """Deactivate the active preset; the camera stays where it is."""
        self.active_preset = None

    def add_preset_to_graph(self, preset: Preset) -> None:
        """
        Insert *preset* into the graph, replacing any preset with the same name.

        Local state only; call after the persistence API accepted the preset.

        :param preset: Preset to upsert.
        """
        if self.graph is None:
            return
        presets = self.graph.presets
        for i, existing in enumerate(presets):
            if existing.name == preset.name:
                presets[i] = preset
                return
        presets.append(preset)

    def delete_preset_from_graph(self, preset: Preset) -> None:
        """
        Remove every preset named ``preset.name`` from the graph.

        :param preset: Preset to remove (matched by name).
        """
        if self.graph is None:
            return
        self.graph.presets = [p for p in self.graph.presets if p.name != preset.name]


# ---------------------------------------------------------------------------
# Caller-side flows
# ---------------------------------------------------------------------------


def can_modify_presets(graph: Graph, uid: str | None, email: str | None) -> bool:
    """
    Access policy for saving and deleting presets.

    Allowed for the graph owner and for users the graph is shared with.

    :param graph: Graph being edited.
    :param uid: Acting user's UID, or ``None`` when signed out.
    :param email: Acting user's email.
    :return: ``True`` if the user may modify presets.
    """
    if uid is None:
        return False
    return graph.owner == uid or (email is not None and email in graph.shared_emails)


def _require_access(store: PresetStore, uid: str | None, email: str | None) -> Graph:
    graph = store.graph
    if graph is None:
        raise RuntimeError("No graph loaded")
    if uid is None:
        raise PermissionError("You must be logged in to modify presets")
    if not can_modify_presets(graph, uid, email):
        raise PermissionError("The graph must be shared with you to modify presets")
    return graph


def save_current_view(
    store: PresetStore,
    api: PresetAPI,
    name: str,
    *,
    uid: str | None,
    email: str | None = None,
) -> Preset:
    """
    Save the store's current view as preset *name*.

    :param store: View-model holding the graph and current view.
    :param api: Persistence API.
    :param name: Preset name; blank names are rejected before any API call.
    :param uid: Acting user's UID.
    :param email: Acting user's email.
    :return: The saved :class:`Preset`.
    :raises ValueError: If *name* is blank.
    :raises PermissionError: If the user may not modify presets.
    :raises PresetAPIError: If the persistence API rejects the call.
    """
    if not name.strip():
        raise ValueError("Please enter a preset name")
    graph = _require_access(store, uid, email)

    preset = Preset(
        name=name,
        updated=datetime.now(timezone.utc),
        filters=[],
        pathways=None,
        view=store.current_view,
    )
    api.add_preset(graph.id, preset)
    store.add_preset_to_graph(preset)
    logger.info("Saved preset %r on graph %s", name, graph.id)
    return preset


def delete_preset(
    store: PresetStore,
    api: PresetAPI,
    preset: Preset,
    *,
    uid: str | None,
    email: str | None = None,
) -> None:
    """
    Delete *preset* remotely, then from the view-model.

    :raises PermissionError: If the user may not modify presets.
    :raises PresetAPIError: If the persistence API rejects the call.
    """
    graph = _require_access(store, uid, email)
    api.delete_preset(graph.id, preset.name)
    store.delete_preset_from_graph(preset)
    logger.info("Deleted preset %r from graph %s", preset.name, graph.id)
