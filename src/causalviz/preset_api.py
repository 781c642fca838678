"""
preset_api.py — Persistence API for camera presets.

The diagram core treats preset persistence as an external collaborator with
four calls: add (upsert by name), delete by name, list, and fetch one.
Two implementations are provided:

- :class:`SQLitePresetAPI` — a local SQLite database of graphs and their
  presets (WAL / NORMAL pragmas).
- :class:`HTTPPresetAPI` — a JSON-over-HTTP client for the web application's
  ``/api/data/presets/*`` endpoints.

Both raise :class:`PresetAPIError` when the call is rejected.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from causalviz.primitives import Graph, Preset

logger = logging.getLogger(__name__)


class PresetAPIError(RuntimeError):
    """
    A preset persistence call was rejected.

    :param message: Error message (the server's ``error`` field for HTTP).
    :param status: HTTP status code, when there is one.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------


class PresetAPI(ABC):
    """Contract for preset persistence backends."""

    @abstractmethod
    def add_preset(self, graph_id: str, preset: Preset) -> None:
        """
        Store *preset* on *graph_id*, replacing a preset with the same name.

        :raises PresetAPIError: If the graph does not exist or the call fails.
        """
        ...

    @abstractmethod
    def delete_preset(self, graph_id: str, preset_name: str) -> None:
        """
        Remove the preset named *preset_name* from *graph_id*.

        :raises PresetAPIError: If the graph does not exist or the call fails.
        """
        ...

    @abstractmethod
    def get_presets(self, graph_id: str) -> list[Preset]:
        """Return all presets of *graph_id* in insertion order."""
        ...

    @abstractmethod
    def get_preset(self, graph_id: str, preset_name: str) -> Preset | None:
        """Return the preset named *preset_name*, or ``None``."""
        ...


def _require_graph_id(graph_id: str) -> None:
    if not graph_id:
        raise PresetAPIError("Graph ID is required", status=400)


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------

_SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS graphs (
    id            TEXT PRIMARY KEY,
    owner         TEXT NOT NULL,
    name          TEXT,
    shared_emails TEXT
);

CREATE TABLE IF NOT EXISTS presets (
    graph_id  TEXT NOT NULL,
    name      TEXT NOT NULL,
    seq       INTEGER NOT NULL,
    updated   TEXT NOT NULL,
    filters   TEXT,
    pathways  TEXT,
    view      TEXT,
    PRIMARY KEY (graph_id, name)
);

CREATE INDEX IF NOT EXISTS idx_presets_graph ON presets(graph_id, seq);
"""


def _dumps(value) -> str | None:
    return json.dumps(value) if value is not None else None


def _loads(value: str | None):
    return json.loads(value) if value else None


class SQLitePresetAPI(PresetAPI):
    """
    SQLite-backed preset persistence.

    :param db_path: Path to the SQLite database file.  Created on first use.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA_SQL)
        self._conn.commit()

    # ------------------------------------------------------------------
    # Graphs
    # ------------------------------------------------------------------

    def register_graph(self, graph: Graph) -> None:
        """
        Insert or update the graph row (presets on *graph* are not written).

        :param graph: Graph aggregate.
        """
        self._conn.execute(
            "INSERT OR REPLACE INTO graphs (id, owner, name, shared_emails) VALUES (?,?,?,?)",
            (graph.id, graph.owner, graph.name, json.dumps(list(graph.shared_emails))),
        )
        self._conn.commit()

    def graph(self, graph_id: str) -> Graph | None:
        """
        Load a graph with its presets.

        :param graph_id: Graph ID.
        :return: :class:`Graph` or ``None`` if not found.
        """
        row = self._conn.execute("SELECT * FROM graphs WHERE id = ?", (graph_id,)).fetchone()
        if row is None:
            return None
        return Graph(
            id=row["id"],
            owner=row["owner"],
            name=row["name"] or "",
            shared_emails=_loads(row["shared_emails"]) or [],
            presets=self.get_presets(graph_id),
        )

    def _check_graph(self, graph_id: str) -> None:
        _require_graph_id(graph_id)
        row = self._conn.execute("SELECT 1 FROM graphs WHERE id = ?", (graph_id,)).fetchone()
        if row is None:
            raise PresetAPIError("Graph not found", status=404)

    # ------------------------------------------------------------------
    # PresetAPI
    # ------------------------------------------------------------------

    def add_preset(self, graph_id: str, preset: Preset) -> None:
        self._check_graph(graph_id)
        view = preset.view.to_dict() if preset.view else None
        values = (
            preset.updated.isoformat(),
            _dumps(preset.filters),
            _dumps(preset.pathways),
            _dumps(view),
        )
        cur = self._conn.execute(
            """
            UPDATE presets SET updated=?, filters=?, pathways=?, view=?
            WHERE graph_id=? AND name=?
            """,
            (*values, graph_id, preset.name),
        )
        if cur.rowcount == 0:
            (seq,) = self._conn.execute(
                "SELECT COALESCE(MAX(seq), -1) + 1 FROM presets WHERE graph_id = ?",
                (graph_id,),
            ).fetchone()
            self._conn.execute(
                """
                INSERT INTO presets (graph_id, name, seq, updated, filters, pathways, view)
                VALUES (?,?,?,?,?,?,?)
                """,
                (graph_id, preset.name, seq, *values),
            )
        self._conn.commit()

    def delete_preset(self, graph_id: str, preset_name: str) -> None:
        if not preset_name:
            raise PresetAPIError("Graph ID and preset name are required", status=400)
        self._check_graph(graph_id)
        self._conn.execute(
            "DELETE FROM presets WHERE graph_id = ? AND name = ?", (graph_id, preset_name)
        )
        self._conn.commit()

    def get_presets(self, graph_id: str) -> list[Preset]:
        self._check_graph(graph_id)
        rows = self._conn.execute(
            "SELECT * FROM presets WHERE graph_id = ? ORDER BY seq", (graph_id,)
        ).fetchall()
        return [self._row_to_preset(r) for r in rows]

    def get_preset(self, graph_id: str, preset_name: str) -> Preset | None:
        self._check_graph(graph_id)
        row = self._conn.execute(
            "SELECT * FROM presets WHERE graph_id = ? AND name = ?", (graph_id, preset_name)
        ).fetchone()
        return self._row_to_preset(row) if row else None

    @staticmethod
    def _row_to_preset(row: sqlite3.Row) -> Preset:
        view = _loads(row["view"])
        return Preset.from_dict({
            "name": row["name"],
            "updated": row["updated"],
            "filters": _loads(row["filters"]),
            "pathways": _loads(row["pathways"]),
            "view": view,
        })

    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying SQLite connection."""
        self._conn.close()

    def __enter__(self) -> SQLitePresetAPI:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# HTTP backend
# ---------------------------------------------------------------------------


class HTTPPresetAPI(PresetAPI):
    """
    JSON-over-HTTP client for the web application's preset endpoints.

    :param base_url: Application root, e.g. ``https://example.org``.
    :param token: Optional bearer token sent as ``Authorization``.
    :param timeout: Socket timeout in seconds.
    """

    ADD_PATH = "/api/data/presets/add"
    DELETE_PATH = "/api/data/presets/delete"
    LIST_PATH = "/api/data/presets/getAll"
    GET_PATH = "/api/data/presets/getPreset"

    def __init__(self, base_url: str, token: str | None = None, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _request(self, method: str, path: str, body: dict | None = None, query: dict | None = None) -> dict:
        url = self.base_url + path
        if query:
            url += "?" + urlencode(query)
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        data = json.dumps(body).encode() if body is not None else None
        req = Request(url, data=data, headers=headers, method=method)

        try:
            with urlopen(req, timeout=self.timeout) as response:
                payload = response.read()
        except HTTPError as e:
            message = e.reason
            try:
                message = json.loads(e.read() or b"{}").get("error") or message
            except (json.JSONDecodeError, ValueError):
                pass
            logger.error("%s %s failed: %s %s", method, path, e.code, message)
            raise PresetAPIError(str(message), status=e.code) from e
        except URLError as e:
            logger.error("%s %s failed: %s", method, path, e.reason)
            raise PresetAPIError(f"Could not reach {self.base_url}: {e.reason}") from e

        return json.loads(payload) if payload else {}

    def add_preset(self, graph_id: str, preset: Preset) -> None:
        self._request("POST", self.ADD_PATH, body={"graphId": graph_id, "preset": preset.to_dict()})

    def delete_preset(self, graph_id: str, preset_name: str) -> None:
        self._request(
            "DELETE", self.DELETE_PATH, body={"graphId": graph_id, "presetName": preset_name}
        )

    def get_presets(self, graph_id: str) -> list[Preset]:
        data = self._request("GET", self.LIST_PATH, query={"graphId": graph_id})
        return [Preset.from_dict(p) for p in data.get("presets") or []]

    def get_preset(self, graph_id: str, preset_name: str) -> Preset | None:
        data = self._request(
            "GET", self.GET_PATH, query={"graphId": graph_id, "presetName": preset_name}
        )
        preset = data.get("preset")
        return Preset.from_dict(preset) if preset else None
