"""Tests for the versioned snapshot codec."""

import json

import pytest

from skillcanvas.core.codec import SNAPSHOT_VERSION, deserialize, dumps, serialize
from skillcanvas.core.errors import SnapshotError, SnapshotFormatError, SnapshotVersionError
from skillcanvas.core.models import (
    Connecting, NodeColor, NodeSize, ProjectMeta, Selection, ViewTransform, WorldState,
)
from skillcanvas.core.graph import update_node
from tests.helpers import connect, make_state


@pytest.fixture
def state():
    state = make_state((0, 0), (120, 40), (-80, 200), transform=ViewTransform(pan_x=15, pan_y=-30, zoom=1.25))
    state = update_node(state, "n1", name="Fireball", color="amber", size="medium")
    return connect(state, ("n0", "n1"), ("n2", "n1"))


class TestSerialize:
    def test_layout(self, state):
        doc = serialize(state, ProjectMeta(name="Mage"))
        assert doc["version"] == SNAPSHOT_VERSION == 1
        assert doc["meta"]["name"] == "Mage"
        assert set(doc["meta"]) == {"id", "name", "createdAt", "updatedAt"}
        assert doc["view"] == {"panX": 15, "panY": -30, "zoom": 1.25}
        assert doc["nodes"][1] == {
            "id": "n1", "x": 120, "y": 40, "name": "Fireball", "color": "amber", "size": "medium",
        }
        assert doc["edges"][0] == {"id": "e0", "fromId": "n0", "toId": "n1"}

    def test_transient_state_not_written(self, state):
        busy = state.model_copy(update={
            "mode": Connecting(source_id="n0"),
            "selection": Selection(node_id="n1"),
            "editing_node_id": "n1",
            "snap": True,
        })
        assert serialize(busy, ProjectMeta()).keys() == {"version", "meta", "view", "nodes", "edges"}

    def test_dumps_is_json(self, state):
        assert json.loads(dumps(state, ProjectMeta()))["version"] == 1


class TestDeserialize:
    def test_round_trip(self, state):
        meta = ProjectMeta(name="Mage")
        loaded, loaded_meta = deserialize(dumps(state, meta))
        assert loaded.nodes == state.nodes
        assert loaded.edges == state.edges
        assert loaded.transform == state.transform
        assert loaded_meta.name == "Mage"
        assert loaded_meta.id == meta.id

    def test_loaded_state_is_idle(self, state):
        loaded, _ = deserialize(serialize(state, ProjectMeta()))
        assert loaded.mode.kind == "idle"
        assert loaded.gesture is None
        assert loaded.selection.is_empty
        assert loaded.editing_node_id is None

    def test_accepts_bytes(self, state):
        loaded, _ = deserialize(dumps(state, ProjectMeta()).encode("utf-8"))
        assert len(loaded.nodes) == 3

    @pytest.mark.parametrize("version", [2, 0, "1", None, True])
    def test_wrong_version(self, version):
        with pytest.raises(SnapshotVersionError) as exc_info:
            deserialize({"version": version, "nodes": [], "edges": []})
        assert exc_info.value.version == version

    def test_missing_version(self):
        with pytest.raises(SnapshotVersionError):
            deserialize({"nodes": []})

    def test_invalid_json(self):
        with pytest.raises(SnapshotFormatError):
            deserialize("{not json")

    def test_not_an_object(self):
        with pytest.raises(SnapshotFormatError):
            deserialize("[1, 2, 3]")

    def test_schema_mismatch(self):
        with pytest.raises(SnapshotFormatError):
            deserialize({"version": 1, "nodes": [{"id": "a", "x": "left"}]})

    def test_errors_share_base(self):
        assert issubclass(SnapshotFormatError, SnapshotError)
        assert issubclass(SnapshotVersionError, SnapshotError)

    def test_optional_fields_default(self):
        state, meta = deserialize({
            "version": 1,
            "nodes": [{"id": "a", "x": 1, "y": 2, "name": "A"}, {"id": "b", "x": 3, "y": 4, "name": "B", "color": None}],
        })
        assert state.nodes[0].color == NodeColor.SKY
        assert state.nodes[0].size == NodeSize.SMALL
        assert state.nodes[1].color == NodeColor.SKY
        assert state.transform == ViewTransform()
        assert meta.name == "Untitled"

    def test_unknown_style_values_default(self):
        state, _ = deserialize({
            "version": 1,
            "nodes": [
                {"id": "a", "x": 0, "y": 0, "name": "A", "color": "rose", "size": "large"},
                {"id": "b", "x": 50, "y": 0, "name": "B", "color": "teal", "size": "huge"},
            ],
            "edges": [{"id": "e1", "fromId": "a", "toId": "b"}],
        })
        assert (state.nodes[0].color, state.nodes[0].size) == (NodeColor.ROSE, NodeSize.LARGE)
        assert (state.nodes[1].color, state.nodes[1].size) == (NodeColor.SKY, NodeSize.SMALL)
        assert [e.id for e in state.edges] == ["e1"]

    def test_drops_invalid_edges(self):
        state, _ = deserialize({
            "version": 1,
            "nodes": [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}],
            "edges": [
                {"id": "e1", "fromId": "a", "toId": "b"},
                {"id": "e2", "fromId": "a", "toId": "ghost"},
                {"id": "e3", "fromId": "b", "toId": "a"},
                {"id": "e4", "fromId": "a", "toId": "a"},
            ],
        })
        assert [e.id for e in state.edges] == ["e1"]

    def test_legacy_edge_fields(self):
        state, _ = deserialize({
            "version": 1,
            "nodes": [{"id": "a"}, {"id": "b"}, {"id": "c"}],
            "edges": [{"id": "e1", "from": "a", "to": "b"}, {"id": "e2", "source": "b", "target": "c"}],
        })
        assert [(e.from_id, e.to_id) for e in state.edges] == [("a", "b"), ("b", "c")]

    def test_view_zoom_clamped(self):
        state, _ = deserialize({"version": 1, "view": {"panX": 0, "panY": 0, "zoom": 9}})
        assert state.transform.zoom == 2.0

    def test_empty_document(self):
        state, _ = deserialize({"version": 1})
        assert state == WorldState()
