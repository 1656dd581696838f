"""Tests for the key-value stores and the project repository."""

import json
from datetime import datetime, timezone

import pytest

from skillcanvas.backend.config import build_store
from skillcanvas.backend.storage import (
    LAST_OPENED,
    PROJECTS_KEY,
    STORAGE_PREFIX,
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    NullStore,
    ProjectRepository,
)
from skillcanvas.core.models import ProjectMeta
from tests.helpers import connect, make_state


# ── Stores ──


class TestStores:
    @pytest.mark.parametrize("store", [MemoryStore(), NullStore(), JsonFileStore("unused.json")])
    def test_protocol(self, store):
        assert isinstance(store, KeyValueStore)

    def test_memory_store(self):
        store = MemoryStore({"a": "1"})
        store.set("b", "2")
        assert (store.get("a"), store.get("b"), store.get("c")) == ("1", "2", None)

    def test_null_store_forgets(self):
        store = NullStore()
        store.set("a", "1")
        assert store.get("a") is None

    def test_file_store_persists(self, tmp_path):
        path = tmp_path / "nested" / "store.json"
        JsonFileStore(path).set("key", "value")
        assert json.loads(path.read_text())["key"] == "value"
        assert JsonFileStore(path).get("key") == "value"
        assert not path.with_suffix(".json.tmp").exists()

    def test_file_store_ignores_corrupt_file(self, tmp_path, caplog):
        path = tmp_path / "store.json"
        path.write_text("{broken")
        store = JsonFileStore(path)
        assert store.get("anything") is None
        assert f"Failed to read store {path}:" in caplog.text
        store.set("a", "1")
        assert JsonFileStore(path).get("a") == "1"

    def test_file_store_unwritable_keeps_memory(self, tmp_path):
        # A directory where the file should be makes every write fail
        path = tmp_path / "store.json"
        path.mkdir()
        store = JsonFileStore(path)
        store.set("a", "1")
        assert store.get("a") == "1"

    def test_build_store(self, tmp_path):
        assert isinstance(build_store(""), MemoryStore)
        assert isinstance(build_store("none"), NullStore)
        store = build_store(str(tmp_path / "s.json"))
        assert isinstance(store, JsonFileStore)
        assert store.path == tmp_path / "s.json"


# ── Repository ──


class TestProjectRepository:
    def test_save_writes_all_keys(self, repository, store):
        state = connect(make_state((0, 0), (50, 50)), ("n0", "n1"))
        meta = repository.save(state, ProjectMeta(name="Warrior"))

        snapshot = json.loads(store.get(STORAGE_PREFIX + "Warrior"))
        assert snapshot["version"] == 1
        assert len(snapshot["nodes"]) == 2
        assert store.get(LAST_OPENED) == "Warrior"
        index = json.loads(store.get(PROJECTS_KEY))
        assert index == [{"name": "Warrior", "id": meta.id, "updatedAt": meta.updated_at.isoformat()}]

    def test_save_refreshes_updated_at(self, repository):
        when = datetime(2030, 1, 2, tzinfo=timezone.utc)
        meta = repository.save(make_state(), ProjectMeta(name="A"), now=when)
        assert meta.updated_at == when

    def test_index_upserts_by_name(self, repository):
        repository.save(make_state(), ProjectMeta(name="A"))
        repository.save(make_state(), ProjectMeta(name="B"))
        repository.save(make_state((1, 1)), ProjectMeta(name="A"))
        assert [p.name for p in repository.list_projects()] == ["A", "B"]

    def test_load(self, repository):
        state = connect(make_state((0, 0), (50, 50)), ("n0", "n1"))
        saved = repository.save(state, ProjectMeta(name="Rogue"))
        loaded_state, meta = repository.load("Rogue")
        assert loaded_state.nodes == state.nodes
        assert loaded_state.edges == state.edges
        assert meta.id == saved.id

    def test_load_missing(self, repository):
        assert repository.load("nope") is None

    def test_load_corrupt_snapshot(self, repository, store, caplog):
        store.set(STORAGE_PREFIX + "bad", "{oops")
        store.set(STORAGE_PREFIX + "future", json.dumps({"version": 2}))
        assert repository.load("bad") is None
        assert repository.load("future") is None
        assert "Could not load project 'future': Unsupported snapshot version: 2" in caplog.text

    def test_key_is_authoritative_for_name(self, repository, store):
        doc = {"version": 1, "meta": {"name": "Something else"}}
        store.set(STORAGE_PREFIX + "Real", json.dumps(doc))
        _, meta = repository.load("Real")
        assert meta.name == "Real"

    def test_corrupt_index_is_empty(self, repository, store):
        store.set(PROJECTS_KEY, "not json")
        assert repository.list_projects() == []
        store.set(PROJECTS_KEY, json.dumps({"a": 1}))
        assert repository.list_projects() == []

    def test_index_skips_bad_entries(self, repository, store):
        store.set(PROJECTS_KEY, json.dumps([{"name": "A", "id": "x", "updatedAt": "t"}, {"name": "B"}]))
        assert [p.name for p in repository.list_projects()] == ["A"]

    def test_unique_names(self, repository):
        assert repository.ensure_unique_name("Untitled") == "Untitled"
        repository.save(make_state(), ProjectMeta(name="Untitled"))
        assert repository.ensure_unique_name("Untitled") == "Untitled 2"
        repository.save(make_state(), ProjectMeta(name="Untitled 2"))
        assert repository.ensure_unique_name("Untitled") == "Untitled 3"

    def test_last_opened(self, repository):
        assert repository.last_opened() is None
        repository.set_last_opened("X")
        assert repository.last_opened() == "X"

    def test_null_store_degrades(self):
        repository = ProjectRepository(NullStore())
        repository.save(make_state((0, 0)), ProjectMeta(name="A"))
        assert repository.list_projects() == []
        assert repository.load("A") is None
        assert repository.last_opened() is None
