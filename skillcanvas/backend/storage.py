"""
Key-value storage and the project repository built on top of it.

The editor only needs `get(key) -> str | None` and `set(key, value)`.
Three logical keys are used:
- skilltree:project:<name>  - one snapshot document per project
- skilltree:projects        - index of {name, id, updatedAt}
- skilltree:lastOpened      - name of the project to reopen on startup

When no persistent store is available (NullStore, or the file store cannot
be written) every operation degrades to a no-op and the editor keeps
working in memory.
"""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from skillcanvas.core.codec import dumps, deserialize
from skillcanvas.core.errors import SnapshotError
from skillcanvas.core.models import ProjectMeta, WorldState, utc_now

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "skilltree:project:"
PROJECTS_KEY = "skilltree:projects"
LAST_OPENED = "skilltree:lastOpened"


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal string key-value store contract."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...


class MemoryStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self, data: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class NullStore:
    """Stands in for an environment with no persistent storage."""

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str) -> None:
        pass


class JsonFileStore:
    """
    All keys in a single JSON object on disk.

    Reads are served from memory after the first load. Writes rewrite the
    file through a temp file + rename. If the disk is not writable the
    failure is logged and the value is still kept in memory.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._data: Optional[dict[str, str]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data
        self._data = {}
        if self._path.exists():
            try:
                with open(self._path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
                if isinstance(raw, dict):
                    self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
                else:
                    logger.warning("Ignoring store %s: not a JSON object", self._path)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Failed to read store %s: %s", self._path, e)
        return self._data

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as e:
            logger.warning("Failed to write store %s: %s", self._path, e)


class ProjectSummary(BaseModel):
    """One entry of the project index."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    id: str
    updated_at: str = Field(alias="updatedAt")


class ProjectRepository:
    """Saves and loads project snapshots through a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @staticmethod
    def project_key(name: str) -> str:
        return STORAGE_PREFIX + name

    def list_projects(self) -> list[ProjectSummary]:
        """Read the project index; a missing or corrupt index is empty."""
        raw = self._store.get(PROJECTS_KEY)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Project index is not valid JSON; ignoring it")
            return []
        if not isinstance(entries, list):
            return []

        projects = []
        for entry in entries:
            try:
                projects.append(ProjectSummary.model_validate(entry))
            except ValidationError:
                continue
        return projects

    def ensure_unique_name(self, base: str) -> str:
        """Return `base`, or `base 2`, `base 3`... whichever is not taken."""
        names = {p.name for p in self.list_projects()}
        if base not in names:
            return base
        i = 2
        while f"{base} {i}" in names:
            i += 1
        return f"{base} {i}"

    def _upsert_index(self, meta: ProjectMeta) -> list[ProjectSummary]:
        projects = self.list_projects()
        summary = ProjectSummary(name=meta.name, id=meta.id, updated_at=meta.updated_at.isoformat())
        for i, existing in enumerate(projects):
            if existing.name == meta.name:
                projects[i] = summary
                break
        else:
            projects.append(summary)
        self._store.set(PROJECTS_KEY, json.dumps([p.model_dump(by_alias=True) for p in projects]))
        return projects

    def save(self, state: WorldState, meta: ProjectMeta, now: Optional[datetime] = None) -> ProjectMeta:
        """
        Persist a project under `meta.name` and mark it as last opened.

        Returns:
            The metadata as saved (with a fresh updated_at)
        """
        meta = meta.model_copy(update={"updated_at": now or utc_now()})
        self._store.set(self.project_key(meta.name), dumps(state, meta))
        self._store.set(LAST_OPENED, meta.name)
        self._upsert_index(meta)
        return meta

    def load(self, name: str) -> Optional[tuple[WorldState, ProjectMeta]]:
        """Load a project by name. Returns None if it is missing or unreadable."""
        raw = self._store.get(self.project_key(name))
        if raw is None:
            return None
        try:
            state, meta = deserialize(raw)
        except SnapshotError as e:
            logger.warning("Could not load project %r: %s", name, e)
            return None
        # The storage key is authoritative for the name
        return state, meta.model_copy(update={"name": name})

    def last_opened(self) -> Optional[str]:
        return self._store.get(LAST_OPENED)

    def set_last_opened(self, name: str) -> None:
        self._store.set(LAST_OPENED, name)
