"""
Canvas Manager - owns the editor's world state, history, and persistence.

This module implements:
- The single WorldState of the open project (one project open at a time)
- Event dispatch through the pure interaction state machine
- Linear undo/redo history using snapshots
- Project lifecycle: startup, new, open, save as, export, import
- Debounced autosave into a key-value store
"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Union

from skillcanvas.backend.autosave import Debouncer, Scheduler
from skillcanvas.backend.storage import ProjectRepository, ProjectSummary
from skillcanvas.core.codec import deserialize, serialize
from skillcanvas.core.history import DEFAULT_HISTORY_LIMIT, HistoryEntry, HistoryManager
from skillcanvas.core.interaction import REDO, UNDO, Transition, reduce
from skillcanvas.core.models import ProjectMeta, WorldState, generate_project_id, utc_now
from skillcanvas.core.validation import ValidationIssue, find_issues

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "Untitled"
DEFAULT_IMPORT_NAME = "Imported"


class CanvasManager:
    """
    Manages the open project's state, history, and persistence.

    Features:
    - All mutations go through `dispatch(event)`, which runs the pure
      state machine and records the pre-mutation state when asked to
    - Snapshot-based undo/redo history (bounded)
    - Change callbacks for real-time sync
    - Trailing-edge debounced autosave

    Only graph and view changes are persisted; mode, selection and other
    transient UI state never reach storage.
    """

    def __init__(
        self,
        repository: ProjectRepository,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        autosave_delay: float = 0.5,
        scheduler: Optional[Scheduler] = None,
    ):
        self._repo = repository
        self._state = WorldState()
        self._meta = ProjectMeta(name=DEFAULT_PROJECT_NAME)
        self._history = HistoryManager(limit=history_limit)
        self._autosave = Debouncer(autosave_delay, self._autosave_now, scheduler)
        self._last_saved_at: Optional[datetime] = None
        self._on_change_callbacks: list[Callable] = []
        self._on_save_callbacks: list[Callable] = []  # Called after successful save

    # --- Properties ---

    @property
    def state(self) -> WorldState:
        """Get the current world state."""
        return self._state

    @property
    def meta(self) -> ProjectMeta:
        """Get the open project's metadata."""
        return self._meta

    @property
    def project_name(self) -> str:
        return self._meta.name

    @property
    def repository(self) -> ProjectRepository:
        return self._repo

    @property
    def can_undo(self) -> bool:
        """Check if undo is available."""
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        """Check if redo is available."""
        return self._history.can_redo

    @property
    def is_saving(self) -> bool:
        """True while an autosave is scheduled but has not run yet."""
        return self._autosave.pending

    @property
    def last_saved_at(self) -> Optional[datetime]:
        return self._last_saved_at

    # --- Change Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback for state changes."""
        self._on_change_callbacks.append(callback)

    def _notify_change(self):
        """Notify all registered callbacks of a change."""
        for callback in self._on_change_callbacks:
            callback()

    # --- Save Callbacks ---

    def on_save(self, callback: Callable):
        """Register a callback for project saves.

        Callback receives (meta: ProjectMeta, project_info: dict) where project_info contains:
        - name: project name
        - node_count: number of nodes
        - edge_count: number of edges
        """
        self._on_save_callbacks.append(callback)

    def _notify_save(self):
        """Notify all registered callbacks of a successful save."""
        if not self._on_save_callbacks:
            return

        project_info = {
            "name": self._meta.name,
            "node_count": len(self._state.nodes),
            "edge_count": len(self._state.edges),
        }

        for callback in self._on_save_callbacks:
            try:
                callback(self._meta, project_info)
            except Exception:
                logger.exception("Save callback failed")

    # --- State transitions ---

    def dispatch(self, event) -> Transition:
        """
        Apply one input event.

        The transition's `commit` (the state before the action) is pushed
        onto the undo stack before the new state is installed.
        """
        transition = reduce(self._state, event)

        if transition.history == UNDO:
            self.undo()
            return transition
        if transition.history == REDO:
            self.redo()
            return transition

        if transition.commit is not None:
            self._history.commit(transition.commit)
        self._set_state(transition.state)
        return transition

    def _set_state(self, new_state: WorldState):
        if new_state is self._state:
            return
        persisted_changed = (
            HistoryEntry.from_state(new_state) != HistoryEntry.from_state(self._state)
        )
        self._state = new_state
        if persisted_changed:
            self._autosave.trigger()
        self._notify_change()

    # --- Undo/Redo ---

    def undo(self) -> Optional[WorldState]:
        """Undo the last action."""
        restored = self._history.undo(self._state)
        if restored is None:
            return None
        self._set_state(restored)
        return restored

    def redo(self) -> Optional[WorldState]:
        """Redo the last undone action."""
        restored = self._history.redo(self._state)
        if restored is None:
            return None
        self._set_state(restored)
        return restored

    # --- Persistence ---

    def _autosave_now(self):
        self.save_now()

    def save_now(self) -> ProjectMeta:
        """Write the open project to storage immediately."""
        self._autosave.cancel()
        self._meta = self._repo.save(self._state, self._meta)
        self._last_saved_at = self._meta.updated_at
        self._notify_save()
        return self._meta

    def flush(self):
        """Write out a pending autosave, if any (used before switching projects and on shutdown)."""
        self._autosave.flush()

    def _install_project(self, state: WorldState, meta: ProjectMeta):
        """Replace the open project. History does not carry across projects."""
        self._autosave.cancel()
        self._history.clear()
        self._meta = meta
        # Snap is an editor preference, not part of the document
        self._state = state.model_copy(update={"snap": self._state.snap})
        self._notify_change()

    # --- Project Operations ---

    def startup(self) -> ProjectMeta:
        """Reopen the last project, or start a fresh one on first run."""
        last = self._repo.last_opened()
        if last and self.open_project(last):
            logger.info("Reopened project %r", last)
            return self._meta
        return self.new_project()

    def new_project(self, base_name: str = DEFAULT_PROJECT_NAME) -> ProjectMeta:
        """Start an empty project with a unique name and save it."""
        self.flush()
        name = self._repo.ensure_unique_name(base_name.strip() or DEFAULT_PROJECT_NAME)
        self._install_project(WorldState(), ProjectMeta(name=name))
        logger.info("Created project %r", name)
        return self.save_now()

    def open_project(self, name: str) -> bool:
        """Load a saved project by name. Returns False if it cannot be loaded."""
        self.flush()
        loaded = self._repo.load(name)
        if loaded is None:
            return False
        state, meta = loaded
        self._install_project(state, meta)
        self._repo.set_last_opened(name)
        self._last_saved_at = meta.updated_at
        return True

    def save_project(self, name: Optional[str] = None) -> ProjectMeta:
        """
        Save the project.

        If a new name is provided, save under a unique version of it (Save As);
        the open project is then the copy.
        """
        if name is not None:
            name = name.strip()
        if name and name != self._meta.name:
            self._meta = self._meta.model_copy(update={"name": self._repo.ensure_unique_name(name)})
        return self.save_now()

    def list_projects(self) -> list[ProjectSummary]:
        return self._repo.list_projects()

    def export_project(self) -> tuple[str, dict]:
        """Return (file name, snapshot document) for download."""
        meta = self._meta.model_copy(update={"updated_at": utc_now()})
        return f"{self._meta.name}.json", serialize(self._state, meta)

    def import_project(self, document: Union[str, bytes, dict[str, Any]]) -> ProjectMeta:
        """
        Load an external snapshot as a new project.

        Raises:
            SnapshotError: the document is unparseable or has the wrong
                version. Nothing is changed in that case.
        """
        state, meta = deserialize(document)

        self.flush()
        name = self._repo.ensure_unique_name(meta.name.strip() or DEFAULT_IMPORT_NAME)
        meta = meta.model_copy(update={"name": name, "id": meta.id or generate_project_id()})
        self._install_project(state, meta)
        logger.info("Imported project as %r", name)
        return self.save_now()

    # --- Reporting ---

    def validate(self) -> list[ValidationIssue]:
        return find_issues(self._state.nodes, self._state.edges)

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        return {
            "project": self._meta.to_json_dict(),
            "world": self._state.to_json_dict(),
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
            "saving": self.is_saving,
            "last_saved_at": self._last_saved_at.isoformat() if self._last_saved_at else None,
        }
