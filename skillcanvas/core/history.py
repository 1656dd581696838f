"""
Linear undo/redo history over the graph + view transform.

The history system works via snapshots:
- Each committed action pushes the state from *before* the action
- Undo restores the previous snapshot and moves the current one to the future stack
- Redo re-applies a snapshot from the future stack
- Any new commit invalidates the future stack

Snapshots are `HistoryEntry` values built from frozen models, so pushing one
shares structure with the live state instead of deep-cloning it.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import Connecting, DraggingNode, Edge, Idle, Node, Selection, ViewTransform, WorldState

DEFAULT_HISTORY_LIMIT = 100


class HistoryEntry(BaseModel):
    """The undoable part of a WorldState: graph and view, no transient UI state."""
    model_config = ConfigDict(frozen=True)

    transform: ViewTransform = Field(default_factory=ViewTransform)
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    @classmethod
    def from_state(cls, state: WorldState) -> "HistoryEntry":
        return cls(transform=state.transform, nodes=state.nodes, edges=state.edges)

    def restore_into(self, state: WorldState) -> WorldState:
        """
        Put this entry's graph and view back into `state`.

        Selection, the settings form and any in-flight gesture are cleared;
        a drag in progress ends and connect mode forgets its source node.
        """
        mode = state.mode
        if isinstance(mode, DraggingNode):
            mode = Idle()
        elif isinstance(mode, Connecting):
            mode = Connecting()
        return state.model_copy(update={
            "transform": self.transform,
            "nodes": self.nodes,
            "edges": self.edges,
            "mode": mode,
            "gesture": None,
            "selection": Selection(),
            "editing_node_id": None,
        })


class HistoryManager:
    """
    Manages the undo and redo stacks.

    The undo stack is bounded: when it grows past `limit` the oldest entry
    is evicted.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        self._history: list[HistoryEntry] = []  # Past states
        self._future: list[HistoryEntry] = []   # Undone states (for redo)
        self._limit = limit

    @property
    def can_undo(self) -> bool:
        return len(self._history) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._future) > 0

    @property
    def undo_depth(self) -> int:
        return len(self._history)

    @property
    def redo_depth(self) -> int:
        return len(self._future)

    def commit(self, state: WorldState):
        """Record `state` (the state before a mutation) as an undo step."""
        self._future.clear()
        self._history.append(HistoryEntry.from_state(state))
        if len(self._history) > self._limit:
            del self._history[: len(self._history) - self._limit]

    def undo(self, current: WorldState) -> Optional[WorldState]:
        """Step back once. Returns None when there is nothing to undo."""
        if not self._history:
            return None
        self._future.append(HistoryEntry.from_state(current))
        return self._history.pop().restore_into(current)

    def redo(self, current: WorldState) -> Optional[WorldState]:
        """Step forward once. Returns None when there is nothing to redo."""
        if not self._future:
            return None
        self._history.append(HistoryEntry.from_state(current))
        return self._future.pop().restore_into(current)

    def clear(self):
        self._history.clear()
        self._future.clear()
