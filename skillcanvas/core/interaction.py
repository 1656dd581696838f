"""
Interaction state machine.

`reduce(state, event)` is a pure function from the current WorldState and an
input event to a `Transition`. It never touches history itself: when an
event is a discrete user action, the transition carries the state from
*before* the action in `commit`, and the owner records it. Keyboard
shortcuts for undo/redo come back as `history="undo"` / `"redo"` requests.

Modes:
- idle: click a node to select + drag it, click an edge to select it,
  click empty canvas to clear the selection and pan
- placing-node: every click on empty canvas places a node and opens its
  settings form; the mode stays on until toggled off or Escape
- dragging-node: pointer moves translate the node; pointer up ends the drag
  as a single undo step
- connecting: first node click picks the source, second adds the edge
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from . import events as ev
from .geometry import edge_at, node_at, pan_by, screen_to_world, snap_point, zoom_at
from .graph import add_edge, add_node, delete_edge, delete_node, get_node, move_node, update_node
from .models import (
    Connecting, DraggingNode, Edge, Gesture, Idle, Node, PlacingNode, Point, Selection,
    ViewTransform, WorldState,
)

logger = logging.getLogger(__name__)

UNDO = "undo"
REDO = "redo"


@dataclass(frozen=True)
class Transition:
    """Result of feeding one event to the state machine."""
    state: WorldState
    commit: Optional[WorldState] = None  # Pre-mutation state to push onto the undo stack
    history: Optional[str] = None        # UNDO / REDO request
    created_id: Optional[str] = None     # Id of a node or edge created by this event


def _unchanged(state: WorldState) -> Transition:
    return Transition(state=state)


def _hit_test(state: WorldState, sx: float, sy: float) -> tuple[Optional[Node], Optional[Edge]]:
    """Nodes sit above edges, so a node hit shadows any edge under it."""
    point = screen_to_world(sx, sy, state.transform)
    node = node_at(state.nodes, point)
    if node is not None:
        return node, None
    return None, edge_at(state.edges, state.nodes, point, zoom=state.transform.zoom)


def _cancel_gesture(state: WorldState) -> WorldState:
    """Drop any in-flight gesture; a drag in progress snaps back to its origin."""
    if isinstance(state.mode, DraggingNode):
        origin = state.mode.origin
        state = move_node(state, state.mode.node_id, origin.x, origin.y)
    return state.model_copy(update={"gesture": None})


# --- Pointer ---

def _on_pointer_down(state: WorldState, event: ev.PointerDown) -> Transition:
    if not event.is_primary:
        return _unchanged(state)
    # Pointer capture is exclusive
    if state.gesture is not None:
        return _unchanged(state)
    # The settings form is modal; clicking outside it closes it
    if state.form_open:
        return Transition(state=state.model_copy(update={"editing_node_id": None}))

    node, edge = _hit_test(state, event.x, event.y)
    mode = state.mode

    if isinstance(mode, Connecting):
        if node is None:
            return _unchanged(state)
        if mode.source_id is None:
            return Transition(state=state.model_copy(update={"mode": Connecting(source_id=node.id)}))
        if mode.source_id == node.id:
            return Transition(state=state.model_copy(update={"mode": Connecting()}))
        connected, created = add_edge(state, mode.source_id, node.id)
        connected = connected.model_copy(update={"mode": Connecting()})
        if created is None:
            return Transition(state=connected)
        return Transition(state=connected, commit=state, created_id=created.id)

    if isinstance(mode, PlacingNode):
        if node is not None or edge is not None:
            return _unchanged(state)
        position = screen_to_world(event.x, event.y, state.transform)
        if state.snap:
            position = snap_point(position)
        placed, created = add_node(state, position)
        placed = placed.model_copy(update={
            "editing_node_id": created.id,
            "selection": Selection(),
        })
        return Transition(state=placed, commit=state, created_id=created.id)

    if node is not None:
        return Transition(state=state.model_copy(update={
            "mode": DraggingNode(node_id=node.id, origin=node.position),
            "gesture": Gesture(kind="drag", last=Point(x=event.x, y=event.y)),
            "selection": Selection(node_id=node.id),
        }))
    if edge is not None:
        return Transition(state=state.model_copy(update={"selection": Selection(edge_id=edge.id)}))
    return Transition(state=state.model_copy(update={
        "selection": Selection(),
        "gesture": Gesture(kind="pan", last=Point(x=event.x, y=event.y)),
    }))


def _on_pointer_move(state: WorldState, event: ev.PointerMove) -> Transition:
    gesture = state.gesture
    if gesture is None:
        return _unchanged(state)

    dx = event.x - gesture.last.x
    dy = event.y - gesture.last.y
    state = state.model_copy(update={"gesture": gesture.model_copy(update={"last": Point(x=event.x, y=event.y)})})

    if gesture.kind == "pan":
        # Panning lives in screen space, so the raw delta applies at any zoom
        return Transition(state=state.model_copy(update={"transform": pan_by(state.transform, dx, dy)}))

    mode = state.mode
    if not isinstance(mode, DraggingNode):
        return Transition(state=state)
    node = get_node(state, mode.node_id)
    if node is None:
        return Transition(state=state.model_copy(update={"mode": Idle(), "gesture": None}))
    # Divide by zoom so the node tracks the pointer 1:1 on screen
    zoom = state.transform.zoom
    return Transition(state=move_node(state, node.id, node.x + dx / zoom, node.y + dy / zoom))


def _on_pointer_up(state: WorldState, event) -> Transition:
    gesture = state.gesture
    if gesture is None:
        return _unchanged(state)

    if gesture.kind == "pan":
        return Transition(state=state.model_copy(update={"gesture": None}))

    mode = state.mode
    ended = state.model_copy(update={"mode": Idle(), "gesture": None})
    if not isinstance(mode, DraggingNode):
        return Transition(state=ended)
    node = get_node(ended, mode.node_id)
    if node is None:
        return Transition(state=ended)

    if state.snap:
        snapped = snap_point(node.position)
        ended = move_node(ended, node.id, snapped.x, snapped.y)
        node = get_node(ended, node.id)

    if node.position == mode.origin:
        return Transition(state=ended)
    # One undo step for the whole drag: the graph as it was before it began
    before = move_node(state, node.id, mode.origin.x, mode.origin.y)
    return Transition(state=ended, commit=before)


def _on_wheel(state: WorldState, event: ev.Wheel) -> Transition:
    # Scroll-to-zoom needs a modifier (trackpad pinch reports ctrlKey)
    if not (event.ctrl_key or event.meta_key):
        return _unchanged(state)
    direction = 1 if event.delta_y > 0 else -1
    return Transition(state=state.model_copy(update={
        "transform": zoom_at(event.x, event.y, state.transform, direction),
    }))


def _on_double_click(state: WorldState, event: ev.DoubleClick) -> Transition:
    if state.gesture is not None:
        return _unchanged(state)
    node, _ = _hit_test(state, event.x, event.y)
    if node is None:
        return _unchanged(state)
    return Transition(state=state.model_copy(update={"editing_node_id": node.id}))


# --- Keyboard ---

def _on_key_down(state: WorldState, event: ev.KeyDown) -> Transition:
    key = event.key

    if key == "Escape":
        if state.form_open:
            return Transition(state=state.model_copy(update={"editing_node_id": None}))
        cancelled = _cancel_gesture(state)
        return Transition(state=cancelled.model_copy(update={
            "mode": Idle(),
            "selection": Selection(),
        }))

    # The open form owns the keyboard
    if state.form_open:
        return _unchanged(state)

    lowered = key.lower()
    # A drag in flight has not committed yet, so history stays put until it ends
    if event.command and lowered in ("z", "y") and state.gesture is not None:
        return _unchanged(state)
    if event.command and lowered == "z":
        return Transition(state=state, history=REDO if event.shift_key else UNDO)
    if event.command and lowered == "y":
        return Transition(state=state, history=REDO)
    if lowered == "g" and not event.command:
        return Transition(state=state.model_copy(update={"snap": not state.snap}))

    if key in ("Delete", "Backspace"):
        if state.gesture is not None:
            return _unchanged(state)
        if state.selection.node_id is not None:
            return _remove_node(state, state.selection.node_id)
        if state.selection.edge_id is not None:
            return _remove_edge(state, state.selection.edge_id)

    return _unchanged(state)


# --- Toolbar ---

def _on_toggle_add_node(state: WorldState, event: ev.ToggleAddNode) -> Transition:
    if state.gesture is not None:
        return _unchanged(state)
    mode = Idle() if isinstance(state.mode, PlacingNode) else PlacingNode()
    return Transition(state=state.model_copy(update={"mode": mode}))


def _on_toggle_connect(state: WorldState, event: ev.ToggleConnect) -> Transition:
    if state.gesture is not None:
        return _unchanged(state)
    mode = Idle() if isinstance(state.mode, Connecting) else Connecting()
    return Transition(state=state.model_copy(update={"mode": mode}))


def _on_toggle_snap(state: WorldState, event: ev.ToggleSnap) -> Transition:
    return Transition(state=state.model_copy(update={"snap": not state.snap}))


def _on_reset_view(state: WorldState, event: ev.ResetView) -> Transition:
    reset = ViewTransform()
    if state.transform == reset:
        return _unchanged(state)
    return Transition(state=state.model_copy(update={"transform": reset}), commit=state)


# --- Graph edits ---

def _remove_node(state: WorldState, node_id: str) -> Transition:
    removed = delete_node(state, node_id)
    if removed is state:
        return _unchanged(state)
    return Transition(state=removed.model_copy(update={"selection": Selection()}), commit=state)


def _remove_edge(state: WorldState, edge_id: str) -> Transition:
    removed = delete_edge(state, edge_id)
    if removed is state:
        return _unchanged(state)
    return Transition(state=removed.model_copy(update={"selection": Selection()}), commit=state)


def _on_update_node(state: WorldState, event: ev.UpdateNode) -> Transition:
    closed = state
    if state.editing_node_id == event.node_id:
        closed = state.model_copy(update={"editing_node_id": None})
    node = get_node(state, event.node_id)
    if node is None:
        return Transition(state=closed)

    # A blank label keeps the current name
    name = (event.name or "").strip() or None
    updated = update_node(
        closed, event.node_id,
        name=name, color=event.color, size=event.size, x=event.x, y=event.y,
    )
    if updated.nodes == state.nodes:
        return Transition(state=closed)
    return Transition(state=updated, commit=state)


def _on_close_node_form(state: WorldState, event: ev.CloseNodeForm) -> Transition:
    return Transition(state=state.model_copy(update={"editing_node_id": None}))


def _on_create_node(state: WorldState, event: ev.CreateNode) -> Transition:
    position = Point(x=event.x, y=event.y)
    if state.snap:
        position = snap_point(position)
    created_state, node = add_node(state, position, name=event.name, color=event.color, size=event.size)
    return Transition(state=created_state, commit=state, created_id=node.id)


def _on_remove_node(state: WorldState, event: ev.RemoveNode) -> Transition:
    return _remove_node(state, event.node_id)


def _on_create_edge(state: WorldState, event: ev.CreateEdge) -> Transition:
    connected, edge = add_edge(state, event.from_id, event.to_id)
    if edge is None:
        return _unchanged(state)
    return Transition(state=connected, commit=state, created_id=edge.id)


def _on_remove_edge(state: WorldState, event: ev.RemoveEdge) -> Transition:
    return _remove_edge(state, event.edge_id)


_HANDLERS: dict[type, Callable[[WorldState, object], Transition]] = {
    ev.PointerDown: _on_pointer_down,
    ev.PointerMove: _on_pointer_move,
    ev.PointerUp: _on_pointer_up,
    ev.PointerCancel: _on_pointer_up,
    ev.Wheel: _on_wheel,
    ev.KeyDown: _on_key_down,
    ev.DoubleClick: _on_double_click,
    ev.ToggleAddNode: _on_toggle_add_node,
    ev.ToggleConnect: _on_toggle_connect,
    ev.ToggleSnap: _on_toggle_snap,
    ev.ResetView: _on_reset_view,
    ev.UpdateNode: _on_update_node,
    ev.CloseNodeForm: _on_close_node_form,
    ev.CreateNode: _on_create_node,
    ev.RemoveNode: _on_remove_node,
    ev.CreateEdge: _on_create_edge,
    ev.RemoveEdge: _on_remove_edge,
}


def reduce(state: WorldState, event) -> Transition:
    """Feed one event to the state machine."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown event type: {type(event).__name__}")
    transition = handler(state, event)
    if transition.state is not state:
        logger.debug("%s -> mode=%s", event.type, transition.state.mode.kind)
    return transition
