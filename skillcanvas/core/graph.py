"""
Graph store - node and edge mutations over WorldState.

Every operation is a pure transformation: it returns a new WorldState and
never mutates its input. Untouched nodes and edges are shared with the
input and keep their insertion order.

Invalid mutations (unknown ids, self-loops, duplicate edges) are silently
rejected by returning the input state unchanged. They come from ordinary
racing UI gestures, not programmer error.
"""

import logging
from typing import Any, Optional

from .errors import DuplicateIdError
from .models import Edge, Node, Point, Selection, WorldState, generate_edge_id, generate_node_id

logger = logging.getLogger(__name__)

NODE_FIELDS = ("name", "color", "size", "x", "y")


# --- Lookups ---

def get_node(state: WorldState, node_id: Optional[str]) -> Optional[Node]:
    """Get a node by ID."""
    for node in state.nodes:
        if node.id == node_id:
            return node
    return None


def get_edge(state: WorldState, edge_id: Optional[str]) -> Optional[Edge]:
    """Get an edge by ID."""
    for edge in state.edges:
        if edge.id == edge_id:
            return edge
    return None


def edges_for_node(state: WorldState, node_id: str) -> list[Edge]:
    """Get all edges incident to a node."""
    return [e for e in state.edges if e.touches(node_id)]


def has_edge_between(state: WorldState, a: str, b: str) -> bool:
    """True if an edge connects a and b in either direction."""
    pair = frozenset((a, b))
    return any(e.pair == pair for e in state.edges)


# --- Node Operations ---

def add_node(
    state: WorldState,
    position: Point,
    node_id: Optional[str] = None,
    **attrs: Any,
) -> tuple[WorldState, Node]:
    """
    Append a new node at a world position.

    Args:
        state: Current world state
        position: World-space center of the node
        node_id: Explicit id (generated when omitted)
        **attrs: name / color / size

    Returns:
        (new state, created node)

    Raises:
        DuplicateIdError: if node_id is already used by a node
    """
    if node_id is None:
        node_id = generate_node_id()
    if get_node(state, node_id) is not None:
        raise DuplicateIdError(f"Node id already in use: {node_id}")

    fields = {k: v for k, v in attrs.items() if k in ("name", "color", "size") and v is not None}
    node = Node(id=node_id, x=position.x, y=position.y, **fields)
    return state.model_copy(update={"nodes": state.nodes + (node,)}), node


def update_node(state: WorldState, node_id: str, **partial: Any) -> WorldState:
    """Merge the provided fields into a node. No-op if the node is unknown."""
    node = get_node(state, node_id)
    if node is None:
        logger.debug("update_node: unknown node %s", node_id)
        return state

    changes = {k: v for k, v in partial.items() if k in NODE_FIELDS and v is not None}
    if not changes:
        return state

    # Re-validate so string colors/sizes become enums
    updated = Node.model_validate({**node.model_dump(), **changes})
    if updated == node:
        return state
    nodes = tuple(updated if n.id == node_id else n for n in state.nodes)
    return state.model_copy(update={"nodes": nodes})


def move_node(state: WorldState, node_id: str, x: float, y: float) -> WorldState:
    """Set a node's position."""
    return update_node(state, node_id, x=x, y=y)


def delete_node(state: WorldState, node_id: str) -> WorldState:
    """
    Remove a node and every edge incident to it in a single step.

    A selection or open settings form pointing at the node is cleared too.
    """
    if get_node(state, node_id) is None:
        logger.debug("delete_node: unknown node %s", node_id)
        return state

    nodes = tuple(n for n in state.nodes if n.id != node_id)
    edges = tuple(e for e in state.edges if not e.touches(node_id))

    update: dict[str, Any] = {"nodes": nodes, "edges": edges}
    removed_edges = {e.id for e in state.edges} - {e.id for e in edges}
    if state.selection.node_id == node_id or state.selection.edge_id in removed_edges:
        update["selection"] = Selection()
    if state.editing_node_id == node_id:
        update["editing_node_id"] = None
    return state.model_copy(update=update)


# --- Edge Operations ---

def add_edge(
    state: WorldState,
    from_id: str,
    to_id: str,
    edge_id: Optional[str] = None,
) -> tuple[WorldState, Optional[Edge]]:
    """
    Connect two nodes.

    Returns (state, None) unchanged when the edge would be a self-loop,
    when either endpoint is unknown, or when the pair is already connected
    in either direction.
    """
    if from_id == to_id:
        logger.debug("add_edge: rejected self-loop on %s", from_id)
        return state, None
    if get_node(state, from_id) is None or get_node(state, to_id) is None:
        logger.debug("add_edge: unknown endpoint %s -> %s", from_id, to_id)
        return state, None
    if has_edge_between(state, from_id, to_id):
        logger.debug("add_edge: %s and %s already connected", from_id, to_id)
        return state, None

    if edge_id is None:
        edge_id = generate_edge_id()
    if get_edge(state, edge_id) is not None:
        raise DuplicateIdError(f"Edge id already in use: {edge_id}")

    edge = Edge(id=edge_id, from_id=from_id, to_id=to_id)
    return state.model_copy(update={"edges": state.edges + (edge,)}), edge


def delete_edge(state: WorldState, edge_id: str) -> WorldState:
    """Remove an edge by ID. No-op if absent."""
    if get_edge(state, edge_id) is None:
        return state

    update: dict[str, Any] = {"edges": tuple(e for e in state.edges if e.id != edge_id)}
    if state.selection.edge_id == edge_id:
        update["selection"] = Selection()
    return state.model_copy(update=update)
