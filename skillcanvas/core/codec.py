"""
Persistence codec - versioned project snapshots.

Snapshot layout (JSON):

    { "version": 1,
      "meta": {"id", "name", "createdAt", "updatedAt"},
      "view": {"panX", "panY", "zoom"},
      "nodes": [{"id", "x", "y", "name", "color"?, "size"?}, ...],
      "edges": [{"id", "fromId", "toId"}, ...] }

Loading is strict about the envelope (parseable, object, version 1) and
lenient about content: optional node fields get their defaults and any
edge that breaks a graph invariant is dropped. That repair step is the
recovery path for schema drift in optional fields.
"""

import json
import logging
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

from .errors import SnapshotFormatError, SnapshotVersionError
from .models import Edge, Node, ProjectMeta, ViewTransform, WorldState
from .validation import repair_graph

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class ProjectDocument(BaseModel):
    """Schema of a snapshot document, as read from storage or an import."""
    version: int
    meta: Optional[ProjectMeta] = None
    view: Optional[ViewTransform] = None
    nodes: list[Node] = []
    edges: list[Edge] = []


def serialize(state: WorldState, meta: ProjectMeta) -> dict:
    """Wrap the view transform and graph of `state` into a snapshot dict."""
    return {
        "version": SNAPSHOT_VERSION,
        "meta": meta.to_json_dict(),
        "view": state.transform.model_dump(by_alias=True),
        "nodes": [n.model_dump(mode="json") for n in state.nodes],
        "edges": [e.model_dump(by_alias=True) for e in state.edges],
    }


def dumps(state: WorldState, meta: ProjectMeta, indent: Optional[int] = None) -> str:
    """Serialize straight to JSON text."""
    return json.dumps(serialize(state, meta), indent=indent)


def deserialize(document: Union[str, bytes, dict[str, Any]]) -> tuple[WorldState, ProjectMeta]:
    """
    Build a fresh WorldState from a snapshot.

    Args:
        document: Snapshot as a dict, or as JSON text

    Returns:
        (state, meta). The state is always in idle mode with no gesture,
        selection or open form.

    Raises:
        SnapshotFormatError: unparseable text, not an object, or schema mismatch
        SnapshotVersionError: version is anything other than 1
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SnapshotFormatError(f"Invalid JSON: {e}") from e

    if not isinstance(document, dict):
        raise SnapshotFormatError("Snapshot must be a JSON object")

    version = document.get("version")
    # bool is an int subclass; `true` is not a version
    if isinstance(version, bool) or version != SNAPSHOT_VERSION:
        raise SnapshotVersionError(version)

    try:
        doc = ProjectDocument.model_validate(document)
    except ValidationError as e:
        raise SnapshotFormatError(f"Invalid snapshot: {e.error_count()} schema error(s)") from e

    nodes, edges = repair_graph(doc.nodes, doc.edges)
    dropped = len(doc.edges) - len(edges)
    if dropped:
        logger.debug("Repaired snapshot: dropped %d edge(s)", dropped)

    state = WorldState(
        transform=doc.view or ViewTransform(),
        nodes=nodes,
        edges=edges,
    )
    return state, doc.meta or ProjectMeta()
