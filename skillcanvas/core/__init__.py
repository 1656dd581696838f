"""
SkillCanvas Core - world state, graph rules, interaction, history and codec.

This package is the single source of truth for editor behavior. The backend
API and the CLI only forward events into it and project its state out.
"""

from .models import (
    # Enums
    NodeColor,
    NodeSize,
    # Core models
    Point,
    Node,
    Edge,
    ViewTransform,
    Idle,
    PlacingNode,
    DraggingNode,
    Connecting,
    InteractionMode,
    Gesture,
    Selection,
    WorldState,
    ProjectMeta,
    # Request models (for API)
    CreateNodeRequest,
    UpdateNodeRequest,
    CreateEdgeRequest,
)

from .errors import (
    SkillCanvasError,
    SnapshotError,
    SnapshotFormatError,
    SnapshotVersionError,
    DuplicateIdError,
)
from .geometry import screen_to_world, world_to_screen, zoom_at, snap_to_grid, GRID_STEP
from .graph import add_node, update_node, delete_node, add_edge, delete_edge
from .history import HistoryManager, HistoryEntry
from .interaction import Transition, reduce
from .codec import serialize, deserialize, SNAPSHOT_VERSION
from .validation import find_issues, repair_graph, validation_summary, ValidationIssue, IssueSeverity

__all__ = [
    # Enums
    "NodeColor",
    "NodeSize",
    # Models
    "Point",
    "Node",
    "Edge",
    "ViewTransform",
    "Idle",
    "PlacingNode",
    "DraggingNode",
    "Connecting",
    "InteractionMode",
    "Gesture",
    "Selection",
    "WorldState",
    "ProjectMeta",
    # Request models
    "CreateNodeRequest",
    "UpdateNodeRequest",
    "CreateEdgeRequest",
    # Errors
    "SkillCanvasError",
    "SnapshotError",
    "SnapshotFormatError",
    "SnapshotVersionError",
    "DuplicateIdError",
    # Geometry
    "screen_to_world",
    "world_to_screen",
    "zoom_at",
    "snap_to_grid",
    "GRID_STEP",
    # Graph store
    "add_node",
    "update_node",
    "delete_node",
    "add_edge",
    "delete_edge",
    # History
    "HistoryManager",
    "HistoryEntry",
    # Interaction
    "Transition",
    "reduce",
    # Codec
    "serialize",
    "deserialize",
    "SNAPSHOT_VERSION",
    # Validation
    "find_issues",
    "repair_graph",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
]
