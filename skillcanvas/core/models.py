"""
Core data models for the canvas world state.

These models define the canonical schema for the editor:
- Nodes placed in world space with a name, color and size
- Edges connecting two distinct nodes (undirected uniqueness)
- The view transform (pan offset + zoom factor)
- The interaction mode, a tagged union carrying only the data its mode needs
- Project metadata for persisted snapshots

Every model is frozen. Graph operations return new WorldState values that
share untouched nodes and edges with the previous one, so history entries
never need a deep copy.

Field Naming Convention:
- Python attributes are snake_case (`from_id`, `pan_x`, `created_at`)
- JSON serialization uses the camelCase aliases (`fromId`, `panX`, `createdAt`)
- For backward compatibility, edges also accept `from`/`to` and
  `source`/`target` on input
"""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

ZOOM_MIN = 0.25
ZOOM_MAX = 2.0

NODE_BASE_DIAMETER = 64  # Rendered diameter of a small node, in world units


class NodeColor(str, Enum):
    """Color palette for nodes."""
    SKY = "sky"
    EMERALD = "emerald"
    AMBER = "amber"
    ROSE = "rose"
    VIOLET = "violet"


class NodeSize(str, Enum):
    """Node sizes; the diameter is NODE_BASE_DIAMETER times the factor."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"

    @property
    def factor(self) -> float:
        return SIZE_FACTORS[self]


SIZE_FACTORS = {
    NodeSize.SMALL: 1.0,
    NodeSize.MEDIUM: 1.5,
    NodeSize.LARGE: 2.0,
}


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"n{uuid.uuid4().hex[:8]}"


def generate_edge_id() -> str:
    """Generate a unique edge ID."""
    return f"e{uuid.uuid4().hex[:8]}"


def generate_project_id() -> str:
    """Generate a unique project ID."""
    return f"proj_{uuid.uuid4().hex[:8]}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Point(BaseModel):
    """A position in world space."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class Node(BaseModel):
    """A node on the canvas. (x, y) is the node's center."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_node_id)
    x: float = 0.0
    y: float = 0.0
    name: str = "New Node"
    color: NodeColor = NodeColor.SKY
    size: NodeSize = NodeSize.SMALL

    @field_validator("color", "size", mode="before")
    @classmethod
    def default_missing(cls, value: Any, info) -> Any:
        """
        Older documents may omit (or null out) the optional style fields, and
        newer ones may use values this build does not know. Both fall back
        to the default.
        """
        enum, default = (NodeColor, NodeColor.SKY) if info.field_name == "color" else (NodeSize, NodeSize.SMALL)
        if value is None:
            return default
        try:
            return enum(value)
        except (TypeError, ValueError):
            logger.debug("Unknown node %s %r, using %s", info.field_name, value, default.value)
            return default

    @property
    def position(self) -> Point:
        return Point(x=self.x, y=self.y)

    @property
    def radius(self) -> float:
        """Rendered radius in world units."""
        return NODE_BASE_DIAMETER * self.size.factor / 2


class Edge(BaseModel):
    """
    An edge connecting two nodes.

    Uses `from_id` and `to_id` (json: `fromId`/`toId`) as canonical names.
    Direction is kept for display only; uniqueness is over the unordered pair.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=generate_edge_id)
    from_id: str = Field(alias="fromId")
    to_id: str = Field(alias="toId")

    @model_validator(mode="before")
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' and 'source'/'target' fields."""
        if isinstance(data, dict):
            data = dict(data)
            for legacy in ("from", "source"):
                if legacy in data and "fromId" not in data and "from_id" not in data:
                    data["fromId"] = data.pop(legacy)
            for legacy in ("to", "target"):
                if legacy in data and "toId" not in data and "to_id" not in data:
                    data["toId"] = data.pop(legacy)
        return data

    @property
    def pair(self) -> frozenset[str]:
        """The unordered endpoint pair used for deduplication."""
        return frozenset((self.from_id, self.to_id))

    def touches(self, node_id: str) -> bool:
        return self.from_id == node_id or self.to_id == node_id


class ViewTransform(BaseModel):
    """Pan offset (screen pixels) and zoom factor of the world layer."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pan_x: float = Field(default=0.0, alias="panX")
    pan_y: float = Field(default=0.0, alias="panY")
    zoom: float = 1.0

    @field_validator("pan_x", "pan_y", "zoom", mode="before")
    @classmethod
    def default_missing(cls, value: Any, info) -> Any:
        if value is None:
            return 1.0 if info.field_name == "zoom" else 0.0
        return value

    @field_validator("zoom")
    @classmethod
    def clamp_zoom(cls, value: float) -> float:
        return max(ZOOM_MIN, min(ZOOM_MAX, value))


# --- Interaction modes (tagged union on `kind`) ---

class Idle(BaseModel):
    """No tool active: clicks select, drag nodes, or pan the background."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["idle"] = "idle"


class PlacingNode(BaseModel):
    """Add-node tool: every click on empty canvas places a node."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["placing-node"] = "placing-node"


class DraggingNode(BaseModel):
    """A node is being dragged; `origin` is where the drag started."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["dragging-node"] = "dragging-node"
    node_id: str
    origin: Point


class Connecting(BaseModel):
    """Connect tool: first click picks the source, second click adds the edge."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["connecting"] = "connecting"
    source_id: Optional[str] = None


InteractionMode = Annotated[
    Union[Idle, PlacingNode, DraggingNode, Connecting],
    Field(discriminator="kind"),
]


class Gesture(BaseModel):
    """Pointer-capture scratch data; present only while a gesture is in flight."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["pan", "drag"]
    last: Point  # Last pointer position in screen space


class Selection(BaseModel):
    """The selected node or edge (never both)."""
    model_config = ConfigDict(frozen=True)

    node_id: Optional[str] = None
    edge_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.node_id is None and self.edge_id is None


class WorldState(BaseModel):
    """
    The complete editor state.
    This is the single source of truth; the renderer only ever sees a
    projection of it.
    """
    model_config = ConfigDict(frozen=True)

    transform: ViewTransform = Field(default_factory=ViewTransform)
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    mode: InteractionMode = Field(default_factory=Idle)
    gesture: Optional[Gesture] = None
    selection: Selection = Field(default_factory=Selection)
    editing_node_id: Optional[str] = None  # Node whose settings form is open
    snap: bool = False

    @property
    def form_open(self) -> bool:
        return self.editing_node_id is not None

    @property
    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def to_json_dict(self) -> dict:
        """Read-only projection handed to the rendering surface."""
        return {
            "view": self.transform.model_dump(by_alias=True),
            "nodes": [n.model_dump(mode="json") for n in self.nodes],
            "edges": [e.model_dump(by_alias=True) for e in self.edges],
            "mode": self.mode.model_dump(mode="json"),
            "gesture": self.gesture.kind if self.gesture else None,
            "selection": self.selection.model_dump(),
            "editing_node_id": self.editing_node_id,
            "snap": self.snap,
        }


class ProjectMeta(BaseModel):
    """Metadata about a persisted project."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=generate_project_id)
    name: str = "Untitled"
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=utc_now, alias="updatedAt")

    def to_json_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


# --- API Request Models ---

class CreateNodeRequest(BaseModel):
    """Request to create a node at a world-space position."""
    x: float = 0.0
    y: float = 0.0
    name: str = "New Node"
    color: NodeColor = NodeColor.SKY
    size: NodeSize = NodeSize.SMALL


class UpdateNodeRequest(BaseModel):
    """Request to update an existing node (partial update)."""
    name: Optional[str] = None
    color: Optional[NodeColor] = None
    size: Optional[NodeSize] = None
    x: Optional[float] = None
    y: Optional[float] = None


class CreateEdgeRequest(BaseModel):
    """Request to connect two nodes."""
    model_config = ConfigDict(populate_by_name=True)

    from_id: str = Field(alias="fromId")
    to_id: str = Field(alias="toId")
