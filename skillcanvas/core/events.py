"""
Input events understood by the interaction state machine.

Pointer and wheel coordinates are raw screen space, relative to the canvas
viewport's top-left corner. The rendering surface does no hit testing;
the core resolves what is under the pointer itself.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .models import NodeColor, NodeSize


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- Pointer / keyboard ---

class PointerDown(_Event):
    type: Literal["pointer-down"] = "pointer-down"
    x: float
    y: float
    button: int = 0              # 0 = primary
    pointer_type: str = "mouse"  # mouse, pen, touch

    @property
    def is_primary(self) -> bool:
        # Pen and touch contacts are always primary
        return self.pointer_type != "mouse" or self.button == 0


class PointerMove(_Event):
    type: Literal["pointer-move"] = "pointer-move"
    x: float
    y: float


class PointerUp(_Event):
    type: Literal["pointer-up"] = "pointer-up"
    x: float = 0.0
    y: float = 0.0


class PointerCancel(_Event):
    type: Literal["pointer-cancel"] = "pointer-cancel"


class Wheel(_Event):
    type: Literal["wheel"] = "wheel"
    x: float
    y: float
    delta_y: float
    ctrl_key: bool = False
    meta_key: bool = False


class KeyDown(_Event):
    type: Literal["key-down"] = "key-down"
    key: str
    ctrl_key: bool = False
    meta_key: bool = False
    shift_key: bool = False

    @property
    def command(self) -> bool:
        """Ctrl on Linux/Windows, Cmd on macOS."""
        return self.ctrl_key or self.meta_key


class DoubleClick(_Event):
    type: Literal["double-click"] = "double-click"
    x: float
    y: float


# --- Toolbar ---

class ToggleAddNode(_Event):
    type: Literal["toggle-add-node"] = "toggle-add-node"


class ToggleConnect(_Event):
    type: Literal["toggle-connect"] = "toggle-connect"


class ToggleSnap(_Event):
    type: Literal["toggle-snap"] = "toggle-snap"


class ResetView(_Event):
    type: Literal["reset-view"] = "reset-view"


# --- Settings form / scripted edits ---

class UpdateNode(_Event):
    """Save from the settings form (or a scripted edit). Closes the form."""
    type: Literal["update-node"] = "update-node"
    node_id: str
    name: Optional[str] = None
    color: Optional[NodeColor] = None
    size: Optional[NodeSize] = None
    x: Optional[float] = None
    y: Optional[float] = None


class CloseNodeForm(_Event):
    type: Literal["close-node-form"] = "close-node-form"


class CreateNode(_Event):
    """Place a node at a world position without going through the pointer."""
    type: Literal["create-node"] = "create-node"
    x: float
    y: float
    name: Optional[str] = None
    color: Optional[NodeColor] = None
    size: Optional[NodeSize] = None


class RemoveNode(_Event):
    type: Literal["remove-node"] = "remove-node"
    node_id: str


class CreateEdge(_Event):
    type: Literal["create-edge"] = "create-edge"
    from_id: str
    to_id: str


class RemoveEdge(_Event):
    type: Literal["remove-edge"] = "remove-edge"
    edge_id: str


Event = Annotated[
    Union[
        PointerDown, PointerMove, PointerUp, PointerCancel, Wheel, KeyDown, DoubleClick,
        ToggleAddNode, ToggleConnect, ToggleSnap, ResetView,
        UpdateNode, CloseNodeForm, CreateNode, RemoveNode, CreateEdge, RemoveEdge,
    ],
    Field(discriminator="type"),
]
