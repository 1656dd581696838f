"""
SkillCanvas Backend - FastAPI Application

This is the entry point the rendering surface talks to. It provides:
- The read-only world projection (GET /api/world)
- Raw input events in screen space (POST /api/events)
- Toolbar actions, undo/redo, and node/edge edits for the settings form
- Project operations: new, open, save as, export, import
- WebSocket endpoint for real-time updates
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional
from urllib.parse import quote

from fastapi import Body, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, TypeAdapter, ValidationError

from skillcanvas.backend import config
from skillcanvas.backend.canvas_manager import CanvasManager
from skillcanvas.backend.storage import ProjectRepository
from skillcanvas.backend.websocket_manager import WebSocketManager
from skillcanvas.core import events as ev
from skillcanvas.core.errors import SnapshotError
from skillcanvas.core.graph import get_edge, get_node
from skillcanvas.core.models import CreateEdgeRequest, CreateNodeRequest, NodeColor, NodeSize, UpdateNodeRequest
from skillcanvas.core.validation import validation_summary

# Configure logging on import - before anything else logs
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)

_event_adapter = TypeAdapter(ev.Event)


class OpenProjectRequest(BaseModel):
    name: str


class SaveProjectRequest(BaseModel):
    name: Optional[str] = None


def content_disposition(filename: str) -> str:
    """Attachment header safe for any project name (RFC 6266 / 5987)."""
    # Plain filename= must stay latin-1 and must not break out of its quotes
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "_").replace("\\", "_")
    return "attachment; filename=\"%s\"; filename*=UTF-8''%s" % (fallback, quote(filename))


def create_manager() -> CanvasManager:
    """Build a CanvasManager from environment configuration."""
    return CanvasManager(
        ProjectRepository(config.build_store()),
        history_limit=config.HISTORY_LIMIT,
        autosave_delay=config.AUTOSAVE_DELAY,
    )


def create_app(manager: Optional[CanvasManager] = None, ws_manager: Optional[WebSocketManager] = None) -> FastAPI:
    """Create the API around a CanvasManager (a configured one by default)."""
    manager = manager or create_manager()
    ws_manager = ws_manager or WebSocketManager()

    # --- Async change notification ---
    # Bridge between sync CanvasManager callbacks and async WebSocket broadcasts
    change_event = asyncio.Event()
    saved: list[dict] = []

    def on_world_change():
        """Callback for state changes - sets event for async handler."""
        change_event.set()

    def on_project_saved(meta, info: dict):
        saved.append({**info, "updated_at": meta.updated_at.isoformat()})
        change_event.set()

    async def change_broadcaster():
        """Background task that broadcasts changes to WebSocket clients."""
        while True:
            await change_event.wait()
            change_event.clear()
            await ws_manager.notify_world_updated(manager.meta.id)
            while saved:
                await ws_manager.notify_project_saved(**saved.pop(0))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan handler for startup/shutdown tasks."""
        manager.on_change(on_world_change)
        manager.on_save(on_project_saved)
        meta = manager.startup()
        logger.info("Project %r ready", meta.name)

        broadcaster_task = asyncio.create_task(change_broadcaster())

        yield

        broadcaster_task.cancel()
        try:
            await broadcaster_task
        except asyncio.CancelledError:
            pass
        manager.flush()

    app = FastAPI(
        title="SkillCanvas API",
        description="World-state engine for the SkillCanvas node-graph editor",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.manager = manager
    app.state.ws_manager = ws_manager

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _dispatch(event) -> dict:
        transition = manager.dispatch(event)
        return {"success": True, "created_id": transition.created_id, **manager.get_state()}

    # --- Health Check ---

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "connections": ws_manager.connection_count}

    # --- World State ---

    @app.get("/api/world")
    async def get_world():
        """Get the current world projection."""
        return manager.get_state()

    @app.get("/api/world/validate")
    async def validate_world():
        """Report integrity issues in the open graph."""
        issues = manager.validate()
        return {
            "success": True,
            "issues": [issue.to_dict() for issue in issues],
            "summary": validation_summary(issues)
        }

    # --- Input Events ---

    @app.post("/api/events")
    async def post_event(payload: dict[str, Any] = Body(...)):
        """
        Feed one input event to the state machine.

        Pointer and wheel coordinates are screen space, relative to the
        canvas viewport. The `type` field selects the event kind.
        """
        try:
            event = _event_adapter.validate_python(payload)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=f"Invalid event: {e.error_count()} error(s)")
        return _dispatch(event)

    # --- Toolbar ---

    @app.post("/api/mode/add-node")
    async def toggle_add_node():
        """Toggle the add-node tool."""
        return _dispatch(ev.ToggleAddNode())

    @app.post("/api/mode/connect")
    async def toggle_connect():
        """Toggle the connect tool."""
        return _dispatch(ev.ToggleConnect())

    @app.post("/api/snap")
    async def toggle_snap():
        """Toggle grid snapping."""
        return _dispatch(ev.ToggleSnap())

    @app.post("/api/view/reset")
    async def reset_view():
        """Reset pan and zoom."""
        return _dispatch(ev.ResetView())

    # --- Undo/Redo ---

    @app.post("/api/undo")
    async def undo():
        """Undo the last action."""
        if manager.undo() is not None:
            return {"success": True, **manager.get_state()}
        return {"success": False, "message": "Nothing to undo"}

    @app.post("/api/redo")
    async def redo():
        """Redo the last undone action."""
        if manager.redo() is not None:
            return {"success": True, **manager.get_state()}
        return {"success": False, "message": "Nothing to redo"}

    # --- Node Operations ---

    @app.post("/api/nodes")
    async def create_node(request: CreateNodeRequest):
        """Create a node at a world position."""
        transition = manager.dispatch(ev.CreateNode(
            x=request.x,
            y=request.y,
            name=request.name,
            color=request.color,
            size=request.size
        ))
        node = get_node(manager.state, transition.created_id)
        return {"success": True, "node": node.model_dump(mode="json")}

    @app.get("/api/nodes/{node_id}")
    async def get_node_by_id(node_id: str):
        """Get a specific node."""
        node = get_node(manager.state, node_id)
        if node:
            return {"success": True, "node": node.model_dump(mode="json")}
        raise HTTPException(status_code=404, detail="Node not found")

    @app.patch("/api/nodes/{node_id}")
    async def update_node(node_id: str, request: UpdateNodeRequest):
        """Save the settings form for a node."""
        if get_node(manager.state, node_id) is None:
            raise HTTPException(status_code=404, detail="Node not found")
        manager.dispatch(ev.UpdateNode(
            node_id=node_id,
            name=request.name,
            color=request.color,
            size=request.size,
            x=request.x,
            y=request.y
        ))
        return {"success": True, "node": get_node(manager.state, node_id).model_dump(mode="json")}

    @app.delete("/api/nodes/{node_id}")
    async def delete_node(node_id: str):
        """Delete a node and its connected edges."""
        if get_node(manager.state, node_id) is None:
            raise HTTPException(status_code=404, detail="Node not found")
        manager.dispatch(ev.RemoveNode(node_id=node_id))
        return {"success": True}

    @app.post("/api/form/close")
    async def close_form():
        """Close the settings form without saving."""
        return _dispatch(ev.CloseNodeForm())

    # --- Edge Operations ---

    @app.post("/api/edges")
    async def create_edge(request: CreateEdgeRequest):
        """Connect two nodes. Self-loops and duplicates are ignored."""
        transition = manager.dispatch(ev.CreateEdge(from_id=request.from_id, to_id=request.to_id))
        edge = get_edge(manager.state, transition.created_id)
        if edge is None:
            return {"success": False, "message": "Edge not added"}
        return {"success": True, "edge": edge.model_dump(by_alias=True)}

    @app.delete("/api/edges/{edge_id}")
    async def delete_edge(edge_id: str):
        """Delete an edge."""
        if get_edge(manager.state, edge_id) is None:
            raise HTTPException(status_code=404, detail="Edge not found")
        manager.dispatch(ev.RemoveEdge(edge_id=edge_id))
        return {"success": True}

    # --- Enums for Frontend ---

    @app.get("/api/enums/colors")
    async def get_colors():
        """Get available node colors."""
        return {"colors": [c.value for c in NodeColor]}

    @app.get("/api/enums/sizes")
    async def get_sizes():
        """Get available node sizes."""
        return {"sizes": [s.value for s in NodeSize]}

    # --- Project Operations ---

    @app.get("/api/projects")
    async def list_projects():
        """List saved projects."""
        return {
            "success": True,
            "current": manager.project_name,
            "projects": [p.model_dump(by_alias=True) for p in manager.list_projects()]
        }

    @app.post("/api/projects/new")
    async def new_project(name: str = Query(default="Untitled")):
        """Start a new empty project."""
        meta = manager.new_project(name)
        return {"success": True, "project": meta.to_json_dict()}

    @app.post("/api/projects/open")
    async def open_project(request: OpenProjectRequest):
        """Open a saved project by name."""
        if not manager.open_project(request.name):
            raise HTTPException(status_code=404, detail="Could not load project")
        return {"success": True, **manager.get_state()}

    @app.post("/api/projects/save")
    async def save_project(request: SaveProjectRequest):
        """Save the project, optionally under a new name (Save As)."""
        meta = manager.save_project(request.name)
        return {"success": True, "project": meta.to_json_dict()}

    @app.get("/api/projects/export")
    async def export_project():
        """Download the open project as a snapshot document."""
        filename, document = manager.export_project()
        return JSONResponse(
            content=document,
            headers={"Content-Disposition": content_disposition(filename)}
        )

    @app.post("/api/projects/import")
    async def import_project(request: Request):
        """Import a snapshot document (request body) as a new project."""
        body = await request.body()
        try:
            meta = manager.import_project(body)
        except SnapshotError as e:
            raise HTTPException(status_code=400, detail=f"Import failed: {e}")
        return {"success": True, "project": meta.to_json_dict()}

    # --- WebSocket ---

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        WebSocket endpoint for real-time updates.

        Clients connect here to receive world_updated events.
        """
        await ws_manager.connect(websocket)

        try:
            while True:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text('{"type": "pong"}')
        except WebSocketDisconnect:
            await ws_manager.disconnect(websocket)
        except Exception:
            await ws_manager.disconnect(websocket)

    return app


app = create_app()


def main():
    """Run the API with uvicorn."""
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
