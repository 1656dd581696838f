#!/usr/bin/env python3
"""SkillCanvas CLI - script the running editor backend from the shell."""

import argparse
import json
import os
import sys
from pathlib import Path

import httpx

API_BASE = os.environ.get("SKILLCANVAS_API", "http://127.0.0.1:8765/api")


def _json_out(data):
    print(json.dumps(data))
    sys.exit(0)


def _api_request(method, endpoint, data=None, params=None, content=None):
    """Make a request to the SkillCanvas backend."""
    url = f"{API_BASE}{endpoint}"

    if params:
        params = {k: v for k, v in params.items() if v is not None}

    try:
        with httpx.Client(timeout=30.0) as client:
            response = client.request(method, url, json=data, params=params or None, content=content)
    except httpx.RequestError as e:
        _json_out({"status": "error", "error": f"Connection failed: {e}. Is the skillcanvas backend running?"})

    if response.status_code >= 400:
        try:
            detail = response.json().get("detail", "Unknown error")
        except json.JSONDecodeError:
            detail = response.text
        _json_out({"status": "error", "error": f"API error ({response.status_code}): {detail}"})

    return response.json()


# ── Service ──────────────────────────────────────────────────────────────────

def cmd_serve(args):
    from skillcanvas.backend.main import main as serve
    serve()


# ── World ────────────────────────────────────────────────────────────────────

def cmd_get_world(args):
    _json_out(_api_request("GET", "/world"))


def cmd_validate(args):
    _json_out(_api_request("GET", "/world/validate"))


def cmd_toggle_snap(args):
    _json_out(_api_request("POST", "/snap"))


def cmd_reset_view(args):
    _json_out(_api_request("POST", "/view/reset"))


def cmd_send_event(args):
    try:
        event = json.loads(args.event)
    except json.JSONDecodeError as e:
        _json_out({"status": "error", "error": f"Event is not valid JSON: {e}"})
    _json_out(_api_request("POST", "/events", data=event))


# ── Nodes ────────────────────────────────────────────────────────────────────

def cmd_add_node(args):
    _json_out(_api_request("POST", "/nodes", data={
        "name": args.name,
        "x": args.x,
        "y": args.y,
        "color": args.color,
        "size": args.size,
    }))


def cmd_update_node(args):
    updates = {}
    if args.name is not None:
        updates["name"] = args.name
    if args.x is not None:
        updates["x"] = args.x
    if args.y is not None:
        updates["y"] = args.y
    if args.color is not None:
        updates["color"] = args.color
    if args.size is not None:
        updates["size"] = args.size

    _json_out(_api_request("PATCH", f"/nodes/{args.node_id}", data=updates))


def cmd_delete_node(args):
    _json_out(_api_request("DELETE", f"/nodes/{args.node_id}"))


# ── Edges ────────────────────────────────────────────────────────────────────

def cmd_connect(args):
    _json_out(_api_request("POST", "/edges", data={"fromId": args.from_id, "toId": args.to_id}))


def cmd_delete_edge(args):
    _json_out(_api_request("DELETE", f"/edges/{args.edge_id}"))


# ── History ──────────────────────────────────────────────────────────────────

def cmd_undo(args):
    _json_out(_api_request("POST", "/undo"))


def cmd_redo(args):
    _json_out(_api_request("POST", "/redo"))


# ── Projects ─────────────────────────────────────────────────────────────────

def cmd_list_projects(args):
    _json_out(_api_request("GET", "/projects"))


def cmd_new(args):
    _json_out(_api_request("POST", "/projects/new", params={"name": args.name}))


def cmd_open(args):
    _json_out(_api_request("POST", "/projects/open", data={"name": args.name}))


def cmd_save(args):
    _json_out(_api_request("POST", "/projects/save", data={"name": args.name}))


def cmd_export(args):
    document = _api_request("GET", "/projects/export")
    path = Path(args.output or f"{document['meta']['name']}.json")
    path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    _json_out({"success": True, "path": str(path)})


def cmd_import(args):
    path = Path(args.file_path)
    if not path.exists():
        _json_out({"status": "error", "error": f"File not found: {path}"})
    _json_out(_api_request("POST", "/projects/import", content=path.read_bytes()))


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(description="SkillCanvas CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    # Service
    sub.add_parser("serve")

    # World
    sub.add_parser("get-world")
    sub.add_parser("validate")
    sub.add_parser("toggle-snap")
    sub.add_parser("reset-view")

    p = sub.add_parser("send-event")
    p.add_argument("--event", required=True, help='JSON event, e.g. {"type": "key-down", "key": "Escape"}')

    # Nodes
    p = sub.add_parser("add-node")
    p.add_argument("--name", default="New Node")
    p.add_argument("--x", type=float, default=0)
    p.add_argument("--y", type=float, default=0)
    p.add_argument("--color", default="sky")
    p.add_argument("--size", default="small")

    p = sub.add_parser("update-node")
    p.add_argument("--node-id", required=True)
    p.add_argument("--name", default=None)
    p.add_argument("--x", type=float, default=None)
    p.add_argument("--y", type=float, default=None)
    p.add_argument("--color", default=None)
    p.add_argument("--size", default=None)

    p = sub.add_parser("delete-node")
    p.add_argument("--node-id", required=True)

    # Edges
    p = sub.add_parser("connect")
    p.add_argument("--from-id", required=True)
    p.add_argument("--to-id", required=True)

    p = sub.add_parser("delete-edge")
    p.add_argument("--edge-id", required=True)

    # History
    sub.add_parser("undo")
    sub.add_parser("redo")

    # Projects
    sub.add_parser("list-projects")

    p = sub.add_parser("new")
    p.add_argument("--name", default="Untitled")

    p = sub.add_parser("open")
    p.add_argument("--name", required=True)

    p = sub.add_parser("save")
    p.add_argument("--name", default=None)

    p = sub.add_parser("export")
    p.add_argument("--output", default=None)

    p = sub.add_parser("import")
    p.add_argument("--file-path", required=True)

    args = parser.parse_args(argv)

    cmd_map = {
        "serve": cmd_serve,
        "get-world": cmd_get_world,
        "validate": cmd_validate,
        "toggle-snap": cmd_toggle_snap,
        "reset-view": cmd_reset_view,
        "send-event": cmd_send_event,
        "add-node": cmd_add_node,
        "update-node": cmd_update_node,
        "delete-node": cmd_delete_node,
        "connect": cmd_connect,
        "delete-edge": cmd_delete_edge,
        "undo": cmd_undo,
        "redo": cmd_redo,
        "list-projects": cmd_list_projects,
        "new": cmd_new,
        "open": cmd_open,
        "save": cmd_save,
        "export": cmd_export,
        "import": cmd_import,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
