"""
Geometry helpers - screen/world conversion, anchored zoom, grid snapping
and hit testing.

The world layer is rendered with `translate(panX, panY) scale(zoom)` around
the top-left origin, so:

    screen = world * zoom + pan
    world  = (screen - pan) / zoom

All functions here are pure.
"""

import math
from typing import Iterable, Optional

from .models import ZOOM_MAX, ZOOM_MIN, Edge, Node, Point, ViewTransform

# Default geometry parameters
GRID_STEP = 40
ZOOM_STEP = 1.1          # Multiplicative step per wheel tick
EDGE_HIT_TOLERANCE = 6.0  # Screen pixels either side of an edge line


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def clamp_zoom(zoom: float) -> float:
    return clamp(zoom, ZOOM_MIN, ZOOM_MAX)


def screen_to_world(sx: float, sy: float, transform: ViewTransform) -> Point:
    """Map a viewport-relative pointer position to world coordinates."""
    return Point(
        x=(sx - transform.pan_x) / transform.zoom,
        y=(sy - transform.pan_y) / transform.zoom,
    )


def world_to_screen(point: Point, transform: ViewTransform) -> tuple[float, float]:
    """Map a world position to viewport coordinates (the render transform)."""
    return (
        point.x * transform.zoom + transform.pan_x,
        point.y * transform.zoom + transform.pan_y,
    )


def zoom_at(sx: float, sy: float, transform: ViewTransform, direction: float) -> ViewTransform:
    """
    Zoom one step around a cursor position.

    The world point under (sx, sy) stays under (sx, sy) after the zoom,
    including when the new zoom hits a clamp bound.

    Args:
        sx, sy: Cursor position in screen space
        transform: Current view transform
        direction: > 0 zooms out (wheel down), < 0 zooms in, 0 leaves zoom unchanged

    Returns:
        A new ViewTransform
    """
    anchor = screen_to_world(sx, sy, transform)

    if direction > 0:
        factor = 1 / ZOOM_STEP
    elif direction < 0:
        factor = ZOOM_STEP
    else:
        factor = 1.0
    new_zoom = clamp_zoom(transform.zoom * factor)

    # Solve pan' so that (sx - pan') / new_zoom == anchor
    return ViewTransform(
        pan_x=sx - anchor.x * new_zoom,
        pan_y=sy - anchor.y * new_zoom,
        zoom=new_zoom,
    )


def pan_by(transform: ViewTransform, dx: float, dy: float) -> ViewTransform:
    """Translate the view by a screen-space delta (independent of zoom)."""
    return ViewTransform(
        pan_x=transform.pan_x + dx,
        pan_y=transform.pan_y + dy,
        zoom=transform.zoom,
    )


def snap_to_grid(value: float, step: float = GRID_STEP) -> float:
    """Round to the nearest multiple of step."""
    # math.floor(x + 0.5) rounds halves up, matching the canvas grid lines
    return math.floor(value / step + 0.5) * step


def snap_point(point: Point, step: float = GRID_STEP) -> Point:
    return Point(x=snap_to_grid(point.x, step), y=snap_to_grid(point.y, step))


# --- Hit testing ---

def node_at(nodes: Iterable[Node], point: Point) -> Optional[Node]:
    """
    Find the node under a world point.

    Later nodes are drawn on top, so the last matching node wins.
    """
    hit = None
    for node in nodes:
        if math.hypot(point.x - node.x, point.y - node.y) <= node.radius:
            hit = node
    return hit


def distance_to_segment(p: Point, a: Point, b: Point) -> float:
    """Shortest distance from p to the segment a-b."""
    dx = b.x - a.x
    dy = b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(p.x - a.x, p.y - a.y)
    t = clamp(((p.x - a.x) * dx + (p.y - a.y) * dy) / length_sq, 0.0, 1.0)
    return math.hypot(p.x - (a.x + t * dx), p.y - (a.y + t * dy))


def edge_at(
    edges: Iterable[Edge],
    nodes: Iterable[Node],
    point: Point,
    zoom: float = 1.0,
    tolerance: float = EDGE_HIT_TOLERANCE,
) -> Optional[Edge]:
    """
    Find the edge whose line passes within `tolerance` screen pixels of a
    world point. Edge strokes do not scale with zoom, so the tolerance is
    converted to world units.
    """
    by_id = {n.id: n for n in nodes}
    limit = tolerance / zoom
    hit = None
    for edge in edges:
        a = by_id.get(edge.from_id)
        b = by_id.get(edge.to_id)
        if a is None or b is None:
            continue
        if distance_to_segment(point, a.position, b.position) <= limit:
            hit = edge
    return hit
