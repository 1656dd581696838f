"""Tests for screen/world conversion, anchored zoom, snapping and hit testing."""

import pytest

from skillcanvas.core.geometry import (
    clamp_zoom,
    distance_to_segment,
    edge_at,
    node_at,
    pan_by,
    screen_to_world,
    snap_point,
    snap_to_grid,
    world_to_screen,
    zoom_at,
)
from skillcanvas.core.models import Edge, Node, NodeSize, Point, ViewTransform


class TestTransforms:
    def test_identity(self):
        p = screen_to_world(120, 80, ViewTransform())
        assert (p.x, p.y) == (120, 80)

    def test_round_trip(self):
        t = ViewTransform(pan_x=37.5, pan_y=-12, zoom=1.6)
        p = screen_to_world(200, 150, t)
        assert world_to_screen(p, t) == pytest.approx((200, 150))

    def test_pan_is_screen_space(self):
        t = pan_by(ViewTransform(zoom=0.5), 10, -5)
        assert (t.pan_x, t.pan_y, t.zoom) == (10, -5, 0.5)

    def test_zoom_clamped_on_construction(self):
        assert ViewTransform(zoom=10).zoom == 2.0
        assert ViewTransform(zoom=0.01).zoom == 0.25
        assert clamp_zoom(1.3) == 1.3


class TestZoomAt:
    """The world point under the cursor stays under the cursor."""

    @pytest.mark.parametrize("direction", [1, -1, 0])
    @pytest.mark.parametrize("start", [
        ViewTransform(),
        ViewTransform(pan_x=-300, pan_y=140, zoom=0.8),
        ViewTransform(pan_x=55, pan_y=-20, zoom=1.95),
        ViewTransform(pan_x=10, pan_y=10, zoom=0.26),
    ])
    def test_anchor_preserved(self, start, direction):
        sx, sy = 413.0, 227.0
        before = screen_to_world(sx, sy, start)
        after = screen_to_world(sx, sy, zoom_at(sx, sy, start, direction))
        assert after.x == pytest.approx(before.x, abs=1e-6)
        assert after.y == pytest.approx(before.y, abs=1e-6)

    def test_wheel_down_zooms_out(self):
        assert zoom_at(0, 0, ViewTransform(), 1).zoom == pytest.approx(1 / 1.1)

    def test_wheel_up_zooms_in(self):
        assert zoom_at(0, 0, ViewTransform(), -1).zoom == pytest.approx(1.1)

    def test_zero_direction_keeps_view(self):
        t = ViewTransform(pan_x=3, pan_y=4, zoom=1.2)
        assert zoom_at(50, 60, t, 0) == t

    def test_repeated_zoom_stays_in_bounds(self):
        t = ViewTransform()
        for _ in range(50):
            t = zoom_at(100, 100, t, -1)
        assert t.zoom == 2.0
        for _ in range(100):
            t = zoom_at(100, 100, t, 1)
        assert t.zoom == 0.25


class TestSnap:
    @pytest.mark.parametrize("value,expected", [
        (59, 40), (61, 80), (20, 40), (19.9, 0), (-21, -40), (-20, 0), (0, 0), (400, 400),
    ])
    def test_snap_to_grid(self, value, expected):
        assert snap_to_grid(value) == expected

    def test_custom_step(self):
        assert snap_to_grid(14, step=10) == 10

    def test_snap_point(self):
        assert snap_point(Point(x=59, y=-21)) == Point(x=40, y=-40)


class TestHitTesting:
    def test_node_hit_inside_radius(self):
        nodes = [Node(id="a", x=100, y=100)]
        assert node_at(nodes, Point(x=131, y=100)).id == "a"
        assert node_at(nodes, Point(x=133, y=100)) is None

    def test_node_radius_scales_with_size(self):
        nodes = [Node(id="a", x=0, y=0, size=NodeSize.LARGE)]
        assert node_at(nodes, Point(x=60, y=0)).id == "a"

    def test_topmost_node_wins(self):
        nodes = [Node(id="below", x=0, y=0), Node(id="above", x=10, y=0)]
        assert node_at(nodes, Point(x=5, y=0)).id == "above"

    def test_distance_to_segment(self):
        a, b = Point(x=0, y=0), Point(x=10, y=0)
        assert distance_to_segment(Point(x=5, y=3), a, b) == pytest.approx(3)
        assert distance_to_segment(Point(x=13, y=4), a, b) == pytest.approx(5)
        assert distance_to_segment(Point(x=3, y=4), a, a) == pytest.approx(5)

    def test_edge_hit_tolerance(self):
        nodes = [Node(id="a", x=0, y=0), Node(id="b", x=200, y=0)]
        edges = [Edge(id="e", from_id="a", to_id="b")]
        assert edge_at(edges, nodes, Point(x=100, y=5)).id == "e"
        assert edge_at(edges, nodes, Point(x=100, y=7)) is None

    def test_edge_tolerance_is_screen_pixels(self):
        nodes = [Node(id="a", x=0, y=0), Node(id="b", x=200, y=0)]
        edges = [Edge(id="e", from_id="a", to_id="b")]
        # At half zoom 6 screen pixels cover 12 world units
        assert edge_at(edges, nodes, Point(x=100, y=11), zoom=0.5).id == "e"

    def test_edge_with_missing_endpoint_ignored(self):
        edges = [Edge(id="e", from_id="a", to_id="ghost")]
        assert edge_at(edges, [Node(id="a")], Point(x=0, y=0)) is None
