"""Shared test helpers - state builders and a manual scheduler for the debouncer."""

from skillcanvas.core import events as ev
from skillcanvas.core.graph import add_edge, add_node
from skillcanvas.core.interaction import reduce
from skillcanvas.core.models import Point, WorldState


def make_state(*positions, **state_fields):
    """Build a WorldState with one node per (x, y) position, ids n0, n1, ..."""
    state = WorldState(**state_fields)
    for i, (x, y) in enumerate(positions):
        state, _ = add_node(state, Point(x=x, y=y), node_id=f"n{i}")
    return state


def connect(state, *pairs):
    """Add edges e0, e1, ... between the given node id pairs."""
    for i, (a, b) in enumerate(pairs):
        state, edge = add_edge(state, a, b, edge_id=f"e{len(state.edges)}")
        assert edge is not None
    return state


def run(state, *events):
    """Feed events through the state machine, returning the final state and every transition."""
    transitions = []
    for event in events:
        transition = reduce(state, event)
        transitions.append(transition)
        state = transition.state
    return state, transitions


def drag(state, start, *moves):
    """Pointer down at `start`, move through `moves`, release at the last one."""
    events = [ev.PointerDown(x=start[0], y=start[1])]
    events += [ev.PointerMove(x=x, y=y) for x, y in moves]
    last = moves[-1] if moves else start
    events.append(ev.PointerUp(x=last[0], y=last[1]))
    return run(state, *events)


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records scheduled calls; tests fire them explicitly."""

    def __init__(self):
        self.handles: list[FakeHandle] = []

    def __call__(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def live(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire_all(self):
        for handle in self.live:
            handle.fired = True
            handle.callback()
