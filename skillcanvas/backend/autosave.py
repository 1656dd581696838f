"""
Trailing-edge debounce for autosave.

Every change calls `trigger()`, which cancels the pending save (if any) and
schedules a new one `delay` seconds out. Only the last change in a quiet
period is ever written.

Scheduling is pluggable: the default uses the running asyncio loop's
`call_later`, so the save runs on the same thread as every other mutation.
"""

import asyncio
import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None:
        ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def loop_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    """Schedule on the running event loop (must be called from inside it)."""
    return asyncio.get_running_loop().call_later(delay, callback)


class Debouncer:
    """A cancellable deferred call, restarted on every trigger."""

    def __init__(self, delay: float, callback: Callable[[], None], scheduler: Optional[Scheduler] = None):
        self._delay = delay
        self._callback = callback
        self._scheduler = scheduler or loop_scheduler
        self._handle: Optional[Cancellable] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self):
        """(Re)start the timer."""
        self.cancel()
        self._handle = self._scheduler(self._delay, self._fire)

    def cancel(self):
        """Drop the pending call, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self):
        """Run the pending call now instead of waiting for the timer."""
        if self._handle is not None:
            self.cancel()
            self._run()

    def _fire(self):
        self._handle = None
        self._run()

    def _run(self):
        try:
            self._callback()
        except Exception:
            logger.exception("Autosave failed")
