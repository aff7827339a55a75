from __future__ import annotations

import logging
import sched
import time
from typing import Callable

from impact_bubbles.state import DateWindow

LOGGER = logging.getLogger(__name__)


def advance_window(window: DateWindow, step: int) -> DateWindow:
    """Slide the window forward by ``step`` positions, keeping its width."""
    width = window.end_index - window.start_index
    new_start = min(window.start_index + step, window.max_index - width)
    new_end = min(window.end_index + step, window.max_index)
    return window.with_range(new_start, new_end)


def at_end(window: DateWindow) -> bool:
    return window.end_index >= window.max_index


class PlaybackController:
    """Timed auto-advance of a date window driven by a single-threaded scheduler.

    Each tick slides the window and hands it to ``on_advance``. Playback stops on
    its own once the window reaches the last available date; ``stop`` cancels the
    pending tick at any point and ``start`` resumes from the current window.
    """

    def __init__(
        self,
        window: DateWindow,
        on_advance: Callable[[DateWindow], None],
        *,
        step: int = 10,
        interval_seconds: float = 0.1,
        scheduler: sched.scheduler | None = None,
    ) -> None:
        if step < 1:
            raise ValueError("step must be >= 1")
        self.window = window
        self.on_advance = on_advance
        self.step = step
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or sched.scheduler(time.monotonic, time.sleep)
        self._pending: sched.Event | None = None
        self._running = False

    @property
    def is_playing(self) -> bool:
        return self._running

    def start(self) -> None:
        if self.is_playing or self.window.is_empty:
            return
        if at_end(self.window):
            LOGGER.debug("Playback already at %s; nothing to advance", self.window.end_date)
            return
        self._running = True
        self._schedule()

    def stop(self) -> None:
        self._running = False
        if self._pending is not None and self._pending in self.scheduler.queue:
            self.scheduler.cancel(self._pending)
        self._pending = None

    def toggle(self) -> None:
        if self.is_playing:
            self.stop()
        else:
            self.start()

    def run(self) -> None:
        """Block until playback finishes or is stopped from a callback."""
        self.start()
        self.scheduler.run()

    def _schedule(self) -> None:
        self._pending = self.scheduler.enter(self.interval_seconds, 1, self._tick)

    def _tick(self) -> None:
        self._pending = None
        if not self._running:
            return
        self.window = advance_window(self.window, self.step)
        self.on_advance(self.window)
        if not self._running or self._pending is not None:
            return
        if at_end(self.window):
            LOGGER.debug("Playback reached %s; stopping", self.window.end_date)
            self._running = False
            return
        self._schedule()
