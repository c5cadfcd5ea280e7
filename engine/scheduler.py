from __future__ import annotations
from typing import Any, Callable, Optional
import logging

logger = logging.getLogger(__name__)


class RunScheduler:
    """
    Cooperative run loop: one step-and-redraw per tick.

    ``arm`` is the host's "call me again later" primitive (``Tk.after``,
    a frame callback, ...). Each tick re-arms only while the run flag is set,
    so ``stop`` simply clears the flag. Without ``arm`` the caller drives
    ``tick`` by hand. ``on_stop`` is called whenever a running loop stops,
    including after a failed step.
    """

    def __init__(self, step: Callable[[], bool], arm: Optional[Callable[[Callable[[], None]], Any]] = None,
                 on_stop: Optional[Callable[[], None]] = None):
        self._step = step
        self._arm = arm
        self._on_stop = on_stop
        self._running = False
        self.ticks = 0

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        logger.info("Run loop started")
        if self._arm is not None:
            self._arm(self.tick)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        logger.info(f"Run loop stopped after {self.ticks} ticks")
        if self._on_stop is not None:
            self._on_stop()

    def is_running(self) -> bool:
        return self._running

    def tick(self) -> None:
        if not self._running:
            return
        ok = self._step()
        self.ticks += 1
        if not ok:
            self.stop()
            return
        if self._running and self._arm is not None:
            self._arm(self.tick)

    def run_for(self, n_ticks: int) -> int:
        """Drive up to ``n_ticks`` ticks synchronously (headless runs). Returns ticks attempted."""
        if self._arm is not None:
            raise RuntimeError("run_for drives ticks itself; use a scheduler without a host primitive")
        self.start()
        done = 0
        try:
            while self._running and done < n_ticks:
                self.tick()
                done += 1
        finally:
            self.stop()
        return done
