"""
Tracked cells and their bounded concentration histories.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Sequence, Tuple
import logging

import numpy as np

from .constants import MAX_TRACKED_CELLS, HISTORY_CAPACITY

logger = logging.getLogger(__name__)

# Publication-quality colorblind-safe palette (Wong, Nature Methods 2011)
TRACKING_PALETTE: Tuple[str, ...] = (
    "#0072B2", "#D55E00", "#009E73", "#CC79A7",
    "#E69F00", "#56B4E9", "#F0E442", "#000000",
)


@dataclass(frozen=True)
class TrackedCell:
    row: int
    col: int
    color: str

    @property
    def key(self) -> Tuple[int, int]:
        return (self.row, self.col)


class CellTracker:
    """
    Ordered, capacity-bounded list of tracked cells.

    A new cell takes ``palette[len(cells)]`` at insertion time. Removing an
    entry never recolors the ones after it, so colors can repeat after a
    removal followed by an append.
    """

    def __init__(self, capacity: int = MAX_TRACKED_CELLS, history: int = HISTORY_CAPACITY,
                 palette: Sequence[str] = TRACKING_PALETTE):
        if capacity > len(palette):
            raise ValueError(f"Palette has {len(palette)} colors, capacity {capacity} needs more")
        self.capacity = int(capacity)
        self.history_capacity = int(history)
        self.palette = tuple(palette)
        self._cells: List[TrackedCell] = []
        self._buffers: Dict[Tuple[int, int], Deque[float]] = {}

    # -----------------------
    # Membership
    # -----------------------
    def toggle(self, row: int, col: int) -> Optional[bool]:
        """
        Track (row, col) or stop tracking it.
        Returns True when added, False when removed, None when the list is full.
        """
        key = (int(row), int(col))
        for i, cell in enumerate(self._cells):
            if cell.key == key:
                del self._cells[i]
                self._buffers.pop(key, None)
                return False
        if len(self._cells) >= self.capacity:
            logger.debug(f"Tracker full ({self.capacity}); ignoring {key}")
            return None
        cell = TrackedCell(key[0], key[1], self.palette[len(self._cells)])
        self._cells.append(cell)
        self._buffers[key] = deque(maxlen=self.history_capacity)
        return True

    def clear(self) -> None:
        self._cells.clear()
        self._buffers.clear()

    def clear_history(self) -> None:
        """Empty every buffer but keep the tracked cells."""
        for buf in self._buffers.values():
            buf.clear()

    @property
    def cells(self) -> List[TrackedCell]:
        return list(self._cells)

    def index_of(self, row: int, col: int) -> Optional[int]:
        for i, cell in enumerate(self._cells):
            if cell.key == (row, col):
                return i
        return None

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, key: Tuple[int, int]) -> bool:
        return tuple(key) in self._buffers

    # -----------------------
    # Samples
    # -----------------------
    def record(self, field: np.ndarray) -> None:
        """Append the current value of every tracked cell in ``field``."""
        for cell in self._cells:
            self._buffers[cell.key].append(float(field[cell.row, cell.col]))

    def append(self, row: int, col: int, value: float) -> None:
        self._buffers[(row, col)].append(float(value))

    def history(self, cell: TrackedCell) -> List[float]:
        return list(self._buffers.get(cell.key, ()))

    def histories(self) -> List[Tuple[TrackedCell, List[float]]]:
        return [(cell, self.history(cell)) for cell in self._cells]

    def max_value(self) -> float:
        """Largest sample across all buffers; 1.0 when nothing positive was recorded."""
        peak = 0.0
        for buf in self._buffers.values():
            if buf:
                peak = max(peak, max(buf))
        return peak if peak > 0 else 1.0
