from __future__ import annotations
from functools import lru_cache
from typing import Iterator, List, Set, Tuple
import math
import logging

from .constants import GRID_SIZE

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]


@lru_cache(maxsize=32)
def disk_offsets(radius: int) -> Tuple[Tuple[int, int], ...]:
    """
    Integer (dy, dx) offsets of a discrete disk with inclusive boundary:
    every offset with sqrt(dx^2 + dy^2) <= radius.
    """
    r = int(radius)
    if r < 0:
        raise ValueError(f"Brush radius must be non-negative, got {radius}")
    offsets = []
    for dy in range(-r, r + 1):
        for dx in range(-r, r + 1):
            if math.sqrt(dx * dx + dy * dy) <= r:
                offsets.append((dy, dx))
    return tuple(offsets)


class BrushSelector:
    """
    Set of grid cells selected for input overrides.

    Grows only through ``stamp``; ``clear`` is the only way to shrink it.
    Engine-side overrides are kept in lockstep by the session, not here.
    """

    def __init__(self, grid_size: int = GRID_SIZE):
        self.grid_size = int(grid_size)
        self._cells: Set[Cell] = set()

    def stamp(self, center: Cell, radius: int) -> int:
        """Add the disk around ``center``; returns how many cells were new."""
        row, col = center
        n = self.grid_size
        before = len(self._cells)
        for dy, dx in disk_offsets(radius):
            r, c = row + dy, col + dx
            if 0 <= r < n and 0 <= c < n:
                self._cells.add((r, c))
        return len(self._cells) - before

    def clear(self) -> None:
        self._cells.clear()

    @property
    def cells(self) -> Set[Cell]:
        return set(self._cells)

    def sorted_cells(self) -> List[Cell]:
        """Cells in row-major order, for deterministic drawing and export."""
        return sorted(self._cells)

    def __contains__(self, cell: Cell) -> bool:
        return tuple(cell) in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(self.sorted_cells())
