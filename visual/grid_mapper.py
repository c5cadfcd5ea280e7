from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple
import math


def to_grid(pixel_x: float, pixel_y: float, surface_width: float, grid_n: int) -> Tuple[int, int]:
    """
    Map a pixel position on the displayed surface to (row, col).
    No clamping: results outside [0, grid_n) are returned as-is.
    """
    cell = surface_width / grid_n
    return (int(math.floor(pixel_y / cell)), int(math.floor(pixel_x / cell)))


@dataclass(frozen=True)
class GridMapper:
    """
    Cell geometry for one square surface of ``display_size`` pixels.
    Pointer positions are mapped with the displayed size, not the backing buffer's.
    """
    grid_size: int
    display_size: float

    @property
    def cell_size(self) -> float:
        return self.display_size / self.grid_size

    def to_grid(self, x: float, y: float) -> Tuple[int, int]:
        return to_grid(x, y, self.display_size, self.grid_size)

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.grid_size and 0 <= col < self.grid_size

    def cell_origin(self, row: int, col: int) -> Tuple[float, float]:
        """Top-left (x, y) of a cell."""
        cell = self.cell_size
        return (col * cell, row * cell)
