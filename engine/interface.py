"""
Boundary to the external simulation engine.

The engine is treated as an opaque numeric service. Field reads go through
transient handles that must be released before the next acquisition; the
helpers here guarantee that on every exit path.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Protocol, Tuple, runtime_checkable
import logging

import numpy as np

from .molecules import Molecule, MoleculeFamily

logger = logging.getLogger(__name__)


class EngineCallError(RuntimeError):
    """Raised when a call into the simulation engine fails."""


@runtime_checkable
class SimulationEngine(Protocol):
    def initialize_grid(self) -> None: ...

    def get_field_data(self, molecule_index: int, family: MoleculeFamily) -> Any: ...

    def read_value(self, handle: Any, row: int, col: int) -> float: ...

    def release_handle(self, handle: Any) -> None: ...

    def set_rate_constants(self, k1: float, k2: float, k3: float, k4: float,
                           k5: float, k6: float, k7: float, k8: float) -> None: ...

    def set_time_step(self, dt: float) -> None: ...

    def simulate_step(self, dt: float) -> None: ...

    def set_cell_input_override(self, molecule_index: int, row: int, col: int, value: float) -> None: ...

    def clear_all_input_overrides(self) -> None: ...

    def set_cell_concentration(self, family: MoleculeFamily, molecule_index: int,
                               row: int, col: int, value: float) -> None: ...


@contextmanager
def acquire_field(engine: SimulationEngine, molecule: Molecule) -> Iterator[Any]:
    """Acquire a read handle for ``molecule`` and release it when the block exits."""
    handle = engine.get_field_data(molecule.index, molecule.family)
    try:
        yield handle
    finally:
        engine.release_handle(handle)


def read_field(engine: SimulationEngine, molecule: Molecule, grid_size: int) -> np.ndarray:
    """
    Read the full field of ``molecule`` into a fresh (grid_size, grid_size) array.
    The handle is released before returning, also when a read fails.
    """
    field = np.zeros((grid_size, grid_size), dtype=float)
    try:
        with acquire_field(engine, molecule) as handle:
            for i in range(grid_size):
                for j in range(grid_size):
                    field[i, j] = engine.read_value(handle, i, j)
    except Exception as e:
        raise EngineCallError(f"Failed to read field for {molecule.name}: {e}") from e
    return field


def read_cells(engine: SimulationEngine, molecule: Molecule,
               cells: Iterable[Tuple[int, int]]) -> List[float]:
    """Read just the given (row, col) cells under a single handle."""
    cells = list(cells)
    try:
        with acquire_field(engine, molecule) as handle:
            return [float(engine.read_value(handle, r, c)) for r, c in cells]
    except Exception as e:
        raise EngineCallError(f"Failed to read cells for {molecule.name}: {e}") from e
