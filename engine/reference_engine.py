"""
In-process stand-in for the external ECM solver.

Implements the engine surface with small numpy arrays and a
simple update rule (input -> feedback -> production, first-order decay and
periodic diffusion). It exists so the visualizer can run headless and be
tested; it is not a model of ECM biology.
"""

from __future__ import annotations
from typing import Dict, Optional, Tuple
import itertools
import logging

import numpy as np

from .constants import GRID_SIZE, DEFAULT_DT
from .molecules import PRIMARY_MOLECULES, FEEDBACK_MOLECULES, INPUT_MOLECULES, MoleculeFamily

logger = logging.getLogger(__name__)


class ReferenceEngine:
    def __init__(self, grid_size: int = GRID_SIZE, seed: Optional[int] = None):
        self.grid_size = int(grid_size)
        self.rng = np.random.default_rng(seed)
        self.dt = DEFAULT_DT
        self.rates: Tuple[float, ...] = (1.0, 0.5, 0.1, 2.0, 0.5, 1.0, 0.01, 0.2)
        self.steps = 0
        self._handles: Dict[int, np.ndarray] = {}
        self._handle_ids = itertools.count(1)
        self.overrides: Dict[Tuple[int, int, int], float] = {}
        self.initialize_grid()

    # -----------------------
    # Grid state
    # -----------------------
    def initialize_grid(self) -> None:
        n = self.grid_size
        self.primary = np.full((len(PRIMARY_MOLECULES), n, n), 0.01)
        self.primary += self.rng.uniform(0.0, 0.005, size=self.primary.shape)
        self.feedback = np.zeros((len(FEEDBACK_MOLECULES), n, n))
        self.inputs = np.zeros((len(INPUT_MOLECULES), n, n))
        self.steps = 0

    def _family_array(self, family: MoleculeFamily) -> np.ndarray:
        if family is MoleculeFamily.PRIMARY:
            return self.primary
        if family is MoleculeFamily.FEEDBACK:
            return self.feedback
        return self.inputs

    # -----------------------
    # Handles
    # -----------------------
    def get_field_data(self, molecule_index: int, family: MoleculeFamily) -> int:
        data = self._family_array(family)[molecule_index].copy()
        handle = next(self._handle_ids)
        self._handles[handle] = data
        return handle

    def read_value(self, handle: int, row: int, col: int) -> float:
        return float(self._handles[handle][row, col])

    def release_handle(self, handle: int) -> None:
        self._handles.pop(handle, None)

    @property
    def open_handles(self) -> int:
        return len(self._handles)

    # -----------------------
    # Parameters and overrides
    # -----------------------
    def set_rate_constants(self, k1, k2, k3, k4, k5, k6, k7, k8) -> None:
        self.rates = (k1, k2, k3, k4, k5, k6, k7, k8)

    def set_time_step(self, dt: float) -> None:
        self.dt = float(dt)

    def set_cell_input_override(self, molecule_index: int, row: int, col: int, value: float) -> None:
        if not (0 <= row < self.grid_size and 0 <= col < self.grid_size):
            return
        self.overrides[(molecule_index, row, col)] = float(value)

    def clear_all_input_overrides(self) -> None:
        self.overrides.clear()
        self.inputs[:] = 0.0

    def set_cell_concentration(self, family: MoleculeFamily, molecule_index: int,
                               row: int, col: int, value: float) -> None:
        if not (0 <= row < self.grid_size and 0 <= col < self.grid_size):
            return
        self._family_array(family)[molecule_index, row, col] = float(value)

    # -----------------------
    # Dynamics
    # -----------------------
    def simulate_step(self, dt: float) -> None:
        k_in, k_fb, k_deg, k_rec, k_inh, k_act, k_prod, k_diff = self.rates
        self.inputs[:] = 0.0
        for (m, r, c), v in self.overrides.items():
            self.inputs[m, r, c] = v

        # saturating uptake keeps feedback in [0, 1] for any input level
        gain = np.minimum(dt * k_in * self.inputs.sum(axis=0), 1.0)
        for f in range(self.feedback.shape[0]):
            fb = self.feedback[f]
            fb += gain * (1.0 - fb) - dt * k_deg * fb
        signal = self.feedback.sum(axis=0)
        act = k_act * signal / (k_rec + signal)
        inh = 1.0 / (1.0 + k_inh * signal)
        for m in range(self.primary.shape[0]):
            rate = act if m % 2 == 0 else act * inh
            self.primary[m] += dt * (k_prod + k_fb * rate - k_deg * self.primary[m])

        self.primary += dt * k_diff * _laplacian(self.primary)
        self.feedback += dt * k_diff * _laplacian(self.feedback)
        np.clip(self.primary, 0.0, None, out=self.primary)
        np.clip(self.feedback, 0.0, None, out=self.feedback)
        self.steps += 1


def _laplacian(stack: np.ndarray) -> np.ndarray:
    """Five-point Laplacian over the last two axes with periodic boundaries."""
    return (np.roll(stack, 1, axis=-1) + np.roll(stack, -1, axis=-1)
            + np.roll(stack, 1, axis=-2) + np.roll(stack, -1, axis=-2)
            - 4.0 * stack)
