from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union
import logging

import numpy as np

from . import constants as C
from .interface import SimulationEngine, EngineCallError, read_field, read_cells
from .molecules import Molecule, DEFAULT_MOLECULE, INPUT_MOLECULES, find_molecule, find_input_molecule
from .rates import RateConstants
from .scheduler import RunScheduler
from .selection import BrushSelector
from .tracking import CellTracker, TrackedCell

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VisualizerConfig:
    grid_size: int = C.GRID_SIZE
    max_tracked: int = C.MAX_TRACKED_CELLS
    history_capacity: int = C.HISTORY_CAPACITY
    heatmap_size: int = C.HEATMAP_CANVAS_SIZE
    display_size: int = C.HEATMAP_DISPLAY_SIZE
    lineplot_width: int = C.LINEPLOT_WIDTH
    lineplot_height: int = C.LINEPLOT_HEIGHT
    lineplot_padding: int = C.LINEPLOT_PADDING


FULL_CONFIG = VisualizerConfig()
REDUCED_CONFIG = VisualizerConfig(max_tracked=C.REDUCED_MAX_TRACKED_CELLS,
                                  history_capacity=C.REDUCED_HISTORY_CAPACITY)


class VisualizerSession:
    """
    All mutable state of one visualizer session.
    Usage:
        session = VisualizerSession()
        session.attach_engine(ReferenceEngine())
        session.stamp_at(50, 50)
        session.toggle_tracked(50, 50)
        session.scheduler.run_for(100)

    Every engine-facing operation is a silent no-op until an engine is
    attached. Redraw listeners are called after local state is updated.
    """

    def __init__(self,
                 config: VisualizerConfig = FULL_CONFIG,
                 engine: Optional[SimulationEngine] = None,
                 notify: Optional[Callable[[str], None]] = None,
                 rates: Optional[RateConstants] = None):
        self.config = config
        self.grid_size = config.grid_size
        self.engine: Optional[SimulationEngine] = None
        self.notify = notify

        # user-controlled state
        self.molecule: Molecule = DEFAULT_MOLECULE
        self.rates = rates or RateConstants()
        self.time_step: float = C.DEFAULT_DT
        self.brush_radius: int = C.DEFAULT_BRUSH_RADIUS
        self.brush_mode = False
        self.tracking_mode = False
        self.input_values: Dict[str, float] = {m.name: 0.0 for m in INPUT_MOLECULES}

        # derived state
        self.iteration: int = 0
        self.selection = BrushSelector(self.grid_size)
        self.tracker = CellTracker(capacity=config.max_tracked, history=config.history_capacity)
        self.field: np.ndarray = np.zeros((self.grid_size, self.grid_size))

        self._listeners: List[Callable[["VisualizerSession"], None]] = []
        self.scheduler = RunScheduler(self.step)

        if engine is not None:
            self.attach_engine(engine)

    # -----------------------
    # Engine lifecycle
    # -----------------------
    @property
    def is_ready(self) -> bool:
        return self.engine is not None

    def attach_engine(self, engine: SimulationEngine) -> None:
        try:
            engine.initialize_grid()
            engine.set_rate_constants(*self.rates.as_tuple())
            engine.set_time_step(self.time_step)
        except Exception:
            logger.exception("Failed to initialize simulation engine")
            return
        self.engine = engine
        logger.info(f"Simulation engine attached ({self.grid_size}x{self.grid_size} grid)")
        self.refresh(record=False)

    def use_host_timer(self, arm: Callable[[Callable[[], None]], object],
                       on_stop: Optional[Callable[[], None]] = None) -> RunScheduler:
        """Replace the scheduler with one re-armed through the host's timer primitive."""
        self.scheduler.stop()
        self.scheduler = RunScheduler(self.step, arm=arm, on_stop=on_stop)
        return self.scheduler

    @property
    def current_time(self) -> float:
        return self.iteration * self.time_step

    # -----------------------
    # Listeners / user messages
    # -----------------------
    def add_listener(self, callback: Callable[["VisualizerSession"], None]) -> None:
        self._listeners.append(callback)

    def redraw(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception:
                logger.exception("Redraw listener failed")

    def notify_user(self, message: str) -> None:
        if self.notify is not None:
            self.notify(message)
        else:
            logger.warning(message)

    # -----------------------
    # Parameters
    # -----------------------
    def set_molecule(self, molecule: Union[Molecule, str]) -> None:
        if isinstance(molecule, str):
            molecule = find_molecule(molecule)
        self.molecule = molecule
        self.refresh(record=False)

    def set_rate_constant(self, name: str, value: float) -> None:
        self.rates.set(name, value)
        self.push_rate_constants()

    def push_rate_constants(self) -> None:
        if not self.is_ready:
            return
        try:
            self.engine.set_rate_constants(*self.rates.as_tuple())
        except Exception:
            logger.exception("Error updating rate constants")

    def set_time_step(self, dt: float) -> None:
        dt = float(dt)
        if not dt > 0:
            raise ValueError(f"Time step must be positive, got {dt}")
        self.time_step = dt
        if not self.is_ready:
            return
        try:
            self.engine.set_time_step(dt)
        except Exception:
            logger.exception("Error updating time step")

    def set_brush_radius(self, radius: int) -> None:
        self.brush_radius = max(C.MIN_BRUSH_RADIUS, min(C.MAX_BRUSH_RADIUS, int(radius)))

    def set_input_value(self, name: str, value: float) -> None:
        find_input_molecule(name)
        value = float(value)
        if value < 0:
            raise ValueError(f"Input value for {name} must be non-negative, got {value}")
        self.input_values[name] = value

    # -----------------------
    # Overrides
    # -----------------------
    def _push_overrides(self) -> None:
        self.engine.clear_all_input_overrides()
        for row, col in self.selection.sorted_cells():
            for mol in INPUT_MOLECULES:
                # zero values are sent too so every selected cell carries an override
                self.engine.set_cell_input_override(mol.index, row, col, self.input_values[mol.name])

    def apply_inputs(self) -> bool:
        """Clear every engine override and reapply the full set for the selection."""
        if not self.is_ready:
            return False
        try:
            self._push_overrides()
        except Exception:
            logger.exception("Failed to apply input overrides")
            return False
        logger.debug(f"Applied input values to {len(self.selection)} selected cells")
        return True

    # -----------------------
    # Simulation control
    # -----------------------
    def step(self) -> bool:
        """Apply inputs, advance one step, refresh. A failure stops the run loop."""
        if not self.is_ready:
            logger.debug("Step ignored: engine not ready")
            return False
        try:
            self._push_overrides()
            self.engine.simulate_step(self.time_step)
        except Exception:
            logger.exception("Error during simulation step")
            self.scheduler.stop()
            return False
        self.iteration += 1
        self.refresh(record=True)
        return True

    def start(self) -> None:
        if self.is_ready:
            self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

    def reset(self) -> bool:
        if not self.is_ready:
            return False
        try:
            self.engine.clear_all_input_overrides()
            self.engine.initialize_grid()
        except Exception:
            logger.exception("Error resetting simulation")
            return False
        # local state follows the engine only once it has been reinitialized
        self.iteration = 0
        self.tracker.clear_history()
        self.selection.clear()
        for name in self.input_values:
            self.input_values[name] = 0.0
        logger.info("Simulation reset")
        self.refresh(record=True)
        return True

    def refresh(self, record: bool = True) -> bool:
        """Read the active field, optionally sample tracked cells, then redraw."""
        if not self.is_ready:
            return False
        try:
            field = read_field(self.engine, self.molecule, self.grid_size)
        except EngineCallError:
            logger.exception("Error updating visualization")
            return False
        self.field = field
        if record:
            self.tracker.record(field)
        self.redraw()
        return True

    # -----------------------
    # Selection and tracking
    # -----------------------
    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.grid_size and 0 <= col < self.grid_size

    def stamp_at(self, row: int, col: int) -> int:
        added = self.selection.stamp((row, col), self.brush_radius)
        self.redraw()
        return added

    def clear_selection(self) -> None:
        self.selection.clear()
        if self.is_ready:
            try:
                self.engine.clear_all_input_overrides()
            except Exception:
                logger.exception("Failed to clear input overrides")
        self.redraw()

    def toggle_tracked(self, row: int, col: int) -> Optional[bool]:
        if not self.in_bounds(row, col):
            return None
        result = self.tracker.toggle(row, col)
        self.redraw()
        return result

    def clear_tracked(self) -> None:
        self.tracker.clear()
        self.redraw()

    def tracked_cell_values(self) -> List[Tuple[TrackedCell, float]]:
        """Current values of the tracked cells in the active molecule's field."""
        cells = self.tracker.cells
        if not self.is_ready or not cells:
            return []
        try:
            values = read_cells(self.engine, self.molecule, [c.key for c in cells])
        except EngineCallError:
            logger.exception("Failed to read tracked cell values")
            return []
        return list(zip(cells, values))

    def tracked_cell_label(self, row: int, col: int) -> str:
        index = self.tracker.index_of(row, col)
        if index is None:
            raise ValueError(f"Cell ({row},{col}) is not tracked")
        return f"Cell {index + 1} ({row},{col})"

    def selection_summary(self) -> Tuple[str, str]:
        """Counts shown beside the brush and tracking controls."""
        return (
            f"{len(self.selection)} cells selected for input",
            f"{len(self.tracker)} cells selected for tracking (max {self.tracker.capacity})",
        )

    def edit_cell(self, row: int, col: int, value: float) -> bool:
        """Directly set the active molecule's concentration in one cell."""
        if not self.is_ready or not self.in_bounds(row, col):
            return False
        value = float(value)
        if value < 0:
            raise ValueError(f"Concentration must be non-negative, got {value}")
        try:
            self.engine.set_cell_concentration(self.molecule.family, self.molecule.index, row, col, value)
        except Exception:
            logger.exception(f"Failed to set concentration at ({row},{col})")
            return False
        self.refresh(record=False)
        return True
