"""
Heatmap rendering of one concentration field with selection and tracking overlays.

Composition (field -> colors, overlay geometry, status text) is pure and
shared with the SVG exporter; drawing targets a matplotlib Axes laid out in
surface pixels with y pointing down.
"""

from __future__ import annotations
from dataclasses import dataclass, field as dc_field
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np
from matplotlib.figure import Figure
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.collections import PatchCollection
from matplotlib.patches import Rectangle
import matplotlib.patheffects as path_effects

from engine.constants import HEATMAP_CANVAS_SIZE
from engine.molecules import MoleculeFamily
from engine.session_manager import VisualizerSession
from engine.tracking import TrackedCell
from visual.grid_mapper import GridMapper
from visual.colors import (
    ColorScale, format_exponential,
    SELECTION_FILL_ALPHA, SELECTION_EDGE_ALPHA, STATUS_BG, STATUS_FG,
)

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]

# overlay geometry, in surface pixels
TRACK_OUTER_OFFSET = 2
TRACK_OUTER_WIDTH = 4
TRACK_INNER_WIDTH = 1
LABEL_OFFSET = (2, 12)
LABEL_FONT_SIZE = 12
LABEL_STROKE_WIDTH = 3
SELECTION_EDGE_WIDTH = 0.5
STATUS_BOX = (10, 10, 320, 80)
STATUS_TEXT_X = 20
STATUS_LINE_Y = (30, 45, 60, 75)
STATUS_FONT_SIZE = 12


def status_lines(iteration: int, time_step: float, scale: ColorScale,
                 n_selected: int, n_tracked: int) -> List[str]:
    return [
        f"Iteration: {iteration} | Time: {iteration * time_step:.2f}",
        f"Range: {format_exponential(scale.min_value)} - {format_exponential(scale.max_value)}",
        f"Brush selected (input): {n_selected} cells",
        f"Tracked cells (plot): {n_tracked}",
    ]


@dataclass
class HeatmapFrame:
    rgb: np.ndarray
    scale: ColorScale
    family: MoleculeFamily
    selection: List[Cell]
    tracked: List[TrackedCell]
    iteration: int
    time_step: float
    lines: List[str] = dc_field(default_factory=list)

    @property
    def grid_size(self) -> int:
        return int(self.rgb.shape[0])

    def color_at(self, row: int, col: int) -> Tuple[int, int, int]:
        r, g, b = self.rgb[row, col]
        return (int(r), int(g), int(b))


def compose(field: np.ndarray, family: MoleculeFamily, selection: Sequence[Cell],
            tracked: Sequence[TrackedCell], iteration: int, time_step: float) -> HeatmapFrame:
    """Everything the heatmap shows, derived from its inputs only."""
    scale = ColorScale.from_field(field)
    selected = sorted(selection)
    frame = HeatmapFrame(
        rgb=scale.colorize(field, family),
        scale=scale,
        family=family,
        selection=selected,
        tracked=list(tracked),
        iteration=int(iteration),
        time_step=float(time_step),
    )
    frame.lines = status_lines(iteration, time_step, scale, len(selected), len(frame.tracked))
    return frame


def compose_session(session: VisualizerSession, field: Optional[np.ndarray] = None) -> HeatmapFrame:
    return compose(
        session.field if field is None else field,
        session.molecule.family,
        session.selection.sorted_cells(),
        session.tracker.cells,
        session.iteration,
        session.time_step,
    )


class HeatmapRenderer:
    """
    Owns a square figure whose axes span the whole surface.
    ``size`` is the backing surface size in pixels.
    """

    def __init__(self, size: int = HEATMAP_CANVAS_SIZE, dpi: int = 100, figure: Optional[Figure] = None):
        self.size = int(size)
        self.dpi = dpi
        self.figure = figure or Figure(figsize=(self.size / dpi, self.size / dpi), dpi=dpi)
        if not hasattr(self.figure.canvas, "buffer_rgba"):
            FigureCanvasAgg(self.figure)
        self.ax = self.figure.add_axes([0, 0, 1, 1])
        self.last_frame: Optional[HeatmapFrame] = None

    def _pt(self, px: float) -> float:
        """Surface pixels to points for line widths and font sizes."""
        return px * 72.0 / self.dpi

    def render(self, session: VisualizerSession) -> HeatmapFrame:
        frame = compose_session(session)
        self.draw(frame)
        return frame

    def draw(self, frame: HeatmapFrame) -> None:
        ax = self.ax
        s = self.size
        mapper = GridMapper(frame.grid_size, s)
        cell = mapper.cell_size
        ax.clear()
        ax.set_axis_off()
        ax.imshow(frame.rgb, extent=(0, s, s, 0), interpolation="nearest", zorder=0)
        ax.set_xlim(0, s)
        ax.set_ylim(s, 0)

        if frame.selection:
            patches = [Rectangle(mapper.cell_origin(r, c), cell, cell) for r, c in frame.selection]
            ax.add_collection(PatchCollection(
                patches,
                facecolor=(1.0, 1.0, 1.0, SELECTION_FILL_ALPHA),
                edgecolor=(1.0, 1.0, 1.0, SELECTION_EDGE_ALPHA),
                linewidth=self._pt(SELECTION_EDGE_WIDTH),
                zorder=1,
            ))

        for index, tc in enumerate(frame.tracked):
            x, y = mapper.cell_origin(tc.row, tc.col)
            off = TRACK_OUTER_OFFSET
            ax.add_patch(Rectangle((x - off, y - off), cell + 2 * off, cell + 2 * off, fill=False,
                                   edgecolor=tc.color, linewidth=self._pt(TRACK_OUTER_WIDTH), zorder=2))
            ax.add_patch(Rectangle((x, y), cell, cell, fill=False,
                                   edgecolor="#FFFFFF", linewidth=self._pt(TRACK_INNER_WIDTH), zorder=3))
            # stroke then fill keeps the label readable on light and dark cells
            ax.text(x + LABEL_OFFSET[0], y + LABEL_OFFSET[1], f"{index + 1}",
                    fontsize=self._pt(LABEL_FONT_SIZE), fontweight="bold", family="sans-serif",
                    color="#FFFFFF", va="baseline", ha="left", zorder=4,
                    path_effects=[path_effects.withStroke(linewidth=self._pt(LABEL_STROKE_WIDTH),
                                                          foreground="#000000")])

        bx, by, bw, bh = STATUS_BOX
        ax.add_patch(Rectangle((bx, by), bw, bh, facecolor=STATUS_BG, alpha=0.8,
                               edgecolor=STATUS_FG, linewidth=self._pt(1), zorder=5))
        for line, y in zip(frame.lines, STATUS_LINE_Y):
            ax.text(STATUS_TEXT_X, y, line, fontsize=self._pt(STATUS_FONT_SIZE), family="sans-serif",
                    color=STATUS_FG, va="baseline", ha="left", zorder=6)

        self.last_frame = frame
        self.figure.canvas.draw_idle()

    def pixels(self) -> np.ndarray:
        """RGBA pixel content of the surface as currently drawn."""
        self.figure.canvas.draw()
        return np.asarray(self.figure.canvas.buffer_rgba()).copy()
