from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np
from matplotlib.figure import Figure
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.lines import Line2D

from engine.constants import LINEPLOT_WIDTH, LINEPLOT_HEIGHT, LINEPLOT_PADDING, MAX_TRACKED_CELLS
from engine.tracking import CellTracker, TrackedCell

logger = logging.getLogger(__name__)

GRID_DIVISIONS = 10
GRID_COLOR = "#eeeeee"
AXIS_COLOR = "#000000"
LINE_WIDTH = 2
LEGEND_LINE_WIDTH = 3
X_LABEL = "Iterations"
Y_LABEL = "Concentration"


@dataclass(frozen=True)
class PlotGeometry:
    """Pixel layout of the chart: a plot area inset by ``padding`` on every side."""
    width: int = LINEPLOT_WIDTH
    height: int = LINEPLOT_HEIGHT
    padding: int = LINEPLOT_PADDING

    @property
    def plot_width(self) -> float:
        return self.width - 2 * self.padding

    @property
    def plot_height(self) -> float:
        return self.height - 2 * self.padding

    @property
    def bottom(self) -> float:
        return self.padding + self.plot_height

    def x_at(self, i: int, n: int) -> float:
        return self.padding + (i / (n - 1)) * self.plot_width

    def y_at(self, value: float, max_value: float) -> float:
        return self.bottom - (value / max_value) * self.plot_height

    def gridline_ys(self) -> List[float]:
        return [self.bottom - i * self.plot_height / GRID_DIVISIONS for i in range(GRID_DIVISIONS + 1)]

    def legend_origin(self) -> Tuple[float, float]:
        return (self.padding + self.plot_width - 70, self.padding + 10)


def polyline(samples: Sequence[float], max_value: float, geometry: PlotGeometry) -> List[Tuple[float, float]]:
    """Pixel points of one series; empty when there is nothing to connect."""
    n = len(samples)
    if n < 2:
        return []
    return [(geometry.x_at(i, n), geometry.y_at(v, max_value)) for i, v in enumerate(samples)]


def legend_entries(cells: Sequence[TrackedCell], limit: int = MAX_TRACKED_CELLS) -> List[Tuple[str, str]]:
    return [(f"Cell {i + 1}", cell.color) for i, cell in enumerate(cells[:limit])]


def format_max_label(max_value: float) -> str:
    return f"{max_value:.3f}"


class TimeSeriesRenderer:
    """Multi-series line chart of tracked-cell histories with a shared value axis."""

    def __init__(self, geometry: PlotGeometry = PlotGeometry(), dpi: int = 100, figure: Optional[Figure] = None):
        self.geometry = geometry
        self.dpi = dpi
        self.figure = figure or Figure(figsize=(geometry.width / dpi, geometry.height / dpi), dpi=dpi)
        if not hasattr(self.figure.canvas, "buffer_rgba"):
            FigureCanvasAgg(self.figure)
        g = geometry
        self.ax = self.figure.add_axes([g.padding / g.width, g.padding / g.height,
                                        g.plot_width / g.width, g.plot_height / g.height])
        self.last_max_value = 1.0

    def _pt(self, px: float) -> float:
        return px * 72.0 / self.dpi

    def draw(self, tracker: CellTracker) -> float:
        """Redraw the chart; returns the shared max value used for the value axis."""
        ax = self.ax
        max_value = tracker.max_value()
        ax.clear()
        ax.set_facecolor("#FFFFFF")
        ax.set_xlim(0.0, 1.0)
        ax.set_ylim(0.0, max_value)

        ticks = np.linspace(0.0, max_value, GRID_DIVISIONS + 1)
        ax.set_yticks(ticks)
        ax.set_yticklabels(["0"] + [""] * (GRID_DIVISIONS - 1) + [format_max_label(max_value)],
                           fontsize=self._pt(12))
        ax.yaxis.grid(True, color=GRID_COLOR, linewidth=self._pt(0.5))
        ax.set_axisbelow(True)
        ax.set_xticks([])
        for side in ("top", "right"):
            ax.spines[side].set_visible(False)
        for side in ("left", "bottom"):
            ax.spines[side].set_color(AXIS_COLOR)
            ax.spines[side].set_linewidth(self._pt(1))

        for cell, samples in tracker.histories():
            n = len(samples)
            if n < 2:
                continue
            xs = np.arange(n) / (n - 1)
            ax.plot(xs, samples, color=cell.color, linewidth=self._pt(LINE_WIDTH))

        entries = legend_entries(tracker.cells)
        if entries:
            handles = [Line2D([0], [0], color=color, linewidth=self._pt(LEGEND_LINE_WIDTH)) for _, color in entries]
            ax.legend(handles, [label for label, _ in entries], loc="upper right",
                      frameon=False, fontsize=self._pt(11), markerfirst=False)

        ax.set_xlabel(X_LABEL, fontsize=self._pt(12))
        ax.set_ylabel(Y_LABEL, fontsize=self._pt(12))
        self.last_max_value = max_value
        self.figure.canvas.draw_idle()
        return max_value

    def pixels(self) -> np.ndarray:
        self.figure.canvas.draw()
        return np.asarray(self.figure.canvas.buffer_rgba()).copy()
