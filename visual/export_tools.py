import os
import time
import logging
import xml.etree.ElementTree as ET
from collections import deque
from typing import Callable, Deque, List, Optional, Tuple

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

try:
    import imageio
except ImportError:
    imageio = None

try:
    import plotly.graph_objects as go
    PLOTLY_AVAILABLE = True
except ImportError:
    PLOTLY_AVAILABLE = False


from engine.constants import DEFAULT_EXPORT_DIR, EXPORT_PREFIX, HEATMAP_CANVAS_SIZE
from engine.interface import read_field
from engine.session_manager import VisualizerSession
from engine.tracking import CellTracker
from visual.grid_mapper import GridMapper
from visual.colors import rgb_to_css, SELECTION_FILL, SELECTION_FILL_ALPHA, SELECTION_EDGE_ALPHA, STATUS_FG
from visual.heatmap import (
    HeatmapFrame, HeatmapRenderer, compose_session,
    TRACK_OUTER_OFFSET, TRACK_OUTER_WIDTH, TRACK_INNER_WIDTH, LABEL_OFFSET, LABEL_FONT_SIZE,
    LABEL_STROKE_WIDTH, SELECTION_EDGE_WIDTH, STATUS_BOX, STATUS_TEXT_X, STATUS_LINE_Y, STATUS_FONT_SIZE,
)
from visual.timeseries import (
    PlotGeometry, TimeSeriesRenderer, polyline, legend_entries, format_max_label,
    GRID_COLOR, AXIS_COLOR, LINE_WIDTH, LEGEND_LINE_WIDTH, X_LABEL, Y_LABEL,
)

SVG_NS = "http://www.w3.org/2000/svg"
FONT_FAMILY = "Arial, sans-serif"

# ────────────────────────────
# Utility: ensure_dir
# ────────────────────────────

def ensure_dir(directory: str):
    """Create directory if it doesn't exist"""
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)


def now_str() -> str:
    """Return a timestamp string used for filenames."""
    return time.strftime("%Y%m%d_%H%M%S", time.localtime())


def heatmap_filename(iteration: int, ext: str, size: int = HEATMAP_CANVAS_SIZE) -> str:
    return f"{EXPORT_PREFIX}-heatmap-{iteration}-{size}x{size}.{ext}"


def lineplot_filename(iteration: int, ext: str) -> str:
    return f"{EXPORT_PREFIX}-lineplot-{iteration}.{ext}"


def _num(value: float) -> str:
    """Compact SVG number: integers without a decimal point, else up to 4 decimals."""
    value = round(float(value), 4)
    if value == int(value):
        return str(int(value))
    return f"{value:.4f}".rstrip("0").rstrip(".")


def _sub(parent: ET.Element, tag: str, text: Optional[str] = None, **attrs) -> ET.Element:
    el = ET.SubElement(parent, tag, {k.replace("_", "-"): str(v) for k, v in attrs.items()})
    if text is not None:
        el.text = text
    return el


def _svg_root(width: int, height: int) -> ET.Element:
    return ET.Element("svg", {
        "xmlns": SVG_NS,
        "version": "1.1",
        "width": str(width),
        "height": str(height),
        "viewBox": f"0 0 {width} {height}",
    })


def _serialize(svg: ET.Element) -> str:
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(svg, encoding="unicode")


def _write_text(path: str, text: str) -> str:
    ensure_dir(os.path.dirname(path))
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(text)
    return path


# ────────────────────────────
# Heatmap SVG
# ────────────────────────────

def build_heatmap_svg(frame: HeatmapFrame, size: int = HEATMAP_CANVAS_SIZE) -> ET.Element:
    """
    Vector document of a heatmap frame at ``size`` x ``size`` pixels.

    Cell edges are rounded once and widths taken as edge differences, so the
    rectangles of a row (and of a column) tile the canvas without gaps.
    """
    n = frame.grid_size
    mapper = GridMapper(n, size)
    cell = mapper.cell_size
    edges = [round(i * cell, 4) for i in range(n + 1)]
    edges[-1] = float(size)

    svg = _svg_root(size, size)
    _sub(svg, "metadata", f"Created by ECM Simulation - Iteration {frame.iteration}")
    _sub(svg, "title", f"ECMSim - Iteration {frame.iteration}")

    cells = _sub(svg, "g", **{"class": "heatmap-cells"})
    for row in range(n):
        y0, y1 = edges[row], edges[row + 1]
        for col in range(n):
            x0, x1 = edges[col], edges[col + 1]
            _sub(cells, "rect", x=_num(x0), y=_num(y0), width=_num(x1 - x0), height=_num(y1 - y0),
                 fill=rgb_to_css(frame.color_at(row, col)), stroke="none")

    if frame.selection:
        brush = _sub(svg, "g", **{"class": "brush-selection"})
        for row, col in frame.selection:
            _sub(brush, "rect", x=_num(edges[col]), y=_num(edges[row]),
                 width=_num(edges[col + 1] - edges[col]), height=_num(edges[row + 1] - edges[row]),
                 fill=SELECTION_FILL, fill_opacity=SELECTION_FILL_ALPHA,
                 stroke=SELECTION_FILL, stroke_opacity=SELECTION_EDGE_ALPHA,
                 stroke_width=SELECTION_EDGE_WIDTH)

    if frame.tracked:
        group = _sub(svg, "g", **{"class": "tracked-cells"})
        off = TRACK_OUTER_OFFSET
        for index, tc in enumerate(frame.tracked):
            x, y = mapper.cell_origin(tc.row, tc.col)
            _sub(group, "rect", x=_num(x - off), y=_num(y - off),
                 width=_num(cell + 2 * off), height=_num(cell + 2 * off),
                 fill="none", stroke=tc.color, stroke_width=TRACK_OUTER_WIDTH)
            _sub(group, "rect", x=_num(x), y=_num(y), width=_num(cell), height=_num(cell),
                 fill="none", stroke="#FFFFFF", stroke_width=TRACK_INNER_WIDTH)
            label = f"{index + 1}"
            lx, ly = _num(x + LABEL_OFFSET[0]), _num(y + LABEL_OFFSET[1])
            _sub(group, "text", label, x=lx, y=ly, font_family=FONT_FAMILY, font_size=LABEL_FONT_SIZE,
                 font_weight="bold", fill="none", stroke="#000000", stroke_width=LABEL_STROKE_WIDTH)
            _sub(group, "text", label, x=lx, y=ly, font_family=FONT_FAMILY, font_size=LABEL_FONT_SIZE,
                 font_weight="bold", fill="#FFFFFF")

    text_group = _sub(svg, "g", **{"class": "heatmap-text"})
    bx, by, bw, bh = STATUS_BOX
    _sub(text_group, "rect", x=bx, y=by, width=bw, height=bh, fill="white", fill_opacity=0.8,
         stroke=STATUS_FG, stroke_width=1, rx=5, ry=5)
    for line, ty in zip(frame.lines, STATUS_LINE_Y):
        _sub(text_group, "text", line, x=STATUS_TEXT_X, y=ty, font_family=FONT_FAMILY,
             font_size=STATUS_FONT_SIZE, fill=STATUS_FG)
    return svg


def heatmap_svg_string(frame: HeatmapFrame, size: int = HEATMAP_CANVAS_SIZE) -> str:
    return _serialize(build_heatmap_svg(frame, size))


def export_heatmap_svg(session: VisualizerSession, out_dir: str = DEFAULT_EXPORT_DIR,
                       size: int = HEATMAP_CANVAS_SIZE) -> Optional[str]:
    """
    Re-derive the heatmap from a fresh field read (never from the live
    pixels) and write it as SVG. Returns the path, or None if no engine is attached.
    """
    if not session.is_ready:
        logger.debug("SVG export ignored: engine not ready")
        return None
    field = read_field(session.engine, session.molecule, session.grid_size)
    frame = compose_session(session, field=field)
    path = os.path.join(out_dir, heatmap_filename(session.iteration, "svg", size))
    _write_text(path, heatmap_svg_string(frame, size))
    logger.info(f"Saved heatmap SVG to {path}")
    return path


# ────────────────────────────
# Raster exports
# ────────────────────────────

def save_pixels_png(pixels: np.ndarray, filename: str, size: Optional[Tuple[int, int]] = None) -> str:
    """Write an RGBA pixel buffer as PNG, optionally rescaled to ``size``."""
    image = Image.fromarray(np.asarray(pixels, dtype=np.uint8))
    if size is not None and image.size != tuple(size):
        image = image.resize(tuple(size), Image.Resampling.BILINEAR)
    ensure_dir(os.path.dirname(filename))
    image.save(filename, format="PNG")
    return filename


def export_heatmap_png(session: VisualizerSession, renderer: HeatmapRenderer,
                       out_dir: str = DEFAULT_EXPORT_DIR, size: int = HEATMAP_CANVAS_SIZE) -> str:
    """Copy the live heatmap surface, rescaled to the canonical size."""
    path = os.path.join(out_dir, heatmap_filename(session.iteration, "png", size))
    save_pixels_png(renderer.pixels(), path, size=(size, size))
    logger.info(f"Saved heatmap PNG to {path}")
    return path


def export_lineplot_png(session: VisualizerSession, renderer: TimeSeriesRenderer,
                        out_dir: str = DEFAULT_EXPORT_DIR) -> str:
    path = os.path.join(out_dir, lineplot_filename(session.iteration, "png"))
    save_pixels_png(renderer.pixels(), path)
    logger.info(f"Saved line plot PNG to {path}")
    return path


# ────────────────────────────
# Line plot SVG
# ────────────────────────────

def build_lineplot_svg(tracker: CellTracker, geometry: PlotGeometry = PlotGeometry()) -> ET.Element:
    g = geometry
    max_value = tracker.max_value()
    svg = _svg_root(g.width, g.height)
    _sub(svg, "rect", width=g.width, height=g.height, fill="white")

    left, top, bottom, right = g.padding, g.padding, g.bottom, g.padding + g.plot_width
    _sub(svg, "path", d=f"M {_num(left)} {_num(top)} L {_num(left)} {_num(bottom)} L {_num(right)} {_num(bottom)}",
         stroke=AXIS_COLOR, stroke_width=1, fill="none")
    for y in g.gridline_ys():
        _sub(svg, "line", x1=_num(left), y1=_num(y), x2=_num(right), y2=_num(y),
             stroke=GRID_COLOR, stroke_width=0.5)

    for cell, samples in tracker.histories():
        points = polyline(samples, max_value, g)
        if not points:
            continue
        d = " ".join(("M" if i == 0 else "L") + f" {_num(x)} {_num(y)}" for i, (x, y) in enumerate(points))
        _sub(svg, "path", d=d, stroke=cell.color, stroke_width=LINE_WIDTH, fill="none")

    lx, ly = g.legend_origin()
    for index, (label, color) in enumerate(legend_entries(tracker.cells)):
        y = ly + index * 18
        _sub(svg, "text", label, x=_num(lx), y=_num(y + 14), font_family=FONT_FAMILY, font_size=11, fill="#000")
        _sub(svg, "line", x1=_num(lx + 35), y1=_num(y + 10), x2=_num(lx + 55), y2=_num(y + 10),
             stroke=color, stroke_width=LEGEND_LINE_WIDTH)

    _sub(svg, "text", X_LABEL, x=_num(left + g.plot_width / 2), y=_num(g.height - 10), font_family=FONT_FAMILY,
         font_size=12, fill="#000", text_anchor="middle")
    _sub(svg, "text", "0", x=_num(left - 5), y=_num(bottom + 3), font_family=FONT_FAMILY,
         font_size=12, fill="#000", text_anchor="end")
    _sub(svg, "text", format_max_label(max_value), x=_num(left - 5), y=_num(top + 3), font_family=FONT_FAMILY,
         font_size=12, fill="#000", text_anchor="end")
    mid = _num(top + g.plot_height / 2)
    _sub(svg, "text", Y_LABEL, x=10, y=mid, font_family=FONT_FAMILY, font_size=12, fill="#000",
         text_anchor="middle", transform=f"rotate(-90, 10, {mid})")
    return svg


def lineplot_svg_string(tracker: CellTracker, geometry: PlotGeometry = PlotGeometry()) -> str:
    return _serialize(build_lineplot_svg(tracker, geometry))


def export_lineplot_svg(session: VisualizerSession, out_dir: str = DEFAULT_EXPORT_DIR,
                        geometry: Optional[PlotGeometry] = None) -> str:
    c = session.config
    geometry = geometry or PlotGeometry(c.lineplot_width, c.lineplot_height, c.lineplot_padding)
    path = os.path.join(out_dir, lineplot_filename(session.iteration, "svg"))
    _write_text(path, lineplot_svg_string(session.tracker, geometry))
    logger.info(f"Saved line plot SVG to {path}")
    return path


# -----------------------------
# Plotly HTML Export
# -----------------------------

def export_timeseries_to_plotly_html(session: VisualizerSession, filename: str) -> str:
    """
    Export the tracked-cell histories as an interactive Plotly chart.
    """
    if not PLOTLY_AVAILABLE:
        raise RuntimeError("plotly is not installed.")

    fig = go.Figure()
    for index, (cell, samples) in enumerate(session.tracker.histories()):
        fig.add_trace(go.Scatter(
            x=list(range(len(samples))), y=samples, mode='lines',
            name=f"Cell {index + 1} ({cell.row},{cell.col})",
            line=dict(color=cell.color, width=2),
        ))
    fig.update_layout(
        title=f"{session.molecule.name} - tracked cells (iteration {session.iteration})",
        xaxis=dict(title=X_LABEL),
        yaxis=dict(title=Y_LABEL, rangemode='tozero'),
        width=900, height=450,
        plot_bgcolor='white',
    )
    ensure_dir(os.path.dirname(filename))
    fig.write_html(filename, include_plotlyjs='cdn')
    logger.info(f"Exported interactive HTML to {filename}")
    return filename


# -----------------------------
# GIF recording
# -----------------------------

class HeatmapRecorder:
    """Keeps the most recent rendered heatmap frames for GIF export."""

    def __init__(self, renderer: HeatmapRenderer, max_frames: int = 300):
        self.renderer = renderer
        self.frames: Deque[np.ndarray] = deque(maxlen=max_frames)

    def capture(self) -> None:
        self.frames.append(self.renderer.pixels()[..., :3])

    def clear(self) -> None:
        self.frames.clear()

    def __len__(self) -> int:
        return len(self.frames)


def export_frames_to_gif(frames: List[np.ndarray], filename: str, fps: int = 10) -> str:
    """
    Export captured frames to an animated GIF.
    """
    if not frames:
        raise RuntimeError("No recorded frames to export.")
    if imageio is None:
        raise RuntimeError("imageio not installed, cannot export GIF")
    ensure_dir(os.path.dirname(filename))
    imageio.mimsave(filename, [np.asarray(f, dtype=np.uint8) for f in frames], duration=1.0 / fps, loop=0)
    logger.info(f"Saved GIF to {filename}")
    return filename


# -----------------------------
# Failure policy
# -----------------------------

def safe_export(session: VisualizerSession, export: Callable[..., Optional[str]], *args, **kwargs) -> Optional[str]:
    """
    Run an export; failures are logged and reported to the user, never raised.
    Live session state is never touched by an export.
    """
    name = getattr(export, "__name__", "export")
    try:
        return export(*args, **kwargs)
    except Exception as e:
        logger.exception(f"{name} failed")
        session.notify_user(f"Failed to export: {e}")
        return None
