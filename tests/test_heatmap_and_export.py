import os

import numpy as np
import pytest
from PIL import Image

from engine.molecules import MoleculeFamily
from engine.reference_engine import ReferenceEngine
from engine.session_manager import VisualizerSession, VisualizerConfig
from engine.tracking import CellTracker, TrackedCell
from visual.heatmap import HeatmapRenderer, compose, compose_session
from visual.timeseries import TimeSeriesRenderer
from visual.export_tools import (
    build_heatmap_svg, heatmap_svg_string, build_lineplot_svg,
    export_heatmap_svg, export_heatmap_png, export_lineplot_svg, export_lineplot_png,
    export_timeseries_to_plotly_html, export_frames_to_gif, HeatmapRecorder,
    safe_export, PLOTLY_AVAILABLE,
)

CONFIG = VisualizerConfig(grid_size=16)


def make_session():
    session = VisualizerSession(config=CONFIG, engine=ReferenceEngine(grid_size=16, seed=3))
    session.set_input_value("TGFBin", 1.0)
    session.set_brush_radius(2)
    session.stamp_at(8, 8)
    session.toggle_tracked(8, 8)
    session.toggle_tracked(1, 14)
    session.scheduler.run_for(4)
    return session


def rects(group):
    return [(float(r.get("x")), float(r.get("y")), float(r.get("width")), float(r.get("height")))
            for r in group.findall("rect")]


def group(svg, cls):
    for g in svg.findall("g"):
        if g.get("class") == cls:
            return g
    return None


def test_compose_single_cell_scenario():
    field = np.zeros((100, 100))
    field[10, 10] = 0.5
    frame = compose(field, MoleculeFamily.PRIMARY, [], [], 0, 0.1)
    assert frame.color_at(10, 10) == (255, 255, 0)
    assert frame.lines == [
        "Iteration: 0 | Time: 0.00",
        "Range: 0.00e+0 - 5.00e-1",
        "Brush selected (input): 0 cells",
        "Tracked cells (plot): 0",
    ]


def test_status_lines_follow_session():
    session = make_session()
    frame = compose_session(session)
    assert frame.lines[0] == "Iteration: 4 | Time: 0.40"
    assert frame.lines[2] == f"Brush selected (input): {len(session.selection)} cells"
    assert frame.lines[3] == "Tracked cells (plot): 2"


@pytest.mark.parametrize("n", [7, 100])
def test_svg_cells_tile_canvas_exactly(n):
    rng = np.random.default_rng(n)
    frame = compose(rng.uniform(0.0, 1.0, (n, n)), MoleculeFamily.FEEDBACK, [], [], 0, 0.1)
    cells = rects(group(build_heatmap_svg(frame, 600), "heatmap-cells"))
    assert len(cells) == n * n
    assert sum(w * h for _, _, w, h in cells) == pytest.approx(600 * 600)
    first_row = [c for c in cells if c[1] == 0.0]
    assert sum(w for _, _, w, _ in first_row) == pytest.approx(600)
    assert max(x + w for x, _, w, _ in cells) == pytest.approx(600)


def test_svg_overlays_and_metadata():
    tracked = [TrackedCell(2, 3, "#0072B2")]
    frame = compose(np.ones((10, 10)), MoleculeFamily.PRIMARY, [(0, 0), (0, 1)], tracked, 12, 0.1)
    svg = build_heatmap_svg(frame, 600)
    assert svg.find("metadata").text == "Created by ECM Simulation - Iteration 12"
    assert svg.find("title").text == "ECMSim - Iteration 12"
    assert len(group(svg, "brush-selection").findall("rect")) == 2
    outer, inner = rects(group(svg, "tracked-cells"))
    assert outer == (178.0, 118.0, 64.0, 64.0)
    assert inner == (180.0, 120.0, 60.0, 60.0)
    labels = [t.text for t in group(svg, "tracked-cells").findall("text")]
    assert labels == ["1", "1"]
    texts = [t.text for t in group(svg, "heatmap-text").findall("text")]
    assert texts[0] == "Iteration: 12 | Time: 1.20"
    assert heatmap_svg_string(frame).startswith('<?xml version="1.0" encoding="UTF-8"?>')


def test_svg_status_box_layout():
    frame = compose(np.ones((10, 10)), MoleculeFamily.PRIMARY, [], [], 0, 0.1)
    text_group = group(build_heatmap_svg(frame, 600), "heatmap-text")
    assert rects(text_group) == [(10.0, 10.0, 320.0, 80.0)]
    positions = [(t.get("x"), t.get("y")) for t in text_group.findall("text")]
    assert positions == [("20", "30"), ("20", "45"), ("20", "60"), ("20", "75")]


def test_export_heatmap_svg_uses_iteration_in_name(tmp_path):
    session = make_session()
    path = export_heatmap_svg(session, str(tmp_path))
    assert os.path.basename(path) == "ecm-heatmap-4-600x600.svg"
    with open(path, encoding="utf-8") as fh:
        assert "heatmap-cells" in fh.read()


def test_export_heatmap_svg_requires_engine(tmp_path):
    session = VisualizerSession(config=CONFIG)
    assert export_heatmap_svg(session, str(tmp_path)) is None
    assert list(tmp_path.iterdir()) == []


def test_export_heatmap_png_is_rescaled(tmp_path):
    session = make_session()
    renderer = HeatmapRenderer(size=300)
    renderer.render(session)
    assert renderer.pixels().shape == (300, 300, 4)
    path = export_heatmap_png(session, renderer, str(tmp_path))
    assert os.path.basename(path) == "ecm-heatmap-4-600x600.png"
    with Image.open(path) as img:
        assert img.size == (600, 600)


def test_lineplot_exports(tmp_path):
    session = make_session()
    renderer = TimeSeriesRenderer()
    assert renderer.draw(session.tracker) == pytest.approx(session.tracker.max_value())
    png = export_lineplot_png(session, renderer, str(tmp_path))
    with Image.open(png) as img:
        assert img.size == (700, 300)
    svg = export_lineplot_svg(session, str(tmp_path))
    assert os.path.basename(svg) == "ecm-lineplot-4.svg"


def test_lineplot_svg_layout():
    tracker = CellTracker()
    tracker.toggle(0, 0)
    tracker.toggle(1, 1)
    for v in (0.1, 0.5, 0.9):
        tracker.append(0, 0, v)
        tracker.append(1, 1, v / 2)
    svg = build_lineplot_svg(tracker)
    assert svg.get("width") == "700"
    # axes plus one path per series
    assert len(svg.findall("path")) == 3
    assert len(svg.findall("line")) == 11 + 2
    texts = [t.text for t in svg.findall("text")]
    assert "Cell 1" in texts and "Cell 2" in texts
    assert "0.900" in texts
    assert "Iterations" in texts and "Concentration" in texts


def test_single_sample_series_is_not_drawn():
    tracker = CellTracker()
    tracker.toggle(0, 0)
    tracker.append(0, 0, 0.3)
    svg = build_lineplot_svg(tracker)
    assert len(svg.findall("path")) == 1


def test_export_failure_is_reported_not_raised():
    messages = []
    session = VisualizerSession(config=CONFIG, notify=messages.append)

    def broken_export():
        raise OSError("disk full")

    assert safe_export(session, broken_export) is None
    assert messages == ["Failed to export: disk full"]


def test_export_failure_leaves_session_untouched(tmp_path):
    session = make_session()
    before = (session.iteration, len(session.selection), len(session.tracker))
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    assert safe_export(session, export_lineplot_svg, session, str(blocker)) is None
    assert (session.iteration, len(session.selection), len(session.tracker)) == before


def test_gif_export(tmp_path):
    session = make_session()
    renderer = HeatmapRenderer(size=120)
    recorder = HeatmapRecorder(renderer)
    for _ in range(3):
        session.step()
        renderer.render(session)
        recorder.capture()
    assert len(recorder) == 3
    out = tmp_path / "run.gif"
    export_frames_to_gif(list(recorder.frames), str(out), fps=5)
    assert out.exists()
    with pytest.raises(RuntimeError):
        export_frames_to_gif([], str(tmp_path / "empty.gif"))


def test_plotly_export(tmp_path):
    if not PLOTLY_AVAILABLE:
        pytest.skip("plotly not installed")
    session = make_session()
    out = tmp_path / "test_export.html"
    export_timeseries_to_plotly_html(session, str(out))
    assert out.exists()
