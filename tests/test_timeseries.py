import pytest

from engine.tracking import CellTracker
from visual.timeseries import PlotGeometry, TimeSeriesRenderer, polyline, legend_entries, format_max_label


def test_geometry_defaults():
    g = PlotGeometry()
    assert (g.plot_width, g.plot_height, g.bottom) == (620, 220, 260)
    ys = g.gridline_ys()
    assert len(ys) == 11
    assert ys[0] == 260 and ys[-1] == pytest.approx(40)
    assert g.legend_origin() == (590, 50)


def test_polyline_spans_plot_width():
    g = PlotGeometry()
    assert polyline([0.0, 1.0], 1.0, g) == [(40.0, 260.0), (660.0, 40.0)]
    points = polyline([0.0, 0.5, 1.0], 2.0, g)
    assert points[1] == (350.0, 205.0)
    assert polyline([0.4], 1.0, g) == []


def test_legend_and_labels():
    tracker = CellTracker()
    tracker.toggle(0, 0)
    tracker.toggle(4, 4)
    assert legend_entries(tracker.cells) == [("Cell 1", "#0072B2"), ("Cell 2", "#D55E00")]
    assert format_max_label(1.0) == "1.000"


def test_renderer_draws_empty_tracker():
    renderer = TimeSeriesRenderer()
    assert renderer.draw(CellTracker()) == 1.0
    assert renderer.pixels().shape == (300, 700, 4)


def test_renderer_uses_shared_max():
    tracker = CellTracker()
    tracker.toggle(0, 0)
    tracker.toggle(1, 1)
    for v in (0.2, 0.4, 0.6):
        tracker.append(0, 0, v)
    for v in (1.5, 2.5):
        tracker.append(1, 1, v)
    renderer = TimeSeriesRenderer()
    assert renderer.draw(tracker) == pytest.approx(2.5)
    assert renderer.ax.get_ylim() == pytest.approx((0.0, 2.5))
    assert len(renderer.ax.get_lines()) == 2
