"""Headless run: paint an input patch, track a few cells and export every artifact.

Usage: python scripts/headless_run.py
"""
import os
import sys

# Ensure project root is on sys.path when running from scripts/
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from engine.reference_engine import ReferenceEngine
from engine.session_manager import VisualizerSession
from visual.heatmap import HeatmapRenderer
from visual.timeseries import TimeSeriesRenderer
from visual.export_tools import (
    export_heatmap_svg, export_heatmap_png, export_lineplot_svg, export_lineplot_png,
)

OUT_DIR = os.path.join("data", "exports")

session = VisualizerSession(engine=ReferenceEngine(seed=12345))
session.set_input_value("TGFBin", 0.8)
session.set_input_value("tensionin", 0.5)
session.set_brush_radius(8)
session.stamp_at(50, 50)
session.apply_inputs()
for cell in [(50, 50), (50, 56), (50, 70), (20, 20)]:
    session.toggle_tracked(*cell)

print(f"Starting headless run: exports -> {OUT_DIR}")
session.scheduler.run_for(200)

heatmap = HeatmapRenderer()
lineplot = TimeSeriesRenderer()
heatmap.render(session)
lineplot.draw(session.tracker)

for path in (
    export_heatmap_svg(session, OUT_DIR),
    export_heatmap_png(session, heatmap, OUT_DIR),
    export_lineplot_svg(session, OUT_DIR),
    export_lineplot_png(session, lineplot, OUT_DIR),
):
    print("Wrote", path)

for cell, value in session.tracked_cell_values():
    print(f"Cell ({cell.row},{cell.col}): {value:.4f}")

print('Headless run complete, iteration =', session.iteration)
