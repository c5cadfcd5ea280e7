from .colors import ColorScale, intensity_to_rgb, format_exponential
from .grid_mapper import GridMapper, to_grid
from .heatmap import HeatmapFrame, HeatmapRenderer, compose, compose_session
from .timeseries import PlotGeometry, TimeSeriesRenderer
from .interaction import InteractionController, PointerEvent, PointerKind, InteractionState
from .export_tools import (
    export_heatmap_svg, export_heatmap_png, export_lineplot_svg, export_lineplot_png,
    export_timeseries_to_plotly_html, export_frames_to_gif, safe_export,
)

__all__ = [
    "ColorScale", "intensity_to_rgb", "format_exponential",
    "GridMapper", "to_grid",
    "HeatmapFrame", "HeatmapRenderer", "compose", "compose_session",
    "PlotGeometry", "TimeSeriesRenderer",
    "InteractionController", "PointerEvent", "PointerKind", "InteractionState",
    "export_heatmap_svg", "export_heatmap_png", "export_lineplot_svg", "export_lineplot_png",
    "export_timeseries_to_plotly_html", "export_frames_to_gif", "safe_export",
]
