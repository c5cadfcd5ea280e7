GRID_SIZE = 100              # cells per side of the simulation grid
DEFAULT_DT = 0.1             # default ODE time step

# -----------------------
# Color scale
# -----------------------
LOG_FLOOR = -3.0             # log10 lower bound used when no positive minimum exists
MIN_LOG_RANGE = 0.01         # floor for log_max - log_min
EMPTY_FIELD_MAX = 0.01       # max used when a field has no positive entries

# -----------------------
# Brush selection
# -----------------------
DEFAULT_BRUSH_RADIUS = 5
MIN_BRUSH_RADIUS = 1
MAX_BRUSH_RADIUS = 15

# -----------------------
# Cell tracking
# -----------------------
MAX_TRACKED_CELLS = 8
HISTORY_CAPACITY = 300
REDUCED_MAX_TRACKED_CELLS = 2
REDUCED_HISTORY_CAPACITY = 200

# -----------------------
# Surfaces (pixels)
# -----------------------
HEATMAP_CANVAS_SIZE = 600    # backing buffer and canonical export size
HEATMAP_DISPLAY_SIZE = 500   # on-screen size of the heatmap surface
LINEPLOT_WIDTH = 700
LINEPLOT_HEIGHT = 300
LINEPLOT_PADDING = 40

# -----------------------
# Export
# -----------------------
DEFAULT_EXPORT_DIR = "outputs"
EXPORT_PREFIX = "ecm"

# -----------------------
# Logging
# -----------------------
LOGGING_LEVEL = "INFO"  # options: DEBUG, INFO, WARNING, ERROR
