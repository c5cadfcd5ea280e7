"""
UI constants for the ECM visualizer window.
Fonts, colors and spacing shared by every panel.
"""

# Font Configuration
FONT_FAMILY = "sans-serif"  # Cross-platform generic font family
FONT_SIZES = {
    'title': 14,
    'label': 10,
    'caption': 9,
    'small': 8,
}

# Color Scheme
COLORS = {
    'background': '#ffffff',
    'panel_bg': '#f8f8f8',
    'text_primary': '#2c2c2c',
    'text_secondary': '#666666',
    'accent': '#2563eb',
    'accent_light': '#dbeafe',
    'success': '#16a34a',
    'error': '#dc2626',
}

# Spacing and Layout
PADDING = {
    'small': 4,
    'medium': 8,
    'large': 12,
}

MARGINS = {
    'panel': 8,
    'content': 16,
}

SIZES = {
    'sidebar_width': 320,
    'slider_length': 180,
    'combo_width': 14,
}

BORDER = {
    'width': 1,
}

# Run loop re-arm delay (ms); 1 keeps the loop as fast as the host allows
RUN_LOOP_DELAY_MS = 1

# Slider ranges
INPUT_RANGE = (0.0, 1.0)
TIME_STEP_RANGE = (0.01, 0.5)

# Sidebar control labels
LABELS = {
    'brush_mode': "Brush mode",
    'clear_selection': "Clear selection",
    'tracking_mode': "Cell tracking mode",
    'clear_tracked': "Clear tracked cells",
}

# Tracked-cell panel
CELL_SWATCH_WIDTH = 2
CELL_ENTRY_WIDTH = 10
CELL_VALUE_FORMAT = "{:.4f}"
