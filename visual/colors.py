from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple, Union
import math

import numpy as np

from engine.constants import LOG_FLOOR, MIN_LOG_RANGE, EMPTY_FIELD_MAX
from engine.molecules import MoleculeFamily

RGB = Tuple[int, int, int]

# -----------------------------
# Utility functions
# -----------------------------

def rgb_to_css(rgb: RGB) -> str:
    """Integer RGB triple as a CSS/SVG color, e.g. rgb(255,128,0)."""
    return f"rgb({int(rgb[0])},{int(rgb[1])},{int(rgb[2])})"


def _hue_of(family: Union[MoleculeFamily, str]) -> str:
    if isinstance(family, MoleculeFamily):
        return family.hue
    if family not in ("warm", "cool"):
        raise ValueError(f"Unknown hue family: {family}")
    return family


# -----------------------------
# Log-scaled color mapping
# -----------------------------

@dataclass(frozen=True)
class ColorScale:
    """
    Adaptive log normalization computed from one field snapshot.

    min_value/max_value are the observed positive range after the empty-field
    and degenerate-range corrections; log_min falls back to LOG_FLOOR when
    min_value is 0.
    """
    min_value: float
    max_value: float
    log_min: float
    log_max: float
    log_range: float

    @classmethod
    def from_range(cls, min_value: float, max_value: float) -> "ColorScale":
        if max_value <= 0:
            max_value = EMPTY_FIELD_MAX
        if min_value >= max_value:
            min_value = 0.0
        log_min = math.log10(min_value) if min_value > 0 else LOG_FLOOR
        log_max = math.log10(max_value)
        log_range = max(log_max - log_min, MIN_LOG_RANGE)
        return cls(float(min_value), float(max_value), log_min, log_max, log_range)

    @classmethod
    def from_field(cls, field: np.ndarray) -> "ColorScale":
        values = np.asarray(field, dtype=float)
        positive = values[values > 0]
        if positive.size:
            return cls.from_range(float(positive.min()), float(positive.max()))
        # no positive entries: the running min starts at 1.0 and is then zeroed
        return cls.from_range(1.0, 0.0)

    def intensity(self, value: float) -> float:
        if value <= 0:
            return 0.0
        return (math.log10(value) - self.log_min) / self.log_range

    def normalize(self, field: np.ndarray) -> np.ndarray:
        """Vectorized ``intensity`` over a whole field (unclamped)."""
        values = np.asarray(field, dtype=float)
        out = np.zeros_like(values)
        mask = values > 0
        out[mask] = (np.log10(values[mask]) - self.log_min) / self.log_range
        return out

    def color_for(self, value: float, family: Union[MoleculeFamily, str]) -> RGB:
        return intensity_to_rgb(self.intensity(value), family)

    def colorize(self, field: np.ndarray, family: Union[MoleculeFamily, str]) -> np.ndarray:
        """(N, N) field -> (N, N, 3) uint8 image."""
        i = np.clip(self.normalize(field), 0.0, 1.0)
        strong = np.floor(np.minimum(255.0, i * 255.0 * 2.0))
        weak = np.floor(np.minimum(255.0, i * 255.0))
        zero = np.zeros_like(i)
        if _hue_of(family) == "cool":
            channels = (zero, weak, strong)
        else:
            channels = (strong, weak, zero)
        return np.stack(channels, axis=-1).astype(np.uint8)


def intensity_to_rgb(intensity: float, family: Union[MoleculeFamily, str]) -> RGB:
    """
    warm: r = 2*255*i, g = 255*i, b = 0
    cool: r = 0, g = 255*i, b = 2*255*i
    Channels capped at 255 and floored; intensity clamped to [0, 1].
    """
    i = min(1.0, max(0.0, float(intensity)))
    strong = int(math.floor(min(255.0, i * 255.0 * 2.0)))
    weak = int(math.floor(min(255.0, i * 255.0)))
    if _hue_of(family) == "cool":
        return (0, weak, strong)
    return (strong, weak, 0)


def format_exponential(value: float, digits: int = 2) -> str:
    """Format like JavaScript's toExponential: 5.00e-1 rather than 5.00e-01."""
    mantissa, exponent = f"{value:.{digits}e}".split("e")
    return f"{mantissa}e{int(exponent):+d}"


# Visual constants
SELECTION_FILL = "#FFFFFF"
SELECTION_FILL_ALPHA = 0.3
SELECTION_EDGE_ALPHA = 0.8
STATUS_BG = "#FFFFFF"
STATUS_FG = "#333333"
