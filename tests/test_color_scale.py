import numpy as np
import pytest

from engine.molecules import MoleculeFamily
from visual.colors import ColorScale, intensity_to_rgb, format_exponential


def test_single_positive_cell_maps_to_full_warm():
    field = np.zeros((100, 100))
    field[10, 10] = 0.5
    scale = ColorScale.from_field(field)
    # min == max is degenerate, so the minimum drops to 0 and the log floor applies
    assert scale.min_value == 0.0
    assert scale.log_min == -3.0
    assert scale.intensity(0.5) == pytest.approx(1.0)
    rgb = scale.colorize(field, MoleculeFamily.PRIMARY)
    assert tuple(rgb[10, 10]) == (255, 255, 0)
    assert tuple(rgb[0, 0]) == (0, 0, 0)


def test_empty_field_uses_fallback_range():
    scale = ColorScale.from_field(np.zeros((5, 5)))
    assert scale.max_value == pytest.approx(0.01)
    assert scale.min_value == 0.0
    assert scale.log_range == pytest.approx(1.0)


def test_log_range_has_a_floor():
    scale = ColorScale.from_range(0.5, 0.5000001)
    assert scale.log_range == pytest.approx(0.01)


def test_intensities_within_observed_range_are_normalized():
    rng = np.random.default_rng(0)
    field = rng.uniform(1e-4, 3.0, size=(20, 20))
    field[0, :5] = 0.0
    scale = ColorScale.from_field(field)
    values = scale.normalize(field)
    assert values.min() >= -1e-12
    assert values.max() <= 1.0 + 1e-12
    assert values[0, 0] == 0.0
    assert scale.intensity(field.max()) == pytest.approx(1.0)


def test_hue_families():
    assert intensity_to_rgb(0.25, MoleculeFamily.PRIMARY) == (127, 63, 0)
    assert intensity_to_rgb(0.25, MoleculeFamily.FEEDBACK) == (0, 63, 127)
    assert intensity_to_rgb(0.25, "cool") == (0, 63, 127)
    with pytest.raises(ValueError):
        intensity_to_rgb(0.25, "green")


def test_intensity_is_clamped():
    assert intensity_to_rgb(1.7, "warm") == (255, 255, 0)
    assert intensity_to_rgb(-0.3, "warm") == (0, 0, 0)


def test_colorize_matches_scalar_mapping():
    field = np.array([[0.0, 0.001], [0.05, 2.0]])
    scale = ColorScale.from_field(field)
    rgb = scale.colorize(field, MoleculeFamily.FEEDBACK)
    for r in range(2):
        for c in range(2):
            assert tuple(rgb[r, c]) == scale.color_for(field[r, c], MoleculeFamily.FEEDBACK)


def test_format_exponential_matches_js_style():
    assert format_exponential(0.5) == "5.00e-1"
    assert format_exponential(0.0) == "0.00e+0"
    assert format_exponential(12345.0) == "1.23e+4"

