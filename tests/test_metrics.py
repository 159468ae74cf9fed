from fibonacci_face.models import OverlayLine
from fibonacci_face.utils.metrics_utils import (
    BAND_BAD, BAND_GOOD, BAND_WARN, band_color, deviation_band, fit_to_container, scale_overlay_lines,
)


def test_deviation_bands():
    assert deviation_band(0) == BAND_GOOD
    assert deviation_band(5) == BAND_GOOD
    assert deviation_band(6) == BAND_WARN
    assert deviation_band(15) == BAND_WARN
    assert deviation_band(16) == BAND_BAD
    assert deviation_band(100) == BAND_BAD


def test_band_colors_differ():
    colors = {band_color(b) for b in (BAND_GOOD, BAND_WARN, BAND_BAD)}
    assert len(colors) == 3


def test_overlay_line_scales_to_displayed_size():
    line = OverlayLine(x1=0.1, y1=0.2, x2=0.9, y2=0.8)

    scaled = scale_overlay_lines([line], 400, 300)[0]

    assert round(scaled['x1'], 6) == 40
    assert round(scaled['y1'], 6) == 60
    assert round(scaled['x2'], 6) == 360
    assert round(scaled['y2'], 6) == 240
    assert scaled['label'] is None


def test_no_lines_means_nothing_to_draw():
    assert scale_overlay_lines([], 400, 300) == []


def test_fit_to_container_keeps_aspect_ratio():
    assert fit_to_container((800, 600), 400) == (400.0, 300.0)
    assert fit_to_container((300, 600), 600) == (600.0, 1200.0)


def test_fit_to_container_unknown_size():
    assert fit_to_container((0, 600), 400) == (0, 0)
    assert fit_to_container((800, 600), 0) == (0, 0)
