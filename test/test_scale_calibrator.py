"""
Tests for automatic and manual px/cm calibration
"""

import math

import pytest

from rectilib.errors import ConfigurationError
from rectilib.scale_calibrator import (AUTO, DEFAULT, MANUAL, CalibrationScale,
                                       ScaleCalibrator)

SQUARE_200 = [(100.0, 100.0), (300.0, 100.0), (300.0, 300.0), (100.0, 300.0)]


def test_auto_scale_square_marker():
    calibrator = ScaleCalibrator(marker_size_cm=5.0)
    assert calibrator.auto_scale(SQUARE_200) == pytest.approx(40.0)


def test_auto_scale_averages_sides():
    quad = [(0.0, 0.0), (110.0, 0.0), (110.0, 90.0), (0.0, 90.0)]
    calibrator = ScaleCalibrator(marker_size_cm=2.0)
    assert calibrator.auto_scale(quad) == pytest.approx(50.0)


@pytest.mark.parametrize("size_cm", [0.5, 5.0, 12.7])
@pytest.mark.parametrize("quad", [
    SQUARE_200,
    [(12.0, 8.0), (40.0, 10.0), (39.0, 41.0), (11.0, 37.0)],
])
def test_auto_scale_positive_and_finite(quad, size_cm):
    scale = ScaleCalibrator(marker_size_cm=size_cm).auto_scale(quad)
    assert scale > 0
    assert math.isfinite(scale)


@pytest.mark.parametrize("size_cm", [0.0, -5.0])
def test_auto_scale_rejects_bad_marker_size(size_cm):
    with pytest.raises(ConfigurationError):
        ScaleCalibrator(marker_size_cm=size_cm).auto_scale(SQUARE_200)


def test_calibrate_auto_falls_back_to_default():
    calibrator = ScaleCalibrator(marker_size_cm=0.0, default_px_per_cm=20.0)
    assert calibrator.calibrate(SQUARE_200) == CalibrationScale(20.0, DEFAULT)


def test_calibrate_auto():
    assert ScaleCalibrator().calibrate(SQUARE_200) == CalibrationScale(40.0, AUTO)


@pytest.mark.parametrize("value, expected", [
    ("12.5", CalibrationScale(12.5, MANUAL)),
    (33, CalibrationScale(33.0, MANUAL)),
    ("abc", CalibrationScale(20.0, DEFAULT)),
    ("", CalibrationScale(20.0, DEFAULT)),
    (None, CalibrationScale(20.0, DEFAULT)),
    ("-3", CalibrationScale(20.0, DEFAULT)),
    (0, CalibrationScale(20.0, DEFAULT)),
    ("nan", CalibrationScale(20.0, DEFAULT)),
    ("inf", CalibrationScale(20.0, DEFAULT)),
])
def test_calibrate_manual_values(value, expected):
    assert ScaleCalibrator().calibrate(SQUARE_200, auto=False, manual_value=value) == expected


def test_calibrate_manual_ignores_marker():
    result = ScaleCalibrator().calibrate(SQUARE_200, auto=False, manual_value="12.5")
    assert result == CalibrationScale(12.5, MANUAL)


def test_calibrate_manual_invalid_uses_default():
    result = ScaleCalibrator().calibrate(SQUARE_200, auto=False, manual_value="oops")
    assert result == CalibrationScale(20.0, DEFAULT)


def test_default_must_be_positive():
    with pytest.raises(ConfigurationError):
        ScaleCalibrator(default_px_per_cm=0)


def test_status_message():
    message = ScaleCalibrator.get_status_message(CalibrationScale(40.0, AUTO))
    assert message == "40.000 px/cm (0.025 cm/px) [auto]"
    assert "pixels" in ScaleCalibrator.get_status_message(None)
