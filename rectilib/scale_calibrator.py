"""
ScaleCalibrator - Derives the pixels-per-centimeter scale for the rectified view.
"""

import logging
import math
from collections import namedtuple

import numpy as np

from .errors import ConfigurationError
from .geometry import edge_lengths

MARKER_SIZE_CM = 5.0
DEFAULT_PX_PER_CM = 20.0
MIN_PX_PER_CM = 1e-6

AUTO = "auto"
MANUAL = "manual"
DEFAULT = "default"

CalibrationScale = namedtuple("CalibrationScale", ["px_per_cm", "source"])
CalibrationScale.__doc__ = "Pixels per centimeter plus where the value came from"


class ScaleCalibrator:
    """
    Handles scale calibration for the rectified output.

    In auto mode the scale comes from the detected marker: its average side
    length in image pixels divided by its known physical size. This keeps
    the rectified image at roughly the resolution of the photo. In manual
    mode the user types a pixels-per-centimeter value directly.
    """

    def __init__(self, marker_size_cm=MARKER_SIZE_CM, default_px_per_cm=DEFAULT_PX_PER_CM):
        """
        Initialize the scale calibrator

        Args:
            marker_size_cm: Physical side length of the printed marker
            default_px_per_cm: Scale used whenever no valid value can be derived
        """
        if not default_px_per_cm > 0:
            raise ConfigurationError("Default scale must be positive")
        self.marker_size_cm = marker_size_cm
        self.default_px_per_cm = float(default_px_per_cm)

    def default_scale(self):
        return CalibrationScale(self.default_px_per_cm, DEFAULT)

    def auto_scale(self, quad):
        """
        Calculate pixels per centimeter from an ordered marker quad.

        Args:
            quad: Marker corners (TL, TR, BR, BL) in image pixels

        Returns:
            float: Mean side length divided by the marker size

        Raises:
            ConfigurationError: If the configured marker size is not positive
        """
        if not self.marker_size_cm > 0:
            raise ConfigurationError(
                f"Marker size must be > 0 cm, got {self.marker_size_cm}")

        mean_side_px = float(np.mean(edge_lengths(quad)))
        return max(MIN_PX_PER_CM, mean_side_px / self.marker_size_cm)

    def _parse_scale(self, value):
        try:
            scale = float(value)
        except (TypeError, ValueError):
            logging.warning(f"Ignoring non-numeric scale {value!r}")
            return None

        if not math.isfinite(scale) or scale <= 0:
            logging.warning(f"Ignoring invalid scale {value!r}")
            return None
        return scale

    def calibrate(self, quad, auto=True, manual_value=None):
        """
        Produce the calibration for a detected marker.

        Args:
            quad: Ordered marker corners in image pixels
            auto: Derive the scale from the marker when True
            manual_value: User value used when auto is False

        Returns:
            CalibrationScale
        """
        if not auto:
            scale = self._parse_scale(manual_value)
            if scale is None:
                return self.default_scale()
            return CalibrationScale(scale, MANUAL)

        try:
            return CalibrationScale(self.auto_scale(quad), AUTO)
        except ConfigurationError as e:
            logging.warning(f"Auto calibration failed ({e}); using {self.default_px_per_cm} px/cm")
            return self.default_scale()

    @staticmethod
    def get_status_message(scale):
        """
        Get a status message describing a calibration.

        Returns:
            str: Human-readable status message
        """
        if scale is None:
            return "No calibration: measuring in pixels"
        return f"{scale.px_per_cm:.3f} px/cm ({1.0 / scale.px_per_cm:.3f} cm/px) [{scale.source}]"
