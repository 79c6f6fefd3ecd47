"""
Rectimeasure library modules - rectification, calibration and measurement logic.
"""

from .errors import (ConfigurationError, DegenerateGeometry, DetectionAbsent, EmptyExport,
                     NoSelection, RectimeasureError)
from .geometry import Homography, estimate_homography, order_corners, quad_area
from .scale_calibrator import (DEFAULT_PX_PER_CM, MARKER_SIZE_CM, CalibrationScale,
                               ScaleCalibrator)
from .rectification import RectificationSession, RectifiedFrame, build_rectification
from .view_transform import ViewTransform
from .measurement_store import Measurement, MeasurementStore
from .marker_detector import DEFAULT_DICTIONARY, Marker, MarkerDetector
from .pipeline import MeasurementPipeline
from .image_canvas import ImageCanvas

__all__ = [
    'RectimeasureError',
    'ConfigurationError',
    'DegenerateGeometry',
    'DetectionAbsent',
    'EmptyExport',
    'NoSelection',
    'Homography',
    'estimate_homography',
    'order_corners',
    'quad_area',
    'DEFAULT_PX_PER_CM',
    'MARKER_SIZE_CM',
    'CalibrationScale',
    'ScaleCalibrator',
    'RectificationSession',
    'RectifiedFrame',
    'build_rectification',
    'ViewTransform',
    'Measurement',
    'MeasurementStore',
    'DEFAULT_DICTIONARY',
    'Marker',
    'MarkerDetector',
    'MeasurementPipeline',
    'ImageCanvas',
]
