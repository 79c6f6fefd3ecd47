"""
Exception types raised by the rectification and measurement pipeline.
"""


class RectimeasureError(Exception):
    """Base class for all rectimeasure errors"""


class DetectionAbsent(RectimeasureError):
    """No eligible marker was found in the source image"""


class ConfigurationError(RectimeasureError, ValueError):
    """Invalid marker size or scale configuration"""


class DegenerateGeometry(RectimeasureError):
    """Homography produced an unusable rectified frame"""


class NoSelection(RectimeasureError):
    """An edit was requested but no measurement is selected"""


class EmptyExport(RectimeasureError):
    """Save was requested with nothing to annotate"""
