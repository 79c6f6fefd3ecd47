"""
Rectification - Builds the image-to-rectified-pixel transform and output frame.
"""

import logging
import math
from collections import namedtuple

import numpy as np
import cv2

from .errors import DegenerateGeometry
from .geometry import CM, RECTIFIED, scaling, translation

# Largest rectified raster we are willing to allocate (pixels)
MAX_RECTIFIED_PIXELS = 40_000_000

RectifiedFrame = namedtuple("RectifiedFrame", ["homography", "width", "height"])
RectifiedFrame.__doc__ = "Image-to-rectified homography and the integer output size"

RectificationSession = namedtuple("RectificationSession", [
    "source_image",  # RGB numpy array as loaded
    "raster",        # Rectified raster, or source_image in raw-pixel mode
    "marker_id",
    "marker_quad",   # Ordered marker corners in image pixels
    "h_cm",          # Image -> centimeter homography
    "frame",         # RectifiedFrame, or None in raw-pixel mode
    "calibration",   # CalibrationScale, or None in raw-pixel mode
    "status",
])


def raw_session(source_image, status):
    """Session that measures directly in source-image pixels"""
    return RectificationSession(source_image, source_image, None, None, None, None, None, status)


def is_rectified(session):
    return session is not None and session.frame is not None


def image_corners(width, height):
    return [(0.0, 0.0), (width - 1.0, 0.0), (width - 1.0, height - 1.0), (0.0, height - 1.0)]


def build_rectification(h_cm, image_size, px_per_cm, margin_cm=0.0, max_pixels=MAX_RECTIFIED_PIXELS):
    """
    Compose the transform from source pixels straight to rectified pixels.

    The source image corners are projected into centimeters to find the
    bounding box of the whole warped image. That box (plus margin) is moved
    to the origin and scaled by px_per_cm, so nothing is clipped under a
    well-conditioned homography.

    Args:
        h_cm: Homography from image pixels to centimeters
        image_size: (width, height) of the source image
        px_per_cm: Output scale
        margin_cm: Extra border on every side, in centimeters
        max_pixels: Refuse frames larger than this

    Returns:
        RectifiedFrame

    Raises:
        DegenerateGeometry: If the projected bounds are not finite or too large
    """
    w, h = image_size
    cm_corners = h_cm.apply(image_corners(w, h))

    if not np.all(np.isfinite(cm_corners)):
        raise DegenerateGeometry("Image corners project to infinity")

    min_x, min_y = cm_corners.min(axis=0) - margin_cm
    max_x, max_y = cm_corners.max(axis=0) + margin_cm

    extent_x = float(max_x - min_x) * px_per_cm
    extent_y = float(max_y - min_y) * px_per_cm
    if not (math.isfinite(extent_x) and math.isfinite(extent_y)):
        raise DegenerateGeometry(f"Rectified frame overflows at {px_per_cm} px/cm")

    width = max(1, int(math.ceil(extent_x)))
    height = max(1, int(math.ceil(extent_y)))

    if width * height > max_pixels:
        raise DegenerateGeometry(
            f"Rectified frame {width}x{height} exceeds {max_pixels} pixels")

    to_origin = translation(-min_x, -min_y, CM, CM)
    to_pixels = scaling(px_per_cm, CM, RECTIFIED)
    h_rect = h_cm.compose(to_origin).compose(to_pixels)

    logging.debug(f"Rectified frame {width}x{height} from cm bounds "
                  f"[{min_x:.2f}, {max_x:.2f}] x [{min_y:.2f}, {max_y:.2f}]")
    return RectifiedFrame(h_rect, width, height)


def warp_to_frame(image, frame):
    """Warp a source image into its rectified frame (bilinear sampling)"""
    return cv2.warpPerspective(image, frame.homography.matrix, (frame.width, frame.height),
                               flags=cv2.INTER_LINEAR)
