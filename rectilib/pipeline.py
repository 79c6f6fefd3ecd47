"""
MeasurementPipeline - Detection, calibration, rectification and measurement state.

The pipeline owns one RectificationSession at a time. Every recomputation
builds a complete new session and swaps it in with a single assignment, so
callers never observe a homography from one run paired with a frame size
from another. Failures at any stage fall back to a raw-pixel session.
"""

import logging
import os

import cv2

from . import image_io
from .annotator import render_annotations
from .errors import (ConfigurationError, DegenerateGeometry, DetectionAbsent, EmptyExport,
                     NoSelection)
from .geometry import marker_homography, order_corners
from .marker_detector import VALID_MARKER_IDS, select_largest
from .measurement_store import DEFAULT_NUDGE_STEP, MeasurementStore
from .rectification import (RectificationSession, build_rectification, is_rectified,
                            raw_session, warp_to_frame)
from .scale_calibrator import ScaleCalibrator

CM_PER_INCH = 2.54

NO_MARKER_STATUS = "No ArUco detected. Showing original image; measurements in pixels."


class MeasurementPipeline:
    """
    Sequences marker detection through to the rectified raster and routes
    user commands to the measurement store.
    """

    def __init__(self, detector, calibrator=None, margin_cm=0.0, valid_ids=VALID_MARKER_IDS,
                 auto_calibration=True, manual_px_per_cm=None):
        """
        Args:
            detector: Object with detect(image) -> list of Marker
            calibrator: ScaleCalibrator (default settings if None)
            margin_cm: Border added around the rectified image
            valid_ids: Marker ids accepted as the reference
            auto_calibration: Derive px/cm from the marker when True
            manual_px_per_cm: Scale used when auto calibration is off
        """
        self.detector = detector
        self.calibrator = calibrator or ScaleCalibrator()
        self.margin_cm = margin_cm
        self.valid_ids = valid_ids
        self.auto_calibration = auto_calibration
        self.manual_px_per_cm = manual_px_per_cm

        self.store = MeasurementStore()
        self.session = None
        self.source_path = None
        self.filename_base = 'annotated'
        self.status = "Load an image with a known-size ArUco marker."

    # Session

    @property
    def raster(self):
        """Raster currently being measured on (rectified if available)"""
        return self.session.raster if self.session is not None else None

    @property
    def is_rectified(self):
        return is_rectified(self.session)

    @property
    def calibration(self):
        return self.session.calibration if self.session is not None else None

    def load_image(self, image, source_path=None):
        """
        Replace the source image, clear measurements and rectify.

        Args:
            image: RGB numpy array
            source_path: File the image came from, used for the export name

        Returns:
            bool: True if a rectified view was produced
        """
        self.source_path = source_path
        self.filename_base = image_io.filename_base(source_path) if source_path else 'annotated'
        self.store.clear_all()
        self.session = raw_session(image, "Image loaded.")
        return self.rectify()

    def rectify(self):
        """
        Recompute the session from the current source image.

        Returns:
            bool: True if rectification succeeded
        """
        if self.session is None:
            return False

        source = self.session.source_image
        try:
            session = self._build_session(source)
        except DetectionAbsent:
            session = raw_session(source, NO_MARKER_STATUS)
        except (ConfigurationError, DegenerateGeometry, ValueError, cv2.error) as e:
            logging.error(f"Rectification failed: {str(e)}")
            session = raw_session(source, f"Rectification failed ({e}). Measuring in pixels.")

        self.session = session
        self.status = session.status
        return is_rectified(session)

    def _build_session(self, source):
        markers = self.detector.detect(source)
        marker = select_largest(markers, self.valid_ids)
        if marker is None:
            raise DetectionAbsent("No eligible marker")

        quad = order_corners(marker.corners)
        h_cm = marker_homography(quad, self.calibrator.marker_size_cm)
        calibration = self.calibrator.calibrate(quad, auto=self.auto_calibration,
                                                manual_value=self.manual_px_per_cm)

        height, width = source.shape[:2]
        frame = build_rectification(h_cm, (width, height), calibration.px_per_cm, self.margin_cm)
        raster = warp_to_frame(source, frame)

        status = (f"Rectified view (marker {marker.id}) @ "
                  f"{self.calibrator.get_status_message(calibration)}.")
        logging.info(status)
        return RectificationSession(source, raster, marker.id, quad, h_cm, frame, calibration, status)

    def set_auto_calibration(self, enabled):
        """Switch between marker-derived and manual scale; measurements are kept"""
        self.auto_calibration = bool(enabled)
        return self.rectify()

    def set_manual_scale(self, value):
        """Set the manual px/cm value and recompute if manual mode is active"""
        self.manual_px_per_cm = value
        if self.auto_calibration:
            return self.is_rectified
        return self.rectify()

    def export_dpi(self, default=None):
        """DPI matching the active raster's physical scale"""
        if self.is_rectified:
            return int(round(self.calibration.px_per_cm * CM_PER_INCH))
        return default

    # Measurement commands

    def add_point(self, point):
        """
        Add a click in raster coordinates.

        Returns:
            Measurement if a pair was completed, otherwise None
        """
        if self.session is None:
            return None
        calibration = self.calibration if self.is_rectified else None
        measurement = self.store.add_point(point, calibration)
        if measurement is not None:
            self.status = f"Measured: {measurement.label}"
        else:
            self.status = "First point set. Click the second point."
        return measurement

    def reset_pending(self):
        self.store.reset_pending()
        self.status = "Selection reset."
        return self.status

    def clear_measurements(self):
        self.store.clear_all()
        self.status = "Measurements cleared."
        return self.status

    def select_nearest(self, canvas_point, to_canvas):
        selected = self.store.select_nearest(canvas_point, to_canvas)
        if selected is None:
            self.status = "Right-click near a label to select."
        else:
            self.status = "Label selected. Use arrow keys to move it, or Delete to remove."
        return selected

    def nudge_selected(self, direction, step=DEFAULT_NUDGE_STEP):
        try:
            self.store.require_selected()
        except NoSelection:
            self.status = "No measurement selected."
            return False
        return self.store.nudge_selected(direction, step)

    def delete_selected(self):
        try:
            self.store.require_selected()
        except NoSelection:
            self.status = "No measurement selected to delete."
            return None
        removed = self.store.delete_selected()
        self.status = "Measurement deleted."
        return removed

    # Export

    def default_export_path(self, directory=None, ext=None):
        """
        Suggested export path: <original-base-name>_annotated.<ext>

        Args:
            directory: Output directory (defaults to the source file's directory)
            ext: Output extension (defaults to one matching the source)
        """
        if directory is None:
            directory = os.path.dirname(self.source_path) if self.source_path else os.getcwd()
        if ext is None:
            ext = image_io.output_extension(self.source_path)
        return os.path.join(directory, image_io.annotated_filename(self.filename_base, ext))

    def export_annotated(self, path=None, label_scale=1.0, dpi=None):
        """
        Render all measurements onto the active raster and save it.

        Args:
            path: Output file (defaults to default_export_path())
            label_scale: Current display scale for label offset conversion
            dpi: DPI metadata (defaults to the rectified scale)

        Returns:
            str: Path of the written file

        Raises:
            EmptyExport: If there are no measurements and no pending point
        """
        if self.raster is None or (len(self.store) == 0 and self.store.pending_point is None):
            raise EmptyExport("Nothing to save.")

        if path is None:
            path = self.default_export_path()

        annotated = render_annotations(self.raster, self.store, label_scale)
        image_io.save_image(path, annotated, dpi=dpi or self.export_dpi())
        self.status = f"Saved {path}"
        return path
