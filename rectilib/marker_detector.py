"""
MarkerDetector - ArUco marker detection and reference-marker selection.
"""

import logging
from collections import namedtuple

import numpy as np
import cv2

from .geometry import quad_area

DEFAULT_DICTIONARY = "DICT_5X5_50"
VALID_MARKER_IDS = range(0, 50)

Marker = namedtuple("Marker", ["id", "corners"])
Marker.__doc__ = "Detected marker id and its 4 corners in detector order"


class MarkerDetector:
    """
    Detects ArUco markers in RGB images.

    Wraps the cv2.aruco detector for one predefined dictionary. Works with
    both the ArucoDetector API (OpenCV >= 4.7) and the older module-level
    detectMarkers function.
    """

    def __init__(self, dictionary_name=DEFAULT_DICTIONARY):
        """
        Initialize the detector

        Args:
            dictionary_name: Name of a cv2.aruco predefined dictionary
        """
        dict_id = getattr(cv2.aruco, dictionary_name, None)
        if dict_id is None:
            raise ValueError(f"Unknown ArUco dictionary: {dictionary_name}")

        self.dictionary_name = dictionary_name
        self.dictionary = cv2.aruco.getPredefinedDictionary(dict_id)

        if hasattr(cv2.aruco, "ArucoDetector"):
            self._detector = cv2.aruco.ArucoDetector(self.dictionary, cv2.aruco.DetectorParameters())
        else:
            self._detector = None
            self._parameters = cv2.aruco.DetectorParameters_create()

    def detect(self, image):
        """
        Find all markers in an image.

        Args:
            image: numpy array in RGB (or grayscale) format

        Returns:
            List of Marker. Empty if nothing was found or detection failed.
        """
        if image is None:
            return []

        logging.info(f"Detecting {self.dictionary_name} markers")

        try:
            if image.ndim == 3:
                gray = cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
            else:
                gray = image

            if self._detector is not None:
                corners, ids, _ = self._detector.detectMarkers(gray)
            else:
                corners, ids, _ = cv2.aruco.detectMarkers(gray, self.dictionary,
                                                          parameters=self._parameters)
        except cv2.error as e:
            logging.error(f"Marker detection failed: {str(e)}")
            return []

        if ids is None or len(ids) == 0:
            logging.info("No markers found")
            return []

        markers = []
        for marker_id, marker_corners in zip(np.asarray(ids).ravel(), corners):
            pts = np.asarray(marker_corners, dtype=np.float64).reshape(4, 2)
            markers.append(Marker(int(marker_id), [(float(x), float(y)) for x, y in pts]))

        logging.info(f"Found {len(markers)} marker(s): {[m.id for m in markers]}")
        return markers


def select_largest(markers, valid_ids=VALID_MARKER_IDS):
    """
    Pick the reference marker.

    Markers outside valid_ids are ignored. Among the rest the one with the
    largest quadrilateral area wins; on equal area the first one found is
    kept.

    Returns:
        Marker, or None if no marker is eligible
    """
    best, best_area = None, -1.0
    for marker in markers:
        if marker.id not in valid_ids:
            continue
        area = quad_area(marker.corners)
        if area > best_area:
            best, best_area = marker, area
    return best
