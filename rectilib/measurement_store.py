"""
MeasurementStore - Point-pair measurements, pending click, and label selection.
"""

import itertools
import logging

from .errors import NoSelection
from .geometry import distance

# Label colors (RGB), cycled by measurement count
PALETTE = [
    (195, 202, 4),
    (0, 255, 255),
    (212, 0, 255),
    (50, 205, 50),
    (17, 225, 90),
    (239, 68, 68),
    (139, 92, 246),
    (59, 130, 246),
    (20, 184, 166),
    (132, 204, 22),
    (249, 115, 22),
    (240, 171, 252),
    (147, 197, 253),
]

DEFAULT_LABEL_OFFSET = (0.0, -10.0)
DEFAULT_NUDGE_STEP = 5

NUDGE_DIRECTIONS = {
    "left": (-1, 0),
    "right": (1, 0),
    "up": (0, -1),
    "down": (0, 1),
}

_ids = itertools.count(1)


class Measurement:
    """
    A distance between two points captured at a fixed calibration.

    value and units are computed once when the measurement is created and
    are read-only afterwards. Only the label offset can be edited.
    """

    def __init__(self, p1, p2, value, units, color_index, calibration=None,
                 label_offset=DEFAULT_LABEL_OFFSET):
        self._id = next(_ids)
        self._p1 = (float(p1[0]), float(p1[1]))
        self._p2 = (float(p2[0]), float(p2[1]))
        self._value = float(value)
        self._units = units
        self._color_index = color_index
        self._calibration = calibration
        self.label_offset = (float(label_offset[0]), float(label_offset[1]))

    @property
    def id(self):
        return self._id

    @property
    def p1(self):
        return self._p1

    @property
    def p2(self):
        return self._p2

    @property
    def value(self):
        return self._value

    @property
    def units(self):
        return self._units

    @property
    def color_index(self):
        return self._color_index

    @property
    def color(self):
        return PALETTE[self._color_index % len(PALETTE)]

    @property
    def calibration(self):
        """CalibrationScale in effect at capture, or None for pixel measurements"""
        return self._calibration

    @property
    def label(self):
        return f"{self._value:.2f} {self._units}"

    def midpoint(self):
        return ((self._p1[0] + self._p2[0]) / 2.0, (self._p1[1] + self._p2[1]) / 2.0)

    def __repr__(self):
        return f"Measurement(id={self._id}, {self.label})"


class MeasurementStore:
    """
    Ordered measurements plus the click-capture state machine.

    The store is Idle when no point is pending and AwaitingSecondPoint when
    one is. Selection is held by measurement id, so deleting or reordering
    never leaves it pointing at the wrong entry.
    """

    def __init__(self):
        self.measurements = []
        self._pending = None
        self._selected_id = None

    def __len__(self):
        return len(self.measurements)

    def __iter__(self):
        return iter(self.measurements)

    @property
    def pending_point(self):
        return self._pending

    def is_awaiting_second_point(self):
        return self._pending is not None

    def add_point(self, point, calibration=None):
        """
        Register a click in raster coordinates.

        Args:
            point: (x, y) in rectified or raw pixel space
            calibration: CalibrationScale when a rectified frame is active,
                         None to measure in pixels

        Returns:
            Measurement if this click completed a pair, otherwise None
        """
        point = (float(point[0]), float(point[1]))
        if self._pending is None:
            self._pending = point
            return None

        first, self._pending = self._pending, None
        dist_px = distance(first, point)

        if calibration is not None and calibration.px_per_cm > 0:
            value, units = dist_px / calibration.px_per_cm, "cm"
        else:
            value, units, calibration = dist_px, "px", None

        color_index = len(self.measurements) % len(PALETTE)
        measurement = Measurement(first, point, value, units, color_index, calibration)
        self.measurements.append(measurement)
        logging.info(f"Measured {measurement.label}")
        return measurement

    def reset_pending(self):
        """
        Discard an unpaired click.

        Returns:
            bool: True if a pending point was dropped
        """
        if self._pending is None:
            return False
        self._pending = None
        return True

    def clear_all(self):
        """Discard every measurement, the pending point, and the selection"""
        self.measurements = []
        self._pending = None
        self._selected_id = None

    # Selection

    @property
    def selected(self):
        for m in self.measurements:
            if m.id == self._selected_id:
                return m
        return None

    @property
    def selected_index(self):
        """Position of the selected measurement, or -1 when nothing is selected"""
        for i, m in enumerate(self.measurements):
            if m.id == self._selected_id:
                return i
        return -1

    def require_selected(self):
        selected = self.selected
        if selected is None:
            raise NoSelection("No measurement selected")
        return selected

    @staticmethod
    def label_anchor(measurement, to_canvas):
        """Canvas position of a measurement's label"""
        p1 = to_canvas(measurement.p1)
        p2 = to_canvas(measurement.p2)
        dx, dy = measurement.label_offset
        return (p1[0] + p2[0]) / 2.0 + dx, (p1[1] + p2[1]) / 2.0 + dy

    def select_nearest(self, canvas_point, to_canvas):
        """
        Select the measurement whose label is closest to canvas_point.

        Args:
            canvas_point: (x, y) in canvas pixels
            to_canvas: Function mapping raster points to canvas points

        Returns:
            Measurement selected, or None if the store is empty
        """
        best, best_dist = None, None
        for m in self.measurements:
            d = distance(self.label_anchor(m, to_canvas), canvas_point)
            if best_dist is None or d < best_dist:
                best, best_dist = m, d

        self._selected_id = best.id if best is not None else None
        return best

    def nudge_selected(self, direction, step=DEFAULT_NUDGE_STEP):
        """
        Move the selected label by step canvas pixels.

        Args:
            direction: "left", "right", "up" or "down"
            step: Distance in canvas pixels

        Returns:
            bool: False when nothing is selected
        """
        if direction not in NUDGE_DIRECTIONS:
            raise ValueError(f"Unknown nudge direction: {direction}")

        selected = self.selected
        if selected is None:
            return False

        ux, uy = NUDGE_DIRECTIONS[direction]
        dx, dy = selected.label_offset
        selected.label_offset = (dx + ux * step, dy + uy * step)
        return True

    def delete_selected(self):
        """
        Remove the selected measurement.

        Returns:
            Measurement removed, or None when nothing is selected
        """
        selected = self.selected
        if selected is None:
            return None

        self.measurements = [m for m in self.measurements if m.id != selected.id]
        self._selected_id = None
        return selected
