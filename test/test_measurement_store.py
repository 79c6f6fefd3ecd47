"""
Tests for the measurement store click state machine and label editing
"""

import pytest

from rectilib.errors import NoSelection
from rectilib.measurement_store import (DEFAULT_LABEL_OFFSET, PALETTE, MeasurementStore)
from rectilib.scale_calibrator import AUTO, MANUAL, CalibrationScale


def identity(point):
    return point


def add_pair(store, p1, p2, calibration=None):
    assert store.add_point(p1, calibration) is None
    return store.add_point(p2, calibration)


def test_raw_pixel_measurement():
    store = MeasurementStore()
    m = add_pair(store, (10, 10), (10, 110))
    assert m.value == pytest.approx(100.0)
    assert m.units == "px"
    assert m.calibration is None
    assert m.label == "100.00 px"
    assert len(store) == 1


def test_calibrated_measurement():
    store = MeasurementStore()
    m = add_pair(store, (0, 0), (80, 0), CalibrationScale(40.0, AUTO))
    assert m.value == pytest.approx(2.0)
    assert m.units == "cm"
    assert m.calibration == CalibrationScale(40.0, AUTO)


def test_non_positive_scale_measures_pixels():
    store = MeasurementStore()
    m = add_pair(store, (0, 0), (30, 40), CalibrationScale(0.0, MANUAL))
    assert m.units == "px"
    assert m.value == pytest.approx(50.0)


def test_state_machine_transitions():
    store = MeasurementStore()
    assert not store.is_awaiting_second_point()
    store.add_point((1, 1))
    assert store.is_awaiting_second_point()
    assert store.pending_point == (1.0, 1.0)
    store.add_point((2, 2))
    assert not store.is_awaiting_second_point()
    assert store.pending_point is None


def test_reset_pending():
    store = MeasurementStore()
    assert store.reset_pending() is False
    store.add_point((5, 5))
    assert store.reset_pending() is True
    assert store.pending_point is None
    # Next click starts a fresh pair
    assert store.add_point((7, 7)) is None
    assert len(store) == 0


def test_values_are_captured_at_creation():
    store = MeasurementStore()
    first = add_pair(store, (0, 0), (100, 0), CalibrationScale(20.0, AUTO))
    add_pair(store, (0, 0), (100, 0), CalibrationScale(50.0, MANUAL))

    assert first.value == pytest.approx(5.0)
    assert first.units == "cm"
    assert first.calibration.px_per_cm == 20.0
    assert store.measurements[1].value == pytest.approx(2.0)

    with pytest.raises(AttributeError):
        first.value = 1.0
    with pytest.raises(AttributeError):
        first.units = "px"


def test_palette_cycles_by_count():
    store = MeasurementStore()
    for i in range(len(PALETTE) + 2):
        add_pair(store, (i, 0), (i, 10))
    indices = [m.color_index for m in store]
    assert indices[:3] == [0, 1, 2]
    assert indices[len(PALETTE)] == 0
    assert store.measurements[1].color == PALETTE[1]


def test_clear_all():
    store = MeasurementStore()
    for i in range(3):
        add_pair(store, (0, i), (10, i))
    store.add_point((50, 50))
    store.select_nearest((5, 0), identity)

    store.clear_all()

    assert len(store) == 0
    assert store.pending_point is None
    assert store.selected is None
    assert store.selected_index == -1


def test_select_nearest_label():
    store = MeasurementStore()
    add_pair(store, (0, 0), (100, 0))
    add_pair(store, (0, 200), (100, 200))

    # Labels sit at the midpoint plus the default offset
    selected = store.select_nearest((50, 185), identity)
    assert selected is store.measurements[1]
    assert store.selected_index == 1

    store.select_nearest((55, -12), identity)
    assert store.selected_index == 0


def test_select_nearest_uses_canvas_transform():
    store = MeasurementStore()
    add_pair(store, (0, 0), (10, 0))
    add_pair(store, (100, 0), (110, 0))

    def zoomed(p):
        return (p[0] * 4 + 20, p[1] * 4 + 20)

    store.select_nearest((440, 10), zoomed)
    assert store.selected_index == 1


def test_select_nearest_empty():
    store = MeasurementStore()
    assert store.select_nearest((0, 0), identity) is None
    assert store.selected_index == -1


def test_label_anchor():
    store = MeasurementStore()
    m = add_pair(store, (0, 0), (100, 50))
    assert store.label_anchor(m, identity) == pytest.approx(
        (50 + DEFAULT_LABEL_OFFSET[0], 25 + DEFAULT_LABEL_OFFSET[1]))


def test_nudge_selected():
    store = MeasurementStore()
    m = add_pair(store, (0, 0), (100, 0))
    assert store.nudge_selected("left", 5) is False

    store.select_nearest((50, 0), identity)
    assert store.nudge_selected("right", 5)
    assert store.nudge_selected("down", 3)
    assert m.label_offset == (5.0, -7.0)
    # Value is untouched by label edits
    assert m.value == pytest.approx(100.0)


def test_nudge_unknown_direction():
    store = MeasurementStore()
    with pytest.raises(ValueError):
        store.nudge_selected("sideways", 5)


def test_delete_without_selection_is_no_op():
    store = MeasurementStore()
    add_pair(store, (0, 0), (10, 0))
    add_pair(store, (0, 5), (10, 5))
    before = list(store.measurements)

    assert store.delete_selected() is None
    assert store.measurements == before


def test_delete_selected_by_identity():
    store = MeasurementStore()
    a = add_pair(store, (0, 0), (10, 0))
    b = add_pair(store, (0, 100), (10, 100))
    c = add_pair(store, (0, 200), (10, 200))

    store.select_nearest((5, 90), identity)
    assert store.delete_selected() is b
    assert store.measurements == [a, c]
    assert store.selected is None
    assert store.delete_selected() is None


def test_selection_follows_measurement_not_position():
    store = MeasurementStore()
    a = add_pair(store, (0, 0), (10, 0))
    b = add_pair(store, (0, 100), (10, 100))
    store.select_nearest((5, 90), identity)

    # Reordering the list keeps the same measurement selected
    store.measurements.reverse()
    assert store.selected is b
    assert store.selected_index == 0
    assert a.id != b.id


def test_require_selected():
    store = MeasurementStore()
    with pytest.raises(NoSelection):
        store.require_selected()
    m = add_pair(store, (0, 0), (10, 0))
    store.select_nearest((0, 0), identity)
    assert store.require_selected() is m
