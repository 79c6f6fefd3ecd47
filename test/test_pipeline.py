"""
End-to-end tests for detection -> rectification -> measurement
"""

import os

import numpy as np
import pytest
from PIL import Image

from rectilib.errors import EmptyExport
from rectilib.marker_detector import Marker
from rectilib.pipeline import NO_MARKER_STATUS, MeasurementPipeline
from rectilib.scale_calibrator import AUTO, MANUAL, ScaleCalibrator

# Detector order is arbitrary; the pipeline must order these itself
SQUARE_200 = [(300.0, 300.0), (100.0, 100.0), (100.0, 300.0), (300.0, 100.0)]


class FakeDetector:
    """Returns a fixed list of markers for any image"""

    def __init__(self, markers):
        self.markers = markers
        self.calls = 0

    def detect(self, image):
        self.calls += 1
        return list(self.markers)


def blank_image(width=600, height=400):
    return np.full((height, width, 3), 200, dtype=np.uint8)


def make_pipeline(markers, **kwargs):
    return MeasurementPipeline(FakeDetector(markers), ScaleCalibrator(marker_size_cm=5.0), **kwargs)


def test_raw_pixel_mode_without_marker():
    pipeline = make_pipeline([])
    image = blank_image(100, 100)

    assert pipeline.load_image(image) is False
    assert not pipeline.is_rectified
    assert pipeline.raster is image
    assert pipeline.status == NO_MARKER_STATUS

    pipeline.add_point((10, 10))
    m = pipeline.add_point((10, 110))
    assert m.value == pytest.approx(100.0)
    assert m.units == "px"


def test_auto_calibration_square_marker():
    pipeline = make_pipeline([Marker(7, SQUARE_200)])

    assert pipeline.load_image(blank_image()) is True
    assert pipeline.calibration.px_per_cm == pytest.approx(40.0)
    assert pipeline.calibration.source == AUTO
    assert pipeline.session.marker_id == 7
    assert pipeline.session.marker_quad[0] == pytest.approx((100.0, 100.0))

    frame = pipeline.session.frame
    assert pipeline.raster.shape[:2] == (frame.height, frame.width)

    pipeline.add_point((100, 100))
    m = pipeline.add_point((180, 100))
    assert m.value == pytest.approx(2.0)
    assert m.units == "cm"
    assert pipeline.status == "Measured: 2.00 cm"


def test_ids_outside_range_are_ignored():
    pipeline = make_pipeline([Marker(60, SQUARE_200)])
    assert pipeline.load_image(blank_image()) is False
    assert pipeline.status == NO_MARKER_STATUS


def test_largest_marker_is_reference():
    small = Marker(1, [(10.0, 10.0), (50.0, 10.0), (50.0, 50.0), (10.0, 50.0)])
    large = Marker(2, SQUARE_200)
    pipeline = make_pipeline([small, large])

    pipeline.load_image(blank_image())
    assert pipeline.session.marker_id == 2
    assert pipeline.calibration.px_per_cm == pytest.approx(40.0)


def test_equal_area_keeps_first_found():
    a = Marker(3, [(10.0, 10.0), (50.0, 10.0), (50.0, 50.0), (10.0, 50.0)])
    b = Marker(4, [(110.0, 10.0), (150.0, 10.0), (150.0, 50.0), (110.0, 50.0)])
    pipeline = make_pipeline([a, b])
    pipeline.load_image(blank_image())
    assert pipeline.session.marker_id == 3


def test_manual_calibration():
    pipeline = make_pipeline([Marker(0, SQUARE_200)], auto_calibration=False, manual_px_per_cm="10")
    pipeline.load_image(blank_image())
    assert pipeline.calibration.px_per_cm == pytest.approx(10.0)
    assert pipeline.calibration.source == MANUAL


def test_calibration_change_keeps_measurements():
    pipeline = make_pipeline([Marker(0, SQUARE_200)])
    pipeline.load_image(blank_image())
    pipeline.add_point((0, 0))
    first = pipeline.add_point((40, 0))
    assert first.value == pytest.approx(1.0)

    pipeline.set_manual_scale(20.0)
    pipeline.set_auto_calibration(False)

    assert pipeline.calibration.px_per_cm == pytest.approx(20.0)
    assert pipeline.store.measurements == [first]
    assert first.value == pytest.approx(1.0)
    assert first.units == "cm"
    assert first.calibration.px_per_cm == pytest.approx(40.0)

    pipeline.add_point((0, 0))
    second = pipeline.add_point((40, 0))
    assert second.value == pytest.approx(2.0)


def test_session_is_replaced_not_mutated():
    pipeline = make_pipeline([Marker(0, SQUARE_200)])
    pipeline.load_image(blank_image())
    old = pipeline.session

    pipeline.set_manual_scale("25")
    pipeline.set_auto_calibration(False)

    assert pipeline.session is not old
    assert old.calibration.px_per_cm == pytest.approx(40.0)
    assert old.frame.width > pipeline.session.frame.width


def test_oversized_rectification_falls_back_to_pixels():
    pipeline = make_pipeline([Marker(0, SQUARE_200)], auto_calibration=False,
                             manual_px_per_cm=1e6)
    image = blank_image()
    assert pipeline.load_image(image) is False
    assert pipeline.raster is image
    assert pipeline.calibration is None
    assert "Measuring in pixels" in pipeline.status


def test_overflowing_manual_scale_falls_back_to_pixels():
    pipeline = make_pipeline([Marker(0, SQUARE_200)])
    image = blank_image()
    assert pipeline.load_image(image) is True

    pipeline.set_auto_calibration(False)
    assert pipeline.set_manual_scale("1e308") is False
    assert pipeline.raster is image
    assert pipeline.calibration is None
    assert pipeline.manual_px_per_cm == "1e308"
    assert "Measuring in pixels" in pipeline.status


def test_new_image_clears_measurements():
    pipeline = make_pipeline([])
    pipeline.load_image(blank_image())
    pipeline.add_point((1, 1))
    pipeline.add_point((2, 2))
    pipeline.add_point((3, 3))

    pipeline.load_image(blank_image())
    assert len(pipeline.store) == 0
    assert pipeline.store.pending_point is None


def test_clear_all_scenario():
    pipeline = make_pipeline([])
    pipeline.load_image(blank_image())
    for i in range(3):
        pipeline.add_point((0, i))
        pipeline.add_point((10, i))
    pipeline.add_point((50, 50))

    pipeline.clear_measurements()
    assert len(pipeline.store) == 0
    assert pipeline.store.pending_point is None
    assert pipeline.store.selected_index == -1


def test_delete_without_selection_reports_no_effect():
    pipeline = make_pipeline([])
    pipeline.load_image(blank_image())
    pipeline.add_point((0, 0))
    pipeline.add_point((10, 0))
    before = list(pipeline.store.measurements)

    assert pipeline.delete_selected() is None
    assert pipeline.store.measurements == before
    assert pipeline.status == "No measurement selected to delete."


def test_select_nudge_and_delete():
    pipeline = make_pipeline([])
    pipeline.load_image(blank_image())
    pipeline.add_point((0, 0))
    m = pipeline.add_point((100, 0))

    assert pipeline.nudge_selected("up", 5) is False
    assert pipeline.status == "No measurement selected."
    assert pipeline.select_nearest((50, -10), lambda p: p) is m
    assert pipeline.nudge_selected("up", 5) is True
    assert m.label_offset == (0.0, -15.0)
    assert pipeline.delete_selected() is m
    assert pipeline.status == "Measurement deleted."


def test_export_requires_content(tmp_path):
    pipeline = make_pipeline([])
    pipeline.load_image(blank_image(), str(tmp_path / "scene.png"))
    with pytest.raises(EmptyExport):
        pipeline.export_annotated()
    assert not os.listdir(tmp_path)


def test_export_writes_annotated_copy(tmp_path):
    pipeline = make_pipeline([Marker(0, SQUARE_200)])
    pipeline.load_image(blank_image(), str(tmp_path / "scene.jpeg"))
    pipeline.add_point((10, 10))
    pipeline.add_point((200, 10))

    path = pipeline.export_annotated()

    assert path == str(tmp_path / "scene_annotated.jpg")
    with Image.open(path) as saved:
        assert saved.size == (pipeline.session.frame.width, pipeline.session.frame.height)
        # 40 px/cm is stored as ~102 DPI
        assert round(saved.info["dpi"][0]) == 102


def test_export_with_only_pending_point(tmp_path):
    pipeline = make_pipeline([])
    pipeline.load_image(blank_image(), str(tmp_path / "photo.heic"))
    pipeline.add_point((10, 10))
    path = pipeline.export_annotated()
    assert os.path.basename(path) == "photo_annotated.png"
    assert os.path.exists(path)
