"""
Annotator - Draws measurement lines, endpoints and labels onto RGB rasters.

Used both for the on-screen overlay (canvas coordinates) and for the
exported image (raster coordinates).
"""

import cv2  # For text rendering
import cv3  # For line and circle drawing

FONT = cv2.FONT_HERSHEY_SIMPLEX
SELECTION_COLOR = (119, 96, 250)
PENDING_COLOR = (0, 255, 60)
POINT_RADIUS = 3


def _draw_label(image, text, x, y, color, font_scale, thickness):
    # Dark outline keeps the label readable on any background
    cv2.putText(image, text, (int(x), int(y)), FONT, font_scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(image, text, (int(x), int(y)), FONT, font_scale, color, thickness, cv2.LINE_AA)


def _draw_selection_box(image, text, x, y, font_scale, thickness):
    (text_w, text_h), baseline = cv2.getTextSize(text, FONT, font_scale, thickness)
    cv2.rectangle(image, (int(x) - 6, int(y) - text_h - 6),
                  (int(x) + text_w + 6, int(y) + baseline + 4), SELECTION_COLOR, 1)


def _draw_segment(image, p1, p2, color):
    x1, y1 = int(round(p1[0])), int(round(p1[1]))
    x2, y2 = int(round(p2[0])), int(round(p2[1]))
    cv3.line(image, x1, y1, x2, y2, color=color, t=2)
    cv3.circle(image, x1, y1, POINT_RADIUS, color=color, fill=True)
    cv3.circle(image, x2, y2, POINT_RADIUS, color=color, fill=True)


def render_annotations(image, measurements, label_scale=1.0, font_scale=0.7, thickness=2):
    """
    Draw measurements into a copy of the raster for export.

    Label offsets are stored in display pixels, so they are divided by
    label_scale (the display scale at export time) to land in the same
    place relative to the line as on screen.

    Args:
        image: RGB numpy array (rectified or original raster)
        measurements: Iterable of Measurement in raster coordinates
        label_scale: Current display scale (canvas pixels per raster pixel)

    Returns:
        Annotated copy of image
    """
    annotated = image.copy()
    label_scale = label_scale if label_scale > 0 else 1.0

    for m in measurements:
        _draw_segment(annotated, m.p1, m.p2, m.color)
        mid_x, mid_y = m.midpoint()
        dx, dy = m.label_offset
        _draw_label(annotated, m.label, mid_x + dx / label_scale, mid_y + dy / label_scale,
                    m.color, font_scale, thickness)

    return annotated


def draw_canvas_overlay(canvas_image, store, to_canvas, font_scale=0.5, thickness=1):
    """
    Draw the measurement overlay onto a canvas-sized image in place.

    Args:
        canvas_image: RGB numpy array the size of the viewport
        store: MeasurementStore to draw
        to_canvas: Function mapping raster points to canvas points
    """
    selected = store.selected

    for m in store:
        _draw_segment(canvas_image, to_canvas(m.p1), to_canvas(m.p2), m.color)
        x, y = store.label_anchor(m, to_canvas)
        _draw_label(canvas_image, m.label, x, y, m.color, font_scale, thickness)
        if selected is not None and m.id == selected.id:
            _draw_selection_box(canvas_image, m.label, x, y, font_scale, thickness)

    if store.pending_point is not None:
        x, y = to_canvas(store.pending_point)
        cv3.circle(canvas_image, int(round(x)), int(round(y)), POINT_RADIUS,
                   color=PENDING_COLOR, fill=True)
