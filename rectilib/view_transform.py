"""
ViewTransform - Maps between canvas coordinates and raster coordinates under zoom and pan.
"""

MIN_ZOOM = 0.1
MAX_ZOOM = 20.0
KEY_ZOOM_STEP = 1.1


def clamp_zoom(zoom):
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


class ViewTransform:
    """
    Owns the canvas <-> raster mapping for the displayed image.

    canvas = offset + raster_point * (base_scale * zoom), where offset
    centers the scaled raster in the viewport and then adds the pan.
    base_scale fits the raster to the viewport; zoom is the user multiplier.
    """

    def __init__(self, viewport_width, viewport_height):
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.raster_width = None
        self.raster_height = None

        self.base_scale = 1.0
        self.zoom = 1.0
        self.pan = (0.0, 0.0)

    def set_viewport_size(self, width, height):
        """Update viewport dimensions and refit the base scale; zoom and pan are kept"""
        self.viewport_width = width
        self.viewport_height = height
        self._fit_base_scale()

    def set_raster_size(self, width, height):
        """Record the displayed raster size and refit the base scale"""
        self.raster_width = width
        self.raster_height = height
        self._fit_base_scale()

    def _fit_base_scale(self):
        if not self.raster_width or not self.raster_height:
            self.base_scale = 1.0
            return
        self.base_scale = min(self.viewport_width / self.raster_width,
                              self.viewport_height / self.raster_height)

    def has_raster(self):
        return self.raster_width is not None

    @property
    def scale(self):
        """Effective raster-to-canvas scale"""
        return self.base_scale * self.zoom

    @property
    def offset(self):
        """Canvas position of the raster origin"""
        scale = self.scale
        raster_w = (self.raster_width or 0) * scale
        raster_h = (self.raster_height or 0) * scale
        return ((self.viewport_width - raster_w) / 2.0 + self.pan[0],
                (self.viewport_height - raster_h) / 2.0 + self.pan[1])

    def to_canvas(self, point):
        """Convert raster coordinates to canvas coordinates"""
        ox, oy = self.offset
        scale = self.scale
        return ox + point[0] * scale, oy + point[1] * scale

    def to_image(self, point):
        """Convert canvas coordinates to raster coordinates"""
        ox, oy = self.offset
        scale = self.scale
        return (point[0] - ox) / scale, (point[1] - oy) / scale

    def contains_image_point(self, point):
        """Check whether a raster point lies on the displayed raster"""
        if not self.has_raster():
            return False
        x, y = point
        return 0 <= x < self.raster_width and 0 <= y < self.raster_height

    def zoom_at(self, canvas_point, factor):
        """
        Zoom by factor while keeping the raster point under canvas_point fixed.

        Args:
            canvas_point: (x, y) anchor in canvas pixels
            factor: Multiplier applied to the current zoom (must be > 0)

        Returns:
            bool: True if the zoom level changed
        """
        if factor <= 0:
            return False

        anchor = self.to_image(canvas_point)
        old_zoom = self.zoom
        self.zoom = clamp_zoom(self.zoom * factor)

        # Shift pan so the anchor lands back under the cursor
        new_x, new_y = self.to_canvas(anchor)
        self.pan = (self.pan[0] + canvas_point[0] - new_x,
                    self.pan[1] + canvas_point[1] - new_y)
        return self.zoom != old_zoom

    def zoom_in(self):
        """Zoom in around the viewport center"""
        return self.zoom_at(self.viewport_center(), KEY_ZOOM_STEP)

    def zoom_out(self):
        """Zoom out around the viewport center"""
        return self.zoom_at(self.viewport_center(), 1.0 / KEY_ZOOM_STEP)

    def viewport_center(self):
        return self.viewport_width / 2.0, self.viewport_height / 2.0

    def pan_by(self, dx, dy):
        self.pan = (self.pan[0] + dx, self.pan[1] + dy)

    def reset(self):
        """Reset zoom and pan and refit the raster to the viewport"""
        self.zoom = 1.0
        self.pan = (0.0, 0.0)
        self._fit_base_scale()

    def get_zoom_percentage(self):
        """Get current effective zoom as a percentage"""
        return int(self.scale * 100)
