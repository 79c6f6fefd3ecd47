"""
ImageCanvas - Renders the active raster onto a Tk canvas through a ViewTransform.
"""

import tkinter as tk
import numpy as np
import cv3
from PIL import Image, ImageTk

from .view_transform import ViewTransform

BACKGROUND = 64


class ImageCanvas:
    """Draws a raster with the current zoom/pan and handles drag panning"""

    def __init__(self, canvas, canvas_width, canvas_height):
        self.canvas = canvas
        self.view = ViewTransform(canvas_width, canvas_height)

        # Drag state for panning
        self.panning = False
        self.drag_start = None

        # PhotoImage reference (must keep reference to prevent garbage collection)
        self.photo = None

    def update_canvas_size(self, width, height):
        """Update canvas dimensions"""
        self.view.set_viewport_size(width, height)

    def set_raster(self, image_rgb):
        """Fit the view to a newly built raster"""
        height, width = image_rgb.shape[:2]
        self.view.set_raster_size(width, height)
        self.view.reset()

    def display_image(self, image_rgb, overlay_callback=None):
        """
        Display an image on the canvas with current zoom/pan settings

        Args:
            image_rgb: numpy array in RGB format
            overlay_callback: optional function(canvas_image) drawing overlays
                              in canvas coordinates
        """
        if image_rgb is None:
            return

        view = self.view
        canvas_w = int(view.viewport_width)
        canvas_h = int(view.viewport_height)
        canvas_image = np.full((canvas_h, canvas_w, 3), BACKGROUND, dtype=np.uint8)

        height, width = image_rgb.shape[:2]
        scale = view.scale
        new_width = max(1, int(width * scale))
        new_height = max(1, int(height * scale))
        offset_x, offset_y = view.offset

        # Only the visible part of the scaled raster is placed on the canvas
        x_offset = int(max(0, offset_x))
        y_offset = int(max(0, offset_y))
        img_x_start = int(max(0, -offset_x))
        img_y_start = int(max(0, -offset_y))
        img_x_end = int(min(new_width, img_x_start + canvas_w - x_offset))
        img_y_end = int(min(new_height, img_y_start + canvas_h - y_offset))

        if img_y_end > img_y_start and img_x_end > img_x_start:
            # Resize only the crop that is visible to keep deep zoom cheap
            src_x0 = int(img_x_start / scale)
            src_y0 = int(img_y_start / scale)
            src_x1 = min(width, int(np.ceil(img_x_end / scale)) + 1)
            src_y1 = min(height, int(np.ceil(img_y_end / scale)) + 1)
            crop = image_rgb[src_y0:src_y1, src_x0:src_x1]

            crop_w = max(1, int(round((src_x1 - src_x0) * scale)))
            crop_h = max(1, int(round((src_y1 - src_y0) * scale)))
            scaled = cv3.resize(crop, crop_w, crop_h)

            # Align the scaled crop with the canvas origin of the visible region
            dx = img_x_start - int(round(src_x0 * scale))
            dy = img_y_start - int(round(src_y0 * scale))
            visible = scaled[dy:dy + (img_y_end - img_y_start), dx:dx + (img_x_end - img_x_start)]
            h, w = visible.shape[:2]
            canvas_image[y_offset:y_offset + h, x_offset:x_offset + w] = visible

        if overlay_callback:
            overlay_callback(canvas_image)

        img_pil = Image.fromarray(canvas_image)
        self.photo = ImageTk.PhotoImage(image=img_pil)

        self.canvas.delete("all")
        self.canvas.create_image(0, 0, anchor=tk.NW, image=self.photo)

    def start_pan(self, x, y):
        """Start panning operation"""
        self.panning = True
        self.drag_start = (x, y)

    def update_pan(self, x, y):
        """Update pan offset during drag"""
        if self.panning and self.drag_start:
            self.view.pan_by(x - self.drag_start[0], y - self.drag_start[1])
            self.drag_start = (x, y)
            return True
        return False

    def end_pan(self):
        """End panning operation"""
        self.panning = False
        self.drag_start = None
