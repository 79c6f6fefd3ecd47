"""
Rectimeasure - Marker-Calibrated Measurement Tool
Detects an ArUco marker of known size, rectifies the photo to a fronto-parallel
view at a known px/cm scale, and measures distances between clicked points.
Features: Zoom, Pan, Label nudging, Annotated export
"""

import argparse
import logging
import os
import tkinter as tk
from tkinter import filedialog, messagebox, ttk

from rectilib import (DEFAULT_DICTIONARY, DEFAULT_PX_PER_CM, MARKER_SIZE_CM, EmptyExport,
                      ImageCanvas, MarkerDetector, MeasurementPipeline, ScaleCalibrator)
from rectilib import image_io
from rectilib.annotator import draw_canvas_overlay
from rectilib.measurement_store import DEFAULT_NUDGE_STEP

ARROW_KEYS = {
    "Left": "left",
    "Right": "right",
    "Up": "up",
    "Down": "down",
}

WHEEL_STEP = 0.1


class RectimeasureGUI:
    def __init__(self, root, pipeline, nudge_step=DEFAULT_NUDGE_STEP):
        self.root = root
        self.root.title("Rectimeasure")
        self.pipeline = pipeline
        self.source_dpi = None

        # Canvas dimensions (will be set in setup_ui)
        self.canvas_width = 800
        self.canvas_height = 600

        self.auto_var = tk.BooleanVar(value=pipeline.auto_calibration)
        manual = pipeline.manual_px_per_cm
        self.ppc_var = tk.StringVar(value=str(manual if manual is not None else DEFAULT_PX_PER_CM))
        self.nudge_var = tk.StringVar(value=str(nudge_step))

        self.setup_ui()

    def setup_ui(self):
        # Use 70% of screen width and 75% of screen height for the canvas
        screen_width = self.root.winfo_screenwidth()
        screen_height = self.root.winfo_screenheight()
        self.canvas_width = max(400, int(screen_width * 0.7))
        self.canvas_height = max(300, int(screen_height * 0.75))

        # Menu Bar
        menubar = tk.Menu(self.root)
        self.root.config(menu=menubar)

        self.file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=self.file_menu)
        self.file_menu.add_command(label="Load Image...", command=self.load_image, accelerator="Ctrl+O")
        self.file_menu.add_command(label="Save Annotated...", command=self.save_annotated,
                                   accelerator="Ctrl+S", state=tk.DISABLED)
        self.file_menu.add_separator()
        self.file_menu.add_command(label="Exit", command=self.root.quit, accelerator="Alt+F4")

        self.root.bind('<Control-o>', lambda e: self.load_image())
        self.root.bind('<Control-s>', lambda e: self.save_annotated())

        # Toolbar
        toolbar = ttk.Frame(self.root, padding="3")
        toolbar.grid(row=0, column=0, sticky=(tk.W, tk.E))

        ttk.Button(toolbar, text="Load", command=self.load_image, width=6).pack(side=tk.LEFT, padx=1)
        self.reset_btn = ttk.Button(toolbar, text="Reset Point", command=self.reset_pending, state=tk.DISABLED)
        self.reset_btn.pack(side=tk.LEFT, padx=1)
        self.clear_btn = ttk.Button(toolbar, text="Clear", command=self.clear_measurements, state=tk.DISABLED)
        self.clear_btn.pack(side=tk.LEFT, padx=1)
        self.delete_btn = ttk.Button(toolbar, text="Delete Selected", command=self.delete_selected,
                                     state=tk.DISABLED)
        self.delete_btn.pack(side=tk.LEFT, padx=1)
        self.save_btn = ttk.Button(toolbar, text="Save", command=self.save_annotated, state=tk.DISABLED, width=6)
        self.save_btn.pack(side=tk.LEFT, padx=1)

        ttk.Separator(toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=6)
        ttk.Checkbutton(toolbar, text="Auto px/cm", variable=self.auto_var,
                        command=self.on_auto_toggle).pack(side=tk.LEFT, padx=1)
        self.ppc_entry = ttk.Entry(toolbar, textvariable=self.ppc_var, width=9)
        self.ppc_entry.pack(side=tk.LEFT, padx=1)
        self.ppc_entry.bind('<Return>', lambda e: self.on_manual_scale())
        self.ppc_entry.bind('<FocusOut>', lambda e: self.on_manual_scale())
        ttk.Label(toolbar, text="px/cm").pack(side=tk.LEFT, padx=(0, 6))

        ttk.Label(toolbar, text="Nudge:").pack(side=tk.LEFT)
        ttk.Spinbox(toolbar, textvariable=self.nudge_var, from_=1, to=100, increment=1,
                    width=4).pack(side=tk.LEFT, padx=1)

        # Zoom controls
        zoom_frame = ttk.Frame(toolbar)
        zoom_frame.pack(side=tk.RIGHT)
        ttk.Button(zoom_frame, text="+", command=self.zoom_in, width=3).pack(side=tk.LEFT, padx=1)
        ttk.Button(zoom_frame, text="-", command=self.zoom_out, width=3).pack(side=tk.LEFT, padx=1)
        ttk.Button(zoom_frame, text="Fit", command=self.zoom_fit, width=4).pack(side=tk.LEFT, padx=1)
        self.zoom_label = ttk.Label(zoom_frame, text="100%", width=6)
        self.zoom_label.pack(side=tk.LEFT, padx=3)

        # Canvas
        self.canvas = tk.Canvas(self.root, bg='gray', cursor="crosshair",
                                width=self.canvas_width, height=self.canvas_height,
                                highlightthickness=0)
        self.canvas.grid(row=1, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))
        self.image_canvas = ImageCanvas(self.canvas, self.canvas_width, self.canvas_height)

        self.canvas.bind("<Button-1>", self.on_canvas_click)
        self.canvas.bind("<Shift-Button-1>", self.on_pan_start)
        self.canvas.bind("<Shift-B1-Motion>", self.on_pan_drag)
        self.canvas.bind("<Button-2>", self.on_pan_start)
        self.canvas.bind("<B2-Motion>", self.on_pan_drag)
        self.canvas.bind("<ButtonRelease-1>", self.on_pan_end)
        self.canvas.bind("<ButtonRelease-2>", self.on_pan_end)
        self.canvas.bind("<Button-3>", self.on_canvas_right_click)
        self.canvas.bind("<MouseWheel>", self.on_mouse_wheel)
        self.canvas.bind("<Button-4>", lambda e: self.zoom_at(e.x, e.y, 1 + WHEEL_STEP))
        self.canvas.bind("<Button-5>", lambda e: self.zoom_at(e.x, e.y, 1 - WHEEL_STEP))
        self.canvas.bind("<Configure>", self.on_canvas_resize)

        self.root.bind('<KeyPress>', self.on_key)

        # Status Bar at bottom
        status_frame = ttk.Frame(self.root, relief=tk.SUNKEN, padding="2")
        status_frame.grid(row=2, column=0, sticky=(tk.W, tk.E))
        self.status_label = ttk.Label(status_frame, text=self.pipeline.status, anchor=tk.W)
        self.status_label.pack(fill=tk.X)

        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(1, weight=1)
        self.update_controls()

    # Display

    def redraw(self):
        raster = self.pipeline.raster
        if raster is None:
            return

        view = self.image_canvas.view

        def draw_measurements_overlay(canvas_image):
            draw_canvas_overlay(canvas_image, self.pipeline.store, view.to_canvas)

        self.image_canvas.display_image(raster, overlay_callback=draw_measurements_overlay)
        self.zoom_label.config(text=f"{view.get_zoom_percentage()}%")

    def refresh_raster(self):
        """Fit the view to the pipeline's current raster and redraw"""
        if self.pipeline.raster is None:
            return
        self.image_canvas.set_raster(self.pipeline.raster)
        if self.pipeline.is_rectified:
            self.ppc_var.set(f"{self.pipeline.calibration.px_per_cm:.3f}")
        self.redraw()

    def set_status(self, text=None):
        self.status_label.config(text=text if text is not None else self.pipeline.status)

    def update_controls(self):
        store = self.pipeline.store
        has_image = self.pipeline.raster is not None
        state = tk.NORMAL if has_image else tk.DISABLED

        self.save_btn.config(state=state)
        self.clear_btn.config(state=state)
        self.file_menu.entryconfig("Save Annotated...", state=state)
        self.reset_btn.config(state=tk.NORMAL if store.pending_point is not None else tk.DISABLED)
        self.delete_btn.config(state=tk.NORMAL if store.selected is not None else tk.DISABLED)
        self.ppc_entry.config(state=tk.DISABLED if self.auto_var.get() else tk.NORMAL)

    # Commands

    def load_image(self):
        file_path = filedialog.askopenfilename(
            title="Select Image",
            filetypes=[("Image files", "*.jpg *.jpeg *.png *.bmp *.heic *.heif"), ("All files", "*.*")]
        )

        if file_path:
            self.load_image_from_path(file_path)

    def load_image_from_path(self, file_path):
        """Load an image from the given file path"""
        try:
            image = image_io.load_image(file_path)
            self.source_dpi = image_io.read_dpi(file_path)
        except (OSError, ValueError) as e:
            logging.error(f"Could not load {file_path}: {e}")
            self.set_status(f"Error: Could not load image - {e}")
            return

        self.pipeline.load_image(image, file_path)
        self.refresh_raster()
        self.update_controls()
        self.set_status()

    def on_auto_toggle(self):
        if self.pipeline.raster is None:
            self.pipeline.auto_calibration = self.auto_var.get()
            self.update_controls()
            return
        self.pipeline.set_auto_calibration(self.auto_var.get())
        self.refresh_raster()
        self.update_controls()
        self.set_status()

    def on_manual_scale(self):
        value = self.ppc_var.get()
        if self.pipeline.raster is None or self.auto_var.get():
            self.pipeline.manual_px_per_cm = value
            return
        self.pipeline.set_manual_scale(value)
        self.refresh_raster()
        self.set_status()

    def reset_pending(self):
        self.set_status(self.pipeline.reset_pending())
        self.update_controls()
        self.redraw()

    def clear_measurements(self):
        self.set_status(self.pipeline.clear_measurements())
        self.update_controls()
        self.redraw()

    def delete_selected(self):
        self.pipeline.delete_selected()
        self.set_status()
        self.update_controls()
        self.redraw()

    def nudge_step(self):
        try:
            return int(self.nudge_var.get())
        except ValueError:
            return DEFAULT_NUDGE_STEP

    def save_annotated(self):
        if self.pipeline.raster is None:
            return

        suggested = self.pipeline.default_export_path()
        try:
            file_path = filedialog.asksaveasfilename(
                initialdir=os.path.dirname(suggested),
                initialfile=os.path.basename(suggested),
                defaultextension=image_io.output_extension(self.pipeline.source_path),
                filetypes=[("JPEG", "*.jpg"), ("PNG", "*.png"), ("BMP", "*.bmp"), ("All files", "*.*")]
            )
            if not file_path:
                return
            scale = self.image_canvas.view.scale
            dpi = self.pipeline.export_dpi(default=self.source_dpi)
            path = self.pipeline.export_annotated(file_path, label_scale=scale, dpi=dpi)
        except EmptyExport:
            messagebox.showinfo("Save Annotated", "Nothing to save.")
            return

        self.set_status(f"Image saved to {path}")

    # Zoom and pan

    def zoom_at(self, x, y, factor):
        if self.pipeline.raster is None:
            return
        self.image_canvas.view.zoom_at((x, y), factor)
        self.redraw()

    def zoom_in(self):
        if self.pipeline.raster is None:
            return
        self.image_canvas.view.zoom_in()
        self.redraw()

    def zoom_out(self):
        if self.pipeline.raster is None:
            return
        self.image_canvas.view.zoom_out()
        self.redraw()

    def zoom_fit(self):
        if self.pipeline.raster is None:
            return
        self.image_canvas.view.reset()
        self.redraw()

    def on_mouse_wheel(self, event):
        """Handle mouse wheel zoom centered on cursor"""
        factor = 1 + (WHEEL_STEP if event.delta > 0 else -WHEEL_STEP)
        self.zoom_at(event.x, event.y, factor)

    def on_pan_start(self, event):
        self.image_canvas.start_pan(event.x, event.y)
        self.canvas.config(cursor="fleur")
        return "break"

    def on_pan_drag(self, event):
        if self.image_canvas.update_pan(event.x, event.y):
            self.redraw()

    def on_pan_end(self, event):
        if self.image_canvas.panning:
            self.image_canvas.end_pan()
            self.canvas.config(cursor="crosshair")

    def on_canvas_resize(self, event):
        self.image_canvas.update_canvas_size(event.width, event.height)
        if self.pipeline.raster is not None:
            self.redraw()

    # Measurement input

    def on_canvas_click(self, event):
        if self.pipeline.raster is None:
            return

        view = self.image_canvas.view
        point = view.to_image((event.x, event.y))
        # Ignore clicks outside the raster
        if not view.contains_image_point(point):
            return

        self.pipeline.add_point(point)
        self.set_status()
        self.update_controls()
        self.redraw()

    def on_canvas_right_click(self, event):
        if self.pipeline.raster is None:
            return
        self.pipeline.select_nearest((event.x, event.y), self.image_canvas.view.to_canvas)
        self.set_status()
        self.update_controls()
        self.redraw()

    def on_key(self, event):
        # Leave typing in entry fields alone
        if isinstance(event.widget, (tk.Entry, ttk.Entry, ttk.Spinbox)):
            return

        if event.char == '+':
            self.zoom_in()
        elif event.char == '-':
            self.zoom_out()
        elif event.char == '0':
            self.zoom_fit()
        elif event.keysym in ARROW_KEYS:
            if self.pipeline.store.selected is not None:
                self.pipeline.nudge_selected(ARROW_KEYS[event.keysym], self.nudge_step())
                self.redraw()
        elif event.keysym in ('Delete', 'BackSpace'):
            if self.pipeline.store.selected is not None:
                self.delete_selected()


def main():
    parser = argparse.ArgumentParser(description='Rectimeasure - Marker-Calibrated Measurement Tool')
    parser.add_argument('image', nargs='?', help='Image file to load on startup')
    parser.add_argument('--marker-size', type=float, default=MARKER_SIZE_CM,
                        help=f'Physical marker side length in cm (default: {MARKER_SIZE_CM})')
    parser.add_argument('--dictionary', default=DEFAULT_DICTIONARY,
                        help=f'ArUco dictionary name (default: {DEFAULT_DICTIONARY})')
    parser.add_argument('--max-id', type=int, default=50,
                        help='Accept marker ids in [0, MAX_ID) (default: 50)')
    parser.add_argument('--manual', action='store_true',
                        help='Start with manual px/cm instead of deriving it from the marker')
    parser.add_argument('--px-per-cm', type=float, default=DEFAULT_PX_PER_CM,
                        help=f'Manual scale in px/cm (default: {DEFAULT_PX_PER_CM})')
    parser.add_argument('--margin', type=float, default=0.0,
                        help='Border around the rectified image in cm (default: 0)')
    parser.add_argument('--nudge-step', type=int, default=DEFAULT_NUDGE_STEP,
                        help=f'Label nudge step in screen pixels (default: {DEFAULT_NUDGE_STEP})')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s [%(levelname)s] %(message)s')

    pipeline = MeasurementPipeline(
        MarkerDetector(args.dictionary),
        ScaleCalibrator(marker_size_cm=args.marker_size),
        margin_cm=args.margin,
        valid_ids=range(0, args.max_id),
        auto_calibration=not args.manual,
        manual_px_per_cm=args.px_per_cm,
    )

    root = tk.Tk()
    app = RectimeasureGUI(root, pipeline, nudge_step=args.nudge_step)

    # Load image if provided via command line
    if args.image:
        # Ensure UI is fully initialized before loading image
        root.update_idletasks()
        app.load_image_from_path(args.image)

    root.mainloop()


if __name__ == "__main__":
    main()
