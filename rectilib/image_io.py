"""
Image loading and saving.

Images are kept as RGB numpy arrays throughout. Standard formats are
decoded with cv3; HEIC/HEIF goes through Pillow with the pillow-heif opener.
"""

import logging
import os

import numpy as np
import cv3
from PIL import Image
from pillow_heif import register_heif_opener

# Register HEIF opener with Pillow to enable HEIC support
register_heif_opener()

HEIF_EXTENSIONS = ('.heic', '.heif')
SAVE_EXTENSIONS = ('.jpg', '.png', '.bmp')


def load_image(file_path):
    """
    Load an image file as an RGB numpy array.

    Raises:
        IOError: If the file cannot be decoded
    """
    if file_path.lower().endswith(HEIF_EXTENSIONS):
        # Load HEIC with PIL/pillow-heif, then convert to numpy array
        with Image.open(file_path) as pil_image:
            image = np.array(pil_image.convert('RGB'))
    else:
        # cv3 loads images in RGB by default
        image = cv3.imread(file_path)

    if image is None:
        raise IOError(f"Could not load image {file_path}")

    logging.info(f"Loaded {file_path} ({image.shape[1]}x{image.shape[0]})")
    return image


def read_dpi(file_path, default=None):
    """DPI stored in the image metadata, or default if there is none"""
    with Image.open(file_path) as pil_image:
        dpi_info = pil_image.info.get('dpi')
    if dpi_info:
        # DPI info is a tuple (x_dpi, y_dpi), use x_dpi
        return int(round(dpi_info[0]))
    return default


def filename_base(file_path):
    """Original file name without directory or extension"""
    name = os.path.basename(file_path or '').strip()
    base, _ = os.path.splitext(name)
    return base or 'image'


def output_extension(file_path):
    """
    Pick the export extension matching the source file.

    JPEG variants become .jpg, HEIC becomes .png, anything unknown is .jpg.
    """
    _, ext = os.path.splitext(file_path or '')
    ext = ext.lower()
    if ext == '.jpeg':
        return '.jpg'
    if ext in HEIF_EXTENSIONS:
        return '.png'
    if ext in SAVE_EXTENSIONS:
        return ext
    return '.jpg'


def annotated_filename(base, ext='.jpg'):
    """Export name: <original-base-name>_annotated.<ext>"""
    if not ext.startswith('.'):
        ext = '.' + ext
    return f"{base}_annotated{ext}"


def save_image(file_path, image, dpi=None):
    """
    Encode an RGB numpy array to file_path.

    Args:
        file_path: Destination; the format follows the extension
        image: RGB numpy array
        dpi: Optional DPI metadata
    """
    pil_image = Image.fromarray(image)
    options = {}
    if dpi:
        options['dpi'] = (dpi, dpi)
    if file_path.lower().endswith(('.jpg', '.jpeg')):
        options['quality'] = 92
    pil_image.save(file_path, **options)
    logging.info(f"Saved {file_path}")
    return file_path
