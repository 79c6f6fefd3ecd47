"""
Generate test image for rectimeasure testing
Creates a 22x30 cm green board with:
- 1 cm grey grid
- A 5 cm DICT_5X5_50 ArUco marker (id 0)
- Two rectangles of known size (7x5 cm and 4x10 cm)
- Pre-warped with a perspective transform
"""

import json
import os

import cv2
import numpy as np

# Configuration
PX_PER_CM = 40
MARKER_SIZE_CM = 5
MARKER_ID = 0

# Canvas dimensions
WIDTH_CM = 22
HEIGHT_CM = 30
WIDTH_PX = WIDTH_CM * PX_PER_CM
HEIGHT_PX = HEIGHT_CM * PX_PER_CM

# Colors (RGB, images are saved through cvtColor)
GREEN_BG = (60, 140, 60)
GREY_GRID = (150, 150, 150)
BLUE_RECT = (50, 100, 200)
RED_RECT = (200, 50, 50)
DARK_GREY_BG = (60, 60, 60)


def cm(value):
    return int(round(value * PX_PER_CM))


def draw_marker(image, top_left_cm):
    """Paste the ArUco marker with a white quiet zone"""
    dictionary = cv2.aruco.getPredefinedDictionary(cv2.aruco.DICT_5X5_50)
    marker = cv2.aruco.generateImageMarker(dictionary, MARKER_ID, cm(MARKER_SIZE_CM))
    x, y = cm(top_left_cm[0]), cm(top_left_cm[1])
    quiet = cm(0.5)
    image[y - quiet:y + cm(MARKER_SIZE_CM) + quiet, x - quiet:x + cm(MARKER_SIZE_CM) + quiet] = 255
    image[y:y + cm(MARKER_SIZE_CM), x:x + cm(MARKER_SIZE_CM)] = marker[:, :, np.newaxis]
    return [x, y]


def draw_rectangle(image, top_left_cm, size_cm, color, label):
    x0, y0 = cm(top_left_cm[0]), cm(top_left_cm[1])
    x1, y1 = x0 + cm(size_cm[0]), y0 + cm(size_cm[1])
    cv2.rectangle(image, (x0, y0), (x1, y1), color, -1)
    cv2.rectangle(image, (x0, y0), (x1, y1), (0, 0, 0), 3)
    cv2.putText(image, label, (x0 + 10, y0 + 50), cv2.FONT_HERSHEY_SIMPLEX, 1.2, (255, 255, 255), 3)


def main():
    print(f"Generating test image:")
    print(f"  Board: {WIDTH_CM}x{HEIGHT_CM} cm ({WIDTH_PX}x{HEIGHT_PX} px @ {PX_PER_CM} px/cm)")

    image = np.full((HEIGHT_PX, WIDTH_PX, 3), GREEN_BG, dtype=np.uint8)

    # 1 cm grid starting 1 cm inside the border
    grid = cm(1)
    for y in range(grid, HEIGHT_PX - grid + 1, grid):
        cv2.line(image, (grid, y), (WIDTH_PX - grid, y), GREY_GRID, 2)
    for x in range(grid, WIDTH_PX - grid + 1, grid):
        cv2.line(image, (x, grid), (x, HEIGHT_PX - grid), GREY_GRID, 2)
    print("  [OK] Drew 1 cm grid")

    marker_origin = draw_marker(image, (2, 2))
    print(f"  [OK] Drew {MARKER_SIZE_CM} cm marker id {MARKER_ID}")

    draw_rectangle(image, (11, 4), (7, 5), BLUE_RECT, "7x5cm")
    draw_rectangle(image, (4, 14), (4, 10), RED_RECT, "4x10cm")
    print("  [OK] Drew reference rectangles")

    test_dir = os.path.join(os.path.dirname(__file__), "..", "test")
    os.makedirs(test_dir, exist_ok=True)

    original_path = os.path.join(test_dir, "test_image_original.png")
    cv2.imwrite(original_path, cv2.cvtColor(image, cv2.COLOR_RGB2BGR))
    print(f"\n[OK] Saved original image: {original_path}")

    # Perspective warp so the board looks photographed at an angle
    src_points = np.array([
        [0, 0],
        [WIDTH_PX - 1, 0],
        [WIDTH_PX - 1, HEIGHT_PX - 1],
        [0, HEIGHT_PX - 1]
    ], dtype=np.float32)

    dst_points = np.array([
        [int(WIDTH_PX * 0.15), int(HEIGHT_PX * 0.05)],
        [WIDTH_PX - 1 - int(WIDTH_PX * 0.05), 0],
        [WIDTH_PX - 1, HEIGHT_PX - 1 - int(HEIGHT_PX * 0.08)],
        [int(WIDTH_PX * 0.05), HEIGHT_PX - 1]
    ], dtype=np.float32)

    transform_matrix = cv2.getPerspectiveTransform(src_points, dst_points)
    warped_image = cv2.warpPerspective(image, transform_matrix, (WIDTH_PX, HEIGHT_PX),
                                       borderMode=cv2.BORDER_CONSTANT,
                                       borderValue=DARK_GREY_BG)

    warped_path = os.path.join(test_dir, "test_image_warped.png")
    cv2.imwrite(warped_path, cv2.cvtColor(warped_image, cv2.COLOR_RGB2BGR))
    print(f"[OK] Saved warped image: {warped_path}")

    metadata = {
        "description": "Test image for rectimeasure",
        "board": {"width_cm": WIDTH_CM, "height_cm": HEIGHT_CM, "px_per_cm": PX_PER_CM},
        "marker": {"id": MARKER_ID, "size_cm": MARKER_SIZE_CM, "dictionary": "DICT_5X5_50",
                   "top_left_px": marker_origin},
        "rectangles": [
            {"size_cm": [7, 5], "top_left_cm": [11, 4]},
            {"size_cm": [4, 10], "top_left_cm": [4, 14]},
        ],
        "transform": {
            "source_points": src_points.tolist(),
            "destination_points": dst_points.tolist(),
            "matrix": transform_matrix.tolist(),
        },
    }

    metadata_path = os.path.join(test_dir, "test_image_metadata.json")
    with open(metadata_path, 'w') as f:
        json.dump(metadata, f, indent=2)
    print(f"[OK] Saved metadata: {metadata_path}")

    print(f"\nTo test rectimeasure:")
    print(f"  python rectimeasure.py test/test_image_warped.png")
    print(f"\nExpected result: the board is rectified at {PX_PER_CM} px/cm and the")
    print(f"7 cm edge of the blue rectangle measures about 7.00 cm.")


if __name__ == "__main__":
    main()
