"""
Geometry helpers - corner ordering, quad metrics, and homographies.

Points are plain (x, y) float tuples. Every homography carries the names of
the coordinate spaces it maps between so that image pixels, centimeters and
rectified pixels are never combined by accident.
"""

import numpy as np
import cv2

# Coordinate spaces
IMAGE = "image"
CM = "cm"
RECTIFIED = "rectified"
CANVAS = "canvas"


def _as_points(points):
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return pts


def order_corners(points):
    """
    Order 4 points as: top-left, top-right, bottom-right, bottom-left.

    TL has the smallest x+y, BR the largest. TR has the smallest y-x and BL
    the largest. Only valid for quads within roughly 45 degrees of axis
    aligned; collinear input gives an ill-ordered quad.

    Args:
        points: 4 (x, y) points in any order

    Returns:
        tuple of 4 (x, y) float tuples
    """
    pts = _as_points(points)
    if len(pts) != 4:
        raise ValueError(f"Expected 4 corner points, got {len(pts)}")

    sums = pts[:, 0] + pts[:, 1]
    diffs = pts[:, 1] - pts[:, 0]

    tl = pts[np.argmin(sums)]
    br = pts[np.argmax(sums)]
    tr = pts[np.argmin(diffs)]
    bl = pts[np.argmax(diffs)]

    return tuple((float(x), float(y)) for x, y in (tl, tr, br, bl))


def quad_area(points):
    """Area of a 4-point polygon using the shoelace formula"""
    pts = _as_points(points)
    x = pts[:, 0]
    y = pts[:, 1]
    return float(abs(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))) / 2.0)


def edge_lengths(quad):
    """Side lengths TL-TR, TR-BR, BR-BL, BL-TL of an ordered quad"""
    pts = _as_points(quad)
    deltas = np.roll(pts, -1, axis=0) - pts
    return [float(d) for d in np.hypot(deltas[:, 0], deltas[:, 1])]


def distance(p1, p2):
    """Euclidean distance between two points"""
    return float(np.hypot(p2[0] - p1[0], p2[1] - p1[1]))


class Homography:
    """
    A 3x3 projective transform from one named coordinate space to another.

    Instances are treated as values: inverse() and compose() return new
    objects and never change the matrix in place.
    """

    def __init__(self, matrix, src_space, dst_space):
        matrix = np.array(matrix, dtype=np.float64)
        if matrix.shape != (3, 3):
            raise ValueError(f"Homography must be 3x3, got {matrix.shape}")
        matrix.setflags(write=False)
        self._matrix = matrix
        self.src_space = src_space
        self.dst_space = dst_space

    @property
    def matrix(self):
        return self._matrix

    def apply(self, points):
        """
        Map points from src_space to dst_space.

        Args:
            points: sequence of (x, y) points

        Returns:
            numpy array of shape (N, 2)
        """
        pts = _as_points(points)
        if len(pts) == 0:
            return pts
        mapped = cv2.perspectiveTransform(pts.reshape(-1, 1, 2), self._matrix)
        return mapped.reshape(-1, 2)

    def apply_point(self, point):
        x, y = self.apply([point])[0]
        return float(x), float(y)

    def inverse(self):
        return Homography(np.linalg.inv(self._matrix), self.dst_space, self.src_space)

    def compose(self, other):
        """
        Return the transform that applies self first, then other.

        Raises:
            ValueError: If other does not start in this transform's dst_space
        """
        if other.src_space != self.dst_space:
            raise ValueError(
                f"Cannot chain {self.src_space}->{self.dst_space} "
                f"with {other.src_space}->{other.dst_space}")
        return Homography(other.matrix @ self._matrix, self.src_space, other.dst_space)

    def __repr__(self):
        return f"Homography({self.src_space}->{self.dst_space})"


def estimate_homography(src_quad, dst_quad, src_space, dst_space):
    """
    Solve the exact homography for 4 ordered correspondences.

    No conditioning check is done; collinear or coincident points give a
    singular or unstable matrix.
    """
    src = np.asarray(src_quad, dtype=np.float32).reshape(4, 2)
    dst = np.asarray(dst_quad, dtype=np.float32).reshape(4, 2)
    matrix = cv2.getPerspectiveTransform(src, dst)
    return Homography(matrix, src_space, dst_space)


def marker_homography(marker_quad, marker_size_cm):
    """Homography taking an ordered marker quad in image pixels to centimeters"""
    s = float(marker_size_cm)
    square = [(0.0, 0.0), (s, 0.0), (s, s), (0.0, s)]
    return estimate_homography(marker_quad, square, IMAGE, CM)


def translation(dx, dy, src_space, dst_space):
    return Homography([[1.0, 0.0, dx], [0.0, 1.0, dy], [0.0, 0.0, 1.0]],
                      src_space, dst_space)


def scaling(factor, src_space, dst_space):
    return Homography([[factor, 0.0, 0.0], [0.0, factor, 0.0], [0.0, 0.0, 1.0]],
                      src_space, dst_space)
