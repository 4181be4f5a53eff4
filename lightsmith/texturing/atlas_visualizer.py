"""
Atlas visualizer - debug rasterization of packed triangles.

Acts as the packer's render target: every placed triangle arrives as a draw
command in normalized device coordinates with a flat color, and is filled
into an RGB pixel buffer. Pixel (x, y) is covered when its center
(x + 0.5, y + 0.5) lies inside the triangle, so triangles that only share a
border never claim the same pixel.

Row 0 of the image is v = 0, matching the packer's UV convention.
"""

import base64
import logging
import math
from io import BytesIO
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from lightsmith.texturing.triangle_projector import LightmapTriangle

logger = logging.getLogger(__name__)


def rasterize_triangle(
    points: List[Tuple[float, float]],
    width: int,
    height: int,
) -> Optional[Tuple[slice, slice, np.ndarray]]:
    """
    Coverage of one triangle given in pixel coordinates.

    Returns:
        (row slice, column slice, boolean mask) for the clipped bounding box,
        or None when no pixel center is covered
    """
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    x0 = max(0, int(math.floor(min(xs))))
    x1 = min(width, int(math.ceil(max(xs))))
    y0 = max(0, int(math.floor(min(ys))))
    y1 = min(height, int(math.ceil(max(ys))))
    if x0 >= x1 or y0 >= y1:
        return None

    (ax, ay), (bx, by), (cx, cy) = points
    area = (bx - ax) * (cy - ay) - (by - ay) * (cx - ax)
    if area == 0:
        return None

    gx, gy = np.meshgrid(np.arange(x0, x1) + 0.5, np.arange(y0, y1) + 0.5)
    w0 = (bx - gx) * (cy - gy) - (by - gy) * (cx - gx)
    w1 = (cx - gx) * (ay - gy) - (cy - gy) * (ax - gx)
    w2 = (ax - gx) * (by - gy) - (ay - gy) * (bx - gx)
    if area < 0:
        w0, w1, w2 = -w0, -w1, -w2
    mask = (w0 >= 0) & (w1 >= 0) & (w2 >= 0)
    if not mask.any():
        return None
    return slice(y0, y1), slice(x0, x1), mask


class AtlasVisualizer:
    """
    Render target that paints one flat color per packed triangle.

    Args:
        width: Atlas width in pixels
        height: Atlas height in pixels
        max_triangles: Only draw the first N triangles in packing order
            (inspect how the atlas fills up); None draws everything
    """

    def __init__(self, width: int, height: int, max_triangles: Optional[int] = None):
        self.width = width
        self.height = height
        self.max_triangles = max_triangles
        self.pixels = np.zeros((height, width, 3), dtype=np.uint8)
        self.draw_count = 0

    def draw_triangle(self, ndc_points: List[Tuple[float, float]], color: Tuple[int, int, int]) -> None:
        if self.max_triangles is not None and self.draw_count >= self.max_triangles:
            return
        self.draw_count += 1

        points = [((x + 1.0) * 0.5 * self.width, (y + 1.0) * 0.5 * self.height) for x, y in ndc_points]
        coverage = rasterize_triangle(points, self.width, self.height)
        if coverage is None:
            return
        rows, cols, mask = coverage
        self.pixels[rows, cols][mask] = color

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def to_png_bytes(self) -> bytes:
        buf = BytesIO()
        self.to_image().save(buf, format='PNG')
        return buf.getvalue()

    def to_base64(self) -> str:
        return base64.b64encode(self.to_png_bytes()).decode('utf-8')

    def save(self, path: str) -> None:
        self.to_image().save(path)
        logger.info(f"Saved {self.width}x{self.height} atlas visualization to {path}")


def coverage_mask(triangles: List[LightmapTriangle], width: int, height: int) -> np.ndarray:
    """
    Count, for every atlas pixel, how many placed triangles cover its center.

    Returns:
        int32 array of shape (height, width)
    """
    counts = np.zeros((height, width), dtype=np.int32)
    for tri in triangles:
        if tri.uvs is None:
            continue
        points = [(u * width, v * height) for u, v in tri.uvs]
        coverage = rasterize_triangle(points, width, height)
        if coverage is None:
            continue
        rows, cols, mask = coverage
        counts[rows, cols] += mask
    return counts


def find_overlaps(triangles: List[LightmapTriangle], width: int, height: int) -> np.ndarray:
    """(row, column) pairs of pixels covered by more than one triangle."""
    return np.argwhere(coverage_mask(triangles, width, height) > 1)
