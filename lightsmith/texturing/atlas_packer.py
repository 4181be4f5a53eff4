r"""
Lightmap Atlas Packer

Places flattened triangles into a fixed-size atlas with a deterministic shelf
algorithm. Consecutive triangles alternate orientation (base down, then base
up) so that each one can slide under the slope of its predecessor:

    +---------------------------------------+
    |  /\  \--------/ /\   \----/ /\        |  <- shelf 0 (tallest first)
    | /  \  \      / /  \   \  / /  \       |
    |/____\  \____/ /____\   \/ /____\      |
    +---------------------------------------+
    | /\ \----/ /\ ...                      |  <- shelf 1
    +---------------------------------------+

Placement for each triangle, in packing order:
1. Anchor at the previous triangle's base corner or apex (plus padding),
   chosen by comparing apex angles.
2. Push right until the triangle clears everything already on the shelf,
   band by band (1 pixel per band).
3. Wrap to a new shelf when the right edge would cross the atlas width.

Outputs per triangle:
- Normalized atlas UVs (pixel / atlas size, origin at the image's top-left)
- An optional draw command in normalized device coordinates, sent to a
  caller-provided render target with a round-robin debug color
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from lightsmith.exceptions import AtlasOverflowError
from lightsmith.texturing.triangle_projector import LightmapTriangle, Vec2

logger = logging.getLogger(__name__)

# ColorBrewer "Paired" qualitative palette
BREWER_COLORS: List[Tuple[int, int, int]] = [
    (0xa6, 0xce, 0xe3),
    (0x1f, 0x78, 0xb4),
    (0xb2, 0xdf, 0x8a),
    (0x33, 0xa0, 0x2c),
    (0xfb, 0x9a, 0x99),
    (0xe3, 0x1a, 0x1c),
    (0xfd, 0xbf, 0x6f),
    (0xff, 0x7f, 0x00),
    (0xca, 0xb2, 0xd6),
    (0x6a, 0x3d, 0x9a),
    (0xff, 0xff, 0x99),
    (0xb1, 0x59, 0x28),
]

DEFAULT_PADDING = 2

# Float noise allowed before an extent rounds up to the next pixel
EXTENT_TOLERANCE = 1e-6


def packing_order_key(tri: LightmapTriangle) -> Tuple[float, int]:
    """Tallest first; equal heights keep mesh order."""
    return (-tri.height, tri.source_triangle_index)


def mesh_order_key(tri: LightmapTriangle) -> int:
    return tri.source_triangle_index


def pixel_extent(value: float) -> int:
    """Whole pixels needed to hold a float extent (at least 1)."""
    return max(1, int(math.ceil(value - EXTENT_TOLERANCE)))


def _normalize(x: float, y: float) -> Vec2:
    length = math.hypot(x, y)
    if length == 0.0:
        return 0.0, 0.0
    return x / length, y / length


def apex_dot(positions: List[Vec2]) -> float:
    """Cosine of the apex angle: dot of the unit vectors from C to A and from C to B."""
    (ax, ay), (bx, by), (cx, cy) = positions
    ca = _normalize(ax - cx, ay - cy)
    cb = _normalize(bx - cx, by - cy)
    return ca[0] * cb[0] + ca[1] * cb[1]


def band_extent(points: List[Vec2], y0: float, y1: float) -> Optional[Tuple[float, float]]:
    """
    Horizontal extent of a triangle clipped to the band y0 <= y <= y1.

    The clipped shape is convex, so its extreme x values are found among the
    corners inside the band and the edge crossings of the band's borders.

    Returns:
        (min_x, max_x), or None if the triangle misses the band
    """
    xs = [x for x, y in points if y0 <= y <= y1]
    for i in range(3):
        xa, ya = points[i]
        xb, yb = points[(i + 1) % 3]
        if ya == yb:
            continue
        low, high = min(ya, yb), max(ya, yb)
        for yy in (y0, y1):
            if low <= yy <= high:
                t = (yy - ya) / (yb - ya)
                xs.append(xa + t * (xb - xa))
    if not xs:
        return None
    return min(xs), max(xs)


@dataclass
class PackStats:
    """Summary of a packing pass."""
    placed: int
    shelves: int
    used_height: int
    atlas_width: int
    atlas_height: int


class AtlasPacker:
    """
    Shelf packer for flattened triangles.

    All cursor state lives on the instance, so one packer handles one atlas
    and two packers never interfere.

    A render target is any object with a
    ``draw_triangle(ndc_points, color)`` method; it receives one call per
    placed triangle.
    """

    def __init__(self, width: int, height: int, padding: int = DEFAULT_PADDING):
        if width <= 0 or height <= 0:
            raise ValueError(f"Atlas size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.padding = padding
        self.reset()

    def reset(self) -> None:
        """Rewind the cursor to the top-left corner of an empty atlas."""
        self.v = 0
        self.row_height = -1
        self.u_top = -self.padding
        self.u_bottom = -self.padding
        self.dp_prev = 1.0
        self.flip = False
        self.color_index = 0
        self.shelves = 0
        self.placed = 0
        # Rightmost occupied x per 1-pixel band of the current shelf
        self._profile: List[float] = []

    def pack(self, triangles: List[LightmapTriangle], render_target=None) -> PackStats:
        """
        Place every triangle and fill in its atlas UVs.

        The list is sorted in place into packing order and restored to mesh
        order afterwards, including when packing fails.

        Raises:
            AtlasOverflowError: A triangle does not fit in the atlas
        """
        triangles.sort(key=packing_order_key)
        try:
            for tri in triangles:
                self.place(tri, render_target)
        finally:
            triangles.sort(key=mesh_order_key)

        stats = PackStats(
            placed=self.placed,
            shelves=self.shelves,
            used_height=self.v + max(self.row_height, 0),
            atlas_width=self.width,
            atlas_height=self.height,
        )
        logger.info(
            f"Packed {stats.placed} triangles into {self.width}x{self.height} atlas "
            f"({stats.shelves} shelves, {stats.used_height}px used)"
        )
        return stats

    def place(self, tri: LightmapTriangle, render_target=None) -> None:
        """Place one triangle at the cursor and advance it."""
        tri_width = pixel_extent(tri.width)
        tri_height = pixel_extent(tri.height)
        if tri_width > self.width or tri_height > self.height:
            raise AtlasOverflowError(
                f"Triangle {tri.source_triangle_index} ({tri_width}x{tri_height}px) "
                f"does not fit in a {self.width}x{self.height} atlas",
                triangle_index=tri.source_triangle_index,
                required=(tri_width, tri_height),
                available=(self.width, self.height),
            )

        if self.row_height < 0:
            self._open_shelf(tri_height)
        elif tri_height > self.row_height:
            self._profile.extend([-math.inf] * (tri_height - self.row_height))
            self.row_height = tri_height

        # Interlock with the previous triangle: start after its base corner
        # or after its apex, depending on how the apex angles compare
        dp = apex_dot(tri.positions)
        if dp < self.dp_prev:
            u = self.u_bottom + self.padding
        else:
            u = self.u_top + self.padding

        local = self._orient(tri.positions, tri_height)
        u = max(u, int(math.ceil(self._clearance(local, tri_height))))

        if u + tri_width > self.width:
            self.v += self.row_height
            self._open_shelf(tri_height)
            u = 0

        if self.v + tri_height > self.height:
            raise AtlasOverflowError(
                f"Atlas {self.width}x{self.height} is full: triangle {tri.source_triangle_index} "
                f"needs rows {self.v}..{self.v + tri_height}",
                triangle_index=tri.source_triangle_index,
                required=(tri_width, self.v + tri_height),
                available=(self.width, self.height),
            )

        pixels = [(u + x, self.v + y) for x, y in local]
        tri.uvs = [(px / self.width, py / self.height) for px, py in pixels]

        color = BREWER_COLORS[self.color_index]
        self.color_index = (self.color_index + 1) % len(BREWER_COLORS)
        if render_target is not None:
            ndc = [(px * 2.0 / self.width - 1.0, py * 2.0 / self.height - 1.0) for px, py in pixels]
            render_target.draw_triangle(ndc, color)

        self._occupy(local, u, tri_height)
        self.u_bottom = int(u + tri.positions[1][0])
        self.u_top = int(u + tri.positions[2][0])
        self.dp_prev = dp
        self.flip = not self.flip
        self.placed += 1

    def _open_shelf(self, row_height: int) -> None:
        self.row_height = row_height
        self._profile = [-math.inf] * row_height
        self.shelves += 1

    def _orient(self, positions: List[Vec2], tri_height: int) -> List[Vec2]:
        """Shelf-relative corners; flipped triangles are mirrored inside their own height."""
        if self.flip:
            positions = [(x, tri_height - y) for x, y in positions]
        # Heights within EXTENT_TOLERANCE of a whole pixel round down; keep corners inside the cell
        return [(x, min(max(y, 0.0), float(tri_height))) for x, y in positions]

    def _clearance(self, local: List[Vec2], tri_height: int) -> float:
        """Smallest offset that keeps `padding` pixels between this triangle and the shelf contents."""
        required = 0.0
        for band in range(min(tri_height, len(self._profile))):
            right = self._profile[band]
            if right == -math.inf:
                continue
            extent = band_extent(local, band, band + 1)
            if extent is None:
                continue
            required = max(required, right + self.padding - extent[0])
        return required

    def _occupy(self, local: List[Vec2], u: int, tri_height: int) -> None:
        for band in range(min(tri_height, len(self._profile))):
            extent = band_extent(local, band, band + 1)
            if extent is not None:
                self._profile[band] = max(self._profile[band], u + extent[1])


def pack_triangles(
    triangles: List[LightmapTriangle],
    width: int,
    height: int,
    padding: int = DEFAULT_PADDING,
    render_target=None,
) -> PackStats:
    """
    Pack triangles into a width x height atlas with a fresh packer.

    Args:
        triangles: Projected triangles; sorted back into mesh order on return
        width: Atlas width in pixels
        height: Atlas height in pixels
        padding: Horizontal gap between triangles in pixels
        render_target: Optional object receiving draw_triangle(ndc_points, color)

    Returns:
        PackStats for the pass

    Raises:
        AtlasOverflowError: A triangle does not fit
    """
    packer = AtlasPacker(width, height, padding=padding)
    return packer.pack(triangles, render_target=render_target)
