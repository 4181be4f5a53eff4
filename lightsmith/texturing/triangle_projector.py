"""
Triangle Projector

Flattens each 3D triangle of a mesh into an isometric 2D "local" triangle
that keeps all three edge lengths.

Local frame (after relabelling so the longest edge is corner 0 -> corner 1):

        C (apex)
       / \\
      /   \\    height
     /     \\
    A-------B
    (0,0)   (width,0)

    width  = length of the longest edge
    height = distance from C to AB (Heron's formula)

Local corner k is mesh corner (longest_edge_index + k) % 3. The UV buffer
builder relies on this to rotate UVs back into mesh winding order.

Projection is a pure per-triangle computation, so all faces of a mesh are
flattened at once with numpy.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from lightsmith.exceptions import DegenerateTriangleError
from lightsmith.schema.mesh import Mesh
from lightsmith.schema.settings import LightmapSettings

logger = logging.getLogger(__name__)

Vec2 = Tuple[float, float]

DEFAULT_EPSILON = 1e-6
HEIGHT_TOLERANCE = 1e-4


@dataclass
class LightmapTriangle:
    """One mesh face, flattened, and (after packing) placed in the atlas."""
    positions: List[Vec2]  # Local A, B, C
    width: float
    height: float
    source_triangle_index: int  # Face index in the original mesh order
    longest_edge_index: int  # Mesh edge used as the local base (0, 1 or 2)
    degenerate: bool = False
    # Packing results, in local corner order
    uvs: Optional[List[Vec2]] = None


def project_triangles(
    positions: np.ndarray,
    indices: np.ndarray,
    texels_per_unit: float = 1.0,
    epsilon: float = DEFAULT_EPSILON,
    fail_on_degenerate: bool = False,
) -> List[LightmapTriangle]:
    """
    Flatten every indexed triangle into its local 2D frame.

    Args:
        positions: (V, 3) vertex positions
        indices: (T, 3) vertex indices per triangle
        texels_per_unit: Scale applied to positions (mesh units -> atlas pixels)
        epsilon: Longest-edge length / height under which a triangle is degenerate
        fail_on_degenerate: Raise instead of flagging degenerate triangles

    Returns:
        One LightmapTriangle per face, in mesh order

    Raises:
        DegenerateTriangleError: A degenerate triangle was found and
            fail_on_degenerate is set
    """
    positions = np.asarray(positions, dtype=np.float64)
    indices = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    if len(indices) == 0:
        return []

    corners = positions[indices] * texels_per_unit  # (T, 3, 3)

    # Edge i runs from corner i to corner i+1
    edges = np.roll(corners, -1, axis=1) - corners
    lengths = np.linalg.norm(edges, axis=2)

    # argmax returns the first maximum, so ties resolve to the lowest edge index
    longest = np.argmax(lengths, axis=1)
    order = (longest[:, None] + np.arange(3)[None, :]) % 3
    sorted_corners = np.take_along_axis(corners, order[:, :, None], axis=1)
    sorted_lengths = np.take_along_axis(lengths, order, axis=1)

    a = sorted_lengths[:, 0]  # A -> B (longest)
    b = sorted_lengths[:, 1]  # B -> C
    c = sorted_lengths[:, 2]  # C -> A

    edge_ab = sorted_corners[:, 1] - sorted_corners[:, 0]
    edge_ac = sorted_corners[:, 2] - sorted_corners[:, 0]
    valid = (a > epsilon) & (c > epsilon)

    denom = np.where(valid, a * c, 1.0)
    cos_ac = np.where(valid, np.einsum('ij,ij->i', edge_ab, edge_ac) / denom, 1.0)
    cos_ac = np.clip(cos_ac, -1.0, 1.0)
    sin_ac = np.sqrt(np.maximum(0.0, 1.0 - cos_ac * cos_ac))
    # The apex always projects onto the longest edge; clip rounding noise
    apex_x = np.clip(c * cos_ac, 0.0, a)
    apex_y = c * sin_ac

    # Heron: A = sqrt(s(s-a)(s-b)(s-c)), A = 0.5 * a * h
    s = (a + b + c) * 0.5
    area = np.sqrt(np.maximum(0.0, s * (s - a) * (s - b) * (s - c)))
    height = np.where(a > epsilon, area / np.where(a > epsilon, 0.5 * a, 1.0), 0.0)

    collapsed = a <= epsilon
    width = np.where(collapsed, 0.0, a)
    apex_x = np.where(collapsed, 0.0, apex_x)
    apex_y = np.where(collapsed, 0.0, apex_y)
    degenerate = collapsed | (height <= epsilon)

    mismatch = np.abs(apex_y - height) > HEIGHT_TOLERANCE * np.maximum(1.0, a)
    for index in np.flatnonzero(mismatch & ~degenerate):
        logger.debug(
            f"Triangle {index}: apex height {apex_y[index]:.6f} differs from Heron height {height[index]:.6f}"
        )

    degenerate_indices = np.flatnonzero(degenerate)
    if len(degenerate_indices):
        if fail_on_degenerate:
            first = int(degenerate_indices[0])
            raise DegenerateTriangleError(
                f"Triangle {first} is degenerate (width={width[first]:.3g}, height={height[first]:.3g})",
                triangle_index=first,
            )
        logger.warning(f"{len(degenerate_indices)} degenerate triangle(s) will be placed with zero height")

    triangles = []
    for index, (w, h, ax, ay, edge, flag) in enumerate(zip(
        width.tolist(), height.tolist(), apex_x.tolist(), apex_y.tolist(),
        longest.tolist(), degenerate.tolist(),
    )):
        triangles.append(LightmapTriangle(
            positions=[(0.0, 0.0), (w, 0.0), (ax, ay)],
            width=w,
            height=h,
            source_triangle_index=index,
            longest_edge_index=edge,
            degenerate=flag,
        ))
    return triangles


def project_triangle(p0, p1, p2, source_triangle_index: int = 0, epsilon: float = DEFAULT_EPSILON) -> LightmapTriangle:
    """Flatten a single triangle given its three 3D corners."""
    tri = project_triangles(np.array([p0, p1, p2], dtype=np.float64), np.array([[0, 1, 2]]), epsilon=epsilon)[0]
    tri.source_triangle_index = source_triangle_index
    return tri


def project_mesh(mesh: Mesh, settings: Optional[LightmapSettings] = None) -> List[LightmapTriangle]:
    """
    Flatten every face of a mesh.

    Raises:
        UnsupportedIndexWidthError: The mesh uses 32-bit indices
        NoPositionChannelError: The mesh has no float3 position channel
    """
    settings = settings or LightmapSettings()
    indices = mesh.index_array()
    positions = mesh.positions()
    triangles = project_triangles(
        positions,
        indices,
        texels_per_unit=settings.texels_per_unit,
        epsilon=settings.degenerate_epsilon,
        fail_on_degenerate=settings.fail_on_degenerate,
    )
    logger.info(f"Projected {len(triangles)} triangles")
    return triangles
