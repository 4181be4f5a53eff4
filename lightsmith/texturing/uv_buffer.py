"""
UV Buffer Builder - lightmap UVs as a vertex stream.

The projector always treats the longest edge as local edge 0 -> 1, whatever
the mesh winding is. Local corner k therefore belongs to mesh corner
(longest_edge_index + k) % 3:

    longest_edge_index = 1

    mesh corners:   0    1    2
                    |    |    |
    local corners:  C    A    B      (A = local 0, B = local 1, C = local 2)

Writing the UVs back rotates them by longest_edge_index so corner i of every
output triangle matches corner i of the mesh (and its position, normal and
color).
"""
from typing import List

import numpy as np

from lightsmith.texturing.triangle_projector import LightmapTriangle


def mesh_corner_uvs(tri: LightmapTriangle) -> List[tuple]:
    """The three atlas UVs of a packed triangle, in mesh corner order."""
    if tri.uvs is None:
        raise ValueError(f"Triangle {tri.source_triangle_index} has not been packed")
    out = [None, None, None]
    for k in range(3):
        out[(tri.longest_edge_index + k) % 3] = tri.uvs[k]
    return out


def build_uv_buffer(triangles: List[LightmapTriangle]) -> np.ndarray:
    """
    Flatten packed triangles into a per-corner UV array.

    Args:
        triangles: Packed triangles, in ascending source_triangle_index order

    Returns:
        float32 array of shape (3 * len(triangles), 2), parallel to the mesh's
        per-corner channels

    Raises:
        ValueError: Triangles are out of mesh order or not packed
    """
    uvs = np.zeros((3 * len(triangles), 2), dtype=np.float32)
    previous = -1
    for slot, tri in enumerate(triangles):
        if tri.source_triangle_index <= previous:
            raise ValueError(
                f"Triangles must be in mesh order: {tri.source_triangle_index} follows {previous}"
            )
        previous = tri.source_triangle_index
        uvs[3 * slot:3 * slot + 3] = mesh_corner_uvs(tri)
    return uvs


def uv_buffer_bytes(uvs: np.ndarray) -> bytes:
    """Raw little-endian float32 stream, two floats per corner."""
    return np.ascontiguousarray(uvs, dtype='<f4').tobytes()
