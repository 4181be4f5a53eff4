"""
OBJ -> Mesh importer

Loads an OBJ file with trimesh and de-indexes it: every triangle corner gets
its own vertex, so per-face data (material color) and the per-corner lightmap
UVs line up with the vertex buffer.

Vertex layout produced:
    position (FLOAT_3) | normal (FLOAT_3) | color (FLOAT_3)

Faces without a material color get neutral grey (0.5, 0.5, 0.5).
"""

import logging
import math
import os
from typing import Optional

import numpy as np
import trimesh

from lightsmith.schema.mesh import Mesh

logger = logging.getLogger(__name__)

DEFAULT_COLOR = (0.5, 0.5, 0.5)


def build_transform(scale: float = 1.0, rotate_x: float = 0.0) -> np.ndarray:
    """
    Model transform: rotation about +X (degrees), then uniform scale.

    Returns:
        4x4 homogeneous matrix
    """
    rotation = trimesh.transformations.rotation_matrix(math.radians(rotate_x), [1, 0, 0])
    scaling = trimesh.transformations.scale_matrix(scale)
    return scaling @ rotation


def _face_colors(tm: trimesh.Trimesh) -> np.ndarray:
    """Per-face RGB in [0, 1]."""
    if tm.visual is None or tm.visual.kind is None:
        return np.tile(np.array(DEFAULT_COLOR, dtype=np.float32), (len(tm.faces), 1))
    if tm.visual.kind == 'texture':
        # Material colors; the converted visual must be bound to the mesh to resolve faces
        tm.visual = tm.visual.to_color()
    return tm.visual.face_colors[:, :3].astype(np.float32) / 255.0


def import_obj(
    path: str,
    scale: float = 1.0,
    rotate_x: float = 0.0,
    transform: Optional[np.ndarray] = None,
) -> Mesh:
    """
    Load an OBJ file into a de-indexed Mesh.

    Args:
        path: OBJ file path (materials are resolved relative to it)
        scale: Uniform scale applied after rotation
        rotate_x: Rotation about +X in degrees
        transform: Explicit 4x4 matrix; overrides scale/rotate_x

    Returns:
        Mesh with position, normal and color channels and 16-bit indices

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file holds no triangles
        UnsupportedIndexWidthError: More than 65536 corners after de-indexing
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input file not found: {path}")

    tm = trimesh.load(path, file_type='obj', force='mesh', process=False, maintain_order=True)
    if len(tm.faces) == 0:
        raise ValueError(f"No triangles found in {path}")

    if transform is None:
        transform = build_transform(scale, rotate_x)
    tm.apply_transform(transform)

    faces = np.asarray(tm.faces)
    positions = np.asarray(tm.vertices)[faces].reshape(-1, 3)
    normals = np.asarray(tm.vertex_normals)[faces].reshape(-1, 3)
    colors = np.repeat(_face_colors(tm), 3, axis=0)

    mesh = Mesh.from_arrays(positions, normals=normals, colors=colors)
    logger.info(f"Imported {len(faces)} triangles from {path}")
    return mesh
