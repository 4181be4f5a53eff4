"""
Lightmap texturing: triangle flattening, atlas packing and UV stream output.
"""
from .triangle_projector import LightmapTriangle, project_triangle, project_triangles, project_mesh
from .atlas_packer import AtlasPacker, PackStats, pack_triangles, BREWER_COLORS
from .uv_buffer import build_uv_buffer, uv_buffer_bytes
from .atlas_visualizer import AtlasVisualizer, coverage_mask, find_overlaps, rasterize_triangle

__all__ = [
    'LightmapTriangle',
    'project_triangle',
    'project_triangles',
    'project_mesh',
    'AtlasPacker',
    'PackStats',
    'pack_triangles',
    'BREWER_COLORS',
    'build_uv_buffer',
    'uv_buffer_bytes',
    'AtlasVisualizer',
    'coverage_mask',
    'find_overlaps',
    'rasterize_triangle',
]
