"""
Lightsmith Quick Start Example

This example generates lightmap UVs for a cube and writes the atlas preview.
"""

import os

import numpy as np

from lightsmith import LightmapSettings, Mesh, generate_lightmap
from lightsmith.converters import export_glb

positions = np.array([
    [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
    [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],
], dtype=np.float32)
indices = [
    [0, 2, 1], [0, 3, 2], [4, 5, 6], [4, 6, 7],
    [0, 1, 5], [0, 5, 4], [3, 7, 6], [3, 6, 2],
    [0, 4, 7], [0, 7, 3], [1, 2, 6], [1, 6, 5],
]

os.makedirs("output", exist_ok=True)

print("Generating lightmap UVs for a cube...")
mesh = Mesh.from_arrays(positions, indices=indices)
result = generate_lightmap(mesh, LightmapSettings(atlas_width=256, atlas_height=256, texels_per_unit=40.0))
print(f"Packed {result.triangle_count} triangles on {result.stats.shelves} shelves")

result.save_atlas("output/cube_atlas.png")
print("✅ Saved atlas to output/cube_atlas.png")

with open("output/cube.glb", "wb") as f:
    f.write(export_glb(mesh, result.uvs, atlas_png=result.visualizer.to_png_bytes(), name="cube"))
print("✅ Saved to output/cube.glb")
