"""
Lightsmith - Lightmap UV atlas generation for triangle meshes

Flattens every triangle of a mesh without distorting its edge lengths, packs
the flattened triangles into a fixed-size atlas and emits a second UV channel
for baked lighting.
"""

from lightsmith.lightmap import LightmapResult, generate_lightmap, try_generate_lightmap
from lightsmith.schema import LightmapSettings, Mesh

__version__ = "0.1.0"
__all__ = ["LightmapResult", "LightmapSettings", "Mesh", "generate_lightmap", "try_generate_lightmap"]
