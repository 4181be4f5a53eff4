"""
Lightmap generation pipeline

Mesh (positions + indices)
  -> project: one flattened LightmapTriangle per face
  -> pack: atlas placement, UVs written onto each triangle
  -> build: per-corner UV stream in mesh order

The pass runs once per mesh at load time. A mesh that cannot get a lightmap
(no position channel, atlas overflow) is still usable: try_generate_lightmap()
returns None and the model is rendered without the extra UV channel.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
from PIL import Image

from lightsmith.exceptions import AtlasOverflowError, NoPositionChannelError
from lightsmith.schema.mesh import Mesh
from lightsmith.schema.settings import LightmapSettings
from lightsmith.texturing.atlas_packer import PackStats, pack_triangles
from lightsmith.texturing.atlas_visualizer import AtlasVisualizer
from lightsmith.texturing.triangle_projector import LightmapTriangle, project_mesh
from lightsmith.texturing.uv_buffer import build_uv_buffer, uv_buffer_bytes

logger = logging.getLogger(__name__)


@dataclass
class LightmapResult:
    """
    Output of one lightmap pass.

    Attributes:
        atlas_width: Atlas width actually used (grows on overflow if enabled)
        atlas_height: Atlas height actually used
        uvs: float32 (3 * triangle_count, 2) UV stream in mesh corner order
        triangles: Packed triangles, in mesh order
        stats: Packing summary
        degenerate_triangles: Face indices flagged as near-zero area
        visualizer: Debug render target, if visualization was requested
    """
    atlas_width: int
    atlas_height: int
    uvs: np.ndarray
    triangles: List[LightmapTriangle]
    stats: PackStats
    degenerate_triangles: List[int] = field(default_factory=list)
    visualizer: Optional[AtlasVisualizer] = None

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    @property
    def atlas_image(self) -> Optional[Image.Image]:
        if self.visualizer is None:
            return None
        return self.visualizer.to_image()

    def uv_bytes(self) -> bytes:
        return uv_buffer_bytes(self.uvs)

    def save_atlas(self, path: str) -> None:
        if self.visualizer is None:
            raise ValueError("Lightmap was generated without visualization; no atlas image to save")
        self.visualizer.save(path)

    def to_json(self) -> Dict[str, Any]:
        return {
            "atlas": {"width": self.atlas_width, "height": self.atlas_height},
            "triangle_count": self.triangle_count,
            "degenerate_triangles": list(self.degenerate_triangles),
            "shelves": self.stats.shelves,
            "uvs": self.uvs.tolist(),
        }

    def save(self, path: str) -> None:
        """
        Save with format detection from the extension.

        .json writes to_json(), .png the atlas visualization, .bin the raw
        float32 UV stream.
        """
        ext = os.path.splitext(path)[1].lower()
        if ext == '.json':
            with open(path, 'w') as f:
                json.dump(self.to_json(), f, indent=2)
        elif ext == '.png':
            self.save_atlas(path)
        elif ext == '.bin':
            with open(path, 'wb') as f:
                f.write(self.uv_bytes())
        else:
            raise ValueError(f"Unsupported lightmap output format: {ext}. Supported: .json, .png, .bin")


def generate_lightmap(
    mesh: Mesh,
    settings: Optional[LightmapSettings] = None,
    visualize: bool = True,
    max_visualized: Optional[int] = None,
) -> LightmapResult:
    """
    Generate lightmap UVs (and optionally the atlas visualization) for a mesh.

    Args:
        mesh: Source mesh with a float3 position channel and 16-bit indices
        settings: Atlas size, padding and growth options
        visualize: Rasterize one flat color per packed triangle
        max_visualized: Only draw the first N triangles in packing order

    Returns:
        LightmapResult with the UV stream in mesh corner order

    Raises:
        NoPositionChannelError: Mesh has no float3 position channel
        UnsupportedIndexWidthError: Mesh uses 32-bit indices
        DegenerateTriangleError: Degenerate face with settings.fail_on_degenerate
        AtlasOverflowError: Triangles do not fit (after growing, if enabled)
    """
    settings = settings or LightmapSettings()
    triangles = project_mesh(mesh, settings)

    width, height = settings.atlas_width, settings.atlas_height
    while True:
        visualizer = AtlasVisualizer(width, height, max_triangles=max_visualized) if visualize else None
        try:
            stats = pack_triangles(
                triangles, width, height,
                padding=settings.padding,
                render_target=visualizer,
            )
            break
        except AtlasOverflowError as e:
            if not settings.grow_atlas or max(width, height) * 2 > settings.max_atlas_size:
                raise
            logger.info(f"{e}; growing atlas to {width * 2}x{height * 2}")
            width, height = width * 2, height * 2

    uvs = build_uv_buffer(triangles)
    degenerate = [tri.source_triangle_index for tri in triangles if tri.degenerate]
    logger.info(f"Generated lightmap UVs for {len(triangles)} triangles ({width}x{height} atlas)")
    return LightmapResult(
        atlas_width=width,
        atlas_height=height,
        uvs=uvs,
        triangles=triangles,
        stats=stats,
        degenerate_triangles=degenerate,
        visualizer=visualizer,
    )


def try_generate_lightmap(
    mesh: Mesh,
    settings: Optional[LightmapSettings] = None,
    visualize: bool = True,
    max_visualized: Optional[int] = None,
) -> Optional[LightmapResult]:
    """
    Like generate_lightmap(), but per-mesh failures degrade to "no lightmap".

    Missing position channels and atlas overflow are logged and give None.
    Layout errors and unsupported index widths still raise.
    """
    try:
        return generate_lightmap(mesh, settings, visualize=visualize, max_visualized=max_visualized)
    except NoPositionChannelError as e:
        logger.warning(f"Skipping lightmap: {e}")
    except AtlasOverflowError as e:
        logger.warning(f"Skipping lightmap: {e}")
    return None
