"""
Tests for the atlas debug visualizer
"""
import base64
import os
import tempfile

import numpy as np
from PIL import Image

from lightsmith.texturing import (
    AtlasVisualizer,
    coverage_mask,
    find_overlaps,
    pack_triangles,
    project_triangle,
    rasterize_triangle,
)


class TestRasterize:
    """Pixel-center coverage"""

    def test_half_square(self):
        """Lower-left half of an 8x8 grid covers 36 pixel centers"""
        rows, cols, mask = rasterize_triangle([(0.0, 0.0), (8.0, 0.0), (0.0, 8.0)], 8, 8)
        assert mask.sum() == 36
        assert rows == slice(0, 8)
        assert cols == slice(0, 8)

    def test_winding_does_not_matter(self):
        """Clockwise and counter-clockwise corners cover the same pixels"""
        _, _, ccw = rasterize_triangle([(0.0, 0.0), (8.0, 0.0), (0.0, 8.0)], 8, 8)
        _, _, cw = rasterize_triangle([(0.0, 0.0), (0.0, 8.0), (8.0, 0.0)], 8, 8)
        assert np.array_equal(ccw, cw)

    def test_zero_area(self):
        """Collinear corners cover nothing"""
        assert rasterize_triangle([(0.0, 0.0), (2.0, 2.0), (4.0, 4.0)], 8, 8) is None

    def test_outside_image(self):
        """Triangles off the image are clipped away"""
        assert rasterize_triangle([(20.0, 20.0), (30.0, 20.0), (20.0, 30.0)], 8, 8) is None


class TestAtlasVisualizer:
    """Render target behavior and image output"""

    def test_draw_fills_color(self):
        """NDC corners map onto the pixel grid, v = -1 at the top row"""
        vis = AtlasVisualizer(8, 8)
        vis.draw_triangle([(-1.0, -1.0), (1.0, -1.0), (-1.0, 1.0)], (255, 0, 0))

        assert vis.draw_count == 1
        assert tuple(vis.pixels[0, 0]) == (255, 0, 0)
        assert tuple(vis.pixels[7, 7]) == (0, 0, 0)
        assert (vis.pixels[:, :, 0] == 255).sum() == 36

    def test_max_triangles(self):
        """Draws past the limit are ignored"""
        vis = AtlasVisualizer(8, 8, max_triangles=1)
        vis.draw_triangle([(-1.0, -1.0), (1.0, -1.0), (-1.0, 1.0)], (255, 0, 0))
        vis.draw_triangle([(1.0, 1.0), (-1.0, 1.0), (1.0, -1.0)], (0, 255, 0))

        assert vis.draw_count == 1
        assert (vis.pixels[:, :, 1] == 255).sum() == 0

    def test_png_output(self):
        """PNG bytes, base64 and files all carry the same image"""
        vis = AtlasVisualizer(16, 8)
        vis.draw_triangle([(-1.0, -1.0), (1.0, -1.0), (-1.0, 1.0)], (0, 0, 255))

        data = vis.to_png_bytes()
        assert data.startswith(b'\x89PNG')
        assert base64.b64decode(vis.to_base64()) == data

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, 'atlas.png')
            vis.save(path)
            with Image.open(path) as img:
                assert img.size == (16, 8)
                assert img.mode == 'RGB'

    def test_packer_draws_match_uvs(self):
        """Pixels painted by the packer are the pixels covered by the UVs"""
        triangles = [
            project_triangle([0, 0, 0], [20, 0, 0], [5, 15, 0], source_triangle_index=0),
            project_triangle([0, 0, 0], [12, 0, 0], [0, 9, 0], source_triangle_index=1),
        ]
        vis = AtlasVisualizer(64, 64)
        pack_triangles(triangles, 64, 64, render_target=vis)

        painted = vis.pixels.any(axis=2)
        covered = coverage_mask(triangles, 64, 64) > 0
        assert vis.draw_count == 2
        assert np.array_equal(painted, covered)
        assert len(find_overlaps(triangles, 64, 64)) == 0
