"""
Tests for the lightmap shelf packer
"""
import math
import warnings

import numpy as np
import pytest

from lightsmith.exceptions import AtlasOverflowError
from lightsmith.texturing import atlas_packer
from lightsmith.texturing import (
    BREWER_COLORS,
    AtlasPacker,
    LightmapTriangle,
    build_uv_buffer,
    find_overlaps,
    pack_triangles,
    project_triangle,
    project_triangles,
)
from lightsmith.texturing.atlas_packer import apex_dot, band_extent, packing_order_key, pixel_extent


def _random_triangles(count, size=10.0, seed=0):
    rng = np.random.default_rng(seed)
    corners = rng.uniform(0.0, size, size=(count * 3, 3))
    return project_triangles(corners, np.arange(count * 3).reshape(-1, 3))


def _equilateral(side, index=0):
    return project_triangle([0, 0, 0], [side, 0, 0], [side / 2, side * math.sqrt(3) / 2, 0], source_triangle_index=index)


class RecordingTarget:
    """Render target that remembers every draw call"""

    def __init__(self):
        self.calls = []

    def draw_triangle(self, ndc_points, color):
        self.calls.append((ndc_points, color))


class TestHelpers:
    """Geometry helpers used by the packer"""

    def test_pixel_extent(self):
        """Extents round up to whole pixels, minimum one"""
        assert pixel_extent(0.0) == 1
        assert pixel_extent(1.0) == 1
        assert pixel_extent(1.0 + 1e-9) == 1
        assert pixel_extent(1.2) == 2
        assert pixel_extent(17.3205) == 18

    def test_band_extent(self):
        """Clipping a triangle to a horizontal band"""
        points = [(0.0, 0.0), (4.0, 0.0), (2.0, 2.0)]
        assert band_extent(points, 0, 1) == pytest.approx((0.0, 4.0))
        assert band_extent(points, 1, 2) == pytest.approx((1.0, 3.0))
        assert band_extent(points, 3, 4) is None

    def test_apex_dot(self):
        """Right angle at the apex gives zero"""
        assert apex_dot([(0.0, 0.0), (2.0, 0.0), (1.0, 1.0)]) == pytest.approx(0.0)

    def test_packing_order(self):
        """Tallest first, ties broken by mesh order"""
        triangles = [
            LightmapTriangle(positions=[(0, 0), (4, 0), (2, 1)], width=4, height=1, source_triangle_index=0, longest_edge_index=0),
            LightmapTriangle(positions=[(0, 0), (4, 0), (2, 3)], width=4, height=3, source_triangle_index=1, longest_edge_index=0),
            LightmapTriangle(positions=[(0, 0), (4, 0), (2, 1)], width=4, height=1, source_triangle_index=2, longest_edge_index=0),
        ]
        ordered = sorted(reversed(triangles), key=packing_order_key)
        assert [t.source_triangle_index for t in ordered] == [1, 0, 2]


class TestPacking:
    """Placement, bounds and non-overlap"""

    def test_single_right_triangle(self):
        """Alone in a 64x64 atlas, all UVs stay inside [0, 1]"""
        tri = project_triangle([0, 0, 0], [1, 0, 0], [0, 1, 0])
        stats = pack_triangles([tri], 64, 64)

        assert stats.placed == 1
        for u, v in tri.uvs:
            assert 0.0 <= u <= 1.0
            assert 0.0 <= v <= 1.0
        assert tri.uvs[0] == (0.0, 0.0)

    def test_no_overlap(self):
        """Rasterized coverage masks never share a pixel"""
        triangles = _random_triangles(100)
        pack_triangles(triangles, 256, 256)

        assert len(find_overlaps(triangles, 256, 256)) == 0

    def test_uvs_in_bounds(self):
        """Every placed corner lies inside the atlas"""
        triangles = _random_triangles(100, seed=4)
        pack_triangles(triangles, 256, 256)

        uvs = np.array([uv for tri in triangles for uv in tri.uvs])
        assert uvs.min() >= 0.0
        assert uvs.max() <= 1.0

    def test_multiple_shelves(self):
        """Full shelves wrap to a new row below"""
        triangles = [_equilateral(30.0, index=i) for i in range(12)]
        stats = pack_triangles(triangles, 128, 128)

        assert stats.shelves > 1
        assert stats.used_height <= 128
        assert len(find_overlaps(triangles, 128, 128)) == 0

    def test_consecutive_triangles_interlock(self):
        """The second triangle slides under the first one's slope"""
        first, second = _equilateral(20.0, index=0), _equilateral(20.0, index=1)
        stats = pack_triangles([first, second], 128, 128)

        assert stats.shelves == 1
        first_right = max(u for u, _ in first.uvs) * 128
        second_left = min(u for u, _ in second.uvs) * 128
        assert second_left < first_right
        assert len(find_overlaps([first, second], 128, 128)) == 0

    def test_alternating_flip(self):
        """Every other triangle is placed base-up"""
        first, second = _equilateral(20.0, index=0), _equilateral(20.0, index=1)
        pack_triangles([first, second], 128, 128)

        # base corners (local A and B) share the lowest v on the first, the highest on the second
        assert first.uvs[0][1] < first.uvs[2][1]
        assert second.uvs[0][1] > second.uvs[2][1]

    def test_mesh_order_restored(self):
        """Packing sorts by height but hands the list back in mesh order"""
        triangles = _random_triangles(30, seed=5)
        pack_triangles(triangles, 256, 256)
        assert [t.source_triangle_index for t in triangles] == list(range(30))

    def test_deterministic(self):
        """Identical input gives byte-identical UVs"""
        first = _random_triangles(80, seed=6)
        second = _random_triangles(80, seed=6)
        pack_triangles(first, 256, 256)
        pack_triangles(second, 256, 256)

        assert build_uv_buffer(first).tobytes() == build_uv_buffer(second).tobytes()

    def test_packers_are_independent(self):
        """Cursor state is per packer"""
        a = AtlasPacker(128, 128)
        b = AtlasPacker(128, 128)
        a.pack([_equilateral(20.0, index=i) for i in range(4)])

        assert b.v == 0
        assert b.row_height == -1
        assert b.placed == 0
        assert a.placed == 4

    def test_render_target_receives_draws(self):
        """One draw per triangle, NDC inside the clip box, colors round robin"""
        triangles = _random_triangles(15, seed=7)
        target = RecordingTarget()
        pack_triangles(triangles, 128, 128, render_target=target)

        assert len(target.calls) == 15
        for index, (ndc_points, color) in enumerate(target.calls):
            assert color == BREWER_COLORS[index % len(BREWER_COLORS)]
            for x, y in ndc_points:
                assert -1.0 <= x <= 1.0
                assert -1.0 <= y <= 1.0


class TestDegenerateAndOverflow:
    """Edge cases: zero height and triangles that cannot fit"""

    def test_collinear_triangle_is_placed(self):
        """A zero-height triangle still gets a valid placement"""
        flat = project_triangle([0, 0, 0], [1, 0, 0], [2, 0, 0], source_triangle_index=1)
        normal = project_triangle([0, 0, 0], [3, 0, 0], [0, 3, 0], source_triangle_index=0)
        triangles = [normal, flat]
        pack_triangles(triangles, 64, 64)

        assert flat.uvs is not None
        assert not any(math.isnan(c) for uv in flat.uvs for c in uv)
        assert all(0.0 <= c <= 1.0 for uv in flat.uvs for c in uv)
        assert len(find_overlaps(triangles, 64, 64)) == 0

    def test_collapsed_triangle_is_placed(self):
        """A single-point triangle occupies a one-pixel cell"""
        point = project_triangle([1, 1, 1], [1, 1, 1], [1, 1, 1])
        stats = pack_triangles([point], 16, 16)

        assert stats.placed == 1
        assert stats.used_height == 1
        assert point.uvs == [(0.0, 0.0), (0.0, 0.0), (0.0, 0.0)]

    def test_too_wide_for_atlas(self):
        """A triangle wider than the atlas raises instead of wrapping forever"""
        with pytest.raises(AtlasOverflowError) as excinfo:
            pack_triangles([_equilateral(120.0)], 64, 64)
        assert excinfo.value.triangle_index == 0
        assert excinfo.value.available == (64, 64)

    def test_taller_than_atlas(self):
        """Two 100px tall triangles in a 64px atlas overflow"""
        triangles = [
            LightmapTriangle(positions=[(0.0, 0.0), (10.0, 0.0), (5.0, 100.0)], width=10.0, height=100.0,
                             source_triangle_index=i, longest_edge_index=0)
            for i in range(2)
        ]
        with pytest.raises(AtlasOverflowError):
            pack_triangles(triangles, 64, 64)
        assert all(t.uvs is None for t in triangles)

    def test_atlas_runs_out_of_rows(self):
        """Shelves past the bottom edge raise"""
        triangles = [_equilateral(40.0, index=i) for i in range(10)]
        with pytest.raises(AtlasOverflowError):
            pack_triangles(triangles, 64, 64)

    def test_order_restored_after_overflow(self):
        """A failed pass still leaves the list in mesh order"""
        triangles = [_equilateral(10.0 + i, index=i) for i in range(20)]
        with pytest.raises(AtlasOverflowError):
            pack_triangles(triangles, 32, 32)
        assert [t.source_triangle_index for t in triangles] == list(range(20))


class TestModuleSource:
    """Module text stays valid on current interpreters"""

    def test_docstring_has_no_invalid_escapes(self):
        """The ASCII-art docstring compiles without escape-sequence warnings"""
        with open(atlas_packer.__file__, encoding='utf-8') as f:
            source = f.read()
        with warnings.catch_warnings():
            warnings.simplefilter('error')
            compile(source, atlas_packer.__file__, 'exec')
