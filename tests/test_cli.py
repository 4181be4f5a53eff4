"""
Tests for Lightsmith CLI

These tests verify the CLI command structure, output formats and error handling.
"""

import json
import os
import tempfile

from click.testing import CliRunner
from PIL import Image

from lightsmith.cli import cli


CUBE_OBJ = """
v 0 0 0
v 1 0 0
v 1 1 0
v 0 1 0
v 0 0 1
v 1 0 1
v 1 1 1
v 0 1 1
f 1 4 3 2
f 5 6 7 8
f 1 2 6 5
f 4 8 7 3
f 1 5 8 4
f 2 3 7 6
"""


def _write_obj(tmpdir):
    path = os.path.join(tmpdir, 'cube.obj')
    with open(path, 'w') as f:
        f.write(CUBE_OBJ)
    return path


class TestCLI:
    """Test CLI command structure and basic functionality"""

    def test_cli_help(self):
        """Test that CLI help works"""
        runner = CliRunner()
        result = runner.invoke(cli, ['--help'])
        assert result.exit_code == 0
        assert 'Lightsmith' in result.output
        assert 'unwrap' in result.output
        assert 'info' in result.output

    def test_unwrap_help(self):
        """Test that unwrap command help lists its options"""
        runner = CliRunner()
        result = runner.invoke(cli, ['unwrap', '--help'])
        assert result.exit_code == 0
        assert '--output' in result.output
        assert '--atlas' in result.output
        assert '--grow' in result.output

    def test_unwrap_missing_output(self):
        """Test that unwrap requires an output path"""
        runner = CliRunner()
        result = runner.invoke(cli, ['unwrap', 'cube.obj'])
        assert result.exit_code != 0
        assert 'output' in result.output.lower() or 'required' in result.output.lower()


class TestUnwrapCommand:
    """Test the unwrap command end to end"""

    def test_unwrap_to_glb_with_atlas(self):
        """OBJ in, GLB and atlas PNG out"""
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            output = os.path.join(tmpdir, 'cube.glb')
            atlas = os.path.join(tmpdir, 'atlas.png')
            result = runner.invoke(cli, [
                'unwrap', _write_obj(tmpdir), '-o', output,
                '--atlas', atlas, '--size', '128', '--texels-per-unit', '20',
            ])

            assert result.exit_code == 0, result.output
            assert 'Success' in result.output
            with open(output, 'rb') as f:
                assert f.read(4) == b'glTF'
            with Image.open(atlas) as img:
                assert img.size == (128, 128)

    def test_unwrap_to_json(self):
        """JSON output carries one UV pair per corner"""
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            output = os.path.join(tmpdir, 'cube.json')
            result = runner.invoke(cli, ['unwrap', _write_obj(tmpdir), '-o', output, '--size', '64', '-v'])

            assert result.exit_code == 0, result.output
            assert 'Triangles: 12' in result.output
            with open(output) as f:
                data = json.load(f)
            assert len(data['uvs']) == 36
            assert data['atlas'] == {'width': 64, 'height': 64}

    def test_missing_input(self):
        """Missing input files are reported"""
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            result = runner.invoke(cli, ['unwrap', os.path.join(tmpdir, 'nope.obj'), '-o', os.path.join(tmpdir, 'out.glb')])
        assert result.exit_code == 1
        assert 'not found' in result.output

    def test_unsupported_output(self):
        """Unknown output extensions are rejected"""
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            result = runner.invoke(cli, ['unwrap', _write_obj(tmpdir), '-o', os.path.join(tmpdir, 'out.fbx')])
        assert result.exit_code == 1
        assert 'Unsupported output format' in result.output

    def test_atlas_overflow(self):
        """Triangles larger than the atlas fail with a hint"""
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            result = runner.invoke(cli, [
                'unwrap', _write_obj(tmpdir), '-o', os.path.join(tmpdir, 'out.json'),
                '--size', '64', '--texels-per-unit', '100',
            ])
        assert result.exit_code == 1
        assert 'Atlas Overflow' in result.output
        assert '--grow' in result.output

    def test_grow(self):
        """--grow enlarges the atlas instead of failing"""
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            output = os.path.join(tmpdir, 'out.json')
            result = runner.invoke(cli, [
                'unwrap', _write_obj(tmpdir), '-o', output,
                '--size', '64', '--texels-per-unit', '100', '--grow',
            ])
            assert result.exit_code == 0, result.output
            with open(output) as f:
                assert json.load(f)['atlas']['width'] > 64


class TestInfoCommand:
    """Test the info command"""

    def test_info(self):
        """Layout and triangle counts are printed"""
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            result = runner.invoke(cli, ['info', _write_obj(tmpdir)])
        assert result.exit_code == 0, result.output
        assert 'Vertices: 36' in result.output
        assert 'Triangles: 12' in result.output
        assert 'Degenerate: 0' in result.output

    def test_info_missing_file(self):
        """Missing files exit with an error"""
        runner = CliRunner()
        result = runner.invoke(cli, ['info', '/nonexistent/cube.obj'])
        assert result.exit_code == 1
        assert 'Error' in result.output
