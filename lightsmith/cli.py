"""
Lightsmith CLI - Command-line interface for lightmap UV generation
"""

import click
import logging
import os
import sys
from pathlib import Path
from lightsmith.converters import import_obj, export_glb
from lightsmith.exceptions import (
    AtlasOverflowError,
    LightmapError,
    NoPositionChannelError,
    UnsupportedIndexWidthError,
)
from lightsmith.lightmap import generate_lightmap
from lightsmith.schema.settings import LightmapSettings
from lightsmith.texturing.triangle_projector import project_mesh

OUTPUT_FORMATS = ('.glb', '.json', '.bin')


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


@click.group()
@click.version_option(package_name="lightsmith")
def cli():
    """
    Lightsmith - Generate lightmap UV atlases for triangle meshes.

    Examples:
        lightsmith unwrap model.obj -o model.glb --atlas atlas.png
        lightsmith info model.obj
    """
    pass


@cli.command()
@click.argument('input_path')
@click.option('-o', '--output', required=True, help='Output file path (.glb, .json, .bin)')
@click.option('--atlas', default=None, help='Also save the atlas visualization as PNG')
@click.option('--size', default=512, show_default=True, help='Atlas width and height in pixels')
@click.option('--width', default=None, type=int, help='Atlas width in pixels (overrides --size)')
@click.option('--height', default=None, type=int, help='Atlas height in pixels (overrides --size)')
@click.option('--padding', default=2, show_default=True, help='Gap between triangles in pixels')
@click.option('--texels-per-unit', default=1.0, show_default=True, help='Atlas pixels per mesh unit')
@click.option('--scale', default=1.0, show_default=True, help='Uniform scale applied on import')
@click.option('--rotate-x', default=0.0, show_default=True, help='Rotation about +X on import (degrees)')
@click.option('--grow', is_flag=True, help='Double the atlas size until everything fits')
@click.option('--max-triangles', default=None, type=int, help='Only draw the first N packed triangles in the atlas image')
@click.option('--verbose', '-v', is_flag=True, help='Show detailed packing info')
def unwrap(input_path, output, atlas, size, width, height, padding, texels_per_unit,
           scale, rotate_x, grow, max_triangles, verbose):
    """
    Generate lightmap UVs for a mesh and pack them into an atlas.

    Examples:
        lightsmith unwrap cornell_box.obj -o cornell_box.glb --scale 10 --rotate-x 90
        lightsmith unwrap model.obj -o uvs.json --atlas atlas.png --size 1024
        lightsmith unwrap model.obj -o model.glb --grow -v
    """
    _setup_logging(verbose)
    try:
        ext = os.path.splitext(output)[1].lower()
        if ext not in OUTPUT_FORMATS:
            raise ValueError(f"Unsupported output format: {ext}. Supported: {', '.join(OUTPUT_FORMATS)}")

        settings = LightmapSettings(
            atlas_width=width or size,
            atlas_height=height or size,
            padding=padding,
            texels_per_unit=texels_per_unit,
            grow_atlas=grow,
        )

        if verbose:
            click.echo(f"Loading: {input_path}")
        mesh = import_obj(input_path, scale=scale, rotate_x=rotate_x)

        result = generate_lightmap(mesh, settings, visualize=True, max_visualized=max_triangles)

        if ext == '.glb':
            data = export_glb(mesh, result.uvs, atlas_png=result.visualizer.to_png_bytes(),
                              name=Path(input_path).stem)
            with open(output, 'wb') as f:
                f.write(data)
        else:
            result.save(output)

        if atlas:
            result.save_atlas(atlas)

        if verbose:
            click.echo("\nLightmap Statistics:")
            click.echo(f"  Triangles: {result.triangle_count}")
            click.echo(f"  Atlas: {result.atlas_width}x{result.atlas_height}")
            click.echo(f"  Shelves: {result.stats.shelves} ({result.stats.used_height}px used)")
            click.echo(f"  Degenerate: {len(result.degenerate_triangles)}")

        click.secho(f"✓ Success! Lightmap saved to {output}", fg='green')

    except FileNotFoundError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        sys.exit(1)
    except NoPositionChannelError as e:
        click.secho(f"Mesh Error: {e}", fg='red', err=True)
        sys.exit(1)
    except UnsupportedIndexWidthError as e:
        click.secho(f"Mesh Error: {e}", fg='red', err=True)
        sys.exit(1)
    except AtlasOverflowError as e:
        click.secho(f"Atlas Overflow: {e} (try --grow or a larger --size)", fg='red', err=True)
        sys.exit(1)
    except LightmapError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        sys.exit(1)
    except ValueError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        sys.exit(1)
    except Exception as e:
        click.secho(f"Unexpected error: {e}", fg='red', err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


@cli.command()
@click.argument('input_path')
@click.option('--scale', default=1.0, show_default=True, help='Uniform scale applied on import')
@click.option('--rotate-x', default=0.0, show_default=True, help='Rotation about +X on import (degrees)')
def info(input_path, scale, rotate_x):
    """
    Show the vertex layout and triangle statistics of a mesh.

    Examples:
        lightsmith info model.obj
    """
    _setup_logging(False)
    try:
        mesh = import_obj(input_path, scale=scale, rotate_x=rotate_x)
        triangles = project_mesh(mesh)

        click.echo(f"Mesh: {input_path}")
        click.echo(f"  Layout: {mesh.layout}")
        click.echo(f"  Vertices: {mesh.vertex_count}")
        click.echo(f"  Triangles: {mesh.triangle_count}")
        if triangles:
            click.echo(f"  Largest triangle: {max(t.width for t in triangles):.2f} x {max(t.height for t in triangles):.2f} units")
        click.echo(f"  Degenerate: {sum(1 for t in triangles if t.degenerate)}")

    except FileNotFoundError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        sys.exit(1)
    except (LightmapError, ValueError) as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        sys.exit(1)


def main():
    """Entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
