"""
Command-line interface for fractal generation.

This module provides a CLI for rendering fractal images, planning zoom
flights, previewing palettes and listing the available presets.
"""

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Tuple

import click

from .. import __version__
from ..api import FractalRenderer, RenderConfig
from ..core.fractal_types import JULIA_PRESETS, FractalRegistry
from ..core.math_functions import ViewWindow
from ..core.precision import digits_for_bits, select_number_system
from ..io.config import ConfigManager, Presets
from ..rendering.image_output import ImageExporter, render_palette_strip
from ..tools.animation import FlightInterpolator

logger = logging.getLogger(__name__)


def _fail(ctx, error: Exception):
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get('verbose'):
        import traceback
        traceback.print_exc()
    sys.exit(1)


def _presets(ctx) -> Presets:
    return ConfigManager().load_presets(ctx.obj.get('presets_file'))


def parse_julia_constant(value: str) -> Tuple[float, float]:
    """Julia constant from a preset name or a 'kr,ki' pair."""
    if value in JULIA_PRESETS:
        return JULIA_PRESETS[value]
    try:
        kr, ki = (float(part.strip()) for part in value.split(','))
    except ValueError:
        raise ValueError("Invalid Julia constant. Use 'real,imag' or a preset name") from None
    return kr, ki


def parse_view(value: str) -> Tuple[str, str, str]:
    """Center and diameter from 'cx,cy,diameter', kept as strings for full precision."""
    parts = [part.strip() for part in value.split(',')]
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"Invalid view '{value}'. Use 'center_x,center_y,diameter'")
    return parts[0], parts[1], parts[2]


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--presets-file', type=click.Path(exists=True), help='JSON or YAML presets file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, presets_file, verbose, quiet):
    """
    fractgen - escape-time fractal renderer.

    Render Mandelbrot and Julia sets with weighted palettes, arbitrary
    precision deep zooms and block-parallel rendering.
    """
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"fractgen v{__version__}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)
    elif ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())

    ctx.ensure_object(dict)
    ctx.obj['presets_file'] = presets_file
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


@main.command()
@click.argument('output', type=click.Path())
@click.option('--config', 'config_file', type=click.Path(exists=True),
              help='JSON or YAML file with a "render" section')
@click.option('--fractal-preset', help='Start from a named fractal preset')
@click.option('--width', '-w', type=int, help='Image width')
@click.option('--height', '-h', type=int, help='Image height')
@click.option('--center-x', type=str, help='Real part of the view center')
@click.option('--center-y', type=str, help='Imaginary part of the view center')
@click.option('--diameter', type=str, help='Horizontal diameter of the view')
@click.option('--fractal', type=click.Choice(FractalRegistry.names() + ('mandelbrot2',)),
              help='Fractal formula')
@click.option('--julia-c', type=str, help="Julia constant 'real,imag' or preset name")
@click.option('--max-iter', 'max_iterations', type=int, help='Maximum iterations')
@click.option('--bailout', type=float, help='Squared escape magnitude')
@click.option('--color-preset', help='Color preset ident')
@click.option('--palette-repeat', type=int, help='Times the palette is laid out end to end')
@click.option('--palette-length', type=int, help='Iterations per palette cycle (0 = max iterations)')
@click.option('--reverse/--no-reverse', 'palette_reverse', default=None, help='Reverse the palette')
@click.option('--hard-stops/--smooth-stops', 'hard_stops', default=None,
              help='Use stop colors without interpolation')
@click.option('--precision', type=str, help="'auto', 'standard', 'deep' or a bit count")
@click.option('--block-size', type=int, help='Edge length of a render block')
@click.option('--workers', type=int, help='Number of worker processes')
@click.option('--format', 'output_format', type=click.Choice(sorted(ImageExporter.formats)),
              help='Image format (default: from file suffix)')
@click.option('--jpeg-quality', type=int, help='JPEG quality (1-100)')
@click.option('--no-metadata', is_flag=True, help='Do not embed render metadata')
@click.pass_context
def image(ctx, output, config_file, fractal_preset, julia_c, no_metadata, **kwargs):
    """
    Render a single fractal image.

    OUTPUT: Output image file path (.png, .jpg or .jpeg)
    """
    try:
        presets = _presets(ctx)

        file_settings: Dict[str, Any] = {}
        if config_file:
            data = ConfigManager().load_config(config_file)
            if 'colorPresets' in data or 'fractalPresets' in data:
                presets = Presets.from_dict(data)
            file_settings = data.get('render') or {}

        if fractal_preset:
            config = RenderConfig.from_preset(presets.get_fractal_preset(fractal_preset), **file_settings)
        else:
            config = RenderConfig.from_dict(file_settings)

        overrides = {k: v for k, v in kwargs.items() if v is not None}
        if julia_c:
            overrides['julia_kr'], overrides['julia_ki'] = parse_julia_constant(julia_c)
        if no_metadata:
            overrides['save_metadata'] = False
        for key, value in overrides.items():
            setattr(config, key, value)

        renderer = FractalRenderer(config, presets)

        if not ctx.obj.get('quiet'):
            click.echo(f"Rendering {config.fractal} {config.width}x{config.height}...")
        start_time = time.time()

        path = renderer.render_to_file(output)

        if not ctx.obj.get('quiet'):
            click.echo(f"Render complete: {time.time() - start_time:.2f}s")
            click.echo(f"Saved: {path}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--start', 'start_view', required=True, help="Start view 'center_x,center_y,diameter'")
@click.option('--end', 'end_view', required=True, help="End view 'center_x,center_y,diameter'")
@click.option('--frames', type=int, default=100, show_default=True, help='Number of frame steps')
@click.option('--width', '-w', type=int, default=800, show_default=True, help='Image width')
@click.option('--height', '-h', type=int, default=600, show_default=True, help='Image height')
@click.option('--bits', type=int, default=128, show_default=True, help='Interpolation precision')
@click.option('--digits', type=int, help='Significant digits printed (default: all digits the bits carry)')
@click.option('--output', '-o', type=click.Path(), help='Write the views to a JSON file')
@click.pass_context
def flight(ctx, start_view, end_view, frames, width, height, bits, digits, output):
    """
    Plan a zoom flight between two views.

    Prints the center and diameter of every frame, first and last included.
    """
    try:
        numbers = select_number_system(bits)
        start = ViewWindow(*parse_view(start_view), width, height, numbers)
        end = ViewWindow(*parse_view(end_view), width, height, numbers)
        interpolator = FlightInterpolator(start, end, frames, numbers)
        if digits is None:
            digits = digits_for_bits(numbers.bits)

        fmt = numbers.format
        entries = [
            {
                'frame': index,
                'centerCX': fmt(view.center_x, digits),
                'centerCY': fmt(view.center_y, digits),
                'diameterCX': fmt(view.diameter_x, digits),
            }
            for index, view in enumerate(interpolator)
        ]

        if output:
            document = {
                'width': width,
                'height': height,
                'growthFactor': fmt(interpolator.growth_factor(), digits),
                'frames': entries,
            }
            Path(output).write_text(json.dumps(document, indent=2), encoding='utf-8')
            click.echo(f"Wrote {len(entries)} views to {output}")
        else:
            for entry in entries:
                click.echo(f"{entry['frame']:5d}  {entry['centerCX']}  {entry['centerCY']}  {entry['diameterCX']}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.argument('output', type=click.Path())
@click.option('--color-preset', default='patchwork', show_default=True, help='Color preset ident')
@click.option('--width', '-w', type=int, default=1024, show_default=True, help='Strip width')
@click.option('--height', '-h', type=int, default=100, show_default=True, help='Strip height')
@click.option('--vertical', is_flag=True, help='Run the gradient top to bottom')
@click.option('--repeat', type=int, default=1, show_default=True, help='Palette repeat count')
@click.option('--length', type=int, default=0, show_default=True, help='Explicit palette length')
@click.option('--reverse', is_flag=True, help='Reverse the palette')
@click.option('--hard-stops', is_flag=True, help='Use stop colors without interpolation')
@click.pass_context
def palette(ctx, output, color_preset, width, height, vertical, repeat, length, reverse, hard_stops):
    """
    Render a color preset as a gradient strip.

    OUTPUT: Output image file path
    """
    try:
        preset = _presets(ctx).get_color_preset(color_preset)
        strip = render_palette_strip(
            preset.to_palette(repeat, length, reverse, hard_stops),
            width, height, 'vertical' if vertical else 'horizontal',
        )
        path = ImageExporter().save(strip, output)
        click.echo(f"Saved: {path}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--json', 'as_json', is_flag=True, help='Print the presets as JSON')
@click.pass_context
def presets(ctx, as_json):
    """List fractal types and the available presets."""
    try:
        loaded = _presets(ctx)
        if as_json:
            click.echo(json.dumps(loaded.to_dict(), indent=2))
            return

        click.echo("Fractal types:")
        for name, formula in FractalRegistry.list_fractals().items():
            click.echo(f"  {name:12s} {formula}")

        click.echo("\nColor presets:")
        for preset in loaded.color_presets:
            click.echo(f"  {preset.ident:12s} {preset.name} ({len(preset.stops)} stops)")

        click.echo("\nFractal presets:")
        for preset in loaded.fractal_presets:
            click.echo(f"  {preset.name:20s} {preset.iter_func}, diameter {preset.diameter_x}")

        click.echo("\nJulia constants:")
        for name, (kr, ki) in JULIA_PRESETS.items():
            click.echo(f"  {name:12s} {kr:+.6f} {ki:+.6f}i")

    except Exception as e:
        _fail(ctx, e)


if __name__ == '__main__':
    main()
