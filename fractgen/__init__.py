"""
Escape-time fractal rendering library.

This library renders Mandelbrot sets (powers 2, 3 and 4) and Julia sets with
weighted color palettes, block-parallel rendering and an arbitrary precision
mode for deep zooms.

Key Features:
- Double precision and mpmath arbitrary precision behind one interface
- Weighted palettes with repeat, explicit cycle length, reverse and hard stops
- Block-based rendering on a process pool into a shared-memory RGBA buffer
- Geometric zoom flights between two views
- PNG/JPEG export with embedded render metadata

Example usage:
    >>> from fractgen import FractalRenderer, RenderConfig
    >>> renderer = FractalRenderer(RenderConfig(width=320, height=240))
    >>> renderer.render_to_file("mandelbrot.png")
"""

__version__ = "1.0.0"
__author__ = "fractgen developers"

from fractgen.core.precision import FloatNumbers, MpNumbers, select_number_system
from fractgen.core.math_functions import IterationResult, ViewWindow
from fractgen.core.fractal_types import FractalRegistry, Julia, Mandelbrot, Mandelbrot3, Mandelbrot4
from fractgen.rendering.coloring import ColorStop, Palette, color_for
from fractgen.rendering.image_output import ImageExporter
from fractgen.acceleration.tiling import PixelBuffer, TileScheduler
from fractgen.tools.animation import FlightInterpolator
from fractgen.io.config import ConfigManager

# Main API classes
from fractgen.api import FractalRenderer, RenderConfig

__all__ = [
    "FractalRenderer",
    "RenderConfig",
    "FloatNumbers",
    "MpNumbers",
    "select_number_system",
    "ViewWindow",
    "IterationResult",
    "FractalRegistry",
    "Mandelbrot",
    "Mandelbrot3",
    "Mandelbrot4",
    "Julia",
    "ColorStop",
    "Palette",
    "color_for",
    "ImageExporter",
    "PixelBuffer",
    "TileScheduler",
    "FlightInterpolator",
    "ConfigManager",
]
