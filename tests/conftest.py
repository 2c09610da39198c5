import pytest

from fractgen.core.fractal_types import Mandelbrot
from fractgen.core.math_functions import ViewWindow
from fractgen.rendering.coloring import ColorStop, Palette


@pytest.fixture
def patchwork_palette():
    return Palette([
        ColorStop("#ff0000", 256),
        ColorStop("#00ff00", 128),
        ColorStop("#0000ff", 256),
        ColorStop("#ffff00", 128),
    ], name="Patchwork")


@pytest.fixture
def small_view():
    return ViewWindow(-0.7, 0.0, 4.0, 40, 30)


@pytest.fixture
def mandelbrot():
    return Mandelbrot(max_iterations=50)
