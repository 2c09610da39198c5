"""
Core mathematical functions for fractal iteration.

This module provides the view-to-complex-plane mapping and the escape-time
iteration formulas. Every function here is pure, and views pickle exactly,
so both can be shipped to worker processes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Tuple

from .precision import FLOAT_NUMBERS, NumberSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewWindow:
    """
    Logical view onto the complex plane.

    The window is described by its center, its horizontal diameter and the
    pixel size of the target image. The vertical diameter follows from the
    image aspect ratio. Coordinates are held in ``numbers``, so a deep-zoom
    window keeps every digit of its center.
    """

    center_x: Any
    center_y: Any
    diameter_x: Any
    image_width: int
    image_height: int
    numbers: NumberSystem = FLOAT_NUMBERS

    aspect: Any = field(init=False, repr=False, compare=False)
    diameter_y: Any = field(init=False, repr=False, compare=False)
    min_x: Any = field(init=False, repr=False, compare=False)
    max_x: Any = field(init=False, repr=False, compare=False)
    min_y: Any = field(init=False, repr=False, compare=False)
    max_y: Any = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.image_width, int) or self.image_width <= 0:
            raise ValueError(f"image_width must be a positive integer, got {self.image_width!r}")
        if not isinstance(self.image_height, int) or self.image_height <= 0:
            raise ValueError(f"image_height must be a positive integer, got {self.image_height!r}")

        num = self.numbers
        center_x = num.from_native(self.center_x)
        center_y = num.from_native(self.center_y)
        diameter_x = num.from_native(self.diameter_x)
        if not diameter_x > 0:
            raise ValueError(f"diameter_x must be positive, got {self.diameter_x!r}")

        aspect = num.from_native(self.image_width) / num.from_native(self.image_height)
        diameter_y = diameter_x / aspect
        min_x = center_x - diameter_x / 2
        min_y = center_y - diameter_y / 2

        set_ = object.__setattr__
        set_(self, "center_x", center_x)
        set_(self, "center_y", center_y)
        set_(self, "diameter_x", diameter_x)
        set_(self, "aspect", aspect)
        set_(self, "diameter_y", diameter_y)
        set_(self, "min_x", min_x)
        set_(self, "max_x", min_x + diameter_x)
        set_(self, "min_y", min_y)
        set_(self, "max_y", min_y + diameter_y)

    def pixel_to_complex(self, x: int, y: int) -> Tuple[Any, Any]:
        """Convert pixel coordinates to a point of the complex plane.

        Image row 0 is the top edge while the imaginary axis grows upwards,
        so the row index is flipped before mapping.
        """
        num = self.numbers
        y = self.image_height - y
        fraction_x = num.from_native(x) / num.from_native(self.image_width)
        fraction_y = num.from_native(y) / num.from_native(self.image_height)
        cx = self.min_x + self.diameter_x * fraction_x
        cy = self.min_y + self.diameter_y * fraction_y
        return cx, cy

    def get_bounds(self) -> Tuple[float, float, float, float]:
        """Native-float bounds (xmin, xmax, ymin, ymax), for display and metadata."""
        to_native = self.numbers.to_native
        return (to_native(self.min_x), to_native(self.max_x),
                to_native(self.min_y), to_native(self.max_y))

    def with_numbers(self, numbers: NumberSystem) -> "ViewWindow":
        """Re-express this window in another number system."""
        return ViewWindow(self.center_x, self.center_y, self.diameter_x,
                          self.image_width, self.image_height, numbers)

    def for_image(self, width: int, height: int) -> "ViewWindow":
        """Same center and horizontal diameter, different image size."""
        return ViewWindow(self.center_x, self.center_y, self.diameter_x,
                          width, height, self.numbers)

    def describe(self, digits: int = 17) -> str:
        fmt = self.numbers.format
        return (f"center=({fmt(self.center_x, digits)}, {fmt(self.center_y, digits)}) "
                f"diameter={fmt(self.diameter_x, digits)} "
                f"size={self.image_width}x{self.image_height} precision={self.numbers.name}")

    def __reduce__(self):
        num = self.numbers
        return (_restore_view, (num, num.to_portable(self.center_x), num.to_portable(self.center_y),
                                num.to_portable(self.diameter_x), self.image_width, self.image_height))


def _restore_view(numbers, center_x, center_y, diameter_x, width, height) -> ViewWindow:
    return ViewWindow(numbers.from_portable(center_x), numbers.from_portable(center_y),
                      numbers.from_portable(diameter_x), width, height, numbers)


class IterationResult(NamedTuple):
    """Outcome of iterating a single point."""

    iterations: int
    bailout_magnitude: float

    def escaped(self, max_iterations: int) -> bool:
        return self.iterations < max_iterations


_NO_ITERATIONS = IterationResult(0, 0.0)


# The four formulas below share one loop shape: iterate while |z|^2 stays
# within the bailout and the cap has not been reached. They run on floats or
# mpmath numbers alike; the caller passes cx, cy and bailout already
# converted into the render's number system.

def mandelbrot2(cx, cy, bailout, max_iterations: int) -> IterationResult:
    """Mandelbrot set: z(n+1) = z(n)^2 + c, z(0) = 0."""
    if max_iterations <= 0:
        return _NO_ITERATIONS

    x = y = cx * 0
    magnitude = x
    iterations = 0
    while magnitude <= bailout and iterations < max_iterations:
        x, y = x * x - y * y + cx, 2 * x * y + cy
        iterations += 1
        magnitude = x * x + y * y

    return IterationResult(iterations, float(magnitude))


def mandelbrot3(cx, cy, bailout, max_iterations: int) -> IterationResult:
    """Cubic Mandelbrot set: z(n+1) = z(n)^3 + c, z(0) = 0."""
    if max_iterations <= 0:
        return _NO_ITERATIONS

    x = y = cx * 0
    magnitude = x
    iterations = 0
    while magnitude <= bailout and iterations < max_iterations:
        xx = x * x
        yy = y * y
        x, y = x * (xx - 3 * yy) + cx, y * (3 * xx - yy) + cy
        iterations += 1
        magnitude = x * x + y * y

    return IterationResult(iterations, float(magnitude))


def mandelbrot4(cx, cy, bailout, max_iterations: int) -> IterationResult:
    """Quartic Mandelbrot set: z(n+1) = z(n)^4 + c, z(0) = 0."""
    if max_iterations <= 0:
        return _NO_ITERATIONS

    x = y = cx * 0
    magnitude = x
    iterations = 0
    while magnitude <= bailout and iterations < max_iterations:
        xx = x * x
        yy = y * y
        x, y = xx * xx - 6 * xx * yy + yy * yy + cx, 4 * xx * x * y - 4 * x * yy * y + cy
        iterations += 1
        magnitude = x * x + y * y

    return IterationResult(iterations, float(magnitude))


def julia(cx, cy, bailout, max_iterations: int, kr, ki) -> IterationResult:
    """
    Julia set: z(n+1) = z(n)^2 + k with z(0) = c.

    Args:
        cx, cy: Pixel position, used as the starting value
        bailout: Squared magnitude above which a point has escaped
        max_iterations: Iteration cap
        kr, ki: The fixed Julia constant k
    """
    if max_iterations <= 0:
        return _NO_ITERATIONS

    x, y = cx, cy
    magnitude = cx * 0
    iterations = 0
    while magnitude <= bailout and iterations < max_iterations:
        x, y = x * x - y * y + kr, 2 * x * y + ki
        iterations += 1
        magnitude = x * x + y * y

    return IterationResult(iterations, float(magnitude))
