"""
Zoom flight planning.

A flight moves the camera from a start view to an end view over a number of
frames. The diameter changes by a constant percentage per frame, and the
center follows the fraction of the total diameter change covered so far, so
a deep dive keeps an even pace from start to finish.
"""

import logging
from typing import Any, Iterator, List, Optional

from ..core.math_functions import ViewWindow
from ..core.precision import MpNumbers, NumberSystem

logger = logging.getLogger(__name__)


class FlightInterpolator:
    """Intermediate views for an animated zoom between two windows."""

    def __init__(self, start: ViewWindow, end: ViewWindow, frame_count: int,
                 numbers: Optional[NumberSystem] = None):
        """
        Initialize the flight.

        Args:
            start: First view of the flight
            end: Last view of the flight
            frame_count: Number of steps; the flight has frame_count + 1 views
            numbers: Number system for the interpolation (128-bit mpmath by
                default, since compounding over many frames amplifies
                rounding error)
        """
        if isinstance(frame_count, bool) or not isinstance(frame_count, int) or frame_count < 1:
            raise ValueError(f"frame_count must be an integer >= 1, got {frame_count!r}")
        if (start.image_width, start.image_height) != (end.image_width, end.image_height):
            raise ValueError("Start and end views must have the same image size")

        self.numbers = numbers or MpNumbers()
        self.frame_count = frame_count
        self.start = start.with_numbers(self.numbers)
        self.end = end.with_numbers(self.numbers)

    def growth_factor(self) -> Any:
        """Per-frame relative diameter change p, solving end = start * (1 + p)^n."""
        ratio = self.end.diameter_x / self.start.diameter_x
        return ratio ** (self.numbers.from_native(1) / self.frame_count) - 1

    def views(self) -> List[ViewWindow]:
        """All frame_count + 1 views, first and last included."""
        return list(self)

    def __iter__(self) -> Iterator[ViewWindow]:
        start, end = self.start, self.end
        num = self.numbers
        inc = 1 + self.growth_factor()

        delta_x = end.center_x - start.center_x
        delta_y = end.center_y - start.center_y
        delta_diameter = end.diameter_x - start.diameter_x

        logger.info(f"Flight of {self.frame_count} frames: diameter {num.format(start.diameter_x, 12)} -> "
                    f"{num.format(end.diameter_x, 12)}, factor {num.format(inc, 12)} per frame")

        diameter = start.diameter_x
        for i in range(self.frame_count + 1):
            if i > 0:
                diameter = diameter * inc
            if delta_diameter == 0:
                fraction = num.from_native(i) / self.frame_count
            else:
                fraction = abs((diameter - start.diameter_x) / delta_diameter)

            yield ViewWindow(
                start.center_x + delta_x * fraction,
                start.center_y + delta_y * fraction,
                diameter,
                start.image_width,
                start.image_height,
                num,
            )

    def __len__(self) -> int:
        return self.frame_count + 1
