"""
Palette management and coloring for fractal rendering.

A palette is an ordered list of weighted color stops. The stops are laid out
end to end (optionally repeated) and a continuous iteration value is mapped
to a position along that strip, interpolating between neighbouring stops.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple, Union

from ..core.math_functions import IterationResult

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]
RGBA = Tuple[int, int, int, int]

BLACK: RGBA = (0, 0, 0, 255)

# Weight given to stops declared with length 0.
DEFAULT_STOP_LENGTH = 256

ColorLike = Union[RGB, Sequence[int], str]


def parse_color(value: ColorLike) -> RGB:
    """
    Parse a color given as ``(r, g, b)`` or as a ``#rrggbb`` hex string.

    Raises:
        ValueError: if the value is not a valid 8-bit RGB color
    """
    if isinstance(value, str):
        text = value.strip().lstrip('#')
        if len(text) != 6:
            raise ValueError(f"Invalid color format: {value!r}")
        try:
            return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
        except ValueError:
            raise ValueError(f"Invalid color format: {value!r}") from None

    try:
        channels = tuple(value)
    except TypeError:
        raise ValueError(f"Invalid color format: {value!r}") from None
    if len(channels) != 3:
        raise ValueError(f"Invalid color format: {value!r}")
    for channel in channels:
        if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
            raise ValueError(f"RGB components must be integers between 0 and 255: {value!r}")
    return channels


def format_color(color: RGB) -> str:
    return '#{:02x}{:02x}{:02x}'.format(*color)


@dataclass(frozen=True)
class ColorStop:
    """An anchor color and the weight (length) of the segment it starts."""

    color: RGB
    length: int = DEFAULT_STOP_LENGTH

    def __post_init__(self):
        object.__setattr__(self, 'color', parse_color(self.color))
        if isinstance(self.length, bool) or not isinstance(self.length, int):
            raise ValueError(f"Color stop length must be an integer, got {self.length!r}")
        if self.length < 0:
            raise ValueError(f"Color stop length must not be negative, got {self.length}")
        if self.length == 0:
            object.__setattr__(self, 'length', DEFAULT_STOP_LENGTH)


class Palette:
    """Immutable weighted color palette, shared read-only by all render workers."""

    def __init__(self, stops: Iterable[Union[ColorStop, ColorLike, Tuple[ColorLike, int]]],
                 repeat_count: int = 1, explicit_length: int = 0,
                 reverse: bool = False, hard_stops: bool = False,
                 name: str = "Custom"):
        """
        Initialize color palette.

        Args:
            stops: Color stops; bare colors get the default length
            repeat_count: How many times the stop list is laid out end to end
            explicit_length: Iteration span of one palette cycle; 0 ties the
                cycle to the fractal's max iterations
            reverse: Walk the palette from its end
            hard_stops: Use the stop colors without interpolation
            name: Human-readable name for the palette
        """
        self.name = name
        self.stops: Tuple[ColorStop, ...] = tuple(self._coerce_stop(stop) for stop in stops)

        if len(self.stops) < 2:
            raise ValueError(f"Palette '{name}' must contain at least 2 color stops, got {len(self.stops)}")
        if isinstance(repeat_count, bool) or not isinstance(repeat_count, int) or repeat_count < 1:
            raise ValueError(f"Palette repeat_count must be an integer >= 1, got {repeat_count!r}")
        if isinstance(explicit_length, bool) or not isinstance(explicit_length, int):
            raise ValueError(f"Palette explicit_length must be an integer, got {explicit_length!r}")

        self.repeat_count = repeat_count
        self.explicit_length = max(0, explicit_length)
        self.reverse = bool(reverse)
        self.hard_stops = bool(hard_stops)

        self._expanded: Tuple[ColorStop, ...] = self.stops * repeat_count
        self.total_length = sum(stop.length for stop in self._expanded)
        if self.total_length <= 0:
            raise ValueError(f"Palette '{name}' has no total length")

    @staticmethod
    def _coerce_stop(stop) -> ColorStop:
        if isinstance(stop, ColorStop):
            return stop
        if isinstance(stop, dict):
            return ColorStop(stop['color'], int(stop.get('length', 0)))
        if isinstance(stop, (tuple, list)) and len(stop) == 2:
            color, length = stop
            return ColorStop(color, length)
        return ColorStop(stop)

    @property
    def expanded_stops(self) -> Tuple[ColorStop, ...]:
        return self._expanded

    def replace(self, **changes) -> 'Palette':
        """Copy of this palette with some settings changed."""
        settings = {
            'stops': self.stops,
            'repeat_count': self.repeat_count,
            'explicit_length': self.explicit_length,
            'reverse': self.reverse,
            'hard_stops': self.hard_stops,
            'name': self.name,
        }
        settings.update(changes)
        return Palette(**settings)

    @classmethod
    def from_matplotlib(cls, cmap_name: str, n_samples: int = 16,
                        length: int = DEFAULT_STOP_LENGTH, **kwargs) -> 'Palette':
        """Create a palette by sampling a matplotlib colormap."""
        try:
            from matplotlib import colormaps
        except ImportError as exc:
            raise RuntimeError("matplotlib required for colormap import") from exc

        if n_samples < 2:
            raise ValueError("n_samples must be at least 2")
        cmap = colormaps[cmap_name]
        stops = []
        for i in range(n_samples):
            r, g, b, _ = cmap(i / (n_samples - 1))
            stops.append(ColorStop((round(r * 255), round(g * 255), round(b * 255)), length))
        kwargs.setdefault('name', f"From_{cmap_name}")
        return cls(stops, **kwargs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Palette):
            return NotImplemented
        return (self.stops, self.repeat_count, self.explicit_length, self.reverse, self.hard_stops) == \
            (other.stops, other.repeat_count, other.explicit_length, other.reverse, other.hard_stops)

    def __hash__(self) -> int:
        return hash((self.stops, self.repeat_count, self.explicit_length, self.reverse, self.hard_stops))

    def __repr__(self) -> str:
        return (f"Palette(name={self.name!r}, stops={len(self.stops)}, repeat_count={self.repeat_count}, "
                f"explicit_length={self.explicit_length}, reverse={self.reverse}, hard_stops={self.hard_stops})")


def color_for(value: float, palette: Palette, max_iterations: int) -> RGBA:
    """
    Map a continuous iteration value to an RGBA color.

    Args:
        value: Iteration value, usually smoothed by ``smooth_iteration_value``
        palette: Palette to sample
        max_iterations: Iteration cap of the fractal being colored

    Returns:
        (r, g, b, a) with alpha always 255; black for points of the set
    """
    if value >= max_iterations:
        return BLACK

    effective = max_iterations
    if palette.explicit_length > 0:
        effective = palette.explicit_length
        value = math.fmod(value, effective)

    if palette.reverse:
        value = effective - value

    stops = palette.expanded_stops
    total = palette.total_length
    position = min(max(value / effective * total, 0.0), float(total))

    # Find the stop whose segment straddles the position; a position at the
    # very end stays in the last segment and lands on the wrap color.
    index = len(stops) - 1
    start = total - stops[index].length
    running = 0
    for i, stop in enumerate(stops):
        if running + stop.length > position:
            index, start = i, running
            break
        running += stop.length

    lower = stops[index]
    if palette.hard_stops:
        return lower.color + (255,)

    upper = stops[(index + 1) % len(stops)]
    t = (position - start) / lower.length
    return tuple(
        round(lo + (hi - lo) * t) for lo, hi in zip(lower.color, upper.color)
    ) + (255,)


def smooth_iteration_value(result: IterationResult, max_iterations: int, bailout: float) -> float:
    """
    Continuous iteration count for smooth coloring.

    Escaped points get ``n - log2(log(|z|^2) / log(bailout))``, which removes
    the visible bands between integer iteration counts. Points that never
    escaped keep their integer count so the palette paints them black.
    """
    iterations = result.iterations
    if not result.escaped(max_iterations):
        return float(iterations)

    magnitude = result.bailout_magnitude
    if magnitude <= 1.0 or bailout <= 1.0:
        return float(iterations)

    ratio = math.log(magnitude) / math.log(bailout)
    # log2 is undefined for ratio <= 0; corrections are never negative.
    correction = math.log2(ratio) if ratio > 1.0 else 0.0
    return max(0.0, iterations - correction)
