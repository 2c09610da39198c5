"""
Numeric regimes for fractal computation.

Two number systems are provided: native double precision floats for normal
views, and arbitrary precision mpmath floats for deep zooms where doubles can
no longer tell neighbouring pixels apart. Both support Python's numeric
protocol, so formulas are written once and run unchanged in either regime.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Tuple, Union

import mpmath

logger = logging.getLogger(__name__)

DEFAULT_PRECISION_BITS = 128

# Below this horizontal diameter doubles stop resolving adjacent pixels.
DEEP_ZOOM_THRESHOLD = 1e-13

PrecisionSpec = Union[str, int]


class NumberSystem(ABC):
    """Capability interface for the real numbers used by the compute core."""

    name: str = "abstract"

    @property
    @abstractmethod
    def bits(self) -> int:
        """Mantissa bits of this number system."""

    @abstractmethod
    def from_native(self, value: Any) -> Any:
        """Convert an int, float, string or foreign number into this system."""

    def to_native(self, value: Any) -> float:
        """Convert a number of this system to a Python float (may lose precision)."""
        return float(value)

    @abstractmethod
    def format(self, value: Any, digits: int = 17) -> str:
        """Format a number with up to ``digits`` significant digits."""

    def to_portable(self, value: Any) -> Any:
        """Exact, picklable form of a number, undone by ``from_portable``."""
        return self.from_native(value)

    def from_portable(self, data: Any) -> Any:
        return self.from_native(data)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, NumberSystem) and (self.name, self.bits) == (other.name, other.bits)

    def __hash__(self) -> int:
        return hash((self.name, self.bits))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(bits={self.bits})"


class FloatNumbers(NumberSystem):
    """Native IEEE-754 double precision."""

    name = "standard"

    @property
    def bits(self) -> int:
        return 53

    def from_native(self, value: Any) -> float:
        return float(value)

    def format(self, value: Any, digits: int = 17) -> str:
        return f"{float(value):.{digits}g}"


class MpNumbers(NumberSystem):
    """Arbitrary precision binary floats backed by a private mpmath context.

    Each instance owns its own ``MPContext`` so that the working precision is
    never read from, or written to, the process-wide ``mpmath.mp`` state.
    """

    name = "deep"

    def __init__(self, bits: int = DEFAULT_PRECISION_BITS):
        if not isinstance(bits, int) or bits < 53:
            raise ValueError(f"Arbitrary precision needs at least 53 bits, got {bits!r}")
        self._bits = bits
        self.ctx = mpmath.MPContext()
        self.ctx.prec = bits

    @property
    def bits(self) -> int:
        return self._bits

    def from_native(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.ctx.mpf(value.strip())
        return self.ctx.mpf(value)

    def format(self, value: Any, digits: int = 17) -> str:
        return self.ctx.nstr(self.from_native(value), digits)

    def to_portable(self, value: Any) -> Tuple[int, int, int, int]:
        # (sign, mantissa, exponent, bitcount) is the exact binary value
        return tuple(self.from_native(value)._mpf_)

    def from_portable(self, data: Tuple[int, int, int, int]) -> Any:
        return self.ctx.mpf(tuple(data))

    def __reduce__(self):
        # MPContext itself does not pickle; rebuild it in the receiving process.
        return (MpNumbers, (self._bits,))


FLOAT_NUMBERS = FloatNumbers()


def digits_for_bits(bits: int) -> int:
    """Number of significant decimal digits carried by ``bits`` mantissa bits."""
    return max(1, int(bits * 0.30103))


def select_number_system(precision: PrecisionSpec = "auto",
                         diameter: Any = None) -> NumberSystem:
    """
    Choose the number system for a render.

    Args:
        precision: ``'standard'``, ``'deep'``, ``'auto'`` or an explicit bit
            width for the arbitrary precision type
        diameter: Horizontal diameter of the view, consulted by ``'auto'``

    Returns:
        The selected NumberSystem
    """
    if isinstance(precision, bool):
        raise ValueError(f"Invalid precision specification: {precision!r}")

    if isinstance(precision, int):
        return MpNumbers(precision)

    if not isinstance(precision, str):
        raise ValueError(f"Invalid precision specification: {precision!r}")

    mode = precision.strip().lower()
    if mode.isdigit():
        return MpNumbers(int(mode))
    if mode in ("standard", "double", "float"):
        return FLOAT_NUMBERS
    if mode in ("deep", "arbitrary"):
        return MpNumbers(DEFAULT_PRECISION_BITS)
    if mode == "auto":
        if diameter is not None and abs(float(diameter)) < DEEP_ZOOM_THRESHOLD:
            logger.info(f"Diameter {diameter} below {DEEP_ZOOM_THRESHOLD:g}, "
                        f"switching to {DEFAULT_PRECISION_BITS}-bit precision")
            return MpNumbers(DEFAULT_PRECISION_BITS)
        return FLOAT_NUMBERS

    raise ValueError(f"Unknown precision type: {precision}")
