"""
Fractal type definitions and parameter management.

Each supported escape-time formula is an immutable specification carrying
its own iteration cap and bailout. The registry resolves fractal names (as
used by presets and the command line) into specification classes.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Dict, Tuple, Type

from .math_functions import IterationResult, julia, mandelbrot2, mandelbrot3, mandelbrot4
from .precision import FLOAT_NUMBERS, NumberSystem

logger = logging.getLogger(__name__)

# 4 is mathematically sufficient; a larger bailout reduces banding in smooth coloring.
DEFAULT_BAILOUT = 256.0
DEFAULT_MAX_ITERATIONS = 100


@dataclass(frozen=True)
class FractalSpec(ABC):
    """Base class for fractal specifications with validation."""

    name: ClassVar[str] = "abstract"
    formula: ClassVar[str] = ""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    bailout: float = DEFAULT_BAILOUT

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate parameter values."""
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int):
            raise ValueError(f"max_iterations must be an integer, got {self.max_iterations!r}")
        if self.max_iterations <= 0:
            raise ValueError(f"max_iterations must be positive, got {self.max_iterations}")
        if not isinstance(self.bailout, (int, float)) or isinstance(self.bailout, bool):
            raise ValueError(f"bailout must be numeric, got {self.bailout!r}")
        if not self.bailout > 0:
            raise ValueError(f"bailout must be positive, got {self.bailout}")

    @abstractmethod
    def iterate(self, cx, cy, numbers: NumberSystem = FLOAT_NUMBERS) -> IterationResult:
        """
        Iterate a single point of the complex plane.

        Args:
            cx, cy: Point coordinates, already in ``numbers``
            numbers: Number system of the current render

        Returns:
            IterationResult for the point
        """

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.name
        return data

    def get_description(self) -> str:
        return f"{self.formula} (max_iterations={self.max_iterations}, bailout={self.bailout:g})"


@dataclass(frozen=True)
class Mandelbrot(FractalSpec):
    """Classic Mandelbrot set."""

    name: ClassVar[str] = "mandelbrot"
    formula: ClassVar[str] = "z(n+1) = z(n)^2 + c, z(0) = 0"

    def iterate(self, cx, cy, numbers: NumberSystem = FLOAT_NUMBERS) -> IterationResult:
        return mandelbrot2(cx, cy, numbers.from_native(self.bailout), self.max_iterations)


@dataclass(frozen=True)
class Mandelbrot3(FractalSpec):
    """Third-power Mandelbrot set."""

    name: ClassVar[str] = "mandelbrot3"
    formula: ClassVar[str] = "z(n+1) = z(n)^3 + c, z(0) = 0"

    def iterate(self, cx, cy, numbers: NumberSystem = FLOAT_NUMBERS) -> IterationResult:
        return mandelbrot3(cx, cy, numbers.from_native(self.bailout), self.max_iterations)


@dataclass(frozen=True)
class Mandelbrot4(FractalSpec):
    """Fourth-power Mandelbrot set."""

    name: ClassVar[str] = "mandelbrot4"
    formula: ClassVar[str] = "z(n+1) = z(n)^4 + c, z(0) = 0"

    def iterate(self, cx, cy, numbers: NumberSystem = FLOAT_NUMBERS) -> IterationResult:
        return mandelbrot4(cx, cy, numbers.from_native(self.bailout), self.max_iterations)


@dataclass(frozen=True)
class Julia(FractalSpec):
    """Julia set for the constant k = kr + ki*i."""

    name: ClassVar[str] = "julia"
    formula: ClassVar[str] = "z(n+1) = z(n)^2 + k, z(0) = c"

    kr: Any = -0.2
    ki: Any = 0.8

    def validate(self) -> None:
        super().validate()
        for label, value in (("kr", self.kr), ("ki", self.ki)):
            try:
                float(value)
            except (TypeError, ValueError):
                raise ValueError(f"Julia constant {label} must be numeric, got {value!r}") from None

    def iterate(self, cx, cy, numbers: NumberSystem = FLOAT_NUMBERS) -> IterationResult:
        return julia(cx, cy, numbers.from_native(self.bailout), self.max_iterations,
                     numbers.from_native(self.kr), numbers.from_native(self.ki))

    def get_description(self) -> str:
        return f"{super().get_description()} with k = {self.kr} + {self.ki}i"


class FractalRegistry:
    """Registry for managing available fractal types."""

    _fractals: Dict[str, Type[FractalSpec]] = {
        'mandelbrot': Mandelbrot,
        'mandelbrot3': Mandelbrot3,
        'mandelbrot4': Mandelbrot4,
        'julia': Julia,
    }

    _aliases: Dict[str, str] = {
        'mandelbrot2': 'mandelbrot',
    }

    @classmethod
    def get(cls, name: str) -> Type[FractalSpec]:
        """
        Get a fractal class by name.

        Args:
            name: Fractal identifier (case insensitive)

        Returns:
            FractalSpec subclass
        """
        key = str(name).strip().lower()
        key = cls._aliases.get(key, key)
        fractal_class = cls._fractals.get(key)
        if fractal_class is None:
            available = ', '.join(cls._fractals.keys())
            raise ValueError(f"Unknown fractal type '{name}'. Available: {available}")
        return fractal_class

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(cls._fractals.keys())

    @classmethod
    def list_fractals(cls) -> Dict[str, str]:
        """Get a dictionary of available fractals and their formulas."""
        return {name: fractal_class.formula for name, fractal_class in cls._fractals.items()}

    @classmethod
    def create_fractal(cls, name: str, **kwargs) -> FractalSpec:
        """
        Create a fractal specification with the given parameters.

        Args:
            name: Fractal type name
            **kwargs: max_iterations, bailout and, for Julia sets, kr and ki

        Returns:
            Configured fractal specification
        """
        fractal_class = cls.get(name)
        if fractal_class is not Julia:
            kwargs.pop('kr', None)
            kwargs.pop('ki', None)
        fractal = fractal_class(**kwargs)
        logger.debug(f"Created fractal: {fractal.get_description()}")
        return fractal


# Predefined interesting Julia set constants as (kr, ki)
JULIA_PRESETS: Dict[str, Tuple[float, float]] = {
    'default': (-0.2, 0.8),
    'dragon': (-0.75, 0.1),
    'spiral': (-0.4, 0.6),
    'dendrite': (-0.235125, 0.827215),
    'lightning': (-0.8, 0.156),
    'rabbit': (-0.123, 0.745),
    'airplane': (-1.25, 0.0),
    'san_marco': (-0.75, 0.0),
    'siegel_disk': (-0.391, -0.587),
}
