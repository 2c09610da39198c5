"""
Main API classes for fractal generation.

This module provides the high-level interface for fractal generation,
turning a flat render configuration into a fractal specification, a view
window and a palette, and driving the block scheduler and image export.
"""

import logging
import time
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .acceleration.tiling import DEFAULT_BLOCK_SIZE, PixelBuffer, TileScheduler
from .core.fractal_types import DEFAULT_BAILOUT, DEFAULT_MAX_ITERATIONS, FractalRegistry, FractalSpec
from .core.math_functions import ViewWindow
from .core.precision import NumberSystem, select_number_system
from .io.config import ConfigManager, FractalPreset, Presets
from .rendering.coloring import Palette
from .rendering.image_output import DEFAULT_JPEG_QUALITY, ImageExporter, RenderMetadata

logger = logging.getLogger(__name__)


@dataclass
class RenderConfig:
    """Configuration for fractal rendering."""

    # Image parameters
    width: int = 800
    height: int = 600

    # View, as strings or numbers; strings keep every digit for deep zooms
    center_x: Union[str, float] = -0.7
    center_y: Union[str, float] = 0.0
    diameter: Union[str, float] = 4.0

    # Fractal parameters
    fractal: str = 'mandelbrot'
    julia_kr: float = -0.2
    julia_ki: float = 0.8
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    bailout: float = DEFAULT_BAILOUT

    # Coloring
    color_preset: str = 'patchwork'
    palette_repeat: int = 1
    palette_length: int = 0
    palette_reverse: bool = False
    hard_stops: bool = False

    # 'auto', 'standard', 'deep' or a bit count
    precision: Union[str, int] = 'auto'

    # Performance
    block_size: int = DEFAULT_BLOCK_SIZE
    workers: Optional[int] = None

    # Output
    output_format: Optional[str] = None
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    save_metadata: bool = True

    def validate(self):
        """Validate configuration parameters."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Width and height must be positive")

        if self.max_iterations <= 0:
            raise ValueError("max_iterations must be positive")

        if self.bailout <= 0:
            raise ValueError("bailout must be positive")

        try:
            diameter = float(self.diameter)
        except (TypeError, ValueError):
            raise ValueError(f"diameter must be numeric, got {self.diameter!r}") from None
        if not diameter > 0:
            raise ValueError("diameter must be positive")

        if self.palette_repeat < 1:
            raise ValueError("palette_repeat must be >= 1")

        if self.block_size <= 0:
            raise ValueError("block_size must be positive")

        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be >= 1")

        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be between 1 and 100")

        if self.output_format is not None:
            ImageExporter.resolve_format(self.output_format)

        select_number_system(self.precision, diameter)

        FractalRegistry.get(self.fractal)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderConfig':
        """
        Build a configuration from a mapping, e.g. the ``render`` section of
        a config file.

        Raises:
            ValueError: for unknown keys
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration parameter(s): {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_preset(cls, preset: FractalPreset, **overrides) -> 'RenderConfig':
        """Configuration seeded from a fractal preset."""
        config = cls(
            center_x=preset.center_x,
            center_y=preset.center_y,
            diameter=preset.diameter_x,
            fractal=preset.iter_func,
            julia_kr=preset.julia_kr,
            julia_ki=preset.julia_ki,
            max_iterations=preset.max_iterations,
            color_preset=preset.color_preset,
            palette_repeat=preset.palette_repeat,
            palette_length=preset.palette_length,
            palette_reverse=preset.palette_reverse,
        )
        for key, value in overrides.items():
            if not hasattr(config, key):
                raise ValueError(f"Unknown configuration parameter: {key}")
            setattr(config, key, value)
        return config


class FractalRenderer:
    """Main fractal rendering engine."""

    def __init__(self, config: Optional[RenderConfig] = None, presets: Optional[Presets] = None):
        """
        Initialize fractal renderer.

        Args:
            config: Rendering configuration (uses defaults if None)
            presets: Color presets to resolve ``config.color_preset`` against
                (built-in presets if None)
        """
        self.config = config or RenderConfig()
        self.config.validate()

        if presets is None:
            presets = ConfigManager().load_presets()
        self.presets = presets

        self.image_exporter = ImageExporter(self.config.jpeg_quality)
        self.scheduler = TileScheduler(self.config.workers, self.config.block_size)

        logger.info(f"FractalRenderer initialized: {self.config.width}x{self.config.height}, "
                    f"precision={self.config.precision}")

    def build_fractal(self) -> FractalSpec:
        return FractalRegistry.create_fractal(
            self.config.fractal,
            max_iterations=self.config.max_iterations,
            bailout=float(self.config.bailout),
            kr=self.config.julia_kr,
            ki=self.config.julia_ki,
        )

    def build_numbers(self) -> NumberSystem:
        return select_number_system(self.config.precision, self.config.diameter)

    def build_view(self) -> ViewWindow:
        return ViewWindow(
            self.config.center_x,
            self.config.center_y,
            self.config.diameter,
            self.config.width,
            self.config.height,
            self.build_numbers(),
        )

    def build_palette(self) -> Palette:
        preset = self.presets.get_color_preset(self.config.color_preset)
        return preset.to_palette(
            repeat_count=self.config.palette_repeat,
            explicit_length=self.config.palette_length,
            reverse=self.config.palette_reverse,
            hard_stops=self.config.hard_stops,
        )

    def render(self, view: Optional[ViewWindow] = None) -> PixelBuffer:
        """
        Render the configured fractal.

        Args:
            view: View to render instead of the configured one, e.g. one frame of a flight

        Returns:
            The completed RGBA pixel buffer
        """
        fractal = self.build_fractal()
        palette = self.build_palette()
        if view is None:
            view = self.build_view()

        logger.info(f"Starting render: {fractal.get_description()}")
        return self.scheduler.render(fractal, view, palette)

    def render_to_file(self, output_path: Union[str, Path]) -> Path:
        """
        Render the configured fractal and save it.

        Args:
            output_path: Image file path; the format comes from
                ``config.output_format`` or the file suffix

        Returns:
            The path written
        """
        start_time = time.perf_counter()
        fractal = self.build_fractal()
        view = self.build_view()
        buffer = self.render(view)
        render_time = time.perf_counter() - start_time

        metadata = None
        if self.config.save_metadata:
            metadata = self.create_metadata(fractal, view, render_time)

        return self.image_exporter.save(buffer, output_path, self.config.output_format, metadata)

    def create_metadata(self, fractal: FractalSpec, view: ViewWindow,
                        render_time: float = 0.0) -> RenderMetadata:
        numbers = view.numbers
        parameters = fractal.to_dict()
        return RenderMetadata(
            fractal_type=fractal.name,
            center=(numbers.format(view.center_x), numbers.format(view.center_y)),
            diameter=numbers.format(view.diameter_x),
            resolution=(view.image_width, view.image_height),
            max_iterations=fractal.max_iterations,
            bailout=float(fractal.bailout),
            color_palette=self.config.color_preset,
            precision=f"{numbers.name}/{numbers.bits}",
            render_time_seconds=render_time,
            fractal_parameters={k: parameters[k] for k in ('kr', 'ki') if k in parameters},
        )

    def update_config(self, **kwargs):
        """Update rendering configuration."""
        for key, value in kwargs.items():
            if hasattr(self.config, key):
                setattr(self.config, key, value)
            else:
                raise ValueError(f"Unknown configuration parameter: {key}")

        self.config.validate()

        self.image_exporter = ImageExporter(self.config.jpeg_quality)
        if 'workers' in kwargs or 'block_size' in kwargs:
            self.scheduler = TileScheduler(self.config.workers, self.config.block_size)

    @classmethod
    def from_preset(cls, name: str, presets: Optional[Presets] = None, **overrides) -> 'FractalRenderer':
        """Renderer for a named fractal preset, with optional config overrides."""
        if presets is None:
            presets = ConfigManager().load_presets()
        config = RenderConfig.from_preset(presets.get_fractal_preset(name), **overrides)
        return cls(config, presets)
