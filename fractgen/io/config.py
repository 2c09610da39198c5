"""
Preset and configuration file handling.

Color presets name a list of color stops; fractal presets bundle a formula,
a view and palette settings. Built-in presets ship with the package, and a
JSON or YAML presets file can replace them. Key names follow the presets
file format (``iterFunc``, ``centerCX``, ``colorPaletteRepeat`` ...).
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..core.fractal_types import DEFAULT_MAX_ITERATIONS, FractalRegistry
from ..rendering.coloring import ColorStop, Palette, format_color

logger = logging.getLogger(__name__)


def _color_stop(entry: Any) -> ColorStop:
    """
    One entry of a preset's ``colors`` list.

    Accepts ``{"color": "#rrggbb", "length": n}``, channel mappings
    ``{"R": r, "G": g, "B": b, "A": a}`` as written by the web UI (alpha is
    ignored, palettes are opaque), and bare colors. ``length`` is optional.
    """
    if isinstance(entry, dict):
        length = int(entry.get('length', 0))
        if 'color' in entry:
            return ColorStop(entry['color'], length)
        if all(channel in entry for channel in 'RGB'):
            return ColorStop((entry['R'], entry['G'], entry['B']), length)
        raise ValueError(f"expected 'color' or R/G/B keys, got {sorted(entry)}")
    if isinstance(entry, (str, list, tuple)):
        return ColorStop(entry)
    raise ValueError(f"invalid color entry {entry!r}")


@dataclass(frozen=True)
class ColorPreset:
    """A named, reusable list of color stops."""

    name: str
    ident: str
    stops: Tuple[ColorStop, ...]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ColorPreset':
        name = data.get('name') or data.get('ident')
        if not name:
            raise ValueError("Color preset needs a name or ident")
        colors = data.get('colors') or []
        if not isinstance(colors, list):
            raise ValueError(f"Color preset '{name}': colors must be a list")
        stops = []
        for index, entry in enumerate(colors):
            try:
                stops.append(_color_stop(entry))
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Color preset '{name}', color {index}: {exc}") from None
        return cls(name=name, ident=str(data.get('ident') or name).lower(), stops=tuple(stops))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'ident': self.ident,
            'colors': [{'color': format_color(s.color), 'length': s.length} for s in self.stops],
        }

    def to_palette(self, repeat_count: int = 1, explicit_length: int = 0,
                   reverse: bool = False, hard_stops: bool = False) -> Palette:
        return Palette(self.stops, repeat_count=repeat_count, explicit_length=explicit_length,
                       reverse=reverse, hard_stops=hard_stops, name=self.name)


@dataclass(frozen=True)
class FractalPreset:
    """A named fractal view together with its palette settings."""

    name: str
    iter_func: str = 'mandelbrot'
    center_x: Union[float, str] = -0.7
    center_y: Union[float, str] = 0.0
    diameter_x: Union[float, str] = 4.0
    color_preset: str = 'patchwork'
    julia_kr: float = -0.2
    julia_ki: float = 0.8
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    palette_length: int = 0
    palette_repeat: int = 1
    palette_reverse: bool = False

    _keys = {
        'iterFunc': 'iter_func',
        'centerCX': 'center_x',
        'centerCY': 'center_y',
        'diameterCX': 'diameter_x',
        'colorPreset': 'color_preset',
        'juliaKr': 'julia_kr',
        'juliaKi': 'julia_ki',
        'maxIterations': 'max_iterations',
        'colorPaletteLength': 'palette_length',
        'colorPaletteRepeat': 'palette_repeat',
        'colorPaletteReverse': 'palette_reverse',
    }

    def __post_init__(self):
        # Fails early for unknown formulas.
        FractalRegistry.get(self.iter_func)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FractalPreset':
        if not data.get('name'):
            raise ValueError("Fractal preset needs a name")
        kwargs = {'name': data['name']}
        for key, attr in cls._keys.items():
            if data.get(key) is not None:
                kwargs[attr] = data[key]
        # 0 means "unset" in presets files
        if not kwargs.get('palette_repeat'):
            kwargs.pop('palette_repeat', None)
        if kwargs.get('palette_length', 0) < 0:
            kwargs['palette_length'] = 0
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = {'name': self.name}
        for key, attr in self._keys.items():
            data[key] = getattr(self, attr)
        return data


@dataclass
class Presets:
    """Color and fractal presets, looked up case-insensitively."""

    color_presets: List[ColorPreset] = field(default_factory=list)
    fractal_presets: List[FractalPreset] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Presets':
        if not isinstance(data, dict):
            raise ValueError("Presets data must be a mapping")
        return cls(
            color_presets=[ColorPreset.from_dict(d) for d in data.get('colorPresets', [])],
            fractal_presets=[FractalPreset.from_dict(d) for d in data.get('fractalPresets', [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'colorPresets': [p.to_dict() for p in self.color_presets],
            'fractalPresets': [p.to_dict() for p in self.fractal_presets],
        }

    def get_color_preset(self, ident: str) -> ColorPreset:
        key = ident.strip().lower()
        for preset in self.color_presets:
            if preset.ident == key or preset.name.lower() == key:
                return preset
        available = ', '.join(p.ident for p in self.color_presets)
        raise ValueError(f"Unknown color preset '{ident}'. Available: {available}")

    def get_fractal_preset(self, name: str) -> FractalPreset:
        key = name.strip().lower()
        for preset in self.fractal_presets:
            if preset.name.lower() == key:
                return preset
        available = ', '.join(p.name for p in self.fractal_presets)
        raise ValueError(f"Unknown fractal preset '{name}'. Available: {available}")


BUILTIN_PRESETS: Dict[str, Any] = {
    'colorPresets': [
        {
            'name': 'Patchwork',
            'ident': 'patchwork',
            'colors': [
                {'color': '#ff0000', 'length': 256},
                {'color': '#00ff00', 'length': 128},
                {'color': '#0000ff', 'length': 256},
                {'color': '#ffff00', 'length': 128},
            ],
        },
        {
            'name': 'Fire',
            'ident': 'fire',
            'colors': [
                {'color': '#000000', 'length': 64},
                {'color': '#800000', 'length': 128},
                {'color': '#ff0000', 'length': 128},
                {'color': '#ff8000', 'length': 256},
                {'color': '#ffff00', 'length': 256},
                {'color': '#ffffff', 'length': 64},
            ],
        },
        {
            'name': 'Ocean',
            'ident': 'ocean',
            'colors': [
                {'color': '#000033', 'length': 128},
                {'color': '#0000cc', 'length': 256},
                {'color': '#0080ff', 'length': 256},
                {'color': '#00ffff', 'length': 128},
                {'color': '#80ffff', 'length': 128},
                {'color': '#ffffff', 'length': 64},
            ],
        },
        {
            'name': 'Grayscale',
            'ident': 'grayscale',
            'colors': [
                {'color': '#000000', 'length': 256},
                {'color': '#ffffff', 'length': 256},
            ],
        },
        {
            'name': 'Rainbow',
            'ident': 'rainbow',
            'colors': [
                {'color': '#ff0000', 'length': 0},
                {'color': '#ff8000', 'length': 0},
                {'color': '#ffff00', 'length': 0},
                {'color': '#00ff00', 'length': 0},
                {'color': '#00ffff', 'length': 0},
                {'color': '#0000ff', 'length': 0},
                {'color': '#8000ff', 'length': 0},
            ],
        },
    ],
    'fractalPresets': [
        {
            'name': 'Mandelbrot Total',
            'iterFunc': 'mandelbrot',
            'centerCX': -0.7,
            'centerCY': 0.0,
            'diameterCX': 4.0,
            'colorPreset': 'patchwork',
            'maxIterations': 100,
        },
        {
            'name': 'Seahorse Valley',
            'iterFunc': 'mandelbrot',
            'centerCX': -0.743643887037151,
            'centerCY': 0.13182590420533,
            'diameterCX': 0.005,
            'colorPreset': 'ocean',
            'maxIterations': 1000,
            'colorPaletteRepeat': 3,
        },
        {
            'name': 'Mandelbrot3 Total',
            'iterFunc': 'mandelbrot3',
            'centerCX': 0.0,
            'centerCY': 0.0,
            'diameterCX': 3.0,
            'colorPreset': 'fire',
            'maxIterations': 100,
        },
        {
            'name': 'Mandelbrot4 Total',
            'iterFunc': 'mandelbrot4',
            'centerCX': -0.2,
            'centerCY': 0.0,
            'diameterCX': 3.0,
            'colorPreset': 'rainbow',
            'maxIterations': 100,
        },
        {
            'name': 'Julia Total',
            'iterFunc': 'julia',
            'centerCX': 0.0,
            'centerCY': 0.0,
            'diameterCX': 3.5,
            'colorPreset': 'patchwork',
            'juliaKr': -0.2,
            'juliaKi': 0.8,
            'maxIterations': 200,
        },
    ],
}


class ConfigManager:
    """Loads JSON or YAML configuration and presets files."""

    def load_config(self, filepath: Union[str, Path]) -> Dict[str, Any]:
        """
        Load a configuration mapping from a .json, .yaml or .yml file.

        Raises:
            ValueError: for unknown file types or non-mapping content
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        with open(filepath, 'r', encoding='utf-8') as f:
            if suffix == '.json':
                data = json.load(f)
            elif suffix in ('.yaml', '.yml'):
                data = yaml.safe_load(f)
            else:
                raise ValueError(f"Unsupported config file type '{suffix}'. Use .json, .yaml or .yml")

        if not isinstance(data, dict):
            raise ValueError(f"Config file {filepath} must contain a mapping at the top level")

        logger.debug(f"Loaded config: {filepath}")
        return data

    def load_presets(self, filepath: Optional[Union[str, Path]] = None) -> Presets:
        """Presets from ``filepath``, or the built-in presets when no file is given."""
        if filepath is None:
            return Presets.from_dict(BUILTIN_PRESETS)
        presets = Presets.from_dict(self.load_config(filepath))
        logger.info(f"Loaded {len(presets.color_presets)} color and "
                    f"{len(presets.fractal_presets)} fractal presets from {filepath}")
        return presets

    def save_presets(self, presets: Presets, filepath: Union[str, Path]) -> None:
        filepath = Path(filepath)
        data = presets.to_dict()
        with open(filepath, 'w', encoding='utf-8') as f:
            if filepath.suffix.lower() in ('.yaml', '.yml'):
                yaml.safe_dump(data, f, sort_keys=False)
            else:
                json.dump(data, f, indent=2)
