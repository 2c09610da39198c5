"""
Image export for rendered pixel buffers.

Rendered rasters carry no container format of their own; this module
serializes them as PNG or JPEG through Pillow, optionally embedding the
render parameters as PNG text metadata.
"""

import io
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from PIL import Image, PngImagePlugin

from .. import __version__
from ..acceleration.tiling import PixelBuffer
from .coloring import Palette, color_for

logger = logging.getLogger(__name__)

DEFAULT_JPEG_QUALITY = 90


@dataclass
class RenderMetadata:
    """Metadata for fractal renders."""

    fractal_type: str
    center: Tuple[str, str]
    diameter: str
    resolution: Tuple[int, int]  # width, height
    max_iterations: int
    bailout: float
    color_palette: str
    precision: str
    render_time_seconds: float = 0.0
    fractal_parameters: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""
    software_version: str = __version__

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        data = json.loads(json_str)
        data['center'] = tuple(data['center'])
        data['resolution'] = tuple(data['resolution'])
        return cls(**data)


class ImageExporter:
    """PNG/JPEG serialization of pixel buffers."""

    formats = {
        'png': 'PNG',
        'jpeg': 'JPEG',
        'jpg': 'JPEG',
    }

    def __init__(self, jpeg_quality: int = DEFAULT_JPEG_QUALITY):
        if not 1 <= jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be between 1 and 100, got {jpeg_quality}")
        self.jpeg_quality = jpeg_quality

    @classmethod
    def resolve_format(cls, format: Optional[str] = None, filepath: Union[str, Path, None] = None) -> str:
        """
        Resolve the Pillow format name from an explicit format or a file suffix.

        Raises:
            ValueError: for unsupported or undeterminable formats
        """
        if not format and filepath is not None:
            format = Path(filepath).suffix.lstrip('.')
        key = (format or '').lower()
        if key not in cls.formats:
            supported = ', '.join(cls.formats.keys())
            raise ValueError(f"Unsupported format '{format}'. Supported: {supported}")
        return cls.formats[key]

    def to_image(self, buffer: PixelBuffer) -> Image.Image:
        return Image.fromarray(buffer.pixels)

    def encode(self, buffer: PixelBuffer, format: str = 'png',
               metadata: Optional[RenderMetadata] = None) -> bytes:
        """Serialize the raster as ``format`` and return the encoded bytes."""
        stream = io.BytesIO()
        self.write(buffer, stream, format, metadata)
        return stream.getvalue()

    def write(self, buffer: PixelBuffer, stream, format: str = 'png',
              metadata: Optional[RenderMetadata] = None) -> None:
        """Serialize the raster as ``format`` into a binary stream."""
        pil_format = self.resolve_format(format)
        image = self.to_image(buffer)

        if pil_format == 'PNG':
            pnginfo = PngImagePlugin.PngInfo()
            if metadata:
                pnginfo.add_text("Title", f"Fractal: {metadata.fractal_type}")
                pnginfo.add_text("Software", f"fractgen v{metadata.software_version}")
                pnginfo.add_text("Creation Time", metadata.timestamp)
                pnginfo.add_text("FractalMetadata", metadata.to_json())
            image.save(stream, 'PNG', pnginfo=pnginfo)
        else:
            image.convert('RGB').save(stream, 'JPEG', quality=self.jpeg_quality)

    def save(self, buffer: PixelBuffer, filepath: Union[str, Path], format: Optional[str] = None,
             metadata: Optional[RenderMetadata] = None) -> Path:
        """
        Save the raster to a file.

        Args:
            buffer: Rendered pixel buffer
            filepath: Output file path
            format: 'png' or 'jpeg'; inferred from the suffix when omitted
            metadata: Render metadata to embed (PNG only)

        Returns:
            The path written
        """
        filepath = Path(filepath)
        pil_format = self.resolve_format(format, filepath)

        with open(filepath, 'wb') as f:
            self.write(buffer, f, pil_format.lower(), metadata)

        logger.info(f"Saved image: {filepath} ({buffer.width}x{buffer.height} {pil_format})")
        return filepath

    @staticmethod
    def extract_metadata(filepath: Union[str, Path]) -> Optional[RenderMetadata]:
        """Read embedded render metadata back from a PNG file."""
        with Image.open(filepath) as img:
            text = getattr(img, 'text', {})
            if 'FractalMetadata' in text:
                return RenderMetadata.from_json(text['FractalMetadata'])
        return None


def render_palette_strip(palette: Palette, width: int = 1024, height: int = 100,
                         direction: str = 'horizontal') -> PixelBuffer:
    """
    Render a palette preview strip.

    The iteration span equals the strip length along ``direction``, so one
    palette cycle fills the strip unless the palette has an explicit length.
    """
    if direction not in ('horizontal', 'vertical'):
        raise ValueError(f"Unknown strip direction '{direction}'. Available: horizontal, vertical")

    buffer = PixelBuffer(width, height)
    if direction == 'horizontal':
        buffer.pixels[:, :] = [color_for(float(x), palette, width) for x in range(width)]
    else:
        column = [color_for(float(y), palette, height) for y in range(height)]
        buffer.pixels[:, :] = [[color] for color in column]
    return buffer
