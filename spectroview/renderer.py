import io
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import matplotlib
import numpy as np
from PIL import Image

from spectroview.config import RenderParams
from spectroview.spectrogram_engine import SpectrumData

_LUTS: Dict[str, np.ndarray] = {}


@dataclass(frozen=True)
class PixelBuffer:
    """RGBA pixels shaped (height, width, 4); row 0 is the highest frequency."""

    pixels: np.ndarray

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def size(self) -> int:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.size == 0

    def to_image(self) -> Image.Image:
        """Return a fresh RGBA image; drawing on it leaves the buffer untouched."""
        if self.is_empty:
            return Image.new("RGBA", (self.width, self.height))
        return Image.fromarray(np.array(self.pixels, dtype=np.uint8, copy=True))


def lookup_table(name: str) -> np.ndarray:
    """256-entry RGBA uint8 lookup table sampled from a matplotlib colormap."""
    lut = _LUTS.get(name)
    if lut is None:
        cmap = matplotlib.colormaps[name]
        lut = cmap(np.linspace(0.0, 1.0, 256), bytes=True)
        lut.setflags(write=False)
        _LUTS[name] = lut
    return lut


def _resample_columns(values: np.ndarray, width: int) -> np.ndarray:
    n_columns = values.shape[1]
    if n_columns == width:
        return values
    # Sample at pixel centres, interpolating linearly between neighbouring time bins.
    positions = (np.arange(width) + 0.5) * (n_columns / float(width)) - 0.5
    positions = np.clip(positions, 0.0, n_columns - 1)
    left = np.floor(positions).astype(np.intp)
    right = np.minimum(left + 1, n_columns - 1)
    frac = (positions - left).astype(np.float32)
    return values[:, left] * (1.0 - frac) + values[:, right] * frac


def render_spectrogram(
    spectrum: SpectrumData,
    width: int,
    params: RenderParams = RenderParams(),
) -> PixelBuffer:
    if width < 0:
        raise ValueError(f"width must not be negative, got {width}")
    height = spectrum.frequency_bin_count
    if width == 0:
        return PixelBuffer(pixels=np.zeros((height, 0, 4), dtype=np.uint8))

    columns = _resample_columns(spectrum.magnitudes, width)
    span = (spectrum.vmax - spectrum.vmin) or 1.0
    norm = np.clip((columns - spectrum.vmin) / span, 0.0, 1.0)
    indices = np.round(norm * 255.0).astype(np.intp)

    pixels = lookup_table(params.cmap)[np.flipud(indices)]
    pixels.setflags(write=False)
    return PixelBuffer(pixels=pixels)


def encode_png(buffer: PixelBuffer) -> bytes:
    if buffer.is_empty:
        raise ValueError("cannot encode an empty pixel buffer")
    output = io.BytesIO()
    buffer.to_image().save(output, format="PNG")
    return output.getvalue()


def save_png(png_bytes: bytes, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(png_bytes)
    return output_path
