import numpy as np
import pytest

from spectroview.config import RenderParams
from spectroview.renderer import PixelBuffer, encode_png, lookup_table, render_spectrogram, save_png
from spectroview.spectrogram_engine import SpectrumData


def _spectrum(values: np.ndarray, vmin: float = -80.0, vmax: float = 0.0) -> SpectrumData:
    return SpectrumData(
        magnitudes=np.asarray(values, dtype=np.float32),
        sample_rate=8000,
        n_fft=1024,
        hop_length=256,
        vmin=vmin,
        vmax=vmax,
    )


def test_output_matches_requested_dimensions():
    spectrum = _spectrum(np.random.default_rng(0).uniform(-80.0, 0.0, size=(256, 37)))
    buffer = render_spectrogram(spectrum, 800)
    assert (buffer.width, buffer.height) == (800, 256)
    assert buffer.pixels.shape == (256, 800, 4)
    assert buffer.pixels.dtype == np.uint8
    assert buffer.size == 800 * 256


def test_zero_width_gives_empty_buffer():
    buffer = render_spectrogram(_spectrum(np.zeros((128, 10))), 0)
    assert buffer.size == 0
    assert buffer.is_empty
    assert buffer.height == 128
    assert buffer.to_image().size == (0, 128)


def test_negative_width_is_rejected():
    with pytest.raises(ValueError):
        render_spectrogram(_spectrum(np.zeros((8, 4))), -1)


def test_highest_frequency_is_drawn_on_top():
    values = np.full((64, 5), -80.0)
    values[-1, :] = 0.0  # loud top bin
    buffer = render_spectrogram(_spectrum(values), 20)
    lut = lookup_table(RenderParams().cmap)
    assert np.array_equal(buffer.pixels[0, 0], lut[255])
    assert np.array_equal(buffer.pixels[-1, 0], lut[0])


def test_brightness_rises_with_magnitude():
    lut = lookup_table(RenderParams().cmap).astype(int)
    luminance = lut[:, :3].sum(axis=1)
    assert luminance[-1] > luminance[128] > luminance[0]


def test_time_axis_is_interpolated():
    values = np.array([[-80.0, 0.0]])
    buffer = render_spectrogram(_spectrum(values), 9)
    lut = lookup_table(RenderParams().cmap)
    assert np.array_equal(buffer.pixels[0, 0], lut[0])
    assert np.array_equal(buffer.pixels[0, -1], lut[255])
    middle = buffer.pixels[0, 4]
    assert not np.array_equal(middle, lut[0]) and not np.array_equal(middle, lut[255])


def test_single_time_bin_fills_every_column():
    values = np.linspace(-80.0, 0.0, 32).reshape(32, 1)
    buffer = render_spectrogram(_spectrum(values), 50)
    assert np.all(buffer.pixels == buffer.pixels[:, :1, :])


def test_to_image_is_a_copy():
    buffer = render_spectrogram(_spectrum(np.zeros((16, 4))), 10)
    before = buffer.pixels.copy()
    image = buffer.to_image()
    image.putpixel((0, 0), (1, 2, 3, 4))
    assert np.array_equal(buffer.pixels, before)
    assert image.mode == "RGBA"


def test_png_encoding(tmp_path):
    buffer = render_spectrogram(_spectrum(np.zeros((16, 4))), 10)
    png = encode_png(buffer)
    assert png.startswith(b"\x89PNG\r\n\x1a\n")
    output = save_png(png, tmp_path / "out" / "preview.png")
    assert output.exists()
    assert output.stat().st_size > 0


def test_empty_buffer_cannot_be_encoded():
    with pytest.raises(ValueError):
        encode_png(PixelBuffer(pixels=np.zeros((16, 0, 4), dtype=np.uint8)))
