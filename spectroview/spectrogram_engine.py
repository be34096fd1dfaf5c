import logging
from dataclasses import dataclass

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from scipy import signal

from .audio_loader import DecodedAudio
from .config import WINDOW_OPTIONS, SpectrogramDSP
from .utils import frame_count, validate_window_name

logger = logging.getLogger(__name__)

EPS = np.finfo(np.float32).eps


@dataclass(frozen=True)
class SpectrumData:
    """
    Magnitude matrix shaped (frequency_bin_count, time_bin_count).

    Column j holds the spectrum of the j-th analysis window; row 0 is the DC bin.
    Values lie in [vmin, vmax]: dB below the file's peak when log scaled,
    peak-normalized magnitude otherwise.
    """

    magnitudes: np.ndarray
    sample_rate: int
    n_fft: int
    hop_length: int
    vmin: float
    vmax: float

    @property
    def frequency_bin_count(self) -> int:
        return int(self.magnitudes.shape[0])

    @property
    def time_bin_count(self) -> int:
        return int(self.magnitudes.shape[1])

    def frequencies(self) -> np.ndarray:
        return np.arange(self.frequency_bin_count) * (float(self.sample_rate) / self.n_fft)


def _power_to_db(magnitude: np.ndarray, db_range: float) -> np.ndarray:
    reference = max(float(np.max(magnitude)), EPS)
    # Floor relative to the reference so silence lands at -db_range, not 0 dB.
    db = 20.0 * np.log10(np.maximum(magnitude, reference * EPS) / reference)
    floor = -abs(db_range)
    return np.clip(db, floor, 0.0)


def _frames(mono: np.ndarray, n_fft: int, hop_length: int) -> np.ndarray:
    n_frames = frame_count(len(mono), n_fft, hop_length)
    padded = np.zeros((n_frames - 1) * hop_length + n_fft, dtype=np.float64)
    padded[: len(mono)] = mono
    return sliding_window_view(padded, n_fft)[::hop_length]


def compute_spectrum(audio: DecodedAudio, dsp: SpectrogramDSP) -> SpectrumData:
    """
    Sliding-window STFT magnitude of the mono mixdown of ``audio``.

    Input shorter than one window is zero-padded to a single frame; trailing
    samples are padded out to a full last frame.
    """
    dsp.validate()
    window_name = validate_window_name(dsp.window, WINDOW_OPTIONS)
    window = signal.get_window(window_name, dsp.n_fft)

    frames = _frames(audio.mono(), dsp.n_fft, dsp.hop_length)
    spectrum = np.fft.rfft(frames * window, axis=1)
    magnitude = np.abs(spectrum[:, : dsp.spectrum_bins]).T

    if dsp.per_freq_norm:
        scale = magnitude.mean(axis=1, keepdims=True)
        magnitude = magnitude / (scale + EPS)

    if dsp.log_scale:
        values = _power_to_db(magnitude, db_range=dsp.db_range)
        vmin, vmax = -abs(float(dsp.db_range)), 0.0
    else:
        values = magnitude / max(float(np.max(magnitude)), EPS)
        vmin, vmax = 0.0, 1.0

    values = np.ascontiguousarray(values, dtype=np.float32)
    values.setflags(write=False)
    logger.debug(
        "Spectrum computed: %d frequency bins x %d time bins (n_fft=%d, hop=%d)",
        values.shape[0],
        values.shape[1],
        dsp.n_fft,
        dsp.hop_length,
    )
    return SpectrumData(
        magnitudes=values,
        sample_rate=audio.sample_rate,
        n_fft=dsp.n_fft,
        hop_length=dsp.hop_length,
        vmin=vmin,
        vmax=vmax,
    )
