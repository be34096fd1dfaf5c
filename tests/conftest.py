import io

import numpy as np
import pytest
import soundfile as sf


def sine_wave(freq: float, sr: int, duration: float, amplitude: float = 0.5) -> np.ndarray:
    t = np.linspace(0, duration, int(sr * duration), endpoint=False)
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def wav_bytes(audio: np.ndarray, sr: int, subtype: str = "FLOAT") -> bytes:
    buffer = io.BytesIO()
    sf.write(buffer, audio, sr, format="WAV", subtype=subtype)
    return buffer.getvalue()


@pytest.fixture
def tone_wav():
    """WAV bytes for a sine tone: tone_wav(freq, sr=8000, duration=0.5)."""

    def _make(freq: float = 1000.0, sr: int = 8000, duration: float = 0.5) -> bytes:
        return wav_bytes(sine_wave(freq, sr, duration), sr)

    return _make


@pytest.fixture
def spiky_wav():
    """FLOAT WAV bytes for a tone with one infinite sample."""
    tone = sine_wave(500.0, 8000, 0.5)
    tone[100] = np.inf
    return wav_bytes(tone, 8000)
