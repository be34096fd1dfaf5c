import asyncio
import io
import logging
import math
from concurrent.futures import Executor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np
import soundfile as sf
from scipy import signal

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".wav", ".flac", ".ogg", ".mp3")


class DecodeError(Exception):
    """Raised when audio bytes cannot be decoded."""


def is_supported_file(path: Union[str, Path]) -> bool:
    return str(path).lower().endswith(SUPPORTED_EXTENSIONS)


@dataclass(frozen=True)
class AudioFile:
    name: str
    content: bytes

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "AudioFile":
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes())


@dataclass(frozen=True)
class DecodedAudio:
    """Decoded samples shaped (channels, frames) as read-only float32."""

    samples: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frames(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.frames / float(self.sample_rate) if self.sample_rate else 0.0

    def mono(self) -> np.ndarray:
        if self.channels == 1:
            return self.samples[0]
        return self.samples.mean(axis=0).astype(np.float32)


def _resample(audio: np.ndarray, original_sr: int, target_sr: int) -> np.ndarray:
    if original_sr == target_sr:
        return audio
    gcd = math.gcd(int(original_sr), int(target_sr))
    upsample_factor = target_sr // gcd
    downsample_factor = original_sr // gcd
    return signal.resample_poly(audio, upsample_factor, downsample_factor, axis=-1)


class AudioDecoder:
    """
    Turns raw file bytes into DecodedAudio.

    One instance is shared by every decode call; it holds configuration only,
    so concurrent calls on independent buffers need no locking.
    """

    def __init__(self, target_sample_rate: Optional[int] = None):
        self.target_sample_rate = target_sample_rate

    def decode(self, data: bytes) -> DecodedAudio:
        if not data:
            raise DecodeError("empty audio content")
        try:
            frames, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        except Exception as exc:
            raise DecodeError(str(exc)) from exc

        samples = np.ascontiguousarray(frames.T)
        if not np.isfinite(samples).all():
            raise DecodeError("audio contains non-finite samples")
        if self.target_sample_rate:
            samples = _resample(samples, sample_rate, self.target_sample_rate)
            sample_rate = self.target_sample_rate

        samples = samples.astype(np.float32)
        samples.setflags(write=False)
        logger.debug("Decoded %d channel(s), %d frames at %d Hz", samples.shape[0], samples.shape[1], sample_rate)
        return DecodedAudio(samples=samples, sample_rate=int(sample_rate))

    async def decode_async(self, data: bytes, executor: Optional[Executor] = None) -> DecodedAudio:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, self.decode, data)


def audio_info(data: bytes) -> dict:
    try:
        meta = sf.info(io.BytesIO(data))
    except Exception as exc:
        raise DecodeError(str(exc)) from exc
    duration = meta.frames / float(meta.samplerate) if meta.samplerate else 0.0
    return {
        "sample_rate": int(meta.samplerate),
        "frames": int(meta.frames),
        "channels": int(meta.channels),
        "duration": duration,
        "format": meta.format,
    }
