import asyncio
import io

import numpy as np
import pytest
import soundfile as sf

from spectroview.audio_loader import (
    AudioDecoder,
    AudioFile,
    DecodeError,
    audio_info,
    is_supported_file,
)


def _stereo_wav(sr: int = 8000, frames: int = 400) -> bytes:
    left = np.linspace(-0.5, 0.5, frames, dtype=np.float32)
    right = np.full(frames, 0.25, dtype=np.float32)
    buffer = io.BytesIO()
    sf.write(buffer, np.column_stack([left, right]), sr, format="WAV", subtype="FLOAT")
    return buffer.getvalue()


def test_decode_mono_tone(tone_wav):
    decoded = AudioDecoder().decode(tone_wav(440.0, sr=8000, duration=0.5))
    assert decoded.channels == 1
    assert decoded.frames == 4000
    assert decoded.sample_rate == 8000
    assert decoded.duration == pytest.approx(0.5)
    assert decoded.samples.dtype == np.float32
    assert not decoded.samples.flags.writeable


def test_decode_keeps_channels_and_mixes_down():
    decoded = AudioDecoder().decode(_stereo_wav())
    assert decoded.samples.shape == (2, 400)
    expected = (decoded.samples[0] + decoded.samples[1]) / 2.0
    np.testing.assert_allclose(decoded.mono(), expected, rtol=1e-6)


def test_decode_is_deterministic(tone_wav):
    data = tone_wav(1200.0)
    decoder = AudioDecoder()
    first = decoder.decode(data)
    second = decoder.decode(data)
    assert first.sample_rate == second.sample_rate
    assert np.array_equal(first.samples, second.samples)


@pytest.mark.parametrize("payload", [b"", b"not an audio file at all"])
def test_decode_rejects_bad_bytes(payload):
    with pytest.raises(DecodeError):
        AudioDecoder().decode(payload)


def test_decode_truncated_header(tone_wav):
    with pytest.raises(DecodeError):
        AudioDecoder().decode(tone_wav()[:20])


def test_decode_rejects_non_finite_samples(spiky_wav):
    with pytest.raises(DecodeError, match="non-finite"):
        AudioDecoder().decode(spiky_wav)


def test_decode_resamples_to_target(tone_wav):
    decoded = AudioDecoder(target_sample_rate=16000).decode(tone_wav(800.0, sr=8000, duration=0.25))
    assert decoded.sample_rate == 16000
    assert abs(decoded.frames - 4000) <= 2


def test_decode_async_matches_sync(tone_wav):
    data = tone_wav(300.0)
    decoder = AudioDecoder()
    decoded = asyncio.run(decoder.decode_async(data))
    assert np.array_equal(decoded.samples, decoder.decode(data).samples)


def test_audio_info_reports_layout():
    info = audio_info(_stereo_wav(sr=8000, frames=800))
    assert info["sample_rate"] == 8000
    assert info["channels"] == 2
    assert info["frames"] == 800
    assert info["duration"] == pytest.approx(0.1)


def test_audio_info_rejects_garbage():
    with pytest.raises(DecodeError):
        audio_info(b"garbage")


def test_audio_file_from_path(tmp_path, tone_wav):
    path = tmp_path / "tone.wav"
    path.write_bytes(tone_wav())
    audio_file = AudioFile.from_path(path)
    assert audio_file.name == "tone.wav"
    assert audio_file.content == path.read_bytes()
    assert is_supported_file(path)
    assert not is_supported_file(tmp_path / "notes.txt")
