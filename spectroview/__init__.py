"""
Spectrogram viewer for lists of audio recordings.

Decodes audio bytes, computes STFT magnitude spectra, renders them into RGBA
pixel buffers and overlays derived field marks. Decoded audio and rendered
images are cached per file index for the lifetime of a viewer.
"""
from spectroview.audio_loader import AudioDecoder, AudioFile, DecodedAudio, DecodeError
from spectroview.config import RenderParams, SpectrogramDSP, ViewerConfig
from spectroview.markings import Mark
from spectroview.orchestrator import RenderResult, RenderStage, SpectrogramViewer

__all__ = [
    "AudioDecoder",
    "AudioFile",
    "DecodeError",
    "DecodedAudio",
    "Mark",
    "RenderParams",
    "RenderResult",
    "RenderStage",
    "SpectrogramDSP",
    "SpectrogramViewer",
    "ViewerConfig",
]
