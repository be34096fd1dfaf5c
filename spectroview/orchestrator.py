"""
Render orchestration for the spectrogram viewer.

A render request walks IDLE -> DECODING -> ANALYZING -> RENDERING ->
OVERLAYING -> DONE. Decoding and analysis are skipped when the audio cache
already holds the file, rendering when the image cache does; the overlay
always runs because field values can change between renders.

Requests are never cancelled. A superseded request still finishes and caches
its result; ``is_current`` tells the view whether to show it.
"""
import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from PIL import Image

from spectroview.audio_loader import AudioDecoder, AudioFile, DecodedAudio, DecodeError
from spectroview.cache import IndexCache
from spectroview.config import ViewerConfig
from spectroview.fields import FieldValueProvider, StaticFieldValues
from spectroview.markings import Mark, RenderConfig, render_markings
from spectroview.renderer import PixelBuffer, render_spectrogram
from spectroview.spectrogram_engine import SpectrumData, compute_spectrum

logger = logging.getLogger(__name__)


class RenderStage(str, Enum):
    IDLE = "idle"
    DECODING = "decoding"
    ANALYZING = "analyzing"
    RENDERING = "rendering"
    OVERLAYING = "overlaying"
    DONE = "done"


@dataclass(frozen=True)
class AudioData:
    audio: DecodedAudio
    spectrum: SpectrumData


@dataclass
class RenderResult:
    file_index: int
    file_name: str
    image: Image.Image
    buffer: PixelBuffer
    drawn: List[Mark] = field(default_factory=list)
    could_not_render: List[str] = field(default_factory=list)
    stages: List[RenderStage] = field(default_factory=list)


def _enter(stages: List[RenderStage], stage: RenderStage, index: int) -> None:
    stages.append(stage)
    logger.debug("index %d: %s", index, stage.value)


class SpectrogramViewer:
    """
    Owns the per-session caches and drives decode -> analyze -> render -> overlay.

    The audio cache lives for the whole session; the image cache is cleared
    whenever the display width changes. Only this class writes to either.
    """

    def __init__(
        self,
        audio_files: Sequence[AudioFile],
        config: Optional[ViewerConfig] = None,
        field_values: Optional[FieldValueProvider] = None,
        decoder: Optional[AudioDecoder] = None,
        executor: Optional[Executor] = None,
    ):
        self.audio_files = list(audio_files)
        self.config = config or ViewerConfig()
        self.config.dsp.validate()
        self.field_values = field_values or StaticFieldValues()
        self.decoder = decoder or AudioDecoder(target_sample_rate=self.config.target_sample_rate)
        self.executor = executor

        self.selected_index = 0
        self.display_width = self.config.render.display_width
        self.audio_cache: IndexCache[AudioData] = IndexCache("audio")
        self.image_cache: IndexCache[PixelBuffer] = IndexCache("image")

    # ------------------------------------------------------------------
    # Trigger surface
    # ------------------------------------------------------------------

    def select(self, index: int) -> int:
        if not self.audio_files:
            raise IndexError("no audio files to select from")
        self.selected_index = max(0, min(int(index), len(self.audio_files) - 1))
        return self.selected_index

    def select_next(self) -> int:
        return self.select(self.selected_index + 1)

    def select_previous(self) -> int:
        return self.select(self.selected_index - 1)

    def resize(self, width: int) -> bool:
        """Set the display width; returns True when cached images were dropped."""
        if width < 0:
            raise ValueError(f"width must not be negative, got {width}")
        if width == self.display_width:
            return False
        logger.debug("display width %d -> %d", self.display_width, width)
        self.display_width = width
        self.image_cache.clear()
        return True

    def is_current(self, result: RenderResult) -> bool:
        return result.file_index == self.selected_index and result.buffer.width == self.display_width

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def get_audio_data(self, index: int, stages: Optional[List[RenderStage]] = None) -> AudioData:
        stages = [] if stages is None else stages
        audio_file = self.audio_files[index]

        async def produce() -> AudioData:
            _enter(stages, RenderStage.DECODING, index)
            try:
                audio = await self.decoder.decode_async(audio_file.content, self.executor)
            except DecodeError as exc:
                logger.warning("Could not decode %s: %s", audio_file.name, exc)
                raise

            _enter(stages, RenderStage.ANALYZING, index)
            loop = asyncio.get_running_loop()
            spectrum = await loop.run_in_executor(self.executor, compute_spectrum, audio, self.config.dsp)
            logger.info(
                "Analyzed %s: %.2fs, %d time bins",
                audio_file.name,
                audio.duration,
                spectrum.time_bin_count,
            )
            return AudioData(audio=audio, spectrum=spectrum)

        return await self.audio_cache.get_or_compute(index, produce)

    async def get_spectrogram_image(self, index: int, stages: Optional[List[RenderStage]] = None) -> PixelBuffer:
        stages = [] if stages is None else stages
        audio_data: Optional[AudioData] = None
        if index not in self.image_cache:
            # Decode first so the width is read only once the audio is ready.
            audio_data = await self.get_audio_data(index, stages)

        async def produce() -> PixelBuffer:
            data = audio_data or await self.get_audio_data(index, stages)
            _enter(stages, RenderStage.RENDERING, index)
            return render_spectrogram(data.spectrum, self.display_width, self.config.render)

        return await self.image_cache.get_or_compute(index, produce)

    async def render_current(self) -> RenderResult:
        if not self.audio_files:
            raise IndexError("no audio files to render")
        index = self.selected_index
        audio_file = self.audio_files[index]
        stages = [RenderStage.IDLE]

        field_values = self.field_values.field_values_for(audio_file.name)
        audio_data = await self.get_audio_data(index, stages)
        buffer = await self.get_spectrogram_image(index, stages)

        _enter(stages, RenderStage.OVERLAYING, index)
        render_config = RenderConfig(
            file_index=index,
            surface=buffer.to_image(),
            audio=audio_data.audio,
            dsp=self.config.dsp,
        )
        markings = render_markings(render_config, field_values.computed_values)
        _enter(stages, RenderStage.DONE, index)

        return RenderResult(
            file_index=index,
            file_name=audio_file.name,
            image=render_config.surface,
            buffer=buffer,
            drawn=markings.drawn,
            could_not_render=list(field_values.names_that_could_not_be_computed) + markings.unrendered,
            stages=stages,
        )
