import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from spectroview.audio_loader import DecodedAudio
from spectroview.config import SpectrogramDSP
from spectroview.utils import is_on_time_axis, time_to_x

logger = logging.getLogger(__name__)

MARK_COLOR = (255, 255, 255, 230)
LABEL_COLOR = (255, 255, 255, 255)
LABEL_SHADOW = (0, 0, 0, 200)
LINE_HEIGHT = 12


@dataclass(frozen=True)
class Mark:
    name: str
    value: Any = None
    time: Optional[float] = None

    @property
    def label(self) -> str:
        return f"{self.name}: {self.value}"


@dataclass(frozen=True)
class RenderConfig:
    """Inputs for one render call; built fresh each time and never stored."""

    file_index: int
    surface: Image.Image
    audio: DecodedAudio
    dsp: SpectrogramDSP


@dataclass
class MarkingsResult:
    drawn: List[Mark] = field(default_factory=list)
    unrendered: List[str] = field(default_factory=list)


def render_markings(
    render_config: RenderConfig,
    marks: Sequence[Mark],
    duration: Optional[float] = None,
) -> MarkingsResult:
    """
    Draw each mark as a vertical line with its label onto the live surface.

    Marks whose time cannot be placed on the file's time axis are skipped and
    reported by name in ``unrendered``, in input order.
    """
    surface = render_config.surface
    width, height = surface.size
    result = MarkingsResult()
    if duration is None:
        duration = render_config.audio.duration

    placeable = []
    for mark in marks:
        if not is_on_time_axis(mark.time, duration):
            logger.debug("Mark %r at %r is outside 0..%.3fs, skipped", mark.name, mark.time, duration)
            result.unrendered.append(mark.name)
            continue
        placeable.append(mark)

    # A zero-area surface has nowhere to draw; placeable marks are simply not shown.
    if width == 0 or height == 0:
        return result

    draw = ImageDraw.Draw(surface)
    font = ImageFont.load_default()
    rows = max(1, height // LINE_HEIGHT)

    for mark in placeable:
        x = time_to_x(mark.time, duration, width)
        draw.line([(x, 0), (x, height - 1)], fill=MARK_COLOR, width=1)
        y = (len(result.drawn) % rows) * LINE_HEIGHT
        text_x = min(x + 2, max(0, width - 1))
        draw.text((text_x + 1, y + 1), mark.label, fill=LABEL_SHADOW, font=font)
        draw.text((text_x, y), mark.label, fill=LABEL_COLOR, font=font)
        result.drawn.append(mark)

    return result
