import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

NFFT_OPTIONS = (512, 1024, 2048, 4096)
WINDOW_OPTIONS = ("hann", "blackman", "hamming")

# Single colour scheme; the renderer does not expose alternatives.
COLORMAP = "magma"

DEFAULT_NFFT = 1024
DEFAULT_HOP_LENGTH = 256
DEFAULT_SPECTRUM_BINS = 512
DEFAULT_DB_RANGE = 80.0
DEFAULT_LOG_SCALE = True
DEFAULT_PER_FREQ_NORM = False
DEFAULT_DISPLAY_WIDTH = 800


@dataclass(frozen=True)
class SpectrogramDSP:
    n_fft: int = DEFAULT_NFFT
    hop_length: int = DEFAULT_HOP_LENGTH
    window: str = WINDOW_OPTIONS[0]
    spectrum_bins: int = DEFAULT_SPECTRUM_BINS
    log_scale: bool = DEFAULT_LOG_SCALE
    db_range: float = DEFAULT_DB_RANGE
    per_freq_norm: bool = DEFAULT_PER_FREQ_NORM

    def validate(self) -> "SpectrogramDSP":
        """Raise ValueError for settings the analyzer cannot honour."""
        if self.n_fft <= 0:
            raise ValueError(f"n_fft must be positive, got {self.n_fft}")
        if self.hop_length <= 0:
            raise ValueError(f"hop_length must be positive, got {self.hop_length}")
        if not 1 <= self.spectrum_bins <= self.n_fft // 2 + 1:
            raise ValueError(
                f"spectrum_bins must be between 1 and {self.n_fft // 2 + 1} for n_fft={self.n_fft}, "
                f"got {self.spectrum_bins}"
            )
        if self.window.lower() not in WINDOW_OPTIONS:
            raise ValueError(f"Unsupported window '{self.window}'")
        if self.db_range <= 0:
            raise ValueError("db_range must be positive")
        return self


@dataclass(frozen=True)
class RenderParams:
    cmap: str = COLORMAP
    display_width: int = DEFAULT_DISPLAY_WIDTH


@dataclass(frozen=True)
class ViewerConfig:
    dsp: SpectrogramDSP = field(default_factory=SpectrogramDSP)
    render: RenderParams = field(default_factory=RenderParams)
    target_sample_rate: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "ViewerConfig":
        dsp_raw = data.get("dsp", {})
        render_raw = data.get("render", {})
        dsp = SpectrogramDSP(
            n_fft=int(dsp_raw.get("n_fft", DEFAULT_NFFT)),
            hop_length=int(dsp_raw.get("hop_length", DEFAULT_HOP_LENGTH)),
            window=str(dsp_raw.get("window", WINDOW_OPTIONS[0])),
            spectrum_bins=int(dsp_raw.get("spectrum_bins", DEFAULT_SPECTRUM_BINS)),
            log_scale=bool(dsp_raw.get("log_scale", DEFAULT_LOG_SCALE)),
            db_range=float(dsp_raw.get("db_range", DEFAULT_DB_RANGE)),
            per_freq_norm=bool(dsp_raw.get("per_freq_norm", DEFAULT_PER_FREQ_NORM)),
        ).validate()
        render = RenderParams(
            display_width=int(render_raw.get("display_width", DEFAULT_DISPLAY_WIDTH)),
        )
        if render.display_width < 0:
            raise ValueError("display_width must not be negative")
        target = data.get("target_sample_rate")
        return cls(
            dsp=dsp,
            render=render,
            target_sample_rate=None if target in (None, "") else int(target),
        )

    def to_dict(self) -> Dict:
        return {
            "dsp": {
                "n_fft": self.dsp.n_fft,
                "hop_length": self.dsp.hop_length,
                "window": self.dsp.window,
                "spectrum_bins": self.dsp.spectrum_bins,
                "log_scale": self.dsp.log_scale,
                "db_range": self.dsp.db_range,
                "per_freq_norm": self.dsp.per_freq_norm,
            },
            "render": {
                "display_width": self.render.display_width,
            },
            "target_sample_rate": self.target_sample_rate,
        }


def load_config(config_path: Union[str, Path]) -> ViewerConfig:
    with Path(config_path).open("r", encoding="utf-8") as f:
        raw = json.load(f)
    return ViewerConfig.from_dict(raw)


def save_config(config: ViewerConfig, config_path: Union[str, Path]) -> None:
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
