import math
from typing import Iterable, Optional


def hz_per_bin(sample_rate: int, n_fft: int) -> float:
    return float(sample_rate) / float(n_fft)


def ms_per_hop(hop_length: int, sample_rate: int) -> float:
    return 1000.0 * float(hop_length) / float(sample_rate)


def frame_count(n_samples: int, n_fft: int, hop_length: int) -> int:
    """Number of analysis windows needed to cover n_samples; never less than one."""
    if n_samples <= n_fft:
        return 1
    return 1 + int(math.ceil((n_samples - n_fft) / float(hop_length)))


def is_on_time_axis(time_sec: Optional[float], duration: float) -> bool:
    """True when time_sec is a finite time within [0, duration]."""
    if time_sec is None:
        return False
    try:
        value = float(time_sec)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and 0.0 <= value <= duration


def time_to_x(time_sec: Optional[float], duration: float, width: int) -> Optional[int]:
    """Map a time in seconds to a pixel column, or None when it cannot be drawn."""
    if width <= 0 or not is_on_time_axis(time_sec, duration):
        return None
    if duration <= 0.0:
        return 0
    return int(round(float(time_sec) / duration * (width - 1)))


def format_seconds(seconds: float) -> str:
    if seconds >= 60:
        minutes = int(seconds // 60)
        remainder = seconds % 60
        return f"{minutes:d}m {remainder:.1f}s"
    return f"{seconds:.2f}s"


def validate_window_name(name: str, allowed: Iterable[str]) -> str:
    lower = name.lower()
    if lower not in {w.lower() for w in allowed}:
        raise ValueError(f"Unsupported window '{name}'")
    return lower
