import asyncio
import hashlib
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import streamlit as st

from spectroview.audio_loader import SUPPORTED_EXTENSIONS, AudioFile, DecodeError
from spectroview.config import (
    DEFAULT_DB_RANGE,
    DEFAULT_DISPLAY_WIDTH,
    DEFAULT_HOP_LENGTH,
    DEFAULT_NFFT,
    DEFAULT_SPECTRUM_BINS,
    NFFT_OPTIONS,
    WINDOW_OPTIONS,
    RenderParams,
    SpectrogramDSP,
    ViewerConfig,
)
from spectroview.fields import FieldValueProvider, StaticFieldValues, load_field_values
from spectroview.orchestrator import SpectrogramViewer
from spectroview.renderer import encode_png
from spectroview.utils import format_seconds, hz_per_bin, ms_per_hop

logger = logging.getLogger(__name__)


def build_config(
    n_fft: int,
    hop_length: int,
    window: str,
    spectrum_bins: int,
    db_range: float,
    display_width: int,
) -> ViewerConfig:
    dsp = SpectrogramDSP(
        n_fft=n_fft,
        hop_length=min(hop_length, n_fft),
        window=window,
        spectrum_bins=min(spectrum_bins, n_fft // 2 + 1),
        db_range=db_range,
    ).validate()
    return ViewerConfig(dsp=dsp, render=RenderParams(display_width=display_width))


def viewer_signature(audio_files: Sequence[AudioFile], config: ViewerConfig) -> Tuple:
    """Key that changes whenever a new viewer (and fresh caches) is needed.

    Display width is left out on purpose: a resize only clears the image cache.
    """
    dsp = config.dsp
    files = tuple((f.name, hashlib.sha1(f.content).hexdigest()) for f in audio_files)
    return files, (dsp.n_fft, dsp.hop_length, dsp.window, dsp.spectrum_bins, dsp.db_range)


def navigation_disabled(viewer: SpectrogramViewer) -> Tuple[bool, bool]:
    """(previous disabled, next disabled) for the current selection."""
    last = len(viewer.audio_files) - 1
    return viewer.selected_index <= 0, viewer.selected_index >= last


def _get_viewer(
    audio_files: List[AudioFile],
    config: ViewerConfig,
    field_values: FieldValueProvider,
) -> SpectrogramViewer:
    signature = viewer_signature(audio_files, config)
    viewer: Optional[SpectrogramViewer] = st.session_state.get("viewer")
    if viewer is None or st.session_state.get("viewer_signature") != signature:
        viewer = SpectrogramViewer(audio_files, config=config, field_values=field_values)
        st.session_state["viewer"] = viewer
        st.session_state["viewer_signature"] = signature
    viewer.field_values = field_values
    viewer.resize(config.render.display_width)
    return viewer


def _field_values(upload) -> FieldValueProvider:
    if upload is None:
        return StaticFieldValues()
    try:
        return load_field_values(upload.getvalue())
    except ValueError as exc:
        logger.warning("Ignoring field values file %s: %s", upload.name, exc)
        st.warning(f"Ignoring field values file: {exc}")
        return StaticFieldValues()


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    st.set_page_config(page_title="Spectrogram Viewer", layout="wide")
    st.title("Spectrogram Viewer")

    with st.sidebar:
        st.subheader("Audio")
        uploads = st.file_uploader(
            "Audio files",
            type=[ext.lstrip(".") for ext in SUPPORTED_EXTENSIONS],
            accept_multiple_files=True,
        )
        fields_upload = st.file_uploader("Field values (JSON)", type=["json"])

        st.subheader("Spectrogram DSP")
        n_fft = st.selectbox("FFT size", NFFT_OPTIONS, index=NFFT_OPTIONS.index(DEFAULT_NFFT))
        hop_length = st.slider(
            "Hop length (samples)", min_value=32, max_value=n_fft, value=min(DEFAULT_HOP_LENGTH, n_fft), step=32
        )
        window = st.selectbox("Window function", WINDOW_OPTIONS, index=0)
        spectrum_bins = st.slider(
            "Frequency bins",
            min_value=16,
            max_value=n_fft // 2,
            value=min(DEFAULT_SPECTRUM_BINS, n_fft // 2),
            step=16,
        )
        db_range = st.slider("dB dynamic range", min_value=20, max_value=120, value=int(DEFAULT_DB_RANGE), step=5)

        st.subheader("Display")
        display_width = st.slider("Width (px)", min_value=0, max_value=1600, value=DEFAULT_DISPLAY_WIDTH, step=50)

    if not uploads:
        st.info("Upload one or more audio files to begin.")
        return

    audio_files = [AudioFile(name=upload.name, content=upload.getvalue()) for upload in uploads]
    config = build_config(n_fft, hop_length, window, spectrum_bins, float(db_range), display_width)
    viewer = _get_viewer(audio_files, config, _field_values(fields_upload))

    # Callbacks run before the rerun, so the disabled flags see the new selection.
    prev_disabled, next_disabled = navigation_disabled(viewer)
    col_prev, col_next, _ = st.columns([1, 1, 6])
    col_prev.button("Previous", disabled=prev_disabled, on_click=viewer.select_previous)
    col_next.button("Next", disabled=next_disabled, on_click=viewer.select_next)

    current = audio_files[viewer.selected_index]
    st.write(f"Current file: **{current.name}** ({viewer.selected_index + 1}/{len(audio_files)})")

    try:
        result = asyncio.run(viewer.render_current())
    except DecodeError as exc:
        st.error(f"Failed to decode {current.name}: {exc}")
        return

    if not viewer.is_current(result):
        return

    if result.could_not_render:
        st.write("Fields that could not be computed:")
        st.markdown("\n".join(f"1. {name}" for name in result.could_not_render))

    audio = viewer.audio_cache.get(result.file_index).audio
    status_cols = st.columns(3)
    status_cols[0].metric("Audio length", format_seconds(audio.duration))
    status_cols[1].metric("FFT resolution", f"{hz_per_bin(audio.sample_rate, config.dsp.n_fft):.2f} Hz/bin")
    status_cols[2].metric("Time resolution", f"{ms_per_hop(config.dsp.hop_length, audio.sample_rate):.2f} ms/frame")

    st.audio(current.content)

    if result.buffer.is_empty:
        st.info("Display width is 0 px; nothing to draw.")
        return

    st.image(result.image, caption="Spectrogram", width=result.buffer.width)
    st.download_button(
        "Download PNG",
        data=encode_png(result.buffer),
        file_name=Path(current.name).stem + "_spectrogram.png",
        mime="image/png",
    )


if __name__ == "__main__":  # pragma: no cover
    main()
