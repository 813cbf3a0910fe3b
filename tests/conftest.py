import os

os.environ.setdefault("NS_LOG_TO_FILE", "false")

from pathlib import Path  # noqa: E402
from typing import Callable, Optional, Sequence  # noqa: E402

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from nasalance.models.track import Channel, GroupKey, IntensityTrack, SignalTrack, SignalType  # noqa: E402
from nasalance.services.intensity_io import write_intensity  # noqa: E402


def make_track(
    values: Sequence[Optional[float]],
    x1: float = 0.01,
    dx: float = 0.01,
    file_end: Optional[float] = None,
) -> IntensityTrack:
    """Трек на равномерной сетке; None — неопределённое значение."""
    times = x1 + np.arange(len(values)) * dx
    end = file_end if file_end is not None else float(times[-1] + dx)
    return IntensityTrack(times=times, values=list(values), file_end=end, step=dx)


def make_signal_track(
    values: Sequence[float],
    speaker: str = "Spk01",
    channel: Channel = Channel.NASAL,
    signal_type: SignalType = SignalType.RAW_WAVE,
    recording_id: str = "Spk01_word_1.wav",
    sr: int = 1000,
) -> SignalTrack:
    times = np.arange(1, len(values) + 1) / sr
    return SignalTrack(
        times=times,
        values=np.asarray(values, dtype=np.float64),
        file_end=len(values) / sr,
        step=1.0 / sr,
        key=GroupKey(speaker, channel, signal_type),
        recording_id=recording_id,
        sampling_rate=sr,
        bit_depth=16,
    )


@pytest.fixture
def write_db_track(tmp_path: Path) -> Callable[..., Path]:
    """Записывает трек интенсивности в дБ в tmp_path/Intensity_tracks."""

    def _write(name: str, values: np.ndarray, x1: float = 0.016, dx: float = 0.01, file_end: float = 1.0) -> Path:
        track = make_track(list(values), x1=x1, dx=dx, file_end=file_end)
        return write_intensity(track, tmp_path / "Intensity_tracks" / name)

    return _write
