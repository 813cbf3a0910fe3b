"""Низкочастотная фильтрация каналов воздушного потока в частотной области."""

import warnings

import librosa
import numpy as np
import scipy.fft

from nasalance.constants import FILTER_CUTOFF_HZ, LPF_WINDOW_LENGTH
from nasalance.errors import ChannelLengthMismatchWarning
from nasalance.log import setup_logger

log = setup_logger('filtering')


def lowpass_filter(
    samples: np.ndarray,
    sr: int,
    cutoff_hz: float = FILTER_CUTOFF_HZ,
    n_fft: int = LPF_WINDOW_LENGTH,
) -> np.ndarray:
    """
    Оставляет в сигнале полосу от 0 Гц до частоты среза.
    Лучше понижения частоты дискретизации, которое даёт наложение спектров.

    Args:
        samples: Аудиосигнал одного канала
        sr: Частота дискретизации
        cutoff_hz: Верхняя граница полосы пропускания, Гц
        n_fft: Длина кадра STFT

    Returns:
        Отфильтрованный сигнал той же длины
    """
    y = np.asarray(samples, dtype=np.float64)
    if y.size == 0:
        return y.copy()

    if y.size < n_fft:
        # Короткий сигнал: один кадр на весь сигнал
        spectrum = scipy.fft.rfft(y)
        freqs = scipy.fft.rfftfreq(y.size, d=1.0 / sr)
        spectrum[freqs > cutoff_hz] = 0
        return scipy.fft.irfft(spectrum, n=y.size)

    hop_length = n_fft // 4
    spectrogram = librosa.stft(y, n_fft=n_fft, hop_length=hop_length)
    freq_bins = librosa.fft_frequencies(sr=sr, n_fft=n_fft)
    spectrogram[freq_bins > cutoff_hz, :] = 0

    return librosa.istft(spectrogram, hop_length=hop_length, n_fft=n_fft, length=y.size)


def filter_channels(
    nasal: np.ndarray,
    oral: np.ndarray,
    sr: int,
    cutoff_hz: float = FILTER_CUTOFF_HZ,
    n_fft: int = LPF_WINDOW_LENGTH,
    label: str = '',
) -> tuple[np.ndarray, np.ndarray]:
    """
    Фильтрует носовой и ротовой каналы.

    Если после фильтрации длины каналов разошлись, выдаётся
    ChannelLengthMismatchWarning и оба канала обрезаются до меньшей длины.
    """
    nasal_lp = lowpass_filter(nasal, sr, cutoff_hz, n_fft)
    oral_lp = lowpass_filter(oral, sr, cutoff_hz, n_fft)

    if len(nasal_lp) != len(oral_lp):
        message = (
            f'Число отсчётов в отфильтрованных каналах {label} различается: '
            f'носовой {len(nasal_lp)}, ротовой {len(oral_lp)}'
        )
        log.warning(message)
        warnings.warn(message, ChannelLengthMismatchWarning, stacklevel=2)
        n = min(len(nasal_lp), len(oral_lp))
        nasal_lp, oral_lp = nasal_lp[:n], oral_lp[:n]

    return nasal_lp, oral_lp
