"""
Вычисление назальности по парам нормализованных носового и ротового каналов.

Три независимых варианта:

- по интенсивности Praat: N / (N + O) над нормализованными треками интенсивности;
- по сглаженному НЧ-сигналу: то же отношение над скользящими средними |N| и |O|;
- разность сигналов: |N| - |O| над нормализованными исходными волнами.

Каналы объединяются по времени внешним соединением: момент, присутствующий
только в одном канале (например, после обрезки выбросов), даёт
неопределённое значение назальности.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

import numpy as np

from nasalance.constants import NASAL_AMPLITUDE_FLOOR, SMOOTHING_WINDOW_MS
from nasalance.log import setup_logger
from nasalance.models.track import IntensityTrack, outer_join

log = setup_logger('nasalance')


class NasalanceVariant(str, Enum):
    """Вариант назальности."""

    INTENSITY = 'intensity'
    LPF = 'lpf'
    SIGNAL_DIFFERENCE = 'signal_difference'


@dataclass(eq=False)
class LpfNasalance:
    """Назальность по НЧ-сигналу вместе со сглаженными каналами."""

    nasalance: IntensityTrack
    smoothed_nasal: IntensityTrack
    smoothed_oral: IntensityTrack


def nasalance_ratio(
    nasal: np.ma.MaskedArray,
    oral: np.ma.MaskedArray,
    floor: float = NASAL_AMPLITUDE_FLOOR,
) -> np.ma.MaskedArray:
    """
    Отношение N / (N + O) для выровненных по времени значений.

    Не определено, если любой из каналов не определён или |N| <= floor
    (вблизи тишины отношение неустойчиво).
    Для нормализованных неотрицательных входов значения лежат в (0, 1]:
    1 получается там, где ротовой канал равен нулю (минимум группы).
    """
    nasal = np.ma.asarray(nasal, dtype=np.float64)
    oral = np.ma.asarray(oral, dtype=np.float64)

    n = nasal.filled(0.0)
    o = oral.filled(0.0)
    total = n + o
    valid = (
        ~np.ma.getmaskarray(nasal)
        & ~np.ma.getmaskarray(oral)
        & (np.abs(n) > floor)
        & (total != 0)
    )

    ratio = np.ma.masked_all(n.shape, dtype=np.float64)
    ratio[valid] = n[valid] / total[valid]
    return ratio


def intensity_nasalance(
    nasal: IntensityTrack,
    oral: IntensityTrack,
    floor: float = NASAL_AMPLITUDE_FLOOR,
) -> IntensityTrack:
    """
    Назальность над нормализованными треками интенсивности.

    Args:
        nasal: Нормализованный трек интенсивности носового канала
        oral: Нормализованный трек интенсивности ротового канала
        floor: Порог амплитуды носового канала

    Returns:
        Трек назальности на объединённой сетке времён
    """
    times, n, o = outer_join(nasal, oral)
    return _derived_track(nasal, times, nasalance_ratio(n, o, floor))


def smoothing_window_samples(sr: int, window_ms: float = SMOOTHING_WINDOW_MS) -> int:
    """Размер окна сглаживания в отсчётах: ceil(sr * window_ms / 1000)."""
    return int(math.ceil(sr * window_ms / 1000.0))


def rolling_mean(values: np.ma.MaskedArray, window: int) -> np.ma.MaskedArray:
    """
    Центрированное скользящее среднее с пропуском неопределённых значений.

    На краях, где окно не помещается целиком, результат не определён;
    окно, в котором нет ни одного определённого значения, тоже даёт
    неопределённый результат. Для чётного окна центр смещён влево.
    """
    values = np.ma.asarray(values, dtype=np.float64)
    size = len(values)
    result = np.ma.masked_all(size, dtype=np.float64)
    if window < 1 or size < window:
        return result

    data = values.filled(0.0)
    counts = (~np.ma.getmaskarray(values)).astype(np.float64)

    data_sum = np.concatenate(([0.0], np.cumsum(data)))
    count_sum = np.concatenate(([0.0], np.cumsum(counts)))
    window_sums = data_sum[window:] - data_sum[:-window]
    window_counts = count_sum[window:] - count_sum[:-window]

    centers = np.arange(size - window + 1) + (window - 1) // 2
    filled = window_counts > 0
    result[centers[filled]] = window_sums[filled] / window_counts[filled]
    return result


def lpf_nasalance(
    nasal: IntensityTrack,
    oral: IntensityTrack,
    sr: int,
    window_ms: float = SMOOTHING_WINDOW_MS,
    floor: float = NASAL_AMPLITUDE_FLOOR,
) -> LpfNasalance:
    """
    Назальность над сглаженным НЧ-сигналом.

    Сигнал постоянно меняет знак, поэтому сначала берётся модуль,
    затем скользящее среднее по окну window_ms. Назальность не определена
    там, где сглаженный носовой канал не определён (края окна) или <= floor.

    Args:
        nasal: Нормализованный отфильтрованный носовой канал
        oral: Нормализованный отфильтрованный ротовой канал
        sr: Частота дискретизации записи
        window_ms: Размер окна сглаживания, мс
        floor: Порог амплитуды носового канала

    Returns:
        Назальность и сглаженные каналы на объединённой сетке времён
    """
    window = smoothing_window_samples(sr, window_ms)
    times, n, o = outer_join(nasal, oral)

    smoothed_n = rolling_mean(np.ma.abs(n), window)
    smoothed_o = rolling_mean(np.ma.abs(o), window)

    log.debug('Окно сглаживания: %d отсчётов (%.1f мс при %d Гц)', window, window_ms, sr)

    return LpfNasalance(
        nasalance=_derived_track(nasal, times, nasalance_ratio(smoothed_n, smoothed_o, floor)),
        smoothed_nasal=_derived_track(nasal, times, smoothed_n),
        smoothed_oral=_derived_track(oral, times, smoothed_o),
    )


def signal_difference(
    nasal: IntensityTrack,
    oral: IntensityTrack,
    floor: Optional[float] = None,
) -> IntensityTrack:
    """
    Разность |N| - |O| над нормализованными исходными волнами.

    Поотсчётного порога нет; не определена там, где у отсчёта нет пары.
    Если задан floor и |N| записи нигде не превышает его (носовой канал
    молчит), вся разность не определена.
    """
    times, n, o = outer_join(nasal, oral)
    if floor is not None and not np.any(np.abs(nasal.values.compressed()) > floor):
        log.debug('Носовой канал ниже порога %.3g во всей записи, разность не определена', floor)
        return _derived_track(nasal, times, np.ma.masked_all(times.shape, dtype=np.float64))
    return _derived_track(nasal, times, np.ma.abs(n) - np.ma.abs(o))


def nasalance_range(tracks: Iterable[IntensityTrack]) -> Optional[tuple[float, float]]:
    """
    Диапазон определённых значений, округлённый наружу до сотых.
    Используется для согласованного масштаба по диктору.
    """
    defined = [track.values.compressed() for track in tracks]
    pooled = np.concatenate(defined) if defined else np.empty(0)
    if pooled.size == 0:
        return None
    return (
        math.floor(float(np.min(pooled)) * 100) / 100,
        math.ceil(float(np.max(pooled)) * 100) / 100,
    )


def _derived_track(source: IntensityTrack, times: np.ndarray, values: np.ma.MaskedArray) -> IntensityTrack:
    return IntensityTrack(times=times, values=values, file_end=source.file_end, step=source.step)
