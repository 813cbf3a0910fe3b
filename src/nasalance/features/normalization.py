"""
Модуль: normalization.py
Описание: Отбрасывание выбросов и нормализация амплитуды по группам.
Все статистики считаются внутри группы (диктор, канал, тип сигнала):
группы разбиваются, преобразуются целиком и затем собираются обратно
в исходном порядке треков.
"""

import warnings
from collections import defaultdict
from dataclasses import replace
from typing import Callable

import numpy as np

from nasalance.constants import REFERENCE_PRESSURE_PA, TRIM_THRESHOLD_STDDEV
from nasalance.errors import GroupStatisticsUndefinedWarning
from nasalance.log import setup_logger
from nasalance.models.track import GroupKey, SignalTrack, SignalType

log = setup_logger("normalization")

WAVE_TYPES = frozenset({SignalType.RAW_WAVE, SignalType.FILTERED_WAVE})


def db_to_pressure(values: np.ma.MaskedArray) -> np.ma.MaskedArray:
    """
    Переводит интенсивность из дБ в звуковое давление (Па).
    p = 2e-5 * 10^(dB / 20); неопределённые значения остаются неопределёнными.
    """
    return REFERENCE_PRESSURE_PA * np.ma.power(10.0, np.ma.asarray(values) / 20.0)


def group_tracks(tracks: list[SignalTrack]) -> dict[GroupKey, list[int]]:
    """Индексы треков, сгруппированные по ключу (диктор, канал, тип сигнала)."""
    groups: dict[GroupKey, list[int]] = defaultdict(list)
    for i, track in enumerate(tracks):
        groups[track.key].append(i)
    return dict(groups)


def map_groups(
    tracks: list[SignalTrack],
    transform: Callable[[GroupKey, list[SignalTrack]], list[SignalTrack]],
) -> list[SignalTrack]:
    """
    Применяет преобразование к каждой группе целиком и собирает
    результат в исходном порядке треков.
    """
    result: list[SignalTrack] = [None] * len(tracks)
    for key, indices in group_tracks(tracks).items():
        transformed = transform(key, [tracks[i] for i in indices])
        for i, track in zip(indices, transformed):
            result[i] = track
    return result


def _pooled(group: list[SignalTrack]) -> np.ndarray:
    # Только определённые значения всех треков группы
    if not group:
        return np.empty(0)
    return np.ma.concatenate([track.values for track in group]).compressed()


def _undefined_group(key: GroupKey, reason: str) -> None:
    message = f"Статистика группы {tuple(key)} не определена: {reason}"
    log.warning(message)
    warnings.warn(message, GroupStatisticsUndefinedWarning, stacklevel=3)


def trim_outliers(
    tracks: list[SignalTrack],
    threshold: float = TRIM_THRESHOLD_STDDEV,
) -> list[SignalTrack]:
    """
    Удаляет отсчёты, отстоящие от среднего группы больше чем на threshold σ.

    Отсчёты удаляются целиком (а не ограничиваются), поэтому после
    обрезки носовой и ротовой каналы могут потерять попарное соответствие.
    Неопределённые значения не удаляются.

    Args:
        tracks: Треки одного или нескольких дикторов
        threshold: Порог в стандартных отклонениях

    Returns:
        Новые треки в том же порядке
    """

    def _trim(key: GroupKey, group: list[SignalTrack]) -> list[SignalTrack]:
        pooled = _pooled(group)
        if pooled.size < 2:
            _undefined_group(key, f"{pooled.size} определённых значений, обрезка пропущена")
            return [replace(track) for track in group]

        mean = float(np.mean(pooled))
        std = float(np.std(pooled, ddof=1))
        limit = threshold * std

        trimmed = []
        dropped = 0
        for track in group:
            deviation = np.abs(track.values.data - mean)
            outlier = track.defined & (deviation > limit)
            keep = ~outlier
            dropped += int(np.count_nonzero(outlier))
            trimmed.append(replace(track, times=track.times[keep], values=track.values[keep]))

        if dropped:
            log.debug(
                "Группа %s: удалено %d выбросов (μ = %.4g, σ = %.4g)",
                tuple(key), dropped, mean, std,
            )
        return trimmed

    return map_groups(tracks, _trim)


def normalize(tracks: list[SignalTrack]) -> list[SignalTrack]:
    """
    Нормализует амплитуду внутри каждой группы.

    Волновые сигналы (исходный и отфильтрованный) делятся на максимум
    модуля группы и попадают в [-1, 1]. Треки интенсивности
    масштабируются по размаху группы в [0, 1]. Если масштаб не определён
    (нет значений, нулевой максимум или размах), все значения группы
    становятся неопределёнными.

    Нормализацию следует выполнять после trim_outliers, чтобы выбросы
    не искажали масштаб.
    """

    def _normalize(key: GroupKey, group: list[SignalTrack]) -> list[SignalTrack]:
        pooled = _pooled(group)
        if pooled.size == 0:
            _undefined_group(key, "нет определённых значений")
            return [_all_undefined(track) for track in group]

        if key.signal_type in WAVE_TYPES:
            peak = float(np.max(np.abs(pooled)))
            if peak == 0:
                _undefined_group(key, "максимум модуля равен нулю")
                return [_all_undefined(track) for track in group]
            return [track.with_values(track.values / peak) for track in group]

        low = float(np.min(pooled))
        high = float(np.max(pooled))
        if high == low:
            _undefined_group(key, "нулевой размах значений")
            return [_all_undefined(track) for track in group]
        return [track.with_values((track.values - low) / (high - low)) for track in group]

    return map_groups(tracks, _normalize)


def _all_undefined(track: SignalTrack) -> SignalTrack:
    return track.with_values(np.ma.masked_all(track.times.shape, dtype=np.float64))
