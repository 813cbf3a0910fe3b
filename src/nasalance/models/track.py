"""
Модуль: track.py
Описание: Модель данных временных рядов пайплайна.
Трек хранит отсчёты (время, значение) и метаданные файла; неопределённые
значения представлены маской numpy.ma, а не нулём или NaN.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import NamedTuple, Optional

import numpy as np


class Channel(str, Enum):
    """Канал воздушного потока."""

    ORAL = 'Oral'
    NASAL = 'Nasal'


class SignalType(str, Enum):
    """Тип сигнала внутри записи."""

    RAW_WAVE = 'raw_wave'
    FILTERED_WAVE = 'filtered_wave'
    INTENSITY_TRACK = 'intensity_track'


class GroupKey(NamedTuple):
    """Ключ группы для статистик: (диктор, канал, тип сигнала)."""

    speaker: str
    channel: Channel
    signal_type: SignalType


def as_masked(values) -> np.ma.MaskedArray:
    """Приводит значения к float64 MaskedArray с маской полной длины; None — неопределённое."""
    if not isinstance(values, np.ndarray):
        values = list(values)
        missing = [v is None for v in values]
        values = np.ma.array([0.0 if v is None else v for v in values], mask=missing, dtype=np.float64)
    arr = np.ma.array(values, dtype=np.float64, copy=True)
    arr.mask = np.ma.getmaskarray(arr)
    return arr


@dataclass(eq=False)
class IntensityTrack:
    """
    Трек интенсивности: упорядоченные пары (время, значение) и время конца файла.

    Время конца файла (xmax) не выводится из последнего отсчёта и
    переносится через все преобразования как метаданные.
    """

    times: np.ndarray
    values: np.ma.MaskedArray
    file_end: float
    step: Optional[float] = None

    def __post_init__(self):
        self.times = np.asarray(self.times, dtype=np.float64)
        self.values = as_masked(self.values)
        if self.times.shape != self.values.shape:
            raise ValueError(
                f'Длины времён и значений не совпадают: {self.times.shape} != {self.values.shape}'
            )

    def __len__(self) -> int:
        return len(self.times)

    @property
    def x1(self) -> float:
        """Время первого отсчёта."""
        return float(self.times[0])

    @property
    def dx(self) -> float:
        """Шаг между первым и вторым отсчётом (или сохранённый шаг)."""
        if len(self.times) > 1:
            return float(self.times[1] - self.times[0])
        if self.step is None:
            raise ValueError('Шаг трека из одного отсчёта не определён')
        return float(self.step)

    @property
    def defined(self) -> np.ndarray:
        """Булева маска определённых значений."""
        return ~np.ma.getmaskarray(self.values)

    def with_values(self, values) -> 'IntensityTrack':
        """Копия трека с новыми значениями на той же временной сетке."""
        return replace(self, times=self.times.copy(), values=as_masked(values))

    def to_list(self) -> list[Optional[float]]:
        """Значения в виде списка; неопределённые — None."""
        return [None if m else float(v) for v, m in zip(self.values.data, np.ma.getmaskarray(self.values))]


@dataclass(eq=False)
class SignalTrack(IntensityTrack):
    """
    Трек с метаданными отсчётов: принадлежность группе, записи и параметры аудио.
    Каждый индекс трека — одна точка отсчёта (Sample Point).
    """

    key: GroupKey = None
    recording_id: str = ''
    item_code: str = ''
    item_number: str = ''
    sampling_rate: int = 0
    bit_depth: int = 0
    source_times: np.ndarray = field(default=None, repr=False)

    def __post_init__(self):
        super().__post_init__()
        if self.source_times is None:
            self.source_times = self.times.copy()

    @property
    def channel(self) -> Channel:
        return self.key.channel

    @property
    def signal_type(self) -> SignalType:
        return self.key.signal_type


def outer_join(
    first: IntensityTrack, second: IntensityTrack,
) -> tuple[np.ndarray, np.ma.MaskedArray, np.ma.MaskedArray]:
    """
    Объединяет два трека по времени (внешнее соединение).

    Момент, присутствующий только в одном треке, даёт неопределённое
    значение второго трека — такие отсчёты остаются без пары.

    Returns:
        (общие времена, значения первого трека, значения второго трека)
    """
    times = np.union1d(first.times, second.times)
    return times, _align(first, times), _align(second, times)


def _align(track: IntensityTrack, times: np.ndarray) -> np.ma.MaskedArray:
    aligned = np.ma.masked_all(times.shape, dtype=np.float64)
    positions = np.searchsorted(times, track.times)
    aligned[positions] = track.values
    aligned.mask = np.ma.getmaskarray(aligned)
    return aligned


def reindex(track: IntensityTrack, grid: np.ndarray) -> IntensityTrack:
    """
    Размещает значения трека на полной сетке времён.
    Отсутствующие на сетке моменты становятся неопределёнными.
    """
    grid = np.asarray(grid, dtype=np.float64)
    values = np.ma.masked_all(grid.shape, dtype=np.float64)
    present = np.isin(track.times, grid)
    positions = np.searchsorted(grid, track.times[present])
    values[positions] = track.values[present]
    step = float(grid[1] - grid[0]) if len(grid) > 1 else track.step
    return IntensityTrack(times=grid.copy(), values=values, file_end=track.file_end, step=step)
