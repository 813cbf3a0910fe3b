"""Ограничение производных сигналов участками сегментов заданных фонетических классов."""

import re
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from nasalance.constants import SEGMENT_FILTER_POLICIES, SEGMENT_PUNCTUATION
from nasalance.log import setup_logger
from nasalance.models.track import IntensityTrack

log = setup_logger('segment_gate')

_PUNCTUATION_RE = re.compile(SEGMENT_PUNCTUATION)


@dataclass(frozen=True)
class SegmentInterval:
    """Размеченный интервал фонетической разметки."""

    start: float
    end: float
    label: str
    tier: int


@dataclass(frozen=True)
class SegmentFilter:
    """
    Фильтр меток сегментов: дизъюнкция по списку символов.
    Метка проходит, если содержит хотя бы один символ списка;
    пустой список пропускает любую метку.
    """

    symbols: tuple[str, ...] = ()
    name: str = 'custom'

    @classmethod
    def from_policy(cls, name: str) -> 'SegmentFilter':
        """Фильтр по имени политики из constants.SEGMENT_FILTER_POLICIES."""
        if name not in SEGMENT_FILTER_POLICIES:
            raise ValueError(f'Неизвестная политика фильтра сегментов: {name}')
        return cls(symbols=tuple(SEGMENT_FILTER_POLICIES[name]), name=name)

    @property
    def pattern(self) -> re.Pattern:
        return re.compile('|'.join(re.escape(symbol) for symbol in self.symbols))

    def matches(self, label: str) -> bool:
        return self.pattern.search(label) is not None


def prepare_segments(intervals: Iterable[SegmentInterval], tier: int) -> list[SegmentInterval]:
    """
    Оставляет интервалы одного уровня разметки, убирает знаки [!?.]
    и отбрасывает пустые метки.
    """
    prepared = []
    for interval in intervals:
        if interval.tier != tier:
            continue
        label = _PUNCTUATION_RE.sub('', interval.label)
        if not label.strip():
            continue
        prepared.append(SegmentInterval(interval.start, interval.end, label, interval.tier))
    return prepared


def matching_intervals(
    intervals: Iterable[SegmentInterval], label_filter: SegmentFilter,
) -> list[SegmentInterval]:
    """Интервалы, метки которых проходят фильтр."""
    return [interval for interval in intervals if label_filter.matches(interval.label)]


def gate(
    track: IntensityTrack,
    intervals: Iterable[SegmentInterval],
    label_filter: SegmentFilter,
) -> IntensityTrack:
    """
    Обнуляет (делает неопределёнными) значения вне принятых интервалов.

    Отсчёт сохраняется, если его время попадает хотя бы в один интервал
    с подходящей меткой (границы включительно). Число отсчётов и
    времена не меняются; повторное применение ничего не меняет.

    Args:
        track: Производный трек (назальность и т.п.)
        intervals: Интервалы разметки
        label_filter: Фильтр меток

    Returns:
        Новый трек с тем же временем отсчётов
    """
    accepted = matching_intervals(intervals, label_filter)

    inside = np.zeros(track.times.shape, dtype=bool)
    for interval in accepted:
        inside |= (track.times >= interval.start) & (track.times <= interval.end)

    values = track.values.copy()
    values[~inside] = np.ma.masked

    log.debug(
        "Фильтр '%s': %d интервалов из разметки, %d отсчётов вне интервалов",
        label_filter.name, len(accepted), int(np.count_nonzero(~inside)),
    )
    return track.with_values(values)
