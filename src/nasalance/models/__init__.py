"""Модель данных: треки, каналы, ключи групп."""

from nasalance.models.track import (
    Channel,
    GroupKey,
    IntensityTrack,
    SignalTrack,
    SignalType,
    outer_join,
    reindex,
)

__all__ = [
    'Channel',
    'GroupKey',
    'IntensityTrack',
    'SignalTrack',
    'SignalType',
    'outer_join',
    'reindex',
]
