"""Иерархия ошибок и предупреждений пайплайна назальности."""


class NasalanceError(Exception):
    """Базовая ошибка пайплайна."""


class TrackNotFoundError(NasalanceError, FileNotFoundError):
    """Файл трека интенсивности не найден."""


class MalformedTrackError(NasalanceError, ValueError):
    """Файл трека интенсивности не соответствует формату Praat."""


class TrackExistsError(NasalanceError, FileExistsError):
    """Целевой файл уже существует, а перезапись запрещена."""


class RecordingError(NasalanceError):
    """Запись не может быть загружена (число каналов, чтение аудио)."""


class NasalanceWarning(UserWarning):
    """Базовое предупреждение пайплайна."""


class ChannelLengthMismatchWarning(NasalanceWarning):
    """Каналы разошлись по длине после фильтрации."""


class GroupStatisticsUndefinedWarning(NasalanceWarning):
    """Статистика группы не определена (пустая группа, нулевой размах)."""
