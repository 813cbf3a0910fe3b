"""
Соглашения об именах файлов записей и производных треков.

Имя записи начинается с кода диктора (``Spk04_...``) и заканчивается
кодом слова и номером повтора (``..._bicycle_3.wav``).
"""

import re
from pathlib import Path
from typing import NamedTuple

from nasalance.constants import (
    LPF_AIRFLOW_SUFFIX,
    LPF_NASALANCE_SUFFIX,
    NASALANCE_SUFFIX,
    NORMALIZED_INTENSITY_SUFFIX,
    SIGNAL_DIFFERENCE_SUFFIX,
    SOURCE_INTENSITY_SUFFIX,
    SPEAKER_CODE_LENGTH,
)

_ITEM_RE = re.compile(r"([^_]*)_(\d*)$")


class ItemInfo(NamedTuple):
    """Код слова и номер повтора из имени записи."""

    code: str
    number: str


def speaker_code(file_name: str, length: int = SPEAKER_CODE_LENGTH) -> str:
    """Код диктора: первые length символов имени без '_' (Spk4_a.wav -> Spk4)."""
    return Path(file_name).name[:length].replace("_", "")


def item_info(file_name: str) -> ItemInfo:
    """Код слова и номер повтора: '<...>_<слово>_<номер>.<расширение>'."""
    match = _ITEM_RE.search(Path(file_name).stem)
    if not match:
        return ItemInfo(code=Path(file_name).stem, number="")
    return ItemInfo(code=match.group(1), number=match.group(2))


def source_intensity_name(base: str, channel: int) -> str:
    """Имя входного трека интенсивности канала (с учётом регистра)."""
    return base + SOURCE_INTENSITY_SUFFIX.format(channel=channel)


def normalized_intensity_name(base: str, channel: int) -> str:
    return base + NORMALIZED_INTENSITY_SUFFIX.format(channel=channel)


def nasalance_name(base: str) -> str:
    return base + NASALANCE_SUFFIX


def lpf_airflow_name(base: str, channel: int) -> str:
    return base + LPF_AIRFLOW_SUFFIX.format(channel=channel)


def lpf_nasalance_name(base: str) -> str:
    return base + LPF_NASALANCE_SUFFIX


def signal_difference_name(base: str) -> str:
    return base + SIGNAL_DIFFERENCE_SUFFIX
