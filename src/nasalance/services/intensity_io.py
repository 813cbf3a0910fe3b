"""
Чтение и запись треков интенсивности в текстовом формате Praat (ooTextFile, Intensity 2).

Формат записи воспроизводится побайтно: почти каждая строка заканчивается
одним пробелом — кроме трёх строк заголовка и строки ``    z [1]:``.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Union

import numpy as np

from nasalance.constants import (
    DUMMY_FIELDS,
    HEADER_FILE_TYPE,
    HEADER_OBJECT_CLASS,
    UNDEFINED_TOKEN,
)
from nasalance.errors import MalformedTrackError, TrackExistsError, TrackNotFoundError
from nasalance.log import setup_logger
from nasalance.models.track import IntensityTrack

log = setup_logger("intensity_io")

PathLike = Union[str, os.PathLike]

_ASSIGNMENT_RE = re.compile(r"^\s*(xmin|xmax|nx|dx|x1)\s*=\s*(\S+)\s*$")
_SAMPLE_RE = re.compile(r"^\s*z\s*\[1\]\s*\[(\d+)\]\s*=(.*)$")
_HEADER_KEYS = ("xmin", "xmax", "nx", "dx", "x1")


def read_intensity(path: PathLike) -> IntensityTrack:
    """
    Читает файл Praat .Intensity.

    Скалярные поля заголовка ищутся по ключу, а не по позиции, поэтому
    различия в пробелах не мешают разбору. Значение ``--undefined--``
    становится неопределённым (замаскированным) отсчётом.

    Args:
        path: Путь к файлу .Intensity

    Returns:
        Трек интенсивности; время i-го отсчёта равно x1 + (i - 1) * dx

    Raises:
        TrackNotFoundError: файл не найден
        MalformedTrackError: нет полей заголовка или число отсчётов не равно nx
    """
    path = Path(path)
    if not path.is_file():
        log.error("Файл трека не найден: %s", path)
        raise TrackNotFoundError(f"Файл трека не найден: {path}")

    lines = path.read_text(encoding="utf-8").splitlines()

    header: dict[str, str] = {}
    indices: list[int] = []
    values: list[float] = []
    missing: list[bool] = []

    for line in lines:
        sample = _SAMPLE_RE.match(line)
        if sample:
            raw_value = sample.group(2).strip()
            indices.append(int(sample.group(1)))
            if raw_value == UNDEFINED_TOKEN:
                values.append(0.0)
                missing.append(True)
            else:
                values.append(_parse_number(raw_value, path))
                missing.append(False)
            continue

        assignment = _ASSIGNMENT_RE.match(line)
        if assignment and assignment.group(1) not in header:
            header[assignment.group(1)] = assignment.group(2)

    if not header:
        raise MalformedTrackError(f"В файле {path} не найдены поля заголовка")

    absent = [key for key in _HEADER_KEYS if key not in header]
    if absent:
        raise MalformedTrackError(f"В файле {path} отсутствуют поля заголовка: {absent}")

    x1 = _parse_number(header["x1"], path)
    dx = _parse_number(header["dx"], path)
    xmax = _parse_number(header["xmax"], path)
    nx = int(_parse_number(header["nx"], path))

    if len(values) != nx:
        raise MalformedTrackError(
            f"Число отсчётов в {path} ({len(values)}) не совпадает с nx = {nx}"
        )

    times = x1 + (np.asarray(indices, dtype=np.float64) - 1) * dx
    track = IntensityTrack(
        times=times,
        values=np.ma.array(values, mask=missing, dtype=np.float64),
        file_end=xmax,
        step=dx,
    )
    log.debug("Прочитан трек %s: %d отсчётов, x1 = %s, dx = %s", path.name, nx, x1, dx)
    return track


def write_intensity(track: IntensityTrack, path: PathLike, overwrite: bool = True) -> Path:
    """
    Записывает трек в формате Praat .Intensity.

    x1 — время первого отсчёта, dx — разница времён первых двух отсчётов,
    xmin всегда 0, а xmax берётся из метаданных трека (file_end).
    Запись атомарная: временный файл в той же директории, затем замена.

    Args:
        track: Трек интенсивности
        path: Путь к выходному файлу
        overwrite: Разрешить замену существующего файла

    Returns:
        Путь к записанному файлу

    Raises:
        TrackExistsError: файл существует и overwrite=False
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise TrackExistsError(f"Файл уже существует: {path}")
    if len(track) == 0:
        raise ValueError("Нельзя записать пустой трек интенсивности")

    text = format_intensity(track)

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    log.debug("Записан трек %s (%d отсчётов)", path, len(track))
    return path


def format_intensity(track: IntensityTrack) -> str:
    """Формирует текст файла .Intensity для трека."""
    lines = [
        HEADER_FILE_TYPE,
        HEADER_OBJECT_CLASS,
        "",
        "xmin = 0 ",
        f"xmax = {_format_number(track.file_end)} ",
        f"nx = {len(track)} ",
        f"dx = {_format_number(track.dx)} ",
        f"x1 = {_format_number(track.x1)} ",
    ]
    lines.extend(f"{key} = {value} " for key, value in DUMMY_FIELDS)
    lines.append("z [] []: ")
    lines.append("    z [1]:")

    mask = np.ma.getmaskarray(track.values)
    for i, (value, undefined) in enumerate(zip(track.values.data, mask), start=1):
        rendered = UNDEFINED_TOKEN if undefined else _format_number(value)
        lines.append(f"        z [1] [{i}] = {rendered} ")

    return "\n".join(lines) + "\n"


def _format_number(value: float) -> str:
    # Кратчайшее точное представление; целые без ".0"
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def _parse_number(raw: str, path: Path) -> float:
    try:
        return float(raw)
    except ValueError:
        raise MalformedTrackError(f"Некорректное число '{raw}' в файле {path}") from None
