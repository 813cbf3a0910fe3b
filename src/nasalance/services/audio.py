"""Загрузка двухканальных записей воздушного потока."""

import os
import re
from dataclasses import dataclass
from typing import Union

import numpy as np
import soundfile as sf

from nasalance.errors import RecordingError
from nasalance.log import setup_logger

log = setup_logger("audio")

_SUBTYPE_BITS_RE = re.compile(r"(\d+)$")
_FLOAT_SUBTYPE_BITS = {"FLOAT": 32, "DOUBLE": 64}


@dataclass(eq=False)
class RawRecording:
    """Отсчёты записи по каналам (каналы × отсчёты) и параметры аудио."""

    channels: np.ndarray
    sr: int
    bit_depth: int

    @property
    def n_samples(self) -> int:
        return self.channels.shape[1]

    def split(self, nasal_channel: int) -> tuple[np.ndarray, np.ndarray]:
        """
        Разделяет каналы на носовой и ротовой.

        Args:
            nasal_channel: Номер носового канала (1 = левый, 2 = правый)

        Returns:
            (носовой, ротовой)
        """
        if nasal_channel not in (1, 2):
            raise ValueError(f"Номер носового канала должен быть 1 или 2, получено: {nasal_channel}")
        nasal = self.channels[nasal_channel - 1]
        oral = self.channels[2 - nasal_channel]
        return nasal, oral


def read_airflow_audio(file_path: Union[str, os.PathLike]) -> RawRecording:
    """
    Читает двухканальную запись ротового и носового потока.

    Args:
        file_path: Путь к аудиофайлу

    Returns:
        Отсчёты по каналам, частота дискретизации и разрядность
    """
    try:
        info = sf.info(str(file_path))
        data, sr = sf.read(str(file_path), dtype="float64", always_2d=True)
    except (RuntimeError, sf.LibsndfileError) as exc:
        raise RecordingError(f"Не удалось прочитать аудиофайл {file_path}: {exc}") from exc

    if data.shape[1] != 2:
        raise RecordingError(
            f"Ожидается двухканальная запись, в {file_path} каналов: {data.shape[1]}"
        )

    bit_depth = _subtype_bits(info.subtype)
    log.debug("Прочитан %s: %d отсчётов, %d Гц, %d бит", file_path, data.shape[0], sr, bit_depth)
    return RawRecording(channels=data.T.copy(), sr=int(sr), bit_depth=bit_depth)


def _subtype_bits(subtype: str) -> int:
    if subtype in _FLOAT_SUBTYPE_BITS:
        return _FLOAT_SUBTYPE_BITS[subtype]
    match = _SUBTYPE_BITS_RE.search(subtype or "")
    return int(match.group(1)) if match else 0
