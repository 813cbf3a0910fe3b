"""Конфигурация приложения через переменные окружения.

Параметры обработки сигнала, экспорта и логирования.
Форматные константы (заголовки Praat, фонетические классы)
остаются в constants.py — они не должны меняться через .env.

Использование::

    from nasalance.config import settings

    settings.filter_cutoff_hz     # 280.0
    settings.nasal_channel        # 2
    settings.oral_channel         # 1
"""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nasalance import constants

_BASE_DIR = constants.BASE_DIR


class Settings(BaseSettings):
    """Настройки пайплайна nasalance."""

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        env_prefix='NS_',
        extra='ignore',
    )

    # ── Пути ─────────────────────────────────────
    base_dir: Path = _BASE_DIR
    logs_dir: Path = _BASE_DIR / 'logs'
    output_dir: Path = _BASE_DIR / 'output'
    intensity_dir_name: str = constants.INTENSITY_DIR_NAME

    # ── Логирование ──────────────────────────────
    log_level: str = 'INFO'
    log_to_file: bool = True

    # ── Обработка сигнала ────────────────────────
    filter_cutoff_hz: float = constants.FILTER_CUTOFF_HZ
    lpf_window_length: int = constants.LPF_WINDOW_LENGTH
    trim_threshold_stddev: float = constants.TRIM_THRESHOLD_STDDEV
    nasal_amplitude_floor: float = constants.NASAL_AMPLITUDE_FLOOR
    smoothing_window_ms: float = constants.SMOOTHING_WINDOW_MS
    nasal_channel_index: int = constants.NASAL_CHANNEL_INDEX
    convert_db_to_pressure: bool = constants.CONVERT_DB_TO_PRESSURE

    # ── Сегменты ─────────────────────────────────
    segment_filter: str = 'nasal_contexts'
    segment_tier: int = constants.SEGMENT_TIER

    # ── Экспорт ──────────────────────────────────
    save_normalized_intensity: bool = True
    save_intensity_nasalance: bool = True
    save_lpf: bool = False
    save_signal_difference: bool = False
    export_gated: bool = False

    # ── Имена файлов ─────────────────────────────
    speaker_code_length: int = constants.SPEAKER_CODE_LENGTH

    @field_validator('nasal_channel_index')
    @classmethod
    def _check_channel(cls, value: int) -> int:
        if value not in (1, 2):
            raise ValueError(f'Номер носового канала должен быть 1 или 2, получено: {value}')
        return value

    @field_validator('segment_filter')
    @classmethod
    def _check_segment_filter(cls, value: str) -> str:
        if value not in constants.SEGMENT_FILTER_POLICIES:
            raise ValueError(
                f'Неизвестная политика фильтра сегментов: {value}. '
                f'Доступны: {sorted(constants.SEGMENT_FILTER_POLICIES)}'
            )
        return value

    @property
    def nasal_channel(self) -> int:
        """Номер носового канала (1 = левый, 2 = правый)."""
        return self.nasal_channel_index

    @property
    def oral_channel(self) -> int:
        """Номер ротового канала — всегда противоположный носовому."""
        return 1 if self.nasal_channel_index == 2 else 2


settings = Settings()
