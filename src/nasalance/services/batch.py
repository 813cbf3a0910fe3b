"""
Модуль: batch.py
Описание: Пакетная обработка записей воздушного потока по дикторам.

Для каждого диктора: чтение каналов и треков интенсивности всех его
записей, обрезка выбросов и нормализация по группам (диктор, канал,
тип сигнала), затем для каждой записи — три варианта назальности,
фильтр по сегментам и экспорт в формате Praat .Intensity.
Ошибка в одной записи не прерывает обработку остальных.
"""

import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

import numpy as np
from librosa.util.exceptions import ParameterError

from nasalance import constants
from nasalance.config import Settings, settings as default_settings
from nasalance.errors import NasalanceError, RecordingError
from nasalance.features.filtering import filter_channels
from nasalance.features.nasalance import (
    NasalanceVariant,
    intensity_nasalance,
    lpf_nasalance,
    nasalance_range,
    signal_difference,
)
from nasalance.features.normalization import db_to_pressure, normalize, trim_outliers
from nasalance.features.segment_gate import SegmentFilter, SegmentInterval, gate, prepare_segments
from nasalance.log import setup_logger
from nasalance.models.track import Channel, GroupKey, IntensityTrack, SignalTrack, SignalType, reindex
from nasalance.services import naming
from nasalance.services.audio import RawRecording, read_airflow_audio
from nasalance.services.intensity_io import read_intensity, write_intensity

log = setup_logger("batch")

PathLike = Union[str, os.PathLike]
AudioLoader = Callable[[Path], RawRecording]
SegmentLoader = Callable[[Path], list[SegmentInterval]]

# Ошибки, после которых запись пропускается
RECORDING_ERRORS = (NasalanceError, OSError, ValueError)


@dataclass(eq=False)
class RecordingData:
    """Рабочий набор одной записи: шесть треков и параметры аудио."""

    path: Path
    speaker: str
    sr: int
    tracks: list[SignalTrack]

    @property
    def base(self) -> str:
        return self.path.stem


@dataclass(eq=False)
class RecordingResult:
    """Нормализованные каналы и производные треки одной записи."""

    path: Path
    normalized: dict[tuple[SignalType, Channel], SignalTrack]
    nasalance: dict[NasalanceVariant, IntensityTrack]
    smoothed: dict[Channel, IntensityTrack]
    gated: dict[NasalanceVariant, IntensityTrack] = field(default_factory=dict)
    written: list[Path] = field(default_factory=list)

    @property
    def base(self) -> str:
        return self.path.stem


@dataclass
class SpeakerReport:
    """Итоги обработки одного диктора."""

    speaker: str
    processed: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    written: list[Path] = field(default_factory=list)
    ranges: dict[NasalanceVariant, Optional[tuple[float, float]]] = field(default_factory=dict)
    elapsed: float = 0.0


@dataclass
class BatchReport:
    """Итоги пакетной обработки."""

    speakers: list[SpeakerReport] = field(default_factory=list)
    aborted: bool = False

    @property
    def processed_count(self) -> int:
        return sum(len(report.processed) for report in self.speakers)

    @property
    def skipped_count(self) -> int:
        return sum(len(report.skipped) for report in self.speakers)


def format_elapsed(seconds: float) -> str:
    """Длительность в виде '12.3s', '4m, 5.6s' или '1h, 2m, 3.4s'."""
    if seconds < 60:
        return f"{round(seconds, 1)}s"
    if seconds < 3600:
        return f"{int(seconds // 60)}m, {round(seconds % 60, 1)}s"
    return f"{int(seconds // 3600)}h, {int(seconds // 60 % 60)}m, {round(seconds % 60, 1)}s"


def find_recordings(input_dir: PathLike, extension: str = ".wav") -> list[Path]:
    """Записи в директории (расширение с учётом регистра), по алфавиту."""
    return sorted(p for p in Path(input_dir).iterdir() if p.is_file() and p.suffix == extension)


def group_by_speaker(paths: Iterable[PathLike], code_length: int = constants.SPEAKER_CODE_LENGTH) -> dict[str, list[Path]]:
    """Записи по кодам дикторов в порядке первого появления."""
    speakers: dict[str, list[Path]] = {}
    for p in paths:
        p = Path(p)
        speakers.setdefault(naming.speaker_code(p.name, code_length), []).append(p)
    return speakers


class NasalanceBatch:
    """
    Пакетный расчёт назальности.

    Политика фильтра сегментов и загрузчики передаются явно:
    загрузчик аудио возвращает RawRecording, загрузчик разметки —
    список SegmentInterval для записи. Без загрузчика разметки
    фильтр по сегментам не применяется.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        audio_loader: AudioLoader = read_airflow_audio,
        segment_loader: Optional[SegmentLoader] = None,
        segment_filter: Optional[SegmentFilter] = None,
        intensity_dir: Optional[PathLike] = None,
        output_dir: Optional[PathLike] = None,
        abort_event: Optional[threading.Event] = None,
    ):
        self.config = config or default_settings
        self.audio_loader = audio_loader
        self.segment_loader = segment_loader
        self.segment_filter = segment_filter or SegmentFilter.from_policy(self.config.segment_filter)
        self.intensity_dir = Path(intensity_dir) if intensity_dir is not None else None
        self.output_dir = Path(output_dir) if output_dir is not None else self.config.output_dir
        self.abort_event = abort_event

    # ── Пакет ────────────────────────────────────

    def run(self, recordings: Iterable[PathLike]) -> BatchReport:
        """
        Обрабатывает записи, диктор за диктором.

        Args:
            recordings: Пути к двухканальным записям

        Returns:
            Отчёт по дикторам
        """
        started = time.perf_counter()
        speakers = group_by_speaker(recordings, self.config.speaker_code_length)
        total = sum(len(paths) for paths in speakers.values())
        log.info("Обработка %d записей от %d дикторов", total, len(speakers))

        report = BatchReport()
        for speaker, paths in speakers.items():
            if self._aborted():
                report.aborted = True
                break
            report.speakers.append(self.process_speaker(speaker, paths))
            if self._aborted():
                report.aborted = True
                break

        if report.aborted:
            log.warning("Обработка прервана")
        log.info(
            "Готово: %d записей обработано, %d пропущено, %s",
            report.processed_count, report.skipped_count, format_elapsed(time.perf_counter() - started),
        )
        return report

    def process_speaker(self, speaker: str, paths: list[Path]) -> SpeakerReport:
        """Обрабатывает все записи одного диктора."""
        started = time.perf_counter()
        report = SpeakerReport(speaker=speaker)
        log.info("Диктор %s: %d записей", speaker, len(paths))

        ingested: list[RecordingData] = []
        for p in paths:
            if self._aborted():
                break
            try:
                ingested.append(self.ingest(p, speaker))
            except RECORDING_ERRORS as exc:
                self._skip(report, p, exc)

        tracks = [track for data in ingested for track in data.tracks]
        tracks = normalize(trim_outliers(tracks, self.config.trim_threshold_stddev))

        by_recording: dict[str, list[SignalTrack]] = {}
        for track in tracks:
            by_recording.setdefault(track.recording_id, []).append(track)

        results: list[RecordingResult] = []
        for data in ingested:
            if self._aborted():
                break
            try:
                result = self.derive(data, by_recording[data.path.name])
                result.written = self.export(result)
            except RECORDING_ERRORS as exc:
                self._skip(report, data.path, exc)
                continue
            results.append(result)
            report.processed.append(data.path.name)
            report.written.extend(result.written)

        for variant in NasalanceVariant:
            report.ranges[variant] = nasalance_range(
                (result.gated or result.nasalance)[variant] for result in results
            )

        report.elapsed = time.perf_counter() - started
        log.info(
            "Диктор %s: обработано %d, пропущено %d, %s",
            speaker, len(report.processed), len(report.skipped), format_elapsed(report.elapsed),
        )
        return report

    # ── Запись ───────────────────────────────────

    def ingest(self, path: PathLike, speaker: str) -> RecordingData:
        """
        Читает запись и её треки интенсивности, фильтрует каналы.

        Returns:
            Шесть треков: исходные, отфильтрованные и интенсивность
            для носового и ротового каналов
        """
        path = Path(path)
        cfg = self.config
        raw = self.audio_loader(path)
        if not np.all(np.isfinite(raw.channels)):
            raise RecordingError(f"В записи {path.name} есть нечисловые отсчёты (NaN или Inf)")
        nasal, oral = raw.split(cfg.nasal_channel)
        try:
            nasal_lp, oral_lp = filter_channels(
                nasal, oral, raw.sr, cfg.filter_cutoff_hz, cfg.lpf_window_length, label=path.name,
            )
        except ParameterError as exc:
            raise RecordingError(f"Не удалось отфильтровать {path.name}: {exc}") from exc

        intensity_dir = self.intensity_dir or path.parent / cfg.intensity_dir_name
        nasal_int = read_intensity(intensity_dir / naming.source_intensity_name(path.stem, cfg.nasal_channel))
        oral_int = read_intensity(intensity_dir / naming.source_intensity_name(path.stem, cfg.oral_channel))
        if cfg.convert_db_to_pressure:
            nasal_int = nasal_int.with_values(db_to_pressure(nasal_int.values))
            oral_int = oral_int.with_values(db_to_pressure(oral_int.values))

        item = naming.item_info(path.name)

        def _track(channel: Channel, signal_type: SignalType, source) -> SignalTrack:
            if isinstance(source, IntensityTrack):
                times, values, file_end, step = source.times, source.values, source.file_end, source.step
            else:
                times = np.arange(1, len(source) + 1, dtype=np.float64) / raw.sr
                values, file_end, step = source, len(source) / raw.sr, 1.0 / raw.sr
            return SignalTrack(
                times=times,
                values=values,
                file_end=file_end,
                step=step,
                key=GroupKey(speaker, channel, signal_type),
                recording_id=path.name,
                item_code=item.code,
                item_number=item.number,
                sampling_rate=raw.sr,
                bit_depth=raw.bit_depth,
            )

        tracks = [
            _track(Channel.NASAL, SignalType.RAW_WAVE, nasal),
            _track(Channel.ORAL, SignalType.RAW_WAVE, oral),
            _track(Channel.NASAL, SignalType.FILTERED_WAVE, nasal_lp),
            _track(Channel.ORAL, SignalType.FILTERED_WAVE, oral_lp),
            _track(Channel.NASAL, SignalType.INTENSITY_TRACK, nasal_int),
            _track(Channel.ORAL, SignalType.INTENSITY_TRACK, oral_int),
        ]
        log.debug("Прочитана запись %s: %d отсчётов, %d Гц", path.name, raw.n_samples, raw.sr)
        return RecordingData(path=path, speaker=speaker, sr=raw.sr, tracks=tracks)

    def derive(self, data: RecordingData, tracks: list[SignalTrack]) -> RecordingResult:
        """Считает три варианта назальности и применяет фильтр по сегментам."""
        cfg = self.config
        normalized = {(track.signal_type, track.channel): track for track in tracks}

        def _pair(signal_type: SignalType) -> tuple[SignalTrack, SignalTrack]:
            return normalized[(signal_type, Channel.NASAL)], normalized[(signal_type, Channel.ORAL)]

        lpf = lpf_nasalance(
            *_pair(SignalType.FILTERED_WAVE), data.sr, cfg.smoothing_window_ms, cfg.nasal_amplitude_floor,
        )
        result = RecordingResult(
            path=data.path,
            normalized=normalized,
            nasalance={
                NasalanceVariant.INTENSITY: intensity_nasalance(
                    *_pair(SignalType.INTENSITY_TRACK), cfg.nasal_amplitude_floor,
                ),
                NasalanceVariant.LPF: lpf.nasalance,
                NasalanceVariant.SIGNAL_DIFFERENCE: signal_difference(
                    *_pair(SignalType.RAW_WAVE), cfg.nasal_amplitude_floor,
                ),
            },
            smoothed={Channel.NASAL: lpf.smoothed_nasal, Channel.ORAL: lpf.smoothed_oral},
        )

        if self.segment_loader is not None:
            segments = prepare_segments(self.segment_loader(data.path), cfg.segment_tier)
            result.gated = {
                variant: gate(track, segments, self.segment_filter)
                for variant, track in result.nasalance.items()
            }
        return result

    def export(self, result: RecordingResult) -> list[Path]:
        """
        Сохраняет выбранные треки в формате Praat .Intensity.

        Перед записью трек размещается на полной сетке своего источника:
        удалённые при обрезке отсчёты записываются как --undefined--.
        """
        cfg = self.config
        out = self.output_dir
        base = result.base
        derived = result.gated if (cfg.export_gated and result.gated) else result.nasalance
        channel_number = {Channel.NASAL: cfg.nasal_channel, Channel.ORAL: cfg.oral_channel}
        written: list[Path] = []

        def _grid(signal_type: SignalType) -> np.ndarray:
            return np.union1d(
                result.normalized[(signal_type, Channel.NASAL)].source_times,
                result.normalized[(signal_type, Channel.ORAL)].source_times,
            )

        def _write(track: IntensityTrack, grid: np.ndarray, folder: str, name: str) -> None:
            written.append(write_intensity(reindex(track, grid), out / folder / name))

        if cfg.save_normalized_intensity:
            for channel in Channel:
                track = result.normalized[(SignalType.INTENSITY_TRACK, channel)]
                _write(
                    track, track.source_times, constants.NORMALIZED_AIRFLOW_DIR,
                    naming.normalized_intensity_name(base, channel_number[channel]),
                )

        if cfg.save_intensity_nasalance:
            _write(
                derived[NasalanceVariant.INTENSITY], _grid(SignalType.INTENSITY_TRACK),
                constants.NASALANCE_DIR, naming.nasalance_name(base),
            )

        if cfg.save_lpf:
            grid = _grid(SignalType.FILTERED_WAVE)
            for channel in Channel:
                _write(
                    result.smoothed[channel], grid, constants.LPF_INTENSITY_DIR,
                    naming.lpf_airflow_name(base, channel_number[channel]),
                )
            _write(
                derived[NasalanceVariant.LPF], grid,
                constants.LPF_NASALANCE_DIR, naming.lpf_nasalance_name(base),
            )

        if cfg.save_signal_difference:
            _write(
                derived[NasalanceVariant.SIGNAL_DIFFERENCE], _grid(SignalType.RAW_WAVE),
                constants.SIGNAL_DIFFERENCE_DIR, naming.signal_difference_name(base),
            )

        log.debug("Запись %s: сохранено %d треков", result.path.name, len(written))
        return written

    # ── Служебное ────────────────────────────────

    def _aborted(self) -> bool:
        return self.abort_event is not None and self.abort_event.is_set()

    @staticmethod
    def _skip(report: SpeakerReport, path: Path, exc: Exception) -> None:
        log.error("Запись %s пропущена: %s", path.name, exc)
        report.skipped[path.name] = str(exc)
