"""Тесты обрезки выбросов и нормализации по группам."""

import numpy as np
import pytest

from nasalance.errors import GroupStatisticsUndefinedWarning
from nasalance.features.normalization import db_to_pressure, normalize, trim_outliers
from nasalance.models.track import Channel, SignalType

from conftest import make_signal_track


def _with_spike(n: int = 200, spike: float = 50.0) -> np.ndarray:
    values = np.sin(np.linspace(0, 8 * np.pi, n))
    values[100] = spike
    return values


def test_trim_drops_outlier_sample_entirely() -> None:
    track = make_signal_track(_with_spike())

    (trimmed,) = trim_outliers([track], threshold=6)

    assert len(trimmed) == len(track) - 1
    assert track.times[100] not in trimmed.times
    assert 50.0 not in trimmed.values.compressed()


def test_trim_keeps_samples_within_threshold() -> None:
    values = np.sin(np.linspace(0, 8 * np.pi, 200))
    track = make_signal_track(values)

    (trimmed,) = trim_outliers([track], threshold=6)

    assert len(trimmed) == len(track)
    assert np.array_equal(trimmed.times, track.times)


def test_trim_never_increases_count_and_respects_bound() -> None:
    rng = np.random.default_rng(1)
    values = rng.standard_t(df=2, size=1000)
    track = make_signal_track(values)
    threshold = 3.0

    (trimmed,) = trim_outliers([track], threshold=threshold)

    mean, std = values.mean(), values.std(ddof=1)
    kept_expected = np.abs(values - mean) <= threshold * std
    assert len(trimmed) <= len(track)
    assert np.array_equal(trimmed.times, track.times[kept_expected])


def test_trim_leaves_undefined_values_in_place() -> None:
    track = make_signal_track(_with_spike())
    values = track.values.copy()
    values[5] = np.ma.masked
    track = track.with_values(values)

    (trimmed,) = trim_outliers([track], threshold=6)

    assert track.times[5] in trimmed.times
    assert trimmed.values.mask[list(trimmed.times).index(track.times[5])]


def test_statistics_do_not_leak_between_groups() -> None:
    """Спайк в одной группе не влияет на другую группу."""
    spiky = make_signal_track(_with_spike(), speaker="Spk01")
    loud = make_signal_track(np.sin(np.linspace(0, 8 * np.pi, 200)) * 40, speaker="Spk02")

    spiky_trim, loud_trim = trim_outliers([spiky, loud], threshold=6)

    assert len(spiky_trim) == 199
    assert len(loud_trim) == 200


def test_trim_pools_recordings_of_one_group() -> None:
    a = make_signal_track(np.full(100, 1.0), recording_id="a.wav")
    b = make_signal_track(np.full(100, -1.0), recording_id="b.wav")

    out = trim_outliers([a, b], threshold=6)

    assert [len(t) for t in out] == [100, 100]
    assert [t.recording_id for t in out] == ["a.wav", "b.wav"]


def test_trim_of_tiny_group_is_skipped_with_warning() -> None:
    track = make_signal_track([3.0])

    with pytest.warns(GroupStatisticsUndefinedWarning):
        (out,) = trim_outliers([track])

    assert out.to_list() == [3.0]


def test_wave_normalization_is_bounded_by_peak() -> None:
    a = make_signal_track([0.5, -2.0, 1.0], recording_id="a.wav")
    b = make_signal_track([4.0, -1.0], recording_id="b.wav")

    out_a, out_b = normalize([a, b])

    assert out_a.to_list() == pytest.approx([0.125, -0.5, 0.25])
    assert out_b.to_list() == pytest.approx([1.0, -0.25])


def test_intensity_normalization_rescales_to_unit_range() -> None:
    track = make_signal_track([60.0, 70.0, 65.0, 80.0], signal_type=SignalType.INTENSITY_TRACK)

    (out,) = normalize([track])

    assert out.to_list() == pytest.approx([0.0, 0.5, 0.25, 1.0])


def test_normalization_bounds_hold_for_random_groups() -> None:
    rng = np.random.default_rng(2)
    tracks = [
        make_signal_track(rng.normal(size=300), channel=Channel.ORAL),
        make_signal_track(rng.normal(size=300) * 5, channel=Channel.NASAL, signal_type=SignalType.FILTERED_WAVE),
        make_signal_track(rng.uniform(1e-4, 2e-2, size=300), signal_type=SignalType.INTENSITY_TRACK),
    ]

    wave, filtered, intensity = normalize(tracks)

    for t in (wave, filtered):
        assert np.all(np.abs(t.values.compressed()) <= 1.0 + 1e-12)
    assert intensity.values.min() >= 0.0
    assert intensity.values.max() <= 1.0 + 1e-12


def test_silent_group_becomes_undefined() -> None:
    """Нулевой максимум даёт неопределённые значения вместо деления на ноль."""
    track = make_signal_track(np.zeros(20))

    with pytest.warns(GroupStatisticsUndefinedWarning):
        (out,) = normalize([track])

    assert len(out) == 20
    assert out.values.mask.all()


def test_constant_intensity_becomes_undefined() -> None:
    track = make_signal_track(np.full(10, 65.0), signal_type=SignalType.INTENSITY_TRACK)

    with pytest.warns(GroupStatisticsUndefinedWarning):
        (out,) = normalize([track])

    assert out.values.mask.all()


def test_db_to_pressure() -> None:
    values = np.ma.array([0.0, 94.0, 20.0], mask=[False, False, True])

    pressure = db_to_pressure(values)

    assert pressure[0] == pytest.approx(2e-5)
    assert pressure[1] == pytest.approx(1.0024, rel=1e-4)
    assert pressure.mask[2]
