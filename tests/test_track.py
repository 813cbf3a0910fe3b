"""Тесты модели треков: неопределённые значения, соединение и сетка."""

import numpy as np
import pytest

from nasalance.models.track import IntensityTrack, outer_join, reindex

from conftest import make_track


def test_none_becomes_masked_not_zero() -> None:
    track = make_track([0.0, None, 1.5])

    assert track.to_list() == [0.0, None, 1.5]
    assert track.defined.tolist() == [True, False, True]


def test_mismatched_lengths_are_rejected() -> None:
    with pytest.raises(ValueError):
        IntensityTrack(times=[0.1, 0.2], values=[1.0], file_end=1.0)


def test_dx_of_single_sample_track_uses_stored_step() -> None:
    assert make_track([1.0], dx=0.25).dx == 0.25
    with pytest.raises(ValueError):
        _ = IntensityTrack(times=[0.1], values=[1.0], file_end=1.0).dx


def test_outer_join_marks_missing_partners() -> None:
    a = IntensityTrack(times=[1.0, 2.0], values=[10.0, 20.0], file_end=3.0)
    b = IntensityTrack(times=[2.0, 3.0], values=[200.0, 300.0], file_end=3.0)

    times, va, vb = outer_join(a, b)

    assert times.tolist() == [1.0, 2.0, 3.0]
    assert va.filled(-1).tolist() == [10.0, 20.0, -1]
    assert vb.filled(-1).tolist() == [-1, 200.0, 300.0]


def test_reindex_fills_gaps_with_undefined() -> None:
    grid = np.array([0.5, 1.0, 1.5, 2.0])
    sparse = IntensityTrack(times=[0.5, 1.5], values=[5.0, None], file_end=2.25)

    full = reindex(sparse, grid)

    assert full.times.tolist() == grid.tolist()
    assert full.to_list() == [5.0, None, None, None]
    assert full.file_end == 2.25
    assert full.dx == 0.5
