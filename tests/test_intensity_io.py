"""Тесты чтения и записи треков Praat .Intensity."""

from pathlib import Path

import numpy as np
import pytest

from nasalance.errors import MalformedTrackError, TrackExistsError, TrackNotFoundError
from nasalance.models.track import IntensityTrack
from nasalance.services.intensity_io import format_intensity, read_intensity, write_intensity

from conftest import make_track

EXPECTED_TEXT = (
    'File type = "ooTextFile"\n'
    'Object class = "Intensity 2"\n'
    "\n"
    "xmin = 0 \n"
    "xmax = 0.05 \n"
    "nx = 3 \n"
    "dx = 0.01 \n"
    "x1 = 0.01 \n"
    "ymin = 1 \n"
    "ymax = 1 \n"
    "ny = 1 \n"
    "dy = 1 \n"
    "y1 = 1 \n"
    "z [] []: \n"
    "    z [1]:\n"
    "        z [1] [1] = 1 \n"
    "        z [1] [2] = --undefined-- \n"
    "        z [1] [3] = 2 \n"
)


def _three_sample_track():
    return make_track([1.0, None, 2.0], x1=0.01, dx=0.01, file_end=0.05)


def test_round_trip_keeps_times_values_and_file_end(tmp_path: Path) -> None:
    """Запись и чтение сохраняют времена, неопределённые значения и xmax."""
    path = write_intensity(_three_sample_track(), tmp_path / "track.Intensity")

    parsed = read_intensity(path)

    assert parsed.times.tolist() == pytest.approx([0.01, 0.02, 0.03])
    assert parsed.to_list() == [1.0, None, 2.0]
    assert parsed.file_end == pytest.approx(0.05)
    assert parsed.step == pytest.approx(0.01)


def test_written_text_matches_praat_layout(tmp_path: Path) -> None:
    """Все строки, кроме заголовка и 'z [1]:', заканчиваются одним пробелом."""
    path = write_intensity(_three_sample_track(), tmp_path / "track.Intensity")

    assert path.read_text(encoding="utf-8") == EXPECTED_TEXT
    assert format_intensity(_three_sample_track()) == EXPECTED_TEXT


def test_file_end_is_taken_from_metadata_not_last_sample() -> None:
    """xmax берётся из метаданных, а не из времени последнего отсчёта."""
    track = make_track([0.5, 0.6], x1=0.1, dx=0.1, file_end=7.25)

    assert "xmax = 7.25 \n" in format_intensity(track)


def test_parse_tolerates_whitespace_variance(tmp_path: Path) -> None:
    """Поля заголовка находятся по ключу независимо от пробелов."""
    path = tmp_path / "loose.Intensity"
    path.write_text(
        'File type = "ooTextFile"\n'
        'Object class = "Intensity 2"\n'
        "\n"
        "xmin =   0\n"
        "   xmax=1.5\n"
        "nx = 2\n"
        "dx =0.25\n"
        "x1 = 0.5   \n"
        "ymin = 1\n"
        "z [1] [1] = 60.5\n"
        "  z [1] [2] =   --undefined--  \n",
        encoding="utf-8",
    )

    track = read_intensity(path)

    assert track.times.tolist() == pytest.approx([0.5, 0.75])
    assert track.to_list() == [60.5, None]
    assert track.file_end == pytest.approx(1.5)


def test_round_trip_of_longer_track_with_gaps(tmp_path: Path) -> None:
    """Пропуски в длинном треке переживают запись и чтение."""
    rng = np.random.default_rng(0)
    values = [None if i % 7 == 3 else float(v) for i, v in enumerate(rng.uniform(30, 80, size=50))]
    track = make_track(values, x1=0.0232, dx=0.0125, file_end=0.7)

    parsed = read_intensity(write_intensity(track, tmp_path / "long.Intensity"))

    assert parsed.to_list() == values
    assert np.allclose(parsed.times, track.times)
    assert parsed.file_end == pytest.approx(0.7)


def test_missing_file_raises_not_found(tmp_path: Path) -> None:
    with pytest.raises(TrackNotFoundError):
        read_intensity(tmp_path / "absent.Intensity")


def test_file_without_header_is_malformed(tmp_path: Path) -> None:
    path = tmp_path / "bad.Intensity"
    path.write_text("just some text\n", encoding="utf-8")

    with pytest.raises(MalformedTrackError, match="заголовка"):
        read_intensity(path)


def test_sample_count_must_match_nx(tmp_path: Path) -> None:
    text = EXPECTED_TEXT.replace("nx = 3 ", "nx = 4 ")
    path = tmp_path / "short.Intensity"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(MalformedTrackError, match="nx"):
        read_intensity(path)


def test_refuses_to_overwrite_when_disabled(tmp_path: Path) -> None:
    target = tmp_path / "track.Intensity"
    target.write_text("keep me", encoding="utf-8")

    with pytest.raises(TrackExistsError):
        write_intensity(_three_sample_track(), target, overwrite=False)

    assert target.read_text(encoding="utf-8") == "keep me"


def test_overwrite_replaces_file_without_leftovers(tmp_path: Path) -> None:
    target = tmp_path / "track.Intensity"
    target.write_text("old", encoding="utf-8")

    write_intensity(_three_sample_track(), target)

    assert target.read_text(encoding="utf-8") == EXPECTED_TEXT
    assert [p.name for p in tmp_path.iterdir()] == ["track.Intensity"]


def test_empty_track_is_rejected(tmp_path: Path) -> None:
    empty = IntensityTrack(times=np.empty(0), values=np.empty(0), file_end=1.0, step=0.01)

    with pytest.raises(ValueError):
        write_intensity(empty, tmp_path / "empty.Intensity")
