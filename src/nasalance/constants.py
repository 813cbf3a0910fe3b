"""Все константы проекта nasalance.

Формат файлов Praat Intensity, значения параметров обработки
по умолчанию, соглашения об именах файлов и фонетические классы.
"""

from pathlib import Path

# ── Пути ─────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent.parent
LOGS_DIR = BASE_DIR / 'logs'
OUTPUT_DIR = BASE_DIR / 'output'
INTENSITY_DIR_NAME = 'Intensity_tracks'

# ── Формат Praat Intensity ───────────────────────
HEADER_FILE_TYPE = 'File type = "ooTextFile"'
HEADER_OBJECT_CLASS = 'Object class = "Intensity 2"'
UNDEFINED_TOKEN = '--undefined--'
INTENSITY_SUFFIX = '.Intensity'

# Фиктивные поля второго измерения (всегда 1)
DUMMY_FIELDS: tuple[tuple[str, str], ...] = (
    ('ymin', '1'),
    ('ymax', '1'),
    ('ny', '1'),
    ('dy', '1'),
    ('y1', '1'),
)

# ── Обработка сигнала ────────────────────────────
FILTER_CUTOFF_HZ = 280.0
LPF_WINDOW_LENGTH = 512
TRIM_THRESHOLD_STDDEV = 6.0
NASAL_AMPLITUDE_FLOOR = 0.01
SMOOTHING_WINDOW_MS = 11.0
NASAL_CHANNEL_INDEX = 2
CONVERT_DB_TO_PRESSURE = True

# Порог слышимости, Па (опорное давление для дБ)
REFERENCE_PRESSURE_PA = 2e-5

# ── Имена файлов ─────────────────────────────────
SPEAKER_CODE_LENGTH = 5
NORMALIZED_AIRFLOW_DIR = 'Normalized_airflow'
NASALANCE_DIR = 'Nasalance_files'
LPF_INTENSITY_DIR = 'LPF_normalized_intensity'
LPF_NASALANCE_DIR = 'LPF_nasalance'
SIGNAL_DIFFERENCE_DIR = 'Signal_difference'

NORMALIZED_INTENSITY_SUFFIX = '_ch{channel}_normalized.Intensity'
NASALANCE_SUFFIX = '_nasalance.Intensity'
LPF_AIRFLOW_SUFFIX = '_ch{channel}_LPF_airflow_normalized.Intensity'
LPF_NASALANCE_SUFFIX = '_LPF_nasalance_normalized.Intensity'
SIGNAL_DIFFERENCE_SUFFIX = '_signal_difference.Intensity'
SOURCE_INTENSITY_SUFFIX = '_ch{channel}.Intensity'

# ── Фонетические классы ──────────────────────────
NASAL_CONSONANTS = ('m', 'ɱ', 'n', 'ɳ', 'ɲ', 'ŋ', 'ɴ')
PRENASALIZED_CONSONANTS = (
    'mb', 'ᵐb', 'nd', 'ⁿd', 'ndz', 'ⁿdz', 'ndʒ', 'ⁿdʒ', 'ng', 'ŋg', 'ᵑɡ', 'ⁿg',
    'mp', 'ᵐp', 'nt', 'ⁿt', 'nts', 'ⁿts', 'ntʃ', 'ⁿtʃ', 'nk', 'ŋk', 'ᵑk', 'ⁿk',
    'nt͡s', 'ⁿt͡s', 'nt͡ʃ', 'ⁿt͡ʃ', 'ntsʲ', 'ⁿtsʲ', 'nt͡sʲ', 'ⁿt͡sʲ',
)
ORAL_VOWELS = ('a', 'i', 'e', 'o', 'u', 'ɨ')
NASAL_VOWELS = ('ã', 'ĩ', 'ẽ', 'õ', 'ũ', 'ɨ̃')
APPROXIMANTS = ('j', 'w', 'ʋ', 'ɰ', 'r', 'ɾ', 'ɹ', 'l')
GLIDES = ('j', 'w', 'ʋ', 'ɰ')
LARYNGEALS = ('h', 'ʔ')

SEGMENT_FILTER_POLICIES: dict[str, tuple[str, ...]] = {
    'nasal_contexts': (
        NASAL_CONSONANTS
        + PRENASALIZED_CONSONANTS
        + ORAL_VOWELS
        + NASAL_VOWELS
        + LARYNGEALS
        + GLIDES
    ),
    'all': (),
}
SEGMENT_TIER = 2
SEGMENT_PUNCTUATION = '[!?.]+'
