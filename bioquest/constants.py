"""Shared constants for the question bank and paper generator."""

CLASSES = [7, 8, 9, 10]

# Target languages understood by the question generator
LANGUAGE_NAMES = {
    "en": "English",
    "bn": "Bengali",
    "hi": "Hindi",
}

DEFAULT_MARK_DISTRIBUTION = "5x1, 5x2, 2x5"
DEFAULT_TOTAL_MARKS = 25
DEFAULT_ALLOWED_MARKS = "1, 2, 3, 5"

# Upper bound on a paper's total; the solver's table grows linearly with it
MAX_TOTAL_MARKS = 1000

# Key-value store keys for persisted generator state
SYLLABUS_ONLY_KEY = "bioquest_wbbse_syllabus_only_v1"
PAPER_GENERATOR_DRAFT_KEY = "bioquest_paper_generator_draft_v1"
SETTINGS_HISTORY_KEY = "bioquest_generator_settings_history_v1"

MAX_SETTINGS_HISTORY = 50
