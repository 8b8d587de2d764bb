"""Shared pytest fixtures."""

import random
from typing import Callable, List

import pytest

from bioquest.config import get_settings
from bioquest.db.supabase_client import reset_supabase_client
from bioquest.models.question import Question, UsedIn


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Provide valid settings for every test and drop cached singletons."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-api-key")
    monkeypatch.setenv("SUPABASE_URL", "https://test-project.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "test-supabase-key")
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.delenv("TRUSTED_PROXIES", raising=False)
    get_settings.cache_clear()
    reset_supabase_client()

    yield

    get_settings.cache_clear()
    reset_supabase_client()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def make_question() -> Callable[..., Question]:
    """Factory for bank questions with sensible defaults."""
    counter = {"n": 0}

    def _make(marks: int, class_level: int = 10, used: bool = False, **kwargs) -> Question:
        counter["n"] += 1
        used_in: List[UsedIn] = []
        if used:
            used_in = [UsedIn(year=2024, semester="1", paper_id="old-paper")]
        data = {
            "id": f"q{counter['n']}",
            "class_level": class_level,
            "chapter": "Cell Biology",
            "text": f"Question {counter['n']} ({marks} marks)",
            "marks": marks,
            "year": 2025,
            "used_in": used_in,
        }
        data.update(kwargs)
        return Question(**data)

    return _make
