from __future__ import annotations

import pytest
from pydantic import ValidationError

from board.config import Settings


def test_sub_settings_accept_explicit_values():
    settings = Settings(
        db={"url": "sqlite+aiosqlite:///board.db"},
        feedback={"score_max": 5, "max_candidates_per_review": 2},
        cors={"allow_origins": ["https://board.example.com"]},
    )
    assert settings.db.url == "sqlite+aiosqlite:///board.db"
    assert settings.feedback.score_max == 5
    assert settings.feedback.max_candidates_per_review == 2
    assert settings.cors.allow_origins == ["https://board.example.com"]


def test_score_range_must_be_ordered():
    with pytest.raises(ValidationError):
        Settings(feedback={"score_min": 5, "score_max": 5})
