from __future__ import annotations

from datetime import datetime

import pytest

from board.pipelines.agenda import format_slot
from board.pipelines.feedback import (
    CandidateIdRegistry,
    WalletNotConnectedError,
    check_account,
    validate_scores,
)
from board.pipelines.normalization import normalize_email, normalize_name

ACCOUNT = "0x" + "ab" * 20


def test_normalize_name_collapses_whitespace_and_composes_unicode():
    assert normalize_name("  Alice \t  Smith ") == "Alice Smith"
    assert normalize_name("José") == "José"
    assert normalize_name("") == ""


def test_normalize_email():
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"
    assert normalize_email("   ") is None
    assert normalize_email(None) is None


def test_registry_assigns_sequential_ids_from_zero():
    registry = CandidateIdRegistry()
    assert registry.get("Backend", "Alice", "Bob") == 0
    assert registry.get("Backend", "Alice", "Dan") == 1
    assert registry.get("Frontend", "Alice", "Bob") == 2
    assert len(registry) == 3


def test_registry_ids_are_stable():
    registry = CandidateIdRegistry()
    first = registry.get("Backend", "Alice", "Bob")
    registry.get("Backend", "Carol", "Bob")
    assert registry.get("Backend", "Alice", "Bob") == first
    assert "Backend_Alice_Bob" in registry


@pytest.mark.parametrize(
    "card, valid",
    [
        ({"skills": 0, "experience": 10, "communication": 5}, True),
        ({"skills": 7, "experience": 8, "communication": 9}, True),
        ({"skills": 11, "experience": 8, "communication": 9}, False),
        ({"skills": -1, "experience": 8, "communication": 9}, False),
        ({"skills": 7, "experience": None, "communication": 9}, False),
        ({"skills": 7, "experience": 8}, False),
        ({"skills": True, "experience": 8, "communication": 9}, False),
        ({"skills": 7.5, "experience": 8, "communication": 9}, False),
        ({}, False),
        (None, False),
    ],
)
def test_validate_scores(card, valid):
    assert validate_scores(card) is valid


def test_check_account():
    assert check_account(f"  {ACCOUNT} ") == ACCOUNT
    for bad in (None, "", "0x123", "ab" * 21):
        with pytest.raises(WalletNotConnectedError):
            check_account(bad)


@pytest.mark.parametrize(
    "moment, expected",
    [
        (datetime(2024, 10, 1, 10, 0), ("TUE", "OCT 1", "10:00 AM")),
        (datetime(2024, 10, 1, 14, 5), ("TUE", "OCT 1", "2:05 PM")),
        (datetime(2024, 12, 25, 0, 30), ("WED", "DEC 25", "12:30 AM")),
        (datetime(2025, 3, 9, 12, 0), ("SUN", "MAR 9", "12:00 PM")),
    ],
)
def test_format_slot(moment, expected):
    assert format_slot(moment) == expected


def test_format_slot_uses_english_labels_for_every_day_and_month():
    days = {format_slot(datetime(2024, 1, d))[0] for d in range(1, 8)}
    assert days == {"MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"}

    months = [format_slot(datetime(2024, m, 1))[1] for m in range(1, 13)]
    assert months == [
        "JAN 1", "FEB 1", "MAR 1", "APR 1", "MAY 1", "JUN 1",
        "JUL 1", "AUG 1", "SEP 1", "OCT 1", "NOV 1", "DEC 1",
    ]
