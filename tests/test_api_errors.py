from __future__ import annotations

import logging

import pytest

import board.api
from board.pipelines.details import DetailProcessingError


async def failing(*args, **kwargs):
    raise RuntimeError("database went away")


@pytest.mark.parametrize(
    "target, method, path, message",
    [
        ("list_details", "get", "/details", "Error fetching details"),
        ("get_detail", "get", "/details/1", "Error fetching details"),
        ("get_assignment", "get", "/details/token/abc", "Error fetching assignment"),
        ("list_experts", "get", "/experts", "Error fetching experts"),
        ("build_agenda", "get", "/experts/Alice/agenda", "Error fetching agenda"),
    ],
)
def test_unexpected_read_errors_become_json_500(client, monkeypatch, caplog, target, method, path, message):
    monkeypatch.setattr(board.api, target, failing)

    with caplog.at_level(logging.ERROR, logger="board.api"):
        r = getattr(client, method)(path)

    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == {"detail": message}
    assert any(rec.name == "board.api" and rec.exc_info for rec in caplog.records)


def test_unexpected_write_errors_become_json_500(client, monkeypatch, board_payload):
    for target in ("save_details", "update_acceptance", "submit_feedback", "create_expert"):
        monkeypatch.setattr(board.api, target, failing)

    r = client.post("/save-details", json=board_payload)
    assert (r.status_code, r.json()) == (500, {"detail": "Error saving details"})

    r = client.patch("/details/token/abc/acceptance", json={"acceptance_status": "accepted"})
    assert (r.status_code, r.json()) == (500, {"detail": "Error updating acceptance"})

    r = client.post(
        "/details/1/feedback",
        json={"expert_name": "Alice", "account": "0x" + "00" * 20, "scores": {}},
    )
    assert (r.status_code, r.json()) == (500, {"detail": "Error submitting feedback"})

    r = client.post("/experts", json={"name": "Alice"})
    assert (r.status_code, r.json()) == (500, {"detail": "Error saving expert"})


def test_detail_processing_error_is_reported(client, monkeypatch, board_payload):
    async def broken_save(*args, **kwargs):
        raise DetailProcessingError("Saving details failed: disk full")

    monkeypatch.setattr(board.api, "save_details", broken_save)

    r = client.post("/save-details", json=board_payload)
    assert r.status_code == 500
    assert r.json() == {"error": "Error saving details", "detail": "Saving details failed: disk full"}
