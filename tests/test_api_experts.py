from __future__ import annotations


def test_experts_directory(client):
    assert client.get("/experts").json() == []

    r = client.post(
        "/experts",
        json={"name": "  Zed   Young ", "email": "ZED@example.com", "expertise": ["python", " sql "]},
    )
    assert r.status_code == 201, r.text
    created = r.json()
    assert created["name"] == "Zed Young"
    assert created["email"] == "zed@example.com"
    assert created["expertise"] == ["python", "sql"]

    client.post("/experts", json={"name": "Alice Smith"})

    experts = client.get("/experts").json()
    assert [e["name"] for e in experts] == ["Alice Smith", "Zed Young"]
    assert experts[0]["expertise"] is None


def test_duplicate_expert_is_a_conflict(client):
    assert client.post("/experts", json={"name": "Alice Smith"}).status_code == 201
    r = client.post("/experts", json={"name": "Alice  Smith"})
    assert r.status_code == 409
    assert r.json()["error"] == "duplicate"


def test_create_expert_requires_name(client):
    assert client.post("/experts", json={"name": ""}).status_code == 422


def test_agenda_lists_assigned_interviews_in_date_order(client, board_payload):
    later = dict(board_payload, requirement="Platform Lead", date="2024-12-25T15:30:00Z")
    client.post("/save-details", json=later)
    client.post("/save-details", json=board_payload)

    r = client.get("/experts/Alice Smith/agenda")
    assert r.status_code == 200
    body = r.json()
    assert body["expert_name"] == "Alice Smith"

    first, second = body["interviews"]
    assert first["requirement"] == "Backend Engineer"
    assert (first["day"], first["date"], first["time"]) == ("TUE", "OCT 1", "10:00 AM")
    assert (second["day"], second["date"], second["time"]) == ("WED", "DEC 25", "3:30 PM")

    # Only the first three candidates are up for scoring
    assert [c["candidate"] for c in first["candidates"]] == ["Bob", "Dan", "Eve"]
    assert first["acceptance_status"] == "pending"


def test_agenda_skips_boards_without_the_expert(client, board_payload):
    client.post("/save-details", json=board_payload)
    assert client.get("/experts/Nobody/agenda").json()["interviews"] == []

    carol = client.get("/experts/Carol Jones/agenda").json()["interviews"]
    assert len(carol) == 1
    assert carol[0]["acceptance_status"] == "accepted"


def test_agenda_upcoming_filter(client, board_payload):
    past = dict(board_payload, date="2020-01-01T09:00:00Z")
    future = dict(board_payload, date="2999-01-01T09:00:00Z")
    client.post("/save-details", json=past)
    client.post("/save-details", json=future)

    everything = client.get("/experts/Alice Smith/agenda").json()["interviews"]
    assert len(everything) == 2

    upcoming = client.get("/experts/Alice Smith/agenda", params={"upcoming": True}).json()["interviews"]
    assert [i["scheduled_at"][:4] for i in upcoming] == ["2999"]
