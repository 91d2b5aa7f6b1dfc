import dataclasses

import studybuddy
from studybuddy import app_context

SESSION_BODY = {
    "sessionName": "Cells",
    "studyCards": [{"question": "What makes ATP?", "answer": "Mitochondria"}],
    "transcript": "Cells and energy",
}


def test_ephemeral_session_lifecycle(client):
    created = client.post("/api/flashcards-public", json=SESSION_BODY)
    assert created.status_code == 201
    session = created.get_json()["session"]
    assert session["sessionName"] == "Cells"
    assert session["flashcards"] == SESSION_BODY["studyCards"]

    fetched = client.get(f"/api/flashcards-public/{session['id']}")
    assert fetched.status_code == 200
    assert fetched.get_json()["id"] == session["id"]
    assert fetched.get_json()["transcript"] == "Cells and energy"

    deleted = client.delete(f"/api/flashcards-public/{session['id']}")
    assert deleted.status_code == 200

    missing = client.get(f"/api/flashcards-public/{session['id']}")
    assert missing.status_code == 404
    assert missing.get_json()["error"] == "Ephemeral flashcard session not found."
    assert client.delete(f"/api/flashcards-public/{session['id']}").status_code == 404


def test_third_ephemeral_session_from_same_ip_is_rate_limited(client):
    for _ in range(2):
        assert client.post("/api/flashcards-public", json=SESSION_BODY).status_code == 201

    response = client.post("/api/flashcards-public", json=SESSION_BODY)

    assert response.status_code == 429
    assert response.get_json()["error"] == app_context.EPHEMERAL_RATE_LIMIT_MESSAGE
    assert int(response.headers["Retry-After"]) > 0
    assert len(app_context.ephemeral_store) == 2


def test_invalid_creations_still_count_against_the_daily_limit(client):
    assert client.post("/api/flashcards-public", json={}).status_code == 400
    assert client.post("/api/flashcards-public", json={"sessionName": "x"}).status_code == 400

    response = client.post("/api/flashcards-public", json=SESSION_BODY)
    assert response.status_code == 429


def test_forwarded_header_cannot_reset_the_quota(client):
    statuses = [
        client.post("/api/flashcards-public", json=SESSION_BODY, headers={"X-Forwarded-For": f"10.9.9.{i}"}).status_code
        for i in range(3)
    ]
    assert statuses == [201, 201, 429]


def test_other_peers_have_their_own_quota(client):
    for _ in range(2):
        client.post("/api/flashcards-public", json=SESSION_BODY, environ_overrides={"REMOTE_ADDR": "203.0.113.5"})

    response = client.post("/api/flashcards-public", json=SESSION_BODY, environ_overrides={"REMOTE_ADDR": "198.51.100.7"})
    assert response.status_code == 201


def test_trusted_proxy_hop_identifies_the_client(monkeypatch, test_config, fake_db):
    proxied_app = studybuddy.create_app(dataclasses.replace(test_config, trusted_proxy_count=1))
    monkeypatch.setattr(app_context, "db", fake_db)
    app_context.RATE_LIMIT_EVENTS.clear()

    with proxied_app.test_client() as proxied:
        def create(forwarded_for):
            return proxied.post("/api/flashcards-public", json=SESSION_BODY, headers={"X-Forwarded-For": forwarded_for})

        # Only the hop appended by the trusted proxy counts; spoofed entries to its left are ignored.
        assert create("10.9.9.1, 203.0.113.9").status_code == 201
        assert create("10.9.9.2, 203.0.113.9").status_code == 201
        assert create("10.9.9.3, 203.0.113.9").status_code == 429
        assert create("198.51.100.7").status_code == 201
    app_context.RATE_LIMIT_EVENTS.clear()


def test_malformed_cards_are_rejected(client):
    body = dict(SESSION_BODY, studyCards=[{"question": "only a question"}])
    response = client.post("/api/flashcards-public", json=body)
    assert response.status_code == 400
    assert response.get_json()["error"] == "sessionName, studyCards, and transcript are required."
