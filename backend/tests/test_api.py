from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

import main

ENV_KEYS = (
    "LLM_API_KEY",
    "OPENROUTER_API_KEY",
    "GEOAPIFY_API_KEY",
    "OPENAGENDA_API_KEY",
    "LLM_PROVIDER",
    "LLM_TIMEOUT",
)


@pytest.fixture
def client(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return TestClient(main.app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "OK"


def test_generate_without_key_returns_split_lists(client):
    r = client.post("/api/dates/generate", json={"quizAnswers": {"mood": "romantic", "budget": "moderate"}})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    total = len(body["dates"]) + len(body["relaxed_suggestions"])
    assert total >= 3
    categories = {d["category"] for d in body["dates"]}
    assert categories <= {"romantic", "food", "relax"}


def test_generate_internal_error_is_500(client):
    with patch("main.get_personalized_ideas", side_effect=RuntimeError("secret detail")):
        r = client.post("/api/dates/generate", json={"quizAnswers": {}})
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "Failed to generate date ideas"}


def test_room_missing_partner_is_400(client):
    with patch("services.generator.chat_completion") as chat:
        r = client.post(
            "/api/dates/generate-room",
            json={"user1Answers": {"mood": "fun"}, "roomId": "room-1"},
        )
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert "user2Answers" in r.json()["error"]
    chat.assert_not_called()


def test_room_returns_buckets(client):
    r = client.post(
        "/api/dates/generate-room",
        json={"user1Answers": {"mood": "romantic"}, "user2Answers": {"mood": "relaxed"}, "roomId": "room-1"},
    )
    assert r.status_code == 200
    dates = r.json()["dates"]
    assert len(dates["all"]) == len(dates["high"]) + len(dates["medium"]) + len(dates["low"])
    assert all(d["compatibility_score"] >= 70 for d in dates["high"])


def test_llm_health_reports_fallbacks(client):
    r = client.get("/health/llm")
    assert r.status_code == 200
    body = r.json()
    assert body["credential"] is False
    assert isinstance(body["fallbacks"], dict)


def test_room_bad_configuration_is_generic_500(client, monkeypatch):
    monkeypatch.setenv("LLM_TIMEOUT", "not-a-number")
    r = client.post(
        "/api/dates/generate-room",
        json={"user1Answers": {"mood": "romantic"}, "user2Answers": {"mood": "relaxed"}, "roomId": "room-1"},
    )
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "Failed to generate room date ideas"}


def test_room_internal_value_error_is_not_echoed(client):
    with patch("main.generate_room_ideas", side_effect=ValueError("secret detail")):
        r = client.post(
            "/api/dates/generate-room",
            json={"user1Answers": {"mood": "fun"}, "user2Answers": {"mood": "fun"}, "roomId": "room-1"},
        )
    assert r.status_code == 500
    assert "secret detail" not in r.text
