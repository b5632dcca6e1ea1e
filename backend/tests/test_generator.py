import json
from contextlib import contextmanager
from unittest.mock import MagicMock, patch

import httpx
import openai

from config import Configuration
from models import CoupleContext, PlaceCandidate, UserLocation
from services.generator import (
    FALLBACK_COUNTS,
    MIN_SUGGESTIONS,
    fallback_suggestions,
    generate,
    generate_room,
)
from services.prompts import SYSTEM_PROMPT

ANSWERS = {"mood": "romantic", "activity_type": "food", "budget": "moderate"}
FALLBACK_TITLES = [s.title for s in fallback_suggestions(ANSWERS)]
CHAT_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _cfg(**kw) -> Configuration:
    base = {"llm_api_key": "sk-test", "llm_provider": "openrouter"}
    base.update(kw)
    return Configuration(**base)


@contextmanager
def _model(content=None, error=None):
    """Stub the hello_agents agent so `run` returns `content` or raises `error`."""
    agent = MagicMock()
    if error is not None:
        agent.run.side_effect = error
    else:
        agent.run.return_value = content
    with patch("services.llm.HelloAgentsLLM") as llm_cls, patch(
        "services.llm.ToolAwareSimpleAgent", return_value=agent
    ) as agent_cls:
        yield llm_cls, agent_cls, agent


def _ideas(*categories: str) -> str:
    return json.dumps(
        {
            "suggestions": [
                {
                    "title": f"Idée {i}",
                    "description": "Desc",
                    "duration": "2h",
                    "category": cat,
                    "cost": "low",
                    "location_type": "city",
                }
                for i, cat in enumerate(categories, start=1)
            ]
        }
    )


def test_no_key_returns_fallback_without_network():
    cfg = Configuration(llm_api_key=None)
    with _model("unused") as (llm_cls, agent_cls, _):
        result = generate(cfg, ANSWERS)
    llm_cls.assert_not_called()
    agent_cls.assert_not_called()
    assert len(result) == 3
    assert [s.title for s in result] == FALLBACK_TITLES
    assert all(s.generated_by == "ai" for s in result)
    assert all(s.quiz_answers_used == ANSWERS for s in result)


def test_http_401_falls_back():
    before = FALLBACK_COUNTS["http_error"]
    error = openai.AuthenticationError(
        "unauthorized", response=httpx.Response(401, request=CHAT_REQUEST), body=None
    )
    with _model(error=error):
        result = generate(_cfg(), ANSWERS)
    assert [s.title for s in result] == FALLBACK_TITLES
    assert FALLBACK_COUNTS["http_error"] == before + 1


def test_timeout_falls_back():
    before = FALLBACK_COUNTS["timeout"]
    with _model(error=openai.APITimeoutError(request=CHAT_REQUEST)):
        result = generate(_cfg(), ANSWERS)
    assert [s.title for s in result] == FALLBACK_TITLES
    assert FALLBACK_COUNTS["timeout"] == before + 1


def test_empty_content_falls_back():
    before = FALLBACK_COUNTS["empty_content"]
    with _model(""):
        result = generate(_cfg(), ANSWERS)
    assert [s.title for s in result] == FALLBACK_TITLES
    assert FALLBACK_COUNTS["empty_content"] == before + 1


def test_malformed_json_falls_back():
    with _model("not json at all"):
        result = generate(_cfg(), ANSWERS)
    assert [s.title for s in result] == FALLBACK_TITLES


def test_object_without_suggestions_falls_back():
    before = FALLBACK_COUNTS["missing_suggestions"]
    with _model('{"ideas": []}'):
        result = generate(_cfg(), ANSWERS)
    assert [s.title for s in result] == FALLBACK_TITLES
    assert FALLBACK_COUNTS["missing_suggestions"] == before + 1


def test_unexpected_exception_falls_back():
    with patch("services.generator.chat_completion", side_effect=KeyError("boom")):
        result = generate(_cfg(), ANSWERS)
    assert [s.title for s in result] == FALLBACK_TITLES


def test_valid_response_is_shaped():
    content = _ideas("romantic", "fun", "relaxed", "adventurous", "romantic")
    location = UserLocation(latitude=48.85, longitude=2.35, city="Paris")
    with _model(content) as (llm_cls, agent_cls, agent):
        result = generate(_cfg(), ANSWERS, location)
    assert llm_cls.call_args.kwargs["temperature"] == 0.2
    assert llm_cls.call_args.kwargs["timeout"] == 15.0
    assert agent_cls.call_args.kwargs["system_prompt"] == SYSTEM_PROMPT
    assert agent_cls.call_args.kwargs["enable_tool_calling"] is False
    agent.clear_history.assert_called_once()
    assert [s.id for s in result] == [f"ai_suggestion_{i}" for i in range(1, 6)]
    assert all(s.generated_by == "ai" for s in result)
    assert all(s.image_url and s.created_at for s in result)
    assert result[0].user_location == {"latitude": 48.85, "longitude": 2.35, "city": "Paris"}
    assert result[0].quiz_answers_used == ANSWERS


def test_json_wrapped_in_prose_is_recovered():
    content = "Voici mes idées :\n```json\n" + _ideas("fun", "fun", "fun") + "\n```"
    with patch("services.generator.chat_completion", return_value=content):
        result = generate(_cfg(), ANSWERS)
    assert [s.category for s in result] == ["fun", "fun", "fun"]


def test_invalid_categories_dropped_and_list_padded():
    content = _ideas("fun", "spaceflight")
    with patch("services.generator.chat_completion", return_value=content):
        result = generate(_cfg(), ANSWERS)
    assert len(result) == MIN_SUGGESTIONS
    assert result[0].id == "ai_suggestion_1"
    assert result[0].category == "fun"
    assert result[1].id.startswith("fallback_suggestion_")


def test_all_invalid_falls_back():
    with patch("services.generator.chat_completion", return_value=_ideas("spaceflight")):
        result = generate(_cfg(), ANSWERS)
    assert [s.title for s in result] == FALLBACK_TITLES


def test_unknown_source_id_is_discarded():
    raw = json.loads(_ideas("fun", "fun", "fun"))
    raw["suggestions"][0]["source_id"] = "p1"
    raw["suggestions"][1]["source_id"] = "made-up"
    places = [PlaceCandidate(id="p1", name="Parc", lat=0.0, lon=0.0)]
    location = UserLocation(latitude=0.0, longitude=0.0, city="X")
    with patch("services.generator.chat_completion", return_value=json.dumps(raw)):
        result = generate(_cfg(), ANSWERS, location, places=places)
    assert result[0].source_id == "p1"
    assert result[1].source_id is None


def test_progress_milestones_are_increasing():
    seen = []
    with patch("services.generator.chat_completion", return_value=_ideas("fun", "fun", "fun")):
        generate(_cfg(), ANSWERS, on_progress=lambda msg, pct: seen.append(pct))
    assert seen == sorted(seen)
    assert seen[0] == 5 and seen[-1] == 90


def test_room_fallback_scores_follow_partner_moods():
    ctx = CoupleContext(user1={"mood": "romantic"}, user2={"mood": "relaxed"}, room_id="r1")
    result = generate_room(Configuration(llm_api_key=None), ctx)
    by_cat = {s.category: s.compatibility_score for s in result}
    # relax is allowed for both moods, romantic for one, culture for one
    assert by_cat == {"romantic": 55.0, "relax": 80.0, "culture": 55.0}


def test_room_response_scores_are_clamped():
    raw = {
        "suggestions": [
            {"title": "A", "category": "food", "compatibility_score": 140, "cost_level": 2, "indoor": True},
            {"title": "B", "category": "outdoor", "compatibility_score": "n/a", "duration_minutes": 90},
            {"title": "C", "category": "culture", "compatibility_score": 45},
        ]
    }
    ctx = CoupleContext(user1={"mood": "fun"}, user2={"mood": "romantic"}, room_id="r1")
    with patch("services.generator.chat_completion", return_value=json.dumps(raw)):
        result = generate_room(_cfg(), ctx)
    assert [s.compatibility_score for s in result] == [100.0, None, 45.0]
    assert result[0].cost == "high"
    assert result[0].location_type == "indoor"
    assert result[1].duration == "90 min"
