from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import requests
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from config import Configuration
from models import DateSuggestion, QuizAnswers
from services.generator import FALLBACK_COUNTS
from services.mood import enforce_mood
from services.orchestrator import MissingPartnerAnswers, generate_room_ideas, get_personalized_ideas

load_dotenv()

app = FastAPI(title="YesDate API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _clean_answers(raw: Optional[Dict[str, Any]]) -> QuizAnswers:
    """Drop empty values and stringify the rest."""
    out: QuizAnswers = {}
    for k, v in (raw or {}).items():
        if v is None:
            continue
        s = str(v).strip()
        if s:
            out[str(k)] = s
    return out


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    quiz_answers: Dict[str, Any] = Field(default_factory=dict, alias="quizAnswers")
    city: Optional[str] = Field(None, description="Free-text city used for geographic grounding")


class GenerateRoomRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user1_answers: Optional[Dict[str, Any]] = Field(None, alias="user1Answers")
    user2_answers: Optional[Dict[str, Any]] = Field(None, alias="user2Answers")
    room_id: Optional[str] = Field(None, alias="roomId")
    city: Optional[str] = None


class DateSuggestionPayload(BaseModel):
    id: str
    title: str
    description: str
    category: str
    duration: str
    cost: str
    location_type: str
    generated_by: str
    area: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[str] = None
    match_score: Optional[float] = None
    compatibility_score: Optional[float] = None
    source_id: Optional[str] = None
    reasons: List[str] = []
    constraints: List[str] = []
    quiz_answers_used: Optional[Dict[str, Any]] = None
    user_location: Optional[Dict[str, Any]] = None


class GenerateResponse(BaseModel):
    success: bool = True
    dates: List[DateSuggestionPayload]
    relaxed_suggestions: List[DateSuggestionPayload]


class RoomBuckets(BaseModel):
    high: List[DateSuggestionPayload]
    medium: List[DateSuggestionPayload]
    low: List[DateSuggestionPayload]
    all: List[DateSuggestionPayload]


class GenerateRoomResponse(BaseModel):
    success: bool = True
    dates: RoomBuckets


def to_payload(s: DateSuggestion) -> DateSuggestionPayload:
    return DateSuggestionPayload(**s.to_dict())


@app.get("/health")
def health() -> dict:
    return {"status": "OK", "message": "L'API YesDate est en cours d'exécution"}


@app.get("/health/geo")
def health_geo() -> dict:
    cfg = Configuration.from_env()
    try:
        cfg.require_geoapify()
        url = f"{cfg.geoapify_base_url.rstrip('/')}/v1/geocode/search"
        params = {"text": "Paris", "limit": 1, "lang": cfg.lang_default, "apiKey": cfg.geoapify_api_key}
        r = requests.get(url, params=params, timeout=cfg.geoapify_timeout)
        ok = r.ok
    except Exception:
        ok = False
    return {"ok": ok}


@app.get("/health/llm")
def health_llm() -> dict:
    cfg = Configuration.from_env()
    logger.info("cfg: {}", cfg.log_summary())
    return {
        "provider": cfg.provider,
        "model": cfg.llm_model_id,
        "credential": cfg.has_llm_credential(),
        "fallbacks": dict(FALLBACK_COUNTS),
    }


@app.post("/api/dates/generate", response_model=GenerateResponse)
async def generate_dates(req: GenerateRequest):
    try:
        cfg = Configuration.from_env()
        answers = _clean_answers(req.quiz_answers)
        city = req.city or answers.get("city")
        ideas = await asyncio.to_thread(get_personalized_ideas, cfg, answers, city)
        partition = enforce_mood(ideas, answers.get("mood"))
    except Exception as exc:
        logger.exception("date generation failed: {}", exc)
        return _error(500, "Failed to generate date ideas")

    return GenerateResponse(
        dates=[to_payload(s) for s in partition.allowed],
        relaxed_suggestions=[to_payload(s) for s in partition.relaxed],
    )


@app.post("/api/dates/generate-room", response_model=GenerateRoomResponse)
async def generate_room_dates(req: GenerateRoomRequest):
    try:
        cfg = Configuration.from_env()
        buckets = await asyncio.to_thread(
            generate_room_ideas,
            cfg,
            _clean_answers(req.user1_answers) if req.user1_answers is not None else None,
            _clean_answers(req.user2_answers) if req.user2_answers is not None else None,
            req.room_id,
            req.city,
        )
    except MissingPartnerAnswers as exc:
        return _error(400, str(exc))
    except Exception as exc:
        logger.exception("room generation failed: {}", exc)
        return _error(500, "Failed to generate room date ideas")

    return GenerateRoomResponse(
        dates=RoomBuckets(
            high=[to_payload(s) for s in buckets.high],
            medium=[to_payload(s) for s in buckets.medium],
            low=[to_payload(s) for s in buckets.low],
            all=[to_payload(s) for s in buckets.all],
        )
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=3000, reload=True)
