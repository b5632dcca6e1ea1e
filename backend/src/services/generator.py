from __future__ import annotations

import hashlib
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote_plus

from loguru import logger

from config import Configuration
from models import (
    COSTS,
    LOCATION_TYPES,
    ROOM_CATEGORIES,
    SOLO_CATEGORIES,
    CoupleContext,
    DateSuggestion,
    EventCandidate,
    PlaceCandidate,
    QuizAnswers,
    UserLocation,
)
from services import progress
from services.compatibility import coerce_score
from services.llm import LLMError, chat_completion
from services.mood import is_allowed, normalize_mood
from services.prompts import ROOM_SYSTEM_PROMPT, SYSTEM_PROMPT, build_prompt, build_room_prompt
from utils import parse_json_payload

MIN_SUGGESTIONS = 3

# fallback counts per failure kind, process-wide
FALLBACK_COUNTS: Counter = Counter()

IMAGE_KEYWORDS: Dict[str, str] = {
    "romantic": "romantic,dinner",
    "fun": "fun,friends",
    "relaxed": "park,relax",
    "adventurous": "hiking,adventure",
    "outdoor": "outdoor,nature",
    "food": "restaurant,food",
    "culture": "museum,art",
    "active": "sport,active",
    "relax": "spa,relax",
    "surprise": "surprise,city",
}

# solo category -> room vocabulary, used for the room fallback set
SOLO_TO_ROOM = {
    "romantic": "romantic",
    "fun": "culture",
    "relaxed": "relax",
    "adventurous": "active",
}

COST_LEVELS = {0: "low", 1: "moderate", 2: "high", 3: "luxury"}

FALLBACK_IDEAS: List[Dict[str, str]] = [
    {
        "title": "Dîner romantique",
        "description": "Réservez une table dans un restaurant intime et profitez d'un moment à deux autour d'un bon repas.",
        "category": "romantic",
        "duration": "2h",
        "cost": "moderate",
        "location_type": "indoor",
    },
    {
        "title": "Balade détente au parc",
        "description": "Une promenade tranquille dans un parc, un café à emporter et le temps de discuter sans se presser.",
        "category": "relaxed",
        "duration": "1h30",
        "cost": "low",
        "location_type": "outdoor",
    },
    {
        "title": "Soirée cinéma",
        "description": "Choisissez un film ensemble, au cinéma ou sous un plaid, avec du pop-corn pour une soirée légère.",
        "category": "fun",
        "duration": "3h",
        "cost": "low",
        "location_type": "indoor",
    },
]


def record_fallback(kind: str, **context: Any) -> None:
    FALLBACK_COUNTS[kind] += 1
    logger.bind(failure_kind=kind, **context).warning(
        "suggestion generation fell back kind={} total_for_kind={}", kind, FALLBACK_COUNTS[kind]
    )


def image_url_for(category: str, title: str, index: int) -> str:
    keywords = IMAGE_KEYWORDS.get(category, "date,couple")
    seed = hashlib.md5(f"{category}|{title}|{index}".encode("utf-8")).hexdigest()[:10]
    return f"https://source.unsplash.com/800x600/?{quote_plus(keywords)}&sig={seed}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _location_dict(location: Optional[UserLocation]) -> Optional[Dict[str, Any]]:
    if location is None:
        return None
    return {"latitude": location.latitude, "longitude": location.longitude, "city": location.city}


def fallback_suggestions(
    answers: QuizAnswers,
    location: Optional[UserLocation] = None,
    variant: str = "solo",
) -> List[DateSuggestion]:
    """The static three-item set returned whenever the model path fails."""
    created_at = _now_iso()
    out: List[DateSuggestion] = []
    for idx, idea in enumerate(FALLBACK_IDEAS, start=1):
        category = idea["category"] if variant == "solo" else SOLO_TO_ROOM[idea["category"]]
        out.append(
            DateSuggestion(
                id=f"fallback_suggestion_{idx}",
                title=idea["title"],
                description=idea["description"],
                category=category,
                duration=idea["duration"],
                cost=idea["cost"],
                location_type=idea["location_type"],
                generated_by="ai",
                image_url=image_url_for(category, idea["title"], idx),
                created_at=created_at,
                quiz_answers_used=dict(answers),
                user_location=_location_dict(location),
            )
        )
    return out


def _as_str_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


def _duration(raw: Dict[str, Any]) -> str:
    value = raw.get("duration")
    if isinstance(value, str) and value.strip():
        return value.strip()
    minutes = raw.get("duration_minutes")
    if isinstance(minutes, (int, float)) and not isinstance(minutes, bool) and minutes > 0:
        return f"{int(minutes)} min"
    return "non précisé"


def _cost(raw: Dict[str, Any]) -> str:
    value = raw.get("cost")
    if isinstance(value, str) and value.strip().lower() in COSTS:
        return value.strip().lower()
    level = raw.get("cost_level")
    if isinstance(level, int) and level in COST_LEVELS:
        return COST_LEVELS[level]
    return "moderate"


def _location_type(raw: Dict[str, Any]) -> str:
    value = raw.get("location_type")
    if isinstance(value, str) and value.strip().lower() in LOCATION_TYPES:
        return value.strip().lower()
    indoor = raw.get("indoor")
    if isinstance(indoor, bool):
        return "indoor" if indoor else "outdoor"
    return "city"


def shape_suggestions(
    raw_items: Sequence[Any],
    answers: QuizAnswers,
    location: Optional[UserLocation],
    *,
    variant: str = "solo",
    source_ids: Optional[set] = None,
) -> List[DateSuggestion]:
    """Validate raw model items and turn them into DateSuggestion objects.

    Items without a title or with a category outside the variant's
    enumeration are dropped.
    """
    categories = SOLO_CATEGORIES if variant == "solo" else ROOM_CATEGORIES
    created_at = _now_iso()
    out: List[DateSuggestion] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        title = str(raw.get("title") or "").strip()
        category = str(raw.get("category") or "").strip().lower()
        if not title or category not in categories:
            logger.warning("dropping suggestion title={!r} category={!r}", title, category)
            continue
        index = len(out) + 1
        source_id = raw.get("source_id") or raw.get("eventSourceId")
        if source_id is not None and str(source_id) not in (source_ids or set()):
            source_id = None
        area = raw.get("area")
        out.append(
            DateSuggestion(
                id=f"ai_suggestion_{index}",
                title=title,
                description=str(raw.get("description") or "").strip(),
                category=category,
                duration=_duration(raw),
                cost=_cost(raw),
                location_type=_location_type(raw),
                generated_by="ai",
                area=(str(area).strip() if isinstance(area, str) and area.strip() else None),
                image_url=image_url_for(category, title, index),
                created_at=created_at,
                match_score=coerce_score(raw.get("match_score")),
                compatibility_score=(
                    coerce_score(raw.get("compatibility_score")) if variant == "room" else None
                ),
                source_id=(str(source_id) if source_id is not None else None),
                reasons=_as_str_list(raw.get("reasons")),
                constraints=_as_str_list(raw.get("constraints")),
                quiz_answers_used=dict(answers),
                user_location=_location_dict(location),
            )
        )
    return out


def _raw_suggestions(text: str) -> List[Any]:
    try:
        data = parse_json_payload(text)
    except ValueError as exc:
        raise LLMError("malformed_json", str(exc))
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("suggestions"), list):
        return data["suggestions"]
    raise LLMError("missing_suggestions", "parsed response has no 'suggestions' array")


def _pad(items: List[DateSuggestion], fallback: List[DateSuggestion]) -> List[DateSuggestion]:
    if len(items) >= MIN_SUGGESTIONS:
        return items
    logger.info("padding {} model suggestions with fallback ideas", len(items))
    return items + fallback[: MIN_SUGGESTIONS - len(items)]


def generate(
    cfg: Configuration,
    answers: QuizAnswers,
    location: Optional[UserLocation] = None,
    on_progress: Optional[progress.ProgressCallback] = None,
    places: Optional[Sequence[PlaceCandidate]] = None,
) -> List[DateSuggestion]:
    """Ask the model for date ideas; always returns at least three.

    No credential, an HTTP error, a timeout or an unusable response all
    end in the static fallback set.
    """
    report = progress.as_reporter(on_progress)
    report("Localisation...", progress.LOCATING)

    if not cfg.has_llm_credential():
        record_fallback("no_key", provider=cfg.provider)
        report("Finalisation...", progress.FINALIZING)
        return fallback_suggestions(answers, location)

    report("Préparation de la demande...", progress.PROMPTING)
    prompt = build_prompt(answers, location, places)

    try:
        report("Interrogation du modèle...", progress.CALLING_MODEL)
        content = chat_completion(cfg, SYSTEM_PROMPT, prompt)

        report("Analyse de la réponse...", progress.PROCESSING)
        raw_items = _raw_suggestions(content)
        suggestions = shape_suggestions(
            raw_items,
            answers,
            location,
            source_ids={p.id for p in (places or [])},
        )
        if not suggestions:
            raise LLMError("invalid_suggestions", "no suggestion passed validation")
    except LLMError as exc:
        record_fallback(exc.kind, status_code=exc.status_code, detail=str(exc)[:200])
        report("Finalisation...", progress.FINALIZING)
        return fallback_suggestions(answers, location)
    except Exception as exc:
        record_fallback("exception", detail=str(exc)[:200])
        report("Finalisation...", progress.FINALIZING)
        return fallback_suggestions(answers, location)

    report("Finalisation...", progress.FINALIZING)
    mood = normalize_mood(answers.get("mood"))
    if mood is not None:
        matched = sum(1 for s in suggestions if is_allowed(s.category, mood))
        logger.info("model mood adherence mood={} matched={}/{}", mood.value, matched, len(suggestions))
    logger.info("generated {} suggestions from model", len(suggestions))
    return _pad(suggestions, fallback_suggestions(answers, location))


def _rule_compatibility(category: str, context: CoupleContext) -> float:
    moods = [normalize_mood(context.user1.get("mood")), normalize_mood(context.user2.get("mood"))]
    hits = sum(1 for m in moods if m is not None and is_allowed(category, m))
    return {2: 80.0, 1: 55.0}.get(hits, 25.0)


def room_fallback(context: CoupleContext, location: Optional[UserLocation] = None) -> List[DateSuggestion]:
    combined = {f"user1_{k}": v for k, v in context.user1.items()}
    combined.update({f"user2_{k}": v for k, v in context.user2.items()})
    items = fallback_suggestions(combined, location, variant="room")
    for s in items:
        s.compatibility_score = _rule_compatibility(s.category, context)
    return items


def generate_room(
    cfg: Configuration,
    context: CoupleContext,
    location: Optional[UserLocation] = None,
    places: Optional[Sequence[PlaceCandidate]] = None,
    events: Optional[Sequence[EventCandidate]] = None,
) -> List[DateSuggestion]:
    """Couple-mode variant: suggestions carry a compatibility_score."""
    if not cfg.has_llm_credential():
        record_fallback("no_key", provider=cfg.provider, room_id=context.room_id)
        return room_fallback(context, location)

    combined = {f"user1_{k}": v for k, v in context.user1.items()}
    combined.update({f"user2_{k}": v for k, v in context.user2.items()})
    source_ids = {p.id for p in (places or [])} | {e.id for e in (events or [])}
    try:
        content = chat_completion(cfg, ROOM_SYSTEM_PROMPT, build_room_prompt(context, places, events))
        suggestions = shape_suggestions(
            _raw_suggestions(content),
            combined,
            location,
            variant="room",
            source_ids=source_ids,
        )
        if not suggestions:
            raise LLMError("invalid_suggestions", "no suggestion passed validation")
    except LLMError as exc:
        record_fallback(exc.kind, status_code=exc.status_code, room_id=context.room_id)
        return room_fallback(context, location)
    except Exception as exc:
        record_fallback("exception", detail=str(exc)[:200], room_id=context.room_id)
        return room_fallback(context, location)

    logger.info("generated {} room suggestions room_id={}", len(suggestions), context.room_id)
    return _pad(suggestions, room_fallback(context, location))
