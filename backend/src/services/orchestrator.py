from __future__ import annotations

from typing import List, Optional

from loguru import logger

from config import Configuration
from models import (
    CompatibilityBuckets,
    CoupleContext,
    DateSuggestion,
    EventCandidate,
    PlaceCandidate,
    QuizAnswers,
    UserLocation,
)
from services import progress
from services.community import fetch_existing_ideas
from services.compatibility import bucket
from services.generator import fallback_suggestions, generate, generate_room
from services.geo import find_nearby, radius_for_answers, resolve_city
from services.openagenda import fetch_events_near

EXISTING_IDEAS_LIMIT = 3


class MissingPartnerAnswers(ValueError):
    pass


def _nearby_places(cfg: Configuration, location: UserLocation, radius_m: int) -> List[PlaceCandidate]:
    try:
        return list(find_nearby(cfg, location.latitude, location.longitude, radius_m, cfg.places_limit))
    except Exception as exc:
        logger.warning("nearby places unavailable city={} err={}", location.city, exc)
        return []


def _nearby_events(cfg: Configuration, location: UserLocation, radius_m: int) -> List[EventCandidate]:
    try:
        return fetch_events_near(cfg, location.latitude, location.longitude, radius_m, cfg.events_limit)
    except Exception as exc:
        logger.warning("nearby events unavailable city={} err={}", location.city, exc)
        return []


def get_personalized_ideas(
    cfg: Configuration,
    answers: QuizAnswers,
    city_name: Optional[str] = None,
    on_progress: Optional[progress.ProgressCallback] = None,
) -> List[DateSuggestion]:
    """Model suggestions first, then up to three community ideas. Never raises."""
    report = progress.as_reporter(on_progress)
    location: Optional[UserLocation] = None
    try:
        if city_name:
            report(f"Localisation de {city_name}...", progress.LOCATING)
            location = resolve_city(cfg, city_name)

        places: List[PlaceCandidate] = []
        if location is not None:
            report("Recherche de lieux à proximité...", progress.PLACES)
            places = _nearby_places(cfg, location, radius_for_answers(cfg, answers))

        suggestions = generate(cfg, answers, location, report, places)
        existing = fetch_existing_ideas(cfg, answers, limit=EXISTING_IDEAS_LIMIT)
    except Exception as exc:
        logger.exception("personalized ideas failed, using fallback: {}", exc)
        report("Terminé", progress.DONE)
        return fallback_suggestions(answers, location)

    report("Terminé", progress.DONE)
    logger.info(
        "personalized ideas city={} located={} places={} ai={} community={}",
        city_name,
        location is not None,
        len(places),
        len(suggestions),
        len(existing),
    )
    return suggestions + existing


def generate_room_ideas(
    cfg: Configuration,
    user1_answers: Optional[QuizAnswers],
    user2_answers: Optional[QuizAnswers],
    room_id: Optional[str],
    city: Optional[str] = None,
) -> CompatibilityBuckets:
    """Couple-mode suggestions bucketed by compatibility.

    Raises MissingPartnerAnswers before any provider call when either
    partner's answers or the room id are missing.
    """
    missing = [
        name
        for name, value in (("user1Answers", user1_answers), ("user2Answers", user2_answers), ("roomId", room_id))
        if not value
    ]
    if missing:
        raise MissingPartnerAnswers(f"missing required fields: {', '.join(missing)}")

    context = CoupleContext(user1=dict(user1_answers), user2=dict(user2_answers), room_id=str(room_id), city=city)

    location = resolve_city(cfg, city) if city else None
    places: List[PlaceCandidate] = []
    events: List[EventCandidate] = []
    if location is not None:
        radius_m = min(radius_for_answers(cfg, context.user1), radius_for_answers(cfg, context.user2))
        places = _nearby_places(cfg, location, radius_m)
        events = _nearby_events(cfg, location, radius_m)

    suggestions = generate_room(cfg, context, location, places, events)
    buckets = bucket(suggestions)
    logger.info(
        "room ideas room_id={} high={} medium={} low={}",
        context.room_id,
        len(buckets.high),
        len(buckets.medium),
        len(buckets.low),
    )
    return buckets
