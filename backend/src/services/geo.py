from __future__ import annotations

from typing import Iterator, Optional

from loguru import logger

from config import Configuration
from models import PlaceCandidate, QuizAnswers, UserLocation
from services.geoapify import GeoapifyClient, GeoapifyError

# mobility_radius quiz value -> search radius in meters
MOBILITY_RADIUS_M = {
    "walking": 1500,
    "nearby": 5000,
    "city": 10000,
    "region": 30000,
}


def radius_for_answers(cfg: Configuration, answers: QuizAnswers) -> int:
    value = (answers.get("mobility_radius") or "").strip().lower()
    return MOBILITY_RADIUS_M.get(value, cfg.default_radius_m)


def resolve_city(
    cfg: Configuration,
    name: str,
    client: Optional[GeoapifyClient] = None,
) -> Optional[UserLocation]:
    """Resolve a free-text city name to coordinates.

    Never raises: provider errors and a missing key both give None.
    """
    if not name or not name.strip():
        return None
    client = client or GeoapifyClient(cfg)
    try:
        result = client.geocode(name.strip(), lang=cfg.lang_default)
    except (GeoapifyError, ValueError) as exc:
        logger.warning("geocode failed city={} err={}", name, exc)
        return None
    if result is None:
        logger.info("geocode no match city={}", name)
        return None
    return UserLocation(
        latitude=result.lat,
        longitude=result.lon,
        city=result.display_name or name.strip(),
    )


def find_nearby(
    cfg: Configuration,
    lat: float,
    lon: float,
    radius_m: int,
    limit: int,
    client: Optional[GeoapifyClient] = None,
) -> Iterator[PlaceCandidate]:
    """Yield at most `limit` points of interest around (lat, lon).

    Provider errors end the sequence early. A missing API key raises
    ValueError on first iteration.
    """
    if limit <= 0:
        return
    cfg.require_geoapify()
    client = client or GeoapifyClient(cfg)
    try:
        places = client.places_circle(lon, lat, radius_m=radius_m, limit=limit, lang=cfg.lang_default)
    except GeoapifyError as exc:
        logger.warning("place search failed lat={} lon={} err={}", lat, lon, exc)
        return
    for place in places[:limit]:
        yield place
