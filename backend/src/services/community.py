from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from config import Configuration
from models import DateSuggestion, QuizAnswers
from services.mood import is_allowed, normalize_mood

# budget quiz value -> acceptable cost levels
BUDGET_COSTS: Dict[str, set] = {
    "free": {"low"},
    "budget": {"low"},
    "moderate": {"low", "moderate"},
    "premium": {"moderate", "high", "luxury"},
}

COMMUNITY_IDEAS: List[Dict[str, Any]] = [
    {
        "id": "community_1",
        "title": "Pique-nique aux étoiles",
        "description": "Loin des lumières de la ville, une couverture, quelques collations et le ciel nocturne rien que pour vous deux.",
        "category": "romantic",
        "duration": "1h30",
        "cost": "low",
        "location_type": "countryside",
    },
    {
        "id": "community_2",
        "title": "Cours de cuisine à deux",
        "description": "Apprenez à préparer un nouveau plat ensemble dans un atelier local, puis dégustez le résultat.",
        "category": "fun",
        "duration": "2h30",
        "cost": "moderate",
        "location_type": "city",
    },
    {
        "id": "community_3",
        "title": "Randonnée en montagne",
        "description": "Un sentier avec vue, un pique-nique dans le sac et le plaisir de l'effort partagé.",
        "category": "adventurous",
        "duration": "4h",
        "cost": "low",
        "location_type": "countryside",
    },
    {
        "id": "community_4",
        "title": "Après-midi au spa",
        "description": "Hammam, sauna et massage en duo pour décrocher complètement.",
        "category": "relaxed",
        "duration": "3h",
        "cost": "high",
        "location_type": "indoor",
    },
    {
        "id": "community_5",
        "title": "Escape game",
        "description": "Une heure pour résoudre les énigmes ensemble et tester votre esprit d'équipe.",
        "category": "fun",
        "duration": "1h30",
        "cost": "moderate",
        "location_type": "indoor",
    },
    {
        "id": "community_6",
        "title": "Visite d'un musée en nocturne",
        "description": "Profitez d'une ouverture tardive pour découvrir une exposition dans le calme.",
        "category": "relaxed",
        "duration": "2h",
        "cost": "low",
        "location_type": "indoor",
    },
    {
        "id": "community_7",
        "title": "Dîner sur une péniche",
        "description": "Un repas au fil de l'eau avec vue sur la ville illuminée.",
        "category": "romantic",
        "duration": "2h30",
        "cost": "luxury",
        "location_type": "city",
    },
    {
        "id": "community_8",
        "title": "Canoë sur la rivière",
        "description": "Louez un canoë pour la matinée et explorez les berges à votre rythme.",
        "category": "adventurous",
        "duration": "3h",
        "cost": "moderate",
        "location_type": "outdoor",
    },
]


def _load_catalogue(path: Optional[str]) -> List[Dict[str, Any]]:
    if not path:
        return COMMUNITY_IDEAS
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"community catalogue must be a JSON list: {path}")
    return [item for item in data if isinstance(item, dict)]


def _to_suggestion(item: Dict[str, Any]) -> DateSuggestion:
    return DateSuggestion(
        id=str(item["id"]),
        title=str(item["title"]),
        description=str(item.get("description") or ""),
        category=str(item.get("category") or "").lower(),
        duration=str(item.get("duration") or "non précisé"),
        cost=str(item.get("cost") or "moderate"),
        location_type=str(item.get("location_type") or "city"),
        generated_by="community",
        area=item.get("area"),
        image_url=item.get("image_url"),
        created_at=item.get("created_at"),
    )


def fetch_existing_ideas(cfg: Configuration, answers: QuizAnswers, limit: int = 3) -> List[DateSuggestion]:
    """Up to `limit` community ideas matching the mood and budget.

    Best-effort: a broken catalogue gives an empty list.
    """
    try:
        catalogue = _load_catalogue(cfg.community_ideas_path)
        mood = normalize_mood(answers.get("mood"))
        costs = BUDGET_COSTS.get((answers.get("budget") or "").strip().lower())
        out: List[DateSuggestion] = []
        for item in catalogue:
            idea = _to_suggestion(item)
            if not is_allowed(idea.category, mood):
                continue
            if costs is not None and idea.cost not in costs:
                continue
            out.append(idea)
            if len(out) >= limit:
                break
        return out
    except Exception as exc:
        logger.warning("community ideas lookup failed path={} err={}", cfg.community_ideas_path, exc)
        return []
