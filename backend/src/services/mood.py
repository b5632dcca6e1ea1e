from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional

from loguru import logger

from models import DateSuggestion, MoodPartition
from utils import fold_text


class Mood(str, Enum):
    ROMANTIC = "romantic"
    FUN = "fun"
    RELAXED = "relaxed"
    ADVENTUROUS = "adventurous"
    CALM = "calme"


# keys are folded (lowercase, no accents)
MOOD_SYNONYMS: Dict[str, Mood] = {
    "romantic": Mood.ROMANTIC,
    "romantique": Mood.ROMANTIC,
    "amoureux": Mood.ROMANTIC,
    "fun": Mood.FUN,
    "amusant": Mood.FUN,
    "festif": Mood.FUN,
    "happy": Mood.FUN,
    "heureux": Mood.FUN,
    "excited": Mood.FUN,
    "excite": Mood.FUN,
    "relaxed": Mood.RELAXED,
    "relax": Mood.RELAXED,
    "relaxe": Mood.RELAXED,
    "detendu": Mood.RELAXED,
    "ambiance detendu": Mood.RELAXED,
    "ambiance detendue": Mood.RELAXED,
    "calme": Mood.CALM,
    "quiet": Mood.CALM,
    "tranquille": Mood.CALM,
    "adventurous": Mood.ADVENTUROUS,
    "adventure": Mood.ADVENTUROUS,
    "aventure": Mood.ADVENTUROUS,
    "aventureux": Mood.ADVENTUROUS,
    "curious": Mood.ADVENTUROUS,
    "curieux": Mood.ADVENTUROUS,
}

# covers both the solo and the room category vocabularies
ALLOWED_CATEGORIES: Dict[Mood, FrozenSet[str]] = {
    Mood.ROMANTIC: frozenset({"romantic", "food", "relax"}),
    Mood.FUN: frozenset({"fun", "culture", "food", "surprise"}),
    Mood.RELAXED: frozenset({"relaxed", "relax", "food", "culture"}),
    Mood.ADVENTUROUS: frozenset({"adventurous", "active", "outdoor", "surprise"}),
    Mood.CALM: frozenset({"relax", "culture"}),
}


def normalize_mood(value: Optional[str]) -> Optional[Mood]:
    if not value:
        return None
    return MOOD_SYNONYMS.get(fold_text(value))


def allowed_categories(mood: Optional[Mood]) -> Optional[FrozenSet[str]]:
    if mood is None:
        return None
    return ALLOWED_CATEGORIES[mood]


def is_allowed(category: Optional[str], mood: Optional[Mood]) -> bool:
    allowed = allowed_categories(mood)
    if allowed is None:
        return True
    return (category or "").strip().lower() in allowed


def enforce_mood(suggestions: Iterable[DateSuggestion], requested_mood: Optional[str]) -> MoodPartition:
    """Split suggestions by whether their category suits the requested mood.

    Nothing is dropped: off-mood suggestions go to `relaxed`. An absent or
    unknown mood lets everything through as allowed.
    """
    items = list(suggestions)
    mood = normalize_mood(requested_mood)
    if mood is None:
        if requested_mood:
            logger.info("mood not recognised, passing through mood={!r}", requested_mood)
        return MoodPartition(allowed=items, relaxed=[])

    partition = MoodPartition()
    for s in items:
        if is_allowed(s.category, mood):
            partition.allowed.append(s)
        else:
            partition.relaxed.append(s)

    total = len(items)
    matched = len(partition.allowed)
    logger.bind(mood=mood.value, matched=matched, total=total).info(
        "mood compliance mood={} matched={}/{} rate={:.2f}",
        mood.value,
        matched,
        total,
        (matched / total) if total else 1.0,
    )
    return partition
