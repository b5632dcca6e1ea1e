from __future__ import annotations

from typing import Any, Iterable, Optional

from models import CompatibilityBuckets, DateSuggestion

HIGH_THRESHOLD = 70.0
MEDIUM_THRESHOLD = 40.0


def coerce_score(value: Any) -> Optional[float]:
    """Clamp a model-provided score into [0, 100]; non-numeric gives None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or value != value:  # NaN
        return None
    return max(0.0, min(100.0, float(value)))


def tier_for(score: Optional[float]) -> str:
    s = score if score is not None else 0.0
    if s >= HIGH_THRESHOLD:
        return "high"
    if s >= MEDIUM_THRESHOLD:
        return "medium"
    return "low"


def bucket(suggestions: Iterable[DateSuggestion]) -> CompatibilityBuckets:
    """Partition by compatibility_score; unscored suggestions count as 0."""
    out = CompatibilityBuckets()
    for s in suggestions:
        out.all.append(s)
        getattr(out, tier_for(s.compatibility_score)).append(s)
    return out
