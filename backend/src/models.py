"""Data models for the date idea backend."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

# question key -> selected value, e.g. {"mood": "romantic", "budget": "moderate"}
QuizAnswers = Dict[str, str]

SOLO_CATEGORIES = ("romantic", "fun", "relaxed", "adventurous")
ROOM_CATEGORIES = ("romantic", "outdoor", "food", "culture", "active", "relax", "surprise")
COSTS = ("low", "moderate", "high", "luxury")
LOCATION_TYPES = ("indoor", "outdoor", "city", "countryside")


@dataclass
class GeocodeResult:
    lon: float
    lat: float
    display_name: Optional[str] = None


@dataclass
class UserLocation:
    latitude: float
    longitude: float
    city: Optional[str] = None

    def label(self) -> str:
        if self.city:
            return self.city
        return f"{self.latitude:.4f}, {self.longitude:.4f}"


@dataclass
class PlaceCandidate:
    id: str
    name: str
    lat: float
    lon: float
    categories: list[str] = field(default_factory=list)
    address: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[str] = None


@dataclass
class EventCandidate:
    id: str
    title: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    city: Optional[str] = None
    address: Optional[str] = None
    begin: Optional[str] = None
    end: Optional[str] = None
    free: Optional[bool] = None
    categories: list[str] = field(default_factory=list)


@dataclass
class DateSuggestion:
    id: str
    title: str
    description: str
    category: str
    duration: str
    cost: str
    location_type: str
    generated_by: str = "ai"  # ai | community | mock
    area: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[str] = None
    match_score: Optional[float] = None
    compatibility_score: Optional[float] = None
    source_id: Optional[str] = None
    reasons: list[str] = field(default_factory=list)
    constraints: list[str] = field(default_factory=list)
    quiz_answers_used: Optional[Dict[str, Any]] = None
    user_location: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CoupleContext:
    user1: QuizAnswers
    user2: QuizAnswers
    room_id: str
    city: Optional[str] = None

    def as_prompt_dict(self) -> Dict[str, Any]:
        return {
            "user1": dict(self.user1),
            "user2": dict(self.user2),
            "common": {"city": self.city, "roomId": self.room_id},
        }


@dataclass
class MoodPartition:
    allowed: List[DateSuggestion] = field(default_factory=list)
    relaxed: List[DateSuggestion] = field(default_factory=list)


@dataclass
class CompatibilityBuckets:
    high: List[DateSuggestion] = field(default_factory=list)
    medium: List[DateSuggestion] = field(default_factory=list)
    low: List[DateSuggestion] = field(default_factory=list)
    all: List[DateSuggestion] = field(default_factory=list)
