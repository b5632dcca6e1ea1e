"""Prompt templates for date suggestion generation.

Everything here is pure: the same answers always render the same text.
"""

from __future__ import annotations

import json
from typing import Dict, List, Optional, Sequence

from models import (
    COSTS,
    LOCATION_TYPES,
    ROOM_CATEGORIES,
    SOLO_CATEGORIES,
    CoupleContext,
    EventCandidate,
    PlaceCandidate,
    QuizAnswers,
    UserLocation,
)

UNSPECIFIED = "non spécifié"
SUGGESTION_COUNT = 5

QUESTION_LABELS: Dict[str, str] = {
    "mood": "Humeur",
    "activity_type": "Type d'activité",
    "location": "Cadre souhaité",
    "budget": "Budget",
    "duration": "Durée disponible",
    "mobility_radius": "Rayon de déplacement",
}

ANSWER_PHRASES: Dict[str, Dict[str, str]] = {
    "mood": {
        "romantic": "d'humeur romantique",
        "fun": "envie de s'amuser",
        "relaxed": "envie de se détendre",
        "adventurous": "envie d'aventure",
        "happy": "de bonne humeur, envie de s'amuser",
        "excited": "excités, envie de s'amuser",
        "curious": "curieux, envie de découvrir",
    },
    "activity_type": {
        "adventure": "une activité d'aventure",
        "relaxation": "une activité de détente",
        "culture": "une sortie culturelle",
        "food": "une expérience gastronomique",
        "sport": "une activité sportive",
    },
    "location": {
        "home": "à la maison",
        "city": "en ville",
        "nature": "dans la nature",
        "water": "près de l'eau",
        "anywhere": "peu importe le lieu",
    },
    "budget": {
        "free": "gratuit",
        "budget": "économique (moins de 20 € par personne)",
        "moderate": "modéré (20 à 60 € par personne)",
        "premium": "premium (plus de 60 € par personne)",
        "any": "peu importe le budget",
    },
    "duration": {
        "short": "environ 30 minutes",
        "medium": "une à deux heures",
        "half_day": "une demi-journée",
        "full_day": "une journée entière",
        "weekend": "un week-end",
    },
    "mobility_radius": {
        "walking": "à distance de marche",
        "nearby": "dans les environs (quelques kilomètres)",
        "city": "dans toute la ville",
        "region": "dans la région",
    },
}

SUGGESTION_FIELDS: Dict[str, str] = {
    "title": "titre court",
    "description": "une ou deux phrases",
    "duration": "durée estimée, ex. 2h",
    "category": "|".join(SOLO_CATEGORIES),
    "cost": "|".join(COSTS),
    "location_type": "|".join(LOCATION_TYPES),
}
AREA_FIELD = ("area", "quartier ou zone de la ville")

SYSTEM_PROMPT = (
    "Tu es un assistant qui propose des idées de rendez-vous pour des couples.\n"
    "Règles humeur -> catégories :\n"
    "- romantique : category romantic\n"
    "- fun / amusant : category fun\n"
    "- détendu / calme : category relaxed\n"
    "- aventure : category adventurous\n"
    "Respecte strictement l'humeur demandée : chaque suggestion doit utiliser la catégorie correspondante.\n"
    "Règles budget -> cost (par personne) :\n"
    "- gratuit ou économique (moins de 20 €) : low\n"
    "- modéré (20 à 60 €) : moderate\n"
    "- premium (60 à 150 €) : high\n"
    "- au-delà de 150 € : luxury\n"
    "N'invente pas de faits (adresses, horaires, noms de lieux inexistants).\n"
    "Réponds uniquement avec un objet JSON valide de la forme "
    "{\"suggestions\": [...]}, sans markdown ni commentaire."
)

ROOM_SYSTEM_PROMPT = (
    "Tu es un assistant spécialisé dans les idées de rendez-vous pour couples. "
    "Tu reçois un objet \"coupleContext\" avec les préférences des deux partenaires "
    "(user1, user2) et des informations communes (city, roomId), ainsi que des listes "
    "facultatives \"places\" et \"events\" issues de sources réelles.\n"
    "Objectif : trouver des idées qui plaisent aux DEUX partenaires.\n"
    "Règles :\n"
    "1) Priorise la compatibilité : cherche un compromis quand les humeurs ou budgets diffèrent.\n"
    "2) N'utilise un lieu ou un événement que s'il figure dans \"places\" ou \"events\" ; "
    "indique alors son identifiant dans \"source_id\".\n"
    "3) N'invente pas de faits ; si une information est incertaine, ajoute la contrainte "
    "\"à vérifier auprès de la source\".\n"
    "4) Un compatibility_score de 80 à 100 est réservé aux idées qui plaisent vraiment aux deux.\n"
    "Réponds uniquement avec un objet JSON valide de la forme {\"suggestions\": [...]} où "
    "chaque suggestion contient : title, description, duration, category (une parmi "
    + ", ".join(ROOM_CATEGORIES)
    + "), cost ("
    + "|".join(COSTS)
    + "), location_type ("
    + "|".join(LOCATION_TYPES)
    + "), area, source_id (facultatif), reasons (liste), constraints (liste), "
    "match_score (0-100), compatibility_score (0-100)."
)


def render_answer(key: str, value: Optional[str]) -> str:
    if not value:
        return UNSPECIFIED
    return ANSWER_PHRASES.get(key, {}).get(str(value).strip().lower(), UNSPECIFIED)


def _place_line(place: PlaceCandidate) -> str:
    cats = ", ".join(place.categories[:3])
    return f"- [{place.id}] {place.name}" + (f" ({cats})" if cats else "")


def _json_shape(with_area: bool) -> str:
    fields = dict(SUGGESTION_FIELDS)
    if with_area:
        fields[AREA_FIELD[0]] = AREA_FIELD[1]
    example = {"suggestions": [fields]}
    return json.dumps(example, ensure_ascii=False)


def build_prompt(
    answers: QuizAnswers,
    location: Optional[UserLocation] = None,
    places: Optional[Sequence[PlaceCandidate]] = None,
) -> str:
    lines: List[str] = [
        f"Propose exactement {SUGGESTION_COUNT} idées de rendez-vous pour un couple avec ces préférences :"
    ]
    for key, label in QUESTION_LABELS.items():
        lines.append(f"- {label} : {render_answer(key, answers.get(key))}")
    if location is not None:
        lines.append(
            f"- Localisation : {location.label()} "
            f"(latitude {location.latitude:.4f}, longitude {location.longitude:.4f})"
        )
    if location is not None and places:
        lines.append("Lieux réels à proximité (tu peux t'en inspirer) :")
        lines.extend(_place_line(p) for p in places)
        lines.append(
            "Si une idée s'appuie sur l'un de ces lieux, ajoute son identifiant dans un champ facultatif \"source_id\"."
        )
    lines.append("Consignes :")
    lines.append("- Respecte strictement l'humeur et le budget indiqués.")
    if location is not None:
        lines.append(
            "- Propose des activités réalisables près de cette localisation et précise le quartier ou la zone dans le champ \"area\"."
        )
    lines.append(f"Réponds uniquement avec ce format JSON ({SUGGESTION_COUNT} éléments dans \"suggestions\") :")
    lines.append(_json_shape(with_area=location is not None))
    return "\n".join(lines)


def build_room_prompt(
    context: CoupleContext,
    places: Optional[Sequence[PlaceCandidate]] = None,
    events: Optional[Sequence[EventCandidate]] = None,
) -> str:
    payload = {
        "coupleContext": context.as_prompt_dict(),
        "places": [
            {"id": p.id, "name": p.name, "categories": p.categories[:3], "lat": p.lat, "lon": p.lon}
            for p in (places or [])
        ],
        "events": [
            {"id": e.id, "title": e.title, "begin": e.begin, "city": e.city, "free": e.free}
            for e in (events or [])
        ],
        "count": SUGGESTION_COUNT,
    }
    return json.dumps(payload, ensure_ascii=False, sort_keys=True)
