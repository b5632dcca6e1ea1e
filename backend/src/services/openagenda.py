from __future__ import annotations

from typing import Any, List, Optional

import requests
from loguru import logger

from config import Configuration
from models import EventCandidate
from utils import haversine_km


class OpenAgendaError(RuntimeError):
    pass


def _localized(value: Any, lang: str) -> Optional[str]:
    # OpenAgenda returns multilingual fields as {"fr": "...", "en": "..."}
    if value is None:
        return None
    if isinstance(value, dict):
        text = value.get(lang) or next((v for v in value.values() if v), None)
        return str(text) if text else None
    text = str(value).strip()
    return text or None


def _parse_event(raw: dict, lang: str) -> Optional[EventCandidate]:
    uid = raw.get("uid")
    title = _localized(raw.get("title"), lang)
    if uid is None or not title:
        return None
    loc = raw.get("location") or {}
    timing = raw.get("timing") or raw.get("firstTiming") or {}
    lat = loc.get("latitude")
    lon = loc.get("longitude")
    categories = raw.get("categories") or raw.get("keywords") or []
    if isinstance(categories, dict):
        categories = categories.get(lang) or []
    return EventCandidate(
        id=str(uid),
        title=title,
        lat=(float(lat) if isinstance(lat, (int, float)) else None),
        lon=(float(lon) if isinstance(lon, (int, float)) else None),
        city=loc.get("city"),
        address=loc.get("address"),
        begin=timing.get("begin") if isinstance(timing, dict) else None,
        end=timing.get("end") if isinstance(timing, dict) else None,
        free=raw.get("free") if isinstance(raw.get("free"), bool) else None,
        categories=[str(c) for c in categories if c] if isinstance(categories, list) else [],
    )


class OpenAgendaClient:
    def __init__(self, cfg: Configuration, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.base = cfg.openagenda_base_url.rstrip("/")
        self.session = session or requests.Session()

    def _get(self, path: str, params: dict) -> dict:
        self.cfg.require_openagenda()
        url = f"{self.base}{path}"
        params = {**params, "key": self.cfg.openagenda_api_key}
        try:
            resp = self.session.get(url, params=params, timeout=self.cfg.openagenda_timeout)
        except requests.RequestException as exc:
            raise OpenAgendaError(f"request error: {exc}")
        if not resp.ok:
            raise OpenAgendaError(f"upstream {resp.status_code}: {resp.text[:300]}")
        try:
            return resp.json()
        except ValueError:
            raise OpenAgendaError("invalid json response")

    def _parse_events(self, payload: dict) -> List[EventCandidate]:
        out: List[EventCandidate] = []
        for raw in payload.get("events") or []:
            if not isinstance(raw, dict):
                continue
            event = _parse_event(raw, self.cfg.lang_default)
            if event is not None:
                out.append(event)
        return out

    def events_near(self, lat: float, lon: float, *, radius_m: float = 10000, limit: int = 20) -> List[EventCandidate]:
        """Events within radius_m of the point.

        The API has no coordinate search, so a page of events is fetched
        and filtered locally by distance.
        """
        payload = self._get("/events", {"limit": limit, "offset": 0})
        radius_km = radius_m / 1000.0
        nearby = [
            ev
            for ev in self._parse_events(payload)
            if ev.lat is not None and ev.lon is not None
            and haversine_km(lat, lon, ev.lat, ev.lon) <= radius_km
        ]
        return nearby[:limit]

    def events_by_city(self, city: str, *, limit: int = 20) -> List[EventCandidate]:
        payload = self._get("/events", {"q": city, "limit": limit})
        return self._parse_events(payload)[:limit]

    def event_details(self, event_id: str) -> Optional[EventCandidate]:
        payload = self._get(f"/events/{event_id}", {})
        raw = payload.get("event") if isinstance(payload.get("event"), dict) else payload
        return _parse_event(raw, self.cfg.lang_default)


def fetch_events_near(
    cfg: Configuration,
    lat: float,
    lon: float,
    radius_m: float,
    limit: int,
    client: Optional[OpenAgendaClient] = None,
) -> List[EventCandidate]:
    """Best-effort event lookup; provider errors give an empty list."""
    client = client or OpenAgendaClient(cfg)
    try:
        return client.events_near(lat, lon, radius_m=radius_m, limit=limit)
    except OpenAgendaError as exc:
        logger.warning("event search failed lat={} lon={} err={}", lat, lon, exc)
        return []
