from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import requests

from config import Configuration
from models import GeocodeResult, PlaceCandidate

# Geoapify place categories worth suggesting for a date
DATE_CATEGORIES = ",".join(
    [
        "catering.restaurant",
        "catering.cafe",
        "catering.bar",
        "entertainment",
        "leisure.park",
        "tourism.sights",
        "tourism.attraction",
        "natural",
        "beach",
    ]
)


class GeoapifyError(RuntimeError):
    pass


@dataclass
class _RetryPolicy:
    retries: int = 3
    base_delay: float = 0.5


class GeoapifyClient:
    def __init__(self, cfg: Configuration, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.base = cfg.geoapify_base_url.rstrip("/")
        self.session = session or requests.Session()
        self._cache_ttl = 60 * 30  # 30 minutes
        self._cache_max = 128
        self._geocode_cache: OrderedDict[str, Tuple[float, Optional[GeocodeResult]]] = OrderedDict()
        self._places_cache: OrderedDict[str, Tuple[float, List[PlaceCandidate]]] = OrderedDict()

    def _cache_get(self, cache: OrderedDict[str, Tuple[float, Any]], key: str):  # type: ignore[valid-type]
        entry = cache.get(key)
        if not entry:
            return None
        ts, value = entry
        if time.time() - ts > self._cache_ttl:
            cache.pop(key, None)
            return None
        cache.move_to_end(key)
        return value

    def _cache_set(self, cache: OrderedDict[str, Tuple[float, Any]], key: str, value):  # type: ignore[valid-type]
        if len(cache) >= self._cache_max:
            cache.popitem(last=False)
        cache[key] = (time.time(), value)

    def _get(self, path: str, params: dict) -> dict:
        self.cfg.require_geoapify()
        url = f"{self.base}{path}"
        headers = {"Accept": "application/json"}
        params = {**params, "apiKey": self.cfg.geoapify_api_key}
        policy = _RetryPolicy()
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = self.session.get(url, headers=headers, params=params, timeout=self.cfg.geoapify_timeout)
            except requests.RequestException as exc:  # network error
                if attempt <= policy.retries:
                    time.sleep(policy.base_delay * attempt)
                    continue
                raise GeoapifyError(f"request error: {exc}")

            if resp.status_code in (429, 500, 502, 503, 504):
                if attempt <= policy.retries:
                    time.sleep(policy.base_delay * attempt)
                    continue
                snippet = resp.text[:300]
                raise GeoapifyError(f"upstream {resp.status_code}: {snippet}")

            if not resp.ok:
                snippet = resp.text[:300]
                raise GeoapifyError(f"upstream {resp.status_code}: {snippet}")

            try:
                return resp.json()
            except ValueError:
                raise GeoapifyError("invalid json response")

    def geocode(self, text: str, *, lang: str = "fr") -> Optional[GeocodeResult]:
        key = f"geocode:{lang}:{text.strip().lower()}"
        cached = self._cache_get(self._geocode_cache, key)
        if cached is not None:
            return cached
        payload = self._get(
            "/v1/geocode/search",
            {"text": text, "limit": 1, "lang": lang},
        )
        features = payload.get("features") or []
        if not features:
            return None
        props = (features[0].get("properties") or {})
        lon = props.get("lon")
        lat = props.get("lat")
        if lon is None or lat is None:
            self._cache_set(self._geocode_cache, key, None)
            return None
        display_name = props.get("city") or props.get("formatted") or props.get("name")
        result = GeocodeResult(
            lon=float(lon),
            lat=float(lat),
            display_name=(str(display_name) if display_name else None),
        )
        self._cache_set(self._geocode_cache, key, result)
        return result

    def _parse_place(self, feat: dict) -> Optional[PlaceCandidate]:
        props = feat.get("properties") or {}
        place_id = props.get("place_id")
        name = props.get("name") or props.get("address_line1")
        lon = props.get("lon")
        lat = props.get("lat")
        if lon is None or lat is None:
            geom = feat.get("geometry") or {}
            coords = (geom.get("coordinates") or [None, None])
            if isinstance(coords, list) and len(coords) >= 2:
                lon, lat = coords[0], coords[1]
        # unnamed POIs are useless as date venues
        if not place_id or not name or lon is None or lat is None:
            return None
        categories: list[str] = []
        if isinstance(props.get("categories"), list):
            categories = [str(x) for x in props["categories"]]
        address = props.get("formatted") or props.get("address_line2")
        return PlaceCandidate(
            id=str(place_id),
            name=str(name),
            lat=float(lat),
            lon=float(lon),
            categories=categories,
            address=(str(address) if address else None),
            website=(str(props["website"]) if props.get("website") else None),
            opening_hours=(str(props["opening_hours"]) if props.get("opening_hours") else None),
        )

    def _parse_places(self, features: List[dict]) -> List[PlaceCandidate]:
        results: list[PlaceCandidate] = []
        for feat in features:
            place = self._parse_place(feat)
            if place is not None:
                results.append(place)
        return results

    def places_circle(
        self,
        lon: float,
        lat: float,
        *,
        radius_m: float,
        categories: Optional[str] = DATE_CATEGORIES,
        limit: int = 20,
        lang: str = "fr",
    ) -> List[PlaceCandidate]:
        radius_m = max(radius_m, 100.0)
        key = f"circle:{categories or '*'}:{lang}:{lon:.4f},{lat:.4f}:{radius_m:.0f}:{limit}"
        cached = self._cache_get(self._places_cache, key)
        if cached is not None:
            return list(cached)
        params = {
            "filter": f"circle:{lon},{lat},{radius_m:.0f}",
            "bias": f"proximity:{lon},{lat}",
            "limit": limit,
            "lang": lang,
        }
        if categories:
            params["categories"] = categories
        payload = self._get("/v2/places", params)
        features = payload.get("features") or []
        results = self._parse_places(features)
        self._cache_set(self._places_cache, key, list(results))
        return results

    def place_details(self, place_id: str, *, lang: str = "fr") -> Optional[PlaceCandidate]:
        payload = self._get("/v2/place-details", {"id": place_id, "lang": lang})
        for feat in payload.get("features") or []:
            place = self._parse_place(feat)
            if place is not None:
                return place
        return None
