from unittest.mock import MagicMock

import pytest

from config import Configuration
from models import GeocodeResult, PlaceCandidate
from services.geo import find_nearby, radius_for_answers, resolve_city
from services.geoapify import GeoapifyError


def _places(n: int):
    return [PlaceCandidate(id=f"p{i}", name=f"Place {i}", lat=0.0, lon=0.0) for i in range(n)]


def test_resolve_city_returns_location():
    client = MagicMock()
    client.geocode.return_value = GeocodeResult(lon=4.83, lat=45.76, display_name="Lyon")
    loc = resolve_city(Configuration(geoapify_api_key="k"), "lyon", client=client)
    assert loc is not None
    assert (loc.latitude, loc.longitude, loc.city) == (45.76, 4.83, "Lyon")


def test_resolve_city_degrades_to_none():
    client = MagicMock()
    client.geocode.side_effect = GeoapifyError("upstream 500")
    assert resolve_city(Configuration(geoapify_api_key="k"), "Lyon", client=client) is None
    client.geocode.side_effect = None
    client.geocode.return_value = None
    assert resolve_city(Configuration(geoapify_api_key="k"), "Nowhere", client=client) is None
    assert resolve_city(Configuration(), "   ") is None


def test_resolve_city_without_key_is_none():
    # the real client raises ValueError for the missing key
    assert resolve_city(Configuration(geoapify_api_key=None), "Lyon") is None


def test_find_nearby_caps_at_limit():
    client = MagicMock()
    client.places_circle.return_value = _places(8)
    cfg = Configuration(geoapify_api_key="k")
    out = list(find_nearby(cfg, 45.0, 4.0, 5000, 3, client=client))
    assert [p.id for p in out] == ["p0", "p1", "p2"]


def test_find_nearby_empty_on_provider_error():
    client = MagicMock()
    client.places_circle.side_effect = GeoapifyError("boom")
    cfg = Configuration(geoapify_api_key="k")
    assert list(find_nearby(cfg, 45.0, 4.0, 5000, 5, client=client)) == []


def test_find_nearby_missing_key_is_hard_error():
    gen = find_nearby(Configuration(geoapify_api_key=None), 45.0, 4.0, 5000, 5)
    with pytest.raises(ValueError):
        next(gen)


def test_radius_for_answers():
    cfg = Configuration()
    assert radius_for_answers(cfg, {"mobility_radius": "walking"}) == 1500
    assert radius_for_answers(cfg, {}) == cfg.default_radius_m
