from unittest.mock import MagicMock

import pytest

from config import Configuration
from services.openagenda import OpenAgendaClient, OpenAgendaError, fetch_events_near


def _session(status: int = 200, payload=None) -> MagicMock:
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.text = "err"
    resp.json.return_value = payload
    session = MagicMock()
    session.get.return_value = resp
    return session


PAYLOAD = {
    "events": [
        {
            "uid": 1,
            "title": {"fr": "Concert au parc", "en": "Park concert"},
            "location": {"latitude": 48.857, "longitude": 2.353, "city": "Paris"},
            "timing": {"begin": "2026-10-20T19:00:00+0200"},
            "free": True,
        },
        {
            "uid": 2,
            "title": {"fr": "Festival à Lyon"},
            "location": {"latitude": 45.76, "longitude": 4.83, "city": "Lyon"},
        },
        {"uid": 3, "title": "Sans lieu"},
    ]
}


def test_events_near_filters_by_distance():
    cfg = Configuration(openagenda_api_key="k")
    client = OpenAgendaClient(cfg, session=_session(200, PAYLOAD))
    events = client.events_near(48.8566, 2.3522, radius_m=10000, limit=20)
    assert [e.id for e in events] == ["1"]
    assert events[0].title == "Concert au parc"
    assert events[0].free is True


def test_http_error_raises_and_helper_degrades():
    cfg = Configuration(openagenda_api_key="k")
    client = OpenAgendaClient(cfg, session=_session(500))
    with pytest.raises(OpenAgendaError):
        client.events_by_city("Paris")
    assert fetch_events_near(cfg, 48.0, 2.0, 1000, 5, client=client) == []


def test_missing_key_is_hard_error():
    client = OpenAgendaClient(Configuration(openagenda_api_key=None), session=MagicMock())
    with pytest.raises(ValueError):
        client.events_near(48.0, 2.0)


def test_event_details_unwraps_event_key():
    payload = {"event": {"uid": 42, "title": {"fr": "Expo photo"}, "location": {"city": "Nantes"}}}
    client = OpenAgendaClient(Configuration(openagenda_api_key="k"), session=_session(200, payload))
    event = client.event_details("42")
    assert event is not None
    assert (event.id, event.title, event.city) == ("42", "Expo photo", "Nantes")
