from config import Configuration
from services.community import fetch_existing_ideas
from services.mood import ALLOWED_CATEGORIES, Mood


def test_filters_by_mood_and_caps_at_three():
    ideas = fetch_existing_ideas(Configuration(), {"mood": "romantic"})
    assert 0 < len(ideas) <= 3
    assert all(i.category in ALLOWED_CATEGORIES[Mood.ROMANTIC] for i in ideas)
    assert all(i.generated_by == "community" for i in ideas)


def test_filters_by_budget():
    ideas = fetch_existing_ideas(Configuration(), {"budget": "free"}, limit=10)
    assert ideas
    assert all(i.cost == "low" for i in ideas)


def test_custom_catalogue_file(tmp_path):
    path = tmp_path / "ideas.json"
    path.write_text('[{"id": "x1", "title": "Karaoké", "category": "fun", "cost": "low"}]', encoding="utf-8")
    ideas = fetch_existing_ideas(Configuration(community_ideas_path=str(path)), {"mood": "fun"})
    assert [i.id for i in ideas] == ["x1"]


def test_broken_catalogue_gives_empty_list(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    assert fetch_existing_ideas(Configuration(community_ideas_path=str(path)), {}) == []
    assert fetch_existing_ideas(Configuration(community_ideas_path=str(tmp_path / "missing.json")), {}) == []
