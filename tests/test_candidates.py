import numpy as np
import pytest

from emolody_recs.candidates import QueryPlanner, StaticCatalog
from emolody_recs.moods import Mood


@pytest.fixture()
def planner():
    return QueryPlanner()


def test_plan_crosses_preferences_with_keywords(planner):
    queries = planner.plan(Mood.SAD, ["Pop", "The Weeknd"])
    assert queries[:5] == [
        "Pop emotional",
        "Pop comforting",
        "Pop acoustic",
        "Pop melancholic",
        "Pop healing",
    ]
    assert queries[5] == "The Weeknd emotional"
    assert len(queries) == 10


def test_plan_uses_top_three_preferences_only(planner):
    queries = planner.plan(Mood.CALM, ["Jazz", "Indie", "Rock", "Pop", "Adele"])
    seeds = {q.rsplit(" ", 1)[0] for q in queries}
    assert seeds == {"Jazz", "Indie", "Rock"}
    assert len(queries) == 15


def test_plan_without_preferences_uses_mood_name(planner):
    queries = planner.plan(Mood.HAPPY, [])
    assert queries == [
        "Happy upbeat",
        "Happy joyful",
        "Happy dance",
        "Happy celebratory",
        "Happy summer",
    ]


def test_plan_ignores_blank_preferences(planner):
    assert planner.plan(Mood.HAPPY, ["", "  "]) == planner.plan(Mood.HAPPY, [])


@pytest.mark.parametrize("mood", list(Mood))
@pytest.mark.parametrize("preferences", [[], ["Pop"], ["Pop", "Pop", "Rock"], ["a", "b", "c", "d"]])
def test_plan_is_non_empty_and_distinct(planner, mood, preferences):
    queries = planner.plan(mood, preferences)
    assert queries
    assert len(queries) == len(set(queries))


def test_static_tables_lookup():
    catalog = StaticCatalog()
    assert len(catalog.songs_for_mood(Mood.HAPPY)) == 7
    pop = catalog.songs_for_preferences(["Pop", "Unknown Tag"])
    assert [t.title for t in pop][:2] == ["Blinding Lights", "Levitating"]
    assert len(pop) == 5


def test_static_generate_draws_from_mood_and_preference_tables():
    catalog = StaticCatalog()
    pool = {t.key for t in catalog.songs_for_mood(Mood.SAD) + catalog.songs_for_preferences(["Rock", "Jazz"])}
    tracks = catalog.generate(Mood.SAD, ["Rock", "Jazz"], np.random.default_rng(1))
    assert len(tracks) == 12
    assert {t.key for t in tracks} <= pool
    assert len({t.key for t in tracks}) == len(tracks)


def test_static_generate_is_reproducible_with_seed():
    catalog = StaticCatalog()
    first = catalog.generate(Mood.ROMANTIC, ["Pop"], np.random.default_rng(42))
    second = catalog.generate(Mood.ROMANTIC, ["Pop"], np.random.default_rng(42))
    assert [t.key for t in first] == [t.key for t in second]


def test_static_generate_respects_limit():
    tracks = StaticCatalog().generate(Mood.CALM, ["Pop", "Rock"], np.random.default_rng(0), limit=4)
    assert len(tracks) == 4
