from __future__ import annotations

from datetime import timedelta

import pytest

from socialrank.core.config import Settings
from socialrank.schemas.entities import DiscoveryCategory, GeoPoint
from socialrank.services.people_ranker import discover_actors, score_actors
from tests.factories import NOW, make_actor

BERLIN = GeoPoint(latitude=52.52, longitude=13.405)
POTSDAM = GeoPoint(latitude=52.3906, longitude=13.0645)
HAMBURG = GeoPoint(latitude=53.5511, longitude=9.9937)
MUNICH = GeoPoint(latitude=48.1351, longitude=11.582)


@pytest.fixture
def viewer():
    return make_actor(
        "viewer",
        interests=["Music", "Art", "Hiking"],
        connections={"friend"},
        location=BERLIN,
    )


def _ids(actors):
    return [a.id for a in actors]


@pytest.mark.parametrize("category", list(DiscoveryCategory))
def test_every_category_applies_eligibility(viewer, category):
    candidates = [
        viewer,
        make_actor("friend", interests=["Music"], location=POTSDAM, joined_at=NOW),
        make_actor("shy", interests=["Music"], location=POTSDAM, allow_discovery=False, joined_at=NOW),
        make_actor("open", interests=["Music"], location=POTSDAM, joined_at=NOW),
    ]

    result = discover_actors(viewer, candidates, category, now=NOW)

    assert _ids(result) == ["open"]


def test_interests_drops_zero_overlap_and_sorts_by_shared_count(viewer):
    candidates = [
        make_actor("one", interests=["Music"]),
        make_actor("none", interests=["Cooking"]),
        make_actor("three", interests=["Hiking", "Art", "Music"]),
        make_actor("two", interests=["Art", "Music", "Cooking"]),
        make_actor("one-b", interests=["Hiking"]),
    ]

    scored = score_actors(viewer, candidates, DiscoveryCategory.INTERESTS, now=NOW)

    assert [s.actor.id for s in scored] == ["three", "two", "one", "one-b"]
    assert [s.score for s in scored] == [3, 2, 1, 1]


def test_popular_sorts_by_followers_plus_posts(viewer):
    candidates = [
        make_actor("small", followers_count=5, posts_count=5),
        make_actor("big", followers_count=500, posts_count=1),
        make_actor("tie", followers_count=3, posts_count=7),
        make_actor("prolific", followers_count=10, posts_count=200),
    ]

    result = discover_actors(viewer, candidates, "popular", now=NOW)

    assert _ids(result) == ["big", "prolific", "small", "tie"]


def test_new_keeps_only_recent_joiners_most_recent_first(viewer):
    candidates = [
        make_actor("veteran", joined_at=NOW - timedelta(days=8)),
        make_actor("three-days", joined_at=NOW - timedelta(days=3)),
        make_actor("yesterday", joined_at=NOW - timedelta(days=1)),
        make_actor("edge", joined_at=NOW - timedelta(days=7)),
    ]

    result = discover_actors(viewer, candidates, DiscoveryCategory.NEW, now=NOW)

    assert _ids(result) == ["yesterday", "three-days", "edge"]
    cutoff = NOW - timedelta(days=7)
    assert all(a.joined_at >= cutoff for a in result)


def test_blended_score_components(viewer):
    actor = make_actor(
        "blend",
        interests=["Music"],
        followers_count=100,
        posts_count=10,
        last_active_at=NOW,
        joined_at=NOW - timedelta(days=30),
        is_verified=True,
    )
    newcomer = make_actor(
        "newcomer",
        joined_at=NOW - timedelta(days=2),
        last_active_at=NOW - timedelta(days=4),
    )

    scored = score_actors(viewer, [newcomer, actor], DiscoveryCategory.BLENDED, now=NOW)
    scores = {s.actor.id: s.score for s in scored}

    # 20 (one shared interest) + 10 + 5 (popularity) + 10 (active now) + 10 (verified)
    assert scores["blend"] == pytest.approx(55)
    # 6 (active four days ago) + 5 (joined two days ago)
    assert scores["newcomer"] == pytest.approx(11)
    assert [s.actor.id for s in scored] == ["blend", "newcomer"]


def test_all_is_an_alias_for_blended(viewer):
    candidates = [
        make_actor("a", followers_count=50),
        make_actor("b", interests=["Art"]),
    ]
    assert discover_actors(viewer, candidates, "all", now=NOW) == discover_actors(
        viewer, candidates, DiscoveryCategory.BLENDED, now=NOW
    )
    assert DiscoveryCategory("all").display_name == "All"


def test_nearby_orders_by_distance_and_skips_unknown_locations(viewer):
    candidates = [
        make_actor("munich", location=MUNICH),
        make_actor("nowhere"),
        make_actor("potsdam", location=POTSDAM),
        make_actor("hamburg", location=HAMBURG),
    ]

    scored = score_actors(viewer, candidates, DiscoveryCategory.NEARBY, now=NOW)

    assert [s.actor.id for s in scored] == ["potsdam", "hamburg", "munich"]
    assert scored[0].score == pytest.approx(27, abs=3)


def test_nearby_uses_explicit_location_over_profile_location(viewer):
    candidates = [
        make_actor("potsdam", location=POTSDAM),
        make_actor("munich", location=MUNICH),
    ]

    result = discover_actors(
        viewer, candidates, DiscoveryCategory.NEARBY, viewer_location=MUNICH, now=NOW
    )

    assert _ids(result) == ["munich", "potsdam"]


def test_nearby_without_any_viewer_location_is_empty():
    viewer = make_actor("viewer")
    candidates = [make_actor("potsdam", location=POTSDAM)]

    assert discover_actors(viewer, candidates, DiscoveryCategory.NEARBY, now=NOW) == []


def test_nearby_respects_configured_radius(viewer):
    candidates = [
        make_actor("hamburg", location=HAMBURG),
        make_actor("potsdam", location=POTSDAM),
    ]
    config = Settings(NEARBY_MAX_DISTANCE_KM=100.0)

    result = discover_actors(viewer, candidates, "nearby", now=NOW, config=config)

    assert _ids(result) == ["potsdam"]


def test_limit_truncates_every_category(viewer):
    candidates = [
        make_actor(f"c{i}", interests=["Music"], location=POTSDAM, joined_at=NOW)
        for i in range(30)
    ]

    for category in DiscoveryCategory:
        assert discover_actors(viewer, candidates, category, limit=0, now=NOW) == []
        assert len(discover_actors(viewer, candidates, category, now=NOW)) == 20
        assert _ids(discover_actors(viewer, candidates, category, limit=2, now=NOW)) == [
            "c0",
            "c1",
        ]


def test_unknown_category_is_rejected(viewer):
    with pytest.raises(ValueError):
        discover_actors(viewer, [], "friends-of-friends", now=NOW)
