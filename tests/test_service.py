from __future__ import annotations

import pytest

from socialrank.core.circuit_breaker import CircuitBreaker, CircuitState
from socialrank.core.config import Settings
from socialrank.core.errors import FetchFailure
from socialrank.main import RankingService
from socialrank.schemas.entities import ActorDirectory, DiscoveryCategory, Visibility
from socialrank.services.snapshot_loader import SnapshotCandidateSource, SocialSnapshot
from tests.factories import NOW, actors_frame, make_actor, make_post, posts_frame


class BrokenSource:
    """Candidate source whose every fetch fails; counts the attempts."""

    def __init__(self):
        self.calls = 0

    def _fail(self, viewer):
        self.calls += 1
        raise ConnectionError("data layer unavailable")

    fetch_feed_posts = _fail
    fetch_public_posts = _fail
    fetch_discoverable_actors = _fail


@pytest.fixture
def world():
    viewer = make_actor("viewer", interests=["Music", "Art"], connections={"bea"})
    alex = make_actor("alex", interests=["Music", "Food"], username="alex_beats")
    bea = make_actor("bea", interests=["Music", "Art"], connections={"viewer"})
    posts = [
        make_post("a1", alex, visibility=Visibility.PUBLIC),
        make_post("b1", bea, visibility=Visibility.CONNECTIONS),
        make_post("b2", bea, visibility=Visibility.PRIVATE),
    ]
    snapshot = SocialSnapshot(directory=ActorDirectory([viewer, alex, bea]), posts=posts)
    return viewer, RankingService(SnapshotCandidateSource(snapshot=snapshot))


@pytest.mark.asyncio
async def test_personalized_feed_outcome(world):
    viewer, service = world

    outcome = await service.personalized_feed(viewer, now=NOW)

    assert outcome.ok
    assert [p.id for p in outcome.items] == ["b1", "a1"]
    assert outcome.total_candidates == 2


@pytest.mark.asyncio
async def test_discovery_feed_outcome(world):
    viewer, service = world

    outcome = await service.discovery_feed(viewer, now=NOW)

    assert outcome.ok
    assert [p.id for p in outcome.items] == ["a1"]


@pytest.mark.asyncio
async def test_discover_and_search_actors(world):
    viewer, service = world

    discovered = await service.discover_actors(viewer, DiscoveryCategory.INTERESTS, now=NOW)
    assert [a.id for a in discovered.items] == ["alex"]

    found = await service.search_actors("BEATS", viewer)
    assert [a.id for a in found.items] == ["alex"]


@pytest.mark.asyncio
async def test_blank_search_skips_the_fetch():
    source = BrokenSource()
    service = RankingService(source)

    outcome = await service.search_actors("   ", make_actor("viewer"))

    assert outcome.ok
    assert outcome.items == []
    assert source.calls == 0


@pytest.mark.asyncio
async def test_fetch_failure_is_recovered_as_empty_outcome():
    service = RankingService(BrokenSource())
    viewer = make_actor("viewer")

    for outcome in (
        await service.personalized_feed(viewer),
        await service.discovery_feed(viewer),
        await service.discover_actors(viewer, "popular"),
        await service.search_actors("anyone", viewer),
    ):
        assert outcome.items == []
        assert not outcome.ok
        assert isinstance(outcome.error, FetchFailure)
        assert isinstance(outcome.error.cause, ConnectionError)


@pytest.mark.asyncio
async def test_open_circuit_fails_fast_without_fetching():
    source = BrokenSource()
    breaker = CircuitBreaker(failure_threshold=2, recovery_timeout_seconds=60, name="test_fetch")
    service = RankingService(source, breaker=breaker)
    viewer = make_actor("viewer")

    await service.personalized_feed(viewer)
    await service.personalized_feed(viewer)
    assert breaker.state == CircuitState.OPEN
    assert source.calls == 2

    outcome = await service.personalized_feed(viewer)
    assert source.calls == 2
    assert outcome.items == []
    assert "circuit open" in str(outcome.error)


@pytest.mark.asyncio
async def test_missing_snapshot_files_surface_as_fetch_failure(tmp_path):
    source = SnapshotCandidateSource(
        actors_path=tmp_path / "actors.parquet", posts_path=tmp_path / "posts.parquet"
    )
    service = RankingService(source)

    outcome = await service.discovery_feed(make_actor("viewer"))

    assert outcome.items == []
    assert isinstance(outcome.error, FetchFailure)


@pytest.mark.asyncio
async def test_default_service_ranks_over_configured_snapshot(tmp_path):
    config = Settings(
        ACTORS_SNAPSHOT_PATH=tmp_path / "actors.parquet",
        POSTS_SNAPSHOT_PATH=tmp_path / "posts.parquet",
    )
    actors_frame().write_parquet(config.ACTORS_SNAPSHOT_PATH)
    posts_frame().write_parquet(config.POSTS_SNAPSHOT_PATH)
    viewer = make_actor("u1", connections={"u2"})

    service = RankingService(config=config)
    outcome = await service.personalized_feed(viewer, now=NOW)

    assert isinstance(service.source, SnapshotCandidateSource)
    assert outcome.ok
    assert outcome.total_candidates == 3
    assert {p.id for p in outcome.items} == {"p1", "p2", "p4"}
