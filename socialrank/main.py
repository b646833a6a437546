from __future__ import annotations

import time
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Protocol, TypeVar, Union

from socialrank.core.circuit_breaker import CircuitBreaker
from socialrank.core.config import Settings, settings
from socialrank.core.errors import FetchFailure
from socialrank.core.logger import service_logger
from socialrank.schemas.entities import Actor, DiscoveryCategory, GeoPoint, Post
from socialrank.schemas.results import PostCandidates, RankingOutcome
from socialrank.services.feed_ranker import generate_discovery_feed, generate_personalized_feed
from socialrank.services.people_ranker import discover_actors
from socialrank.services.search_filter import search_actors
from socialrank.services.snapshot_loader import SnapshotCandidateSource

T = TypeVar("T")
MaybeAwaitable = Union[T, Awaitable[T]]


class CandidateSource(Protocol):
    """Data-access collaborator: one coarse fetch per ranking call."""

    def fetch_feed_posts(self, viewer: Actor) -> MaybeAwaitable[PostCandidates]: ...

    def fetch_public_posts(self, viewer: Actor) -> MaybeAwaitable[PostCandidates]: ...

    def fetch_discoverable_actors(self, viewer: Actor) -> MaybeAwaitable[List[Actor]]: ...


class RankingService:
    """
    Entry points for callers that want fetch + rank in one step.

    Each call performs a single upstream fetch through the circuit breaker and
    then ranks synchronously. A failed fetch never raises: the outcome comes
    back empty with `error` set.
    """

    def __init__(
        self,
        source: Optional[CandidateSource] = None,
        config: Settings = settings,
        breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        # Without an explicit source, rank over the local snapshot files.
        if source is None:
            source = SnapshotCandidateSource(
                actors_path=config.ACTORS_SNAPSHOT_PATH,
                posts_path=config.POSTS_SNAPSHOT_PATH,
            )
        self.source = source
        self.config = config
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=config.FETCH_FAILURE_THRESHOLD,
            recovery_timeout_seconds=config.FETCH_RECOVERY_SECONDS,
            name="candidate_fetch",
        )

    async def _fetch(
        self, operation: str, viewer: Actor, fetch: Callable[[Actor], MaybeAwaitable[T]]
    ) -> T:
        try:
            return await self.breaker.acall(fetch, viewer)
        except FetchFailure as exc:
            service_logger.log_error(
                f"Candidate fetch failed for {operation}",
                error=exc,
                viewer_id=viewer.id,
                extra={"circuit_state": self.breaker.state.value},
            )
            raise

    def _finish(
        self, operation: str, viewer: Actor, candidates: int, items: list, start: float
    ) -> RankingOutcome:
        service_logger.log_ranking(
            operation=operation,
            viewer_id=viewer.id,
            candidates=candidates,
            returned=len(items),
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        return RankingOutcome(items=items, total_candidates=candidates)

    async def personalized_feed(
        self,
        viewer: Actor,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> RankingOutcome[Post]:
        start = time.perf_counter()
        try:
            fetched = await self._fetch("personalized_feed", viewer, self.source.fetch_feed_posts)
        except FetchFailure as exc:
            return RankingOutcome(error=exc)

        items = generate_personalized_feed(
            viewer, fetched.posts, fetched.directory, limit=limit, now=now, config=self.config
        )
        return self._finish("personalized_feed", viewer, len(fetched.posts), items, start)

    async def discovery_feed(
        self,
        viewer: Actor,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> RankingOutcome[Post]:
        start = time.perf_counter()
        try:
            fetched = await self._fetch("discovery_feed", viewer, self.source.fetch_public_posts)
        except FetchFailure as exc:
            return RankingOutcome(error=exc)

        items = generate_discovery_feed(
            viewer, fetched.posts, fetched.directory, limit=limit, now=now, config=self.config
        )
        return self._finish("discovery_feed", viewer, len(fetched.posts), items, start)

    async def discover_actors(
        self,
        viewer: Actor,
        category: DiscoveryCategory | str = DiscoveryCategory.BLENDED,
        viewer_location: Optional[GeoPoint] = None,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> RankingOutcome[Actor]:
        start = time.perf_counter()
        try:
            candidates = await self._fetch(
                "discover_actors", viewer, self.source.fetch_discoverable_actors
            )
        except FetchFailure as exc:
            return RankingOutcome(error=exc)

        items = discover_actors(
            viewer,
            candidates,
            category,
            viewer_location=viewer_location,
            limit=limit,
            now=now,
            config=self.config,
        )
        return self._finish("discover_actors", viewer, len(candidates), items, start)

    async def search_actors(self, query: Optional[str], viewer: Actor) -> RankingOutcome[Actor]:
        # Blank queries never reach the data layer.
        if not (query or "").strip():
            return RankingOutcome()

        start = time.perf_counter()
        try:
            candidates = await self._fetch(
                "search_actors", viewer, self.source.fetch_discoverable_actors
            )
        except FetchFailure as exc:
            return RankingOutcome(error=exc)

        items = search_actors(query, viewer, candidates, config=self.config)
        return self._finish("search_actors", viewer, len(candidates), items, start)
