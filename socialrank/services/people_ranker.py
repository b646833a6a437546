"""
People discovery: suggest actors the viewer is not yet connected to.

Every category shares the same eligibility step (not the viewer, opted into
discovery, not already a connection) and then hands the survivors to one
strategy function picked by `DiscoveryCategory`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from socialrank.core.config import Settings, settings
from socialrank.schemas.entities import Actor, DiscoveryCategory, GeoPoint
from socialrank.schemas.results import ScoredActor
from socialrank.services.eligibility import filter_discoverable_actors
from socialrank.services.ordering import rank_by_score
from socialrank.services.scoring import (
    activity_recency_bonus,
    affinity_score,
    as_utc,
    days_between,
    haversine_km,
    novelty_bonus,
    popularity_score,
    shared_interest_count,
    verification_bonus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveryContext:
    viewer: Actor
    now: datetime
    limit: int
    location: Optional[GeoPoint]
    config: Settings


Strategy = Callable[[List[Actor], DiscoveryContext], List[ScoredActor]]


def _ranked(
    actors: List[Actor], scores: List[float], ctx: DiscoveryContext, descending: bool = True
) -> List[ScoredActor]:
    return [
        ScoredActor(actor=a, score=s)
        for a, s in rank_by_score(actors, scores, ctx.limit, descending=descending)
    ]


def rank_nearby(candidates: List[Actor], ctx: DiscoveryContext) -> List[ScoredActor]:
    """Closest first; the score is the distance in km."""
    if ctx.location is None:
        return []

    max_km = ctx.config.NEARBY_MAX_DISTANCE_KM
    located: List[Actor] = []
    distances: List[float] = []
    for actor in candidates:
        if actor.location is None:
            continue
        distance = haversine_km(ctx.location, actor.location)
        if max_km is not None and distance > max_km:
            continue
        located.append(actor)
        distances.append(distance)

    return _ranked(located, distances, ctx, descending=False)


def rank_by_interests(candidates: List[Actor], ctx: DiscoveryContext) -> List[ScoredActor]:
    matched: List[Actor] = []
    scores: List[float] = []
    for actor in candidates:
        shared = shared_interest_count(ctx.viewer.interests, actor.interests)
        if shared > 0:
            matched.append(actor)
            scores.append(float(shared))
    return _ranked(matched, scores, ctx)


def rank_popular(candidates: List[Actor], ctx: DiscoveryContext) -> List[ScoredActor]:
    scores = [
        float(max(0, a.followers_count) + max(0, a.posts_count)) for a in candidates
    ]
    return _ranked(candidates, scores, ctx)


def rank_new(candidates: List[Actor], ctx: DiscoveryContext) -> List[ScoredActor]:
    """Actors who joined inside the window, most recent first."""
    cutoff = ctx.now - timedelta(days=ctx.config.NEW_ACTOR_WINDOW_DAYS)
    recent = [a for a in candidates if a.joined_at >= cutoff]
    return _ranked(recent, [a.joined_at.timestamp() for a in recent], ctx)


def blended_actor_score(actor: Actor, ctx: DiscoveryContext) -> float:
    config = ctx.config
    return (
        affinity_score(
            ctx.viewer.interests, actor.interests, weight=config.PEOPLE_AFFINITY_WEIGHT
        )
        + popularity_score(
            actor.followers_count,
            actor.posts_count,
            follower_weight=config.FOLLOWER_WEIGHT,
            post_weight=config.POST_COUNT_WEIGHT,
        )
        + activity_recency_bonus(
            actor.last_active_at, ctx.now, window_days=config.ACTIVITY_BONUS_DAYS
        )
        + novelty_bonus(
            days_between(actor.joined_at, ctx.now),
            bonus=config.NOVELTY_BONUS,
            window_days=config.NEW_ACTOR_WINDOW_DAYS,
        )
        + verification_bonus(actor.is_verified, bonus=config.VERIFICATION_BONUS)
    )


def rank_blended(candidates: List[Actor], ctx: DiscoveryContext) -> List[ScoredActor]:
    return _ranked(candidates, [blended_actor_score(a, ctx) for a in candidates], ctx)


STRATEGIES: Dict[DiscoveryCategory, Strategy] = {
    DiscoveryCategory.NEARBY: rank_nearby,
    DiscoveryCategory.INTERESTS: rank_by_interests,
    DiscoveryCategory.POPULAR: rank_popular,
    DiscoveryCategory.NEW: rank_new,
    DiscoveryCategory.BLENDED: rank_blended,
}


def score_actors(
    viewer: Actor,
    candidate_actors: Iterable[Actor],
    category: DiscoveryCategory | str = DiscoveryCategory.BLENDED,
    viewer_location: Optional[GeoPoint] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
    config: Settings = settings,
) -> List[ScoredActor]:
    category = DiscoveryCategory(category)
    limit = config.DEFAULT_LIMIT if limit is None else limit
    if limit <= 0:
        return []

    ctx = DiscoveryContext(
        viewer=viewer,
        now=as_utc(now) if now else datetime.now(timezone.utc),
        limit=limit,
        location=viewer_location or viewer.location,
        config=config,
    )
    candidates = filter_discoverable_actors(viewer, candidate_actors)
    logger.debug(
        "Discovering %s actors for %s from %d eligible candidates",
        category.value,
        viewer.id,
        len(candidates),
    )
    return STRATEGIES[category](candidates, ctx)


def discover_actors(
    viewer: Actor,
    candidate_actors: Iterable[Actor],
    category: DiscoveryCategory | str = DiscoveryCategory.BLENDED,
    viewer_location: Optional[GeoPoint] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
    config: Settings = settings,
) -> List[Actor]:
    scored = score_actors(
        viewer, candidate_actors, category, viewer_location, limit, now, config
    )
    return [item.actor for item in scored]
