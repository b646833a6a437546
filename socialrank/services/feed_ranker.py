from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from socialrank.core.config import Settings, settings
from socialrank.schemas.entities import Actor, ActorDirectory, Post
from socialrank.schemas.results import ScoredPost
from socialrank.services.eligibility import (
    is_discoverable_post,
    is_visible_in_feed,
    resolve_author,
)
from socialrank.services.ordering import rank_by_score
from socialrank.services.scoring import (
    affinity_score,
    as_utc,
    connection_boost,
    engagement_score,
    engagement_velocity,
    hashtag_affinity,
    hours_between,
    media_boost,
    recency_score,
    total_engagement,
)

logger = logging.getLogger(__name__)


def _resolve_limit(limit: Optional[int], config: Settings) -> int:
    return config.DEFAULT_LIMIT if limit is None else limit


def personalized_post_score(
    post: Post,
    viewer: Actor,
    author: Optional[Actor],
    now: datetime,
    config: Settings = settings,
) -> float:
    """
    Score components:
    - recency (linear decay from the baseline)
    - weighted engagement
    - connection boost
    - viewer/author interest overlap (unknown authors contribute nothing)
    - media bonus
    - viewer interests matched against post hashtags
    """
    score = (
        recency_score(post.created_at, now, baseline=config.RECENCY_BASELINE)
        + engagement_score(
            post.likes_count,
            post.comments_count,
            post.shares_count,
            like_weight=config.LIKE_WEIGHT,
            comment_weight=config.COMMENT_WEIGHT,
            share_weight=config.SHARE_WEIGHT,
        )
        + connection_boost(
            viewer.is_connected_to(post.author_id), boost=config.CONNECTION_BOOST
        )
        + media_boost(post.has_media, weight=config.FEED_MEDIA_BOOST)
        + hashtag_affinity(viewer.interests, post.tags, weight=config.HASHTAG_WEIGHT)
    )

    if author is not None:
        score += affinity_score(
            viewer.interests, author.interests, weight=config.FEED_AFFINITY_WEIGHT
        )
    return score


def discovery_post_score(
    post: Post,
    viewer: Actor,
    author: Optional[Actor],
    now: datetime,
    config: Settings = settings,
) -> float:
    """
    Score components:
    - engagement velocity, only while the post is inside the trending window
    - total engagement
    - viewer/author interest overlap (unknown authors contribute nothing)
    - media bonus
    """
    score = 0.0

    age_hours = hours_between(post.created_at, now)
    if age_hours < config.TRENDING_WINDOW_HOURS:
        score += engagement_velocity(
            post.likes_count,
            post.comments_count,
            age_hours,
            multiplier=config.VELOCITY_MULTIPLIER,
        )

    score += total_engagement(post.likes_count, post.comments_count, post.shares_count)

    if author is not None:
        score += affinity_score(
            viewer.interests, author.interests, weight=config.DISCOVERY_AFFINITY_WEIGHT
        )

    score += media_boost(post.has_media, weight=config.DISCOVERY_MEDIA_BOOST)
    return score


def score_personalized_feed(
    viewer: Actor,
    candidate_posts: Iterable[Post],
    directory: Optional[ActorDirectory] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
    config: Settings = settings,
) -> List[ScoredPost]:
    limit = _resolve_limit(limit, config)
    if limit <= 0:
        return []

    directory = directory if directory is not None else ActorDirectory()
    now = as_utc(now) if now else datetime.now(timezone.utc)

    eligible: List[Post] = []
    scores: List[float] = []
    for post in candidate_posts:
        author = resolve_author(post, viewer, directory)
        if not is_visible_in_feed(post, viewer, author):
            continue
        eligible.append(post)
        scores.append(personalized_post_score(post, viewer, author, now, config))

    logger.debug(
        "Personalized feed for %s: %d eligible candidates", viewer.id, len(eligible)
    )
    return [ScoredPost(post=p, score=s) for p, s in rank_by_score(eligible, scores, limit)]


def generate_personalized_feed(
    viewer: Actor,
    candidate_posts: Iterable[Post],
    directory: Optional[ActorDirectory] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
    config: Settings = settings,
) -> List[Post]:
    """
    Rank the viewer's own feed: their posts, their connections' posts and
    public posts from discoverable authors, best first.
    """
    scored = score_personalized_feed(viewer, candidate_posts, directory, limit, now, config)
    return [item.post for item in scored]


def score_discovery_feed(
    viewer: Actor,
    candidate_posts: Iterable[Post],
    directory: Optional[ActorDirectory] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
    config: Settings = settings,
) -> List[ScoredPost]:
    limit = _resolve_limit(limit, config)
    if limit <= 0:
        return []

    directory = directory if directory is not None else ActorDirectory()
    now = as_utc(now) if now else datetime.now(timezone.utc)

    eligible: List[Post] = []
    scores: List[float] = []
    for post in candidate_posts:
        if not is_discoverable_post(post, viewer):
            continue
        eligible.append(post)
        scores.append(
            discovery_post_score(post, viewer, directory.get(post.author_id), now, config)
        )

    logger.debug(
        "Discovery feed for %s: %d eligible candidates", viewer.id, len(eligible)
    )
    return [ScoredPost(post=p, score=s) for p, s in rank_by_score(eligible, scores, limit)]


def generate_discovery_feed(
    viewer: Actor,
    candidate_posts: Iterable[Post],
    directory: Optional[ActorDirectory] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
    config: Settings = settings,
) -> List[Post]:
    """Rank trending public posts from outside the viewer's connections."""
    scored = score_discovery_feed(viewer, candidate_posts, directory, limit, now, config)
    return [item.post for item in scored]
