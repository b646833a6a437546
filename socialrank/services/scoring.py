"""
Scoring primitives shared by the feed and people rankers.

Each function turns one signal into a float contribution. They are pure:
weights default to the values in `settings` and can be passed explicitly.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Iterable, Optional

from socialrank.core.config import settings
from socialrank.schemas.entities import GeoPoint

EARTH_RADIUS_KM = 6371.0088

_SECONDS_PER_HOUR = 3600.0
_SECONDS_PER_DAY = 24 * _SECONDS_PER_HOUR


def _pick(value: Optional[float], default: float) -> float:
    return default if value is None else value


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _non_negative(value) -> float:
    return max(0.0, float(value or 0))


def hours_between(earlier: datetime, later: datetime) -> float:
    """Elapsed hours from `earlier` to `later`; never negative."""
    seconds = (as_utc(later) - as_utc(earlier)).total_seconds()
    return max(0.0, seconds / _SECONDS_PER_HOUR)


def days_between(earlier: datetime, later: datetime) -> float:
    seconds = (as_utc(later) - as_utc(earlier)).total_seconds()
    return max(0.0, seconds / _SECONDS_PER_DAY)


def recency_score(
    created_at: datetime, now: datetime, baseline: Optional[float] = None
) -> float:
    """
    Linear decay of `baseline` points per hour since creation.

    A creation time in the future counts as zero elapsed time, so the score
    never exceeds the baseline and never goes negative.
    """
    baseline = _pick(baseline, settings.RECENCY_BASELINE)
    return max(0.0, baseline - hours_between(created_at, now))


def engagement_score(
    likes: int,
    comments: int,
    shares: int,
    like_weight: Optional[float] = None,
    comment_weight: Optional[float] = None,
    share_weight: Optional[float] = None,
) -> float:
    return (
        _non_negative(likes) * _pick(like_weight, settings.LIKE_WEIGHT)
        + _non_negative(comments) * _pick(comment_weight, settings.COMMENT_WEIGHT)
        + _non_negative(shares) * _pick(share_weight, settings.SHARE_WEIGHT)
    )


def total_engagement(likes: int, comments: int, shares: int) -> float:
    return _non_negative(likes) + _non_negative(comments) + _non_negative(shares)


def shared_interest_count(a: Iterable[str], b: Iterable[str]) -> int:
    return len(set(a or ()) & set(b or ()))


def affinity_score(
    viewer_interests: Iterable[str],
    author_interests: Iterable[str],
    weight: Optional[float] = None,
) -> float:
    weight = _pick(weight, settings.FEED_AFFINITY_WEIGHT)
    return shared_interest_count(viewer_interests, author_interests) * weight


def connection_boost(is_connected: bool, boost: Optional[float] = None) -> float:
    return _pick(boost, settings.CONNECTION_BOOST) if is_connected else 0.0


def media_boost(has_media: bool, weight: Optional[float] = None) -> float:
    return _pick(weight, settings.FEED_MEDIA_BOOST) if has_media else 0.0


def interest_hashtags(interests: Iterable[str]) -> set[str]:
    """Interests as hashtags: lower-cased and prefixed with '#'."""
    return {f"#{interest.lower()}" for interest in interests or () if interest}


def _normalize_tag(tag: str) -> str:
    tag = tag.strip().lower()
    return tag if tag.startswith("#") else f"#{tag}"


def hashtag_affinity(
    viewer_interests: Iterable[str],
    post_tags: Iterable[str],
    weight: Optional[float] = None,
) -> float:
    weight = _pick(weight, settings.HASHTAG_WEIGHT)
    tags = {_normalize_tag(t) for t in post_tags or () if t and t.strip()}
    return len(interest_hashtags(viewer_interests) & tags) * weight


def engagement_velocity(
    likes: int,
    comments: int,
    hours_elapsed: float,
    multiplier: Optional[float] = None,
) -> float:
    """Likes plus comments per hour, with elapsed hours floored at 1."""
    multiplier = _pick(multiplier, settings.VELOCITY_MULTIPLIER)
    hours = max(1.0, float(hours_elapsed or 0))
    return (_non_negative(likes) + _non_negative(comments)) / hours * multiplier


def popularity_score(
    followers: int,
    posts: int,
    follower_weight: Optional[float] = None,
    post_weight: Optional[float] = None,
) -> float:
    return _non_negative(followers) * _pick(
        follower_weight, settings.FOLLOWER_WEIGHT
    ) + _non_negative(posts) * _pick(post_weight, settings.POST_COUNT_WEIGHT)


def activity_recency_bonus(
    last_active_at: datetime, now: datetime, window_days: Optional[float] = None
) -> float:
    window_days = _pick(window_days, settings.ACTIVITY_BONUS_DAYS)
    return max(0.0, window_days - days_between(last_active_at, now))


def novelty_bonus(
    days_since_join: float,
    bonus: Optional[float] = None,
    window_days: Optional[float] = None,
) -> float:
    window_days = _pick(window_days, settings.NEW_ACTOR_WINDOW_DAYS)
    if days_since_join < window_days:
        return _pick(bonus, settings.NOVELTY_BONUS)
    return 0.0


def verification_bonus(is_verified: bool, bonus: Optional[float] = None) -> float:
    return _pick(bonus, settings.VERIFICATION_BONUS) if is_verified else 0.0


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points, in kilometres."""
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))
