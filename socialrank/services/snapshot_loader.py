"""
In-memory snapshot of actors and posts, loaded from local files.

This is the bundled data-access collaborator for the ranking service:
- Read actor/post tables from parquet or NDJSON with polars.
- Normalize key fields (ids, counters, interests, tags, visibility).
- Answer the coarse candidate predicates the rankers start from.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import polars as pl
from pydantic import ValidationError

from socialrank.core.config import settings
from socialrank.core.errors import FetchFailure
from socialrank.schemas.entities import Actor, ActorDirectory, Post, Visibility
from socialrank.schemas.results import PostCandidates

logger = logging.getLogger(__name__)

_COUNTER_COLUMNS_ACTORS = ("followers_count", "following_count", "posts_count")
_COUNTER_COLUMNS_POSTS = ("likes_count", "comments_count", "shares_count")

# Legacy privacy labels still present in older exports.
_VISIBILITY_ALIASES = {"friends": "connections", "publicmoment": "public", "privatemoment": "private"}


@dataclass
class SocialSnapshot:
    directory: ActorDirectory
    posts: List[Post]


def _read_frame(path: Path) -> pl.DataFrame:
    if not path.exists():
        raise FetchFailure(f"snapshot file not found: {path}", source="snapshot")
    try:
        if path.suffix in (".ndjson", ".jsonl"):
            return pl.read_ndjson(path)
        if path.suffix == ".json":
            return pl.read_json(path)
        return pl.read_parquet(path)
    except Exception as exc:
        raise FetchFailure(f"could not read {path}: {exc}", source="snapshot", cause=exc) from exc


def _clean_string_list(df: pl.DataFrame, column: str) -> pl.DataFrame:
    if column not in df.columns:
        return df.with_columns(pl.lit(None, dtype=pl.List(pl.Utf8)).alias(column))
    return df.with_columns(
        pl.col(column)
        .cast(pl.List(pl.Utf8))
        .list.eval(pl.element().str.strip_chars())
        .list.eval(pl.element().filter(pl.element().str.len_chars() > 0))
        .alias(column)
    )


def _clamp_counters(df: pl.DataFrame, columns) -> pl.DataFrame:
    for column in columns:
        if column in df.columns:
            df = df.with_columns(
                pl.col(column).cast(pl.Int64, strict=False).fill_null(0).clip(lower_bound=0)
            )
        else:
            df = df.with_columns(pl.lit(0, dtype=pl.Int64).alias(column))
    return df


def normalize_actors_frame(df: pl.DataFrame) -> pl.DataFrame:
    """
    Apply normalization steps to a raw actors table.

    Expected input columns include (but are not limited to):
    - 'id', 'username', 'display_name', 'bio', 'interests', 'connections',
      'following', 'followers_count', 'posts_count', 'joined_at',
      'last_active_at', 'is_verified', 'allow_discovery', 'latitude', 'longitude'.
    """
    initial_count = df.height

    # 1. Stable string ids; rows without one are unusable.
    df = df.with_columns(pl.col("id").cast(pl.Utf8).str.strip_chars()).filter(
        pl.col("id").is_not_null() & (pl.col("id") != "")
    )

    # 2. Deduplicate by id, keeping the first occurrence.
    df = df.unique(subset=["id"], keep="first", maintain_order=True)
    if df.height != initial_count:
        logger.info("Dropped %d duplicate or id-less actor rows", initial_count - df.height)

    # 3. Counters are never negative.
    df = _clamp_counters(df, _COUNTER_COLUMNS_ACTORS)

    # 4. Interests and graph edges as clean string lists.
    for column in ("interests", "connections", "following"):
        df = _clean_string_list(df, column)

    # 5. Flags default to the product defaults: discoverable, unverified.
    for column, default in (("allow_discovery", True), ("is_verified", False)):
        if column in df.columns:
            df = df.with_columns(pl.col(column).cast(pl.Boolean).fill_null(default))
        else:
            df = df.with_columns(pl.lit(default).alias(column))

    return df


def normalize_posts_frame(df: pl.DataFrame) -> pl.DataFrame:
    initial_count = df.height

    df = df.with_columns(
        pl.col("id").cast(pl.Utf8).str.strip_chars(),
        pl.col("author_id").cast(pl.Utf8).str.strip_chars(),
    ).filter(pl.col("id").is_not_null() & pl.col("author_id").is_not_null())
    df = df.unique(subset=["id"], keep="first", maintain_order=True)
    if df.height != initial_count:
        logger.info("Dropped %d duplicate or orphan post rows", initial_count - df.height)

    df = _clamp_counters(df, _COUNTER_COLUMNS_POSTS)
    df = _clean_string_list(df, "tags")
    df = _clean_string_list(df, "media_urls")

    if "visibility" in df.columns:
        df = df.with_columns(
            pl.col("visibility")
            .cast(pl.Utf8)
            .str.to_lowercase()
            .str.strip_chars()
            .replace(_VISIBILITY_ALIASES)
            .fill_null(Visibility.CONNECTIONS.value)
        )
    else:
        df = df.with_columns(pl.lit(Visibility.CONNECTIONS.value).alias("visibility"))

    if "media_type" in df.columns:
        df = df.with_columns(
            pl.col("media_type").cast(pl.Utf8).str.to_lowercase().fill_null("none")
        )

    return df


def _drop_nulls(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if v is not None}


def _actor_record(row: Dict[str, Any]) -> Dict[str, Any]:
    latitude = row.pop("latitude", None)
    longitude = row.pop("longitude", None)
    if latitude is not None and longitude is not None:
        row["location"] = {"latitude": latitude, "longitude": longitude}
    return _drop_nulls(row)


def actors_from_frame(df: pl.DataFrame) -> List[Actor]:
    actors: List[Actor] = []
    for row in df.to_dicts():
        try:
            actors.append(Actor.model_validate(_actor_record(row)))
        except ValidationError as exc:
            logger.warning("Skipping invalid actor row %s: %s", row.get("id"), exc)
    return actors


def posts_from_frame(df: pl.DataFrame) -> List[Post]:
    posts: List[Post] = []
    for row in df.to_dicts():
        try:
            posts.append(Post.model_validate(_drop_nulls(row)))
        except ValidationError as exc:
            logger.warning("Skipping invalid post row %s: %s", row.get("id"), exc)
    return posts


def build_snapshot(actors_df: pl.DataFrame, posts_df: pl.DataFrame) -> SocialSnapshot:
    actors = actors_from_frame(normalize_actors_frame(actors_df))
    posts = posts_from_frame(normalize_posts_frame(posts_df))
    return SocialSnapshot(directory=ActorDirectory(actors), posts=posts)


def load_snapshot(
    actors_path: Optional[Path] = None, posts_path: Optional[Path] = None
) -> SocialSnapshot:
    """
    Load and normalize the actor/post tables.

    Raises `FetchFailure` when either file is missing or unreadable.
    """
    actors_path = Path(actors_path or settings.ACTORS_SNAPSHOT_PATH)
    posts_path = Path(posts_path or settings.POSTS_SNAPSHOT_PATH)

    snapshot = build_snapshot(_read_frame(actors_path), _read_frame(posts_path))
    logger.info(
        "Loaded snapshot with %d actors and %d posts",
        len(snapshot.directory),
        len(snapshot.posts),
    )
    return snapshot


def _newest_first(posts: List[Post]) -> List[Post]:
    return sorted(posts, key=lambda p: p.created_at, reverse=True)


class SnapshotCandidateSource:
    """
    Candidate source backed by a `SocialSnapshot`.

    The snapshot is loaded from disk on first use when not given up front.
    Loading runs in a worker thread so the event loop is not blocked on file
    I/O.
    """

    def __init__(
        self,
        snapshot: Optional[SocialSnapshot] = None,
        actors_path: Optional[Path] = None,
        posts_path: Optional[Path] = None,
    ) -> None:
        self._snapshot = snapshot
        self.actors_path = actors_path
        self.posts_path = posts_path

    async def _get_snapshot(self) -> SocialSnapshot:
        if self._snapshot is None:
            self._snapshot = await asyncio.to_thread(
                load_snapshot, self.actors_path, self.posts_path
            )
        return self._snapshot

    async def fetch_feed_posts(self, viewer: Actor) -> PostCandidates:
        snapshot = await self._get_snapshot()
        posts = [
            p
            for p in snapshot.posts
            if p.visibility in (Visibility.CONNECTIONS, Visibility.PUBLIC)
        ]
        return PostCandidates(posts=_newest_first(posts), directory=snapshot.directory)

    async def fetch_public_posts(self, viewer: Actor) -> PostCandidates:
        snapshot = await self._get_snapshot()
        posts = [p for p in snapshot.posts if p.visibility == Visibility.PUBLIC]
        return PostCandidates(posts=_newest_first(posts), directory=snapshot.directory)

    async def fetch_discoverable_actors(self, viewer: Actor) -> List[Actor]:
        snapshot = await self._get_snapshot()
        return [a for a in snapshot.directory if a.id != viewer.id and a.allow_discovery]
