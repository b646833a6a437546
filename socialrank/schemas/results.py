from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

from socialrank.core.errors import FetchFailure
from socialrank.schemas.entities import Actor, ActorDirectory, Post

T = TypeVar("T")


@dataclass
class PostCandidates:
    """Posts returned by one upstream fetch, plus the table to resolve authors."""

    posts: List[Post]
    directory: ActorDirectory


@dataclass(frozen=True)
class ScoredPost:
    post: Post
    score: float


@dataclass(frozen=True)
class ScoredActor:
    actor: Actor
    score: float


@dataclass
class RankingOutcome(Generic[T]):
    """
    Result of one ranking call made through the service.

    `items` is empty when the upstream fetch failed; `error` tells that case
    apart from a legitimately empty result.
    """

    items: List[T] = field(default_factory=list)
    error: Optional[FetchFailure] = None
    total_candidates: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None
