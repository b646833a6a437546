from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Visibility(str, Enum):
    PUBLIC = "public"
    CONNECTIONS = "connections"
    PRIVATE = "private"


class MediaType(str, Enum):
    NONE = "none"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class DiscoveryCategory(str, Enum):
    NEARBY = "nearby"
    INTERESTS = "interests"
    POPULAR = "popular"
    NEW = "new"
    BLENDED = "blended"

    @classmethod
    def _missing_(cls, value):
        # Older clients send "all" for the blended list.
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "all":
                return cls.BLENDED
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def display_name(self) -> str:
        return _CATEGORY_DISPLAY_NAMES[self]


_CATEGORY_DISPLAY_NAMES = {
    DiscoveryCategory.NEARBY: "Nearby",
    DiscoveryCategory.INTERESTS: "Similar Interests",
    DiscoveryCategory.POPULAR: "Popular",
    DiscoveryCategory.NEW: "New Users",
    DiscoveryCategory.BLENDED: "All",
}


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class Actor(BaseModel):
    """A person in the social graph.

    Graph edges are stored as sets of actor ids; resolve them through an
    `ActorDirectory`.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    display_name: str = ""
    bio: str = ""
    interests: List[str] = Field(default_factory=list)
    connections: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Ids of mutual connections.",
    )
    following: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Ids of actors this actor follows (one-directional).",
    )
    followers_count: int = 0
    following_count: int = 0
    posts_count: int = 0
    last_active_at: datetime = Field(default_factory=_utc_now)
    joined_at: datetime = Field(default_factory=_utc_now)
    is_verified: bool = False
    allow_discovery: bool = True
    location: Optional[GeoPoint] = None

    @field_validator("last_active_at", "joined_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return _utc(v)

    def is_connected_to(self, actor_id: str) -> bool:
        return actor_id in self.connections


class Post(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    author_id: str
    created_at: datetime = Field(default_factory=_utc_now)
    visibility: Visibility = Visibility.CONNECTIONS
    content: str = ""
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    media_type: MediaType = MediaType.NONE
    media_urls: List[str] = Field(default_factory=list)
    has_media: bool = Field(
        default=False,
        description="Derived from media_urls/media_type unless given explicitly.",
    )
    tags: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def derive_has_media(cls, data):
        if isinstance(data, dict) and data.get("has_media") is None:
            media_type = data.get("media_type") or MediaType.NONE
            media_type = str(getattr(media_type, "value", media_type)).lower()
            data = {
                **data,
                "has_media": bool(data.get("media_urls")) and media_type != MediaType.NONE.value,
            }
        return data

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return _utc(v)


class ActorDirectory:
    """Flat table of actors keyed by id."""

    def __init__(self, actors: Iterable[Actor] = ()) -> None:
        self._actors: Dict[str, Actor] = {}
        for actor in actors:
            # First occurrence wins, like the snapshot loader's dedup.
            self._actors.setdefault(actor.id, actor)

    def get(self, actor_id: Optional[str]) -> Optional[Actor]:
        if actor_id is None:
            return None
        return self._actors.get(actor_id)

    def __contains__(self, actor_id: object) -> bool:
        return actor_id in self._actors

    def __iter__(self) -> Iterator[Actor]:
        return iter(self._actors.values())

    def __len__(self) -> int:
        return len(self._actors)
