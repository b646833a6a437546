from dotenv import load_dotenv
load_dotenv()
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


@dataclass
class Settings:
    """
    Tunable weights and thresholds for the ranking engine.

    Values can be overridden via environment variables (or a local `.env`).
    """

    # Recency and engagement
    RECENCY_BASELINE: float = float(os.getenv("RECENCY_BASELINE", "100"))
    LIKE_WEIGHT: float = float(os.getenv("LIKE_WEIGHT", "2"))
    COMMENT_WEIGHT: float = float(os.getenv("COMMENT_WEIGHT", "3"))
    SHARE_WEIGHT: float = float(os.getenv("SHARE_WEIGHT", "1.5"))

    # Interest affinity (per shared interest)
    FEED_AFFINITY_WEIGHT: float = float(os.getenv("FEED_AFFINITY_WEIGHT", "10"))
    DISCOVERY_AFFINITY_WEIGHT: float = float(os.getenv("DISCOVERY_AFFINITY_WEIGHT", "5"))
    PEOPLE_AFFINITY_WEIGHT: float = float(os.getenv("PEOPLE_AFFINITY_WEIGHT", "20"))
    HASHTAG_WEIGHT: float = float(os.getenv("HASHTAG_WEIGHT", "15"))

    # Flat bonuses
    CONNECTION_BOOST: float = float(os.getenv("CONNECTION_BOOST", "50"))
    FEED_MEDIA_BOOST: float = float(os.getenv("FEED_MEDIA_BOOST", "20"))
    DISCOVERY_MEDIA_BOOST: float = float(os.getenv("DISCOVERY_MEDIA_BOOST", "30"))
    NOVELTY_BONUS: float = float(os.getenv("NOVELTY_BONUS", "5"))
    VERIFICATION_BONUS: float = float(os.getenv("VERIFICATION_BONUS", "10"))

    # Trending (discovery feed)
    TRENDING_WINDOW_HOURS: float = float(os.getenv("TRENDING_WINDOW_HOURS", "24"))
    VELOCITY_MULTIPLIER: float = float(os.getenv("VELOCITY_MULTIPLIER", "10"))

    # People discovery
    FOLLOWER_WEIGHT: float = float(os.getenv("FOLLOWER_WEIGHT", "0.1"))
    POST_COUNT_WEIGHT: float = float(os.getenv("POST_COUNT_WEIGHT", "0.5"))
    ACTIVITY_BONUS_DAYS: float = float(os.getenv("ACTIVITY_BONUS_DAYS", "10"))
    NEW_ACTOR_WINDOW_DAYS: float = float(os.getenv("NEW_ACTOR_WINDOW_DAYS", "7"))
    NEARBY_MAX_DISTANCE_KM: Optional[float] = _optional_float("NEARBY_MAX_DISTANCE_KM")

    # Result sizes
    DEFAULT_LIMIT: int = int(os.getenv("DEFAULT_LIMIT", "20"))
    SEARCH_RESULT_CAP: int = int(os.getenv("SEARCH_RESULT_CAP", "20"))

    # Upstream fetch protection
    FETCH_FAILURE_THRESHOLD: int = int(os.getenv("FETCH_FAILURE_THRESHOLD", "5"))
    FETCH_RECOVERY_SECONDS: float = float(os.getenv("FETCH_RECOVERY_SECONDS", "30"))

    # Local snapshot files used by the bundled candidate source
    ACTORS_SNAPSHOT_PATH: Path = Path(
        os.getenv("ACTORS_SNAPSHOT_PATH", "data/snapshot/actors.parquet")
    )
    POSTS_SNAPSHOT_PATH: Path = Path(
        os.getenv("POSTS_SNAPSHOT_PATH", "data/snapshot/posts.parquet")
    )


settings = Settings()
