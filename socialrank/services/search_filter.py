from __future__ import annotations

from typing import Iterable, List, Optional

from socialrank.core.config import Settings, settings
from socialrank.schemas.entities import Actor
from socialrank.services.eligibility import is_searchable_actor


def _matches(actor: Actor, needle: str) -> bool:
    fields = (actor.username, actor.display_name, actor.bio)
    if any(needle in (value or "").lower() for value in fields):
        return True
    return any(needle in interest.lower() for interest in actor.interests)


def search_actors(
    query: Optional[str],
    viewer: Actor,
    candidate_actors: Iterable[Actor],
    cap: Optional[int] = None,
    config: Settings = settings,
) -> List[Actor]:
    """
    Case-insensitive substring search over username, display name, bio and
    interests.

    No ranking: matches keep their input order, truncated to `cap`.
    """
    needle = (query or "").strip().lower()
    if not needle:
        return []

    cap = config.SEARCH_RESULT_CAP if cap is None else cap
    if cap <= 0:
        return []

    results: List[Actor] = []
    for actor in candidate_actors:
        if is_searchable_actor(actor, viewer) and _matches(actor, needle):
            results.append(actor)
            if len(results) >= cap:
                break
    return results
