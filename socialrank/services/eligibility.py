from __future__ import annotations

from typing import Iterable, List, Optional

from socialrank.schemas.entities import Actor, ActorDirectory, Post, Visibility


def resolve_author(post: Post, viewer: Actor, directory: ActorDirectory) -> Optional[Actor]:
    if post.author_id == viewer.id:
        return viewer
    return directory.get(post.author_id)


def is_visible_in_feed(post: Post, viewer: Actor, author: Optional[Actor]) -> bool:
    """
    A post can appear in the viewer's own feed when:
    - the viewer wrote it, or
    - a connection wrote it for connections or the public, or
    - it is public and its author opted into discovery.
    """
    if post.author_id == viewer.id:
        return True
    if viewer.is_connected_to(post.author_id) and post.visibility in (
        Visibility.CONNECTIONS,
        Visibility.PUBLIC,
    ):
        return True
    # The opt-in lives on the author record; an unresolved author has none.
    return (
        post.visibility == Visibility.PUBLIC
        and author is not None
        and author.allow_discovery
    )


def is_discoverable_post(post: Post, viewer: Actor) -> bool:
    return (
        post.visibility == Visibility.PUBLIC
        and post.author_id != viewer.id
        and not viewer.is_connected_to(post.author_id)
    )


def is_searchable_actor(candidate: Actor, viewer: Actor) -> bool:
    return candidate.id != viewer.id and candidate.allow_discovery


def is_discoverable_actor(candidate: Actor, viewer: Actor) -> bool:
    return is_searchable_actor(candidate, viewer) and not viewer.is_connected_to(candidate.id)


def filter_discoverable_actors(viewer: Actor, candidates: Iterable[Actor]) -> List[Actor]:
    return [c for c in candidates if is_discoverable_actor(c, viewer)]
