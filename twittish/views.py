"""Navigation targets and their resolution into ordered post lists.

A target is one of a closed set of variants:

    Home, Latest          every post (there is no following graph yet)
    Profile(username)     posts written by that user
    Thread(post_id)       the root post plus its direct replies
    Search(query)         content / tag substring search
    TagFilter(tag)        search for one tag

Route strings (`parse_target` / `format_target`):

    home | latest | profile:@<username> | thread:<post_id>
    search:<query> | tag:<tag>

Ordering is newest `created_at` first. Posts with identical timestamps are
ordered by how recently they were inserted into the global sequence, so the
order is total. Resolution never mutates state and never fails: unknown
users or posts simply yield an empty list.
"""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel

from . import content
from .errors import ValidationError
from .models import Post, State


class Home(BaseModel):
    kind: Literal["home"] = "home"


class Latest(BaseModel):
    kind: Literal["latest"] = "latest"


class Profile(BaseModel):
    kind: Literal["profile"] = "profile"
    username: str


class Thread(BaseModel):
    kind: Literal["thread"] = "thread"
    post_id: str


class Search(BaseModel):
    kind: Literal["search"] = "search"
    query: str


class TagFilter(BaseModel):
    kind: Literal["tag"] = "tag"
    tag: str


Target = Union[Home, Latest, Profile, Thread, Search, TagFilter]


def parse_target(route: str) -> Target:
    """Parse a route string. Raises ValidationError for anything unrecognised."""
    route = route.strip()
    if route == "home":
        return Home()
    if route == "latest":
        return Latest()
    if route.startswith("profile:@") and len(route) > len("profile:@"):
        return Profile(username=route[len("profile:@"):])
    if route.startswith("thread:") and len(route) > len("thread:"):
        return Thread(post_id=route[len("thread:"):])
    if route.startswith("search:"):
        return Search(query=route[len("search:"):])
    if route.startswith("tag:") and len(route) > len("tag:"):
        return TagFilter(tag=route[len("tag:"):])
    raise ValidationError(f"Unknown route '{route}'")


def format_target(target: Target) -> str:
    if isinstance(target, Profile):
        return f"profile:@{target.username}"
    if isinstance(target, Thread):
        return f"thread:{target.post_id}"
    if isinstance(target, Search):
        return f"search:{target.query}"
    if isinstance(target, TagFilter):
        return f"tag:{target.tag}"
    return target.kind


def _candidates(state: State, target: Target) -> list[Post]:
    if isinstance(target, (Home, Latest)):
        return list(state.posts)
    if isinstance(target, Profile):
        return content.posts_by(state, target.username)
    if isinstance(target, Thread):
        root = content.find_by_id(state, target.post_id)
        if root is None:
            return []
        return [root, *content.replies_to(state, root.id)]
    if isinstance(target, Search):
        return content.search(state, target.query)
    if isinstance(target, TagFilter):
        return content.search(state, target.tag.lstrip("#"))
    return []


def order_posts(state: State, posts: list[Post]) -> list[Post]:
    """Sort newest first; equal timestamps fall back to insertion recency."""
    # state.posts is head-inserted, so a lower index means inserted later
    position = {p.id: i for i, p in enumerate(state.posts)}
    return sorted(
        posts,
        key=lambda p: (p.created_at, -position.get(p.id, len(position))),
        reverse=True,
    )


def resolve(state: State, target: Target, media_only: bool = False) -> list[Post]:
    posts = _candidates(state, target)
    if media_only:
        posts = [p for p in posts if p.media_ref]
    return order_posts(state, posts)
