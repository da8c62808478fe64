"""Post storage: creation, reply links, likes, lookup and search.

A reply and its parent are always linked in both directions: the reply's
in_reply_to_id names the parent and the parent's reply_ids lists the reply.
Both sides are written by create_post and nowhere else.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from .annotate import extract_tags
from .errors import NotFound
from .identity import lookup_by_username
from .models import Post, State


def find_by_id(state: State, post_id: str) -> Post | None:
    for post in state.posts:
        if post.id == post_id:
            return post
    return None


def create_post(
    state: State,
    author_username: str,
    content: str,
    media_ref: str = "",
    in_reply_to_id: str | None = None,
    *,
    new_id: Callable[[], str],
    now: Callable[[], datetime],
) -> Post:
    """Insert a post at the head of the global sequence and link it to its parent."""
    author = lookup_by_username(state, author_username)
    if author is None:
        raise NotFound(f"User '{author_username}' not found")
    parent = None
    if in_reply_to_id is not None:
        parent = find_by_id(state, in_reply_to_id)
        if parent is None:
            raise NotFound(f"Post {in_reply_to_id} not found")

    post = Post(
        id=new_id(),
        author_username=author.username,
        author_display=author.display or author.username,
        author_avatar_ref=author.avatar_ref,
        content=content,
        media_ref=media_ref,
        in_reply_to_id=in_reply_to_id,
        created_at=now(),
    )
    state.posts.insert(0, post)
    if parent is not None:
        parent.reply_ids.append(post.id)
    return post


def toggle_like(state: State, post_id: str, username: str) -> bool:
    """Flip `username` in the post's likes. Returns True if it is now liked."""
    post = find_by_id(state, post_id)
    if post is None:
        raise NotFound(f"Post {post_id} not found")
    if username in post.liked_by:
        post.liked_by.remove(username)
        return False
    post.liked_by.append(username)
    return True


def search(state: State, query: str) -> list[Post]:
    """Posts whose text contains `query` or that carry a tag containing it.

    Case-insensitive, unranked, in global sequence order.
    """
    q = query.strip().lower()
    if not q:
        return []
    return [
        p for p in state.posts
        if q in p.content.lower() or any(q in tag for tag in extract_tags(p.content))
    ]


def replies_to(state: State, post_id: str) -> list[Post]:
    return [p for p in state.posts if p.in_reply_to_id == post_id]


def posts_by(state: State, username: str) -> list[Post]:
    return [p for p in state.posts if p.author_username == username]
