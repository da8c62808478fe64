"""Seed state used for a fresh or unreadable snapshot."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from . import content
from .models import State, User

SEED_USERS = [
    {"email": "alice@example.com", "username": "alice", "display": "Alice", "bio": "Front-end dev"},
    {"email": "bob@example.com", "username": "bob", "display": "Bob", "bio": "Game designer"},
]

SEED_POSTS = [
    {"author": "alice", "content": "Hello Twittish! #firstpost", "media_ref": ""},
    {
        "author": "bob",
        "content": "Working on level design today. @alice #gamedev",
        "media_ref": "https://picsum.photos/seed/level/800/400",
    },
]


def seed_state(*, new_id: Callable[[], str], now: Callable[[], datetime]) -> State:
    """Two sample users, two sample posts, no notifications, first user logged in.

    Seed posts do not raise mention notifications.
    """
    state = State()
    for fields in SEED_USERS:
        state.users.append(User(id=new_id(), **fields))
    for item in SEED_POSTS:
        content.create_post(
            state, item["author"], item["content"], item["media_ref"],
            new_id=new_id, now=now,
        )
    state.session_user_id = state.users[0].id
    return state
