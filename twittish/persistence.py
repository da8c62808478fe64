"""Snapshot persistence over a key-value byte store.

The whole state (users, posts, notifications, session pointer) is written as
one JSON document under a single key:

    {
      "version": 1,
      "users": [...],
      "posts": [...],
      "notifications": [...],
      "session_user_id": "..." | null
    }

load() never fails. A missing key, bytes that are not JSON, a document that
does not validate, a reply pointing at a missing post, or a version newer
than this code understands all count as "no usable snapshot": the seed state
replaces it and is written back immediately. Corruption is logged and kept
on `last_recovery` for callers that want to surface it.

Snapshots without a version field come from the original browser client
(camelCase keys, `likes`/`replies`, the session stored as an embedded user
object) and are migrated to version 1 on read.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

import pydantic

from .errors import StorageCorrupt, StorageError
from .kv import KeyValueStore
from .models import SNAPSHOT_VERSION, Snapshot, State

logger = logging.getLogger(__name__)

DEFAULT_KEY = "twittish_web_v1"

_LEGACY_USER_KEYS = {"avatar": "avatar_ref", "pass": "credential_secret"}
_LEGACY_POST_KEYS = {
    "authorUsername": "author_username",
    "authorDisplay": "author_display",
    "authorAvatar": "author_avatar_ref",
    "mediaUrl": "media_ref",
    "inReplyToId": "in_reply_to_id",
    "createdAt": "created_at",
    "likes": "liked_by",
    "replies": "reply_ids",
}
_LEGACY_NOTIFICATION_KEYS = {
    "userId": "target_user_id",
    "type": "kind",
    "actorUsername": "actor_username",
    "postId": "post_id",
    "createdAt": "created_at",
}


def _rename(record: dict[str, Any], mapping: dict[str, str]) -> dict[str, Any]:
    for old, new in mapping.items():
        if old in record and new not in record:
            record[new] = record.pop(old)
        else:
            record.pop(old, None)
    return record


def migrate_legacy(data: dict[str, Any]) -> dict[str, Any]:
    """Convert an unversioned browser-client snapshot to version 1."""
    session = data.get("user")
    return {
        "version": SNAPSHOT_VERSION,
        "users": [_rename(dict(u), _LEGACY_USER_KEYS) for u in data.get("users", [])],
        "posts": [_rename(dict(p), _LEGACY_POST_KEYS) for p in data.get("posts", [])],
        "notifications": [
            _rename(dict(n), _LEGACY_NOTIFICATION_KEYS)
            for n in data.get("notifications", [])
        ],
        "session_user_id": session.get("id") if isinstance(session, dict) else None,
    }


def _check_links(state: State) -> None:
    """Reply links must agree in both directions and usernames must be unique."""
    by_id = {p.id: p for p in state.posts}
    for post in state.posts:
        if post.in_reply_to_id is not None:
            parent = by_id.get(post.in_reply_to_id)
            if parent is None:
                raise StorageCorrupt(f"Post {post.id} replies to missing post {post.in_reply_to_id}")
            if post.id not in parent.reply_ids:
                raise StorageCorrupt(f"Post {parent.id} does not list reply {post.id}")
        for reply_id in post.reply_ids:
            reply = by_id.get(reply_id)
            if reply is None or reply.in_reply_to_id != post.id:
                raise StorageCorrupt(f"Post {post.id} lists {reply_id}, which is not its reply")

    seen: set[str] = set()
    for user in state.users:
        if user.username in seen:
            raise StorageCorrupt(f"Username '{user.username}' appears twice")
        seen.add(user.username)
    user_ids = {u.id for u in state.users}
    if state.session_user_id is not None and state.session_user_id not in user_ids:
        raise StorageCorrupt(f"Session points at missing user {state.session_user_id}")


def decode(raw: bytes) -> State:
    """Parse snapshot bytes. Raises StorageCorrupt for anything unusable."""
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StorageCorrupt(f"Snapshot is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise StorageCorrupt("Snapshot is not a JSON object")

    if "version" not in data:
        data = migrate_legacy(data)
        logger.info("Migrated unversioned snapshot to version %d", SNAPSHOT_VERSION)
    elif not isinstance(data["version"], int) or data["version"] > SNAPSHOT_VERSION:
        raise StorageCorrupt(f"Unsupported snapshot version {data['version']!r}")

    try:
        state = Snapshot.model_validate(data).to_state()
    except pydantic.ValidationError as e:
        raise StorageCorrupt(f"Snapshot failed validation: {e}") from e
    _check_links(state)
    return state


def encode(state: State) -> bytes:
    return Snapshot.from_state(state).model_dump_json(indent=2).encode("utf-8")


class Persistence:
    """Reads and writes the state snapshot under one fixed key."""

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_KEY) -> None:
        self._store = store
        self._key = key
        self.last_recovery: StorageCorrupt | None = None

    @property
    def key(self) -> str:
        return self._key

    def save(self, state: State) -> None:
        """Write the snapshot. Raises StorageError if the store rejects it."""
        data = encode(state)
        try:
            self._store.put(self._key, data)
        except OSError as e:
            raise StorageError(f"Could not write snapshot '{self._key}': {e}") from e

    def load(self, seed: Callable[[], State]) -> State:
        """Return the stored state, or a freshly written seed if there is none."""
        self.last_recovery = None
        try:
            raw = self._store.get(self._key)
        except OSError as e:
            raw = None
            self.last_recovery = StorageCorrupt(f"Could not read snapshot: {e}")
            logger.warning("%s; reseeding", self.last_recovery)

        if raw is not None:
            try:
                return decode(raw)
            except StorageCorrupt as e:
                self.last_recovery = e
                logger.warning("Snapshot '%s' unreadable, reseeding: %s", self._key, e)
        elif self.last_recovery is None:
            logger.info("No snapshot under '%s', seeding", self._key)

        state = seed()
        try:
            self.save(state)
        except StorageError as e:
            logger.warning("Seed state not persisted: %s", e)
        return state
