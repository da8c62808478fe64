"""Append-only notification ledger keyed by target user.

The ledger records whatever it is given. Deciding *whether* an event is
worth recording (e.g. only on the transition into "liked") is the engine's
job. Entries are never deleted; `read` is the only field that changes.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from .models import Notification, NotificationKind, State

_PHRASES: dict[str, str] = {
    "mention": "mentioned you",
    "like": "liked your post",
    "reply": "replied to your post",
    "follow": "followed you",
}


def record(
    state: State,
    kind: NotificationKind,
    actor_username: str,
    target_user_id: str,
    post_id: str | None = None,
    *,
    new_id: Callable[[], str],
    now: Callable[[], datetime],
) -> Notification:
    note = Notification(
        id=new_id(),
        target_user_id=target_user_id,
        kind=kind,
        actor_username=actor_username,
        post_id=post_id,
        created_at=now(),
    )
    state.notifications.append(note)
    return note


def list_for(state: State, user_id: str) -> list[Notification]:
    """All notifications for a user, oldest first."""
    return [n for n in state.notifications if n.target_user_id == user_id]


def unread_count(state: State, user_id: str) -> int:
    return sum(
        1 for n in state.notifications
        if n.target_user_id == user_id and not n.read
    )


def mark_all_read(state: State, user_id: str) -> int:
    """Mark every notification for the user read. Returns how many changed."""
    changed = 0
    for n in state.notifications:
        if n.target_user_id == user_id and not n.read:
            n.read = True
            changed += 1
    return changed


def describe(note: Notification) -> str:
    """One-line summary, e.g. "@bob liked your post"."""
    return f"@{note.actor_username} {_PHRASES.get(note.kind, note.kind)}"
