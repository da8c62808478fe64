"""Core domain models.

All stores and the engine operate on these types. Pydantic validates every
record on construction and on load, so a partially-initialised user or post
never reaches the state.
"""

from __future__ import annotations

from typing import Literal

from pydantic import AwareDatetime, BaseModel, Field, field_validator

SNAPSHOT_VERSION = 1

NotificationKind = Literal[
    "mention",
    "like",
    "reply",
    "follow",
]


class User(BaseModel):
    """A registered account or a placeholder created by a mention."""

    id: str
    username: str = Field(min_length=1)
    email: str = ""
    display: str = ""
    bio: str = ""
    avatar_ref: str = ""  # "" -> front end draws a generated placeholder
    credential_secret: str | None = None  # set only through registration

    @property
    def is_placeholder(self) -> bool:
        return self.credential_secret is None


class Post(BaseModel):
    """A message in the global post sequence.

    author_display and author_avatar_ref are copied from the author when the
    post is created; later profile edits do not reach existing posts.
    """

    id: str
    author_username: str
    author_display: str = ""
    author_avatar_ref: str = ""
    content: str
    media_ref: str = ""
    in_reply_to_id: str | None = None
    created_at: AwareDatetime
    liked_by: list[str] = Field(default_factory=list)
    reply_ids: list[str] = Field(default_factory=list)

    @field_validator("liked_by")
    @classmethod
    def _unique_likes(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))


class Notification(BaseModel):
    """An event addressed to one user. Only `read` ever changes."""

    id: str
    target_user_id: str
    kind: NotificationKind
    actor_username: str
    post_id: str | None = None
    created_at: AwareDatetime
    read: bool = False


class State(BaseModel):
    """The whole entity graph plus the session pointer.

    `posts` is kept most-recently-inserted first; views never rely on that
    and always sort explicitly.
    """

    users: list[User] = Field(default_factory=list)
    posts: list[Post] = Field(default_factory=list)
    notifications: list[Notification] = Field(default_factory=list)
    session_user_id: str | None = None


class Snapshot(State):
    """State as written to the key-value store."""

    version: int = SNAPSHOT_VERSION

    @classmethod
    def from_state(cls, state: State) -> Snapshot:
        return cls(**state.model_dump())

    def to_state(self) -> State:
        return State.model_validate(self.model_dump(exclude={"version"}))
