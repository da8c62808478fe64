"""Mutation engine, the only writer of the entity graph.

Each command runs as one transaction:
  1. Check the session and validate input. Nothing has changed yet, so a
     failure here leaves the state untouched.
  2. Apply entity updates (posts, likes, users, session pointer).
  3. Record notifications that follow from the change:
       create_post  → "mention" for every @username (placeholders created)
       toggle_like  → "like" for the author, only on unliked → liked and
                      never for liking your own post
       create_reply → "reply" for the parent's author unless it is you
  4. Save the snapshot. A failed save is logged and flagged on `unsaved`;
     the in-memory change is kept.
  5. Tell subscribers which command committed. A subscriber that raises is
     logged and skipped; the command has already succeeded.

Commands and reads share one re-entrant lock. Reads hand back deep copies so
callers never hold a reference into live state.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from . import content, identity, views
from . import notifications as ledger
from .annotate import extract_mentions
from .config import default_config
from .errors import NotFound, StorageError, Unauthorized, ValidationError
from .models import Notification, Post, State, User
from .persistence import Persistence
from .seed import seed_state

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


def _uuid_id() -> str:
    return uuid.uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Engine:
    """Owns the state and exposes the commands a front end may call.

    Args:
        persistence: Where snapshots are written after every command.
        state:       The state to operate on (normally from Engine.open).
        new_id:      Identifier factory. Defaults to random UUID hex.
        now:         Clock returning timezone-aware datetimes.
        config:      Settings dict as returned by config.get_config().
    """

    def __init__(
        self,
        persistence: Persistence,
        state: State,
        *,
        new_id: Callable[[], str] | None = None,
        now: Callable[[], datetime] | None = None,
        config: dict[str, Any] | None = None,
    ) -> None:
        self._persistence = persistence
        self._state = state
        self._new_id = new_id or _uuid_id
        self._now = now or _utc_now
        self._config = default_config()
        self._config.update(config or {})
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self.unsaved = False

    @classmethod
    def open(
        cls,
        persistence: Persistence,
        *,
        new_id: Callable[[], str] | None = None,
        now: Callable[[], datetime] | None = None,
        config: dict[str, Any] | None = None,
    ) -> Engine:
        """Load the stored state (or seed it) and return an engine over it."""
        new_id = new_id or _uuid_id
        now = now or _utc_now
        state = persistence.load(lambda: seed_state(new_id=new_id, now=now))
        return cls(persistence, state, new_id=new_id, now=now, config=config)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(command_name)` after each committed command.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _session_user(self) -> User:
        user = identity.lookup_by_id(self._state, self._state.session_user_id)
        if user is None:
            raise Unauthorized("Login required")
        return user

    def _validate_text(self, text: str, what: str) -> str:
        text = text.strip()
        if not text:
            raise ValidationError(f"{what} cannot be empty")
        limit = self._config["max_post_length"]
        if self._config["enforce_max_length"] and len(text) > limit:
            raise ValidationError(f"{what} is longer than {limit} characters")
        return text

    def _commit(self, command: str) -> None:
        try:
            self._persistence.save(self._state)
        except StorageError as e:
            self.unsaved = True
            logger.warning("%s applied but not saved: %s", command, e)
        else:
            self.unsaved = False
        logger.debug("committed %s", command)
        for listener in list(self._listeners):
            try:
                listener(command)
            except Exception:
                logger.exception("listener %r failed after %s", listener, command)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_post(self, text: str, media_ref: str = "") -> Post:
        with self._lock:
            user = self._session_user()
            text = self._validate_text(text, "Post")
            post = content.create_post(
                self._state, user.username, text, media_ref.strip(),
                new_id=self._new_id, now=self._now,
            )
            for name in extract_mentions(text):
                target = identity.ensure_user(self._state, name, new_id=self._new_id)
                ledger.record(
                    self._state, "mention", user.username, target.id, post.id,
                    new_id=self._new_id, now=self._now,
                )
            self._commit("create_post")
            return post.model_copy(deep=True)

    def toggle_like(self, post_id: str) -> Post:
        with self._lock:
            user = self._session_user()
            post = content.find_by_id(self._state, post_id)
            if post is None:
                raise NotFound(f"Post {post_id} not found")
            liked = content.toggle_like(self._state, post_id, user.username)
            if liked:
                author = identity.lookup_by_username(self._state, post.author_username)
                if author is not None and author.id != user.id:
                    ledger.record(
                        self._state, "like", user.username, author.id, post.id,
                        new_id=self._new_id, now=self._now,
                    )
            self._commit("toggle_like")
            return post.model_copy(deep=True)

    def create_reply(self, post_id: str, text: str) -> Post:
        with self._lock:
            user = self._session_user()
            text = self._validate_text(text, "Reply")
            parent = content.find_by_id(self._state, post_id)
            if parent is None:
                raise NotFound(f"Post {post_id} not found")
            reply = content.create_post(
                self._state, user.username, text, "", parent.id,
                new_id=self._new_id, now=self._now,
            )
            author = identity.lookup_by_username(self._state, parent.author_username)
            if author is not None and author.id != user.id:
                ledger.record(
                    self._state, "reply", user.username, author.id, parent.id,
                    new_id=self._new_id, now=self._now,
                )
            self._commit("create_reply")
            return reply.model_copy(deep=True)

    def register(self, email: str, username: str, secret: str) -> User:
        with self._lock:
            user = identity.register(
                self._state, email, username, secret,
                new_id=self._new_id,
                allow_claim=self._config["allow_placeholder_claim"],
            )
            self._state.session_user_id = user.id
            self._commit("register")
            return user.model_copy(deep=True)

    def login(self, username: str | None, email: str | None, secret: str) -> User:
        with self._lock:
            if not secret or not (username or email):
                raise ValidationError("Username or email and password are required")
            user = identity.authenticate(self._state, username, email, secret)
            self._state.session_user_id = user.id
            self._commit("login")
            return user.model_copy(deep=True)

    def logout(self) -> None:
        with self._lock:
            self._state.session_user_id = None
            self._commit("logout")

    def update_profile(self, display: str, bio: str, avatar_ref: str) -> User:
        with self._lock:
            user = self._session_user()
            user = identity.update_profile(
                self._state, user.id, display.strip(), bio.strip(), avatar_ref.strip(),
            )
            self._commit("update_profile")
            return user.model_copy(deep=True)

    def reset(self) -> None:
        """Throw away all state and start again from the demo seed."""
        with self._lock:
            self._state = seed_state(new_id=self._new_id, now=self._now)
            logger.info("state reset to seed")
            self._commit("reset")

    def mark_notifications_read(self) -> int:
        with self._lock:
            user = self._session_user()
            changed = ledger.mark_all_read(self._state, user.id)
            self._commit("mark_notifications_read")
            return changed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def current_user(self) -> User | None:
        with self._lock:
            user = identity.lookup_by_id(self._state, self._state.session_user_id)
            return user.model_copy(deep=True) if user else None

    def view(self, target: views.Target, media_only: bool = False) -> list[Post]:
        with self._lock:
            posts = views.resolve(self._state, target, media_only)
            return [p.model_copy(deep=True) for p in posts]

    def find_post(self, post_id: str) -> Post | None:
        with self._lock:
            post = content.find_by_id(self._state, post_id)
            return post.model_copy(deep=True) if post else None

    def find_user(self, username: str) -> User | None:
        with self._lock:
            user = identity.lookup_by_username(self._state, username)
            return user.model_copy(deep=True) if user else None

    def search_users(self, query: str) -> list[User]:
        with self._lock:
            return [u.model_copy(deep=True) for u in identity.search_users(self._state, query)]

    def notifications(self) -> list[Notification]:
        """The session user's notifications, oldest first ([] when logged out)."""
        with self._lock:
            if self._state.session_user_id is None:
                return []
            return [
                n.model_copy(deep=True)
                for n in ledger.list_for(self._state, self._state.session_user_id)
            ]

    def unread_count(self) -> int:
        with self._lock:
            if self._state.session_user_id is None:
                return 0
            return ledger.unread_count(self._state, self._state.session_user_id)

    def snapshot(self) -> State:
        """Deep copy of the whole state."""
        with self._lock:
            return self._state.model_copy(deep=True)
