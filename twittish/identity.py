"""User records: lookup, placeholder creation, registration, login, profile.

Usernames are unique and case-sensitive. A username referenced before anyone
registers it (for example through a mention) becomes a placeholder user with
no credential. Whether registration may later claim a placeholder is a
policy flag; by default it may not.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .errors import (
    DuplicateEmail,
    DuplicateUsername,
    InvalidCredentials,
    NotFound,
    ValidationError,
)
from .models import State, User

logger = logging.getLogger(__name__)


def lookup_by_username(state: State, name: str) -> User | None:
    for user in state.users:
        if user.username == name:
            return user
    return None


def lookup_by_email(state: State, email: str) -> User | None:
    if not email:
        return None
    for user in state.users:
        if user.email == email:
            return user
    return None


def lookup_by_id(state: State, user_id: str | None) -> User | None:
    if user_id is None:
        return None
    for user in state.users:
        if user.id == user_id:
            return user
    return None


def ensure_user(state: State, name: str, *, new_id: Callable[[], str]) -> User:
    """Return the user called `name`, creating a placeholder if there is none."""
    user = lookup_by_username(state, name)
    if user is None:
        user = User(id=new_id(), username=name, display=name)
        state.users.append(user)
        logger.debug("created placeholder user %s", name)
    return user


def register(
    state: State,
    email: str,
    username: str,
    secret: str,
    *,
    new_id: Callable[[], str],
    allow_claim: bool = False,
) -> User:
    """Create an account. The caller points the session at the result.

    With allow_claim, an existing placeholder for the username is upgraded in
    place (same id) instead of rejected.
    """
    email, username = email.strip(), username.strip()
    if not email or not username or not secret:
        raise ValidationError("Email, username and password are required")

    existing = lookup_by_username(state, username)
    if existing is not None and not (allow_claim and existing.is_placeholder):
        raise DuplicateUsername(f"Username '{username}' is taken")

    holder = lookup_by_email(state, email)
    if holder is not None and holder is not existing:
        raise DuplicateEmail(f"Email '{email}' is already registered")

    if existing is not None:
        existing.email = email
        existing.display = username
        existing.credential_secret = secret
        logger.debug("placeholder %s claimed by registration", username)
        return existing

    user = User(
        id=new_id(),
        email=email,
        username=username,
        display=username,
        credential_secret=secret,
    )
    state.users.append(user)
    return user


def authenticate(
    state: State, username: str | None, email: str | None, secret: str
) -> User:
    """Resolve by username when given, else by email, and check the secret."""
    if username:
        user = lookup_by_username(state, username)
    else:
        user = lookup_by_email(state, email or "")
    if user is None:
        raise NotFound("User not found")
    if (user.credential_secret or "") != secret:
        raise InvalidCredentials("Wrong password")
    return user


def update_profile(
    state: State, user_id: str, display: str, bio: str, avatar_ref: str
) -> User:
    user = lookup_by_id(state, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    user.display = display
    user.bio = bio
    user.avatar_ref = avatar_ref
    return user


def search_users(state: State, query: str) -> list[User]:
    """Users whose username or display name contains `query`, ignoring case."""
    q = query.strip().lower()
    if not q:
        return []
    return [
        u for u in state.users
        if q in u.username.lower() or q in u.display.lower()
    ]
