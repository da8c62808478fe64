"""Typed failures raised by the core.

Every error carries a short `kind` string so a front end can branch on it
without importing the classes. Callers catch `TwittishError`; the engine
never applies part of a mutation before raising.
"""


class TwittishError(Exception):
    """Base class for every failure the core reports to its caller."""

    kind = "error"


class NotFound(TwittishError):
    """A referenced user or post does not exist."""

    kind = "not_found"


class Unauthorized(TwittishError):
    """The operation needs a logged-in user and there is none."""

    kind = "unauthorized"


class DuplicateUsername(TwittishError):
    kind = "duplicate_username"


class DuplicateEmail(TwittishError):
    kind = "duplicate_email"


class InvalidCredentials(TwittishError):
    kind = "invalid_credentials"


class ValidationError(TwittishError):
    """A required field is blank or a value is malformed."""

    kind = "validation"


class StorageCorrupt(TwittishError):
    """The persisted snapshot could not be read back.

    Recovered by reseeding inside the persistence adapter; never raised to
    engine callers.
    """

    kind = "storage_corrupt"


class StorageError(TwittishError):
    """Writing the snapshot to the key-value store failed."""

    kind = "storage"
