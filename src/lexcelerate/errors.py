"""Exceptions raised by the practice core."""


class LexcelerateError(Exception):
    """Base class for all application errors."""


class PreconditionError(LexcelerateError):
    """A caller broke an operation's precondition (a bug, not a user error)."""


class ValidationError(LexcelerateError):
    """User input was rejected; ``message`` is meant to be shown to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PersistenceError(LexcelerateError):
    """The key-value store failed to read or write."""
