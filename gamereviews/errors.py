"""Exception types raised by the gamereviews stores."""

from __future__ import annotations


class GameReviewsError(Exception):
    """Base class for all gamereviews errors."""


class ValidationError(GameReviewsError, ValueError):
    """Raised when input fails a length or range check."""


class ConflictError(GameReviewsError):
    """Raised when a username or email is already registered."""


class AuthError(GameReviewsError):
    """Raised when a username/password pair does not match any account."""


class LoginRequiredError(GameReviewsError, PermissionError):
    """Raised when an action needs an active session and there is none."""


class StorageError(GameReviewsError):
    """Raised when a persisted value cannot be decoded."""
