"""Account store: registration, login and the active session."""

from __future__ import annotations

import logging
from typing import Optional

from gamereviews.db import Database
from gamereviews.errors import (
    AuthError,
    ConflictError,
    LoginRequiredError,
    StorageError,
    ValidationError,
)
from gamereviews.models import PASSWORD_MIN, USERNAME_MAX, USERNAME_MIN, Account
from gamereviews.password import hash_password, verify_password

logger = logging.getLogger(__name__)

USERS_KEY = "gaming_users"
SESSION_KEY = "current_user"


class AccountStore:
    """Owns the registered accounts and the single active session.

    The account list and any saved session are loaded from *db* once, at
    construction. Every mutation rewrites the whole persisted value.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        try:
            self._accounts = [Account.from_dict(a) for a in db.get_json(USERS_KEY, [])]
            saved = db.get_json(SESSION_KEY)
            self._current: Optional[Account] = (
                Account.from_dict(saved) if saved else None
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise StorageError(f"Stored account data is malformed: {exc!r}") from exc
        logger.debug("Loaded %d accounts", len(self._accounts))
        if self._current is not None:
            logger.debug("Restored session for %s", self._current.username)

    def _save_accounts(self) -> None:
        self._db.set_json(USERS_KEY, [a.to_dict() for a in self._accounts])

    # ------------------------------------------------------------------
    # Registration & authentication
    # ------------------------------------------------------------------

    def register(self, username: str, email: str, password: str) -> Account:
        """Create a new account. Does not log the user in.

        Raises ``ValidationError`` for a bad username or password length and
        ``ConflictError`` if the username or email is already taken.
        """
        if not USERNAME_MIN <= len(username) <= USERNAME_MAX:
            raise ValidationError(
                f"Username must be {USERNAME_MIN}-{USERNAME_MAX} characters"
            )
        if len(password) < PASSWORD_MIN:
            raise ValidationError(
                f"Password must be at least {PASSWORD_MIN} characters"
            )
        if any(a.username == username for a in self._accounts):
            raise ConflictError(f"Username {username!r} is already taken")
        if any(a.email == email for a in self._accounts):
            raise ConflictError(f"Email {email!r} is already registered")

        account = Account(
            username=username,
            email=email,
            password_hash=hash_password(password),
        )
        self._accounts.append(account)
        try:
            self._save_accounts()
        except Exception:
            self._accounts.pop()
            raise
        logger.info("Registered account %s", username)
        return account

    def login(self, username: str, password: str) -> Account:
        """Start a session for *username*, replacing any existing one.

        Raises ``AuthError`` if no account matches the credentials.
        """
        account = self.get_account(username)
        if account is None or not verify_password(password, account.password_hash):
            logger.warning("Failed login attempt for %s", username)
            raise AuthError("Invalid username or password")
        self._db.set_json(SESSION_KEY, account.to_dict())
        self._current = account
        logger.info("Logged in %s", username)
        return account

    def logout(self) -> None:
        """End the active session. Safe to call when already logged out."""
        if self._current is not None:
            logger.info("Logged out %s", self._current.username)
        self._db.delete(SESSION_KEY)
        self._current = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_current_user(self) -> Optional[Account]:
        return self._current

    def is_logged_in(self) -> bool:
        return self._current is not None

    def require_login(self) -> Account:
        """Return the current account or raise ``LoginRequiredError``."""
        if self._current is None:
            raise LoginRequiredError("Please log in first")
        return self._current

    def get_account(self, username: str) -> Optional[Account]:
        for account in self._accounts:
            if account.username == username:
                return account
        return None

    def list_accounts(self) -> list[Account]:
        """Return all accounts in registration order."""
        return list(self._accounts)
