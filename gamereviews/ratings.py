"""Rating store: per-game star ratings, one per user per game."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from gamereviews.accounts import AccountStore
from gamereviews.db import Database
from gamereviews.errors import StorageError, ValidationError
from gamereviews.models import Rating, RatingSummary

logger = logging.getLogger(__name__)

RATINGS_KEY = "game_ratings"
DEFAULT_RECENT = 3


def _coerce_rating(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid rating value: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"Invalid rating value: {value!r}")


class RatingStore:
    """Owns the mapping of game id to that game's ratings.

    Parameters
    ----------
    db:
        The ``Database`` the mapping is loaded from and saved to.
    accounts:
        Used only to find out who is currently logged in.
    """

    def __init__(self, db: Database, accounts: AccountStore) -> None:
        self._db = db
        self._accounts = accounts
        raw = db.get_json(RATINGS_KEY, {})
        try:
            self._ratings: dict[str, list[Rating]] = {
                game_id: [Rating.from_dict(r) for r in entries]
                for game_id, entries in raw.items()
            }
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise StorageError(f"Stored rating data is malformed: {exc!r}") from exc

    def _save(self) -> None:
        self._db.set_json(
            RATINGS_KEY,
            {
                game_id: [r.to_dict() for r in entries]
                for game_id, entries in self._ratings.items()
            },
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_rating(
        self,
        game_id: str,
        game_name: str,
        rating_value: Any,
        comment: str = "",
    ) -> bool:
        """Add or replace the current user's rating for *game_id*.

        Returns ``False`` without touching anything when nobody is logged in.
        An earlier rating by the same user keeps its position in the list but
        is otherwise replaced entirely. Raises ``ValidationError`` if
        *rating_value* is not an integer from 1 to 5.
        """
        user = self._accounts.get_current_user()
        if user is None:
            logger.warning("Rejected rating for %s: not logged in", game_id)
            return False

        rating = Rating(
            game_id=game_id,
            game_name=game_name,
            username=user.username,
            rating=_coerce_rating(rating_value),
            comment=(comment or "").strip(),
        )

        previous = self._ratings.get(game_id)
        entries = list(previous) if previous is not None else []
        for i, existing in enumerate(entries):
            if existing.username == user.username:
                entries[i] = rating
                break
        else:
            entries.append(rating)

        self._ratings[game_id] = entries
        try:
            self._save()
        except Exception:
            if previous is None:
                del self._ratings[game_id]
            else:
                self._ratings[game_id] = previous
            raise
        logger.info("Saved %d-star rating for %s by %s", rating.rating, game_id, user.username)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_ratings(self, game_id: str) -> list[Rating]:
        return list(self._ratings.get(game_id, []))

    def rating_count(self, game_id: str) -> int:
        return len(self._ratings.get(game_id, []))

    def get_average_rating(self, game_id: str) -> float:
        """Return the mean rating rounded half-up to one decimal, or 0."""
        entries = self._ratings.get(game_id, [])
        if not entries:
            return 0
        mean = Decimal(sum(r.rating for r in entries)) / Decimal(len(entries))
        return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    def get_user_rating(self, game_id: str) -> Optional[Rating]:
        user = self._accounts.get_current_user()
        if user is None:
            return None
        for rating in self._ratings.get(game_id, []):
            if rating.username == user.username:
                return rating
        return None

    def list_recent(self, game_id: str, n: int = DEFAULT_RECENT) -> list[Rating]:
        """Return the last *n* ratings for *game_id*, latest first."""
        if n <= 0:
            return []
        return list(reversed(self._ratings.get(game_id, [])[-n:]))

    def summary(self, game_id: str, recent: int = DEFAULT_RECENT) -> RatingSummary:
        return RatingSummary(
            game_id=game_id,
            count=self.rating_count(game_id),
            average=self.get_average_rating(game_id),
            recent=self.list_recent(game_id, recent),
        )
