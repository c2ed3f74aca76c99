"""Data models for gamereviews."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from gamereviews.errors import ValidationError

USERNAME_MIN = 3
USERNAME_MAX = 20
PASSWORD_MIN = 6
RATING_MIN = 1
RATING_MAX = 5

KNOWN_GAMES: dict[str, str] = {
    "cyberpunk": "Cyberpunk 2077",
    "zelda": "The Legend of Zelda: Tears of the Kingdom",
    "baldurs-gate": "Baldur's Gate 3",
}


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _fmt_dt(dt: datetime) -> str:
    return dt.isoformat()


def _parse_dt(value: Optional[str]) -> datetime:
    return datetime.fromisoformat(value) if value else _now()


@dataclass
class Account:
    """A registered user identity."""

    username: str
    email: str
    password_hash: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        if not USERNAME_MIN <= len(self.username) <= USERNAME_MAX:
            raise ValidationError(
                f"Username must be {USERNAME_MIN}-{USERNAME_MAX} characters"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "passwordHash": self.password_hash,
            "createdAt": _fmt_dt(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Account:
        return cls(
            id=data["id"],
            username=data["username"],
            email=data["email"],
            password_hash=data["passwordHash"],
            created_at=_parse_dt(data.get("createdAt")),
        )


@dataclass
class Rating:
    """One user's star score for one game."""

    game_id: str
    game_name: str
    username: str
    rating: int
    comment: str = ""
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        if not RATING_MIN <= self.rating <= RATING_MAX:
            raise ValidationError(
                f"Rating must be between {RATING_MIN} and {RATING_MAX}, got {self.rating}"
            )

    @property
    def stars(self) -> str:
        """Return the rating as a five-character star bar, e.g. ``★★★☆☆``."""
        return "★" * self.rating + "☆" * (RATING_MAX - self.rating)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "gameId": self.game_id,
            "gameName": self.game_name,
            "username": self.username,
            "rating": self.rating,
            "comment": self.comment,
            "createdAt": _fmt_dt(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Rating:
        return cls(
            id=data["id"],
            game_id=data["gameId"],
            game_name=data.get("gameName", ""),
            username=data["username"],
            rating=int(data["rating"]),
            comment=data.get("comment", ""),
            created_at=_parse_dt(data.get("createdAt")),
        )


@dataclass
class RatingSummary:
    """Aggregate view of the ratings for a single game."""

    game_id: str
    count: int = 0
    average: float = 0.0
    recent: list[Rating] = field(default_factory=list)

    @property
    def has_ratings(self) -> bool:
        return self.count > 0
