"""Domain models shared by the auth, user and dish layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple

DIFFICULTIES: Tuple[str, ...] = ("easy", "medium", "hard")


@dataclass(frozen=True)
class PublicUser:
    """A user account as exposed to callers. Never carries the password."""

    id: int
    username: str
    created_at: datetime
    last_sign_on: Optional[datetime] = None
    friends: Tuple[int, ...] = ()
    completions: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class User:
    """Represents a user account stored in the kitchen database."""

    id: int
    username: str
    password_hash: str
    created_at: datetime
    last_sign_on: Optional[datetime] = None
    friends: Tuple[int, ...] = ()
    completions: Dict[str, float] = field(default_factory=dict)

    def public(self) -> PublicUser:
        """Project the account onto the password-free view."""

        return PublicUser(
            id=self.id,
            username=self.username,
            created_at=self.created_at,
            last_sign_on=self.last_sign_on,
            friends=tuple(self.friends),
            completions=dict(self.completions),
        )

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, username={self.username!r})"


@dataclass(frozen=True)
class Dish:
    """A recipe from the read-only dish catalog."""

    id: str
    name: str
    difficulty: str
    description: str = ""
    ingredients: Tuple[str, ...] = ()
    instructions: Tuple[str, ...] = ()


__all__ = ["DIFFICULTIES", "Dish", "PublicUser", "User"]
