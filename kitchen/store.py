"""Contract between the auth layer and whatever persists user credentials."""

from __future__ import annotations

from typing import Optional, Protocol

from .models import User


class StoreError(RuntimeError):
    """Base class for persistence failures raised by a credential store."""


class UsernameTakenError(StoreError, ValueError):
    """Raised when an insert collides with an existing username."""


class UserNotFoundError(StoreError, LookupError):
    """Raised when a user identifier does not resolve to a stored user."""


class DishNotFoundError(StoreError, LookupError):
    """Raised when a dish identifier is not part of the catalog."""


class CredentialStore(Protocol):
    """Operations the auth service needs from the persistence layer.

    Implementations must enforce username uniqueness themselves; the auth
    service only pre-checks it.
    """

    def find_user(self, username: str) -> Optional[int]: ...

    def fetch_user(self, user_id: int) -> User: ...

    def add_user(self, username: str, password_hash: str) -> User: ...

    def update_last_sign_on(self, user_id: int) -> None: ...


__all__ = [
    "CredentialStore",
    "DishNotFoundError",
    "StoreError",
    "UserNotFoundError",
    "UsernameTakenError",
]
