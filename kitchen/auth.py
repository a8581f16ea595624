"""Registration and login against a credential store."""

from __future__ import annotations

import logging
from typing import Optional

from .models import PublicUser
from .security import PasswordHasher, get_default_hasher, validate_password
from .store import CredentialStore, UsernameTakenError

logger = logging.getLogger("kitchen.auth")


class AuthError(Exception):
    """Base class for every failure surfaced by the auth service."""


class DuplicateUsernameError(AuthError):
    """Raised when registering a username that already exists."""

    def __init__(self, message: str = "Username is already in use") -> None:
        super().__init__(message)


class InvalidPasswordError(AuthError, ValueError):
    """Raised when a new password cannot be hashed faithfully."""


class AuthenticationRejected(AuthError):
    """Raised when a username/password pair does not authenticate."""


class InvalidUsernameError(AuthenticationRejected):
    def __init__(self, message: str = "Invalid username") -> None:
        super().__init__(message)


class IncorrectPasswordError(AuthenticationRejected):
    def __init__(self, message: str = "Password is incorrect") -> None:
        super().__init__(message)


class AuthStoreFailure(AuthError):
    """Wraps an unexpected error raised while talking to the store."""

    prefix = "Problem with the credential store"

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"{self.prefix}. Error: {cause}")
        self.cause = cause


class RegistrationError(AuthStoreFailure):
    prefix = "Problem registering"


class LoginError(AuthStoreFailure):
    prefix = "Problem logging in"


def register(
    store: CredentialStore,
    username: str,
    password: str,
    *,
    hasher: Optional[PasswordHasher] = None,
) -> PublicUser:
    """Create a new account and return its public view.

    The username is checked for availability before any hashing happens. A
    concurrent registration that wins the race after the check is caught by
    the store's uniqueness constraint and reported the same way.
    """

    try:
        validate_password(password)
    except ValueError as exc:
        logger.warning("Registration of %r rejected: %s", username, exc)
        raise InvalidPasswordError(str(exc)) from exc

    try:
        if store.find_user(username) is not None:
            raise DuplicateUsernameError()
        password_hash = (hasher or get_default_hasher()).hash(password)
        try:
            user = store.add_user(username, password_hash)
        except UsernameTakenError as exc:
            raise DuplicateUsernameError() from exc
    except AuthError:
        raise
    except Exception as exc:
        logger.exception("Registration of %r failed", username)
        raise RegistrationError(exc) from exc

    logger.info("Registered user %s (%s)", user.id, user.username)
    return user.public()


def login(
    store: CredentialStore,
    username: str,
    password: str,
    *,
    hasher: Optional[PasswordHasher] = None,
) -> PublicUser:
    """Verify a username/password pair and return the matching public view.

    Unknown usernames and failed lookups both surface as
    :class:`InvalidUsernameError` so callers cannot probe which accounts
    exist. A successful login records the sign-on time; if that write fails
    the login fails.
    """

    try:
        user_id = store.find_user(username)
    except Exception:
        logger.warning("Username lookup failed during login", exc_info=True)
        raise InvalidUsernameError() from None
    if user_id is None:
        logger.warning("Login rejected for unknown username %r", username)
        raise InvalidUsernameError()

    try:
        user = store.fetch_user(user_id)
        if not (hasher or get_default_hasher()).verify(password, user.password_hash):
            logger.warning("Login rejected for user %s: incorrect password", user_id)
            raise IncorrectPasswordError()
        store.update_last_sign_on(user.id)
        user = store.fetch_user(user.id)
    except AuthError:
        raise
    except Exception as exc:
        logger.exception("Login of user %s failed", user_id)
        raise LoginError(exc) from exc

    logger.info("User %s signed in", user.id)
    return user.public()


__all__ = [
    "AuthError",
    "AuthStoreFailure",
    "AuthenticationRejected",
    "DuplicateUsernameError",
    "IncorrectPasswordError",
    "InvalidPasswordError",
    "InvalidUsernameError",
    "LoginError",
    "RegistrationError",
    "login",
    "register",
]
