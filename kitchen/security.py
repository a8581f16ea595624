"""Password hashing helpers backed by passlib's bcrypt handler."""
from __future__ import annotations

from passlib.context import CryptContext

DEFAULT_BCRYPT_ROUNDS = 10
MIN_BCRYPT_ROUNDS = 4
MAX_BCRYPT_ROUNDS = 31
MAX_PASSWORD_BYTES = 72


def validate_password(password: str) -> None:
    """Reject passwords bcrypt would not hash faithfully.

    bcrypt ignores everything past the 72nd byte, so longer secrets would be
    silently truncated.
    """

    if not password:
        raise ValueError("Password must not be empty")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")


class PasswordHasher:
    """Salted bcrypt hashing with a fixed work factor."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        if not MIN_BCRYPT_ROUNDS <= rounds <= MAX_BCRYPT_ROUNDS:
            raise ValueError(
                f"bcrypt rounds must be between {MIN_BCRYPT_ROUNDS} and {MAX_BCRYPT_ROUNDS}, got {rounds}"
            )
        self._rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, password: str) -> str:
        validate_password(password)
        return self._context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        """Return ``True`` if ``password`` matches ``hashed``.

        Comparison happens inside passlib in constant time. A malformed hash
        raises ``ValueError`` rather than silently failing. Passwords longer than
        bcrypt's byte limit never match.
        """

        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            return False
        return self._context.verify(password, hashed)


_default_hasher: PasswordHasher | None = None


def get_default_hasher() -> PasswordHasher:
    """Return the process-wide hasher configured from ``KITCHEN_BCRYPT_ROUNDS``."""

    global _default_hasher
    if _default_hasher is None:
        from .config import load_settings

        _default_hasher = PasswordHasher(load_settings().bcrypt_rounds)
    return _default_hasher


__all__ = [
    "DEFAULT_BCRYPT_ROUNDS",
    "MAX_BCRYPT_ROUNDS",
    "MAX_PASSWORD_BYTES",
    "MIN_BCRYPT_ROUNDS",
    "PasswordHasher",
    "get_default_hasher",
    "validate_password",
]
