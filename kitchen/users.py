"""User directory, friend list and completion tracking."""

from __future__ import annotations

import logging
import math
from typing import List, Optional

from .database import Database
from .models import PublicUser

logger = logging.getLogger("kitchen.users")

MIN_SCORE = 0.0
MAX_SCORE = 100.0


def fetch_users(store: Database, username: Optional[str] = None) -> List[PublicUser]:
    """List users ordered by username, optionally matching part of a username."""

    query = username.strip() if username else None
    return [user.public() for user in store.list_users(query or None)]


def fetch_user(store: Database, user_id: int) -> PublicUser:
    return store.fetch_user(user_id).public()


def fetch_friends(store: Database, user_id: int) -> List[PublicUser]:
    return [friend.public() for friend in store.list_friends(user_id)]


def add_friend(store: Database, user_id: int, friend_id: int) -> List[PublicUser]:
    if user_id == friend_id:
        raise ValueError("Users cannot add themselves as a friend")
    store.add_friend(user_id, friend_id)
    logger.info("User %s added friend %s", user_id, friend_id)
    return fetch_friends(store, user_id)


def remove_friend(store: Database, user_id: int, friend_id: int) -> List[PublicUser]:
    if store.remove_friend(user_id, friend_id):
        logger.info("User %s removed friend %s", user_id, friend_id)
    return fetch_friends(store, user_id)


def insert_completion(store: Database, user_id: int, dish_id: str, score: float) -> PublicUser:
    """Record that ``user_id`` cooked ``dish_id``, replacing any earlier score."""

    try:
        value = float(score)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Score must be a number, got {score!r}") from exc
    if math.isnan(value) or not MIN_SCORE <= value <= MAX_SCORE:
        raise ValueError(f"Score must be between {MIN_SCORE:g} and {MAX_SCORE:g}")

    store.record_completion(user_id, dish_id, value)
    logger.info("User %s completed dish %s with score %s", user_id, dish_id, value)
    return fetch_user(store, user_id)


__all__ = [
    "MAX_SCORE",
    "MIN_SCORE",
    "add_friend",
    "fetch_friends",
    "fetch_user",
    "fetch_users",
    "insert_completion",
    "remove_friend",
]
