"""Read-only access to the dish catalog."""

from __future__ import annotations

from typing import List, Optional

from .database import Database
from .models import DIFFICULTIES, Dish


def normalize_difficulty(value: str) -> str:
    difficulty = value.strip().lower()
    if difficulty not in DIFFICULTIES:
        raise ValueError(
            f"Unknown difficulty {value!r}; expected one of {', '.join(DIFFICULTIES)}"
        )
    return difficulty


def fetch_dishes(store: Database, difficulty: Optional[str] = None) -> List[Dish]:
    if difficulty is None:
        return store.list_dishes()
    return store.list_dishes(normalize_difficulty(difficulty))


def fetch_dish(store: Database, dish_id: str) -> Dish:
    return store.fetch_dish(dish_id)


__all__ = ["fetch_dish", "fetch_dishes", "normalize_difficulty"]
