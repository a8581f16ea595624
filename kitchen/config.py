"""Configuration for the kitchen service: environment settings and the dish catalog."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import yaml

from .database import resolve_database_path
from .models import DIFFICULTIES, Dish
from .security import DEFAULT_BCRYPT_ROUNDS


def _env_int(value: Optional[str], default: int, *, name: str) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value {value!r} for {name}") from exc


def resolve_catalog_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the YAML dish catalog."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "dishes.yaml").resolve(strict=False)


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the environment."""

    database_path: Path
    catalog_path: Path
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        database_path=resolve_database_path(env.get("KITCHEN_DB_PATH")),
        catalog_path=resolve_catalog_path(env.get("KITCHEN_DISHES_PATH")),
        bcrypt_rounds=_env_int(
            env.get("KITCHEN_BCRYPT_ROUNDS"),
            DEFAULT_BCRYPT_ROUNDS,
            name="KITCHEN_BCRYPT_ROUNDS",
        ),
    )


def _string_list(value: object, field_name: str, dish_id: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ValueError(f"Dish '{dish_id}' field '{field_name}' must be a list of strings")
    return [str(item).strip() for item in value if str(item).strip()]


def dish_from_dict(data: Dict[str, object]) -> Dish:
    """Create a :class:`Dish` from a raw catalog entry."""
    required_fields = {"id", "name", "difficulty"}
    missing = required_fields - data.keys()
    if missing:
        raise ValueError(f"Missing required dish fields: {', '.join(sorted(missing))}")

    dish_id = str(data["id"]).strip()
    if not dish_id:
        raise ValueError("Dish id must not be empty")

    difficulty = str(data["difficulty"]).strip().lower()
    if difficulty not in DIFFICULTIES:
        raise ValueError(
            f"Dish '{dish_id}' has unknown difficulty {data['difficulty']!r}; "
            f"expected one of {', '.join(DIFFICULTIES)}"
        )

    return Dish(
        id=dish_id,
        name=str(data["name"]).strip(),
        difficulty=difficulty,
        description=str(data.get("description") or "").strip(),
        ingredients=tuple(_string_list(data.get("ingredients"), "ingredients", dish_id)),
        instructions=tuple(_string_list(data.get("instructions"), "instructions", dish_id)),
    )


def load_dish_catalog(catalog_path: Path) -> List[Dish]:
    """Load dish definitions from a YAML file."""
    with catalog_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    dishes_raw = raw.get("dishes")
    if not dishes_raw:
        raise ValueError("Catalog file must define at least one dish under the 'dishes' key")

    dishes = [dish_from_dict(item) for item in dishes_raw]
    seen = set()
    for dish in dishes:
        if dish.id in seen:
            raise ValueError(f"Duplicate dish id '{dish.id}' in catalog")
        seen.add(dish.id)
    return dishes


__all__ = [
    "Settings",
    "dish_from_dict",
    "load_dish_catalog",
    "load_settings",
    "resolve_catalog_path",
]
