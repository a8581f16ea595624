"""SQLite-backed persistence for users, friends, completions and dishes."""
from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .models import Dish, User
from .store import DishNotFoundError, UserNotFoundError, UsernameTakenError


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "kitchen.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class Database:
    """Simple wrapper around SQLite implementing the credential store."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and is always closed."""

        conn = sqlite3.connect(self._path, check_same_thread=False)
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            with conn:
                yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    last_sign_on TEXT
                );

                CREATE TABLE IF NOT EXISTS friends (
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    friend_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, friend_id)
                );

                CREATE TABLE IF NOT EXISTS dishes (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    difficulty TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    ingredients TEXT NOT NULL DEFAULT '[]',
                    instructions TEXT NOT NULL DEFAULT '[]'
                );

                CREATE TABLE IF NOT EXISTS completions (
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    dish_id TEXT NOT NULL REFERENCES dishes(id) ON DELETE CASCADE,
                    score REAL NOT NULL,
                    completed_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, dish_id)
                );

                CREATE INDEX IF NOT EXISTS idx_dishes_difficulty ON dishes(difficulty);
                """
            )

    # ------------------------------------------------------------------
    # Credential store
    # ------------------------------------------------------------------
    def find_user(self, username: str) -> Optional[int]:
        """Return the identifier of ``username`` or ``None`` if unknown."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT id FROM users WHERE username = ?",
                (username,),
            ).fetchone()
        if row is None:
            return None
        return int(row["id"])

    def fetch_user(self, user_id: int) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    def add_user(self, username: str, password_hash: str) -> User:
        """Insert a user whose password has already been hashed."""

        created_at = _current_timestamp()
        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO users (username, password_hash, created_at) VALUES (?, ?, ?)",
                    (username, password_hash, _serialize_datetime(created_at)),
                )
            except sqlite3.IntegrityError as exc:
                raise UsernameTakenError(f"Username {username!r} is already in use") from exc
            user_id = cursor.lastrowid

        return User(
            id=int(user_id),
            username=username,
            password_hash=password_hash,
            created_at=created_at,
        )

    def update_last_sign_on(self, user_id: int) -> None:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET last_sign_on = ? WHERE id = ?",
                (_serialize_datetime(_current_timestamp()), user_id),
            )
            if cursor.rowcount == 0:
                raise UserNotFoundError(f"User {user_id} not found")

    # ------------------------------------------------------------------
    # User directory
    # ------------------------------------------------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            if row is None:
                return None
            friends, completions = self._load_relations(conn, int(row["id"]))
        return self._row_to_user(row, friends, completions)

    def list_users(self, username_filter: Optional[str] = None) -> List[User]:
        query = "SELECT * FROM users"
        params: Tuple[object, ...] = ()
        if username_filter:
            escaped = (
                username_filter.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            )
            query += " WHERE username LIKE ? ESCAPE '\\'"
            params = (f"%{escaped}%",)
        query += " ORDER BY username"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
            users = []
            for row in rows:
                friends, completions = self._load_relations(conn, int(row["id"]))
                users.append(self._row_to_user(row, friends, completions))
        return users

    def list_friends(self, user_id: int) -> List[User]:
        self.fetch_user(user_id)
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT users.* FROM friends
                  JOIN users ON users.id = friends.friend_id
                 WHERE friends.user_id = ?
                 ORDER BY users.username
                """,
                (user_id,),
            ).fetchall()
            users = []
            for row in rows:
                friends, completions = self._load_relations(conn, int(row["id"]))
                users.append(self._row_to_user(row, friends, completions))
        return users

    def add_friend(self, user_id: int, friend_id: int) -> None:
        self.fetch_user(user_id)
        self.fetch_user(friend_id)
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO friends (user_id, friend_id, created_at) VALUES (?, ?, ?)",
                (user_id, friend_id, _serialize_datetime(_current_timestamp())),
            )

    def remove_friend(self, user_id: int, friend_id: int) -> bool:
        self.fetch_user(user_id)
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM friends WHERE user_id = ? AND friend_id = ?",
                (user_id, friend_id),
            )
            return cursor.rowcount > 0

    def record_completion(self, user_id: int, dish_id: str, score: float) -> None:
        """Store ``score`` for the dish, replacing any earlier completion."""

        self.fetch_user(user_id)
        self.fetch_dish(dish_id)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO completions (user_id, dish_id, score, completed_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (user_id, dish_id)
                DO UPDATE SET score = excluded.score, completed_at = excluded.completed_at
                """,
                (user_id, dish_id, float(score), _serialize_datetime(_current_timestamp())),
            )

    # ------------------------------------------------------------------
    # Dish catalog
    # ------------------------------------------------------------------
    def list_dishes(self, difficulty: Optional[str] = None) -> List[Dish]:
        with self._connect() as conn:
            if difficulty is None:
                rows = conn.execute("SELECT * FROM dishes ORDER BY name").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM dishes WHERE difficulty = ? ORDER BY name",
                    (difficulty,),
                ).fetchall()
        return [self._row_to_dish(row) for row in rows]

    def get_dish(self, dish_id: str) -> Optional[Dish]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM dishes WHERE id = ?", (dish_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_dish(row)

    def fetch_dish(self, dish_id: str) -> Dish:
        dish = self.get_dish(dish_id)
        if dish is None:
            raise DishNotFoundError(f"Dish {dish_id!r} not found")
        return dish

    def replace_dishes(self, dishes: Iterable[Dish]) -> int:
        """Insert or update catalog entries and return how many were written."""

        count = 0
        with self._connect() as conn:
            for dish in dishes:
                conn.execute(
                    """
                    INSERT INTO dishes (id, name, difficulty, description, ingredients, instructions)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT (id) DO UPDATE SET
                        name = excluded.name,
                        difficulty = excluded.difficulty,
                        description = excluded.description,
                        ingredients = excluded.ingredients,
                        instructions = excluded.instructions
                    """,
                    (
                        dish.id,
                        dish.name,
                        dish.difficulty,
                        dish.description,
                        json.dumps(list(dish.ingredients)),
                        json.dumps(list(dish.instructions)),
                    ),
                )
                count += 1
        return count

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load_relations(
        self, conn: sqlite3.Connection, user_id: int
    ) -> Tuple[Tuple[int, ...], Dict[str, float]]:
        friend_rows = conn.execute(
            "SELECT friend_id FROM friends WHERE user_id = ? ORDER BY friend_id",
            (user_id,),
        ).fetchall()
        completion_rows = conn.execute(
            "SELECT dish_id, score FROM completions WHERE user_id = ? ORDER BY dish_id",
            (user_id,),
        ).fetchall()
        friends = tuple(int(row["friend_id"]) for row in friend_rows)
        completions = {str(row["dish_id"]): float(row["score"]) for row in completion_rows}
        return friends, completions

    def _row_to_user(
        self,
        row: sqlite3.Row,
        friends: Tuple[int, ...] = (),
        completions: Optional[Dict[str, float]] = None,
    ) -> User:
        return User(
            id=int(row["id"]),
            username=str(row["username"]),
            password_hash=str(row["password_hash"]),
            created_at=_parse_datetime(str(row["created_at"])),
            last_sign_on=_parse_datetime(row["last_sign_on"]),
            friends=friends,
            completions=dict(completions or {}),
        )

    def _row_to_dish(self, row: sqlite3.Row) -> Dish:
        return Dish(
            id=str(row["id"]),
            name=str(row["name"]),
            difficulty=str(row["difficulty"]),
            description=str(row["description"]),
            ingredients=tuple(json.loads(row["ingredients"])),
            instructions=tuple(json.loads(row["instructions"])),
        )


__all__ = ["Database", "resolve_database_path"]
