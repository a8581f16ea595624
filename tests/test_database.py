from __future__ import annotations

import sqlite3
from pathlib import Path
from unittest import mock

import pytest

from kitchen.database import Database, resolve_database_path
from kitchen.models import Dish
from kitchen.store import DishNotFoundError, UserNotFoundError, UsernameTakenError


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db_path = tmp_path / "kitchen.sqlite3"
    db = Database(db_path)
    db.initialize()
    return db


def test_add_and_find_user(database: Database) -> None:
    user = database.add_user("alice", "$2b$04$hash")

    assert database.find_user("alice") == user.id
    assert database.find_user("bob") is None

    fetched = database.fetch_user(user.id)
    assert fetched.username == "alice"
    assert fetched.password_hash == "$2b$04$hash"
    assert fetched.last_sign_on is None
    assert fetched.friends == ()
    assert fetched.completions == {}


def test_username_uniqueness_is_enforced(database: Database) -> None:
    database.add_user("alice", "hash-1")
    with pytest.raises(UsernameTakenError):
        database.add_user("alice", "hash-2")


def test_fetch_missing_user_raises(database: Database) -> None:
    with pytest.raises(UserNotFoundError):
        database.fetch_user(404)
    with pytest.raises(UserNotFoundError):
        database.update_last_sign_on(404)


def test_update_last_sign_on(database: Database) -> None:
    user = database.add_user("alice", "hash")
    database.update_last_sign_on(user.id)

    refreshed = database.fetch_user(user.id)
    assert refreshed.last_sign_on is not None
    assert refreshed.last_sign_on >= refreshed.created_at


def test_list_users_filters_by_partial_username(database: Database) -> None:
    database.add_user("carol", "hash")
    database.add_user("alice", "hash")
    database.add_user("malice", "hash")
    database.add_user("under_score", "hash")

    assert [u.username for u in database.list_users()] == ["alice", "carol", "malice", "under_score"]
    assert [u.username for u in database.list_users("ALI")] == ["alice", "malice"]
    assert [u.username for u in database.list_users("_")] == ["under_score"]


def test_friend_relations(database: Database) -> None:
    alice = database.add_user("alice", "hash")
    bob = database.add_user("bob", "hash")

    database.add_friend(alice.id, bob.id)
    database.add_friend(alice.id, bob.id)

    assert [f.id for f in database.list_friends(alice.id)] == [bob.id]
    assert database.list_friends(bob.id) == []
    assert database.fetch_user(alice.id).friends == (bob.id,)

    assert database.remove_friend(alice.id, bob.id) is True
    assert database.remove_friend(alice.id, bob.id) is False
    assert database.list_friends(alice.id) == []

    with pytest.raises(UserNotFoundError):
        database.add_friend(alice.id, 999)


def test_dish_catalog_and_completions(database: Database) -> None:
    written = database.replace_dishes(
        [
            Dish(id="risotto", name="Risotto", difficulty="medium", ingredients=("rice",)),
            Dish(id="toast", name="Toast", difficulty="easy"),
        ]
    )
    assert written == 2
    assert [d.id for d in database.list_dishes()] == ["risotto", "toast"]
    assert [d.id for d in database.list_dishes("easy")] == ["toast"]
    assert database.fetch_dish("risotto").ingredients == ("rice",)

    database.replace_dishes([Dish(id="toast", name="Buttered Toast", difficulty="easy")])
    assert database.fetch_dish("toast").name == "Buttered Toast"

    user = database.add_user("alice", "hash")
    database.record_completion(user.id, "risotto", 80)
    database.record_completion(user.id, "risotto", 65.5)
    assert database.fetch_user(user.id).completions == {"risotto": 65.5}

    with pytest.raises(DishNotFoundError):
        database.record_completion(user.id, "souffle", 10)
    with pytest.raises(DishNotFoundError):
        database.fetch_dish("souffle")


def test_resolve_database_path_prefers_env(tmp_path: Path) -> None:
    target = tmp_path / "custom.sqlite3"
    assert resolve_database_path(str(target)) == target.resolve()
    assert resolve_database_path(None).name == "kitchen.sqlite3"


def test_connections_are_closed_after_each_operation(database: Database) -> None:
    opened: list[sqlite3.Connection] = []
    real_connect = sqlite3.connect

    def _tracking_connect(*args, **kwargs):
        conn = real_connect(*args, **kwargs)
        opened.append(conn)
        return conn

    with mock.patch("kitchen.database.sqlite3.connect", side_effect=_tracking_connect):
        user = database.add_user("alice", "hash")
        database.find_user("alice")
        database.fetch_user(user.id)
        with pytest.raises(UsernameTakenError):
            database.add_user("alice", "hash")

    assert len(opened) >= 4
    for conn in opened:
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")
