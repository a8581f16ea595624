"""End-to-end tests for the kitchen HTTP API."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

from kitchen import __version__
from kitchen.database import Database
from kitchen.models import Dish
from kitchen.security import PasswordHasher
from kitchen.service import create_app


class KitchenServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        db_path = Path(self._tempdir.name) / "kitchen.sqlite3"
        self.database = Database(db_path)
        self.database.initialize()
        self.database.replace_dishes(
            [
                Dish(id="eggs", name="Scrambled Eggs", difficulty="easy", ingredients=("eggs", "butter")),
                Dish(id="wellington", name="Beef Wellington", difficulty="hard"),
            ]
        )
        self.app = create_app(database=self.database, hasher=PasswordHasher(rounds=4))

    def tearDown(self) -> None:
        self._tempdir.cleanup()

    def _register(self, client: TestClient, username: str, password: str = "secret1") -> dict:
        response = client.post("/users", json={"username": username, "password": password})
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_welcome_banner(self) -> None:
        with TestClient(self.app) as client:
            response = client.get("/")
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json()["version"], __version__)
            self.assertIn("Gordon's Kitchen API", response.json()["message"])

            self.assertEqual(client.get("/healthz").json(), {"status": "ok"})

    def test_registration_and_login_flow(self) -> None:
        with TestClient(self.app) as client:
            user = self._register(client, "alice")
            self.assertEqual(user["username"], "alice")
            self.assertNotIn("password", user)
            self.assertNotIn("password_hash", user)
            self.assertIsNone(user["last_sign_on"])

            duplicate = client.post("/users", json={"username": "alice", "password": "other"})
            self.assertEqual(duplicate.status_code, 409)
            self.assertEqual(duplicate.json()["detail"], "Username is already in use")

            wrong = client.post("/users/login", json={"username": "alice", "password": "wrong"})
            self.assertEqual(wrong.status_code, 401)
            self.assertEqual(wrong.json()["detail"], "Password is incorrect")

            unknown = client.post("/users/login", json={"username": "nobody", "password": "secret1"})
            self.assertEqual(unknown.status_code, 401)
            self.assertEqual(unknown.json()["detail"], "Invalid username")

            login = client.post("/users/login", json={"username": "alice", "password": "secret1"})
            self.assertEqual(login.status_code, 200, login.text)
            payload = login.json()
            self.assertEqual(payload["id"], user["id"])
            self.assertNotIn("password", payload)
            self.assertIsNotNone(payload["last_sign_on"])

    def test_registration_validates_body(self) -> None:
        with TestClient(self.app) as client:
            missing = client.post("/users", json={"username": "alice"})
            self.assertEqual(missing.status_code, 422)

            blank = client.post("/users", json={"username": "   ", "password": "secret1"})
            self.assertEqual(blank.status_code, 422)

    def test_password_byte_limit(self) -> None:
        with TestClient(self.app) as client:
            too_long = client.post("/users", json={"username": "alice", "password": "ü" * 37})
            self.assertEqual(too_long.status_code, 422)

            self._register(client, "alice", "ü" * 36)
            extended = client.post(
                "/users/login",
                json={"username": "alice", "password": "ü" * 36 + "x"},
            )
            self.assertEqual(extended.status_code, 401)
            self.assertEqual(extended.json()["detail"], "Password is incorrect")

            ok = client.post("/users/login", json={"username": "alice", "password": "ü" * 36})
            self.assertEqual(ok.status_code, 200, ok.text)

    def test_store_failure_is_reported_without_cause(self) -> None:
        with TestClient(self.app) as client:
            with mock.patch.object(self.database, "add_user", side_effect=RuntimeError("disk full")):
                response = client.post("/users", json={"username": "alice", "password": "secret1"})
            self.assertEqual(response.status_code, 500)
            self.assertEqual(response.json()["detail"], "Problem registering")

    def test_user_directory_and_friends(self) -> None:
        with TestClient(self.app) as client:
            alice = self._register(client, "alice")
            bob = self._register(client, "bob")

            listing = client.get("/users")
            self.assertEqual([u["username"] for u in listing.json()], ["alice", "bob"])
            for entry in listing.json():
                self.assertNotIn("password", entry)

            search = client.get("/users", params={"username": "bo"})
            self.assertEqual([u["username"] for u in search.json()], ["bob"])

            fetched = client.get(f"/users/{alice['id']}")
            self.assertEqual(fetched.status_code, 200)
            self.assertEqual(fetched.json()["username"], "alice")
            self.assertEqual(client.get("/users/9999").status_code, 404)

            added = client.post(f"/users/{alice['id']}/friends", json={"playerID": bob["id"]})
            self.assertEqual(added.status_code, 200, added.text)
            self.assertEqual([f["id"] for f in added.json()], [bob["id"]])

            friends = client.get(f"/users/{alice['id']}/friends")
            self.assertEqual([f["username"] for f in friends.json()], ["bob"])

            self_friend = client.post(f"/users/{alice['id']}/friends", json={"playerID": alice["id"]})
            self.assertEqual(self_friend.status_code, 400)

            missing = client.post(f"/users/{alice['id']}/friends", json={"playerID": 9999})
            self.assertEqual(missing.status_code, 404)

            removed = client.delete(f"/users/{alice['id']}/friends/{bob['id']}")
            self.assertEqual(removed.status_code, 200)
            self.assertEqual(removed.json(), [])

    def test_completions(self) -> None:
        with TestClient(self.app) as client:
            alice = self._register(client, "alice")

            completed = client.post(
                f"/users/{alice['id']}/completed",
                json={"dishID": "eggs", "score": 88},
            )
            self.assertEqual(completed.status_code, 200, completed.text)
            self.assertEqual(completed.json()["completions"], {"eggs": 88.0})

            unknown_dish = client.post(
                f"/users/{alice['id']}/completed",
                json={"dishID": "souffle", "score": 50},
            )
            self.assertEqual(unknown_dish.status_code, 404)

            bad_score = client.post(
                f"/users/{alice['id']}/completed",
                json={"dishID": "eggs", "score": 150},
            )
            self.assertEqual(bad_score.status_code, 400)

    def test_dish_catalog(self) -> None:
        with TestClient(self.app) as client:
            listing = client.get("/dishes")
            self.assertEqual([d["id"] for d in listing.json()], ["wellington", "eggs"])

            easy = client.get("/dishes/difficulty/easy")
            self.assertEqual([d["id"] for d in easy.json()], ["eggs"])

            self.assertEqual(client.get("/dishes/difficulty/impossible").status_code, 400)

            dish = client.get("/dishes/eggs")
            self.assertEqual(dish.status_code, 200)
            self.assertEqual(dish.json()["ingredients"], ["eggs", "butter"])
            self.assertEqual(client.get("/dishes/souffle").status_code, 404)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
