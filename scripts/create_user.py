import argparse
import getpass
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kitchen.auth import AuthError, register
from kitchen.database import Database, resolve_database_path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Register a Gordon's Kitchen user")
    parser.add_argument("username", help="Unique username for login")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to KITCHEN_DB_PATH or data/kitchen.sqlite3)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if not password:
            print("Password must not be empty.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    username = args.username.strip()
    if not username:
        print("Error: username must not be empty", file=sys.stderr)
        return 1
    password = prompt_for_password()

    db_env = args.db_path or os.getenv("KITCHEN_DB_PATH")
    database = Database(resolve_database_path(db_env))
    database.initialize()

    try:
        user = register(database, username, password)
    except AuthError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user #{user.id}: {user.username}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
