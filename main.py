"""Command-line interface for the Gordon's Kitchen API."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence


def _running_in_virtualenv() -> bool:
    """Return ``True`` when the current interpreter is executing inside a venv."""

    base_prefix = getattr(sys, "base_prefix", sys.prefix)
    return sys.prefix != base_prefix


def _bootstrap_virtualenv() -> None:
    """Re-exec the script using the bundled virtualenv interpreter when available."""

    if _running_in_virtualenv():
        return

    venv_dir = Path(__file__).resolve().parent / ".venv"
    if not venv_dir.is_dir():
        return

    candidates = (
        venv_dir / "bin" / "python",
        venv_dir / "bin" / "python3",
        venv_dir / "Scripts" / "python.exe",
    )

    script = str(Path(__file__).resolve())
    for candidate in candidates:
        if candidate.exists():
            os.execv(str(candidate), [str(candidate), script, *sys.argv[1:]])


_bootstrap_virtualenv()

from kitchen.config import Settings, load_dish_catalog, load_settings
from kitchen.database import Database

logger = logging.getLogger("kitchen.main")

KNOWN_COMMANDS = {"serve", "init-db", "load-dishes"}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Gordon's Kitchen API utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the kitchen database")

    load_parser = subparsers.add_parser("load-dishes", help="Load the YAML dish catalog into the database")
    load_parser.add_argument(
        "catalog",
        nargs="?",
        default=None,
        help="Path to the dish catalog (defaults to KITCHEN_DISHES_PATH or config/dishes.yaml)",
    )

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP API (default: 8000)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in KNOWN_COMMANDS:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _load_dishes(database: Database, catalog: Path) -> int:
    dishes = load_dish_catalog(catalog)
    count = database.replace_dishes(dishes)
    logger.info("Loaded %s dishes from %s", count, catalog)
    return count


def _serve(*, database: Database, host: str, port: int) -> None:
    from kitchen.security import PasswordHasher
    from kitchen.service import create_app
    import uvicorn

    settings = load_settings()
    logger.info("Starting kitchen API on http://%s:%s", host, port)

    app = create_app(database=database, hasher=PasswordHasher(settings.bcrypt_rounds))
    uvicorn.run(app, host=host, port=port, log_level="info")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = load_settings()
    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(database=database, host=args.host, port=args.port)
    elif args.command == "load-dishes":
        catalog = Path(args.catalog).expanduser() if args.catalog else settings.catalog_path
        try:
            count = _load_dishes(database, catalog)
        except (OSError, ValueError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        print(f"Loaded {count} dishes.")
    elif args.command == "init-db":
        print("Database initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
