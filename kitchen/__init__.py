"""Core package for the Gordon's Kitchen API."""

from __future__ import annotations

from typing import Any

__version__ = "1.0.0"

from .database import Database, resolve_database_path


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Database",
    "__version__",
    "create_app",
    "resolve_database_path",
]
