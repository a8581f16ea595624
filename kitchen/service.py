"""HTTP API exposing registration, login, friends, completions and dishes."""

from __future__ import annotations

import logging
from datetime import datetime
from functools import partial
from typing import Callable, Dict, List, Optional, TypeVar

import anyio
from fastapi import FastAPI, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import __version__, auth, dishes, users
from .database import Database, resolve_database_path
from .models import Dish, PublicUser
from .security import PasswordHasher, validate_password
from .store import DishNotFoundError, UserNotFoundError

logger = logging.getLogger("kitchen.service")

T = TypeVar("T")


class CredentialsRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("username must not be empty")
        return stripped


class RegistrationRequest(CredentialsRequest):
    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        validate_password(value)
        return value


class FriendRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player_id: int = Field(..., alias="playerID")


class CompletionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dish_id: str = Field(..., alias="dishID", min_length=1)
    score: float


class UserResponse(BaseModel):
    id: int
    username: str
    created_at: datetime
    last_sign_on: Optional[datetime]
    friends: List[int]
    completions: Dict[str, float]


class DishResponse(BaseModel):
    id: str
    name: str
    difficulty: str
    description: str
    ingredients: List[str]
    instructions: List[str]


class WelcomeResponse(BaseModel):
    version: str
    message: str


def _user_to_response(user: PublicUser) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        created_at=user.created_at,
        last_sign_on=user.last_sign_on,
        friends=list(user.friends),
        completions=dict(user.completions),
    )


def _dish_to_response(dish: Dish) -> DishResponse:
    return DishResponse(
        id=dish.id,
        name=dish.name,
        difficulty=dish.difficulty,
        description=dish.description,
        ingredients=list(dish.ingredients),
        instructions=list(dish.instructions),
    )


async def _run(func: Callable[..., T], *args: object, **kwargs: object) -> T:
    """Run blocking store and hashing work off the event loop."""

    return await anyio.to_thread.run_sync(partial(func, *args, **kwargs))


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def register_auth_routes(app: FastAPI, database: Database, hasher: Optional[PasswordHasher]) -> None:
    """Expose registration and login."""

    @app.post("/users", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
    async def register_user(request: RegistrationRequest) -> UserResponse:
        try:
            user = await _run(auth.register, database, request.username, request.password, hasher=hasher)
        except auth.DuplicateUsernameError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except auth.InvalidPasswordError as exc:
            raise _bad_request(exc) from exc
        except auth.RegistrationError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Problem registering",
            ) from exc
        return _user_to_response(user)

    @app.post("/users/login", response_model=UserResponse)
    async def login_user(request: CredentialsRequest) -> UserResponse:
        try:
            user = await _run(auth.login, database, request.username, request.password, hasher=hasher)
        except auth.AuthenticationRejected as exc:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
        except auth.LoginError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Problem logging in",
            ) from exc
        return _user_to_response(user)


def register_user_routes(app: FastAPI, database: Database) -> None:
    """Expose the user directory, friend lists and completions."""

    @app.get("/users", response_model=List[UserResponse])
    async def list_users(username: Optional[str] = Query(default=None)) -> List[UserResponse]:
        found = await _run(users.fetch_users, database, username)
        return [_user_to_response(user) for user in found]

    @app.get("/users/{user_id}", response_model=UserResponse)
    async def get_user(user_id: int) -> UserResponse:
        try:
            user = await _run(users.fetch_user, database, user_id)
        except UserNotFoundError as exc:
            raise _not_found(exc) from exc
        return _user_to_response(user)

    @app.get("/users/{user_id}/friends", response_model=List[UserResponse])
    async def list_friends(user_id: int) -> List[UserResponse]:
        try:
            friends = await _run(users.fetch_friends, database, user_id)
        except UserNotFoundError as exc:
            raise _not_found(exc) from exc
        return [_user_to_response(friend) for friend in friends]

    @app.post("/users/{user_id}/friends", response_model=List[UserResponse])
    async def add_friend(user_id: int, request: FriendRequest) -> List[UserResponse]:
        try:
            friends = await _run(users.add_friend, database, user_id, request.player_id)
        except UserNotFoundError as exc:
            raise _not_found(exc) from exc
        except ValueError as exc:
            raise _bad_request(exc) from exc
        return [_user_to_response(friend) for friend in friends]

    @app.delete("/users/{user_id}/friends/{player_id}", response_model=List[UserResponse])
    async def remove_friend(user_id: int, player_id: int) -> List[UserResponse]:
        try:
            friends = await _run(users.remove_friend, database, user_id, player_id)
        except UserNotFoundError as exc:
            raise _not_found(exc) from exc
        return [_user_to_response(friend) for friend in friends]

    @app.post("/users/{user_id}/completed", response_model=UserResponse)
    async def complete_dish(user_id: int, request: CompletionRequest) -> UserResponse:
        try:
            user = await _run(
                users.insert_completion,
                database,
                user_id,
                request.dish_id,
                request.score,
            )
        except (UserNotFoundError, DishNotFoundError) as exc:
            raise _not_found(exc) from exc
        except ValueError as exc:
            raise _bad_request(exc) from exc
        return _user_to_response(user)


def register_dish_routes(app: FastAPI, database: Database) -> None:
    """Expose the read-only dish catalog."""

    @app.get("/dishes", response_model=List[DishResponse])
    async def list_dishes() -> List[DishResponse]:
        found = await _run(dishes.fetch_dishes, database)
        return [_dish_to_response(dish) for dish in found]

    @app.get("/dishes/difficulty/{difficulty}", response_model=List[DishResponse])
    async def list_dishes_by_difficulty(difficulty: str) -> List[DishResponse]:
        try:
            found = await _run(dishes.fetch_dishes, database, difficulty)
        except ValueError as exc:
            raise _bad_request(exc) from exc
        return [_dish_to_response(dish) for dish in found]

    @app.get("/dishes/{dish_id}", response_model=DishResponse)
    async def get_dish(dish_id: str) -> DishResponse:
        try:
            dish = await _run(dishes.fetch_dish, database, dish_id)
        except DishNotFoundError as exc:
            raise _not_found(exc) from exc
        return _dish_to_response(dish)


def create_app(
    *,
    database: Optional[Database] = None,
    database_path: Optional[str] = None,
    hasher: Optional[PasswordHasher] = None,
) -> FastAPI:
    """Create the FastAPI application.

    ``hasher`` defaults to the process-wide bcrypt hasher configured from the
    environment.
    """

    if database is None:
        database = Database(resolve_database_path(database_path))
    database.initialize()

    app = FastAPI(title="Gordon's Kitchen API", version=__version__)
    app.state.database = database

    @app.get("/", response_model=WelcomeResponse)
    async def welcome() -> WelcomeResponse:
        return WelcomeResponse(
            version=__version__,
            message=f"Welcome to the Gordon's Kitchen API v{__version__}",
        )

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    register_auth_routes(app, database, hasher)
    register_user_routes(app, database)
    register_dish_routes(app, database)

    logger.info("Kitchen API ready (database=%s)", database.path)
    return app


__all__ = [
    "CompletionRequest",
    "CredentialsRequest",
    "DishResponse",
    "FriendRequest",
    "RegistrationRequest",
    "UserResponse",
    "create_app",
    "register_auth_routes",
    "register_dish_routes",
    "register_user_routes",
]
