"""User accounts: registration, login and the current user."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from flask import Blueprint, Response
from sqlalchemy import String, Uuid, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Mapped, foreign, mapped_column, relationship, sessionmaker

from libapp import contracts, middleware, response
from libapp.config import Config, load_config
from libapp.database import Base
from libapp.errors import AppError
from libapp.jwt_tokens import generate_token
from libapp.passwords import hash_password, verify_password
from libapp.rbac import Role
from libapp.server import Container, Module, register_module
from libapp.validators import get_body

_NIL_UUID = uuid.UUID(int=0)
_EMAIL = re.compile(r"[^@\s]+@[^@\s]+")

_REQUIRED = "required"
_EMAIL_RULE = "email"
_MIN_SIX = "min=6"


def _rule_fails(rule: str, value: str) -> bool:
    if rule == _REQUIRED:
        return value == ""
    if rule == _EMAIL_RULE:
        return _EMAIL.fullmatch(value) is None
    if rule.startswith("min="):
        return len(value) < int(rule[len("min="):])
    raise ValueError(f"unknown rule {rule!r}")


def _read_fields(
    dto_name: str, data: dict[str, Any], fields: dict[str, tuple[str, ...]]
) -> dict[str, str]:
    values: dict[str, str] = {}
    problems: list[str] = []
    for key, rules in fields.items():
        raw = data.get(key)
        if raw is None:
            raw = ""
        if not isinstance(raw, str):
            raise ValueError(f"field {key!r} of {dto_name} must be a string")
        field = key.capitalize()
        failed = next((rule for rule in rules if _rule_fails(rule, raw)), None)
        if failed is not None:
            tag = failed.split("=", 1)[0]
            problems.append(
                f"Key: '{dto_name}.{field}' Error:Field validation for "
                f"'{field}' failed on the '{tag}' tag"
            )
        values[key] = raw
    if problems:
        raise ValueError("\n".join(problems))
    return values


@dataclass(frozen=True)
class RegisterDTO:
    """The body of a registration request."""

    email: str
    password: str
    name: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> RegisterDTO:
        """Build and validate from a parsed JSON object; raises ValueError."""
        values = _read_fields(
            "RegisterDTO",
            data,
            {
                "email": (_REQUIRED, _EMAIL_RULE),
                "password": (_REQUIRED, _MIN_SIX),
                "name": (_REQUIRED,),
            },
        )
        return cls(**values)


@dataclass(frozen=True)
class LoginDTO:
    """The body of a login request."""

    email: str
    password: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> LoginDTO:
        """Build and validate from a parsed JSON object; raises ValueError."""
        values = _read_fields(
            "LoginDTO",
            data,
            {"email": (_REQUIRED, _EMAIL_RULE), "password": (_REQUIRED,)},
        )
        return cls(**values)


class User(Base):
    """A registered account with its hashed password and role."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String, nullable=False)
    role_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, default=_NIL_UUID)
    role: Mapped[Optional[Role]] = relationship(
        Role,
        primaryjoin=lambda: foreign(User.role_id) == Role.id,
        lazy="joined",
        viewonly=True,
    )

    @property
    def role_name(self) -> str:
        """The name of the user's role, or an empty string without one."""
        return self.role.name if self.role is not None else ""

    def to_dict(self) -> dict[str, Any]:
        """The account as sent to clients, without the password hash."""
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "role_id": str(self.role_id),
        }


def migrate(engine: Engine) -> None:
    """Create the tables that user accounts need."""
    Base.metadata.create_all(engine, tables=[Role.__table__, User.__table__])


class Repository:
    """Stores and looks up user accounts."""

    def __init__(self, engine: Engine) -> None:
        self._sessions = sessionmaker(engine, expire_on_commit=False)

    def create(self, user: User) -> None:
        with self._sessions.begin() as session:
            session.add(user)

    def find_by_email(self, email: str) -> User:
        """Return the user with ``email``; raises LookupError if there is none."""
        return self._first(User.email == email)

    def find_by_id(self, user_id: uuid.UUID) -> User:
        """Return the user with ``user_id``; raises LookupError if there is none."""
        return self._first(User.id == user_id)

    def _first(self, condition: Any) -> User:
        with self._sessions() as session:
            user = session.scalars(select(User).where(condition).limit(1)).first()
        if user is None:
            raise LookupError("record not found")
        return user


class Service(contracts.UserService):
    """Registration, login and user lookup."""

    def __init__(self, repo: Repository, config: Config) -> None:
        self._repo = repo
        self._config = config

    def register(self, dto: RegisterDTO) -> User:
        hashed = hash_password(dto.password, self._config)
        user = User(
            id=uuid.uuid4(),
            email=dto.email,
            name=dto.name,
            password=hashed,
            role_id=_NIL_UUID,
        )
        self._repo.create(user)
        return user

    def login(self, dto: LoginDTO) -> str:
        """Return a signed token; raises AppError(401) on bad credentials."""
        try:
            user = self._repo.find_by_email(dto.email)
        except (LookupError, SQLAlchemyError):
            raise AppError(401, "invalid credentials") from None

        if not verify_password(dto.password, user.password, self._config):
            raise AppError(401, "invalid credentials")

        return generate_token(user.id, user.role_name, user.email, self._config.jwt_secret)

    def get_user(self, user_id: uuid.UUID) -> contracts.User:
        user = self._repo.find_by_id(user_id)
        return contracts.User(id=user.id, email=user.email, role=user.role_name)


class Handler:
    """HTTP views for the auth routes."""

    def __init__(self, service: Service) -> None:
        self._service = service

    def register(self) -> Response:
        user = self._service.register(get_body())
        return response.created(user.to_dict())

    def login(self) -> Response:
        token = self._service.login(get_body())
        return response.success({"token": token})

    def me(self) -> Response:
        user = middleware.get_user()
        return response.success({"id": str(user.id), "email": user.email, "role": user.role})


def register_routes(blueprint: Blueprint, handler: Handler, service: Service) -> None:
    """Add the /auth routes to ``blueprint``."""
    group = Blueprint("auth", __name__, url_prefix="/auth")
    group.add_url_rule(
        "/register",
        "register",
        middleware.validate_body(RegisterDTO)(handler.register),
        methods=["POST"],
    )
    group.add_url_rule(
        "/login",
        "login",
        middleware.validate_body(LoginDTO)(handler.login),
        methods=["POST"],
    )
    group.add_url_rule(
        "/me",
        "me",
        middleware.auth_middleware()(handler.me),
        methods=["GET"],
    )
    blueprint.register_blueprint(group)


@dataclass
class AuthModule(Module):
    """The auth feature: its handler and service."""

    handler: Handler
    service: Service

    def register_routes(self, blueprint: Blueprint) -> None:
        register_routes(blueprint, self.handler, self.service)


@register_module
def new_module(container: Container) -> AuthModule:
    """Migrate the user tables, wire the auth service and return the module."""
    migrate(container.db)
    config = container.config or load_config()

    repo = Repository(container.db)
    service = Service(repo, config)
    handler = Handler(service)

    middleware.set_user_service(service, config.jwt_secret)

    return AuthModule(handler=handler, service=service)