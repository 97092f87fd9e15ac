"""Roles, permissions and the check whether a role holds a permission."""

from __future__ import annotations

import uuid

from sqlalchemy import String, Uuid, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Mapped, Session, mapped_column

from libapp.database import Base


class Role(Base):
    """A named role that users can be given."""

    __tablename__ = "roles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String, default="")


class Permission(Base):
    """A named permission that roles can hold."""

    __tablename__ = "permissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String, default="")


class RolePermission(Base):
    """Grants one permission to one role."""

    __tablename__ = "role_permissions"

    role_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, nullable=False)
    permission_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, nullable=False)


class Repository:
    """Queries over roles and their permissions."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def role_has_permission(self, role_name: str, permission_name: str) -> bool:
        """Whether the role called ``role_name`` holds ``permission_name``."""
        stmt = (
            select(func.count())
            .select_from(Role)
            .join(RolePermission, Role.id == RolePermission.role_id)
            .join(Permission, RolePermission.permission_id == Permission.id)
            .where(Role.name == role_name, Permission.name == permission_name)
        )
        with Session(self._engine) as session:
            count = session.scalar(stmt) or 0
        return count > 0


class Service:
    """Permission checks for request handlers."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def has_permission(self, role_name: str, permission_name: str) -> bool:
        """Whether the role called ``role_name`` holds ``permission_name``."""
        return self._repo.role_has_permission(role_name, permission_name)