"""Types shared between the auth module and the rest of the application."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class User:
    """The authenticated user as seen by request handlers."""

    id: uuid.UUID
    email: str
    role: str


class UserService(ABC):
    """Looks users up by their identifier."""

    @abstractmethod
    def get_user(self, user_id: uuid.UUID) -> User:
        """Return the user with ``user_id`` or raise if there is none."""


@dataclass(frozen=True)
class Claims:
    """The claims carried by an access token."""

    user_id: uuid.UUID
    role: str
    email: str
    expires_at: datetime | None = None