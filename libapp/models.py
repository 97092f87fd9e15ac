"""Column mixins shared by the application's tables."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel:
    """UUID primary key, timestamps and a soft-delete marker."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), index=True, nullable=True, default=None
    )

    def soft_delete(self) -> None:
        """Mark the record as deleted instead of removing it."""
        self.deleted_at = _utcnow()


class ArchivableModel(BaseModel):
    """A BaseModel that can also be archived."""

    archived_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), index=True, nullable=True, default=None
    )

    def archive(self) -> None:
        """Mark the record as archived now."""
        self.archived_at = _utcnow()


class OwnedModel:
    """A record that belongs to a user."""

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)