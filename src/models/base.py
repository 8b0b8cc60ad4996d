"""
Declarative base and shared columns for calendar sync tables.

Rows are never removed: disconnecting a calendar soft-deletes its row and
reconnecting the same provider restores it.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all models."""


class SoftDeleteModel(Base):
    """
    Abstract table with a UUID key, audit timestamps and soft deletion.

    UUIDs are native on PostgreSQL and stored as 32-character hex on SQLite.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        doc="Set when the staff member disconnects",
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self) -> None:
        """Undo a soft delete, stamping the update time."""
        self.deleted_at = None
        self.updated_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
