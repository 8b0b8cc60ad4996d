"""
Calendar token storage models.

Stores one calendar token blob per staff member per provider. The blob is
the JSON form of a GoogleCalendarToken or OutlookCalendarToken.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import SoftDeleteModel


class StaffCalendarToken(SoftDeleteModel):
    """
    Stores OAuth tokens for a staff member's external calendar.

    Attributes:
        staff_id: Staff member (host) the token belongs to
        provider: Calendar provider ('google' or 'outlook')
        token_json: Serialized token blob
        refresh_token: Copy of the refresh token, kept for disconnect audits
        token_expiry: When the access token expires
        connected: False once the staff member disconnects
    """

    __tablename__ = "staff_calendar_tokens"

    staff_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        doc="Staff member ID from the visitor-management application"
    )

    provider: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Calendar provider (google, outlook)"
    )

    token_json: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Serialized token blob (NULL after disconnect)"
    )

    refresh_token: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="OAuth refresh token"
    )

    token_expiry: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the access token expires"
    )

    connected: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Whether the calendar is currently connected"
    )

    __table_args__ = (
        Index("ix_staff_calendar_tokens_staff_provider", "staff_id", "provider", unique=True),
    )

    @property
    def is_usable(self) -> bool:
        """Connected, not soft-deleted, and holding a token blob."""
        return self.connected and not self.is_deleted and bool(self.token_json)

    def __repr__(self) -> str:
        return (
            f"<StaffCalendarToken(staff_id={self.staff_id}, provider={self.provider}, "
            f"connected={self.connected})>"
        )
