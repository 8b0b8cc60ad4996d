"""
Mapping between meeting events and Google Calendar API format.

Handles:
- DateTime formatting (RFC 3339 for Google API)
- Attendee mapping
- Default reminders
- Merge-with-fetch updates
- Meeting idempotency key in private extended properties
"""

import copy
from datetime import datetime, timezone
from typing import Optional

from src.integrations.base import CalendarEvent, CalendarEventUpdate
from src.integrations.google_calendar.client import MEETING_ID_PROPERTY

DEFAULT_REMINDERS = {
    "useDefault": False,
    "overrides": [
        {"method": "email", "minutes": 24 * 60},
        {"method": "popup", "minutes": 15},
    ],
}


class GoogleEventMapper:
    """Maps meeting events to Google Calendar API bodies."""

    @staticmethod
    def to_google_event(
        event: CalendarEvent,
        time_zone: str = "UTC",
        idempotency_key: Optional[str] = None,
    ) -> dict:
        """
        Convert a meeting event to Google Calendar API format.

        Args:
            event: Meeting event
            time_zone: IANA zone recorded alongside the UTC timestamps
            idempotency_key: Meeting ID stored in private extended properties

        Returns:
            Dict suitable for events.insert
        """
        google_event: dict = {
            "summary": event.title,
            "description": event.description or "",
            "location": event.location or "",
            "start": _format_time(event.start_time, time_zone),
            "end": _format_time(event.end_time, time_zone),
            "attendees": [{"email": email} for email in event.attendees],
            "reminders": copy.deepcopy(DEFAULT_REMINDERS),
        }

        if idempotency_key:
            google_event["extendedProperties"] = {
                "private": {MEETING_ID_PROPERTY: idempotency_key},
            }

        return google_event

    @staticmethod
    def merge_update(
        existing: dict,
        updates: CalendarEventUpdate,
        time_zone: str = "UTC",
    ) -> dict:
        """
        Overlay provided fields on a fetched Google event.

        Everything not provided is preserved from the remote event,
        including fields this service never writes.

        Args:
            existing: Event as returned by events.get
            updates: Partial meeting event
            time_zone: IANA zone recorded alongside the UTC timestamps

        Returns:
            Full body for events.update
        """
        merged = dict(existing)

        if updates.title is not None:
            merged["summary"] = updates.title

        if updates.description is not None:
            merged["description"] = updates.description

        if updates.location is not None:
            merged["location"] = updates.location

        if updates.start_time is not None:
            merged["start"] = _format_time(updates.start_time, time_zone)

        if updates.end_time is not None:
            merged["end"] = _format_time(updates.end_time, time_zone)

        if updates.attendees is not None:
            merged["attendees"] = [{"email": email} for email in updates.attendees]

        return merged


def _format_time(dt: datetime, time_zone: str) -> dict:
    """Google start/end object for a timed event."""
    return {
        "dateTime": _format_datetime(dt),
        "timeZone": time_zone,
    }


def _format_datetime(dt: datetime) -> str:
    """
    Format datetime to RFC 3339 format for Google API.

    Args:
        dt: Datetime to format

    Returns:
        RFC 3339 formatted string
    """
    # Ensure UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    elif dt.tzinfo != timezone.utc:
        dt = dt.astimezone(timezone.utc)

    return dt.isoformat()
