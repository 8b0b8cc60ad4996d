"""
Mapping between meeting events and Microsoft Graph event format.

Graph takes wall-clock dateTime values without offset plus a separate
timeZone name, so times are converted into the configured zone first.
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from src.integrations.base import CalendarEvent, CalendarEventUpdate

REMINDER_MINUTES = 15


class OutlookEventMapper:
    """Maps meeting events to Graph request bodies."""

    @staticmethod
    def to_outlook_event(
        event: CalendarEvent,
        time_zone: str = "UTC",
        idempotency_key: Optional[str] = None,
    ) -> dict:
        """
        Convert a meeting event to a Graph create body.

        Args:
            event: Meeting event
            time_zone: IANA zone for start/end
            idempotency_key: Sent as transactionId so Graph drops duplicate POSTs

        Returns:
            Dict suitable for POST /me/calendar/events
        """
        body: dict = {
            "subject": event.title,
            "body": {
                "contentType": "HTML",
                "content": event.description or "",
            },
            "start": _format_time(event.start_time, time_zone),
            "end": _format_time(event.end_time, time_zone),
            "location": {
                "displayName": event.location or "",
            },
            "attendees": _attendees(event.attendees),
            "isReminderOn": True,
            "reminderMinutesBeforeStart": REMINDER_MINUTES,
        }

        if idempotency_key:
            body["transactionId"] = idempotency_key

        return body

    @staticmethod
    def to_patch_body(updates: CalendarEventUpdate, time_zone: str = "UTC") -> dict:
        """
        Convert a partial update to a Graph PATCH body.

        Only provided fields are included; Graph leaves the rest untouched.
        """
        patch: dict = {}

        if updates.title is not None:
            patch["subject"] = updates.title

        if updates.description is not None:
            patch["body"] = {
                "contentType": "HTML",
                "content": updates.description,
            }

        if updates.start_time is not None:
            patch["start"] = _format_time(updates.start_time, time_zone)

        if updates.end_time is not None:
            patch["end"] = _format_time(updates.end_time, time_zone)

        if updates.location is not None:
            patch["location"] = {"displayName": updates.location}

        if updates.attendees is not None:
            patch["attendees"] = _attendees(updates.attendees)

        return patch


def _attendees(emails: list[str]) -> list[dict]:
    return [
        {
            "emailAddress": {"address": email, "name": email},
            "type": "required",
        }
        for email in emails
    ]


def _format_time(dt: datetime, time_zone: str) -> dict:
    """Graph dateTimeTimeZone object. Naive datetimes are treated as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    local = dt.astimezone(ZoneInfo(time_zone))
    return {
        "dateTime": local.replace(tzinfo=None).isoformat(timespec="seconds"),
        "timeZone": time_zone,
    }
