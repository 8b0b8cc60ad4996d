"""
External calendar integrations for Visitor Calendar Sync.

Provides provider adapters and the shared types they exchange.
"""

from src.integrations.base import (
    CalendarAdapter,
    CalendarEvent,
    CalendarEventUpdate,
    SyncResult,
)
from src.integrations.tokens import (
    CalendarToken,
    GoogleCalendarToken,
    OutlookCalendarToken,
    parse_calendar_token,
)

__all__ = [
    "CalendarAdapter",
    "CalendarEvent",
    "CalendarEventUpdate",
    "SyncResult",
    "CalendarToken",
    "GoogleCalendarToken",
    "OutlookCalendarToken",
    "parse_calendar_token",
]
