"""
Google Calendar integration for Visitor Calendar Sync.

Mirrors meetings into a staff member's primary Google calendar.
"""

from src.integrations.google_calendar.adapter import GoogleCalendarAdapter
from src.integrations.google_calendar.auth import GoogleOAuthFlow
from src.integrations.google_calendar.client import GoogleCalendarClient
from src.integrations.google_calendar.mapping import GoogleEventMapper

__all__ = [
    "GoogleCalendarAdapter",
    "GoogleOAuthFlow",
    "GoogleCalendarClient",
    "GoogleEventMapper",
]
