"""
Outlook calendar integration for Visitor Calendar Sync.

Mirrors meetings into a staff member's default Outlook calendar through
Microsoft Graph.
"""

from src.integrations.outlook_calendar.adapter import OutlookCalendarAdapter
from src.integrations.outlook_calendar.auth import OutlookOAuthFlow
from src.integrations.outlook_calendar.client import OutlookCalendarClient
from src.integrations.outlook_calendar.mapping import OutlookEventMapper

__all__ = [
    "OutlookCalendarAdapter",
    "OutlookOAuthFlow",
    "OutlookCalendarClient",
    "OutlookEventMapper",
]
