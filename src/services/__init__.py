"""
Service layer for Visitor Calendar Sync.

Provides:
- CalendarSyncFacade: provider-agnostic sync of meetings to external calendars
- Meeting sync: the caller side that loads and persists staff tokens
"""

from src.services.calendar_sync import (
    CalendarSyncFacade,
    get_calendar_sync,
    reset_calendar_sync,
    sync_meeting_to_calendar,
    update_meeting_in_calendar,
    delete_meeting_from_calendar,
    get_calendar_auth_url,
    exchange_calendar_code_for_tokens,
)

from src.services.meeting_sync import (
    filter_attendee_emails,
    sync_meeting,
    update_meeting,
    delete_meeting,
)

__all__ = [
    # Sync facade
    "CalendarSyncFacade",
    "get_calendar_sync",
    "reset_calendar_sync",
    "sync_meeting_to_calendar",
    "update_meeting_in_calendar",
    "delete_meeting_from_calendar",
    "get_calendar_auth_url",
    "exchange_calendar_code_for_tokens",
    # Meeting sync
    "filter_attendee_emails",
    "sync_meeting",
    "update_meeting",
    "delete_meeting",
]
