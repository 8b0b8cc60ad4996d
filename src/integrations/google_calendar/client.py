"""
Google Calendar API client wrapper with retry and error handling.

Provides a clean interface over the Google Calendar API v3 for the single
event operations meeting sync needs.
"""

import logging
from typing import Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build, Resource
from googleapiclient.errors import HttpError
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
)

from src.config import get_settings
from src.integrations.exceptions import (
    CalendarAPIError,
    CalendarAuthError,
    CalendarNotFoundError,
    CalendarRateLimitError,
    CalendarSyncError,
)

logger = logging.getLogger(__name__)

# Private extended property used to find the event created for a meeting
MEETING_ID_PROPERTY = "meetingId"


def _is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception should trigger a retry."""
    if isinstance(exception, CalendarSyncError):
        return exception.retryable
    if isinstance(exception, HttpError):
        return exception.resp.status in (429, 500, 503)
    return False


def _retrying() -> Retrying:
    """Retry policy for one API call, sized by CALENDAR_API_MAX_ATTEMPTS."""
    return Retrying(
        stop=stop_after_attempt(get_settings().calendar_api_max_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_is_retryable_error),
        reraise=True,
    )


def _handle_http_error(error: HttpError) -> None:
    """Convert HttpError to appropriate CalendarSyncError."""
    status = error.resp.status
    message = str(error)

    if status == 401:
        raise CalendarAuthError(
            "Google authentication failed - credentials may be invalid or expired",
            provider="google",
            original_error=error,
        )
    elif status == 403:
        if "quota" in message.lower() or "rate limit" in message.lower():
            raise CalendarRateLimitError(
                "Google Calendar API quota exceeded",
                provider="google",
                original_error=error,
            )
        raise CalendarAuthError(
            "Access denied - check that calendar access was granted",
            provider="google",
            original_error=error,
        )
    elif status in (404, 410):
        raise CalendarNotFoundError(
            "Google Calendar event not found",
            provider="google",
            original_error=error,
        )
    elif status == 429:
        raise CalendarRateLimitError(
            "Rate limit exceeded - too many requests",
            provider="google",
            original_error=error,
        )
    else:
        raise CalendarAPIError(
            f"Google Calendar API error ({status}): {message}",
            provider="google",
            original_error=error,
            status_code=status,
        )


class GoogleCalendarClient:
    """
    Wrapper around Google Calendar API v3.

    Provides:
    - Optional retry with exponential backoff on transient errors
    - Consistent error handling
    """

    def __init__(self, credentials: Credentials):
        """
        Initialize the client.

        Args:
            credentials: Google OAuth2 credentials
        """
        self._service: Resource = build(
            "calendar",
            "v3",
            credentials=credentials,
            cache_discovery=False,
        )

    @property
    def service(self) -> Resource:
        """Get the underlying Google API service."""
        return self._service

    def get_event(self, calendar_id: str, event_id: str) -> dict:
        """
        Get a single event by ID.

        Args:
            calendar_id: Calendar containing the event
            event_id: Event ID

        Returns:
            Event data
        """
        def call() -> dict:
            try:
                return self._service.events().get(
                    calendarId=calendar_id,
                    eventId=event_id,
                ).execute()
            except HttpError as e:
                _handle_http_error(e)

        return _retrying()(call)

    def find_event_by_meeting_id(self, calendar_id: str, meeting_id: str) -> Optional[dict]:
        """
        Find a live event previously created for a meeting.

        Args:
            calendar_id: Calendar to search
            meeting_id: Value stored in the private extended property

        Returns:
            The first non-cancelled matching event, or None
        """
        def call() -> dict:
            try:
                return self._service.events().list(
                    calendarId=calendar_id,
                    privateExtendedProperty=f"{MEETING_ID_PROPERTY}={meeting_id}",
                    showDeleted=False,
                    maxResults=5,
                ).execute()
            except HttpError as e:
                _handle_http_error(e)

        response = _retrying()(call)
        for item in response.get("items", []):
            if item.get("status") != "cancelled":
                return item
        return None

    def insert_event(self, calendar_id: str, body: dict) -> dict:
        """
        Create a new event.

        Args:
            calendar_id: Calendar to create event in
            body: Event data in Google Calendar format

        Returns:
            Created event with ID
        """
        def call() -> dict:
            try:
                return self._service.events().insert(
                    calendarId=calendar_id,
                    body=body,
                ).execute()
            except HttpError as e:
                _handle_http_error(e)

        result = _retrying()(call)
        logger.info(f"Created event {result.get('id')} in {calendar_id}")
        return result

    def update_event(self, calendar_id: str, event_id: str, body: dict) -> dict:
        """
        Replace an existing event.

        Args:
            calendar_id: Calendar containing the event
            event_id: Event to update
            body: Full event data

        Returns:
            Updated event
        """
        def call() -> dict:
            try:
                return self._service.events().update(
                    calendarId=calendar_id,
                    eventId=event_id,
                    body=body,
                ).execute()
            except HttpError as e:
                _handle_http_error(e)

        result = _retrying()(call)
        logger.info(f"Updated event {event_id} in {calendar_id}")
        return result

    def delete_event(self, calendar_id: str, event_id: str) -> None:
        """
        Delete an event.

        Args:
            calendar_id: Calendar containing the event
            event_id: Event to delete
        """
        def call() -> None:
            try:
                self._service.events().delete(
                    calendarId=calendar_id,
                    eventId=event_id,
                ).execute()
            except HttpError as e:
                if e.resp.status in (404, 410):
                    # Already deleted - consider success
                    logger.warning(f"Event {event_id} already deleted")
                    return
                _handle_http_error(e)

        _retrying()(call)
        logger.info(f"Deleted event {event_id} from {calendar_id}")
