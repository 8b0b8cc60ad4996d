"""
Google Calendar adapter.

Implements the CalendarAdapter protocol for one staff member's primary
Google calendar. The Google API client is synchronous, so API calls run in
the default executor for async compatibility.
"""

import asyncio
import logging
from functools import partial
from typing import Callable, Optional

import httpx

from src.config import Settings, get_settings
from src.integrations.base import (
    AdapterResult,
    AuthenticatedClient,
    CalendarEvent,
    CalendarEventUpdate,
)
from src.integrations.exceptions import CalendarAPIError
from src.integrations.google_calendar.auth import GoogleOAuthFlow
from src.integrations.google_calendar.client import GoogleCalendarClient
from src.integrations.google_calendar.mapping import GoogleEventMapper
from src.integrations.tokens import GoogleCalendarToken

logger = logging.getLogger(__name__)

PRIMARY_CALENDAR = "primary"


class GoogleCalendarAdapter:
    """
    Single-event CRUD against a staff member's Google calendar.

    Tokens are refreshed on demand: every call checks the stored expiry and,
    if it has passed, refreshes before touching the Calendar API. The
    refreshed token is handed back so the caller can persist it.
    """

    provider = "google"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client_factory: Callable[..., GoogleCalendarClient] = GoogleCalendarClient,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        calendar_id: str = PRIMARY_CALENDAR,
    ):
        """
        Initialize the adapter.

        Args:
            settings: Settings to read OAuth credentials from (defaults to cached settings)
            client_factory: Builds a GoogleCalendarClient from credentials
            transport: httpx transport for the OAuth token endpoint
            calendar_id: Calendar to write events to
        """
        self._settings = settings
        self._client_factory = client_factory
        self._transport = transport
        self._calendar_id = calendar_id
        self._mapper = GoogleEventMapper()

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def _oauth(self) -> GoogleOAuthFlow:
        """OAuth flow bound to current settings; raises if unconfigured."""
        return GoogleOAuthFlow(settings=self.settings, transport=self._transport)

    async def _run_in_executor(self, func, *args, **kwargs):
        """Run a synchronous function in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    def build_authorization_url(self, staff_id: str) -> str:
        """Consent URL with offline access and forced consent."""
        return self._oauth().get_authorization_url(state=staff_id)

    async def exchange_code_for_token(self, code: str) -> GoogleCalendarToken:
        """Exchange an authorization code; requires a refresh token in the response."""
        return await self._oauth().exchange_code(code)

    async def refresh_token(self, token: GoogleCalendarToken) -> GoogleCalendarToken:
        """Refresh through the Google token endpoint."""
        return await self._oauth().refresh(token)

    async def get_authenticated_client(
        self, token: GoogleCalendarToken
    ) -> AuthenticatedClient[GoogleCalendarClient, GoogleCalendarToken]:
        """
        Get a Calendar API client, refreshing the token first if it has expired.

        Args:
            token: Stored token

        Returns:
            Client plus the refreshed token (None when no refresh happened)
        """
        oauth = self._oauth()
        updated_token: Optional[GoogleCalendarToken] = None

        credentials = oauth.build_credentials(token)

        # google-auth treats tokens as expired shortly before their real expiry
        if token.is_expired() or credentials.expired:
            logger.info("Google token expired, refreshing before API call")
            token = await oauth.refresh(token)
            updated_token = token
            credentials = oauth.build_credentials(token)

        client = self._client_factory(credentials)
        return AuthenticatedClient(client=client, updated_token=updated_token)

    async def create_event(
        self,
        token: GoogleCalendarToken,
        event: CalendarEvent,
        idempotency_key: Optional[str] = None,
    ) -> AdapterResult[GoogleCalendarToken]:
        """
        Create the meeting's event in the primary calendar.

        With an idempotency key, an existing event tagged with the same key is
        returned instead of inserting a duplicate.
        """
        auth = await self.get_authenticated_client(token)

        with auth.carrying_token():
            if idempotency_key:
                existing = await self._run_in_executor(
                    auth.client.find_event_by_meeting_id,
                    calendar_id=self._calendar_id,
                    meeting_id=idempotency_key,
                )
                if existing:
                    logger.info(
                        f"Event {existing.get('id')} already exists for meeting {idempotency_key}"
                    )
                    return AdapterResult(
                        event_id=existing.get("id"), updated_token=auth.updated_token
                    )

            body = self._mapper.to_google_event(
                event,
                time_zone=self.settings.calendar_timezone,
                idempotency_key=idempotency_key,
            )
            created = await self._run_in_executor(
                auth.client.insert_event,
                calendar_id=self._calendar_id,
                body=body,
            )

            event_id = created.get("id") if created else None
            if not event_id:
                raise CalendarAPIError(
                    "Google Calendar did not return an event id",
                    provider=self.provider,
                )

        logger.info(f"Created Google event '{event.title}' with ID {event_id}")
        return AdapterResult(event_id=event_id, updated_token=auth.updated_token)

    async def update_event(
        self,
        token: GoogleCalendarToken,
        event_id: str,
        updates: CalendarEventUpdate,
    ) -> AdapterResult[GoogleCalendarToken]:
        """Fetch the remote event, overlay provided fields, write it back."""
        auth = await self.get_authenticated_client(token)

        with auth.carrying_token():
            existing = await self._run_in_executor(
                auth.client.get_event,
                calendar_id=self._calendar_id,
                event_id=event_id,
            )
            body = self._mapper.merge_update(
                existing,
                updates,
                time_zone=self.settings.calendar_timezone,
            )
            await self._run_in_executor(
                auth.client.update_event,
                calendar_id=self._calendar_id,
                event_id=event_id,
                body=body,
            )

        logger.info(f"Updated Google event {event_id}: {updates.provided_fields()}")
        return AdapterResult(event_id=event_id, updated_token=auth.updated_token)

    async def delete_event(
        self,
        token: GoogleCalendarToken,
        event_id: str,
    ) -> AdapterResult[GoogleCalendarToken]:
        """Delete the remote event; an already-deleted event counts as success."""
        auth = await self.get_authenticated_client(token)

        with auth.carrying_token():
            await self._run_in_executor(
                auth.client.delete_event,
                calendar_id=self._calendar_id,
                event_id=event_id,
            )
        return AdapterResult(event_id=event_id, updated_token=auth.updated_token)
