"""
Outlook calendar adapter.

Implements the CalendarAdapter protocol against Microsoft Graph for one
staff member's default calendar.
"""

import logging
from typing import Callable, Optional

import httpx

from src.config import Settings, get_settings
from src.integrations.base import (
    AdapterResult,
    AuthenticatedClient,
    CalendarEvent,
    CalendarEventUpdate,
)
from src.integrations.exceptions import CalendarAPIError, CalendarReconnectRequiredError
from src.integrations.outlook_calendar.auth import OutlookOAuthFlow
from src.integrations.outlook_calendar.client import OutlookCalendarClient
from src.integrations.outlook_calendar.mapping import OutlookEventMapper
from src.integrations.tokens import OutlookCalendarToken

logger = logging.getLogger(__name__)

RECONNECT_MESSAGE = "Token expired. Please reconnect your Outlook calendar."


class OutlookCalendarAdapter:
    """
    Single-event CRUD against a staff member's Outlook calendar.

    An expired token is refreshed through MSAL when a refresh token is stored
    and OUTLOOK_REFRESH_EXPIRED_TOKENS is on. Otherwise the call fails with a
    reconnect error before any event request is sent.
    """

    provider = "outlook"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        oauth_factory: Optional[Callable[[], OutlookOAuthFlow]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the adapter.

        Args:
            settings: Settings to read OAuth credentials from (defaults to cached settings)
            oauth_factory: Builds the MSAL-backed flow (defaults to OutlookOAuthFlow)
            transport: httpx transport for Graph requests
        """
        self._settings = settings
        self._oauth_factory = oauth_factory
        self._transport = transport
        self._mapper = OutlookEventMapper()

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def _oauth(self) -> OutlookOAuthFlow:
        if self._oauth_factory is not None:
            return self._oauth_factory()
        return OutlookOAuthFlow(settings=self.settings)

    def build_authorization_url(self, staff_id: str) -> str:
        """Consent URL carrying the staff ID as state."""
        return self._oauth().get_authorization_url(state=staff_id)

    async def exchange_code_for_token(self, code: str) -> OutlookCalendarToken:
        """Exchange an authorization code through MSAL."""
        return await self._oauth().exchange_code(code)

    async def refresh_token(self, token: OutlookCalendarToken) -> OutlookCalendarToken:
        """Refresh through MSAL, or demand reconnection when that is not possible."""
        if not self.settings.outlook_refresh_expired_tokens or not token.refresh_token:
            raise CalendarReconnectRequiredError(RECONNECT_MESSAGE, provider=self.provider)
        return await self._oauth().refresh(token)

    async def get_authenticated_client(
        self, token: OutlookCalendarToken
    ) -> AuthenticatedClient[OutlookCalendarClient, OutlookCalendarToken]:
        """
        Get a Graph client for the token, refreshing first if it has expired.

        Raises:
            CalendarReconnectRequiredError: If the token is expired and cannot
                be refreshed
        """
        updated_token: Optional[OutlookCalendarToken] = None

        if token.is_expired():
            logger.info("Outlook token expired, attempting refresh")
            token = await self.refresh_token(token)
            updated_token = token

        client = OutlookCalendarClient(
            token.access_token,
            transport=self._transport,
            timeout=self.settings.calendar_http_timeout_seconds,
        )
        return AuthenticatedClient(client=client, updated_token=updated_token)

    async def create_event(
        self,
        token: OutlookCalendarToken,
        event: CalendarEvent,
        idempotency_key: Optional[str] = None,
    ) -> AdapterResult[OutlookCalendarToken]:
        """Create the meeting's event; the idempotency key becomes transactionId."""
        auth = await self.get_authenticated_client(token)

        body = self._mapper.to_outlook_event(
            event,
            time_zone=self.settings.calendar_timezone,
            idempotency_key=idempotency_key,
        )
        with auth.carrying_token():
            created = await auth.client.create_event(body)
            event_id = created.get("id")
            if not event_id:
                raise CalendarAPIError(
                    "Microsoft Graph did not return an event id",
                    provider=self.provider,
                )

        logger.info(f"Created Outlook event '{event.title}' with ID {event_id}")
        return AdapterResult(event_id=event_id, updated_token=auth.updated_token)

    async def update_event(
        self,
        token: OutlookCalendarToken,
        event_id: str,
        updates: CalendarEventUpdate,
    ) -> AdapterResult[OutlookCalendarToken]:
        """PATCH only the provided fields."""
        auth = await self.get_authenticated_client(token)

        patch = self._mapper.to_patch_body(updates, time_zone=self.settings.calendar_timezone)
        if patch:
            with auth.carrying_token():
                await auth.client.update_event(event_id, patch)
        else:
            logger.debug(f"No fields to update for Outlook event {event_id}")

        return AdapterResult(event_id=event_id, updated_token=auth.updated_token)

    async def delete_event(
        self,
        token: OutlookCalendarToken,
        event_id: str,
    ) -> AdapterResult[OutlookCalendarToken]:
        """Delete the remote event."""
        auth = await self.get_authenticated_client(token)
        with auth.carrying_token():
            await auth.client.delete_event(event_id)
        return AdapterResult(event_id=event_id, updated_token=auth.updated_token)
