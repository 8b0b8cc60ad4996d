"""
Calendar sync facade.

Provider-agnostic entry point for mirroring meetings into external
calendars. Sync, update and delete never raise: every failure becomes a
SyncResult with success=False. OAuth helpers (auth URL, code exchange) raise
typed errors because their callers are OAuth routes that render them.
"""

import logging
from typing import Any, Optional

from src.integrations.base import (
    RESERVED_PROVIDERS,
    SUPPORTED_PROVIDERS,
    CalendarAdapter,
    CalendarEvent,
    CalendarEventUpdate,
    SyncResult,
)
from src.integrations.exceptions import (
    CalendarSyncError,
    ProviderNotImplementedError,
    UnsupportedProviderError,
)
from src.integrations.tokens import CalendarToken, parse_calendar_token

logger = logging.getLogger(__name__)


def _default_adapter(provider: str) -> CalendarAdapter:
    if provider == "google":
        from src.integrations.google_calendar import GoogleCalendarAdapter
        return GoogleCalendarAdapter()
    from src.integrations.outlook_calendar import OutlookCalendarAdapter
    return OutlookCalendarAdapter()


class CalendarSyncFacade:
    """
    Routes meeting sync requests to the matching provider adapter.

    Stateless apart from the adapter registry: no sync sessions, no retry
    queue. A failed sync is reported to the caller, who decides what to do.
    """

    def __init__(self, adapters: Optional[dict[str, CalendarAdapter]] = None):
        self._adapters: dict[str, CalendarAdapter] = dict(adapters or {})

    def get_adapter(self, provider: str, operation: str = "sync") -> CalendarAdapter:
        """
        Resolve the adapter for a provider tag.

        Raises:
            ProviderNotImplementedError: For the reserved "custom" provider
            UnsupportedProviderError: For any unknown tag
        """
        if provider in RESERVED_PROVIDERS:
            raise ProviderNotImplementedError(
                f"{provider.capitalize()} calendar {operation} not yet implemented",
                provider=provider,
            )
        if provider not in SUPPORTED_PROVIDERS:
            raise UnsupportedProviderError(
                f"Unsupported calendar provider: {provider}",
                provider=provider,
            )
        if provider not in self._adapters:
            self._adapters[provider] = _default_adapter(provider)
        return self._adapters[provider]

    def _failure(self, provider: str, action: str, error: Exception) -> SyncResult:
        if isinstance(error, CalendarSyncError):
            message = error.message
            updated_token = error.updated_token
            logger.error(f"[Calendar Sync] Error {action} {provider}: {message}")
        else:
            message = str(error) or "Unknown error"
            updated_token = None
            logger.error(f"[Calendar Sync] Error {action} {provider}: {message}", exc_info=True)
        return SyncResult(
            success=False,
            provider=provider,
            error=message,
            updated_token=updated_token,
        )

    async def sync_meeting_to_calendar(
        self,
        provider: str,
        token: Any,
        event: CalendarEvent,
        idempotency_key: Optional[str] = None,
    ) -> SyncResult:
        """
        Create the meeting's event in the provider's calendar.

        Args:
            provider: "google", "outlook" or "custom"
            token: Stored token blob (model, dict or JSON string)
            event: Meeting event
            idempotency_key: Meeting ID, used to avoid duplicate remote events

        Returns:
            SyncResult with the remote event id, and the refreshed token if any
        """
        try:
            adapter = self.get_adapter(provider)
            typed_token = parse_calendar_token(provider, token)
            result = await adapter.create_event(
                typed_token, event, idempotency_key=idempotency_key
            )
        except Exception as e:
            return self._failure(provider, "syncing to", e)

        return SyncResult(
            success=True,
            provider=provider,
            event_id=result.event_id,
            updated_token=result.updated_token,
        )

    async def update_meeting_in_calendar(
        self,
        provider: str,
        token: Any,
        event_id: str,
        updates: CalendarEventUpdate,
    ) -> SyncResult:
        """Apply the provided fields to the meeting's remote event."""
        try:
            adapter = self.get_adapter(provider)
            typed_token = parse_calendar_token(provider, token)
            result = await adapter.update_event(typed_token, event_id, updates)
        except Exception as e:
            return self._failure(provider, "updating event in", e)

        return SyncResult(
            success=True,
            provider=provider,
            event_id=event_id,
            updated_token=result.updated_token,
        )

    async def delete_meeting_from_calendar(
        self,
        provider: str,
        token: Any,
        event_id: str,
    ) -> SyncResult:
        """Remove the meeting's remote event."""
        try:
            adapter = self.get_adapter(provider)
            typed_token = parse_calendar_token(provider, token)
            result = await adapter.delete_event(typed_token, event_id)
        except Exception as e:
            return self._failure(provider, "deleting event from", e)

        return SyncResult(
            success=True,
            provider=provider,
            updated_token=result.updated_token,
        )

    def get_calendar_auth_url(self, provider: str, staff_id: str) -> str:
        """
        Consent URL for connecting a staff member's calendar.

        Raises:
            CalendarSyncError: Unsupported provider or missing OAuth credentials
        """
        return self.get_adapter(provider, operation="OAuth").build_authorization_url(staff_id)

    async def exchange_calendar_code_for_tokens(self, provider: str, code: str) -> CalendarToken:
        """
        Exchange an OAuth callback code for a token blob to persist.

        Raises:
            CalendarSyncError: Unsupported provider, missing credentials, or a
                failed exchange
        """
        adapter = self.get_adapter(provider, operation="OAuth")
        return await adapter.exchange_code_for_token(code)


# Module-level convenience functions
_facade: Optional[CalendarSyncFacade] = None


def get_calendar_sync() -> CalendarSyncFacade:
    """Get or create the facade singleton."""
    global _facade
    if _facade is None:
        _facade = CalendarSyncFacade()
    return _facade


def reset_calendar_sync(facade: Optional[CalendarSyncFacade] = None) -> None:
    """Replace the singleton (used by tests and app start-up)."""
    global _facade
    _facade = facade


async def sync_meeting_to_calendar(
    provider: str,
    token: Any,
    event: CalendarEvent,
    idempotency_key: Optional[str] = None,
) -> SyncResult:
    """See CalendarSyncFacade.sync_meeting_to_calendar."""
    return await get_calendar_sync().sync_meeting_to_calendar(
        provider, token, event, idempotency_key=idempotency_key
    )


async def update_meeting_in_calendar(
    provider: str,
    token: Any,
    event_id: str,
    updates: CalendarEventUpdate,
) -> SyncResult:
    """See CalendarSyncFacade.update_meeting_in_calendar."""
    return await get_calendar_sync().update_meeting_in_calendar(provider, token, event_id, updates)


async def delete_meeting_from_calendar(provider: str, token: Any, event_id: str) -> SyncResult:
    """See CalendarSyncFacade.delete_meeting_from_calendar."""
    return await get_calendar_sync().delete_meeting_from_calendar(provider, token, event_id)


def get_calendar_auth_url(provider: str, staff_id: str) -> str:
    """See CalendarSyncFacade.get_calendar_auth_url."""
    return get_calendar_sync().get_calendar_auth_url(provider, staff_id)


async def exchange_calendar_code_for_tokens(provider: str, code: str) -> CalendarToken:
    """See CalendarSyncFacade.exchange_calendar_code_for_tokens."""
    return await get_calendar_sync().exchange_calendar_code_for_tokens(provider, code)
