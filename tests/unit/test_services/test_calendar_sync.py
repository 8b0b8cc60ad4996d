"""Tests for the calendar sync facade."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.integrations.base import AdapterResult, CalendarEventUpdate, SyncResult
from src.integrations.exceptions import (
    CalendarAPIError,
    CalendarConfigurationError,
    ProviderNotImplementedError,
    UnsupportedProviderError,
)
from src.services import calendar_sync
from src.services.calendar_sync import CalendarSyncFacade


def make_adapter(provider: str) -> MagicMock:
    """Mock adapter with successful defaults."""
    adapter = MagicMock()
    adapter.provider = provider
    adapter.create_event = AsyncMock(return_value=AdapterResult(event_id=f"{provider}_evt"))
    adapter.update_event = AsyncMock(return_value=AdapterResult(event_id=f"{provider}_evt"))
    adapter.delete_event = AsyncMock(return_value=AdapterResult(event_id=f"{provider}_evt"))
    adapter.build_authorization_url.return_value = f"https://{provider}.example.com/auth"
    adapter.exchange_code_for_token = AsyncMock()
    return adapter


@pytest.fixture
def google_adapter():
    return make_adapter("google")


@pytest.fixture
def outlook_adapter():
    return make_adapter("outlook")


@pytest.fixture
def facade(google_adapter, outlook_adapter):
    return CalendarSyncFacade(adapters={"google": google_adapter, "outlook": outlook_adapter})


class TestGetAdapter:
    """Tests for provider dispatch."""

    def test_known_providers(self, facade, google_adapter, outlook_adapter):
        """Known tags resolve to their adapters."""
        assert facade.get_adapter("google") is google_adapter
        assert facade.get_adapter("outlook") is outlook_adapter

    def test_custom_not_implemented(self, facade):
        """custom is reserved."""
        with pytest.raises(ProviderNotImplementedError) as exc_info:
            facade.get_adapter("custom")
        assert str(exc_info.value) == "Custom calendar sync not yet implemented"

    def test_unknown_provider(self, facade):
        """Unknown tags are rejected."""
        with pytest.raises(UnsupportedProviderError) as exc_info:
            facade.get_adapter("yahoo")
        assert str(exc_info.value) == "Unsupported calendar provider: yahoo"

    def test_default_adapters_created_lazily(self):
        """Without injected adapters the real ones are built on demand."""
        from src.integrations.google_calendar import GoogleCalendarAdapter
        from src.integrations.outlook_calendar import OutlookCalendarAdapter

        facade = CalendarSyncFacade()

        assert isinstance(facade.get_adapter("google"), GoogleCalendarAdapter)
        assert isinstance(facade.get_adapter("outlook"), OutlookCalendarAdapter)
        assert facade.get_adapter("google") is facade.get_adapter("google")


class TestSyncMeetingToCalendar:
    """Tests for create."""

    @pytest.mark.asyncio
    async def test_success(self, facade, google_adapter, google_token, sample_event):
        """A successful sync returns the remote id."""
        result = await facade.sync_meeting_to_calendar(
            "google", google_token, sample_event, idempotency_key="meeting-1"
        )

        assert result == SyncResult(success=True, provider="google", event_id="google_evt")
        google_adapter.create_event.assert_awaited_once_with(
            google_token, sample_event, idempotency_key="meeting-1"
        )

    @pytest.mark.asyncio
    async def test_accepts_stored_json(self, facade, google_adapter, google_token, sample_event):
        """The stored JSON blob is validated into a typed token."""
        result = await facade.sync_meeting_to_calendar(
            "google", google_token.to_storage_json(), sample_event
        )

        assert result.success is True
        passed_token = google_adapter.create_event.call_args.args[0]
        assert passed_token.access_token == "google-access"

    @pytest.mark.asyncio
    async def test_updated_token_surfaces(self, facade, outlook_adapter, outlook_token, sample_event):
        """A refreshed token is returned for the caller to persist."""
        outlook_adapter.create_event.return_value = AdapterResult(
            event_id="outlook_evt", updated_token=outlook_token
        )

        result = await facade.sync_meeting_to_calendar("outlook", {"access_token": "x"}, sample_event)

        assert result.updated_token is outlook_token

    @pytest.mark.asyncio
    async def test_custom_provider(self, facade, sample_event):
        """custom never raises, it reports not implemented."""
        result = await facade.sync_meeting_to_calendar("custom", {}, sample_event)

        assert result.success is False
        assert result.provider == "custom"
        assert result.error == "Custom calendar sync not yet implemented"
        assert result.event_id is None

    @pytest.mark.asyncio
    async def test_unsupported_provider(self, facade, sample_event):
        """Unknown provider is a failure envelope."""
        result = await facade.sync_meeting_to_calendar("yahoo", {}, sample_event)

        assert result.success is False
        assert result.error == "Unsupported calendar provider: yahoo"

    @pytest.mark.asyncio
    async def test_invalid_token(self, facade, google_adapter, sample_event):
        """A corrupt token blob never reaches the adapter."""
        result = await facade.sync_meeting_to_calendar("google", "{broken", sample_event)

        assert result.success is False
        assert "Invalid google calendar token" in result.error
        google_adapter.create_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_vendor_error_message_passes_through(
        self, facade, google_adapter, google_token, sample_event
    ):
        """Vendor failures become an envelope carrying the vendor message."""
        google_adapter.create_event.side_effect = CalendarAPIError(
            "Google Calendar API error (400): Invalid attendee email",
            provider="google",
            status_code=400,
        )

        result = await facade.sync_meeting_to_calendar("google", google_token, sample_event)

        assert result.success is False
        assert result.error == "Google Calendar API error (400): Invalid attendee email"

    @pytest.mark.asyncio
    async def test_failure_keeps_refreshed_token(
        self, facade, outlook_adapter, outlook_token, sample_event
    ):
        """A token refreshed before the vendor call failed is still returned."""
        error = CalendarAPIError("Microsoft Graph API error (503)", provider="outlook")
        error.updated_token = outlook_token
        outlook_adapter.create_event.side_effect = error

        result = await facade.sync_meeting_to_calendar("outlook", outlook_token, sample_event)

        assert result.success is False
        assert result.updated_token is outlook_token

    @pytest.mark.asyncio
    async def test_missing_credentials(self, facade, google_adapter, google_token, sample_event):
        """Configuration errors are reported, not raised."""
        google_adapter.create_event.side_effect = CalendarConfigurationError(
            "Google OAuth credentials not configured.", provider="google"
        )

        result = await facade.sync_meeting_to_calendar("google", google_token, sample_event)

        assert result.success is False
        assert "not configured" in result.error

    @pytest.mark.asyncio
    async def test_unexpected_error(self, facade, google_adapter, google_token, sample_event):
        """Non-calendar exceptions are caught as well."""
        google_adapter.create_event.side_effect = RuntimeError("socket closed")

        result = await facade.sync_meeting_to_calendar("google", google_token, sample_event)

        assert result.success is False
        assert result.error == "socket closed"


class TestUpdateAndDelete:
    """Tests for update and delete."""

    @pytest.mark.asyncio
    async def test_update_success(self, facade, outlook_adapter, outlook_token):
        """Update passes the partial event through."""
        updates = CalendarEventUpdate(title="Moved")

        result = await facade.update_meeting_in_calendar("outlook", outlook_token, "evt", updates)

        assert result.success is True
        assert result.event_id == "evt"
        outlook_adapter.update_event.assert_awaited_once_with(outlook_token, "evt", updates)

    @pytest.mark.asyncio
    async def test_update_custom(self, facade):
        """custom update is not implemented."""
        result = await facade.update_meeting_in_calendar("custom", {}, "evt", CalendarEventUpdate())

        assert result.success is False
        assert result.error == "Custom calendar sync not yet implemented"

    @pytest.mark.asyncio
    async def test_delete_success(self, facade, google_token):
        """Delete returns success without an event id."""
        result = await facade.delete_meeting_from_calendar("google", google_token, "evt")

        assert result.success is True
        assert result.event_id is None

    @pytest.mark.asyncio
    async def test_delete_vendor_500(self, facade, google_adapter, google_token):
        """A vendor 500 on delete is reported and not raised."""
        google_adapter.delete_event.side_effect = CalendarAPIError(
            "Google Calendar API error (500): Backend Error",
            provider="google",
            status_code=500,
        )

        result = await facade.delete_meeting_from_calendar("google", google_token, "evt")

        assert result.success is False
        assert "500" in result.error


class TestOAuthHelpers:
    """Tests for auth URL and code exchange, which raise."""

    def test_auth_url(self, facade, google_adapter):
        """The adapter builds the URL for the staff member."""
        url = facade.get_calendar_auth_url("google", "staff-1")

        assert url == "https://google.example.com/auth"
        google_adapter.build_authorization_url.assert_called_once_with("staff-1")

    def test_auth_url_custom(self, facade):
        """custom OAuth is not implemented."""
        with pytest.raises(ProviderNotImplementedError) as exc_info:
            facade.get_calendar_auth_url("custom", "staff-1")
        assert str(exc_info.value) == "Custom calendar OAuth not yet implemented"

    def test_auth_url_unsupported(self, facade):
        """Unknown providers raise."""
        with pytest.raises(UnsupportedProviderError):
            facade.get_calendar_auth_url("yahoo", "staff-1")

    @pytest.mark.asyncio
    async def test_exchange_code(self, facade, outlook_adapter, outlook_token):
        """The exchanged token is returned for persistence."""
        outlook_adapter.exchange_code_for_token.return_value = outlook_token

        token = await facade.exchange_calendar_code_for_tokens("outlook", "code")

        assert token is outlook_token
        outlook_adapter.exchange_code_for_token.assert_awaited_once_with("code")


class TestModuleFunctions:
    """Tests for the module-level singleton wrappers."""

    @pytest.fixture(autouse=True)
    def install_facade(self, facade):
        calendar_sync.reset_calendar_sync(facade)
        yield
        calendar_sync.reset_calendar_sync()

    def test_singleton(self, facade):
        """get_calendar_sync returns the installed facade."""
        assert calendar_sync.get_calendar_sync() is facade

    @pytest.mark.asyncio
    async def test_sync_wrapper(self, google_token, sample_event):
        """Module function delegates to the singleton."""
        result = await calendar_sync.sync_meeting_to_calendar("google", google_token, sample_event)
        assert result.success is True
        assert result.event_id == "google_evt"

    @pytest.mark.asyncio
    async def test_delete_wrapper_custom(self):
        """Module delete reports custom as not implemented."""
        result = await calendar_sync.delete_meeting_from_calendar("custom", {}, "evt")
        assert result.error == "Custom calendar sync not yet implemented"
