"""Tests for Google Calendar API client."""

from unittest.mock import MagicMock, patch

import pytest
from googleapiclient.errors import HttpError

from src.integrations.exceptions import (
    CalendarAPIError,
    CalendarAuthError,
    CalendarNotFoundError,
    CalendarRateLimitError,
)
from src.integrations.google_calendar.client import (
    MEETING_ID_PROPERTY,
    GoogleCalendarClient,
    _handle_http_error,
    _is_retryable_error,
)


def make_http_error(status: int, message: str = "Error") -> HttpError:
    """Create a mock HttpError for testing."""
    resp = MagicMock()
    resp.status = status
    resp.reason = message
    return HttpError(resp=resp, content=message.encode())


class TestIsRetryableError:
    """Tests for retry decision logic."""

    def test_retryable_calendar_error(self):
        """Should return True for retryable CalendarSyncError."""
        assert _is_retryable_error(CalendarRateLimitError("Quota exceeded")) is True

    def test_non_retryable_calendar_error(self):
        """Should return False for non-retryable CalendarSyncError."""
        assert _is_retryable_error(CalendarAuthError("Auth failed")) is False

    def test_retryable_http_status_codes(self):
        """Should return True for 429, 500, 503 HTTP errors."""
        for status in [429, 500, 503]:
            assert _is_retryable_error(make_http_error(status)) is True

    def test_non_retryable_http_status_codes(self):
        """Should return False for other HTTP errors."""
        for status in [400, 401, 403, 404, 409]:
            assert _is_retryable_error(make_http_error(status)) is False

    def test_other_exceptions(self):
        """Should return False for non-HTTP exceptions."""
        assert _is_retryable_error(ValueError("test")) is False


class TestHandleHttpError:
    """Tests for HTTP error to exception mapping."""

    def test_401_auth_error(self):
        """Should raise CalendarAuthError for 401."""
        with pytest.raises(CalendarAuthError) as exc_info:
            _handle_http_error(make_http_error(401))
        assert "credentials may be invalid or expired" in str(exc_info.value)

    def test_403_quota_error(self):
        """Should raise CalendarRateLimitError for 403 with quota message."""
        with pytest.raises(CalendarRateLimitError) as exc_info:
            _handle_http_error(make_http_error(403, "quota exceeded"))
        assert "quota exceeded" in str(exc_info.value).lower()

    def test_403_auth_error(self):
        """Should raise CalendarAuthError for 403 without quota/rate limit."""
        with pytest.raises(CalendarAuthError) as exc_info:
            _handle_http_error(make_http_error(403, "Access denied"))
        assert "calendar access was granted" in str(exc_info.value)

    def test_404_not_found(self):
        """Should raise CalendarNotFoundError for 404 and 410."""
        for status in (404, 410):
            with pytest.raises(CalendarNotFoundError):
                _handle_http_error(make_http_error(status))

    def test_429_rate_limit(self):
        """Should raise CalendarRateLimitError for 429."""
        with pytest.raises(CalendarRateLimitError) as exc_info:
            _handle_http_error(make_http_error(429))
        assert exc_info.value.retryable is True

    def test_generic_error_keeps_vendor_message(self):
        """Should raise CalendarAPIError carrying status and vendor message."""
        with pytest.raises(CalendarAPIError) as exc_info:
            _handle_http_error(make_http_error(500, "Backend Error"))

        assert "500" in str(exc_info.value)
        assert "Backend Error" in str(exc_info.value)
        assert exc_info.value.status_code == 500
        assert exc_info.value.retryable is True
        assert exc_info.value.provider == "google"


class TestGoogleCalendarClient:
    """Tests for GoogleCalendarClient."""

    @pytest.fixture
    def mock_service(self):
        """Create a mock Google Calendar service."""
        with patch("src.integrations.google_calendar.client.build") as mock_build:
            service = MagicMock()
            mock_build.return_value = service
            yield service

    @pytest.fixture
    def client(self, mock_service):
        """Create a client with mocked service."""
        return GoogleCalendarClient(MagicMock())

    def test_insert_event(self, client, mock_service):
        """Should insert into the given calendar."""
        mock_service.events().insert().execute.return_value = {"id": "evt_1"}

        result = client.insert_event("primary", {"summary": "Visit"})

        assert result["id"] == "evt_1"
        mock_service.events().insert.assert_called_with(
            calendarId="primary",
            body={"summary": "Visit"},
        )

    def test_insert_event_error_is_mapped(self, client, mock_service):
        """Vendor errors surface as CalendarSyncError subclasses."""
        mock_service.events().insert().execute.side_effect = make_http_error(401)

        with pytest.raises(CalendarAuthError):
            client.insert_event("primary", {})

    def test_find_event_by_meeting_id(self, client, mock_service):
        """Should skip cancelled events and query by private property."""
        mock_service.events().list().execute.return_value = {
            "items": [
                {"id": "old", "status": "cancelled"},
                {"id": "live", "status": "confirmed"},
            ]
        }

        result = client.find_event_by_meeting_id("primary", "meeting-1")

        assert result["id"] == "live"
        call_kwargs = mock_service.events().list.call_args.kwargs
        assert call_kwargs["privateExtendedProperty"] == f"{MEETING_ID_PROPERTY}=meeting-1"

    def test_find_event_by_meeting_id_none(self, client, mock_service):
        """Should return None when nothing matches."""
        mock_service.events().list().execute.return_value = {"items": []}

        assert client.find_event_by_meeting_id("primary", "meeting-1") is None

    def test_update_event(self, client, mock_service):
        """Should replace the event body."""
        mock_service.events().update().execute.return_value = {"id": "evt_1"}

        client.update_event("primary", "evt_1", {"summary": "New"})

        mock_service.events().update.assert_called_with(
            calendarId="primary",
            eventId="evt_1",
            body={"summary": "New"},
        )

    def test_delete_event(self, client, mock_service):
        """Should delete the event."""
        mock_service.events().delete().execute.return_value = None

        client.delete_event("primary", "evt_1")

        mock_service.events().delete.assert_called_with(
            calendarId="primary",
            eventId="evt_1",
        )

    def test_delete_already_deleted(self, client, mock_service):
        """404 and 410 on delete count as success."""
        for status in (404, 410):
            mock_service.events().delete().execute.side_effect = make_http_error(status)
            client.delete_event("primary", "evt_1")

    def test_delete_server_error_raises(self, client, mock_service):
        """Other delete failures propagate."""
        mock_service.events().delete().execute.side_effect = make_http_error(500)

        with pytest.raises(CalendarAPIError):
            client.delete_event("primary", "evt_1")

    def test_no_retry_by_default(self, client, mock_service):
        """With the default of one attempt a transient error is not retried."""
        execute = mock_service.events().get().execute
        execute.side_effect = make_http_error(503)

        with pytest.raises(CalendarAPIError):
            client.get_event("primary", "evt_1")

        assert execute.call_count == 1

    def test_retries_when_configured(self, client, mock_service, monkeypatch):
        """Transient errors are retried up to CALENDAR_API_MAX_ATTEMPTS."""
        monkeypatch.setenv("CALENDAR_API_MAX_ATTEMPTS", "2")
        execute = mock_service.events().get().execute
        execute.side_effect = [make_http_error(503), {"id": "evt_1"}]

        with patch("tenacity.nap.time.sleep"):
            result = client.get_event("primary", "evt_1")

        assert result["id"] == "evt_1"
        assert execute.call_count == 2
