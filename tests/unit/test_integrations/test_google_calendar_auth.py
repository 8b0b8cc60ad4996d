"""Tests for Google OAuth flow."""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from src.config import Settings
from src.integrations.exceptions import (
    CalendarAuthError,
    CalendarConfigurationError,
    CalendarReconnectRequiredError,
)
from src.integrations.google_calendar.auth import (
    CALENDAR_SCOPES,
    GOOGLE_TOKEN_URL,
    GoogleOAuthFlow,
)
from src.integrations.tokens import GoogleCalendarToken, now_epoch_millis


def token_endpoint(status: int, payload: dict, captured: list | None = None) -> httpx.MockTransport:
    """Mock transport answering every request with one JSON response."""
    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(request)
        return httpx.Response(status, json=payload)

    return httpx.MockTransport(handler)


class TestGoogleOAuthFlowConfiguration:
    """Tests for credential checks."""

    def test_missing_credentials(self):
        """Should raise a configuration error without client credentials."""
        with pytest.raises(CalendarConfigurationError) as exc_info:
            GoogleOAuthFlow(settings=Settings(_env_file=None, google_client_id="", google_client_secret=""))

        assert "Google OAuth credentials not configured" in str(exc_info.value)
        assert exc_info.value.provider == "google"


class TestAuthorizationUrl:
    """Tests for consent URL generation."""

    def test_url_requests_offline_access(self, settings):
        """URL carries offline access, forced consent and the staff ID."""
        url = GoogleOAuthFlow(settings=settings).get_authorization_url(state="staff-42")

        query = parse_qs(urlparse(url).query)
        assert query["access_type"] == ["offline"]
        assert query["prompt"] == ["consent"]
        assert query["state"] == ["staff-42"]
        assert query["client_id"] == ["google-client-id"]
        assert query["redirect_uri"] == [
            "https://visitors.example.com/calendar/google/callback"
        ]
        assert query["scope"] == [" ".join(CALENDAR_SCOPES)]


class TestExchangeCode:
    """Tests for authorization code exchange."""

    @pytest.mark.asyncio
    async def test_success(self, settings):
        """Should return a token with an absolute expiry in the future."""
        captured: list[httpx.Request] = []
        flow = GoogleOAuthFlow(
            settings=settings,
            transport=token_endpoint(200, {
                "access_token": "access",
                "refresh_token": "refresh",
                "expires_in": 3599,
                "scope": "https://www.googleapis.com/auth/calendar",
                "token_type": "Bearer",
            }, captured),
        )

        token = await flow.exchange_code("auth-code")

        assert isinstance(token, GoogleCalendarToken)
        assert token.access_token == "access"
        assert token.refresh_token == "refresh"
        assert token.expiry_epoch_millis > now_epoch_millis()
        assert str(captured[0].url) == GOOGLE_TOKEN_URL
        body = parse_qs(captured[0].content.decode())
        assert body["grant_type"] == ["authorization_code"]
        assert body["code"] == ["auth-code"]

    @pytest.mark.asyncio
    async def test_missing_refresh_token(self, settings):
        """Should fail when Google omits the refresh token."""
        flow = GoogleOAuthFlow(
            settings=settings,
            transport=token_endpoint(200, {"access_token": "access", "expires_in": 3600}),
        )

        with pytest.raises(CalendarAuthError) as exc_info:
            await flow.exchange_code("auth-code")

        assert "Failed to get refresh token. User may need to re-authorize." in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_endpoint_error(self, settings):
        """Should surface the OAuth error description."""
        flow = GoogleOAuthFlow(
            settings=settings,
            transport=token_endpoint(400, {
                "error": "invalid_grant",
                "error_description": "Bad Request",
            }),
        )

        with pytest.raises(CalendarAuthError) as exc_info:
            await flow.exchange_code("expired-code")

        assert "Bad Request" in str(exc_info.value)


class TestRefresh:
    """Tests for access token refresh."""

    @pytest.mark.asyncio
    async def test_keeps_refresh_token(self, settings, expired_google_token):
        """Google omits the refresh token on refresh; the stored one is kept."""
        flow = GoogleOAuthFlow(
            settings=settings,
            transport=token_endpoint(200, {"access_token": "fresh", "expires_in": 3600}),
        )

        token = await flow.refresh(expired_google_token)

        assert token.access_token == "fresh"
        assert token.refresh_token == "google-refresh"
        assert token.is_expired() is False

    @pytest.mark.asyncio
    async def test_no_refresh_token(self, settings):
        """Without a refresh token the staff member must reconnect."""
        flow = GoogleOAuthFlow(settings=settings)

        with pytest.raises(CalendarReconnectRequiredError):
            await flow.refresh(GoogleCalendarToken(access_token="stale"))

    @pytest.mark.asyncio
    async def test_revoked_refresh_token(self, settings, expired_google_token):
        """A rejected refresh token requires reconnection."""
        flow = GoogleOAuthFlow(
            settings=settings,
            transport=token_endpoint(400, {"error": "invalid_grant"}),
        )

        with pytest.raises(CalendarReconnectRequiredError) as exc_info:
            await flow.refresh(expired_google_token)

        assert "invalid_grant" in str(exc_info.value)


class TestBuildCredentials:
    """Tests for google-auth credential construction."""

    def test_credentials_from_token(self, settings, google_token):
        """Credentials carry the access token and a naive UTC expiry."""
        credentials = GoogleOAuthFlow(settings=settings).build_credentials(google_token)

        assert credentials.token == "google-access"
        assert credentials.refresh_token is None
        assert credentials.token_uri is None
        assert credentials.expiry.tzinfo is None
        assert credentials.expired is False
