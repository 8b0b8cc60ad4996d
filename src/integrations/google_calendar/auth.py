"""
Google OAuth 2.0 for staff calendar access.

Implements the authorization code flow:
1. Generate authorization URL → staff member redirected to Google
2. Staff member grants permission → Google redirects back with code
3. Exchange code for tokens → access_token + refresh_token
4. Refresh access_token when expired using refresh_token
"""

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from google.oauth2.credentials import Credentials

from src.config import Settings, get_settings
from src.integrations.exceptions import (
    CalendarAuthError,
    CalendarConfigurationError,
    CalendarReconnectRequiredError,
)
from src.integrations.tokens import (
    DEFAULT_TOKEN_LIFETIME_MS,
    GoogleCalendarToken,
    now_epoch_millis,
)

logger = logging.getLogger(__name__)

# Google OAuth endpoints
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Required scopes for calendar operations
CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]


def _error_detail(response: httpx.Response) -> str:
    """Best-effort extraction of the OAuth error from a token endpoint response."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return data.get("error_description") or data.get("error") or str(data)
    return str(data)


class GoogleOAuthFlow:
    """
    Manages the Google OAuth 2.0 flow for one deployment's client credentials.

    Usage:
        flow = GoogleOAuthFlow()

        # Step 1: Get authorization URL
        auth_url = flow.get_authorization_url(state=staff_id)

        # Step 2: Handle callback with authorization code
        token = await flow.exchange_code(code)

        # Step 3: Refresh token when expired
        token = await flow.refresh(token)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or get_settings()
        self.client_id = settings.google_client_id
        self.client_secret = settings.google_client_secret
        self.redirect_uri = settings.google_redirect_uri_resolved
        self.timeout = settings.calendar_http_timeout_seconds
        self._transport = transport

        if not self.client_id or not self.client_secret:
            raise CalendarConfigurationError(
                "Google OAuth credentials not configured. "
                "Please set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET in .env",
                provider="google",
            )

    def get_authorization_url(self, state: str) -> str:
        """
        Generate the Google OAuth authorization URL.

        Args:
            state: Opaque value returned on the callback (the staff member ID)

        Returns:
            URL to redirect the staff member to for authorization
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(CALENDAR_SCOPES),
            "access_type": "offline",  # Get refresh token
            "prompt": "consent",  # Always show consent screen (ensures refresh token)
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def _post_token_endpoint(self, data: dict) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            return await client.post(GOOGLE_TOKEN_URL, data=data)

    async def exchange_code(self, code: str) -> GoogleCalendarToken:
        """
        Exchange authorization code for access and refresh tokens.

        Args:
            code: Authorization code from OAuth callback

        Returns:
            GoogleCalendarToken with access and refresh tokens

        Raises:
            CalendarAuthError: If the exchange fails or Google omits the
                refresh token (consent was granted before and not re-prompted)
        """
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }

        response = await self._post_token_endpoint(data)
        if response.is_error:
            raise CalendarAuthError(
                f"Google token exchange failed: {_error_detail(response)}",
                provider="google",
            )
        token_data = response.json()

        if not token_data.get("access_token") or not token_data.get("refresh_token"):
            raise CalendarAuthError(
                "Failed to get refresh token. User may need to re-authorize.",
                provider="google",
            )

        logger.info("Successfully exchanged Google authorization code for tokens")

        return GoogleCalendarToken(
            access_token=token_data["access_token"],
            refresh_token=token_data["refresh_token"],
            expiry_epoch_millis=_expiry_from(token_data),
            scope=token_data.get("scope", ""),
            token_type=token_data.get("token_type", "Bearer"),
        )

    async def refresh(self, token: GoogleCalendarToken) -> GoogleCalendarToken:
        """
        Refresh an expired access token.

        Args:
            token: Stored token holding the refresh token

        Returns:
            New token with a fresh access token and expiry

        Raises:
            CalendarReconnectRequiredError: If there is no refresh token or
                Google rejects it
        """
        if not token.refresh_token:
            raise CalendarReconnectRequiredError(
                "Google token expired and no refresh token is stored. "
                "Please reconnect your Google calendar.",
                provider="google",
            )

        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": token.refresh_token,
            "grant_type": "refresh_token",
        }

        response = await self._post_token_endpoint(data)
        if response.is_error:
            raise CalendarReconnectRequiredError(
                f"Google token refresh failed: {_error_detail(response)}. "
                "Please reconnect your Google calendar.",
                provider="google",
            )
        token_data = response.json()

        logger.info("Successfully refreshed Google access token")

        return GoogleCalendarToken(
            access_token=token_data["access_token"],
            # Google usually omits the refresh token on refresh; keep the original
            refresh_token=token_data.get("refresh_token") or token.refresh_token,
            expiry_epoch_millis=_expiry_from(token_data),
            scope=token_data.get("scope") or token.scope,
            token_type=token_data.get("token_type") or token.token_type,
        )

    def build_credentials(self, token: GoogleCalendarToken) -> Credentials:
        """
        Create google-auth credentials from a stored token.

        The credentials carry no refresh token. Refreshing is left to the
        adapter, which returns the new token to the caller.

        Args:
            token: Valid (non-expired) token

        Returns:
            Google credentials object for the Calendar API client
        """
        expiry = token.expiry
        return Credentials(
            token=token.access_token,
            client_id=self.client_id,
            scopes=token.scope.split(" ") if token.scope else CALENDAR_SCOPES,
            # google-auth compares against naive UTC datetimes
            expiry=expiry.replace(tzinfo=None) if expiry else None,
        )


def _expiry_from(token_data: dict) -> int:
    """Absolute expiry in epoch millis from a token endpoint response."""
    expires_in = token_data.get("expires_in")
    if expires_in:
        return now_epoch_millis() + int(expires_in) * 1000
    return now_epoch_millis() + DEFAULT_TOKEN_LIFETIME_MS
