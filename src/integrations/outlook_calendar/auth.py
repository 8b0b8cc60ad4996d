"""
Microsoft identity platform OAuth for Outlook calendar access.

MSAL is synchronous; token calls run in the default executor.
"""

import asyncio
import logging
from functools import partial
from typing import Optional

import msal

from src.config import Settings, get_settings
from src.integrations.exceptions import (
    CalendarAuthError,
    CalendarConfigurationError,
    CalendarReconnectRequiredError,
)
from src.integrations.tokens import (
    DEFAULT_TOKEN_LIFETIME_MS,
    OutlookCalendarToken,
    now_epoch_millis,
)

logger = logging.getLogger(__name__)

# MSAL adds offline_access, openid and profile on its own
CALENDAR_SCOPES = [
    "https://graph.microsoft.com/Calendars.ReadWrite",
    "https://graph.microsoft.com/User.Read",
]


def _token_from_result(result: dict, fallback_refresh_token: str = "") -> OutlookCalendarToken:
    """Build a token from an MSAL acquire_* result."""
    expires_in = result.get("expires_in")
    if expires_in:
        expiry = now_epoch_millis() + int(expires_in) * 1000
    else:
        expiry = now_epoch_millis() + DEFAULT_TOKEN_LIFETIME_MS

    scope = result.get("scope", "")
    if isinstance(scope, list):
        scope = " ".join(scope)

    return OutlookCalendarToken(
        access_token=result["access_token"],
        refresh_token=result.get("refresh_token") or fallback_refresh_token,
        expiry_epoch_millis=expiry,
        scope=scope,
    )


class OutlookOAuthFlow:
    """
    Manages the Outlook OAuth 2.0 flow through MSAL.

    Usage:
        flow = OutlookOAuthFlow()
        auth_url = flow.get_authorization_url(state=staff_id)
        token = await flow.exchange_code(code)
        token = await flow.refresh(token)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        app: Optional[msal.ConfidentialClientApplication] = None,
    ):
        settings = settings or get_settings()

        if not settings.outlook_client_id or not settings.outlook_client_secret:
            raise CalendarConfigurationError(
                "Outlook OAuth credentials not configured. "
                "Please set OUTLOOK_CLIENT_ID and OUTLOOK_CLIENT_SECRET in .env",
                provider="outlook",
            )

        self.redirect_uri = settings.outlook_redirect_uri_resolved
        self._app = app or msal.ConfidentialClientApplication(
            client_id=settings.outlook_client_id,
            client_credential=settings.outlook_client_secret,
            authority=settings.outlook_authority,
        )

    async def _run_in_executor(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    def get_authorization_url(self, state: str) -> str:
        """
        Generate the Microsoft authorization URL.

        Args:
            state: Opaque value returned on the callback (the staff member ID)

        Returns:
            URL to redirect the staff member to for authorization
        """
        return self._app.get_authorization_request_url(
            CALENDAR_SCOPES,
            state=state,
            redirect_uri=self.redirect_uri,
            prompt="consent",  # Force consent to get refresh token
        )

    async def exchange_code(self, code: str) -> OutlookCalendarToken:
        """
        Exchange authorization code for tokens.

        Raises:
            CalendarAuthError: If Microsoft returns no access token
        """
        result = await self._run_in_executor(
            self._app.acquire_token_by_authorization_code,
            code,
            scopes=CALENDAR_SCOPES,
            redirect_uri=self.redirect_uri,
        )

        if not result or "access_token" not in result:
            detail = (result or {}).get("error_description") or (result or {}).get("error")
            message = "Failed to acquire access token from Microsoft"
            if detail:
                message = f"{message}: {detail}"
            raise CalendarAuthError(message, provider="outlook")

        logger.info("Successfully exchanged Outlook authorization code for tokens")
        return _token_from_result(result)

    async def refresh(self, token: OutlookCalendarToken) -> OutlookCalendarToken:
        """
        Redeem the refresh token for a new access token.

        Raises:
            CalendarReconnectRequiredError: If Microsoft rejects the refresh token
        """
        result = await self._run_in_executor(
            self._app.acquire_token_by_refresh_token,
            token.refresh_token,
            scopes=CALENDAR_SCOPES,
        )

        if not result or "access_token" not in result:
            detail = (result or {}).get("error_description") or "no access token returned"
            raise CalendarReconnectRequiredError(
                f"Outlook token refresh failed: {detail}. "
                "Please reconnect your Outlook calendar.",
                provider="outlook",
            )

        logger.info("Successfully refreshed Outlook access token")
        return _token_from_result(result, fallback_refresh_token=token.refresh_token)
