"""
Exceptions for calendar provider operations.

Provides structured error handling with retryable flags. Adapters and clients
raise these; the sync facade converts them into result envelopes.
"""

from typing import Optional


class CalendarSyncError(Exception):
    """
    Base exception for calendar sync operations.

    updated_token holds a token the adapter refreshed before the failure, so
    the caller can still store it.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.original_error = original_error
        self.updated_token = None


class CalendarConfigurationError(CalendarSyncError):
    """
    OAuth client credentials are missing.

    Fatal until the deployment sets *_CLIENT_ID and *_CLIENT_SECRET.
    """

    retryable = False


class CalendarAuthError(CalendarSyncError):
    """
    Authentication or authorization failure.

    Causes:
    - Token exchange returned no refresh token
    - Access token rejected by the provider
    - Insufficient scopes
    """

    retryable = False


class CalendarReconnectRequiredError(CalendarAuthError):
    """The stored token can no longer be used; the staff member must reconnect."""


class CalendarNotFoundError(CalendarSyncError):
    """Remote event or calendar not found."""

    retryable = False


class CalendarRateLimitError(CalendarSyncError):
    """
    Rate limit or quota hit (429, or 403 with a quota reason).

    Retryable after backoff.
    """

    retryable = True


class CalendarAPIError(CalendarSyncError):
    """
    Any other vendor API failure.

    The vendor message is kept in the exception text.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        original_error: Exception | None = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, provider=provider, original_error=original_error)
        self.status_code = status_code
        self.retryable = status_code in (500, 502, 503, 504)


class UnsupportedProviderError(CalendarSyncError):
    """Provider tag is not one of google, outlook, custom."""


class ProviderNotImplementedError(CalendarSyncError):
    """Provider tag is reserved but has no adapter yet."""


class InvalidCalendarTokenError(CalendarSyncError):
    """Stored token blob does not match the provider's credential shape."""
