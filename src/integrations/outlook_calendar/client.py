"""
Microsoft Graph calendar client with retry and error handling.

Calls the signed-in staff member's default calendar (/me/calendar/events)
with a delegated access token.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.config import get_settings
from src.integrations.exceptions import (
    CalendarAPIError,
    CalendarAuthError,
    CalendarNotFoundError,
    CalendarRateLimitError,
    CalendarReconnectRequiredError,
    CalendarSyncError,
)

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
EVENTS_PATH = "/me/calendar/events"


def _is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception should trigger a retry."""
    if isinstance(exception, CalendarSyncError):
        return exception.retryable
    return isinstance(exception, httpx.TransportError)


def _graph_error_message(response: httpx.Response) -> str:
    """Extract Graph's error message, falling back to the raw body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("code") or str(error)
    return str(data)


def _handle_error_response(response: httpx.Response) -> None:
    """Convert a Graph error response to the appropriate CalendarSyncError."""
    status = response.status_code
    message = _graph_error_message(response)

    if status == 401:
        raise CalendarReconnectRequiredError(
            f"Outlook rejected the access token ({message}). "
            "Please reconnect your Outlook calendar.",
            provider="outlook",
        )
    elif status == 403:
        raise CalendarAuthError(
            f"Access denied by Microsoft Graph: {message}",
            provider="outlook",
        )
    elif status in (404, 410):
        raise CalendarNotFoundError(
            f"Outlook event not found: {message}",
            provider="outlook",
        )
    elif status == 429:
        raise CalendarRateLimitError(
            f"Microsoft Graph throttled the request: {message}",
            provider="outlook",
        )
    raise CalendarAPIError(
        f"Microsoft Graph API error ({status}): {message}",
        provider="outlook",
        status_code=status,
    )


class OutlookCalendarClient:
    """
    Thin async wrapper over the Graph calendar events endpoints.

    Each request opens its own httpx.AsyncClient; there is no shared state
    between calls other than the access token.
    """

    def __init__(
        self,
        access_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = GRAPH_BASE_URL,
        timeout: Optional[float] = None,
    ):
        self._access_token = access_token
        self._transport = transport
        self._base_url = base_url
        self._timeout = (
            timeout if timeout is not None else get_settings().calendar_http_timeout_seconds
        )

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            response = await client.request(
                method,
                path,
                json=json,
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "Content-Type": "application/json",
                },
            )
        if response.is_error:
            _handle_error_response(response)
        return response.json() if response.content else {}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send one Graph request, retrying transient failures when configured."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(get_settings().calendar_api_max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception(_is_retryable_error),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._send(method, path, json=json)

    async def create_event(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create an event in the default calendar."""
        result = await self.request("POST", EVENTS_PATH, json=body)
        logger.info(f"Created Outlook event {result.get('id')}")
        return result

    async def update_event(self, event_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Patch the given fields of an event."""
        result = await self.request("PATCH", f"{EVENTS_PATH}/{event_id}", json=body)
        logger.info(f"Patched Outlook event {event_id}")
        return result

    async def delete_event(self, event_id: str) -> None:
        """Delete an event; a missing event counts as deleted."""
        try:
            await self.request("DELETE", f"{EVENTS_PATH}/{event_id}")
        except CalendarNotFoundError:
            logger.warning(f"Outlook event {event_id} already deleted")
            return
        logger.info(f"Deleted Outlook event {event_id}")
