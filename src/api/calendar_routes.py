"""
Calendar connection API routes.

Handles the OAuth 2.0 authorization code flow for staff calendars:
1. /calendar/{provider}/connect - Consent URL for the provider
2. /calendar/{provider}/callback - Exchange code for tokens, store, redirect
3. /calendar/status - Which calendars a staff member has connected
4. /calendar/disconnect - Remove a stored calendar token

The OAuth state parameter carries the staff member's ID.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.models import (
    CalendarConnectResponse,
    CalendarStatusResponse,
    DisconnectCalendarRequest,
    DisconnectCalendarResponse,
)
from src.auth import delete_staff_token, list_connected_providers, save_staff_token
from src.config import get_settings
from src.database import get_async_session
from src.integrations.base import SUPPORTED_PROVIDERS
from src.integrations.exceptions import CalendarSyncError
from src.services.calendar_sync import get_calendar_sync

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar", tags=["calendar"])


def _meetings_redirect(**params: str) -> RedirectResponse:
    """Redirect back to the staff meetings page with a result flag."""
    settings = get_settings()
    url = f"{settings.app_url.rstrip('/')}/employee/meetings?{urlencode(params)}"
    return RedirectResponse(url=url, status_code=302)


@router.get("/status", response_model=CalendarStatusResponse)
async def calendar_status(
    staff_id: str = Query(..., description="Staff member ID to check"),
    session: AsyncSession = Depends(get_async_session),
) -> CalendarStatusResponse:
    """
    Check which calendars a staff member has connected.

    Args:
        staff_id: The staff member ID to check
        session: Database session

    Returns:
        Connected providers
    """
    providers = await list_connected_providers(session, staff_id)
    return CalendarStatusResponse(
        staff_id=staff_id,
        providers=providers,
        google="google" in providers,
        outlook="outlook" in providers,
    )


@router.post("/disconnect", response_model=DisconnectCalendarResponse)
async def disconnect_calendar(
    request: DisconnectCalendarRequest,
    session: AsyncSession = Depends(get_async_session),
) -> DisconnectCalendarResponse:
    """
    Disconnect a staff member's calendar.

    This removes the stored OAuth tokens. Future meetings are no longer
    synced until the staff member reconnects.

    Raises:
        HTTPException: 400 for an unsupported provider
    """
    if request.provider not in SUPPORTED_PROVIDERS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid provider: {request.provider}. Must be one of: "
            f"{', '.join(SUPPORTED_PROVIDERS)}",
        )

    deleted = await delete_staff_token(session, request.staff_id, request.provider)
    name = request.provider.capitalize()

    if deleted:
        return DisconnectCalendarResponse(
            success=True,
            message=f"Successfully disconnected {name} Calendar",
        )
    return DisconnectCalendarResponse(
        success=False,
        message=f"No connected {name} Calendar found",
    )


@router.get("/{provider}/connect", response_model=CalendarConnectResponse)
async def connect_calendar(
    provider: str,
    staff_id: str = Query(..., description="Staff member ID to associate with the tokens"),
) -> CalendarConnectResponse:
    """
    Start the OAuth flow for a staff member's calendar.

    Returns the authorization URL that the client should redirect to.

    Raises:
        HTTPException: 400 for an unsupported provider or missing credentials
    """
    try:
        auth_url = get_calendar_sync().get_calendar_auth_url(provider, staff_id)
    except CalendarSyncError as e:
        logger.warning(f"Cannot start {provider} OAuth for staff {staff_id}: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)

    logger.info(f"Generated {provider} OAuth URL for staff {staff_id}")
    return CalendarConnectResponse(authorization_url=auth_url)


@router.get("/{provider}/callback")
async def calendar_callback(
    provider: str,
    code: Optional[str] = Query(None, description="Authorization code from the provider"),
    state: Optional[str] = Query(None, description="Staff member ID"),
    error: Optional[str] = Query(None, description="Error from the provider"),
    session: AsyncSession = Depends(get_async_session),
) -> RedirectResponse:
    """
    Handle the provider's OAuth callback.

    The provider redirects here after the staff member grants or denies
    permission. Every outcome ends in a redirect to the meetings page.
    """
    # Check for OAuth error (user denied access)
    if error:
        logger.warning(f"{provider} OAuth error: {error}")
        return _meetings_redirect(error=error)

    if not code or not state:
        return _meetings_redirect(error="Missing authorization code or state")

    staff_id = state
    try:
        token = await get_calendar_sync().exchange_calendar_code_for_tokens(provider, code)
        await save_staff_token(session, staff_id, token)
    except CalendarSyncError as e:
        logger.error(f"{provider} OAuth callback failed for staff {staff_id}: {e.message}")
        return _meetings_redirect(error=e.message)
    except Exception as e:
        logger.error(f"{provider} OAuth callback failed for staff {staff_id}: {e}", exc_info=True)
        return _meetings_redirect(error="Failed to connect calendar")

    logger.info(f"Stored {provider} calendar tokens for staff {staff_id}")
    return _meetings_redirect(calendar_connected=provider)
