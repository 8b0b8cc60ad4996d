"""
Meeting sync service.

Mirrors a visitor meeting into every calendar the host staff member has
connected. Loads the stored token for each provider, calls the sync facade,
and saves any token the adapter refreshed along the way.

Calendar failures never propagate: each provider's outcome is returned as a
SyncResult so the caller can record it next to the meeting.
"""

import logging
import re
from dataclasses import replace
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.token_storage import (
    list_connected_providers,
    load_token_blob,
    save_staff_token,
)
from src.integrations.base import CalendarEvent, CalendarEventUpdate, SyncResult
from src.integrations.exceptions import CalendarSyncError
from src.services.calendar_sync import CalendarSyncFacade, get_calendar_sync

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def filter_attendee_emails(values: Optional[Iterable[Optional[str]]]) -> list[str]:
    """
    Keep only values that look like email addresses.

    Visitor records may carry names or phone numbers in the attendee list;
    calendar providers reject those.

    Args:
        values: Raw attendee strings

    Returns:
        Stripped email addresses, in input order, without duplicates
    """
    emails: list[str] = []
    for value in values or []:
        if not value:
            continue
        candidate = value.strip()
        if EMAIL_PATTERN.match(candidate) and candidate not in emails:
            emails.append(candidate)
    return emails


async def _load_token(session: AsyncSession, staff_id: str, provider: str):
    """Stored token, or a failed SyncResult if it cannot be used."""
    try:
        token = await load_token_blob(session, staff_id, provider)
    except CalendarSyncError as e:
        logger.error(f"Stored {provider} token for staff {staff_id} is invalid: {e.message}")
        return None, SyncResult(success=False, provider=provider, error=e.message)

    if token is None:
        return None, SyncResult(
            success=False,
            provider=provider,
            error=f"{provider.capitalize()} calendar not connected",
        )
    return token, None


async def _persist_updated_token(
    session: AsyncSession,
    staff_id: str,
    result: SyncResult,
) -> None:
    if result.updated_token is None:
        return
    await save_staff_token(session, staff_id, result.updated_token)
    logger.info(f"Saved refreshed {result.provider} token for staff {staff_id}")


async def sync_meeting(
    session: AsyncSession,
    staff_id: str,
    meeting_id: str,
    event: CalendarEvent,
    facade: Optional[CalendarSyncFacade] = None,
) -> dict[str, SyncResult]:
    """
    Create the meeting in every connected calendar of the host.

    The meeting ID is passed as idempotency key, so retrying a sync does not
    duplicate the remote event.

    Args:
        session: Database session
        staff_id: Host staff member
        meeting_id: Local meeting ID
        event: Meeting to mirror
        facade: Sync facade (defaults to the module singleton)

    Returns:
        Mapping of provider to SyncResult; empty if nothing is connected
    """
    facade = facade or get_calendar_sync()
    event = replace(event, attendees=filter_attendee_emails(event.attendees))
    results: dict[str, SyncResult] = {}

    for provider in await list_connected_providers(session, staff_id):
        token, failure = await _load_token(session, staff_id, provider)
        if failure:
            results[provider] = failure
            continue

        result = await facade.sync_meeting_to_calendar(
            provider, token, event, idempotency_key=meeting_id
        )
        await _persist_updated_token(session, staff_id, result)
        if result.success:
            logger.info(f"Meeting {meeting_id} synced to {provider} as {result.event_id}")
        results[provider] = result

    return results


async def update_meeting(
    session: AsyncSession,
    staff_id: str,
    event_ids: dict[str, str],
    updates: CalendarEventUpdate,
    facade: Optional[CalendarSyncFacade] = None,
) -> dict[str, SyncResult]:
    """
    Apply changed meeting fields to each remote event.

    Args:
        session: Database session
        staff_id: Host staff member
        event_ids: Provider to remote event ID, as recorded at sync time
        updates: Changed fields only
        facade: Sync facade (defaults to the module singleton)

    Returns:
        Mapping of provider to SyncResult
    """
    facade = facade or get_calendar_sync()
    if updates.attendees is not None:
        updates = replace(updates, attendees=filter_attendee_emails(updates.attendees))
    results: dict[str, SyncResult] = {}

    for provider, event_id in event_ids.items():
        token, failure = await _load_token(session, staff_id, provider)
        if failure:
            results[provider] = failure
            continue

        result = await facade.update_meeting_in_calendar(provider, token, event_id, updates)
        await _persist_updated_token(session, staff_id, result)
        results[provider] = result

    return results


async def delete_meeting(
    session: AsyncSession,
    staff_id: str,
    event_ids: dict[str, str],
    facade: Optional[CalendarSyncFacade] = None,
) -> dict[str, SyncResult]:
    """
    Remove the meeting's remote events.

    Failures are logged and returned; the caller goes on deleting the local
    meeting regardless.

    Args:
        session: Database session
        staff_id: Host staff member
        event_ids: Provider to remote event ID
        facade: Sync facade (defaults to the module singleton)

    Returns:
        Mapping of provider to SyncResult
    """
    facade = facade or get_calendar_sync()
    results: dict[str, SyncResult] = {}

    for provider, event_id in event_ids.items():
        token, failure = await _load_token(session, staff_id, provider)
        if failure:
            results[provider] = failure
            continue

        result = await facade.delete_meeting_from_calendar(provider, token, event_id)
        await _persist_updated_token(session, staff_id, result)
        if not result.success:
            logger.warning(
                f"Failed to delete {provider} event {event_id} for staff {staff_id}: "
                f"{result.error}"
            )
        results[provider] = result

    return results
