"""
Token storage and retrieval for staff calendar tokens.

This is the persistence side of calendar sync: the sync facade never writes
to the database, callers load the token blob here before a sync and save
any refreshed token afterwards.

Concurrent syncs for the same staff member read the same blob and may both
refresh it; the last save wins.
"""

import logging
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.integrations.tokens import (
    GoogleCalendarToken,
    OutlookCalendarToken,
    parse_calendar_token,
)
from src.models.tokens import StaffCalendarToken

logger = logging.getLogger(__name__)

TypedToken = Union[GoogleCalendarToken, OutlookCalendarToken]


async def _find_token_row(
    session: AsyncSession,
    staff_id: str,
    provider: str,
    include_deleted: bool = False,
) -> Optional[StaffCalendarToken]:
    stmt = select(StaffCalendarToken).where(
        StaffCalendarToken.staff_id == staff_id,
        StaffCalendarToken.provider == provider,
    )
    if not include_deleted:
        stmt = stmt.where(StaffCalendarToken.deleted_at.is_(None))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_staff_token(
    session: AsyncSession,
    staff_id: str,
    provider: str,
) -> Optional[StaffCalendarToken]:
    """
    Get a staff member's stored calendar token.

    Args:
        session: Database session
        staff_id: The staff member's ID
        provider: Calendar provider

    Returns:
        StaffCalendarToken if connected, None otherwise
    """
    token = await _find_token_row(session, staff_id, provider)
    if token is None or not token.is_usable:
        return None
    return token


async def list_connected_providers(session: AsyncSession, staff_id: str) -> list[str]:
    """
    Providers the staff member currently has connected.

    Args:
        session: Database session
        staff_id: The staff member's ID

    Returns:
        Provider tags in alphabetical order
    """
    stmt = (
        select(StaffCalendarToken.provider)
        .where(
            StaffCalendarToken.staff_id == staff_id,
            StaffCalendarToken.connected.is_(True),
            StaffCalendarToken.deleted_at.is_(None),
            StaffCalendarToken.token_json.is_not(None),
        )
        .order_by(StaffCalendarToken.provider)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def save_staff_token(
    session: AsyncSession,
    staff_id: str,
    token: TypedToken,
) -> StaffCalendarToken:
    """
    Save or update a staff member's calendar token.

    A previously disconnected record is revived rather than duplicated.

    Args:
        session: Database session
        staff_id: The staff member's ID
        token: Token returned by a code exchange or a refresh

    Returns:
        The saved StaffCalendarToken
    """
    existing = await _find_token_row(session, staff_id, token.provider, include_deleted=True)

    if existing:
        existing.token_json = token.to_storage_json()
        if token.refresh_token:
            existing.refresh_token = token.refresh_token
        existing.token_expiry = token.expiry
        existing.connected = True
        existing.restore()

        logger.info(f"Updated {token.provider} calendar token for staff {staff_id}")
        await session.commit()
        return existing

    staff_token = StaffCalendarToken(
        staff_id=staff_id,
        provider=token.provider,
        token_json=token.to_storage_json(),
        refresh_token=token.refresh_token or None,
        token_expiry=token.expiry,
        connected=True,
    )
    session.add(staff_token)
    await session.commit()
    await session.refresh(staff_token)

    logger.info(f"Connected {token.provider} calendar for staff {staff_id}")
    return staff_token


async def delete_staff_token(
    session: AsyncSession,
    staff_id: str,
    provider: str,
) -> bool:
    """
    Disconnect a staff member's calendar (soft delete, token cleared).

    Args:
        session: Database session
        staff_id: The staff member's ID
        provider: Calendar provider

    Returns:
        True if a connected token was removed, False if none was found
    """
    token = await _find_token_row(session, staff_id, provider)
    if not token:
        return False

    token.connected = False
    token.token_json = None
    token.refresh_token = None
    token.soft_delete()
    await session.commit()
    logger.info(f"{provider} calendar disconnected for staff {staff_id}")
    return True


async def load_token_blob(
    session: AsyncSession,
    staff_id: str,
    provider: str,
) -> Optional[TypedToken]:
    """
    Load and validate the stored token for a sync call.

    Args:
        session: Database session
        staff_id: The staff member's ID
        provider: Calendar provider

    Returns:
        Typed token, or None if the calendar is not connected

    Raises:
        InvalidCalendarTokenError: If the stored blob is corrupt
    """
    row = await get_staff_token(session, staff_id, provider)
    if row is None:
        return None
    return parse_calendar_token(provider, row.token_json)
