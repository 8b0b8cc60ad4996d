"""
Typed calendar token blobs.

Each provider stores a differently shaped credential bundle. Tokens are a
pydantic discriminated union keyed by ``provider`` and are validated at the
sync facade boundary before dispatch.

Stored blobs written by older clients used camelCase keys and ``expiry_date``
/ ``expiresOn`` for the expiry; those spellings are accepted on input. Output
always uses the field names below.
"""

import json
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from dateutil.parser import isoparse
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from src.integrations.exceptions import InvalidCalendarTokenError

DEFAULT_TOKEN_LIFETIME_MS = 3600 * 1000


def now_epoch_millis() -> int:
    """Current time in epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


class _CalendarTokenBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    access_token: str = Field(
        validation_alias=AliasChoices("access_token", "accessToken"),
    )
    refresh_token: str = Field(
        default="",
        validation_alias=AliasChoices("refresh_token", "refreshToken"),
    )
    expiry_epoch_millis: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices(
            "expiry_epoch_millis", "expiryEpochMillis", "expiry_date", "expiresOn"
        ),
    )
    scope: str = ""

    @field_validator("expiry_epoch_millis", mode="before")
    @classmethod
    def _coerce_expiry(cls, value: Any) -> Any:
        """Accept epoch millis, datetimes, and ISO-8601 strings."""
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return int(value.timestamp() * 1000)
        if isinstance(value, str) and not value.strip().lstrip("-").isdigit():
            parsed = isoparse(value)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return int(parsed.timestamp() * 1000)
        return value

    def is_expired(self, now_ms: Optional[int] = None) -> bool:
        """True once the remote expiry has passed. Unknown expiry never expires."""
        if self.expiry_epoch_millis is None:
            return False
        current = now_ms if now_ms is not None else now_epoch_millis()
        return current >= self.expiry_epoch_millis

    @property
    def expiry(self) -> Optional[datetime]:
        """Expiry as an aware UTC datetime."""
        if self.expiry_epoch_millis is None:
            return None
        return datetime.fromtimestamp(self.expiry_epoch_millis / 1000, tz=timezone.utc)

    def to_storage_dict(self) -> dict:
        """Plain dict for persistence."""
        return self.model_dump(mode="json")

    def to_storage_json(self) -> str:
        """JSON string for persistence."""
        return json.dumps(self.to_storage_dict())


class GoogleCalendarToken(_CalendarTokenBase):
    """Google OAuth token bundle."""

    provider: Literal["google"] = "google"
    token_type: str = Field(
        default="Bearer",
        validation_alias=AliasChoices("token_type", "tokenType"),
    )


class OutlookCalendarToken(_CalendarTokenBase):
    """Microsoft identity platform token bundle."""

    provider: Literal["outlook"] = "outlook"


CalendarToken = Annotated[
    Union[GoogleCalendarToken, OutlookCalendarToken],
    Field(discriminator="provider"),
]

_token_adapter: TypeAdapter = TypeAdapter(CalendarToken)


def parse_calendar_token(provider: str, blob: Any) -> Union[GoogleCalendarToken, OutlookCalendarToken]:
    """
    Validate a stored token blob for the given provider.

    Args:
        provider: Provider the caller intends to use
        blob: Token model, dict, or JSON string as persisted

    Returns:
        Typed token for that provider

    Raises:
        InvalidCalendarTokenError: If the blob is missing, malformed, or
            belongs to a different provider
    """
    if isinstance(blob, (GoogleCalendarToken, OutlookCalendarToken)):
        if blob.provider != provider:
            raise InvalidCalendarTokenError(
                f"Token belongs to {blob.provider}, not {provider}",
                provider=provider,
            )
        return blob

    if blob is None or blob == "":
        raise InvalidCalendarTokenError(
            f"No {provider} calendar token available. Please connect your calendar.",
            provider=provider,
        )

    if isinstance(blob, (str, bytes)):
        try:
            blob = json.loads(blob)
        except json.JSONDecodeError as e:
            raise InvalidCalendarTokenError(
                f"Invalid {provider} calendar token: {e}",
                provider=provider,
                original_error=e,
            )

    if not isinstance(blob, dict):
        raise InvalidCalendarTokenError(
            f"Invalid {provider} calendar token: expected an object",
            provider=provider,
        )

    data = dict(blob)
    stored_provider = data.setdefault("provider", provider)
    if stored_provider != provider:
        raise InvalidCalendarTokenError(
            f"Token belongs to {stored_provider}, not {provider}",
            provider=provider,
        )

    try:
        return _token_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidCalendarTokenError(
            f"Invalid {provider} calendar token: {e.error_count()} validation error(s)",
            provider=provider,
            original_error=e,
        )
