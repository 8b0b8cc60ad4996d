"""
Calendar adapter protocol and base types.

Defines the provider-neutral event representation, the result envelope
returned by the sync facade, and the interface every provider adapter
implements.
"""

from abc import abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Iterator, Literal, Optional, Protocol, TypeVar

from src.integrations.exceptions import CalendarSyncError
from src.integrations.tokens import CalendarToken

CalendarProvider = Literal["google", "outlook", "custom"]

SUPPORTED_PROVIDERS: tuple[str, ...] = ("google", "outlook")
RESERVED_PROVIDERS: tuple[str, ...] = ("custom",)


@dataclass
class CalendarEvent:
    """
    Normalized meeting representation passed to every adapter.

    Attendees are plain email addresses; the caller filters out anything
    else before the event reaches a provider.
    """

    title: str
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    location: Optional[str] = None
    attendees: list[str] = field(default_factory=list)


@dataclass
class CalendarEventUpdate:
    """
    Partial event for updates.

    A field left as None was not provided and keeps its remote value.
    """

    title: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None
    attendees: Optional[list[str]] = None

    def provided_fields(self) -> list[str]:
        """Names of the fields that carry a value."""
        return [name for name, value in self.__dict__.items() if value is not None]


@dataclass
class SyncResult:
    """Uniform envelope returned by every sync facade operation."""

    success: bool
    provider: str
    event_id: Optional[str] = None
    error: Optional[str] = None
    updated_token: Optional[CalendarToken] = None

    def to_dict(self) -> dict:
        """Serialize for API responses and logging."""
        return {
            "success": self.success,
            "provider": self.provider,
            "event_id": self.event_id,
            "error": self.error,
            "updated_token": (
                self.updated_token.to_storage_dict() if self.updated_token else None
            ),
        }


TokenT = TypeVar("TokenT")
ClientT = TypeVar("ClientT")


@dataclass
class AdapterResult(Generic[TokenT]):
    """What an adapter hands back to the facade after a write."""

    event_id: Optional[str] = None
    updated_token: Optional[TokenT] = None


@dataclass
class AuthenticatedClient(Generic[ClientT, TokenT]):
    """A ready-to-use provider client plus the token to persist, if it changed."""

    client: ClientT
    updated_token: Optional[TokenT] = None

    @contextmanager
    def carrying_token(self) -> Iterator[None]:
        """Attach updated_token to calendar errors raised inside the block."""
        try:
            yield
        except CalendarSyncError as e:
            if e.updated_token is None:
                e.updated_token = self.updated_token
            raise


class CalendarAdapter(Protocol):
    """
    Protocol for calendar providers.

    Implementations:
    - GoogleCalendarAdapter: Google Calendar API v3
    - OutlookCalendarAdapter: Microsoft Graph calendar API

    Adapters raise CalendarSyncError subclasses; they never build envelopes.
    """

    provider: str

    @abstractmethod
    def build_authorization_url(self, staff_id: str) -> str:
        """Consent URL carrying staff_id as OAuth state."""
        ...

    @abstractmethod
    async def exchange_code_for_token(self, code: str) -> CalendarToken:
        """Exchange an authorization code for a token blob."""
        ...

    @abstractmethod
    async def refresh_token(self, token: Any) -> Any:
        """Obtain a fresh access token for an expired token blob."""
        ...

    @abstractmethod
    async def get_authenticated_client(self, token: Any) -> AuthenticatedClient:
        """Client ready for API calls, refreshing the token first if expired."""
        ...

    @abstractmethod
    async def create_event(
        self,
        token: Any,
        event: CalendarEvent,
        idempotency_key: Optional[str] = None,
    ) -> AdapterResult:
        """Create exactly one remote event."""
        ...

    @abstractmethod
    async def update_event(
        self,
        token: Any,
        event_id: str,
        updates: CalendarEventUpdate,
    ) -> AdapterResult:
        """Apply provided fields to a remote event."""
        ...

    @abstractmethod
    async def delete_event(self, token: Any, event_id: str) -> AdapterResult:
        """Remove a remote event."""
        ...
