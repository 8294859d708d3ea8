"""Interfaces the sync engine depends on.

The Postgres modules under ``birthdays.db`` satisfy the store protocols
directly (a module with matching functions is a valid implementation), and
the Google integration provides the credential store and calendar provider.
"""

from typing import Any, Callable, Literal, Mapping, Protocol, Sequence

from birthdays.models import (
    Birthday,
    Group,
    SyncChunkPayload,
    SyncEvent,
    SyncJob,
    Tenant,
    WishlistItem,
)
from birthdays.models.sync import OwnerSyncStatus

CalendarErrorCode = Literal["conflict", "not_found", "gone", "other"]


class CalendarApiError(Exception):
    """A calendar provider call failed.

    ``code`` is a coarse classification callers can branch on; the HTTP status
    is kept for logging.
    """

    def __init__(
        self, code: CalendarErrorCode, message: str, status_code: int | None = None
    ):
        super().__init__(message)
        self.code = code
        self.status_code = status_code

    @property
    def is_missing(self) -> bool:
        return self.code in ("not_found", "gone")


class CalendarAuthError(Exception):
    """The owner's calendar credentials can't be used right now."""


class CalendarNotConnectedError(CalendarAuthError):
    """The user never connected a calendar, or has no refresh token."""


class TokenRevokedError(CalendarAuthError):
    """Google rejected the refresh token; the user must reconnect."""


class TemporaryAuthError(CalendarAuthError):
    """Token refresh failed for a transient reason."""


class BirthdayNotFoundError(LookupError):
    """The requested birthday doesn't exist."""


class CredentialStore(Protocol):
    async def get_valid_token(self, user_id: str) -> str: ...

    def get_target_calendar_id(self, user_id: str) -> str: ...

    def set_sync_status(self, user_id: str, status: OwnerSyncStatus) -> None: ...


class CalendarProvider(Protocol):
    async def create_event(
        self, calendar_id: str, event: SyncEvent, event_id: str | None = None
    ) -> str: ...

    async def update_event(
        self, calendar_id: str, event_id: str, event: SyncEvent
    ) -> None: ...

    async def delete_event(self, calendar_id: str, event_id: str) -> None: ...

    async def list_events(
        self,
        calendar_id: str,
        private_extended_property: str | None = None,
        page_token: str | None = None,
        max_results: int = 250,
    ) -> tuple[list[dict[str, Any]], str | None]: ...


# Builds a provider bound to one user's access token.
CalendarProviderFactory = Callable[[str], CalendarProvider]


class BirthdayStore(Protocol):
    def get_birthday(self, birthday_id: str) -> Birthday | None: ...

    def update_birthday_fields(
        self, birthday_id: str, fields: Mapping[str, Any]
    ) -> None: ...

    def get_birthdays_by_sync_status(
        self, statuses: Sequence[str], limit: int, max_retry_count: int
    ) -> list[Birthday]: ...

    def get_birthdays_for_tenant(self, tenant_id: str) -> list[Birthday]: ...

    def get_birthdays_with_stale_hebrew_data(self, today: Any) -> list[Birthday]: ...

    def clear_sync_data_for_tenant(self, tenant_id: str) -> int: ...


class TenantStore(Protocol):
    def get_tenant(self, tenant_id: str) -> Tenant | None: ...


class GroupStore(Protocol):
    def get_groups(self, group_ids: Sequence[str]) -> list[Group]: ...


class WishlistStore(Protocol):
    def get_wishlist_items(self, birthday_id: str) -> list[WishlistItem]: ...


class JobStore(Protocol):
    def create_sync_job(self, user_id: str, total_items: int) -> SyncJob: ...

    def increment_sync_job(
        self, job_id: str, error: Mapping[str, str] | None = None
    ) -> SyncJob | None: ...

    def complete_sync_job(self, job_id: str) -> None: ...


class TaskQueue(Protocol):
    def enqueue(self, payload: SyncChunkPayload, delay_seconds: int) -> None: ...
