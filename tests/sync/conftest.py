"""In-memory stand-ins for the stores and Google Calendar used by the sync engine."""

from datetime import date, datetime, timezone
from typing import Any, Mapping, Sequence

import pytest

from birthdays.models import Birthday, Group, SyncEvent, SyncJob, Tenant, WishlistItem
from birthdays.sync.hebrew_data import apply_hebrew_fields, compute_hebrew_fields
from birthdays.sync.ports import CalendarApiError
from birthdays.sync.reconciler import SyncReconciler

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
SYNC_CALENDAR_ID = "birthdays_calendar@group.calendar.google.com"


class FakeCalendar:
    """Google Calendar double keyed by event id.

    ``failures`` maps ``(operation, event key)`` to the exception that
    operation should raise for events with that key.
    """

    def __init__(self):
        self.events: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.access_tokens: list[str] = []
        self._listing: list[str] = []
        self._next_id = 0

    def factory(self, access_token: str) -> "FakeCalendar":
        self.access_tokens.append(access_token)
        return self

    def _check(self, operation: str, key: str) -> None:
        error = self.failures.get((operation, key))
        if error is not None:
            raise error

    async def create_event(
        self, calendar_id: str, event: SyncEvent, event_id: str | None = None
    ) -> str:
        self.calls.append(("create", event.key))
        self._check("create", event.key)
        if event_id is None:
            self._next_id += 1
            event_id = f"generated_{self._next_id}"
        if event_id in self.events:
            raise CalendarApiError("conflict", "The requested identifier already exists.", 409)
        self.events[event_id] = {"calendar_id": calendar_id, "event": event}
        return event_id

    async def update_event(self, calendar_id: str, event_id: str, event: SyncEvent) -> None:
        self.calls.append(("update", event.key))
        self._check("update", event.key)
        if event_id not in self.events:
            raise CalendarApiError("not_found", "Not Found", 404)
        self.events[event_id] = {"calendar_id": calendar_id, "event": event}

    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        self.calls.append(("delete", event_id))
        self._check("delete", event_id)
        if event_id not in self.events:
            raise CalendarApiError("gone", "Resource has been deleted", 410)
        del self.events[event_id]

    async def list_events(
        self,
        calendar_id: str,
        private_extended_property: str | None = None,
        page_token: str | None = None,
        max_results: int = 250,
    ) -> tuple[list[dict[str, Any]], str | None]:
        self.calls.append(("list", page_token or ""))
        # Page tokens point into the listing taken by the first page request.
        if page_token is None:
            self._listing = sorted(self.events)
        ids = self._listing
        start = int(page_token) if page_token else 0
        page = [{"id": event_id} for event_id in ids[start : start + max_results]]
        next_start = start + max_results
        return page, (str(next_start) if next_start < len(ids) else None)


class FakeCredentials:
    def __init__(self, calendar_id: str = SYNC_CALENDAR_ID):
        self.calendar_id = calendar_id
        self.error: Exception | None = None
        self.statuses: list[tuple[str, str]] = []

    async def get_valid_token(self, user_id: str) -> str:
        if self.error is not None:
            raise self.error
        return f"token_for_{user_id}"

    def get_target_calendar_id(self, user_id: str) -> str:
        return self.calendar_id

    def set_sync_status(self, user_id: str, status: str) -> None:
        self.statuses.append((user_id, status))


class FakeBirthdayStore:
    def __init__(self):
        self.birthdays: dict[str, Birthday] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.cleared_tenants: list[str] = []

    def add(self, birthday: Birthday) -> Birthday:
        self.birthdays[birthday.id] = birthday
        return birthday

    def get_birthday(self, birthday_id: str) -> Birthday | None:
        return self.birthdays.get(birthday_id)

    def update_birthday_fields(self, birthday_id: str, fields: Mapping[str, Any]) -> None:
        self.updates.append((birthday_id, dict(fields)))
        existing = self.birthdays.get(birthday_id)
        if existing is not None:
            self.birthdays[birthday_id] = apply_hebrew_fields(existing, dict(fields))

    def get_birthdays_by_sync_status(
        self, statuses: Sequence[str], limit: int, max_retry_count: int
    ) -> list[Birthday]:
        matches = [
            b
            for b in self.birthdays.values()
            if not b.archived
            and b.sync_metadata
            and b.sync_metadata.status in statuses
            and b.sync_metadata.retry_count < max_retry_count
        ]
        return matches[:limit]

    def get_birthdays_for_tenant(self, tenant_id: str) -> list[Birthday]:
        return [b for b in self.birthdays.values() if b.tenant_id == tenant_id]

    def get_birthdays_with_stale_hebrew_data(self, today: date) -> list[Birthday]:
        return [
            b
            for b in self.birthdays.values()
            if not b.archived
            and b.next_upcoming_hebrew_birthday is not None
            and b.next_upcoming_hebrew_birthday < today
        ]

    def clear_sync_data_for_tenant(self, tenant_id: str) -> int:
        self.cleared_tenants.append(tenant_id)
        return len(self.get_birthdays_for_tenant(tenant_id))


class FakeDirectory:
    """Tenant, group and wishlist lookups in one object."""

    def __init__(self):
        self.tenants: dict[str, Tenant] = {}
        self.groups: dict[str, Group] = {}
        self.wishlist: dict[str, list[WishlistItem]] = {}

    def get_tenant(self, tenant_id: str) -> Tenant | None:
        return self.tenants.get(tenant_id)

    def get_groups(self, group_ids: Sequence[str]) -> list[Group]:
        return [self.groups[gid] for gid in group_ids if gid in self.groups]

    def get_wishlist_items(self, birthday_id: str) -> list[WishlistItem]:
        return self.wishlist.get(birthday_id, [])


class FakeJobStore:
    def __init__(self):
        self.jobs: dict[str, SyncJob] = {}
        self.completed: list[str] = []

    def create_sync_job(self, user_id: str, total_items: int) -> SyncJob:
        job = SyncJob(
            id=f"job_{len(self.jobs) + 1}",
            user_id=user_id,
            total_items=total_items,
            created_at=NOW,
            updated_at=NOW,
        )
        self.jobs[job.id] = job
        return job

    def increment_sync_job(
        self, job_id: str, error: Mapping[str, str] | None = None
    ) -> SyncJob | None:
        job = self.jobs.get(job_id)
        if job is None or job.status == "completed":
            return None
        errors = list(job.errors)
        if error:
            errors.append({**error, "timestamp": NOW})
        job = SyncJob.model_validate(
            {
                **job.model_dump(),
                "processed_items": job.processed_items + 1,
                "errors": [e if isinstance(e, dict) else e.model_dump() for e in errors],
            }
        )
        self.jobs[job_id] = job
        return job

    def complete_sync_job(self, job_id: str) -> None:
        self.completed.append(job_id)
        self.jobs[job_id] = self.jobs[job_id].model_copy(update={"status": "completed"})


class FakeQueue:
    def __init__(self):
        self.enqueued: list[tuple[Any, int]] = []

    def enqueue(self, payload: Any, delay_seconds: int) -> None:
        self.enqueued.append((payload, delay_seconds))


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def credentials() -> FakeCredentials:
    return FakeCredentials()


@pytest.fixture
def birthday_store() -> FakeBirthdayStore:
    return FakeBirthdayStore()


@pytest.fixture
def directory(tenant_factory) -> FakeDirectory:
    directory = FakeDirectory()
    directory.tenants["tenant_1"] = tenant_factory.make({"default_language": "en"})
    return directory


@pytest.fixture
def reconciler(credentials, calendar, birthday_store, directory) -> SyncReconciler:
    return SyncReconciler(
        credentials=credentials,
        calendar_factory=calendar.factory,
        birthdays=birthday_store,
        tenants=directory,
        groups=directory,
        wishlists=directory,
        clock=lambda: NOW,
    )


@pytest.fixture
def synced_birthday(birthday_factory) -> Birthday:
    """A synced birthday carrying Hebrew data computed as of ``NOW``."""
    fields = compute_hebrew_fields(date(1990, 5, 15), False, today=NOW.date())
    return apply_hebrew_fields(birthday_factory.make({"is_synced": True}), fields)
