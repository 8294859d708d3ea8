"""Reconciliation of a birthday's desired events against Google Calendar.

One pass: resolve credentials, skip if nothing relevant changed, plan the
desired events, diff them against the stored event map, run the resulting
creates / updates / deletes one at a time, then persist the new map and
sync metadata back onto the birthday.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Literal

from birthdays.calendars.hebrew import current_hebrew_year
from birthdays.models import (
    Birthday,
    ReconcileOutcome,
    SyncEvent,
    SyncMetadata,
    parse_event_key,
)
from .constants import PERMANENTLY_BROKEN_RETRY_COUNT, PRIMARY_CALENDAR_ID
from .keys import deterministic_event_id, sync_data_hash
from .planner import build_events, resolve_preference
from .ports import (
    BirthdayStore,
    CalendarApiError,
    CalendarAuthError,
    CalendarProvider,
    CalendarProviderFactory,
    CredentialStore,
    GroupStore,
    TenantStore,
    WishlistStore,
)

logger = logging.getLogger(__name__)

OperationKind = Literal["create", "update", "delete"]


@dataclass(frozen=True)
class SyncOperation:
    kind: OperationKind
    key: str
    event: SyncEvent | None = None
    event_id: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_future_key(key: str, today: date) -> bool:
    """Whether an identity key refers to this year or later in its own calendar."""
    parsed = parse_event_key(key)
    if parsed is None:
        return False
    system, year = parsed
    if system == "gregorian":
        return year >= today.year
    if system == "hebrew":
        return year >= current_hebrew_year(today)
    return False


def plan_operations(
    desired: dict[str, SyncEvent],
    event_map: dict[str, str],
    archived: bool,
    today: date,
) -> list[SyncOperation]:
    """Diff desired events against the stored event map.

    Creates come first, then updates, then deletes. Stale keys of a live
    birthday are only deleted when they are still in the future; past
    anniversaries stay in the calendar as history.
    """
    creates: list[SyncOperation] = []
    updates: list[SyncOperation] = []
    deletes: list[SyncOperation] = []

    for key, event in desired.items():
        existing_id = event_map.get(key)
        if existing_id:
            updates.append(SyncOperation("update", key, event=event, event_id=existing_id))
        else:
            creates.append(SyncOperation("create", key, event=event))

    for key, event_id in event_map.items():
        if key in desired:
            continue
        if archived or is_future_key(key, today):
            deletes.append(SyncOperation("delete", key, event_id=event_id))

    return creates + updates + deletes


def next_retry_count(previous: SyncMetadata, failed: bool) -> int:
    if not failed:
        return 0
    if previous.retry_count >= PERMANENTLY_BROKEN_RETRY_COUNT:
        return previous.retry_count
    return previous.retry_count + 1


class SyncReconciler:
    """Keeps one birthday's Google Calendar events in line with its data."""

    def __init__(
        self,
        credentials: CredentialStore,
        calendar_factory: CalendarProviderFactory,
        birthdays: BirthdayStore,
        tenants: TenantStore,
        groups: GroupStore,
        wishlists: WishlistStore,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.credentials = credentials
        self.calendar_factory = calendar_factory
        self.birthdays = birthdays
        self.tenants = tenants
        self.groups = groups
        self.wishlists = wishlists
        self.clock = clock

    async def reconcile(
        self,
        birthday_id: str,
        current: Birthday,
        tenant_id: str,
        force: bool = False,
        skip_persist: bool = False,
    ) -> ReconcileOutcome | None:
        """Run one reconciliation pass.

        Args:
            birthday_id: ID of the birthday being synced.
            current: The birthday's current data. Callers removing events
                pass a copy with ``archived=True``.
            tenant_id: Tenant that owns the birthday.
            force: Ignore the unchanged-data short-circuit.
            skip_persist: Don't write results back (the record is being deleted).

        Returns:
            Counts of what the pass did, or None if it was skipped or aborted.

        Raises:
            Whatever the birthday store raises while persisting the result.
        """
        tenant = await asyncio.to_thread(self.tenants.get_tenant, tenant_id)
        owner_id = tenant.owner_id if tenant else None
        if not owner_id:
            logger.warning(f"No owner for tenant, skipping sync: tenant_id={tenant_id}")
            return None

        try:
            access_token = await self.credentials.get_valid_token(owner_id)
        except CalendarAuthError as e:
            logger.info(
                f"No usable calendar token, skipping sync: birthday_id={birthday_id}, "
                f"owner_id={owner_id}, exception_type={type(e).__name__}, error={e}"
            )
            return None
        if not access_token:
            return None

        calendar_id = await asyncio.to_thread(self.credentials.get_target_calendar_id, owner_id)
        if not calendar_id or calendar_id == PRIMARY_CALENDAR_ID:
            logger.error(
                f"Refusing to sync into the primary calendar: birthday_id={birthday_id}, "
                f"owner_id={owner_id}"
            )
            return None

        birthday = current.model_copy(update={"id": birthday_id, "tenant_id": tenant_id})
        groups = (
            await asyncio.to_thread(self.groups.get_groups, birthday.group_ids)
            if birthday.group_ids
            else []
        )
        data_hash = sync_data_hash(birthday, resolve_preference(birthday, tenant, groups))
        metadata = birthday.sync_metadata or SyncMetadata()

        logger.debug(
            f"Reconciling: birthday_id={birthday_id}, calendar_id={calendar_id}, "
            f"force={force}, mapped_events={len(birthday.calendar_events_map)}, "
            f"current_hash={data_hash}, stored_hash={metadata.data_hash}"
        )
        if (
            not force
            and birthday.calendar_events_map
            and metadata.data_hash == data_hash
            and metadata.status == "SYNCED"
        ):
            logger.info(f"Birthday unchanged since last sync, skipping: birthday_id={birthday_id}")
            return None

        now = self.clock()
        desired: dict[str, SyncEvent] = {}
        if not birthday.archived:
            wishlist_items = await asyncio.to_thread(self.wishlists.get_wishlist_items, birthday_id)
            for event in build_events(birthday, tenant, groups, wishlist_items, now.date()):
                desired[event.key] = event

        event_map = dict(birthday.calendar_events_map)
        operations = plan_operations(desired, event_map, birthday.archived, now.date())
        outcome = ReconcileOutcome(birthday_id=birthday_id)

        calendar = self.calendar_factory(access_token)
        for operation in operations:
            try:
                await self._execute(calendar, calendar_id, birthday_id, operation, event_map, outcome)
            except Exception as e:
                logger.exception(
                    f"Calendar operation failed: birthday_id={birthday_id}, "
                    f"operation={operation.kind}, key={operation.key}, "
                    f"exception_type={type(e).__name__}, error={e}"
                )
                outcome.failed_keys.append(operation.key)

        logger.info(
            f"Reconciled birthday: birthday_id={birthday_id}, created={outcome.created}, "
            f"updated={outcome.updated}, deleted={outcome.deleted}, "
            f"failed={len(outcome.failed_keys)}"
        )

        if skip_persist:
            logger.info(f"Not persisting sync state for removed birthday: birthday_id={birthday_id}")
            return outcome

        failed = bool(outcome.failed_keys)
        retry_count = next_retry_count(metadata, failed)
        if not failed:
            status = "SYNCED"
        elif retry_count >= PERMANENTLY_BROKEN_RETRY_COUNT:
            status = "ERROR"
        else:
            status = "PARTIAL_SYNC"

        await asyncio.to_thread(
            self.birthdays.update_birthday_fields,
            birthday_id,
            {
                "calendar_events_map": event_map,
                "sync_metadata": SyncMetadata(
                    data_hash=data_hash,
                    status=status,
                    failed_keys=list(outcome.failed_keys),
                    retry_count=retry_count,
                    last_attempt_at=now,
                ),
                "last_synced_at": now,
            },
        )
        return outcome

    async def _execute(
        self,
        calendar: CalendarProvider,
        calendar_id: str,
        birthday_id: str,
        operation: SyncOperation,
        event_map: dict[str, str],
        outcome: ReconcileOutcome,
    ) -> None:
        key = operation.key

        if operation.kind == "create":
            if operation.event is None:
                raise ValueError(f"Create operation has no event: key={key}")
            stable_id = deterministic_event_id(birthday_id, key)
            try:
                event_map[key] = await calendar.create_event(calendar_id, operation.event, stable_id)
                outcome.created += 1
            except CalendarApiError as e:
                if e.code != "conflict":
                    raise
                # Created on an earlier run that never got recorded locally.
                logger.info(f"Event already exists, updating instead: key={key}, event_id={stable_id}")
                await calendar.update_event(calendar_id, stable_id, operation.event)
                event_map[key] = stable_id
                outcome.updated += 1

        elif operation.kind == "update":
            if operation.event is None or operation.event_id is None:
                raise ValueError(f"Incomplete update operation: key={key}")
            try:
                await calendar.update_event(calendar_id, operation.event_id, operation.event)
                outcome.updated += 1
            except CalendarApiError as e:
                if not e.is_missing:
                    raise
                logger.info(
                    f"Event deleted outside the app, recreating: key={key}, "
                    f"event_id={operation.event_id}"
                )
                stable_id = deterministic_event_id(birthday_id, key)
                event_map[key] = await calendar.create_event(calendar_id, operation.event, stable_id)
                outcome.created += 1

        else:
            if operation.event_id is None:
                raise ValueError(f"Delete operation has no event id: key={key}")
            try:
                await calendar.delete_event(calendar_id, operation.event_id)
            except CalendarApiError as e:
                if not e.is_missing:
                    raise
                logger.info(f"Event already gone: key={key}, event_id={operation.event_id}")
            event_map.pop(key, None)
            outcome.deleted += 1
