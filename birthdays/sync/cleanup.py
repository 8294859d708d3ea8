"""Taking birthdays out of Google Calendar.

Covers unsyncing a single birthday, wiping local sync bookkeeping, and
sweeping every app-created event out of a user's calendar.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from birthdays.models import APP_EVENT_TAG, ReconcileOutcome
from birthdays.models.sync import CleanupResponse
from .constants import CLEANUP_DELETE_PAUSE_SECONDS, CLEANUP_PAGE_SIZE, PRIMARY_CALENDAR_ID
from .ports import (
    BirthdayNotFoundError,
    BirthdayStore,
    CalendarProviderFactory,
    CredentialStore,
)
from .reconciler import SyncReconciler

logger = logging.getLogger(__name__)

CLEARED_SYNC_FIELDS = {
    "calendar_events_map": {},
    "sync_metadata": None,
    "last_synced_at": None,
}


class SyncCleanup:
    def __init__(
        self,
        reconciler: SyncReconciler,
        credentials: CredentialStore,
        calendar_factory: CalendarProviderFactory,
        birthdays: BirthdayStore,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.reconciler = reconciler
        self.credentials = credentials
        self.calendar_factory = calendar_factory
        self.birthdays = birthdays
        self.sleep = sleep

    async def remove_sync(self, birthday_id: str) -> ReconcileOutcome | None:
        """Stop syncing a birthday and delete all of its calendar events.

        Raises:
            BirthdayNotFoundError: If the birthday doesn't exist.
        """
        birthday = self.birthdays.get_birthday(birthday_id)
        if birthday is None:
            raise BirthdayNotFoundError(birthday_id)

        # Unsync first so a concurrent write doesn't put the events back.
        self.birthdays.update_birthday_fields(birthday_id, {"is_synced": False})
        outcome = await self.reconciler.reconcile(
            birthday_id,
            birthday.model_copy(update={"is_synced": False, "archived": True}),
            birthday.tenant_id,
            force=True,
        )
        self.birthdays.update_birthday_fields(birthday_id, CLEARED_SYNC_FIELDS)
        logger.info(f"Removed sync: birthday_id={birthday_id}, outcome={outcome}")
        return outcome

    def reset_sync_data(self, birthday_id: str) -> None:
        """Forget everything known about a birthday's calendar events, without calling Google.

        Raises:
            BirthdayNotFoundError: If the birthday doesn't exist.
        """
        if self.birthdays.get_birthday(birthday_id) is None:
            raise BirthdayNotFoundError(birthday_id)
        self.birthdays.update_birthday_fields(birthday_id, CLEARED_SYNC_FIELDS)
        logger.info(f"Reset sync data: birthday_id={birthday_id}")

    async def cleanup_orphans(self, user_id: str, dry_run: bool = False) -> CleanupResponse:
        """Delete every event this app created in the user's sync calendar.

        Events are found by their private ``createdByApp`` tag, so this also
        catches events whose birthday no longer tracks them. With ``dry_run``
        nothing is deleted and ``deleted_count`` reports what would be.

        Raises:
            CalendarAuthError: If the user's credentials can't be used.
        """
        access_token = await self.credentials.get_valid_token(user_id)
        calendar_id = self.credentials.get_target_calendar_id(user_id)
        if not calendar_id or calendar_id == PRIMARY_CALENDAR_ID:
            logger.error(f"Refusing to clean up the primary calendar: user_id={user_id}")
            return CleanupResponse(found_count=0, deleted_count=0)

        calendar = self.calendar_factory(access_token)
        found = deleted = failed = 0
        page_token: str | None = None
        while True:
            items, page_token = await calendar.list_events(
                calendar_id,
                private_extended_property=f"createdByApp={APP_EVENT_TAG}",
                page_token=page_token,
                max_results=CLEANUP_PAGE_SIZE,
            )
            for item in items:
                event_id = item.get("id")
                if not event_id:
                    continue
                found += 1
                if dry_run:
                    continue
                try:
                    await calendar.delete_event(calendar_id, event_id)
                    deleted += 1
                    await self.sleep(CLEANUP_DELETE_PAUSE_SECONDS)
                except Exception as e:
                    failed += 1
                    logger.warning(
                        f"Failed to delete app event: user_id={user_id}, event_id={event_id}, "
                        f"exception_type={type(e).__name__}, error={e}"
                    )
            if not page_token:
                break

        logger.info(
            f"Cleaned up app events: user_id={user_id}, dry_run={dry_run}, "
            f"found={found}, deleted={deleted}, failed={failed}"
        )
        return CleanupResponse(
            found_count=found,
            deleted_count=found if dry_run else deleted,
            failed_count=failed,
        )

    async def cleanup_all(self, user_id: str, tenant_id: str) -> CleanupResponse:
        """Delete all app events and clear the sync state of every tenant birthday."""
        result = await self.cleanup_orphans(user_id, dry_run=False)
        cleared = self.birthdays.clear_sync_data_for_tenant(tenant_id)
        logger.info(f"Cleared sync data: tenant_id={tenant_id}, birthdays={cleared}")
        return result

    async def run_delete_all(self, user_id: str, tenant_id: str) -> CleanupResponse | None:
        """Background form of ``cleanup_all`` that reports through the owner's sync status."""
        try:
            result = await self.cleanup_all(user_id, tenant_id)
        except Exception as e:
            logger.exception(
                f"Delete-all job failed: user_id={user_id}, tenant_id={tenant_id}, "
                f"exception_type={type(e).__name__}, error={e}"
            )
            self.credentials.set_sync_status(user_id, "ERROR")
            return None
        self.credentials.set_sync_status(user_id, "IDLE")
        return result
