import logging
from datetime import date
from typing import Callable

from birthdays.models import Birthday
from .hebrew_data import apply_hebrew_fields, compute_hebrew_fields, should_recalculate
from .ports import BirthdayStore
from .reconciler import SyncReconciler

logger = logging.getLogger(__name__)


class BirthdayWriteHandler:
    """Reacts to a birthday being created, edited or deleted.

    Keeps the derived Hebrew fields current and pushes the change to Google
    Calendar when the birthday is synced. Failures are logged; the write
    itself has already happened and must not be undone by a sync problem.
    """

    def __init__(
        self,
        reconciler: SyncReconciler,
        birthdays: BirthdayStore,
        today: Callable[[], date] = date.today,
    ):
        self.reconciler = reconciler
        self.birthdays = birthdays
        self.today = today

    async def on_write(
        self, birthday_id: str, before: Birthday | None, after: Birthday | None
    ) -> Birthday | None:
        """Handle a write. Returns the birthday as it ends up stored, if it still exists."""
        if after is None:
            await self._on_delete(birthday_id, before)
            return None

        if should_recalculate(before, after):
            try:
                fields = compute_hebrew_fields(
                    after.birth_date_gregorian, after.after_sunset, self.today()
                )
                self.birthdays.update_birthday_fields(birthday_id, fields)
                after = apply_hebrew_fields(after, fields)
            except Exception as e:
                logger.exception(
                    f"Failed to compute Hebrew data: birthday_id={birthday_id}, "
                    f"exception_type={type(e).__name__}, error={e}"
                )

        if after.is_synced:
            await self._reconcile(birthday_id, after, "sync")
        elif before is not None and before.is_synced:
            # Sync was switched off; take the events down.
            await self._reconcile(
                birthday_id, after.model_copy(update={"archived": True}), "unsync"
            )
        return after

    async def _on_delete(self, birthday_id: str, before: Birthday | None) -> None:
        if before is None or not before.tenant_id:
            return
        logger.info(f"Birthday deleted, removing its events: birthday_id={birthday_id}")
        try:
            await self.reconciler.reconcile(
                birthday_id,
                before.model_copy(update={"archived": True}),
                before.tenant_id,
                force=True,
                skip_persist=True,
            )
        except Exception as e:
            logger.exception(
                f"Failed to remove events of deleted birthday: birthday_id={birthday_id}, "
                f"exception_type={type(e).__name__}, error={e}"
            )

    async def _reconcile(self, birthday_id: str, birthday: Birthday, reason: str) -> None:
        try:
            await self.reconciler.reconcile(birthday_id, birthday, birthday.tenant_id)
        except Exception as e:
            logger.exception(
                f"Sync after write failed: birthday_id={birthday_id}, reason={reason}, "
                f"exception_type={type(e).__name__}, error={e}"
            )
