"""Background jobs that keep synced birthdays healthy over time.

``RetrySweeper`` re-attempts birthdays whose last pass failed;
``HebrewRollForward`` moves the Hebrew anniversary window forward once a
birthday's next anniversary has passed.
"""

import asyncio
import logging
from datetime import date
from typing import Callable

from pydantic import BaseModel

from birthdays.models import Birthday
from .constants import (
    MAX_RETRY_ATTEMPTS,
    PERMANENTLY_BROKEN_RETRY_COUNT,
    RETRY_BATCH_LIMIT,
    RETRY_CONCURRENCY,
    RETRYABLE_STATUSES,
)
from .hebrew_data import apply_hebrew_fields, compute_hebrew_fields
from .ports import BirthdayStore
from .reconciler import SyncReconciler

logger = logging.getLogger(__name__)


class SweepResult(BaseModel):
    found: int = 0
    attempted: int = 0
    skipped: int = 0
    succeeded: int = 0
    failed: int = 0


class RollForwardResult(BaseModel):
    found: int = 0
    updated: int = 0
    resynced: int = 0
    failed: int = 0


def is_retry_exhausted(birthday: Birthday) -> bool:
    metadata = birthday.sync_metadata
    if metadata is None:
        return False
    return (
        metadata.retry_count >= MAX_RETRY_ATTEMPTS
        or metadata.retry_count == PERMANENTLY_BROKEN_RETRY_COUNT
    )


class RetrySweeper:
    """Retries birthdays left in a failed sync state, a few at a time."""

    def __init__(
        self,
        reconciler: SyncReconciler,
        birthdays: BirthdayStore,
        concurrency: int = RETRY_CONCURRENCY,
        batch_limit: int = RETRY_BATCH_LIMIT,
    ):
        self.reconciler = reconciler
        self.birthdays = birthdays
        self.concurrency = concurrency
        self.batch_limit = batch_limit
        self.is_running = False

    async def run_once(self) -> SweepResult:
        if self.is_running:
            logger.warning("Retry sweep already running, skipping this run")
            return SweepResult()

        self.is_running = True
        try:
            return await self._sweep()
        finally:
            self.is_running = False

    async def _sweep(self) -> SweepResult:
        candidates = await asyncio.to_thread(
            self.birthdays.get_birthdays_by_sync_status,
            list(RETRYABLE_STATUSES),
            self.batch_limit,
            MAX_RETRY_ATTEMPTS,
        )
        result = SweepResult(found=len(candidates))
        if not candidates:
            logger.info("Retry sweep found nothing to retry")
            return result

        retryable = []
        for birthday in candidates:
            if birthday.archived or is_retry_exhausted(birthday):
                result.skipped += 1
            else:
                retryable.append(birthday)

        semaphore = asyncio.Semaphore(self.concurrency)

        async def retry(birthday: Birthday) -> bool:
            async with semaphore:
                return await self._retry_one(birthday)

        outcomes = await asyncio.gather(*(retry(b) for b in retryable))
        result.attempted = len(retryable)
        result.succeeded = sum(1 for ok in outcomes if ok)
        result.failed = result.attempted - result.succeeded

        logger.info(
            f"Retry sweep completed: found={result.found}, attempted={result.attempted}, "
            f"skipped={result.skipped}, succeeded={result.succeeded}, failed={result.failed}"
        )
        return result

    async def _retry_one(self, birthday: Birthday) -> bool:
        try:
            outcome = await self.reconciler.reconcile(
                birthday.id, birthday, birthday.tenant_id, force=False
            )
        except Exception as e:
            logger.exception(
                f"Retry failed: birthday_id={birthday.id}, "
                f"exception_type={type(e).__name__}, error={e}"
            )
            return False
        return outcome is not None and not outcome.failed_keys


class HebrewRollForward:
    """Recomputes Hebrew fields for birthdays whose next anniversary has passed."""

    def __init__(
        self,
        reconciler: SyncReconciler,
        birthdays: BirthdayStore,
        today: Callable[[], date] = date.today,
    ):
        self.reconciler = reconciler
        self.birthdays = birthdays
        self.today = today

    async def run_once(self) -> RollForwardResult:
        today = self.today()
        stale = await asyncio.to_thread(self.birthdays.get_birthdays_with_stale_hebrew_data, today)
        result = RollForwardResult(found=len(stale))

        for birthday in stale:
            try:
                fields = compute_hebrew_fields(
                    birthday.birth_date_gregorian, birthday.after_sunset, today
                )
                await asyncio.to_thread(self.birthdays.update_birthday_fields, birthday.id, fields)
                result.updated += 1

                if birthday.is_synced:
                    await self.reconciler.reconcile(
                        birthday.id,
                        apply_hebrew_fields(birthday, fields),
                        birthday.tenant_id,
                        force=True,
                    )
                    result.resynced += 1
            except Exception as e:
                logger.exception(
                    f"Hebrew roll-forward failed: birthday_id={birthday.id}, "
                    f"exception_type={type(e).__name__}, error={e}"
                )
                result.failed += 1

        logger.info(
            f"Hebrew roll-forward completed: found={result.found}, updated={result.updated}, "
            f"resynced={result.resynced}, failed={result.failed}"
        )
        return result
