import asyncio
import logging
from typing import Sequence

from birthdays.models import SyncChunkPayload
from birthdays.models.sync import ChunkResult
from .constants import BULK_CHUNK_DELAY_SECONDS, BULK_CHUNK_SIZE, RECONCILE_TIMEOUT_SECONDS
from .ports import BirthdayStore, CredentialStore, JobStore, TaskQueue
from .reconciler import SyncReconciler

logger = logging.getLogger(__name__)


def chunked(items: Sequence[str], size: int) -> list[list[str]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BulkSyncCoordinator:
    """Fans a large sync request out into small delayed background tasks."""

    def __init__(
        self,
        reconciler: SyncReconciler,
        birthdays: BirthdayStore,
        jobs: JobStore,
        credentials: CredentialStore,
        queue: TaskQueue,
        timeout_seconds: float = RECONCILE_TIMEOUT_SECONDS,
    ):
        self.reconciler = reconciler
        self.birthdays = birthdays
        self.jobs = jobs
        self.credentials = credentials
        self.queue = queue
        self.timeout_seconds = timeout_seconds

    def start_bulk_sync(self, user_id: str, birthday_ids: Sequence[str]) -> str:
        """Create a job and queue its chunks, spreading them out in time.

        Returns the job ID, which clients poll for progress.
        """
        job = self.jobs.create_sync_job(user_id, len(birthday_ids))
        self.credentials.set_sync_status(user_id, "IN_PROGRESS")

        delay_seconds = 0
        for chunk in chunked(birthday_ids, BULK_CHUNK_SIZE):
            self.queue.enqueue(
                SyncChunkPayload(birthday_ids=chunk, user_id=user_id, job_id=job.id),
                delay_seconds,
            )
            delay_seconds += BULK_CHUNK_DELAY_SECONDS

        logger.info(
            f"Queued bulk sync: job_id={job.id}, user_id={user_id}, "
            f"total={len(birthday_ids)}, last_delay={max(delay_seconds - BULK_CHUNK_DELAY_SECONDS, 0)}s"
        )
        return job.id

    async def process_chunk(
        self, birthday_ids: Sequence[str], user_id: str, job_id: str | None = None
    ) -> ChunkResult:
        """Sync one chunk of birthdays and record progress on the job."""
        successes = 0
        failures = 0

        for birthday_id in birthday_ids:
            error: str | None = None
            try:
                await self._sync_one(birthday_id)
            except TimeoutError:
                error = f"Sync timed out after {self.timeout_seconds}s"
            except Exception as e:
                logger.exception(
                    f"Bulk sync item failed: job_id={job_id}, birthday_id={birthday_id}, "
                    f"exception_type={type(e).__name__}, error={e}"
                )
                error = str(e) or type(e).__name__

            if error is None:
                successes += 1
            else:
                failures += 1
                logger.warning(
                    f"Bulk sync item failed: job_id={job_id}, birthday_id={birthday_id}, "
                    f"error={error}"
                )
            if job_id:
                await asyncio.to_thread(self._record_progress, job_id, user_id, birthday_id, error)

        logger.info(
            f"Processed sync chunk: job_id={job_id}, successes={successes}, failures={failures}"
        )
        return ChunkResult(successes=successes, failures=failures)

    async def handle_payload(self, payload: SyncChunkPayload) -> ChunkResult:
        return await self.process_chunk(payload.birthday_ids, payload.user_id, payload.job_id)

    async def _sync_one(self, birthday_id: str) -> None:
        birthday = await asyncio.to_thread(self.birthdays.get_birthday, birthday_id)
        if birthday is None or not birthday.tenant_id:
            logger.info(f"Birthday no longer exists, skipping: birthday_id={birthday_id}")
            return

        await asyncio.to_thread(
            self.birthdays.update_birthday_fields, birthday_id, {"is_synced": True}
        )
        birthday = birthday.model_copy(update={"is_synced": True})
        async with asyncio.timeout(self.timeout_seconds):
            await self.reconciler.reconcile(birthday_id, birthday, birthday.tenant_id, force=False)

    def _record_progress(
        self, job_id: str, user_id: str, birthday_id: str, error: str | None
    ) -> None:
        job = self.jobs.increment_sync_job(
            job_id, {"item_id": birthday_id, "message": error} if error else None
        )
        if job is None:
            logger.warning(f"Sync job disappeared: job_id={job_id}")
            return
        if job.is_finished and job.status != "completed":
            self.jobs.complete_sync_job(job_id)
            self.credentials.set_sync_status(user_id, "IDLE")
            logger.info(
                f"Bulk sync finished: job_id={job_id}, user_id={user_id}, "
                f"errors={len(job.errors)}"
            )
