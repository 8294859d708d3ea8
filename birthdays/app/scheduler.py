"""Background scheduling for calendar sync.

Wraps an APScheduler ``AsyncIOScheduler`` that runs the periodic
maintenance jobs and doubles as the task queue for delayed bulk-sync chunks.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from birthdays.models import SyncChunkPayload
from birthdays.sync.constants import RETRY_INTERVAL_MINUTES

logger = logging.getLogger(__name__)

ChunkHandler = Callable[[SyncChunkPayload], Awaitable[Any]]

RETRY_JOB_ID = "retry_failed_syncs"
ROLL_FORWARD_JOB_ID = "roll_forward_hebrew_birthdays"


class SyncScheduler:
    """Runs sync work in the background of the API process.

    Satisfies the sync engine's ``TaskQueue`` interface: ``enqueue`` schedules
    a chunk to run after a delay, through the handler set with
    ``set_chunk_handler``.
    """

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._chunk_handler: Optional[ChunkHandler] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def set_chunk_handler(self, handler: ChunkHandler) -> None:
        self._chunk_handler = handler

    def start(self) -> None:
        if self._running:
            logger.warning("Scheduler already running")
            return
        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started with {len(self.scheduler.get_jobs())} jobs")

    def stop(self) -> None:
        if not self._running:
            return
        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Scheduler stopped")

    def schedule_maintenance(
        self,
        retry_failed: Callable[[], Awaitable[Any]],
        roll_forward: Callable[[], Awaitable[Any]],
    ) -> None:
        """Register the hourly retry sweep and the daily Hebrew roll-forward."""
        self.scheduler.add_job(
            retry_failed,
            trigger=IntervalTrigger(minutes=RETRY_INTERVAL_MINUTES),
            id=RETRY_JOB_ID,
            name="Retry failed birthday syncs",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            roll_forward,
            trigger=IntervalTrigger(hours=24),
            id=ROLL_FORWARD_JOB_ID,
            name="Roll Hebrew birthdays forward",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def submit(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        delay_seconds: float = 0,
        name: str | None = None,
    ) -> str:
        """Run ``func(*args)`` once, ``delay_seconds`` from now. Returns the job ID."""
        run_at = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        job_id = f"{name or func.__name__}_{uuid.uuid4().hex}"
        self.scheduler.add_job(
            func,
            trigger=DateTrigger(run_date=run_at),
            args=list(args),
            id=job_id,
            name=name,
            # Late is fine; skipped is not.
            misfire_grace_time=None,
        )
        return job_id

    def enqueue(self, payload: SyncChunkPayload, delay_seconds: int) -> None:
        job_id = self.submit(
            self._run_chunk, payload, delay_seconds=delay_seconds, name="sync_chunk"
        )
        logger.debug(
            f"Queued sync chunk: job_id={payload.job_id}, task_id={job_id}, "
            f"items={len(payload.birthday_ids)}, delay={delay_seconds}s"
        )

    async def _run_chunk(self, payload: SyncChunkPayload) -> Any:
        if self._chunk_handler is None:
            logger.error(f"No chunk handler set, dropping sync chunk: job_id={payload.job_id}")
            return None
        try:
            return await self._chunk_handler(payload)
        except Exception as e:
            logger.exception(
                f"Sync chunk failed: job_id={payload.job_id}, "
                f"exception_type={type(e).__name__}, error={e}"
            )
            return None
