"""Database operations for bulk sync job tracking.

This module satisfies the sync engine's ``JobStore`` interface.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Mapping, Optional

from birthdays.models import SyncJob
from .connection import get_db_cursor

logger = logging.getLogger(__name__)

_JOB_COLUMNS = """
    id, user_id, status, total_items, processed_items, errors, created_at, updated_at
"""


def create_sync_job(user_id: str, total_items: int) -> SyncJob:
    job_id = str(uuid.uuid4())
    with get_db_cursor() as cursor:
        cursor.execute(
            f"""
            INSERT INTO calendar_sync_jobs (id, user_id, status, total_items)
            VALUES (%s, %s, 'pending', %s)
            RETURNING {_JOB_COLUMNS}
            """,
            (job_id, user_id, total_items),
        )
        job = _row_to_job(cursor.fetchone())

    logger.info(f"Created sync job id={job.id} for user_id={user_id}, total={total_items}")
    return job


def get_sync_job(job_id: str) -> Optional[SyncJob]:
    with get_db_cursor() as cursor:
        cursor.execute(
            f"SELECT {_JOB_COLUMNS} FROM calendar_sync_jobs WHERE id = %s",
            (job_id,),
        )
        row = cursor.fetchone()
        return _row_to_job(row) if row else None


def increment_sync_job(
    job_id: str, error: Mapping[str, str] | None = None
) -> Optional[SyncJob]:
    """Count one more processed item, appending ``error`` if it failed.

    The increment happens in a single UPDATE so concurrent chunks can't lose
    progress. Completed jobs are left untouched.

    Returns:
        The job after the update, or None if it doesn't exist or is completed.
    """
    new_errors = []
    if error:
        new_errors.append(
            {
                "item_id": error["item_id"],
                "message": error["message"],
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    with get_db_cursor() as cursor:
        cursor.execute(
            f"""
            UPDATE calendar_sync_jobs
            SET processed_items = processed_items + 1,
                errors = errors || %s::jsonb,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s AND status = 'pending'
            RETURNING {_JOB_COLUMNS}
            """,
            (json.dumps(new_errors), job_id),
        )
        row = cursor.fetchone()
        return _row_to_job(row) if row else None


def complete_sync_job(job_id: str) -> None:
    with get_db_cursor() as cursor:
        cursor.execute(
            """
            UPDATE calendar_sync_jobs
            SET status = 'completed',
                updated_at = CURRENT_TIMESTAMP
            WHERE id = %s
            """,
            (job_id,),
        )

    logger.info(f"Completed sync job id={job_id}")


def _row_to_job(row: tuple) -> SyncJob:
    """Convert a database row to a SyncJob model."""
    (
        id_,
        user_id,
        status,
        total_items,
        processed_items,
        errors_json,
        created_at,
        updated_at,
    ) = row
    errors = errors_json if isinstance(errors_json, list) else json.loads(errors_json or "[]")
    return SyncJob(
        id=id_,
        user_id=user_id,
        status=status,
        total_items=total_items,
        processed_items=processed_items,
        errors=errors,
        created_at=created_at,
        updated_at=updated_at,
    )
