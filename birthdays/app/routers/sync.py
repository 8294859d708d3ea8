"""Google Calendar sync routes for birthdays."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from birthdays.db.birthdays import get_birthday, update_birthday_fields
from birthdays.db.sync_jobs import get_sync_job
from birthdays.models import SyncChunkPayload, SyncJob
from birthdays.models.sync import (
    BulkSyncRequest,
    BulkSyncResponse,
    ChunkResult,
    CleanupResponse,
    SyncRequest,
    SyncResponse,
    SyncStatusResponse,
)
from birthdays.sync.ports import (
    BirthdayNotFoundError,
    CalendarAuthError,
    CalendarNotConnectedError,
    TokenRevokedError,
)
from birthdays.sync.retry import SweepResult
from ..dependencies import SyncServices, current_user_id, sync_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


def _auth_error_to_http(e: CalendarAuthError) -> HTTPException:
    if isinstance(e, CalendarNotConnectedError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Google Calendar is not connected")
    if isinstance(e, TokenRevokedError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google Calendar access was revoked; reconnect the calendar",
        )
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Google Calendar is temporarily unavailable",
    )


# Static routes must be registered before parameterized routes.


@router.post("/bulk", response_model=BulkSyncResponse, status_code=status.HTTP_202_ACCEPTED)
def start_bulk_sync(
    request: BulkSyncRequest,
    user_id: str = Depends(current_user_id),
    services: SyncServices = Depends(sync_services),
) -> BulkSyncResponse:
    """Queue many birthdays for syncing; progress is tracked on the returned job."""
    if not request.birthday_ids:
        raise HTTPException(status_code=400, detail="No birthdays to sync")
    job_id = services.bulk.start_bulk_sync(user_id, request.birthday_ids)
    return BulkSyncResponse(job_id=job_id, total_attempted=len(request.birthday_ids))


@router.post("/chunks", response_model=ChunkResult)
async def process_sync_chunk(
    payload: SyncChunkPayload,
    services: SyncServices = Depends(sync_services),
) -> ChunkResult:
    """Process one bulk-sync chunk right away (used by external task runners)."""
    return await services.bulk.process_chunk(
        payload.birthday_ids, payload.user_id, payload.job_id
    )


@router.get("/jobs/{job_id}", response_model=SyncJob)
def get_sync_job_status(job_id: str, user_id: str = Depends(current_user_id)) -> SyncJob:
    job = get_sync_job(job_id)
    if job is None or job.user_id != user_id:
        raise HTTPException(status_code=404, detail=f"Sync job {job_id} not found")
    return job


@router.post("/retry", response_model=SweepResult)
async def retry_failed_syncs(services: SyncServices = Depends(sync_services)) -> SweepResult:
    """Run the failed-sync retry sweep now instead of waiting for the schedule."""
    return await services.sweeper.run_once()


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_app_events(
    dry_run: bool = True,
    user_id: str = Depends(current_user_id),
    services: SyncServices = Depends(sync_services),
) -> CleanupResponse:
    """Find (and unless ``dry_run``, delete) every event this app created in the user's calendar."""
    try:
        return await services.cleanup.cleanup_orphans(user_id, dry_run=dry_run)
    except CalendarAuthError as e:
        raise _auth_error_to_http(e) from e


@router.post("/delete-all", response_model=SyncResponse, status_code=status.HTTP_202_ACCEPTED)
def delete_all_events(
    tenant_id: str,
    user_id: str = Depends(current_user_id),
    services: SyncServices = Depends(sync_services),
) -> SyncResponse:
    """Start a background job removing all app events and the tenant's sync state."""
    services.credentials.set_sync_status(user_id, "DELETING")
    try:
        services.scheduler.submit(
            services.cleanup.run_delete_all, user_id, tenant_id, name="delete_all_events"
        )
    except Exception as e:
        logger.exception(
            f"Failed to queue delete-all job: user_id={user_id}, "
            f"exception_type={type(e).__name__}, error={e}"
        )
        services.credentials.set_sync_status(user_id, "IDLE")
        raise HTTPException(status_code=500, detail="Failed to queue deletion job") from e
    return SyncResponse(success=True, message="Deletion job started")


@router.get("/birthdays/{birthday_id}/status", response_model=SyncStatusResponse)
def get_birthday_sync_status(birthday_id: str) -> SyncStatusResponse:
    """Get the Google Calendar sync state of a birthday."""
    birthday = get_birthday(birthday_id)
    if birthday is None:
        raise HTTPException(status_code=404, detail=f"Birthday {birthday_id} not found")

    metadata = birthday.sync_metadata
    return SyncStatusResponse(
        birthday_id=birthday_id,
        is_synced=birthday.is_synced,
        status=metadata.status if metadata else None,
        failed_keys=metadata.failed_keys if metadata else [],
        retry_count=metadata.retry_count if metadata else 0,
        event_count=len(birthday.calendar_events_map),
        last_synced_at=birthday.last_synced_at,
    )


@router.post("/birthdays/{birthday_id}", response_model=SyncResponse)
async def sync_birthday(
    birthday_id: str,
    request: SyncRequest | None = None,
    services: SyncServices = Depends(sync_services),
) -> SyncResponse:
    """Turn on sync for a birthday and reconcile its events now."""
    birthday = get_birthday(birthday_id)
    if birthday is None:
        raise HTTPException(status_code=404, detail=f"Birthday {birthday_id} not found")

    force = request.force if request else True
    if not birthday.is_synced:
        update_birthday_fields(birthday_id, {"is_synced": True})
        birthday = birthday.model_copy(update={"is_synced": True})

    outcome = await services.reconciler.reconcile(
        birthday_id, birthday, birthday.tenant_id, force=force
    )
    if outcome is None:
        return SyncResponse(
            success=not force,
            message="Nothing to sync" if not force else "Sync skipped; check the calendar connection",
        )
    if outcome.failed_keys:
        return SyncResponse(
            success=False,
            message=f"Synced with {len(outcome.failed_keys)} failed events; they will be retried",
            outcome=outcome,
        )
    return SyncResponse(success=True, message="Birthday synced to Google Calendar", outcome=outcome)


@router.delete("/birthdays/{birthday_id}", response_model=SyncResponse)
async def unsync_birthday(
    birthday_id: str, services: SyncServices = Depends(sync_services)
) -> SyncResponse:
    """Stop syncing a birthday and remove its events from Google Calendar."""
    try:
        outcome = await services.cleanup.remove_sync(birthday_id)
    except BirthdayNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Birthday {birthday_id} not found") from e
    return SyncResponse(
        success=outcome is None or not outcome.failed_keys,
        message="Birthday removed from Google Calendar",
        outcome=outcome,
    )


@router.post("/birthdays/{birthday_id}/reset", response_model=SyncResponse)
def reset_birthday_sync(
    birthday_id: str, services: SyncServices = Depends(sync_services)
) -> SyncResponse:
    """Forget a birthday's known calendar events without touching Google."""
    try:
        services.cleanup.reset_sync_data(birthday_id)
    except BirthdayNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Birthday {birthday_id} not found") from e
    return SyncResponse(success=True, message="Sync data reset")
