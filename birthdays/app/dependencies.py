import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from birthdays.db import birthdays as birthdays_db
from birthdays.db import calendar_tokens, sync_jobs, tenants, wishlist
from birthdays.integrations.google.auth import GoogleCredentialStore
from birthdays.integrations.google.calendar_client import GoogleCalendarClient
from birthdays.sync.bulk import BulkSyncCoordinator
from birthdays.sync.cleanup import SyncCleanup
from birthdays.sync.reconciler import SyncReconciler
from birthdays.sync.retry import HebrewRollForward, RetrySweeper
from birthdays.sync.triggers import BirthdayWriteHandler
from .scheduler import SyncScheduler

logger = logging.getLogger(__name__)


@dataclass
class SyncServices:
    """The wired-up sync engine used by the routers and background jobs."""

    credentials: GoogleCredentialStore
    reconciler: SyncReconciler
    bulk: BulkSyncCoordinator
    sweeper: RetrySweeper
    roll_forward: HebrewRollForward
    write_handler: BirthdayWriteHandler
    cleanup: SyncCleanup
    scheduler: SyncScheduler


@lru_cache
def get_sync_services() -> SyncServices:
    """Build the sync services once per process, backed by Postgres and Google."""
    credentials = GoogleCredentialStore(
        calendar_tokens,
        client_id=os.environ["GOOGLE_CLIENT_ID"],
        client_secret=os.environ["GOOGLE_CLIENT_SECRET"],
        on_revoked=birthdays_db.mark_failed_syncs_unrecoverable,
    )
    reconciler = SyncReconciler(
        credentials=credentials,
        calendar_factory=GoogleCalendarClient,
        birthdays=birthdays_db,
        tenants=tenants,
        groups=tenants,
        wishlists=wishlist,
    )
    scheduler = SyncScheduler()
    bulk = BulkSyncCoordinator(
        reconciler=reconciler,
        birthdays=birthdays_db,
        jobs=sync_jobs,
        credentials=credentials,
        queue=scheduler,
    )
    scheduler.set_chunk_handler(bulk.handle_payload)

    logger.info("Sync services initialized")
    return SyncServices(
        credentials=credentials,
        reconciler=reconciler,
        bulk=bulk,
        sweeper=RetrySweeper(reconciler, birthdays_db),
        roll_forward=HebrewRollForward(reconciler, birthdays_db),
        write_handler=BirthdayWriteHandler(reconciler, birthdays_db),
        cleanup=SyncCleanup(reconciler, credentials, GoogleCalendarClient, birthdays_db),
        scheduler=scheduler,
    )


def sync_services() -> SyncServices:
    return get_sync_services()


def current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """ID of the calling user, as set by the authenticating proxy in front of the API."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def write_handler(services: SyncServices = Depends(sync_services)) -> BirthdayWriteHandler:
    return services.write_handler
