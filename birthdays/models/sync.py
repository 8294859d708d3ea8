"""Models for Google Calendar sync functionality."""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


CalendarSystem = Literal["gregorian", "hebrew"]
SyncJobStatus = Literal["pending", "completed"]
OwnerSyncStatus = Literal["IDLE", "IN_PROGRESS", "DELETING", "ERROR"]

APP_EVENT_TAG = "hebbirthday"


def event_key(calendar_system: CalendarSystem, year: int) -> str:
    """Identity key of an event within a birthday's event map, e.g. 'hebrew_5786'."""
    return f"{calendar_system}_{year}"


def parse_event_key(key: str) -> tuple[str, int] | None:
    """Split an identity key into (calendar system, year), or None if malformed."""
    system, _, year = key.partition("_")
    try:
        return system, int(year)
    except ValueError:
        return None


class SyncEvent(BaseModel):
    """A desired all-day calendar event derived from a birthday."""

    model_config = ConfigDict(frozen=True)

    summary: str
    description: str
    calendar_system: CalendarSystem
    year: int = Field(description="Anniversary year, in the event's own calendar")
    start: date
    end: date = Field(description="Exclusive end date (start + 1 day)")
    reminder_minutes: tuple[int, ...] = (1440, 60)
    private_properties: dict[str, str] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        return event_key(self.calendar_system, self.year)

    def to_resource(self) -> dict[str, Any]:
        """Render the event as a Google Calendar API resource body."""
        return {
            "summary": self.summary,
            "description": self.description,
            "start": {"date": self.start.isoformat()},
            "end": {"date": self.end.isoformat()},
            "extendedProperties": {"private": dict(self.private_properties)},
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": "popup", "minutes": minutes}
                    for minutes in self.reminder_minutes
                ],
            },
        }


class ReconcileOutcome(BaseModel):
    """Summary of one reconciliation pass."""

    birthday_id: str
    created: int = 0
    updated: int = 0
    deleted: int = 0
    failed_keys: list[str] = Field(default_factory=list)


class SyncJobError(BaseModel):
    item_id: str
    message: str
    timestamp: datetime


class SyncJob(BaseModel):
    """Progress record for a bulk sync request."""

    id: str
    user_id: str
    status: SyncJobStatus = "pending"
    total_items: int
    processed_items: int = 0
    errors: list[SyncJobError] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @property
    def is_finished(self) -> bool:
        return self.processed_items >= self.total_items


class CalendarToken(BaseModel):
    """Stored Google Calendar connection for a user."""

    user_id: str
    access_token: str = ""
    refresh_token: str | None = None
    expires_at: datetime | None = None
    calendar_id: str | None = None
    calendar_name: str | None = None
    sync_status: OwnerSyncStatus = "IDLE"
    last_sync_start: datetime | None = None

    def is_access_token_valid(self, margin: timedelta = timedelta(0)) -> bool:
        """Check whether the access token is still good for at least ``margin``."""
        if not self.access_token or self.expires_at is None:
            return False

        # Ensure expires_at is timezone-aware
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        return expires_at - margin > datetime.now(timezone.utc)


class SyncChunkPayload(BaseModel):
    """Payload of one background bulk-sync task."""

    birthday_ids: list[str]
    user_id: str
    job_id: str


class SyncRequest(BaseModel):
    """Request to sync one birthday to Google Calendar."""

    force: bool = Field(default=True, description="Skip the unchanged-data check")


class BulkSyncRequest(BaseModel):
    birthday_ids: list[str] = Field(description="IDs of the birthdays to sync")


class BulkSyncResponse(BaseModel):
    job_id: str
    status: str = "queued"
    total_attempted: int


class ChunkResult(BaseModel):
    successes: int
    failures: int


class SyncResponse(BaseModel):
    """Response from syncing or unsyncing a birthday."""

    success: bool = Field(description="Whether the operation succeeded")
    message: str = Field(description="Human-readable status message")
    outcome: Optional[ReconcileOutcome] = Field(
        default=None, description="Counts from the reconciliation pass, if one ran"
    )


class SyncStatusResponse(BaseModel):
    """Sync state of a single birthday."""

    birthday_id: str
    is_synced: bool
    status: Optional[str] = None
    failed_keys: list[str] = Field(default_factory=list)
    retry_count: int = 0
    event_count: int = 0
    last_synced_at: Optional[datetime] = None


class CleanupResponse(BaseModel):
    found_count: int
    deleted_count: int
    failed_count: int = 0
