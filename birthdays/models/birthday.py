from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

CalendarPreference = Literal["gregorian", "hebrew", "both"]
SyncStatus = Literal["SYNCED", "PARTIAL_SYNC", "ERROR"]


class FutureHebrewBirthday(BaseModel):
    """A precomputed Hebrew anniversary, expressed as a Gregorian date."""

    gregorian: date
    hebrew_year: int


class SyncMetadata(BaseModel):
    """Bookkeeping from the most recent reconciliation pass."""

    data_hash: str | None = None
    status: SyncStatus | None = None
    failed_keys: list[str] = Field(default_factory=list)
    retry_count: int = 0
    last_attempt_at: datetime | None = None


class Birthday(BaseModel):
    id: str
    tenant_id: str
    first_name: str
    last_name: str = ""
    birth_date_gregorian: date
    after_sunset: bool = False
    gender: str | None = None
    notes: str | None = None
    group_ids: list[str] = Field(default_factory=list)
    archived: bool = False
    # None means "inherit from the group or tenant".
    calendar_preference_override: CalendarPreference | None = None
    is_synced: bool = False

    # Derived by the Hebrew date computation, never edited by users.
    hebrew_year: int | None = None
    hebrew_month: str | None = None
    hebrew_day: int | None = None
    birth_date_hebrew_string: str | None = None
    next_upcoming_hebrew_birthday: date | None = None
    next_upcoming_hebrew_year: int | None = None
    future_hebrew_birthdays: list[FutureHebrewBirthday] = Field(default_factory=list)

    # Written only by the reconciler and the cleanup operations.
    calendar_events_map: dict[str, str] = Field(default_factory=dict)
    sync_metadata: SyncMetadata | None = None
    last_synced_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def has_hebrew_data(self) -> bool:
        return bool(self.birth_date_hebrew_string and self.future_hebrew_birthdays)


class BirthdayWrite(BaseModel):
    """User-editable fields of a birthday, as accepted by the API."""

    tenant_id: str
    first_name: str
    last_name: str = ""
    birth_date_gregorian: date
    after_sunset: bool = False
    gender: str | None = None
    notes: str | None = None
    group_ids: list[str] = Field(default_factory=list)
    archived: bool = False
    calendar_preference_override: CalendarPreference | None = None
    is_synced: bool = False
