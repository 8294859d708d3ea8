from .birthday import (
    Birthday,
    BirthdayWrite,
    CalendarPreference,
    FutureHebrewBirthday,
    SyncMetadata,
    SyncStatus,
)
from .tenant import Tenant, Group, WishlistItem, Language, WishlistPriority
from .sync import (
    APP_EVENT_TAG,
    CalendarSystem,
    CalendarToken,
    ReconcileOutcome,
    SyncChunkPayload,
    SyncEvent,
    SyncJob,
    SyncJobError,
    event_key,
    parse_event_key,
)


__all__ = [
    "Birthday",
    "BirthdayWrite",
    "CalendarPreference",
    "FutureHebrewBirthday",
    "SyncMetadata",
    "SyncStatus",
    "Tenant",
    "Group",
    "WishlistItem",
    "Language",
    "WishlistPriority",
    "APP_EVENT_TAG",
    "CalendarSystem",
    "CalendarToken",
    "ReconcileOutcome",
    "SyncChunkPayload",
    "SyncEvent",
    "SyncJob",
    "SyncJobError",
    "event_key",
    "parse_event_key",
]
