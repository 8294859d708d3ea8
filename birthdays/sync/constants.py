"""Tunables for calendar synchronization."""

# How many future years of events each birthday gets, per calendar system.
YEARS_AHEAD = 10

# Popup reminders on every generated event: one day and one hour before.
REMINDER_MINUTES = (1440, 60)

# Bulk sync fans out in small chunks, each scheduled a little later than the last.
BULK_CHUNK_SIZE = 5
BULK_CHUNK_DELAY_SECONDS = 10

# Hard ceiling on a single reconciliation pass run from a background job.
RECONCILE_TIMEOUT_SECONDS = 540

# Retry sweep: statuses it picks up, how many per run, and how hard it tries.
RETRYABLE_STATUSES = ("PARTIAL_SYNC", "ERROR")
RETRY_BATCH_LIMIT = 100
MAX_RETRY_ATTEMPTS = 3
RETRY_CONCURRENCY = 5
RETRY_INTERVAL_MINUTES = 60

# Retry counter value meaning "the owner's token is dead, stop retrying".
# Set by the credential layer when Google revokes a refresh token.
PERMANENTLY_BROKEN_RETRY_COUNT = 999

# Google refuses to let us write to the user's own calendar.
PRIMARY_CALENDAR_ID = "primary"

# Orphan cleanup paging and pacing between deletes.
CLEANUP_PAGE_SIZE = 250
CLEANUP_DELETE_PAUSE_SECONDS = 0.15
