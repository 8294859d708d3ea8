"""Database operations for users' Google Calendar connections."""

import logging
from datetime import datetime
from typing import Optional

from birthdays.models import CalendarToken
from birthdays.models.sync import OwnerSyncStatus
from .connection import get_db_cursor

logger = logging.getLogger(__name__)


def get_token(user_id: str) -> Optional[CalendarToken]:
    with get_db_cursor() as cursor:
        cursor.execute(
            """
            SELECT user_id, access_token, refresh_token, expires_at, calendar_id,
                   calendar_name, sync_status, last_sync_start
            FROM calendar_tokens
            WHERE user_id = %s
            """,
            (user_id,),
        )
        row = cursor.fetchone()
        if row is None:
            return None

        return CalendarToken(
            user_id=row[0],
            access_token=row[1] or "",
            refresh_token=row[2],
            expires_at=row[3],
            calendar_id=row[4],
            calendar_name=row[5],
            sync_status=row[6] or "IDLE",
            last_sync_start=row[7],
        )


def upsert_token(token: CalendarToken) -> None:
    """Insert or update a user's calendar connection.

    The sync status is left alone on update; it belongs to running jobs.
    """
    with get_db_cursor() as cursor:
        cursor.execute(
            """
            INSERT INTO calendar_tokens
                (user_id, access_token, refresh_token, expires_at, calendar_id, calendar_name)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (user_id)
            DO UPDATE SET
                access_token = EXCLUDED.access_token,
                refresh_token = COALESCE(EXCLUDED.refresh_token, calendar_tokens.refresh_token),
                expires_at = EXCLUDED.expires_at,
                calendar_id = EXCLUDED.calendar_id,
                calendar_name = EXCLUDED.calendar_name,
                updated_at = CURRENT_TIMESTAMP
            """,
            (
                token.user_id,
                token.access_token,
                token.refresh_token,
                token.expires_at,
                token.calendar_id,
                token.calendar_name,
            ),
        )

    logger.info(f"Upserted calendar token for user_id={token.user_id}")


def update_access_token(
    user_id: str,
    access_token: str,
    expires_at: datetime | None = None,
    refresh_token: str | None = None,
) -> None:
    """Store a refreshed access token, and the rotated refresh token if Google sent one."""
    with get_db_cursor() as cursor:
        if refresh_token:
            cursor.execute(
                """
                UPDATE calendar_tokens
                SET access_token = %s,
                    refresh_token = %s,
                    expires_at = %s,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                """,
                (access_token, refresh_token, expires_at, user_id),
            )
        else:
            cursor.execute(
                """
                UPDATE calendar_tokens
                SET access_token = %s,
                    expires_at = %s,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                """,
                (access_token, expires_at, user_id),
            )

    logger.info(f"Updated access token for user_id={user_id}")


def clear_tokens(user_id: str) -> None:
    """Forget a user's tokens, keeping their calendar choice for when they reconnect."""
    with get_db_cursor() as cursor:
        cursor.execute(
            """
            UPDATE calendar_tokens
            SET access_token = '',
                refresh_token = NULL,
                expires_at = NULL,
                updated_at = CURRENT_TIMESTAMP
            WHERE user_id = %s
            """,
            (user_id,),
        )

    logger.info(f"Cleared calendar tokens for user_id={user_id}")


def set_sync_status(user_id: str, status: OwnerSyncStatus) -> None:
    """Record what the user's background sync is doing.

    Starting a job (``IN_PROGRESS`` / ``DELETING``) also stamps the start time.
    """
    with get_db_cursor() as cursor:
        if status in ("IN_PROGRESS", "DELETING"):
            cursor.execute(
                """
                UPDATE calendar_tokens
                SET sync_status = %s,
                    last_sync_start = CURRENT_TIMESTAMP,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                """,
                (status, user_id),
            )
        else:
            cursor.execute(
                """
                UPDATE calendar_tokens
                SET sync_status = %s,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s
                """,
                (status, user_id),
            )

    logger.debug(f"Set sync status for user_id={user_id}: {status}")
