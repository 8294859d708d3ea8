"""Database operations for birthdays.

This module satisfies the sync engine's ``BirthdayStore`` interface.
"""

import json
import logging
import uuid
from datetime import date, datetime
from typing import Any, Mapping, Sequence

from psycopg import sql
from pydantic import BaseModel

from .connection import get_db_cursor
from birthdays.models import Birthday, BirthdayWrite, SyncMetadata
from birthdays.sync.constants import PERMANENTLY_BROKEN_RETRY_COUNT

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id",
    "tenant_id",
    "first_name",
    "last_name",
    "birth_date_gregorian",
    "after_sunset",
    "gender",
    "notes",
    "group_ids",
    "archived",
    "calendar_preference_override",
    "is_synced",
    "hebrew_year",
    "hebrew_month",
    "hebrew_day",
    "birth_date_hebrew_string",
    "next_upcoming_hebrew_birthday",
    "next_upcoming_hebrew_year",
    "future_hebrew_birthdays",
    "calendar_events_map",
    "sync_metadata",
    "last_synced_at",
)
_JSON_COLUMNS = {"group_ids", "future_hebrew_birthdays", "calendar_events_map", "sync_metadata"}
_UPDATABLE_COLUMNS = set(_COLUMNS) - {"id", "tenant_id"}

_SELECT_BIRTHDAYS = sql.SQL("SELECT {columns} FROM birthdays").format(
    columns=sql.SQL(", ").join(sql.Identifier(c) for c in _COLUMNS)
)


def get_birthday(birthday_id: str) -> Birthday | None:
    with get_db_cursor() as cursor:
        cursor.execute(_SELECT_BIRTHDAYS + sql.SQL(" WHERE id = %s"), (birthday_id,))
        row = cursor.fetchone()
        return _row_to_birthday(row) if row else None


def get_birthdays_for_tenant(tenant_id: str) -> list[Birthday]:
    with get_db_cursor() as cursor:
        cursor.execute(
            _SELECT_BIRTHDAYS
            + sql.SQL(" WHERE tenant_id = %s ORDER BY last_name, first_name"),
            (tenant_id,),
        )
        return [_row_to_birthday(row) for row in cursor.fetchall()]


def get_birthdays_by_sync_status(
    statuses: Sequence[str], limit: int, max_retry_count: int
) -> list[Birthday]:
    """Get non-archived birthdays whose last sync ended in one of ``statuses``.

    Only birthdays retried fewer than ``max_retry_count`` times are returned,
    so exhausted ones never take up the batch. Oldest attempts come first so a
    large backlog is worked through evenly.
    """
    with get_db_cursor() as cursor:
        cursor.execute(
            _SELECT_BIRTHDAYS
            + sql.SQL("""
                WHERE archived = FALSE
                  AND sync_metadata->>'status' = ANY(%s)
                  AND COALESCE((sync_metadata->>'retry_count')::int, 0) < %s
                ORDER BY sync_metadata->>'last_attempt_at' NULLS FIRST
                LIMIT %s
            """),
            (list(statuses), max_retry_count, limit),
        )
        return [_row_to_birthday(row) for row in cursor.fetchall()]


def get_birthdays_with_stale_hebrew_data(today: date) -> list[Birthday]:
    """Get non-archived birthdays whose next Hebrew anniversary is already in the past."""
    with get_db_cursor() as cursor:
        cursor.execute(
            _SELECT_BIRTHDAYS
            + sql.SQL("""
                WHERE archived = FALSE
                  AND next_upcoming_hebrew_birthday < %s
            """),
            (today,),
        )
        return [_row_to_birthday(row) for row in cursor.fetchall()]


def create_birthday(data: BirthdayWrite, birthday_id: str | None = None) -> Birthday:
    """Insert a new birthday and return it as stored."""
    birthday_id = birthday_id or str(uuid.uuid4())
    values = data.model_dump()
    columns = ["id", *values.keys()]
    with get_db_cursor() as cursor:
        cursor.execute(
            sql.SQL("INSERT INTO birthdays ({columns}) VALUES ({placeholders})").format(
                columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
                placeholders=sql.SQL(", ").join(sql.Placeholder() * len(columns)),
            ),
            [birthday_id, *(_to_db_value(c, v) for c, v in values.items())],
        )
    logger.info(f"Created birthday: birthday_id={birthday_id}, tenant_id={data.tenant_id}")
    return Birthday(id=birthday_id, **values)


def update_birthday(birthday_id: str, data: BirthdayWrite) -> bool:
    """Overwrite the user-editable fields of a birthday.

    Returns:
        True if the birthday existed.
    """
    values = data.model_dump(exclude={"tenant_id"})
    return _update_columns(birthday_id, values) > 0


def update_birthday_fields(birthday_id: str, fields: Mapping[str, Any]) -> None:
    """Write a subset of a birthday's columns.

    Accepts model instances, dates and plain containers for the JSON columns.
    """
    unknown = set(fields) - _UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"Unknown birthday fields: {sorted(unknown)}")
    if not fields:
        return
    updated = _update_columns(birthday_id, fields)
    if updated == 0:
        logger.warning(f"Tried to update a missing birthday: birthday_id={birthday_id}")


def delete_birthday(birthday_id: str) -> bool:
    with get_db_cursor() as cursor:
        cursor.execute("DELETE FROM birthdays WHERE id = %s", (birthday_id,))
        deleted = cursor.rowcount > 0
    if deleted:
        logger.info(f"Deleted birthday: birthday_id={birthday_id}")
    return deleted


def clear_sync_data_for_tenant(tenant_id: str) -> int:
    """Unsync every birthday of a tenant and drop its sync bookkeeping.

    Returns:
        Number of birthdays updated.
    """
    with get_db_cursor() as cursor:
        cursor.execute(
            """
            UPDATE birthdays
            SET calendar_events_map = '{}'::jsonb,
                sync_metadata = NULL,
                last_synced_at = NULL,
                is_synced = FALSE,
                updated_at = CURRENT_TIMESTAMP
            WHERE tenant_id = %s
            """,
            (tenant_id,),
        )
        return cursor.rowcount


def mark_failed_syncs_unrecoverable(owner_id: str) -> int:
    """Stop retries for every failed birthday in the tenants an owner owns.

    Used once the owner's Google token is revoked: retrying can't succeed
    until they reconnect.

    Returns:
        Number of birthdays updated.
    """
    with get_db_cursor() as cursor:
        cursor.execute(
            """
            UPDATE birthdays
            SET sync_metadata = sync_metadata
                    || jsonb_build_object('retry_count', %s::int, 'status', 'ERROR'),
                updated_at = CURRENT_TIMESTAMP
            WHERE tenant_id IN (SELECT id FROM tenants WHERE owner_id = %s)
              AND sync_metadata->>'status' IN ('PARTIAL_SYNC', 'ERROR')
            """,
            (PERMANENTLY_BROKEN_RETRY_COUNT, owner_id),
        )
        count = cursor.rowcount
    logger.info(f"Marked failed syncs unrecoverable: owner_id={owner_id}, birthdays={count}")
    return count


def _update_columns(birthday_id: str, values: Mapping[str, Any]) -> int:
    assignments = [
        sql.SQL("{} = %s").format(sql.Identifier(column)) for column in values
    ]
    assignments.append(sql.SQL("updated_at = CURRENT_TIMESTAMP"))
    query = sql.SQL("UPDATE birthdays SET {assignments} WHERE id = %s").format(
        assignments=sql.SQL(", ").join(assignments)
    )
    params = [_to_db_value(c, v) for c, v in values.items()]
    with get_db_cursor() as cursor:
        cursor.execute(query, [*params, birthday_id])
        return cursor.rowcount


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _to_db_value(column: str, value: Any) -> Any:
    if column not in _JSON_COLUMNS or value is None:
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, default=_json_default, ensure_ascii=False)


def _load_json(value: Any, default: Any) -> Any:
    if value is None:
        return default
    # psycopg decodes JSONB already; plain JSON text shows up as str.
    return json.loads(value) if isinstance(value, str) else value


def _row_to_birthday(row: tuple) -> Birthday:
    """Convert a database row to a Birthday model."""
    data = dict(zip(_COLUMNS, row))
    data["group_ids"] = _load_json(data["group_ids"], [])
    data["future_hebrew_birthdays"] = _load_json(data["future_hebrew_birthdays"], [])
    data["calendar_events_map"] = _load_json(data["calendar_events_map"], {})
    metadata = _load_json(data["sync_metadata"], None)
    data["sync_metadata"] = SyncMetadata.model_validate(metadata) if metadata else None
    return Birthday.model_validate(data)
