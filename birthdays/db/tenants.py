"""Database operations for tenants and their groups."""

import logging
from typing import Optional, Sequence

from birthdays.models import Group, Tenant
from .connection import get_db_cursor

logger = logging.getLogger(__name__)


def get_tenant(tenant_id: str) -> Optional[Tenant]:
    with get_db_cursor() as cursor:
        cursor.execute(
            """
            SELECT id, owner_id, name, default_language, default_calendar_preference
            FROM tenants
            WHERE id = %s
            """,
            (tenant_id,),
        )
        row = cursor.fetchone()
        return _row_to_tenant(row) if row else None


def get_groups(group_ids: Sequence[str]) -> list[Group]:
    """Get groups by ID, keeping the order of ``group_ids``.

    Parent group names are joined in so descriptions can show "Parent: Child".
    Unknown IDs are ignored.
    """
    if not group_ids:
        return []
    with get_db_cursor() as cursor:
        cursor.execute(
            """
            SELECT g.id, g.tenant_id, g.name, p.name, g.calendar_preference
            FROM groups g
            LEFT JOIN groups p ON p.id = g.parent_id
            WHERE g.id = ANY(%s)
            """,
            (list(group_ids),),
        )
        by_id = {row[0]: _row_to_group(row) for row in cursor.fetchall()}
    missing = [gid for gid in group_ids if gid not in by_id]
    if missing:
        logger.debug(f"Ignoring unknown group ids: {missing}")
    return [by_id[gid] for gid in group_ids if gid in by_id]


def _row_to_tenant(row: tuple) -> Tenant:
    id_, owner_id, name, default_language, default_calendar_preference = row
    return Tenant(
        id=id_,
        owner_id=owner_id,
        name=name,
        default_language=default_language or "he",
        default_calendar_preference=default_calendar_preference,
    )


def _row_to_group(row: tuple) -> Group:
    id_, tenant_id, name, parent_name, calendar_preference = row
    return Group(
        id=id_,
        tenant_id=tenant_id,
        name=name,
        parent_name=parent_name,
        calendar_preference=calendar_preference,
    )
