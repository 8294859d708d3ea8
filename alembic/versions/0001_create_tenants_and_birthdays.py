"""Create tenants, groups, birthdays and wishlist tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("""
        CREATE TABLE tenants (
            id VARCHAR(255) PRIMARY KEY,
            owner_id VARCHAR(255),
            name VARCHAR(255),
            default_language VARCHAR(2) NOT NULL DEFAULT 'he'
                CHECK (default_language IN ('he', 'en')),
            default_calendar_preference VARCHAR(20)
                CHECK (default_calendar_preference IN ('gregorian', 'hebrew', 'both')),
            created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX idx_tenants_owner_id ON tenants (owner_id)")

    op.execute("""
        CREATE TABLE groups (
            id VARCHAR(255) PRIMARY KEY,
            tenant_id VARCHAR(255) NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            parent_id VARCHAR(255) REFERENCES groups(id) ON DELETE SET NULL,
            name VARCHAR(255) NOT NULL,
            calendar_preference VARCHAR(20)
                CHECK (calendar_preference IN ('gregorian', 'hebrew', 'both')),
            created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
        )
    """)

    op.execute("""
        CREATE TABLE birthdays (
            id VARCHAR(255) PRIMARY KEY,
            tenant_id VARCHAR(255) NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            first_name VARCHAR(255) NOT NULL,
            last_name VARCHAR(255) NOT NULL DEFAULT '',
            birth_date_gregorian DATE NOT NULL,
            after_sunset BOOLEAN NOT NULL DEFAULT FALSE,
            gender VARCHAR(20),
            notes TEXT,
            group_ids JSONB NOT NULL DEFAULT '[]'::jsonb,
            archived BOOLEAN NOT NULL DEFAULT FALSE,
            calendar_preference_override VARCHAR(20)
                CHECK (calendar_preference_override IN ('gregorian', 'hebrew', 'both')),
            is_synced BOOLEAN NOT NULL DEFAULT FALSE,
            hebrew_year INTEGER,
            hebrew_month VARCHAR(20),
            hebrew_day INTEGER,
            birth_date_hebrew_string VARCHAR(255),
            next_upcoming_hebrew_birthday DATE,
            next_upcoming_hebrew_year INTEGER,
            future_hebrew_birthdays JSONB NOT NULL DEFAULT '[]'::jsonb,
            calendar_events_map JSONB NOT NULL DEFAULT '{}'::jsonb,
            sync_metadata JSONB,
            last_synced_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX idx_birthdays_tenant_id ON birthdays (tenant_id)")
    # The retry sweep filters on the last sync status.
    op.execute(
        "CREATE INDEX idx_birthdays_sync_status ON birthdays ((sync_metadata->>'status')) "
        "WHERE archived = FALSE"
    )
    op.execute(
        "CREATE INDEX idx_birthdays_next_hebrew ON birthdays (next_upcoming_hebrew_birthday) "
        "WHERE archived = FALSE"
    )

    op.execute("""
        CREATE TABLE wishlist_items (
            id VARCHAR(255) PRIMARY KEY,
            birthday_id VARCHAR(255) NOT NULL REFERENCES birthdays(id) ON DELETE CASCADE,
            item_name VARCHAR(500) NOT NULL,
            priority VARCHAR(10) NOT NULL DEFAULT 'medium'
                CHECK (priority IN ('high', 'medium', 'low')),
            created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX idx_wishlist_items_birthday_id ON wishlist_items (birthday_id)")


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("DROP TABLE IF EXISTS wishlist_items")
    op.execute("DROP TABLE IF EXISTS birthdays")
    op.execute("DROP TABLE IF EXISTS groups")
    op.execute("DROP TABLE IF EXISTS tenants")
