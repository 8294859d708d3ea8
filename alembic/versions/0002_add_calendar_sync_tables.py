"""Add calendar token and sync job tables

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 09:30:00.000000

"""

from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, Sequence[str], None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("""
        CREATE TABLE calendar_tokens (
            user_id VARCHAR(255) PRIMARY KEY,
            access_token TEXT NOT NULL DEFAULT '',
            refresh_token TEXT,
            expires_at TIMESTAMPTZ,
            calendar_id VARCHAR(255),
            calendar_name VARCHAR(255),
            sync_status VARCHAR(20) NOT NULL DEFAULT 'IDLE'
                CHECK (sync_status IN ('IDLE', 'IN_PROGRESS', 'DELETING', 'ERROR')),
            last_sync_start TIMESTAMPTZ,
            created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
        )
    """)

    op.execute("""
        CREATE TABLE calendar_sync_jobs (
            id VARCHAR(255) PRIMARY KEY,
            user_id VARCHAR(255) NOT NULL,
            status VARCHAR(20) NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'completed')),
            total_items INTEGER NOT NULL,
            processed_items INTEGER NOT NULL DEFAULT 0,
            errors JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX idx_calendar_sync_jobs_user_id ON calendar_sync_jobs (user_id)")


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("DROP TABLE IF EXISTS calendar_sync_jobs")
    op.execute("DROP TABLE IF EXISTS calendar_tokens")
