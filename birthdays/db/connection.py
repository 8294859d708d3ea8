import os
from contextlib import contextmanager
from typing import Iterator

import psycopg

# Shows up in pg_stat_activity next to the scheduler's background queries.
APPLICATION_NAME = "birthdays-api"


def get_database_url() -> str:
    return os.environ["DATABASE_URL"]


def get_connect_timeout() -> int:
    """Seconds to wait for Postgres before a sync pass gives up on the database."""
    return int(os.getenv("DB_CONNECT_TIMEOUT_SECONDS", "10"))


def get_sqlalchemy_database_url() -> str:
    """Database URL for alembic, pinned to the psycopg 3 SQLAlchemy dialect."""
    url = get_database_url()
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


@contextmanager
def get_db_connection() -> Iterator[psycopg.Connection]:
    conn = psycopg.connect(
        get_database_url(),
        connect_timeout=get_connect_timeout(),
        application_name=APPLICATION_NAME,
    )
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def get_db_cursor() -> Iterator[psycopg.Cursor]:
    """Cursor in its own transaction: committed on success, rolled back on error."""
    with get_db_connection() as conn:
        with conn.cursor() as cursor:
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
