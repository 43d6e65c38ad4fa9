"""Database connection manager for SQLite."""

import sqlite3
from contextlib import contextmanager

from patient_flow import config
from patient_flow.exceptions import PersistenceError

from .schema import SCHEMA

DB_PATH = config.DB_PATH


def get_connection() -> sqlite3.Connection:
    """Get a database connection with row factory enabled."""
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA busy_timeout = 5000")
    return conn


def init_database() -> None:
    """Initialize the database with schema."""
    with transaction("init_database") as conn:
        conn.executescript(SCHEMA)


@contextmanager
def transaction(operation: str):
    """
    Open a connection and commit everything done in the block at once.

    Any sqlite error, including failing to open the store, rolls the whole
    block back and is re-raised as PersistenceError tagged with `operation`.
    Code inside the block can tag a narrower sub-operation by raising
    PersistenceError itself.
    """
    try:
        conn = get_connection()
    except sqlite3.Error as e:
        raise PersistenceError(operation, e) from e

    try:
        yield conn
        conn.commit()
    except PersistenceError:
        conn.rollback()
        raise
    except sqlite3.Error as e:
        conn.rollback()
        raise PersistenceError(operation, e) from e
    finally:
        conn.close()
