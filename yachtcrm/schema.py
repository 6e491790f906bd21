"""
Broker CRM Store Layout.

Every table the CRM keeps in SQLite, plus :func:`initialize_schema`, which
brings a connection up to that layout at startup.  The single row in
``schema_version`` records which layout a database file carries.

Initialisation
~~~~~~~~~~~~~~
- **Fresh databases** (version 0): all tables and indexes are created in
  one transaction together with the version row.  On failure everything
  rolls back and the next startup retries.
- **Current databases**: nothing to do.
- A database stamped with a newer version than this code knows is refused
  rather than written to.

Usage::

    from yachtcrm.logger import StructuredLogger
    from yachtcrm.schema import initialize_schema

    initialize_schema(db.sqlite, StructuredLogger(name="schema"))
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from yachtcrm.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

# Layout version stamped into schema_version; raise it with any DDL change.
CURRENT_SCHEMA_VERSION: int = 1

_VERSION_TABLE = """
    CREATE TABLE IF NOT EXISTS schema_version (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        version INTEGER NOT NULL,
        stamped_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
"""

_TABLE_DEFINITIONS: list[str] = [
    # audit trail written by utils.audit
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        details TEXT NOT NULL DEFAULT '{}'
    )
    """,
    # brokers (provisioned lazily from the identity provider)
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        name TEXT,
        company TEXT,
        phone TEXT,
        role TEXT NOT NULL DEFAULT 'BROKER'
             CHECK (role IN ('ADMIN', 'BROKER', 'MANAGER')),
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    # clients (``state`` holds the free-text company)
    """
    CREATE TABLE IF NOT EXISTS clients (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        email TEXT NOT NULL,
        phone TEXT,
        state TEXT,
        model_interest TEXT,
        budget INTEGER,
        communication TEXT,
        to_contact TEXT,
        to_contact_text TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    # boat listings
    """
    CREATE TABLE IF NOT EXISTS boats (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        brand TEXT,
        model TEXT,
        year INTEGER,
        size INTEGER,
        price TEXT,
        price_amount TEXT,
        price_currency TEXT,
        location TEXT,
        description TEXT,
        equipment TEXT,
        owner TEXT,
        engine TEXT,
        engine_hours INTEGER,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    # boat images (one-to-many)
    """
    CREATE TABLE IF NOT EXISTS boat_images (
        id TEXT PRIMARY KEY,
        boat_id TEXT NOT NULL,
        filename TEXT NOT NULL DEFAULT '',
        url TEXT NOT NULL,
        alt TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (boat_id) REFERENCES boats(id) ON DELETE CASCADE
    )
    """,
]

_INDEX_DEFINITIONS: list[str] = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_clients_user_email ON clients(user_id, email)",
    "CREATE INDEX IF NOT EXISTS idx_clients_user_id ON clients(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_clients_to_contact ON clients(user_id, to_contact)",
    "CREATE INDEX IF NOT EXISTS idx_boats_user_id ON boats(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_boat_images_boat_id ON boat_images(boat_id)",
    "CREATE INDEX IF NOT EXISTS idx_audit_log_entity ON audit_log(entity_type, entity_id)",
]


def _stored_version(conn: sqlite3.Connection) -> int:
    """Version stamped in the database; 0 when nothing has been stamped."""
    conn.execute(_VERSION_TABLE)
    conn.commit()
    row: Optional[sqlite3.Row] = conn.execute(
        "SELECT version FROM schema_version WHERE id = 1"
    ).fetchone()
    return 0 if row is None else int(row[0])


def _build(conn: sqlite3.Connection) -> None:
    # No commit here; initialize_schema commits tables and stamp together.
    for statement in (*_TABLE_DEFINITIONS, *_INDEX_DEFINITIONS):
        conn.execute(statement)
    conn.execute(
        "INSERT OR REPLACE INTO schema_version (id, version) VALUES (1, ?)",
        (CURRENT_SCHEMA_VERSION,),
    )


def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Bring *conn* to :data:`CURRENT_SCHEMA_VERSION`.

    Runs on every startup.  An already current database is left untouched;
    a fresh one gets every table and index plus the version stamp in a
    single commit.

    Raises:
        RuntimeError: If the database was stamped by a newer release.
    """
    found = _stored_version(conn)
    if found > CURRENT_SCHEMA_VERSION:
        raise RuntimeError(
            f"Database is at schema version {found}; this release only "
            f"understands up to {CURRENT_SCHEMA_VERSION}."
        )
    if found == CURRENT_SCHEMA_VERSION:
        logger.debug("Store layout already at version %d.", found)
        return

    try:
        _build(conn)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        logger.error("Schema creation failed and was rolled back.")
        raise

    logger.info(
        "Created %d tables and %d indexes at schema version %d.",
        len(_TABLE_DEFINITIONS) + 1,
        len(_INDEX_DEFINITIONS),
        CURRENT_SCHEMA_VERSION,
    )
