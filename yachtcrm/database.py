"""
Store Connections.

:class:`DatabaseManager` is created once at startup and handed to every
repository.  It holds two things:

- the SQLite connection for users, clients, boats, boat images and the
  audit log, shared by all request threads and serialised through
  :attr:`DatabaseManager.write_lock`.  The connection's busy timeout is
  ``STORE_TIMEOUT_S``; a statement that waits longer fails with
  "database is locked", which repositories report as ``StoreTimeoutError``;
- the Supabase client, when ``SUPABASE_URL`` and a key are configured.  It
  backs remote session validation and the image storage bucket.

No SQL lives here beyond connection pragmas.

Usage::

    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_SERVICE_ROLE_KEY.get_secret_value(),
        sqlite_path=Path(config.SQLITE_PATH),
        logger=StructuredLogger(name="database"),
        timeout_s=config.STORE_TIMEOUT_S,
    )
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from supabase import Client as SupabaseClient
from supabase import create_client

from yachtcrm.logger import StructuredLogger

_MEMORY = ":memory:"


def open_store(path: Union[Path, str], timeout_s: float) -> sqlite3.Connection:
    """Open the SQLite file at *path*, creating its directory if needed.

    Rows come back as ``sqlite3.Row``; WAL journalling and foreign key
    enforcement are switched on.
    """
    target = str(path)
    if target != _MEMORY:
        Path(target).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(target, timeout=timeout_s, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def connect_supabase(url: str, key: str, logger: StructuredLogger) -> Optional[SupabaseClient]:
    """Supabase client for *url*, or ``None`` when unconfigured or unusable."""
    if not (url and key):
        logger.warning("Supabase is not configured; remote sessions and storage are off.")
        return None
    try:
        client = create_client(url, key)
    except Exception as exc:
        logger.failure("connect_supabase", exc, entity_id=url, traceback=True)
        return None
    logger.info("Connected to Supabase at %s", url)
    return client


class DatabaseManager:
    """The shared SQLite connection plus the optional Supabase client."""

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        sqlite_path: Union[Path, str],
        logger: StructuredLogger,
        timeout_s: float = 5.0,
    ) -> None:
        self._logger = logger
        self._lock = threading.RLock()
        self._in_transaction = False
        self._closed = False

        self._supabase = connect_supabase(supabase_url, supabase_key, logger)
        try:
            self._conn = open_store(sqlite_path, timeout_s)
        except (OSError, sqlite3.Error) as exc:
            logger.failure("open_store", exc, entity_id=str(sqlite_path))
            raise
        logger.info("SQLite store ready at %s", sqlite_path)

    @property
    def supabase(self) -> SupabaseClient:
        """The Supabase client; raises ``RuntimeError`` when there is none."""
        if self._supabase is None:
            raise RuntimeError("Supabase is not configured (set SUPABASE_URL and a key).")
        return self._supabase

    @property
    def has_supabase(self) -> bool:
        return self._supabase is not None

    @property
    def sqlite(self) -> sqlite3.Connection:
        return self._conn

    @property
    def write_lock(self) -> threading.RLock:
        """Held around every statement and its commit on the shared connection."""
        return self._lock

    @property
    def in_transaction(self) -> bool:
        """Whether a :meth:`transaction` block is open; repositories skip commits then."""
        return self._in_transaction

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run several repository writes as one unit.

        Commits once when the block exits normally and rolls back when it
        raises.  A nested block joins the outer one.  The write lock is held
        throughout::

            with db.transaction():
                boat = boat_repo.create(data)
                boat_repo.add_images(boat.id, images)
        """
        with self._lock:
            if self._in_transaction:
                yield
                return

            self._in_transaction = True
            try:
                yield
            except Exception:
                self._conn.rollback()
                self._logger.warning("Transaction rolled back.", exc_info=True)
                raise
            else:
                self._conn.commit()
            finally:
                self._in_transaction = False

    def close(self) -> None:
        """Close the SQLite connection; later calls do nothing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._conn.close()
        self._logger.info("SQLite store closed.")
