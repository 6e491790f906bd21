"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference (SQLite store + optional Supabase client)
- Logger reference
- Store-error translation into the domain error taxonomy
- The ownership-scoped generic repository used by every broker-owned entity

Every record handled by :class:`OwnedRepository` carries a ``user_id``.
Reads, updates and deletes are filtered by it, so a record owned by another
broker behaves exactly like a missing one.
"""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Generic, Mapping, Optional, TypeVar

from pydantic import BaseModel

from yachtcrm.database import DatabaseManager
from yachtcrm.errors import (
    CRMError,
    NotFoundOrForbiddenError,
    StoreTimeoutError,
    UpstreamUnavailableError,
)
from yachtcrm.logger import StructuredLogger
from yachtcrm.utils.string_helpers import LIKE_ESCAPE, escape_like

R = TypeVar("R")
T = TypeVar("T", bound=BaseModel)

# sqlite3 messages raised when the busy timeout expires.
_LOCK_MESSAGES: tuple[str, ...] = ("database is locked", "database table is locked")


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string (the stored timestamp format)."""
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def to_db_value(value: object) -> object:
    """Convert a Python value into something ``sqlite3`` stores natively."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return int(value)
    return value


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Returns the SQLite connection."""
        return self._db.sqlite

    def _commit(self) -> None:
        """Commit unless a :meth:`DatabaseManager.transaction` is active.

        Inside a transaction this is a no-op; the context manager issues a
        single commit (or rollback) when the ``with`` block exits.
        """
        if not self._db.in_transaction:
            self.sqlite.commit()

    def _run(
        self,
        operation_name: str,
        op: Callable[[], R],
        *,
        owner_id: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> R:
        """Execute *op* under the store lock and translate store failures.

        Domain errors raised inside *op* propagate unchanged.  ``sqlite3``
        errors are logged with the operation, owner and entity and raised as
        :class:`StoreTimeoutError` (busy timeout expired) or
        :class:`UpstreamUnavailableError` (anything else).  Outside a
        transaction any partial write is rolled back first.
        """
        with self._db.write_lock:
            try:
                return op()
            except CRMError:
                self._rollback()
                raise
            except sqlite3.OperationalError as exc:
                self._rollback()
                if any(msg in str(exc).lower() for msg in _LOCK_MESSAGES):
                    self._logger.error(
                        "Store timeout in %s (%s) owner=%s entity=%s: %s",
                        operation_name, self.TABLE, owner_id, entity_id, exc,
                    )
                    raise StoreTimeoutError(original_error=exc) from exc
                self._log_store_failure(operation_name, owner_id, entity_id, exc)
                raise UpstreamUnavailableError(original_error=exc) from exc
            except sqlite3.Error as exc:
                self._rollback()
                self._log_store_failure(operation_name, owner_id, entity_id, exc)
                raise UpstreamUnavailableError(original_error=exc) from exc

    def _rollback(self) -> None:
        """Discard a partial write (no-op inside a transaction block)."""
        if self._db.in_transaction:
            return
        try:
            self.sqlite.rollback()
        except sqlite3.Error as exc:
            self._logger.warning("Rollback failed for %s: %s", self.TABLE, exc)

    def _log_store_failure(
        self,
        operation_name: str,
        owner_id: Optional[str],
        entity_id: Optional[str],
        exc: Exception,
    ) -> None:
        self._logger.failure(
            f"{self.TABLE}.{operation_name}", exc, owner_id=owner_id, entity_id=entity_id,
        )

    @staticmethod
    def _like(value: str) -> str:
        """Case-insensitive substring pattern for ``LIKE ? ESCAPE '\\'``."""
        return f"%{escape_like(value)}%"


class OwnedRepository(BaseRepository, Generic[T]):
    """Generic ownership-scoped CRUD over one table.

    Subclasses set :attr:`TABLE`, :attr:`MODEL` (the pydantic model rows are
    parsed into), :attr:`ENTITY` (name used in logs) and :attr:`COLUMNS`
    (writable columns besides ``id``, ``user_id`` and the timestamps).

    Sorting accepts a column from :attr:`SORTABLE`, optionally prefixed with
    ``-`` for descending order.  Columns stored as text but ordered
    numerically map to an SQL expression in :attr:`SORT_EXPRESSIONS`.
    """

    MODEL: type[T]
    ENTITY: str = ""
    COLUMNS: tuple[str, ...] = ()
    SORTABLE: frozenset[str] = frozenset({"created_at", "updated_at"})
    SORT_EXPRESSIONS: Mapping[str, str] = {}
    DEFAULT_ORDER: str = "-created_at"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_by_owner(self, owner_id: str, order_by: Optional[str] = None) -> list[T]:
        """All records owned by *owner_id*, newest first unless *order_by* is given."""
        order = self._order_clause(order_by or self.DEFAULT_ORDER)

        def _op() -> list[T]:
            rows = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} WHERE user_id = ? {order}",
                (owner_id,),
            ).fetchall()
            return self._hydrate(rows)

        return self._run(f"list_by_owner ({self.TABLE})", _op, owner_id=owner_id)

    def get_by_id_for_owner(self, entity_id: str, owner_id: str) -> Optional[T]:
        """The record if it exists **and** belongs to *owner_id*, else ``None``."""

        def _op() -> Optional[T]:
            row = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} WHERE id = ? AND user_id = ?",
                (entity_id, owner_id),
            ).fetchone()
            if row is None:
                return None
            return self._hydrate([row])[0]

        return self._run(
            f"get_by_id_for_owner ({self.TABLE})", _op,
            owner_id=owner_id, entity_id=entity_id,
        )

    def count_by_owner(self, owner_id: str) -> int:
        def _op() -> int:
            row = self.sqlite.execute(
                f"SELECT COUNT(*) FROM {self.TABLE} WHERE user_id = ?",
                (owner_id,),
            ).fetchone()
            return int(row[0])

        return self._run(f"count_by_owner ({self.TABLE})", _op, owner_id=owner_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, data: Mapping[str, object]) -> T:
        """Insert a record.  *data* must carry the owning ``user_id``."""
        owner_id = data.get("user_id")
        if not owner_id:
            raise ValueError(f"{self.ENTITY} create requires an explicit user_id")

        entity_id = new_id()
        now = utc_now()
        values: dict[str, object] = {
            column: to_db_value(data[column]) for column in self.COLUMNS if column in data
        }
        values.update(id=entity_id, user_id=owner_id, created_at=now, updated_at=now)

        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)

        def _op() -> T:
            self.sqlite.execute(
                f"INSERT INTO {self.TABLE} ({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
            self._after_create(entity_id, data)
            self._commit()
            return self._require(entity_id, str(owner_id))

        created = self._run(
            f"create ({self.TABLE})", self._guard_insert(_op),
            owner_id=str(owner_id), entity_id=entity_id,
        )
        self._logger.info("%s created: %s", self.ENTITY, entity_id)
        return created

    def update_for_owner(
        self, entity_id: str, owner_id: str, patch: Mapping[str, object],
    ) -> T:
        """Apply *patch* to a record owned by *owner_id*.

        Raises :class:`NotFoundOrForbiddenError` when the record is missing
        or foreign, including when it disappears between the ownership check
        and the write (the ``UPDATE`` is itself scoped by owner).
        """
        values: dict[str, object] = {
            column: to_db_value(patch[column]) for column in self.COLUMNS if column in patch
        }

        def _op() -> T:
            self._require(entity_id, owner_id)
            if values:
                assignments = ", ".join(f"{column} = ?" for column in values)
                cursor = self.sqlite.execute(
                    f"UPDATE {self.TABLE} SET {assignments}, updated_at = ? "
                    f"WHERE id = ? AND user_id = ?",
                    (*values.values(), utc_now(), entity_id, owner_id),
                )
                if cursor.rowcount == 0:
                    raise NotFoundOrForbiddenError()
            self._after_update(entity_id, patch)
            self._commit()
            return self._require(entity_id, owner_id)

        return self._run(
            f"update_for_owner ({self.TABLE})", self._guard_insert(_op),
            owner_id=owner_id, entity_id=entity_id,
        )

    def delete_for_owner(self, entity_id: str, owner_id: str) -> None:
        """Delete a record owned by *owner_id* (same check-then-act shape)."""

        def _op() -> None:
            self._require(entity_id, owner_id)
            cursor = self.sqlite.execute(
                f"DELETE FROM {self.TABLE} WHERE id = ? AND user_id = ?",
                (entity_id, owner_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundOrForbiddenError()
            self._commit()

        self._run(
            f"delete_for_owner ({self.TABLE})", _op,
            owner_id=owner_id, entity_id=entity_id,
        )
        self._logger.info("%s deleted: %s", self.ENTITY, entity_id)

    # ------------------------------------------------------------------
    # Hooks and helpers
    # ------------------------------------------------------------------

    def _hydrate(self, rows: list[sqlite3.Row]) -> list[T]:
        """Turn rows into models.  Override to attach child records."""
        return [self._row_to_model(row) for row in rows]

    def _row_to_model(self, row: sqlite3.Row) -> T:
        return self.MODEL(**dict(row))

    def _after_create(self, entity_id: str, data: Mapping[str, object]) -> None:
        """Extra statements run inside the create, before commit."""

    def _after_update(self, entity_id: str, patch: Mapping[str, object]) -> None:
        """Extra statements run inside the update, before commit."""

    def _guard_insert(self, op: Callable[[], R]) -> Callable[[], R]:
        """Wrap a write to translate constraint violations.  Identity by default."""
        return op

    def _require(self, entity_id: str, owner_id: str) -> T:
        row = self.sqlite.execute(
            f"SELECT * FROM {self.TABLE} WHERE id = ? AND user_id = ?",
            (entity_id, owner_id),
        ).fetchone()
        if row is None:
            raise NotFoundOrForbiddenError()
        return self._hydrate([row])[0]

    def _order_clause(self, order_by: str) -> str:
        descending = order_by.startswith("-")
        column = order_by.lstrip("-")
        if column not in self.SORTABLE:
            raise ValueError(
                f"Cannot sort {self.TABLE} by {column!r}. "
                f"Allowed: {sorted(self.SORTABLE)}"
            )
        expression = self.SORT_EXPRESSIONS.get(column, column)
        return f"ORDER BY {expression} {'DESC' if descending else 'ASC'}"

    def _search(
        self,
        operation_name: str,
        owner_id: str,
        clauses: list[str],
        params: list[object],
        order_by: Optional[str] = None,
    ) -> list[T]:
        """Run an owner-scoped ``SELECT`` with extra AND-ed *clauses*."""
        where = " AND ".join(["user_id = ?", *clauses])
        order = self._order_clause(order_by or self.DEFAULT_ORDER)

        def _op() -> list[T]:
            rows = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} WHERE {where} {order}",
                (owner_id, *params),
            ).fetchall()
            return self._hydrate(rows)

        return self._run(operation_name, _op, owner_id=owner_id)

    @staticmethod
    def _like_clause(column: str) -> str:
        return f"{column} LIKE ? ESCAPE '{LIKE_ESCAPE}'"
