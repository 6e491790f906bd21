"""
User Repository.

Handles broker account data access in the SQLite store.  Accounts are
keyed by the identity provider's subject id; emails are stored and looked
up lower-cased.
"""

from __future__ import annotations

from typing import Optional

from yachtcrm.database import DatabaseManager
from yachtcrm.logger import StructuredLogger
from yachtcrm.models.user import User
from yachtcrm.repositories.base_repository import BaseRepository, utc_now


class UserRepository(BaseRepository):
    """Data access layer for User entities.

    Accounts are only ever created, by just-in-time provisioning; nothing
    in the application updates or removes them.
    """

    TABLE = "users"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Fetch a user by primary key."""

        def _op() -> Optional[User]:
            row = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} WHERE id = ?", (user_id,)
            ).fetchone()
            return User(**dict(row)) if row else None

        return self._run("get_by_id (users)", _op, entity_id=user_id)

    def get_all(self) -> list[User]:
        def _op() -> list[User]:
            rows = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} ORDER BY created_at"
            ).fetchall()
            return [User(**dict(row)) for row in rows]

        return self._run("get_all (users)", _op)

    def exists(self, user_id: str) -> bool:
        def _op() -> bool:
            return self.sqlite.execute(
                f"SELECT 1 FROM {self.TABLE} WHERE id = ?", (user_id,)
            ).fetchone() is not None

        return self._run("exists (users)", _op, entity_id=user_id)

    def get_or_create(self, user: User) -> tuple[User, bool]:
        """Return the stored account for ``user.id``, inserting *user* if absent.

        The insert is ``ON CONFLICT(id) DO NOTHING``, so two requests racing
        to provision the same broker both end up with the single stored row.
        The boolean is ``True`` when this call created it.
        """
        now = utc_now()

        def _op() -> tuple[User, bool]:
            cursor = self.sqlite.execute(
                f"""
                INSERT INTO {self.TABLE}
                    (id, email, name, company, phone, role, is_active,
                     created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO NOTHING
                """,
                (
                    user.id,
                    user.email.strip().lower(),
                    user.name,
                    user.company,
                    user.phone,
                    str(user.role),
                    int(user.is_active),
                    now,
                    now,
                ),
            )
            created = cursor.rowcount == 1
            self._commit()
            row = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} WHERE id = ?", (user.id,)
            ).fetchone()
            return User(**dict(row)), created

        return self._run("get_or_create (users)", _op, entity_id=user.id)
