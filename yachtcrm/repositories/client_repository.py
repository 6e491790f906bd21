"""
Client Repository.

Owner-scoped data access for ``clients``.  The ``(user_id, email)`` unique
index is the final guard against duplicate emails: an insert or update
that trips it is reported as :class:`DuplicateEmailError`, the same error
the service-level pre-check raises.
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Optional

from yachtcrm.errors import DuplicateEmailError
from yachtcrm.models.client import Client, ClientSearch
from yachtcrm.repositories.base_repository import OwnedRepository, R


class ClientRepository(OwnedRepository[Client]):
    """Data access layer for Client entities."""

    TABLE = "clients"
    MODEL = Client
    ENTITY = "Client"
    COLUMNS = (
        "name",
        "email",
        "phone",
        "state",
        "model_interest",
        "budget",
        "communication",
        "to_contact",
        "to_contact_text",
    )
    SORTABLE = frozenset({"created_at", "updated_at", "name", "to_contact"})

    def email_exists(
        self, owner_id: str, email: str, exclude_id: Optional[str] = None,
    ) -> bool:
        """``True`` if *owner_id* already has a client with *email*.

        *exclude_id* skips one client, so an edit that keeps its own email
        is not reported as a collision.
        """

        def _op() -> bool:
            query = f"SELECT 1 FROM {self.TABLE} WHERE user_id = ? AND email = ?"
            params: list[object] = [owner_id, email]
            if exclude_id is not None:
                query += " AND id != ?"
                params.append(exclude_id)
            return self.sqlite.execute(f"{query} LIMIT 1", params).fetchone() is not None

        return self._run("email_exists (clients)", _op, owner_id=owner_id)

    def list_with_reminders(self, owner_id: str) -> list[Client]:
        """Clients with a pending follow-up, soonest first."""
        return self._search(
            "list_with_reminders (clients)",
            owner_id,
            ["to_contact IS NOT NULL"],
            [],
            order_by="to_contact",
        )

    def count_reminders(self, owner_id: str) -> int:
        def _op() -> int:
            row = self.sqlite.execute(
                f"SELECT COUNT(*) FROM {self.TABLE} "
                f"WHERE user_id = ? AND to_contact IS NOT NULL",
                (owner_id,),
            ).fetchone()
            return int(row[0])

        return self._run("count_reminders (clients)", _op, owner_id=owner_id)

    def clear_reminder(self, entity_id: str, owner_id: str) -> Client:
        """Null both reminder fields in a single statement."""
        return self.update_for_owner(
            entity_id, owner_id, {"to_contact": None, "to_contact_text": None},
        )

    def search(self, owner_id: str, criteria: ClientSearch) -> list[Client]:
        """Substring match on name, email and model interest plus budget range."""
        clauses: list[str] = []
        params: list[object] = []

        for column, value in (
            ("name", criteria.name),
            ("email", criteria.email),
            ("model_interest", criteria.model_interest),
        ):
            if value:
                clauses.append(self._like_clause(column))
                params.append(self._like(value))

        if criteria.min_budget is not None:
            clauses.append("budget >= ?")
            params.append(criteria.min_budget)
        if criteria.max_budget is not None:
            clauses.append("budget <= ?")
            params.append(criteria.max_budget)
        if criteria.has_reminder is True:
            clauses.append("to_contact IS NOT NULL")
        elif criteria.has_reminder is False:
            clauses.append("to_contact IS NULL")

        return self._search("search (clients)", owner_id, clauses, params)

    def _guard_insert(self, op: Callable[[], R]) -> Callable[[], R]:
        def _guarded() -> R:
            try:
                return op()
            except sqlite3.IntegrityError as exc:
                if "clients.email" in str(exc) or "idx_clients_user_email" in str(exc):
                    self._logger.warning(
                        "Duplicate client email rejected by unique index: %s", exc,
                    )
                    raise DuplicateEmailError(original_error=exc) from exc
                raise

        return _guarded
