"""
Client Service.

Turns client form payloads into validated, owner-scoped writes.

Business rules:
    - The broker's ``users`` row is ensured before anything is written.
    - ``name`` and ``email`` are mandatory; one email per broker.
    - The form's ``budget`` range token is stored as a representative
      amount; unknown tokens leave the budget unset.
    - The form's ``company`` is stored in ``state`` and ``boatType`` in
      ``model_interest``; ``notes`` go to ``communication``.
    - Edits apply only fields that are present and non-empty.
    - Reminder dates are stored as UTC; naive inputs are read as local time.
"""

from __future__ import annotations

from datetime import timezone, tzinfo
from typing import Mapping, Optional

from yachtcrm.auth import AuthContext
from yachtcrm.database import DatabaseManager
from yachtcrm.errors import CRMError, DuplicateEmailError, NotFoundOrForbiddenError
from yachtcrm.logger import StructuredLogger
from yachtcrm.models.client import (
    Client,
    ClientForm,
    ClientSearch,
    ClientUpdateForm,
    ReminderForm,
    map_budget,
)
from yachtcrm.models.service_models import ServiceResult
from yachtcrm.repositories.client_repository import ClientRepository
from yachtcrm.services.base_service import BaseService
from yachtcrm.services.reminders import to_aware
from yachtcrm.services.user_provisioning import UserProvisioningService

FormPayload = Mapping[str, object]


class ClientService(BaseService):
    """Service layer for a broker's clients and their follow-up reminders."""

    def __init__(
        self,
        repo: ClientRepository,
        provisioning: UserProvisioningService,
        logger: StructuredLogger,
        db: Optional[DatabaseManager] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        super().__init__(logger, db)
        self._repo = repo
        self._provisioning = provisioning
        self._tz = tz

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_clients(self, ctx: AuthContext) -> ServiceResult[list[Client]]:
        try:
            return ServiceResult(success=True, data=self._repo.list_by_owner(ctx.user_id))
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("list_clients", exc, ctx)

    def get_client(self, ctx: AuthContext, client_id: str) -> ServiceResult[Client]:
        try:
            client = self._repo.get_by_id_for_owner(client_id, ctx.user_id)
            if client is None:
                raise NotFoundOrForbiddenError()
            return ServiceResult(success=True, data=client)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("get_client", exc, ctx, client_id)

    def search_clients(
        self, ctx: AuthContext, criteria: Optional[FormPayload] = None,
    ) -> ServiceResult[list[Client]]:
        try:
            search = self._validate(ClientSearch, self._normalize(criteria))
            return ServiceResult(success=True, data=self._repo.search(ctx.user_id, search))
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("search_clients", exc, ctx)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_client(self, ctx: AuthContext, form: FormPayload) -> ServiceResult[Client]:
        """Create a client for the calling broker.

        Fails with ``validation_failed`` (missing or malformed fields) or
        ``duplicate_email`` (the broker already has a client with this email).
        """
        try:
            self._provisioning.ensure_user(ctx)

            payload = self._normalize(form)
            self._require(payload, ("name", "email"), "Name and email are required")
            validated = self._validate(ClientForm, payload)

            if self._repo.email_exists(ctx.user_id, validated.email):
                raise DuplicateEmailError()

            client = self._repo.create({
                "user_id": ctx.user_id,
                "name": validated.name,
                "email": validated.email,
                "phone": validated.phone,
                "state": validated.company,
                "model_interest": validated.boat_type,
                "budget": validated.budget_amount,
                "communication": validated.notes,
            })

            self._audit(
                action="CREATE",
                entity_type="Client",
                entity_id=client.id,
                user_id=ctx.user_id,
                details={"email": client.email},
            )
            return ServiceResult(success=True, data=client, status_code=201)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("create_client", exc, ctx)

    def update_client(
        self, ctx: AuthContext, client_id: str, form: FormPayload,
    ) -> ServiceResult[Client]:
        """Apply the non-empty fields of *form* to a client.

        A blank field means "not provided", so ``{"phone": ""}`` leaves the
        stored phone untouched.
        """
        try:
            validated = self._validate(ClientUpdateForm, self._normalize(form))

            existing = self._repo.get_by_id_for_owner(client_id, ctx.user_id)
            if existing is None:
                raise NotFoundOrForbiddenError()

            patch: dict[str, object] = {}
            if validated.name:
                patch["name"] = validated.name
            if validated.email:
                patch["email"] = validated.email
            if validated.phone:
                patch["phone"] = validated.phone
            if validated.company:
                patch["state"] = validated.company
            if validated.boat_type:
                patch["model_interest"] = validated.boat_type
            if validated.notes:
                patch["communication"] = validated.notes
            budget = map_budget(validated.budget)
            if budget:
                patch["budget"] = budget

            if "email" in patch and self._repo.email_exists(
                ctx.user_id, validated.email or "", exclude_id=client_id,
            ):
                raise DuplicateEmailError()

            if not patch:
                return ServiceResult(success=True, data=existing)

            client = self._repo.update_for_owner(client_id, ctx.user_id, patch)
            self._audit(
                action="UPDATE",
                entity_type="Client",
                entity_id=client_id,
                user_id=ctx.user_id,
                details={"fields": ",".join(sorted(patch))},
            )
            return ServiceResult(success=True, data=client)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("update_client", exc, ctx, client_id)

    def delete_client(self, ctx: AuthContext, client_id: str) -> ServiceResult[None]:
        try:
            self._repo.delete_for_owner(client_id, ctx.user_id)
            self._audit(
                action="DELETE",
                entity_type="Client",
                entity_id=client_id,
                user_id=ctx.user_id,
            )
            return ServiceResult(success=True)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("delete_client", exc, ctx, client_id)

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def set_reminder(
        self, ctx: AuthContext, client_id: str, form: FormPayload,
    ) -> ServiceResult[Client]:
        """Set (or replace) the follow-up date and note of a client.

        ``date`` must be parseable; past dates are accepted.  The note is
        optional (max 500 characters) and is cleared when omitted.
        """
        try:
            payload = self._normalize(form)
            self._require(payload, ("date",), "Reminder date is required")
            validated = self._validate(ReminderForm, payload)

            to_contact = to_aware(validated.date, self._tz).astimezone(timezone.utc)
            client = self._repo.update_for_owner(client_id, ctx.user_id, {
                "to_contact": to_contact,
                "to_contact_text": validated.note,
            })
            self._audit(
                action="REMINDER_SET",
                entity_type="Client",
                entity_id=client_id,
                user_id=ctx.user_id,
                details={"to_contact": to_contact.isoformat()},
            )
            return ServiceResult(success=True, data=client)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("set_reminder", exc, ctx, client_id)

    def clear_reminder(self, ctx: AuthContext, client_id: str) -> ServiceResult[Client]:
        try:
            client = self._repo.clear_reminder(client_id, ctx.user_id)
            self._audit(
                action="REMINDER_CLEAR",
                entity_type="Client",
                entity_id=client_id,
                user_id=ctx.user_id,
            )
            return ServiceResult(success=True, data=client)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("clear_reminder", exc, ctx, client_id)
