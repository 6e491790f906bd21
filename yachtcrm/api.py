"""
Request Layer.

``BrokerAPI`` is the transport-neutral surface every caller goes through
(an HTTP binding, the CLI, tests).  Each method takes the raw session
token as its first argument; :func:`~yachtcrm.jwt_auth.require_auth`
resolves it to an :class:`~yachtcrm.auth.AuthContext` and the call is
delegated to the matching service.  Results are always ``ServiceResult``
envelopes; nothing here raises for expected failures.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Mapping, Optional

from yachtcrm.auth import AuthContext, IdentityProvider
from yachtcrm.jwt_auth import require_auth
from yachtcrm.models.boat import Boat
from yachtcrm.models.client import Client
from yachtcrm.models.dashboard import Dashboard, DashboardStats, PriorityReminder, ReminderBuckets
from yachtcrm.models.service_models import ServiceResult
from yachtcrm.models.upload import UploadFile, UploadOutcome
from yachtcrm.services import ServiceContainer

FormPayload = Mapping[str, object]


class BrokerAPI:
    """All broker operations, each gated behind a validated session."""

    def __init__(self, identity: IdentityProvider, services: ServiceContainer) -> None:
        self._identity = identity
        self._clients = services["client_service"]
        self._boats = services["boat_service"]
        self._uploads = services["upload_service"]
        self._dashboard = services["dashboard_service"]

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    @require_auth
    def list_clients(self, ctx: AuthContext) -> ServiceResult[list[Client]]:
        return self._clients.list_clients(ctx)

    @require_auth
    def get_client(self, ctx: AuthContext, client_id: str) -> ServiceResult[Client]:
        return self._clients.get_client(ctx, client_id)

    @require_auth
    def search_clients(
        self, ctx: AuthContext, criteria: Optional[FormPayload] = None,
    ) -> ServiceResult[list[Client]]:
        return self._clients.search_clients(ctx, criteria)

    @require_auth
    def create_client(self, ctx: AuthContext, form: FormPayload) -> ServiceResult[Client]:
        return self._clients.create_client(ctx, form)

    @require_auth
    def update_client(
        self, ctx: AuthContext, client_id: str, form: FormPayload,
    ) -> ServiceResult[Client]:
        return self._clients.update_client(ctx, client_id, form)

    @require_auth
    def delete_client(self, ctx: AuthContext, client_id: str) -> ServiceResult[None]:
        return self._clients.delete_client(ctx, client_id)

    @require_auth
    def set_reminder(
        self, ctx: AuthContext, client_id: str, form: FormPayload,
    ) -> ServiceResult[Client]:
        return self._clients.set_reminder(ctx, client_id, form)

    @require_auth
    def clear_reminder(self, ctx: AuthContext, client_id: str) -> ServiceResult[Client]:
        return self._clients.clear_reminder(ctx, client_id)

    # ------------------------------------------------------------------
    # Boats
    # ------------------------------------------------------------------

    @require_auth
    def list_boats(self, ctx: AuthContext) -> ServiceResult[list[Boat]]:
        return self._boats.list_boats(ctx)

    @require_auth
    def get_boat(self, ctx: AuthContext, boat_id: str) -> ServiceResult[Boat]:
        return self._boats.get_boat(ctx, boat_id)

    @require_auth
    def search_boats(
        self, ctx: AuthContext, criteria: Optional[FormPayload] = None,
    ) -> ServiceResult[list[Boat]]:
        return self._boats.search_boats(ctx, criteria)

    @require_auth
    def create_boat(
        self,
        ctx: AuthContext,
        form: FormPayload,
        uploads: Optional[Sequence[UploadFile]] = None,
    ) -> ServiceResult[Boat]:
        return self._boats.create_boat(ctx, form, uploads)

    @require_auth
    def update_boat(
        self,
        ctx: AuthContext,
        boat_id: str,
        form: FormPayload,
        uploads: Optional[Sequence[UploadFile]] = None,
    ) -> ServiceResult[Boat]:
        return self._boats.update_boat(ctx, boat_id, form, uploads)

    @require_auth
    def delete_boat(self, ctx: AuthContext, boat_id: str) -> ServiceResult[None]:
        return self._boats.delete_boat(ctx, boat_id)

    @require_auth
    def upload_images(
        self, ctx: AuthContext, files: Sequence[UploadFile],
    ) -> ServiceResult[list[UploadOutcome]]:
        return self._uploads.upload_images(ctx, files)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    @require_auth
    def get_dashboard_stats(self, ctx: AuthContext) -> ServiceResult[DashboardStats]:
        return self._dashboard.get_dashboard_stats(ctx)

    @require_auth
    def get_reminder_buckets(
        self, ctx: AuthContext, now: Optional[datetime] = None,
    ) -> ServiceResult[ReminderBuckets]:
        return self._dashboard.get_reminder_buckets(ctx, now)

    @require_auth
    def get_priority_reminders(
        self, ctx: AuthContext, now: Optional[datetime] = None,
    ) -> ServiceResult[list[PriorityReminder]]:
        return self._dashboard.get_priority_reminders(ctx, now)

    @require_auth
    def get_dashboard(
        self, ctx: AuthContext, now: Optional[datetime] = None,
    ) -> ServiceResult[Dashboard]:
        return self._dashboard.get_dashboard(ctx, now)
