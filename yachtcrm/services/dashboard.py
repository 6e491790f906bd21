"""
Dashboard Service.

Provides the broker's landing-page figures: client and boat counts, total
portfolio value, active reminder count, the reminder buckets and the
short priority list.  Everything is recomputed from the store on each
call and scoped to the calling broker.

Portfolio value:
    Boats with a structured price contribute ``price_amount``.  Rows that
    only carry the legacy display string (``"EUR 1,250,000"``) are valued
    by re-reading its first digit/comma run; boats without any price
    contribute nothing.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from typing import Optional

from yachtcrm.auth import AuthContext
from yachtcrm.errors import CRMError
from yachtcrm.logger import StructuredLogger
from yachtcrm.models.boat import parse_legacy_price
from yachtcrm.models.dashboard import Dashboard, DashboardStats, PriorityReminder, ReminderBuckets
from yachtcrm.models.service_models import ServiceResult
from yachtcrm.repositories.boat_repository import BoatRepository
from yachtcrm.repositories.client_repository import ClientRepository
from yachtcrm.services.base_service import BaseService
from yachtcrm.services.reminders import build_priority_list, categorize_reminders


class DashboardService(BaseService):
    """
    Service layer for dashboard metrics.

    Reads through the client and boat repositories only; never writes.
    """

    def __init__(
        self,
        client_repo: ClientRepository,
        boat_repo: BoatRepository,
        logger: StructuredLogger,
        tz: Optional[tzinfo] = None,
        priority_limit: int = 5,
    ) -> None:
        super().__init__(logger)
        self._client_repo = client_repo
        self._boat_repo = boat_repo
        self._tz = tz
        self._priority_limit = priority_limit

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_dashboard_stats(self, ctx: AuthContext) -> ServiceResult[DashboardStats]:
        try:
            return ServiceResult(success=True, data=self._stats(ctx.user_id))
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("get_dashboard_stats", exc, ctx)

    def get_reminder_buckets(
        self, ctx: AuthContext, now: Optional[datetime] = None,
    ) -> ServiceResult[ReminderBuckets]:
        try:
            return ServiceResult(success=True, data=self._buckets(ctx.user_id, self._now(now)))
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("get_reminder_buckets", exc, ctx)

    def get_priority_reminders(
        self, ctx: AuthContext, now: Optional[datetime] = None,
    ) -> ServiceResult[list[PriorityReminder]]:
        """At most ``priority_limit`` reminders: overdue, today, tomorrow, this week."""
        try:
            current = self._now(now)
            buckets = self._buckets(ctx.user_id, current)
            return ServiceResult(success=True, data=self._priority(buckets, current))
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("get_priority_reminders", exc, ctx)

    def get_dashboard(
        self, ctx: AuthContext, now: Optional[datetime] = None,
    ) -> ServiceResult[Dashboard]:
        """
        Consolidated fetch -- stats, reminder buckets and priority list.

        All three are computed against the same *now*.
        """
        try:
            current = self._now(now)
            buckets = self._buckets(ctx.user_id, current)
            dashboard = Dashboard(
                stats=self._stats(ctx.user_id),
                reminders=buckets,
                priority=self._priority(buckets, current),
            )
            return ServiceResult(success=True, data=dashboard)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("get_dashboard", exc, ctx)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _now(now: Optional[datetime]) -> datetime:
        return now if now is not None else datetime.now(timezone.utc)

    def _stats(self, owner_id: str) -> DashboardStats:
        portfolio = sum(
            (
                amount if amount is not None else parse_legacy_price(label)
                for amount, label in self._boat_repo.list_prices(owner_id)
            ),
            Decimal(0),
        )
        return DashboardStats(
            client_count=self._client_repo.count_by_owner(owner_id),
            boat_count=self._boat_repo.count_by_owner(owner_id),
            portfolio_value=portfolio,
            total_active_reminders=self._client_repo.count_reminders(owner_id),
        )

    def _buckets(self, owner_id: str, now: datetime) -> ReminderBuckets:
        clients = self._client_repo.list_with_reminders(owner_id)
        return categorize_reminders(clients, now, self._tz)

    def _priority(self, buckets: ReminderBuckets, now: datetime) -> list[PriorityReminder]:
        return build_priority_list(buckets, self._priority_limit, now, self._tz)
