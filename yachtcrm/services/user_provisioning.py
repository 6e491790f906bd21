"""
Just-in-Time User Provisioning Service.

Brokers sign in through the identity provider; their ``users`` row is
created lazily the first time they write data (get-or-create).

Provisioning strategy:
    - Lookup by the identity provider's subject id (primary key).
    - New accounts are always created with ``role=BROKER``; the role is
      never taken from session claims.
    - Race handling: if the insert fails because a concurrent request
      created the row first, the lookup is retried once.
    - Failure raises :class:`UserProvisioningError`, which callers surface
      as an upstream failure.
"""

from __future__ import annotations

from typing import Optional

from yachtcrm.auth import AuthContext
from yachtcrm.database import DatabaseManager
from yachtcrm.errors import CRMError, UpstreamUnavailableError
from yachtcrm.logger import StructuredLogger
from yachtcrm.models.enums import UserRole
from yachtcrm.models.user import User
from yachtcrm.repositories.user_repository import UserRepository
from yachtcrm.services.base_service import BaseService


class UserProvisioningError(UpstreamUnavailableError):
    """The broker's account row could not be found or created."""

    default_message = "Could not provision your account. Please try again."


class UserProvisioningService(BaseService):
    """Makes sure the authenticated broker has a ``users`` row."""

    def __init__(
        self,
        repo: UserRepository,
        logger: StructuredLogger,
        db: Optional[DatabaseManager] = None,
    ) -> None:
        super().__init__(logger, db)
        self._repo = repo

    def ensure_user(self, ctx: AuthContext) -> User:
        """Return the broker's account, creating it from *ctx* if absent.

        Raises:
            UserProvisioningError: If the account can be neither read nor
                created.
        """
        try:
            existing: Optional[User] = self._repo.get_by_id(ctx.user_id)
            if existing is not None:
                return existing
            return self._provision_new_user(ctx)
        except UserProvisioningError:
            raise
        except CRMError as exc:
            self._logger.error(
                "Provisioning: store error for user %s: %s", ctx.user_id, exc,
            )
            raise UserProvisioningError(original_error=exc) from exc

    # ------------------------------------------------------------------
    # Private implementation
    # ------------------------------------------------------------------

    def _provision_new_user(self, ctx: AuthContext) -> User:
        self._logger.info("Provisioning: creating account for user %s", ctx.user_id)

        new_user = User(
            id=ctx.user_id,
            email=ctx.email or f"{ctx.user_id}@users.invalid",
            name=ctx.name,
            company=ctx.company,
            phone=ctx.phone,
            role=UserRole.BROKER,
        )

        try:
            user, created = self._repo.get_or_create(new_user)
        except CRMError as exc:
            # Possible race (or email already held by another account).
            self._logger.warning(
                "Provisioning: insert failed for %s, retrying lookup: %s",
                ctx.user_id,
                exc,
            )
            retried: Optional[User] = self._repo.get_by_id(ctx.user_id)
            if retried is None:
                raise UserProvisioningError(original_error=exc) from exc
            self._logger.info("Provisioning: user %s found on retry.", ctx.user_id)
            return retried

        if created:
            self._audit(
                action="PROVISION",
                entity_type="User",
                entity_id=user.id,
                user_id=user.id,
                details={"email": user.email, "role": str(user.role)},
            )
        return user
