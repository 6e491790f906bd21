"""
Authentication Guard Decorator.

Gates request-layer methods behind a validated session.  The decorated
method receives the :class:`~yachtcrm.auth.AuthContext` in place of the
raw token; a missing or invalid token short-circuits into a failed
``ServiceResult`` without touching the service layer.

Usage::

    class BrokerAPI:
        def __init__(self, identity: IdentityProvider, ...) -> None:
            self._identity = identity

        @require_auth
        def list_clients(self, ctx: AuthContext) -> ServiceResult[list[Client]]:
            ...

    api.list_clients(token)
"""

from __future__ import annotations

from functools import wraps
from typing import Callable, Concatenate, Optional, ParamSpec, Protocol, TypeVar

from yachtcrm.auth import AuthContext, IdentityProvider
from yachtcrm.errors import CRMError
from yachtcrm.models.service_models import ServiceResult

P = ParamSpec("P")
R = TypeVar("R")


class HasIdentity(Protocol):
    _identity: IdentityProvider


S = TypeVar("S", bound=HasIdentity)


def require_auth(
    func: Callable[Concatenate[S, AuthContext, P], ServiceResult[R]],
) -> Callable[Concatenate[S, Optional[str], P], ServiceResult[R]]:
    """Validate the session token through ``self._identity`` before *func* runs.

    Returns a failed ``ServiceResult`` (401 for a refused session, 503/504
    when the identity provider cannot be reached) instead of raising.
    """

    @wraps(func)
    def wrapper(
        self: S, token: Optional[str], *args: P.args, **kwargs: P.kwargs,
    ) -> ServiceResult[R]:
        try:
            ctx = self._identity.validate_session(token)
        except CRMError as exc:
            return ServiceResult(
                success=False,
                error=exc.message,
                error_code=exc.code,
                status_code=exc.status_code,
            )
        return func(self, ctx, *args, **kwargs)

    return wrapper
