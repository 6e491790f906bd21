"""
Authentication Context & Identity Providers.

Every request carries a session token.  An :class:`IdentityProvider`
validates it and returns an :class:`AuthContext`, which is passed
explicitly to the service layer; nothing holds ambient session state.

Two providers are available:

- :class:`SupabaseIdentityProvider` asks Supabase Auth (``auth.get_user``)
  whether the access token is valid.  Requires network access.
- :class:`JWTIdentityProvider` verifies the Supabase access token locally
  with the project's JWT secret (``python-jose``), without a round trip.

Usage::

    from yachtcrm.auth import build_identity_provider

    identity = build_identity_provider(config, db, logger)
    ctx = identity.validate_session(token)   # raises UnauthorizedError
"""

from __future__ import annotations

from typing import Optional, Protocol, Union

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from pydantic import BaseModel, Field

from yachtcrm.config import AppConfig
from yachtcrm.database import DatabaseManager
from yachtcrm.errors import UnauthorizedError, UpstreamUnavailableError
from yachtcrm.logger import StructuredLogger

ClaimValue = Union[str, int, float, bool, None, list, dict]


class AuthContext(BaseModel):
    """The validated caller of one request."""

    user_id: str
    email: str = ""
    name: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    claims: dict[str, ClaimValue] = Field(default_factory=dict)

    @classmethod
    def from_metadata(
        cls,
        user_id: str,
        email: object,
        metadata: object,
    ) -> "AuthContext":
        """Build a context from the identity provider's user metadata.

        Name falls back from ``full_name`` to ``name``; company and phone
        are read when present.  Metadata that is not a mapping is ignored,
        as is a non-string email.
        """
        if not isinstance(metadata, dict):
            metadata = {}
        name = metadata.get("full_name") or metadata.get("name")
        company = metadata.get("company")
        phone = metadata.get("phone")
        return cls(
            user_id=user_id,
            email=email if isinstance(email, str) else "",
            name=str(name) if name else None,
            company=str(company) if company else None,
            phone=str(phone) if phone else None,
            claims=dict(metadata),
        )


class IdentityProvider(Protocol):
    """Turns a session token into an :class:`AuthContext`."""

    def validate_session(self, token: Optional[str]) -> AuthContext:
        """Raise :class:`UnauthorizedError` when the token is missing or invalid,
        :class:`UpstreamUnavailableError` when validation itself is impossible."""
        ...


class SupabaseIdentityProvider:
    """Validates access tokens with Supabase Auth."""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    def validate_session(self, token: Optional[str]) -> AuthContext:
        if not token:
            raise UnauthorizedError()
        if not self._db.has_supabase:
            self._logger.error("Session validation requested but Supabase is not configured.")
            raise UpstreamUnavailableError("Identity provider is not configured.")

        try:
            response = self._db.supabase.auth.get_user(token)
        except Exception as exc:
            # Auth API errors carry an HTTP status; transport failures do not.
            status: Optional[int] = getattr(exc, "status", None)
            if status is not None and status < 500:
                self._logger.warning(
                    "Session rejected by identity provider (%s): %s", status, exc,
                    extra={"event": "SESSION_REJECTED"},
                )
                raise UnauthorizedError(original_error=exc) from exc
            self._logger.error(
                "Identity provider unavailable: %s", exc,
                extra={"event": "IDENTITY_UNAVAILABLE"},
            )
            raise UpstreamUnavailableError(original_error=exc) from exc

        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise UnauthorizedError()

        return AuthContext.from_metadata(
            user_id=str(user.id),
            email=user.email,
            metadata=user.user_metadata,
        )


class JWTIdentityProvider:
    """Verifies Supabase access tokens locally.

    The signature, ``exp`` and ``aud`` claims are checked by
    :func:`jose.jwt.decode`; the subject (``sub``) must be present.
    """

    def __init__(
        self,
        secret: str,
        logger: StructuredLogger,
        algorithm: str = "HS256",
        audience: Optional[str] = "authenticated",
    ) -> None:
        if not secret:
            raise ValueError("JWTIdentityProvider requires a signing secret")
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience or None
        self._logger = logger

    def validate_session(self, token: Optional[str]) -> AuthContext:
        if not token:
            raise UnauthorizedError()

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                options={"verify_aud": self._audience is not None},
            )
        except ExpiredSignatureError as exc:
            self._logger.info("Session token expired.", extra={"event": "SESSION_EXPIRED"})
            raise UnauthorizedError("Session expired", original_error=exc) from exc
        except (JWTClaimsError, JWTError) as exc:
            self._logger.warning(
                "Invalid session token: %s", exc, extra={"event": "SESSION_REJECTED"},
            )
            raise UnauthorizedError(original_error=exc) from exc

        subject = payload.get("sub")
        if not subject:
            raise UnauthorizedError()

        return AuthContext.from_metadata(
            user_id=str(subject),
            email=payload.get("email"),
            metadata=payload.get("user_metadata"),
        )


def build_identity_provider(
    config: AppConfig,
    db: DatabaseManager,
    logger: StructuredLogger,
) -> IdentityProvider:
    """Local JWT verification when a secret is configured, Supabase otherwise."""
    secret = config.SUPABASE_JWT_SECRET.get_secret_value()
    if secret:
        return JWTIdentityProvider(
            secret=secret,
            logger=logger,
            algorithm=config.JWT_ALGORITHM,
            audience=config.JWT_AUDIENCE,
        )
    return SupabaseIdentityProvider(db=db, logger=logger)
