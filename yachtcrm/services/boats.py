"""
Boat Service.

Turns boat form payloads into validated, owner-scoped listings.

Business rules:
    - ``model`` (1-100 chars) and ``price`` are mandatory on create.
    - Price input is stripped to digits and dots and must lie in
      ``(0, 1e9]``; currency is ``EUR``, ``USD`` or ``GBP`` (default EUR).
    - Year within ``[1900, current year + 1]``; size in ``(0, 200]`` feet,
      rounded to a whole number; engine hours a non-negative integer.
    - Images arrive as already-stored references and/or raw uploads.  Raw
      uploads are stored first; if any is rejected, or the boat write
      fails afterwards, every blob stored for the request is deleted again.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Mapping, Optional

from yachtcrm.auth import AuthContext
from yachtcrm.database import DatabaseManager
from yachtcrm.errors import (
    CRMError,
    NotFoundOrForbiddenError,
    UploadRejectedError,
    UpstreamUnavailableError,
)
from yachtcrm.logger import StructuredLogger
from yachtcrm.models.boat import Boat, BoatForm, BoatSearch, BoatUpdateForm, ImageRef, format_price
from yachtcrm.models.enums import Currency
from yachtcrm.models.service_models import ServiceResult
from yachtcrm.models.upload import UploadFile, UploadOutcome
from yachtcrm.repositories.boat_repository import BoatRepository
from yachtcrm.services.base_service import BaseService
from yachtcrm.services.uploads import ImageUploadService
from yachtcrm.services.user_provisioning import UserProvisioningService

FormPayload = Mapping[str, object]

# Plain-text fields copied verbatim from the form when non-empty.
_TEXT_FIELDS: tuple[str, ...] = (
    "model",
    "brand",
    "location",
    "description",
    "equipment",
    "owner",
    "engine",
)


class BoatService(BaseService):
    """Service layer for a broker's boat listings."""

    def __init__(
        self,
        repo: BoatRepository,
        uploads: ImageUploadService,
        provisioning: UserProvisioningService,
        logger: StructuredLogger,
        db: Optional[DatabaseManager] = None,
    ) -> None:
        super().__init__(logger, db)
        self._repo = repo
        self._uploads = uploads
        self._provisioning = provisioning

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_boats(self, ctx: AuthContext) -> ServiceResult[list[Boat]]:
        try:
            return ServiceResult(success=True, data=self._repo.list_by_owner(ctx.user_id))
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("list_boats", exc, ctx)

    def get_boat(self, ctx: AuthContext, boat_id: str) -> ServiceResult[Boat]:
        try:
            boat = self._repo.get_by_id_for_owner(boat_id, ctx.user_id)
            if boat is None:
                raise NotFoundOrForbiddenError()
            return ServiceResult(success=True, data=boat)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("get_boat", exc, ctx, boat_id)

    def search_boats(
        self, ctx: AuthContext, criteria: Optional[FormPayload] = None,
    ) -> ServiceResult[list[Boat]]:
        try:
            search = self._validate(BoatSearch, self._normalize(criteria))
            return ServiceResult(success=True, data=self._repo.search(ctx.user_id, search))
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("search_boats", exc, ctx)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_boat(
        self,
        ctx: AuthContext,
        form: FormPayload,
        uploads: Optional[Sequence[UploadFile]] = None,
    ) -> ServiceResult[Boat]:
        try:
            self._provisioning.ensure_user(ctx)

            payload = self._normalize(form)
            self._require(payload, ("model",), "Boat model is required")
            self._require(payload, ("price",), "Price is required")
            validated = self._validate(BoatForm, payload)

            data: dict[str, object] = {
                "user_id": ctx.user_id,
                "model": validated.model,
                "brand": validated.brand,
                "year": validated.year,
                "size": validated.size,
                "price": format_price(validated.price, validated.currency),
                "price_amount": validated.price,
                "price_currency": validated.currency,
                "location": validated.location,
                "description": validated.description,
                "equipment": validated.equipment,
                "owner": validated.owner,
                "engine": validated.engine,
                "engine_hours": validated.engine_hours,
            }

            outcomes = self._store_uploads(uploads)
            data["images"] = [*validated.images, *self._refs(outcomes)]
            try:
                boat = self._repo.create(data)
            except Exception:
                self._uploads.discard(outcomes)
                raise

            self._audit(
                action="CREATE",
                entity_type="Boat",
                entity_id=boat.id,
                user_id=ctx.user_id,
                details={"model": boat.model, "images": len(boat.images)},
            )
            return ServiceResult(success=True, data=boat, status_code=201)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("create_boat", exc, ctx)

    def update_boat(
        self,
        ctx: AuthContext,
        boat_id: str,
        form: FormPayload,
        uploads: Optional[Sequence[UploadFile]] = None,
    ) -> ServiceResult[Boat]:
        """Apply the non-empty fields of *form*; new images are appended.

        A new price without a currency keeps the boat's current currency.
        A currency alone re-labels the existing amount.
        """
        try:
            validated = self._validate(BoatUpdateForm, self._normalize(form))

            existing = self._repo.get_by_id_for_owner(boat_id, ctx.user_id)
            if existing is None:
                raise NotFoundOrForbiddenError()

            patch: dict[str, object] = {}
            for field in _TEXT_FIELDS:
                value = getattr(validated, field)
                if value:
                    patch[field] = value
            if validated.year:
                patch["year"] = validated.year
            if validated.size:
                patch["size"] = validated.size
            if validated.engine_hours:
                patch["engine_hours"] = validated.engine_hours

            amount = validated.price or existing.price_amount
            if validated.price or (validated.currency and amount is not None):
                currency = validated.currency or existing.price_currency or Currency.EUR
                patch["price_amount"] = amount
                patch["price_currency"] = currency
                patch["price"] = format_price(amount, currency)  # type: ignore[arg-type]

            outcomes = self._store_uploads(uploads)
            images = [*validated.images, *self._refs(outcomes)]
            if images:
                patch["images"] = images

            if not patch:
                return ServiceResult(success=True, data=existing)

            try:
                boat = self._repo.update_for_owner(boat_id, ctx.user_id, patch)
            except Exception:
                self._uploads.discard(outcomes)
                raise

            self._audit(
                action="UPDATE",
                entity_type="Boat",
                entity_id=boat_id,
                user_id=ctx.user_id,
                details={"fields": ",".join(sorted(patch))},
            )
            return ServiceResult(success=True, data=boat)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("update_boat", exc, ctx, boat_id)

    def delete_boat(self, ctx: AuthContext, boat_id: str) -> ServiceResult[None]:
        try:
            self._repo.delete_for_owner(boat_id, ctx.user_id)
            self._audit(
                action="DELETE",
                entity_type="Boat",
                entity_id=boat_id,
                user_id=ctx.user_id,
            )
            return ServiceResult(success=True)
        except CRMError as exc:
            return self._fail(exc)
        except Exception as exc:
            return self._unexpected("delete_boat", exc, ctx, boat_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _store_uploads(self, uploads: Optional[Sequence[UploadFile]]) -> list[UploadOutcome]:
        """Store raw uploads; all-or-nothing for the request."""
        if not uploads:
            return []
        outcomes = self._uploads.store(uploads)
        failed = [outcome for outcome in outcomes if not outcome.success]
        if failed:
            self._uploads.discard(outcomes)
            first = failed[0]
            if first.error_code == UploadRejectedError.code:
                raise UploadRejectedError(f"{first.original_filename}: {first.error}")
            raise UpstreamUnavailableError(f"{first.original_filename}: {first.error}")
        return outcomes

    @staticmethod
    def _refs(outcomes: Sequence[UploadOutcome]) -> list[ImageRef]:
        return [outcome.image for outcome in outcomes if outcome.image is not None]
