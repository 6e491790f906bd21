"""
Business Logic Services Package.

Services depend on the Repository layer for data access and receive the
caller's :class:`~yachtcrm.auth.AuthContext` explicitly on every call.

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that the request layer (:class:`~yachtcrm.api.BrokerAPI`,
the CLI) can consume without knowing the internal dependency graph.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Optional, TypedDict
from zoneinfo import ZoneInfo

from yachtcrm.config import AppConfig
from yachtcrm.database import DatabaseManager
from yachtcrm.logger import get_logger
from yachtcrm.repositories.boat_repository import BoatRepository
from yachtcrm.repositories.client_repository import ClientRepository
from yachtcrm.repositories.user_repository import UserRepository
from yachtcrm.services.boats import BoatService
from yachtcrm.services.clients import ClientService
from yachtcrm.services.dashboard import DashboardService
from yachtcrm.services.uploads import ImageUploadService
from yachtcrm.services.user_provisioning import UserProvisioningService
from yachtcrm.storage import BlobStore, build_blob_store


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    provisioning_service: UserProvisioningService
    client_service: ClientService
    boat_service: BoatService
    upload_service: ImageUploadService
    dashboard_service: DashboardService


def resolve_timezone(name: str) -> Optional[tzinfo]:
    """``ZoneInfo`` for *name*; ``None`` (system local) when blank."""
    return ZoneInfo(name) if name else None


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    blob_store: Optional[BlobStore] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    entry-point calls this once at startup and hands the returned dict to
    the request layer.

    Args:
        db: Initialised DatabaseManager with the SQLite schema in place.
        config: Application configuration.
        blob_store: Image store override; built from *config* when omitted.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("services")
    tz = resolve_timezone(config.TIMEZONE)

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    user_repo = UserRepository(db=db, logger=logger)
    client_repo = ClientRepository(db=db, logger=logger)
    boat_repo = BoatRepository(db=db, logger=logger)

    # ------------------------------------------------------------------
    # 2. Leaf services (no service dependencies)
    # ------------------------------------------------------------------
    provisioning_service = UserProvisioningService(
        repo=user_repo,
        logger=logger,
        db=db,
    )
    upload_service = ImageUploadService(
        store=blob_store or build_blob_store(config, db, get_logger("storage")),
        logger=logger,
        max_bytes=config.MAX_UPLOAD_BYTES,
        max_workers=config.UPLOAD_WORKERS,
    )
    dashboard_service = DashboardService(
        client_repo=client_repo,
        boat_repo=boat_repo,
        logger=logger,
        tz=tz,
        priority_limit=config.REMINDER_PRIORITY_LIMIT,
    )

    # ------------------------------------------------------------------
    # 3. Orchestration services (depend on other services)
    # ------------------------------------------------------------------
    client_service = ClientService(
        repo=client_repo,
        provisioning=provisioning_service,
        logger=logger,
        db=db,
        tz=tz,
    )
    boat_service = BoatService(
        repo=boat_repo,
        uploads=upload_service,
        provisioning=provisioning_service,
        logger=logger,
        db=db,
    )

    return ServiceContainer(
        provisioning_service=provisioning_service,
        client_service=client_service,
        boat_service=boat_service,
        upload_service=upload_service,
        dashboard_service=dashboard_service,
    )
