"""Shared pytest fixtures and configuration."""

import os
from datetime import timezone
from typing import Optional

import pytest

# Set test environment variables before any configuration is read.
os.environ["LOG_FILE"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_JWT_SECRET"] = ""
os.environ["TIMEZONE"] = "UTC"

from yachtcrm.api import BrokerAPI  # noqa: E402
from yachtcrm.auth import AuthContext  # noqa: E402
from yachtcrm.config import AppConfig, reset_config  # noqa: E402
from yachtcrm.database import DatabaseManager  # noqa: E402
from yachtcrm.errors import UnauthorizedError  # noqa: E402
from yachtcrm.logger import StructuredLogger  # noqa: E402
from yachtcrm.repositories import BoatRepository, ClientRepository, UserRepository  # noqa: E402
from yachtcrm.schema import initialize_schema  # noqa: E402
from yachtcrm.services import ServiceContainer, create_services  # noqa: E402
from yachtcrm.storage import LocalBlobStore  # noqa: E402

from tests.utils.factories import create_auth_context  # noqa: E402


class FakeIdentityProvider:
    """Identity provider backed by a token -> context dict."""

    def __init__(self) -> None:
        self.sessions: dict[str, AuthContext] = {}

    def register(self, token: str, ctx: AuthContext) -> None:
        self.sessions[token] = ctx

    def validate_session(self, token: Optional[str]) -> AuthContext:
        if not token or token not in self.sessions:
            raise UnauthorizedError()
        return self.sessions[token]


@pytest.fixture(autouse=True)
def _fresh_config():
    """Re-read the environment for every test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def logger():
    return StructuredLogger(name="tests")


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        SQLITE_PATH=":memory:",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        LOG_FILE="",
        TIMEZONE="UTC",
    )


@pytest.fixture
def db(logger):
    """In-memory store with the current schema."""
    manager = DatabaseManager(
        supabase_url="",
        supabase_key="",
        sqlite_path=":memory:",
        logger=logger,
    )
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def user_repo(db, logger):
    return UserRepository(db=db, logger=logger)


@pytest.fixture
def client_repo(db, logger):
    return ClientRepository(db=db, logger=logger)


@pytest.fixture
def boat_repo(db, logger):
    return BoatRepository(db=db, logger=logger)


@pytest.fixture
def blob_store(tmp_path, logger):
    return LocalBlobStore(root=tmp_path / "uploads", url_prefix="/uploads/boats", logger=logger)


@pytest.fixture
def services(db, config, blob_store) -> ServiceContainer:
    return create_services(db=db, config=config, blob_store=blob_store)


@pytest.fixture
def client_service(services):
    return services["client_service"]


@pytest.fixture
def boat_service(services):
    return services["boat_service"]


@pytest.fixture
def dashboard_service(services):
    return services["dashboard_service"]


@pytest.fixture
def upload_service(services):
    return services["upload_service"]


@pytest.fixture
def broker():
    """The calling broker."""
    return create_auth_context(name="Ana Broker")


@pytest.fixture
def other_broker():
    """A second, unrelated broker."""
    return create_auth_context(name="Other Broker")


@pytest.fixture
def provisioned(services, broker, other_broker):
    """Both brokers have a ``users`` row (repository tests need the FK)."""
    services["provisioning_service"].ensure_user(broker)
    services["provisioning_service"].ensure_user(other_broker)
    return broker, other_broker


@pytest.fixture
def identity(broker, other_broker):
    provider = FakeIdentityProvider()
    provider.register("token-broker", broker)
    provider.register("token-other", other_broker)
    return provider


@pytest.fixture
def api(identity, services):
    return BrokerAPI(identity=identity, services=services)


@pytest.fixture
def utc():
    return timezone.utc
