"""
Shared test configuration.
Component tests run against an in-memory SQLite database; API tests drive the
FastAPI app through TestClient with bearer tokens minted by create_access_token.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from fastapi.testclient import TestClient  # noqa: E402

from marketplace.core.config import Settings  # noqa: E402
from marketplace.core.security import Identity, create_access_token  # noqa: E402
from marketplace.db.base import Database  # noqa: E402
from marketplace.schemas.category import CategoryCreate  # noqa: E402
from marketplace.schemas.client import ClientCreate  # noqa: E402
from marketplace.schemas.provider import ProviderCreate  # noqa: E402
from marketplace.schemas.service import ServiceCreate  # noqa: E402
from marketplace.services.category_service import CategoryService  # noqa: E402
from marketplace.services.client_service import ClientService  # noqa: E402
from marketplace.services.provider_service import ProviderService  # noqa: E402
from marketplace.services.service_lifecycle import ServiceLifecycleService  # noqa: E402


@pytest.fixture(autouse=True)
def base_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from any local .env or database file."""

    defaults = {
        "ENV": "test",
        "LOG_LEVEL": "WARNING",
        "DATABASE_URL": "sqlite://",
        "SECRET_KEY": "test-secret",
    }
    for key, value in defaults.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        database_url="sqlite://",
        log_level="WARNING",
        secret_key="test-secret",
        default_page_size=2,
        max_page_size=5,
    )


@pytest.fixture
def database() -> Database:
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def session(database: Database):
    db = database.session()
    yield db
    db.close()


@pytest.fixture
def categories(session) -> CategoryService:
    return CategoryService(session)


@pytest.fixture
def lifecycle(session, categories) -> ServiceLifecycleService:
    return ServiceLifecycleService(session, categories)


@pytest.fixture
def providers(session) -> ProviderService:
    return ProviderService(session)


@pytest.fixture
def clients(session) -> ClientService:
    return ClientService(session)


def _service_payload(category_id: str, **overrides) -> ServiceCreate:
    data = {
        "title": "Deep clean",
        "description": "Whole-home deep cleaning",
        "category_id": category_id,
        "pricing": {"base_price": 120.0, "currency": "USD"},
        "locations": ["Accra"],
        "tags": ["Home", "cleaning"],
    }
    data.update(overrides)
    return ServiceCreate(**data)


def _provider_payload(email: str = "ama@example.com", **overrides) -> ProviderCreate:
    data = {
        "full_name": "Ama Mensah",
        "contact_details": {"primary_contact": "+233201234567", "email": email},
        "location": {"region": "Greater Accra", "city": "Accra", "district": "Osu"},
        "witnesses": [
            {
                "full_name": "Kofi Mensah",
                "contact": "+233207654321",
                "id_type": "passport",
                "id_number": "G1234567",
                "relationship": "brother",
            }
        ],
    }
    data.update(overrides)
    return ProviderCreate(**data)


def _client_payload(email: str = "kwame@example.com", **overrides) -> ClientCreate:
    data = {
        "full_name": "Kwame Boateng",
        "contact_details": {"primary_contact": "+233241112223", "email": email},
        "location": {"region": "Ashanti", "city": "Kumasi"},
        "id_details": {"id_type": "ghana-card", "id_number": "GHA-123"},
    }
    data.update(overrides)
    return ClientCreate(**data)


@pytest.fixture
def category(categories):
    return categories.create_category(**CategoryCreate(name="Cleaning").model_dump())


@pytest.fixture
def provider(providers):
    return providers.create_provider("user-provider", _provider_payload())


@pytest.fixture
def client_profile(clients):
    return clients.create_client("user-client", _client_payload())


@pytest.fixture
def service_input():
    return _service_payload


@pytest.fixture
def provider_input():
    return _provider_payload


@pytest.fixture
def client_input():
    return _client_payload


# API wiring

@pytest.fixture
def app(settings: Settings, database: Database):
    from marketplace.core.config import get_settings
    from marketplace.main import create_app

    application = create_app(settings=settings, database=database)
    application.dependency_overrides[get_settings] = lambda: settings
    return application


@pytest.fixture
def api(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(settings: Settings):
    def build(user_id: str, email: str | None = None) -> dict:
        identity = Identity(user_id=user_id, email=email or f"{user_id}@example.com")
        return {"Authorization": f"Bearer {create_access_token(identity, settings)}"}

    return build
