import pytest
from httpx import ASGITransport, AsyncClient

from quickstage import api
from quickstage.api.auth import authenticated_user
from quickstage.api.common import get_store
from quickstage.config import Settings, get_settings
from quickstage.models import User
from tests.tools import MemoryObjectStore

BASE_DOMAIN = "quick-stage.app"
ME_URL = "http://mock-identity.test/api/auth/me"


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        base_domain=BASE_DOMAIN,
        main_hosts=f"{BASE_DOMAIN},www.{BASE_DOMAIN}",
        oauth_me_url=ME_URL,
        max_upload_mb=1,
        max_unpacked_mb=5,
    )


@pytest.fixture()
def store() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture()
def user() -> User:
    return User(id="user-1", email="tester@quick-stage.app", name="Tester")


@pytest.fixture()
async def client(settings, store):
    """API client with settings and object storage replaced by the test fixtures (real authentication)"""
    api.app.dependency_overrides[get_settings] = lambda: settings
    api.app.dependency_overrides[get_store] = lambda: store
    try:
        async with AsyncClient(transport=ASGITransport(app=api.app), base_url="http://test") as client:
            yield client
    finally:
        api.app.dependency_overrides.clear()


@pytest.fixture()
async def authed_client(client, user):
    """As client, but every request is authenticated as user"""
    api.app.dependency_overrides[authenticated_user] = lambda: user
    yield client
