"""Shared test fixtures for Labgate."""

import os
import pytest
from httpx import ASGITransport, AsyncClient


SECRET_KEY = "test-token-secret-for-unit-tests"
AUDIT_KEY = "test-audit-key-for-unit-tests"
PASSWORD = "correct-horse"


@pytest.fixture
def app():
    """Create a test app with in-memory DB."""
    os.environ["LABGATE_DB_URL"] = "sqlite+aiosqlite://"
    os.environ["LABGATE_SECRET_KEY"] = SECRET_KEY
    os.environ["LABGATE_AUDIT_HMAC_KEY"] = AUDIT_KEY
    os.environ["LABGATE_EMAIL_PROVIDER"] = ""

    # Clear caches and singletons so new env vars take effect
    from labgate.common.config import get_settings
    get_settings.cache_clear()

    from labgate.deps import reset_singletons
    reset_singletons()

    from labgate.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from labgate.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def make_user(client):
    """Insert a user straight into the credential store."""
    from labgate.deps import get_db, get_user_service

    async def _make(email, role="administrator", password=PASSWORD, name="Test User"):
        async with get_db().get_session() as session:
            return await get_user_service().create_user(
                session, email, name, role, password,
            )

    return _make


@pytest.fixture
def login(client):
    """Log in through the API and return bearer headers."""

    async def _login(email, password=PASSWORD):
        resp = await client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _login


@pytest.fixture
async def admin_headers(make_user, login):
    await make_user("admin@calibra.com.br", role="administrator", name="Ana Admin")
    return await login("admin@calibra.com.br")
