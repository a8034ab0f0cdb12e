# socialgen/conftest.py
import pytest
from fastapi.testclient import TestClient

from socialgen.core.database import dispose_engine, init_engine, reset_database
from socialgen.features.auth_providers.service import AuthConfig


@pytest.fixture(scope="function", autouse=True)
def db_url(tmp_path, monkeypatch):
    """
    Bind every test to its own SQLite file database.

    A file (not :memory:) so that concurrent sessions from worker threads
    see the same data and serialize on the database lock.
    """
    url = f"sqlite:///{tmp_path / 'socialgen-test.db'}"
    monkeypatch.setenv("TEST_DATABASE_URL", url)
    init_engine(url)
    reset_database()
    yield url
    dispose_engine()


@pytest.fixture
def app(db_url):
    from socialgen.main import create_app
    return create_app(auth_config=AuthConfig())


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_headers():
    return {"X-User-Id": "user_alice"}


@pytest.fixture(autouse=True)
def shared_secrets(monkeypatch):
    monkeypatch.setenv("WEBHOOK_SECRET", "whsec_test")
    monkeypatch.setenv("ADMIN_API_KEY", "admin_test")


@pytest.fixture
def webhook_headers():
    return {"X-Webhook-Secret": "whsec_test"}


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": "admin_test"}
