"""
Test configuration and fixtures.
Environment is set before the application is imported so that the cached
settings pick it up.
"""

import os
from pathlib import Path

ADMIN_PASSWORD = "correct-horse"
TEST_DB = Path("test_linkly.db")

os.environ["ADMIN_PASSWORD"] = ADMIN_PASSWORD
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///./{TEST_DB}"
os.environ["LOGIN_FAILURE_DELAY_SECONDS"] = "0.05"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["GEO_LOOKUP_ENABLED"] = "false"
os.environ["BASE_URL"] = "http://localhost:3000/"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from linkly.main import app  # noqa: E402


def remove_test_db() -> None:
    for suffix in ("", "-wal", "-shm"):
        Path(f"{TEST_DB}{suffix}").unlink(missing_ok=True)


@pytest.fixture(scope="function")
def client():
    """
    Test client running the full application lifespan against a fresh
    SQLite file.
    """
    remove_test_db()
    with TestClient(app) as test_client:
        yield test_client
    remove_test_db()


@pytest.fixture(scope="function")
def auth_client(client):
    """Test client logged in as the admin."""
    response = client.post("/api/v1/auth/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    client.headers["Authorization"] = f"Bearer {response.json()['access_token']}"
    return client
