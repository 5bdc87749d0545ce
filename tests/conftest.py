import pytest
from fastapi.testclient import TestClient

from notex_website.backend.config import Settings
from notex_website.backend.main import create_app
from notex_website.backend.services import AuthService, Storage


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        users_db=str(tmp_path / "users.db"),
        notes_db=str(tmp_path / "notes.db"),
        log_level="DEBUG",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def _login(client, email, password="secret123"):
    client.post("/api/auth/register", json={"email": email, "password": password})
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return _login(client, "alice@example.com")


@pytest.fixture
def other_headers(client):
    return _login(client, "bob@example.com")


@pytest.fixture
def store(tmp_path):
    return Storage(str(tmp_path / "notes.db"))


@pytest.fixture
def auth(tmp_path):
    return AuthService(str(tmp_path / "users.db"))
