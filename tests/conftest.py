import pytest
from fastapi.testclient import TestClient

from messages_api.config import Settings
from messages_api.main import create_app


@pytest.fixture
def settings():
    return Settings({"DATABASE_URL": "sqlite://", "SHUTDOWN_TIMEOUT": "1"})


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def unreachable_settings(tmp_path):
    # sqlite cannot create a file inside a directory that does not exist
    url = f"sqlite:///{tmp_path / 'missing' / 'messages.db'}"
    return Settings({"DATABASE_URL": url, "SHUTDOWN_TIMEOUT": "1"})
