import mongomock
import pytest
from fastapi.testclient import TestClient

from main import create_app
from settings import Settings


@pytest.fixture()
def settings():
    return Settings(environment="test", static_dir="does-not-exist")


@pytest.fixture()
def app(settings):
    return create_app(settings, client=mongomock.MongoClient())


@pytest.fixture()
def client(app):
    """Client with the lifespan entered, so the database handle is ready."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def accounts(app, client):
    return app.state.database.collection()
