import uuid

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app

ADMIN = {"user": "admin@example.com", "password": "s3cret", "role": "admin"}


@pytest.fixture
def mongo(monkeypatch):
    mongo_client = mongomock.MongoClient()
    monkeypatch.setattr(database, "MongoClient", lambda *args, **kwargs: mongo_client)
    return mongo_client


@pytest.fixture
def env(monkeypatch):
    db_name = f"catalog_test_{uuid.uuid4().hex[:8]}"
    monkeypatch.setenv("DATABASE_URL", "mongodb://localhost:27017")
    monkeypatch.setenv("DATABASE_NAME", db_name)
    monkeypatch.setenv("ADMIN_USER", ADMIN["user"])
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN["password"])
    monkeypatch.setenv("ADMIN_ROLE", ADMIN["role"])
    return db_name


@pytest.fixture
def client(mongo, env):
    with TestClient(app) as test_client:
        yield test_client
    mongo.drop_database(env)


@pytest.fixture
def catalog(client):
    return client.app.state.catalog
