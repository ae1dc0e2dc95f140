import os

# Must be set before studentjobs reads its settings
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("MONGODB_DB", "studentjobs_test")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import mongomock
import pytest
from fastapi.testclient import TestClient

from studentjobs.db.mongodb import get_mongo_db, init_mongo_indexes, set_mongo_client
from tests import factories


@pytest.fixture(autouse=True)
def mongo():
    """Fresh in-memory database (with the real indexes) for every test."""
    client = mongomock.MongoClient()
    set_mongo_client(client)
    init_mongo_indexes()
    yield get_mongo_db()
    set_mongo_client(None)


@pytest.fixture
def client():
    from studentjobs.main import app
    return TestClient(app)


@pytest.fixture
def admin():
    return factories.create_admin()


@pytest.fixture
def student():
    return factories.create_student()


@pytest.fixture
def employer():
    return factories.create_employer()


@pytest.fixture
def verified_student(admin):
    return factories.approved_student(admin)


@pytest.fixture
def verified_employer(admin):
    return factories.verified_employer(admin)


@pytest.fixture
def auth():
    return factories.auth_headers
