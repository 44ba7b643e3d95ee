import os

# Configure an in-memory store and no Redis before the application is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from faker import Faker

from beyond_theory.main import app
from beyond_theory.core.database import Base, SessionLocal, engine, get_db
from beyond_theory.models.user import UserProfile

fake = Faker()


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database dependency override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_profile(db_session, uid=None, username=None):
    profile = UserProfile(
        uid=uid or fake.uuid4(),
        username=username or f"{fake.user_name()}_{fake.pyint()}",
        email=fake.email(),
        photo_url=fake.image_url()
    )
    db_session.add(profile)
    db_session.commit()
    db_session.refresh(profile)
    return profile


@pytest.fixture(scope="function")
def user_one(db_session):
    return make_profile(db_session, uid="u1", username="alice")


@pytest.fixture(scope="function")
def user_two(db_session):
    return make_profile(db_session, uid="u2", username="bob")


@pytest.fixture(scope="function")
def user_three(db_session):
    return make_profile(db_session, uid="u3", username="carol")


@pytest.fixture(scope="function")
def conversation(client, user_one, user_two):
    """Direct conversation between user_one and user_two, as JSON."""
    response = client.post("/conversations", json={
        "currentUserId": user_one.uid,
        "otherUserId": user_two.uid
    })
    assert response.status_code == 201
    return response.json()


class TestHelpers:
    """Helper functions for tests."""

    @staticmethod
    def send(client, conversation_id, user_id, text=None, **extra):
        payload = {
            "conversationId": conversation_id,
            "userId": user_id,
            "text": text or fake.sentence()
        }
        payload.update(extra)
        response = client.post("/messages", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    @staticmethod
    def unread(client, user_id):
        response = client.get("/unread", params={"userId": user_id})
        assert response.status_code == 200
        return response.json()["count"]

    @staticmethod
    def assert_error_response(response, status_code, detail=None):
        assert response.status_code == status_code
        if detail:
            assert detail in response.text


@pytest.fixture(scope="function")
def helpers():
    return TestHelpers()


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
