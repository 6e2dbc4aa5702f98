# tests/conftest.py
import os

# Point the module-level app at an in-memory database before anything imports it
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

from sweetshop import models
from sweetshop.main import create_app

PASSWORD = "secret123"


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, email: str, password: str = PASSWORD, name: str = None) -> dict:
    """Registers an account and returns its id, token and auth headers."""
    payload = {"email": email, "password": password}
    if name is not None:
        payload["name"] = name
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return {
        "id": data["user"]["id"],
        "email": email,
        "token": data["token"],
        "headers": auth_headers(data["token"]),
    }


def create_sweet(client: TestClient, headers: dict, **fields) -> dict:
    """Creates a sweet through the API and returns the response data."""
    payload = {"name": "Milk Chocolate Bar", "category": "Chocolate", "price": 2.5, "quantity": 10}
    payload.update(fields)
    response = client.post("/api/sweets", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def app():
    """A fresh application backed by its own in-memory database."""
    return create_app("sqlite://")


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(app):
    """Direct database session for setup and assertions."""
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(client):
    return register(client, "alice@example.com", name="Alice")


@pytest.fixture
def other_user(client):
    return register(client, "bob@example.com", name="Bob")


@pytest.fixture
def admin(client, db_session):
    """Registers an account and promotes it to admin in the test database."""
    account = register(client, "admin@example.com", name="Admin")
    db_profile = db_session.query(models.Profile).filter(models.Profile.id == account["id"]).first()
    db_profile.role = "admin"
    db_session.commit()
    return account


@pytest.fixture
def sweet(client, user):
    """A sweet owned by ``user``: 10 units at 2.50."""
    return create_sweet(client, user["headers"])


def stock_of(db_session, sweet_id: int) -> int:
    db_session.expire_all()
    return db_session.query(models.Sweet).filter(models.Sweet.id == sweet_id).first().quantity


def purchase_count(db_session, sweet_id: int = None) -> int:
    query = db_session.query(models.Purchase)
    if sweet_id is not None:
        query = query.filter(models.Purchase.sweet_id == sweet_id)
    return query.count()
