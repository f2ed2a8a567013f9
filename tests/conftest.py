import mongomock
import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app

ADDRESS = {
    "name": "Asha Reddy",
    "address": "12 Canal Road",
    "city": "Guntur",
    "state": "Andhra Pradesh",
    "pincode": "522001",
    "phone": "9876543210",
}


@pytest.fixture
def db():
    return mongomock.MongoClient().soilq_test


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def signup(client, email, role="farmer", password="secret123"):
    res = client.post("/auth/signup", json={
        "name": email.split("@")[0].title(),
        "email": email,
        "password": password,
        "role": role,
    })
    assert res.status_code == 201, res.text
    data = res.json()
    data["headers"] = {"Authorization": f"Bearer {data['token']}"}
    return data


@pytest.fixture
def farmer(client):
    return signup(client, "asha@soilq.in")


@pytest.fixture
def other_farmer(client):
    return signup(client, "ravi@soilq.in")


@pytest.fixture
def admin(client):
    return signup(client, "ops@soilq.in", role="admin")
