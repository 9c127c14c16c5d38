import os

# must be set before taskapi.database builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("COGNITO_USER_POOL_ID", None)

import pytest
from fastapi.testclient import TestClient

from taskapi.database import Base, engine
from taskapi.main import app


@pytest.fixture()
def client():
    """TestClient over a freshly created in-memory database."""
    Base.metadata.drop_all(bind=engine)
    with TestClient(app) as c:
        yield c
    Base.metadata.drop_all(bind=engine)


def _login(client, email, name=None):
    response = client.post("/api/users", json={"email": email, "name": name})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture()
def user(client):
    return _login(client, "ada@example.com", "Ada")


@pytest.fixture()
def other_user(client):
    return _login(client, "grace@example.com", "Grace")
