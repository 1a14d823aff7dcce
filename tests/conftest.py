import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from app.core.config import Settings
from app.db.dynamo import DynamoStore
from app.main import app
from app.routers.deps import get_store


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def store(aws_credentials):
    with mock_aws():
        config = Settings(DYNAMO_REGION="us-east-1", DYNAMO_CREATE_TABLES=True)
        dynamo_store = DynamoStore(config).init()
        yield dynamo_store
        dynamo_store.close()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def signup(client, name="Ana", email="ana@example.com", password="secret123"):
    response = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def user(client):
    return signup(client)


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {user['token']}"}


@pytest.fixture
def other_headers(client):
    other = signup(client, name="Bo", email="bo@example.com")
    return {"Authorization": f"Bearer {other['token']}"}
