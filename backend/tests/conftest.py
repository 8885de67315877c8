import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tripsplit.database import Base, get_db
from tripsplit.main import app

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


def register(client, email, name):
    res = client.post("/api/auth/register", json={"email": email, "password": "testpass123", "name": name})
    data = res.json()
    return data["user"], {"Authorization": f"Bearer {data['access_token']}"}


@pytest.fixture
def auth_headers(client):
    _, headers = register(client, "test@example.com", "Test User")
    return headers


@pytest.fixture
def second_user(client):
    user, _ = register(client, "user2@example.com", "User Two")
    return user
