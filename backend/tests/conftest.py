"""Pytest configuration and fixtures"""
import os
from typing import Callable, Dict, Generator

# Settings are read at import time, so the environment must be in place first
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SWEEPER_ENABLED"] = "false"
os.environ["WEBHOOK_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.database import Base, SessionLocal, engine, get_db
from app.main import app
from app.middleware.rate_limit import limiter


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override"""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    limiter.reset()
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def credentials() -> Dict[str, str]:
    """Sample signup body"""
    return {"email": "traveler@example.com", "password": "wanderlust"}


@pytest.fixture
def signup(client: TestClient) -> Callable[..., dict]:
    """Sign up an account and return the JSON response"""

    def _signup(email: str = "traveler@example.com", password: str = "wanderlust") -> dict:
        response = client.post("/auth/signup", json={"email": email, "password": password})
        assert response.status_code == 201, response.text
        return response.json()

    return _signup


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    def _headers(access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    return _headers
