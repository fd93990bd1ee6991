"""
Shared fixtures for the Portal test suite.
"""

import os
import uuid
from typing import Dict, Optional

# The module-level app in portal.app.main reads the environment on import
os.environ.setdefault("AUTH_SECRET", "test-auth-secret-0123456789abcdef0123")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient

from portal.app.auth.utils import hash_password
from portal.app.config import Settings
from portal.app.db import UserAlreadyExistsError
from portal.app.dependencies import get_user_adapter
from portal.app.main import create_app
from portal.app.models import UserRecord


TEST_SECRET = "test-auth-secret-0123456789abcdef0123"
TEST_PASSWORD = "secret"

# Hashing is slow on purpose; one low-cost hash is shared by all tests
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD, rounds=4)


class FakeUserAdapter:
    """In-memory stand-in for UserAdapter."""

    def __init__(self):
        self.records: Dict[str, UserRecord] = {}

    def add(self, **fields) -> UserRecord:
        fields.setdefault("id", str(uuid.uuid4()))
        record = UserRecord(**fields)
        self.records[record.id] = record
        return record

    def remove(self, user_id: str) -> None:
        self.records.pop(user_id, None)

    async def get_user(self, user_id: Optional[str]) -> Optional[UserRecord]:
        return self.records.get(user_id) if user_id else None

    async def get_user_by_email(self, email: Optional[str]) -> Optional[UserRecord]:
        for record in self.records.values():
            if email and record.email == email:
                return record
        return None

    async def create_user(self, email, name=None, image=None, hashed_password=None, username=None):
        for record in self.records.values():
            if record.email == email or (username and record.username == username):
                raise UserAlreadyExistsError("Email or username already in use")
        return self.add(
            email=email,
            name=name,
            image=image,
            hashed_password=hashed_password,
            username=username,
        )

    async def update_user(self, user_id, **fields):
        record = self.records.get(user_id)
        if record is None:
            return None
        username = fields.get("username")
        if username and any(
            r.username == username and r.id != user_id for r in self.records.values()
        ):
            raise UserAlreadyExistsError("Username already in use")
        updated = record.model_copy(update=fields)
        self.records[user_id] = updated
        return updated


@pytest.fixture
def settings():
    """Settings for tests, isolated from any local .env file"""
    return Settings(
        _env_file=None,
        AUTH_SECRET=TEST_SECRET,
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        BCRYPT_ROUNDS=4,
    )


@pytest.fixture
def users():
    return FakeUserAdapter()


@pytest.fixture
def alice(users):
    """Password account matching the sign-in scenarios"""
    return users.add(
        id="u1",
        email="a@x.com",
        name="Alice",
        image="https://img.example/alice.png",
        hashed_password=TEST_PASSWORD_HASH,
    )


@pytest.fixture
def app(settings, users):
    """Application wired to the in-memory user adapter"""
    app = create_app(settings)
    app.dependency_overrides[get_user_adapter] = lambda: users
    return app


@pytest.fixture
def client(app):
    """Test client that does not follow redirects, so they can be asserted"""
    return TestClient(app, follow_redirects=False)
