import os
import time
import uuid

# Settings are read on first use; configure before the app is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "https://project.supabase.test"
os.environ["SUPABASE_KEY"] = "anon-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ.pop("CART_REDIS_URL", None)
os.environ.pop("CHECKOUT_COMPENSATE_ON_FAILURE", None)

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, SQLModel

from app.core import deps
from app.database import get_engine
from app.main import app
from app.repositories.cart_repo import CartRepository
from app.services.checkout_service import SubmissionGuard
from fakes import FakeStorage


@pytest.fixture(autouse=True)
def engine():
    engine = get_engine()
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield engine


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def storage():
    return FakeStorage()


@pytest.fixture()
def cart_repo():
    return CartRepository()


@pytest.fixture()
def guard():
    return SubmissionGuard()


@pytest.fixture()
def client(storage, cart_repo, guard):
    app.dependency_overrides[deps.get_receipt_storage] = lambda: storage
    app.dependency_overrides[deps.get_cart_repository] = lambda: cart_repo
    app.dependency_overrides[deps.get_submission_guard] = lambda: guard
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def make_token(user_id: uuid.UUID, role: str | None = None, email: str = "shopper@example.com") -> str:
    claims = {
        "sub": str(user_id),
        "email": email,
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
        "app_metadata": {"role": role} if role else {},
    }
    return jwt.encode(claims, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


def auth_headers(user_id: uuid.UUID, role: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture()
def user_id():
    return uuid.uuid4()


@pytest.fixture()
def user_headers(user_id):
    return auth_headers(user_id)


@pytest.fixture()
def admin_headers():
    return auth_headers(uuid.uuid4(), role="admin")
