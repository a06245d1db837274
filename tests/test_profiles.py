"""Integration tests for profile editing, avatar uploads and account auth."""
from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_profiles.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from ciconnect.database import Base, SessionLocal, engine  # noqa: E402
from ciconnect.main import app  # noqa: E402
from ciconnect.models import Message, NetworkingRequest, Post, Profile, User  # noqa: E402
from ciconnect.services import get_current_user, get_object_storage  # noqa: E402
from ciconnect.services.storage_service import StoredObject  # noqa: E402


class FakeStorage:
    def __init__(self) -> None:
        self.uploads: list[tuple[str, str]] = []
        self.deleted: list[tuple[str, str]] = []

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> StoredObject:
        self.uploads.append((bucket, key))
        return StoredObject(bucket=bucket, key=key, url=f"https://cdn.example.com/{bucket}/{key}", content_type=content_type)

    async def delete(self, bucket: str, key: str) -> None:
        self.deleted.append((bucket, key))


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        session.execute(delete(Message))
        session.execute(delete(NetworkingRequest))
        session.execute(delete(Post))
        session.execute(delete(Profile))
        session.execute(delete(User))
        session.commit()
    yield


@pytest.fixture
def bare_user() -> User:
    with SessionLocal() as session:
        user = User(email="newcomer@example.com", hashed_password="test-hash")
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def authed_client(client: TestClient, storage: FakeStorage) -> Callable[[User], TestClient]:
    app.dependency_overrides[get_object_storage] = lambda: storage

    def _with_user(user: User) -> TestClient:
        def _override() -> User:
            return user
        app.dependency_overrides[get_current_user] = _override
        return client
    return _with_user


def test_profile_is_created_on_first_visit(authed_client, bare_user):
    client = authed_client(bare_user)

    first = client.get("/profiles/me")
    assert first.status_code == 200
    payload = first.json()
    assert payload["id"] == str(bare_user.id)
    assert payload["email"] == "newcomer@example.com"
    assert payload["program_type"] == "fundamental"
    assert payload["status"] == "pending"

    second = client.get("/profiles/me")
    assert second.json()["created_at"] == payload["created_at"]


def test_update_applies_only_sent_fields(authed_client, bare_user):
    client = authed_client(bare_user)
    client.put("/profiles/me", json={"full_name": " Ada Lovelace ", "institution": "Analytical Society"})

    response = client.put("/profiles/me", json={"graduation_year": 2026, "program_type": "executive"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["full_name"] == "Ada Lovelace"
    assert payload["institution"] == "Analytical Society"
    assert payload["graduation_year"] == 2026
    assert payload["program_type"] == "executive"


def test_update_rejects_out_of_range_year(authed_client, bare_user):
    response = authed_client(bare_user).put("/profiles/me", json={"graduation_year": 1200})
    assert response.status_code == 422


def test_avatar_upload_sets_public_url(authed_client, bare_user, storage):
    response = authed_client(bare_user).post(
        "/profiles/me/avatar",
        files={"file": ("me.jpg", b"jpeg bytes", "image/jpeg")},
    )
    assert response.status_code == 200

    (bucket, key), = storage.uploads
    assert bucket == "avatars"
    assert key.startswith(f"{bare_user.id}/avatar-{bare_user.id}-")
    assert key.endswith(".jpg")
    assert response.json()["avatar_url"] == f"https://cdn.example.com/avatars/{key}"


def test_avatar_over_two_megabytes_is_rejected(authed_client, bare_user, storage):
    response = authed_client(bare_user).post(
        "/profiles/me/avatar",
        files={"file": ("big.png", b"0" * (2 * 1024 * 1024 + 1), "image/png")},
    )
    assert response.status_code == 413
    assert response.json()["detail"] == "Avatar size must be less than 2MB."
    assert storage.uploads == []


def test_register_login_and_me(client):
    registered = client.post(
        "/auth/register",
        json={"email": "Grace@Example.com", "password": "hopper123", "full_name": "Grace Hopper"},
    )
    assert registered.status_code == 201
    token = registered.json()["access_token"]

    duplicate = client.post("/auth/register", json={"email": "grace@example.com", "password": "another1"})
    assert duplicate.status_code == 409

    bad_login = client.post("/auth/login", json={"email": "grace@example.com", "password": "wrong-pass"})
    assert bad_login.status_code == 401

    login = client.post("/auth/login", json={"email": "grace@example.com", "password": "hopper123"})
    assert login.status_code == 200
    assert login.json()["user_id"] == registered.json()["user_id"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "grace@example.com"

    profile = client.get("/profiles/me", headers={"Authorization": f"Bearer {token}"})
    assert profile.json()["full_name"] == "Grace Hopper"


def test_me_requires_token(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer nonsense"}).status_code == 401


def test_dashboard_stats_count_posts_connections_and_messages(authed_client, bare_user):
    with SessionLocal() as session:
        others = [User(email=f"peer{index}@example.com", hashed_password="test-hash") for index in range(3)]
        session.add_all(others)
        session.flush()
        first, second, third = others
        session.add_all(
            [
                Post(author_id=bare_user.id, content="mine"),
                Post(author_id=bare_user.id, content="also mine"),
                Post(author_id=first.id, content="not mine"),
                NetworkingRequest(sender_id=bare_user.id, receiver_id=first.id, status="accepted"),
                NetworkingRequest(sender_id=second.id, receiver_id=bare_user.id, status="accepted"),
                NetworkingRequest(sender_id=third.id, receiver_id=bare_user.id, status="pending"),
                Message(sender_id=bare_user.id, receiver_id=first.id, content="hi"),
                Message(sender_id=second.id, receiver_id=bare_user.id, content="hello", read=True),
                Message(sender_id=first.id, receiver_id=second.id, content="unrelated"),
            ]
        )
        session.commit()

    response = authed_client(bare_user).get("/profiles/me/stats")
    assert response.status_code == 200
    assert response.json() == {"posts": 2, "connections": 2, "messages": 2}


def test_dashboard_stats_start_at_zero(authed_client, bare_user):
    response = authed_client(bare_user).get("/profiles/me/stats")
    assert response.json() == {"posts": 0, "connections": 0, "messages": 0}


def test_failed_avatar_write_removes_uploaded_object(authed_client, bare_user, storage, monkeypatch):
    client = authed_client(bare_user)
    assert client.get("/profiles/me").status_code == 200

    def _broken(self):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(Session, "commit", _broken)

    response = client.post("/profiles/me/avatar", files={"file": ("me.png", b"png bytes", "image/png")})
    assert response.status_code == 500
    assert storage.deleted == storage.uploads
    assert len(storage.deleted) == 1
