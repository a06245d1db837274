"""Integration tests for the member directory and connection requests."""
from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_networking.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from ciconnect.database import Base, SessionLocal, engine  # noqa: E402
from ciconnect.main import app  # noqa: E402
from ciconnect.models import NetworkingRequest, Profile, User  # noqa: E402
from ciconnect.services import get_current_user  # noqa: E402


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        session.execute(delete(NetworkingRequest))
        session.execute(delete(Profile))
        session.execute(delete(User))
        session.commit()
    yield


@pytest.fixture
def user_factory() -> Callable[..., User]:
    def _factory(name: str, *, with_profile: bool = True, full_name: str | None = None) -> User:
        with SessionLocal() as session:
            user = User(email=f"{name}@example.com", hashed_password="test-hash")
            session.add(user)
            session.flush()
            if with_profile:
                session.add(Profile(id=user.id, email=user.email, full_name=full_name or name.title()))
            session.commit()
            session.refresh(user)
            return user
    return _factory


@pytest.fixture
def authed_client() -> Iterator[Callable[[User], TestClient]]:
    with TestClient(app) as client:
        def _with_user(user: User) -> TestClient:
            def _override() -> User:
                return user
            app.dependency_overrides[get_current_user] = _override
            return client
        yield _with_user
    app.dependency_overrides.clear()


def _request_count() -> int:
    with SessionLocal() as session:
        return len(session.scalars(select(NetworkingRequest)).all())


def test_member_directory_excludes_viewer_and_filters(authed_client, user_factory):
    ada = user_factory("ada", full_name="Ada Lovelace")
    user_factory("grace", full_name="Grace Hopper")
    user_factory("alan", full_name="Alan Turing")
    client = authed_client(ada)

    everyone = client.get("/networking/members").json()
    names = sorted(item["full_name"] for item in everyone["items"])
    assert names == ["Alan Turing", "Grace Hopper"]

    filtered = client.get("/networking/members", params={"search": "HOPPER"}).json()
    assert [item["full_name"] for item in filtered["items"]] == ["Grace Hopper"]
    assert filtered["query"] == "HOPPER"

    by_email = client.get("/networking/members", params={"search": "alan@"}).json()
    assert [item["full_name"] for item in by_email["items"]] == ["Alan Turing"]


def test_self_request_is_rejected_before_any_write(authed_client, user_factory):
    ada = user_factory("ada")
    response = authed_client(ada).post("/networking/requests", json={"receiver_id": str(ada.id)})
    assert response.status_code == 400
    assert _request_count() == 0


def test_request_requires_sender_profile(authed_client, user_factory):
    drifter = user_factory("drifter", with_profile=False)
    bea = user_factory("bea")
    response = authed_client(drifter).post("/networking/requests", json={"receiver_id": str(bea.id)})
    assert response.status_code == 403
    assert _request_count() == 0


def test_duplicate_request_in_either_direction_conflicts(authed_client, user_factory):
    ada = user_factory("ada")
    bea = user_factory("bea")

    created = authed_client(ada).post("/networking/requests", json={"receiver_id": str(bea.id)})
    assert created.status_code == 201
    assert created.json()["status"] == "pending"

    again = authed_client(ada).post("/networking/requests", json={"receiver_id": str(bea.id)})
    assert again.status_code == 409
    assert again.json()["detail"] == "Connection request already sent or received"

    reverse = authed_client(bea).post("/networking/requests", json={"receiver_id": str(ada.id)})
    assert reverse.status_code == 409
    assert _request_count() == 1


def test_accepting_request_creates_connection_for_both(authed_client, user_factory):
    ada = user_factory("ada")
    bea = user_factory("bea")
    request_id = authed_client(ada).post("/networking/requests", json={"receiver_id": str(bea.id)}).json()["id"]

    pending = authed_client(bea).get("/networking/requests").json()["items"]
    assert [item["id"] for item in pending] == [request_id]
    assert pending[0]["sender_profile"]["full_name"] == "Ada"

    accepted = authed_client(bea).post(f"/networking/requests/{request_id}", json={"status": "accepted"})
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"

    assert authed_client(bea).get("/networking/requests").json()["items"] == []

    ada_connections = authed_client(ada).get("/networking/connections").json()["items"]
    assert [(item["user_id"], item["display_name"]) for item in ada_connections] == [(str(bea.id), "Bea")]
    bea_connections = authed_client(bea).get("/networking/connections").json()["items"]
    assert [item["user_id"] for item in bea_connections] == [str(ada.id)]

    again = authed_client(ada).post("/networking/requests", json={"receiver_id": str(bea.id)})
    assert again.status_code == 409
    assert again.json()["detail"] == "You are already connected with this user"


def test_only_receiver_can_answer_and_only_once(authed_client, user_factory):
    ada = user_factory("ada")
    bea = user_factory("bea")
    request_id = authed_client(ada).post("/networking/requests", json={"receiver_id": str(bea.id)}).json()["id"]

    by_sender = authed_client(ada).post(f"/networking/requests/{request_id}", json={"status": "accepted"})
    assert by_sender.status_code == 404

    rejected = authed_client(bea).post(f"/networking/requests/{request_id}", json={"status": "rejected"})
    assert rejected.status_code == 200

    twice = authed_client(bea).post(f"/networking/requests/{request_id}", json={"status": "accepted"})
    assert twice.status_code == 409

    retry = authed_client(ada).post("/networking/requests", json={"receiver_id": str(bea.id)})
    assert retry.status_code == 409
    assert retry.json()["detail"] == "Connection request was previously rejected"
    assert authed_client(ada).get("/networking/connections").json()["items"] == []


def test_invalid_status_is_rejected(authed_client, user_factory):
    ada = user_factory("ada")
    bea = user_factory("bea")
    request_id = authed_client(ada).post("/networking/requests", json={"receiver_id": str(bea.id)}).json()["id"]

    response = authed_client(bea).post(f"/networking/requests/{request_id}", json={"status": "maybe"})
    assert response.status_code == 422


def test_member_directory_reports_store_failure(authed_client, user_factory, monkeypatch):
    ada = user_factory("ada")
    client = authed_client(ada)

    def _broken(self, *args, **kwargs):
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(Session, "scalars", _broken)

    response = client.get("/networking/members")
    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to load members"}
