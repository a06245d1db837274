"""Integration tests for the post feed, image uploads, likes and comments."""
from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_posts.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from ciconnect.database import Base, SessionLocal, engine  # noqa: E402
from ciconnect.main import app  # noqa: E402
from ciconnect.models import Post, PostComment, PostLike, Profile, User  # noqa: E402
from ciconnect.services import get_current_user, get_object_storage, get_optional_user  # noqa: E402
from ciconnect.services.storage_service import StoredObject  # noqa: E402


class FakeStorage:
    """Records uploads instead of talking to S3."""

    def __init__(self) -> None:
        self.uploads: list[dict] = []
        self.deleted: list[tuple[str, str]] = []

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> StoredObject:
        self.uploads.append({"bucket": bucket, "key": key, "size": len(data), "content_type": content_type})
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
        session.execute(delete(PostLike))
        session.execute(delete(PostComment))
        session.execute(delete(Post))
        session.execute(delete(Profile))
        session.execute(delete(User))
        session.commit()
    yield


@pytest.fixture
def user_factory() -> Callable[..., User]:
    def _factory(name: str, *, with_profile: bool = True) -> User:
        with SessionLocal() as session:
            user = User(email=f"{name}@example.com", hashed_password="test-hash")
            session.add(user)
            session.flush()
            if with_profile:
                session.add(Profile(id=user.id, email=user.email, full_name=name.title()))
            session.commit()
            session.refresh(user)
            return user
    return _factory


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def authed_client(storage: FakeStorage) -> Iterator[Callable[[User], TestClient]]:
    app.dependency_overrides[get_object_storage] = lambda: storage
    with TestClient(app) as client:
        def _with_user(user: User) -> TestClient:
            def _override() -> User:
                return user
            app.dependency_overrides[get_current_user] = _override
            app.dependency_overrides[get_optional_user] = _override
            return client
        yield _with_user
    app.dependency_overrides.clear()


def test_text_post_appears_in_feed(authed_client, user_factory, storage):
    ada = user_factory("ada")
    client = authed_client(ada)

    created = client.post("/posts/", data={"content": "  Hello cohort  "})
    assert created.status_code == 201
    payload = created.json()
    assert payload["content"] == "Hello cohort"
    assert payload["image_url"] is None
    assert payload["post_type"] == "general"
    assert payload["author_name"] == "Ada"
    assert storage.uploads == []

    feed = client.get("/posts/")
    assert feed.status_code == 200
    items = feed.json()["items"]
    assert [item["id"] for item in items] == [payload["id"]]
    assert items[0]["author"]["full_name"] == "Ada"


def test_feed_is_newest_first(authed_client, user_factory):
    ada = user_factory("ada")
    client = authed_client(ada)

    first = client.post("/posts/", data={"content": "first"}).json()
    second = client.post("/posts/", data={"content": "second"}).json()

    items = client.get("/posts/").json()["items"]
    assert [item["id"] for item in items] == [second["id"], first["id"]]


def test_blank_post_is_rejected(authed_client, user_factory):
    ada = user_factory("ada")
    response = authed_client(ada).post("/posts/", data={"content": "   "})
    assert response.status_code == 422


def test_image_post_uploads_to_post_images_bucket(authed_client, user_factory, storage):
    ada = user_factory("ada")
    client = authed_client(ada)

    response = client.post(
        "/posts/",
        data={"content": "with a picture"},
        files={"image": ("campus.png", b"\x89PNG fake image bytes", "image/png")},
    )
    assert response.status_code == 201

    assert len(storage.uploads) == 1
    upload = storage.uploads[0]
    assert upload["bucket"] == "post-images"
    assert upload["key"].startswith(f"{ada.id}/")
    assert upload["key"].endswith(".png")
    assert response.json()["image_url"] == f"https://cdn.example.com/post-images/{upload['key']}"


def test_non_image_upload_is_rejected_before_storage(authed_client, user_factory, storage):
    ada = user_factory("ada")
    response = authed_client(ada).post(
        "/posts/",
        data={"content": "notes"},
        files={"image": ("notes.txt", b"plain text", "text/plain")},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Please select a valid image file."
    assert storage.uploads == []


def test_oversized_image_is_rejected_before_storage(authed_client, user_factory, storage):
    ada = user_factory("ada")
    too_big = b"0" * (5 * 1024 * 1024 + 1)
    response = authed_client(ada).post(
        "/posts/",
        data={"content": "huge"},
        files={"image": ("huge.jpg", too_big, "image/jpeg")},
    )
    assert response.status_code == 413
    assert storage.uploads == []
    with SessionLocal() as session:
        assert session.scalars(select(Post)).all() == []


def test_like_toggles_on_and_off(authed_client, user_factory):
    ada = user_factory("ada")
    bea = user_factory("bea")
    post_id = authed_client(ada).post("/posts/", data={"content": "like me"}).json()["id"]

    liked = authed_client(bea).post(f"/posts/{post_id}/like")
    assert liked.status_code == 200
    assert liked.json() == {"post_id": post_id, "like_count": 1, "comment_count": 0, "user_has_liked": True}

    feed = authed_client(bea).get("/posts/").json()["items"]
    assert feed[0]["user_has_liked"] is True
    assert feed[0]["likes"][0]["user_id"] == str(bea.id)

    unliked = authed_client(bea).post(f"/posts/{post_id}/like")
    assert unliked.json()["like_count"] == 0
    assert unliked.json()["user_has_liked"] is False


def test_like_requires_profile(authed_client, user_factory):
    ada = user_factory("ada")
    drifter = user_factory("drifter", with_profile=False)
    post_id = authed_client(ada).post("/posts/", data={"content": "hi"}).json()["id"]

    response = authed_client(drifter).post(f"/posts/{post_id}/like")
    assert response.status_code == 403
    assert response.json()["detail"] == "Please complete your profile setup first"


def test_comments_are_listed_oldest_first_with_author_name(authed_client, user_factory):
    ada = user_factory("ada")
    bea = user_factory("bea")
    post_id = authed_client(ada).post("/posts/", data={"content": "discuss"}).json()["id"]

    first = authed_client(bea).post(f"/posts/{post_id}/comments", json={"content": "first!"})
    assert first.status_code == 201
    assert first.json()["author_name"] == "Bea"
    authed_client(ada).post(f"/posts/{post_id}/comments", json={"content": "thanks"})

    blank = authed_client(bea).post(f"/posts/{post_id}/comments", json={"content": " "})
    assert blank.status_code == 422

    items = authed_client(ada).get("/posts/").json()["items"]
    assert [comment["content"] for comment in items[0]["comments"]] == ["first!", "thanks"]
    assert items[0]["comment_count"] == 2


def test_comment_on_unknown_post_returns_404(authed_client, user_factory):
    ada = user_factory("ada")
    response = authed_client(ada).post(
        "/posts/00000000-0000-0000-0000-000000000000/comments",
        json={"content": "anyone?"},
    )
    assert response.status_code == 404


def test_failed_post_write_removes_uploaded_image(authed_client, user_factory, storage, monkeypatch):
    ada = user_factory("ada")
    client = authed_client(ada)

    def _broken(self):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(Session, "commit", _broken)

    response = client.post(
        "/posts/",
        data={"content": "with picture"},
        files={"image": ("cat.png", b"png bytes", "image/png")},
    )
    assert response.status_code == 500
    assert response.json() == {"detail": "Error creating post"}

    (upload,) = storage.uploads
    assert storage.deleted == [(upload["bucket"], upload["key"])]
