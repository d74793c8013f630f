import os
import tempfile
from pathlib import Path

# Point settings at a throwaway database and storage folder before importing the app
_TEST_DIR = Path(tempfile.mkdtemp(prefix="lessons_test_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.db'}"
os.environ["STORAGE_DIR"] = str(_TEST_DIR / "storage")
os.environ["STORAGE_BACKEND"] = "local"
os.environ["PUBLIC_BASE_URL"] = "http://testserver"

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.auth import create_access_token  # noqa: E402
from app.database import Base, SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models.banned_user import BannedUser  # noqa: E402
from app.models.subscription import Subscription  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.models.video import Video, VideoCategory  # noqa: E402
from app.services.storage import local_storage_dir, normalize_object_key  # noqa: E402
from app.utils.clock import utcnow  # noqa: E402


@pytest.fixture(autouse=True)
def setup_test_db():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.STUDENT, email: str | None = None) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"{role.value.lower()}{counter['n']}@example.com",
            full_name=f"{role.value.title()} {counter['n']}",
            role=role.value,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def student(make_user):
    return make_user(UserRole.STUDENT)


@pytest.fixture
def teacher(make_user):
    return make_user(UserRole.TEACHER)


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


def put_object(bucket: str, key: str, data: bytes = b"\x00\x01fake-mp4-bytes") -> Path:
    path = local_storage_dir() / bucket / key
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.fixture
def make_video(db):
    def _make(owner: User, video_path: str | None = None, with_blob: bool = True, **kwargs) -> Video:
        video = Video(
            teacher_id=owner.id,
            title=kwargs.pop("title", "Fractions 101"),
            category=kwargs.pop("category", VideoCategory.MATH.value),
            video_path="pending",
            **kwargs,
        )
        db.add(video)
        db.flush()
        video.video_path = video_path or f"{owner.id}/{video.id}.mp4"
        db.commit()
        db.refresh(video)
        if with_blob:
            put_object("videos", normalize_object_key(video.video_path, "videos"))
        return video

    return _make


@pytest.fixture
def video(make_video, teacher):
    return make_video(teacher)


@pytest.fixture
def subscribe(db):
    def _subscribe(user: User, expires_at=None, is_active: bool = True) -> Subscription:
        now = utcnow()
        sub = Subscription(
            user_id=user.id,
            is_active=is_active,
            started_at=now - timedelta(days=1),
            expires_at=expires_at or now + timedelta(days=30),
        )
        db.add(sub)
        db.commit()
        db.refresh(sub)
        return sub

    return _subscribe


@pytest.fixture
def ban(db):
    def _ban(user: User, reason: str = "spam") -> BannedUser:
        row = BannedUser(user_id=user.id, reason=reason)
        db.add(row)
        db.commit()
        return row

    return _ban


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def store_object():
    return put_object
