import io
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.services.image_optimizer import ImageOptimizer, get_image_optimizer
from app.services.storage_client import StorageBackend, StorageError, get_storage
from app.services.storage_paths import public_url_for

TEST_DB_URL = "sqlite:///./test_property_images.db"
TEST_STORAGE_URL = "https://demo-project.supabase.co"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class FakeStorage(StorageBackend):
    """In-memory bucket with switchable failure modes."""

    def __init__(self, bucket: str = "property-images", base_url: str = TEST_STORAGE_URL):
        self.bucket = bucket
        self.base_url = base_url
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.created_at: dict[str, datetime] = {}
        self.upload_error: StorageError | None = None
        self.remove_error: StorageError | None = None
        self.fail_batch = False
        self.failing_keys: set[str] = set()
        self.report_deleted = True
        self.remove_calls: list[list[str]] = []

    def put(self, key: str, data: bytes = b"img", age_minutes: float = 0) -> str:
        self.objects[key] = data
        self.created_at[key] = datetime.now(timezone.utc) - timedelta(minutes=age_minutes)
        return self.get_public_url(key)

    def upload(self, key, data, content_type, upsert=False):
        if self.upload_error is not None:
            raise self.upload_error
        if key in self.objects and not upsert:
            raise StorageError("The resource already exists", status_code="409", error_code="Duplicate")
        self.objects[key] = data
        self.content_types[key] = content_type
        self.created_at[key] = datetime.now(timezone.utc)
        return key

    def get_public_url(self, key):
        return public_url_for(key, self.base_url, self.bucket)

    def remove(self, keys):
        keys = list(keys)
        self.remove_calls.append(keys)
        if self.remove_error is not None:
            raise self.remove_error
        if self.fail_batch and len(keys) > 1:
            raise StorageError("Batch delete failed", status_code=500)
        deleted = []
        for key in keys:
            if key in self.failing_keys:
                raise StorageError("permission denied", status_code=403)
            if key in self.objects:
                del self.objects[key]
                deleted.append({"name": key})
        return deleted if self.report_deleted else None

    def list(self, prefix="", limit=100, offset=0):
        names = sorted(k for k in self.objects if k.startswith(prefix))
        return [
            {
                "name": name,
                "id": name,
                "created_at": self.created_at[name].isoformat().replace("+00:00", "Z"),
                "metadata": {"size": len(self.objects[name])},
            }
            for name in names[offset: offset + limit]
        ]


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def image_optimizer():
    optimizer = ImageOptimizer(enabled=True)
    app.dependency_overrides[get_image_optimizer] = lambda: optimizer
    yield optimizer
    app.dependency_overrides.pop(get_image_optimizer, None)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def storage():
    fake = FakeStorage()
    app.dependency_overrides[get_storage] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_storage, None)


@pytest.fixture
def unconfigured_storage(monkeypatch):
    app.dependency_overrides.pop(get_storage, None)
    monkeypatch.setattr(settings, "SUPABASE_URL", "")
    monkeypatch.setattr(settings, "SUPABASE_SERVICE_ROLE_KEY", "")
    monkeypatch.setattr(settings, "SUPABASE_ANON_KEY", "")


@pytest.fixture
def tmp_upload_dir(tmp_path, monkeypatch):
    upload_dir = tmp_path / "upload-tmp"
    upload_dir.mkdir()
    monkeypatch.setattr(settings, "UPLOAD_TMP_DIR", str(upload_dir))
    return upload_dir


def login_admin(client) -> None:
    resp = client.post("/api/auth/login", json={"password": settings.ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text


def make_image(size=(300, 200), mode="RGB", fmt="JPEG", color=(120, 80, 40), **save_kwargs) -> bytes:
    image = Image.new(mode, size, color)
    draw = ImageDraw.Draw(image)
    w, h = size
    draw.rectangle([w // 4, h // 4, w // 2, h // 2], fill=(10, 200, 90) if mode == "RGB" else (10, 200, 90, 255))
    draw.ellipse([w // 2, h // 3, w - 1, h - 1], fill=(240, 240, 20) if mode == "RGB" else (240, 240, 20, 128))
    output = io.BytesIO()
    image.save(output, format=fmt, **save_kwargs)
    return output.getvalue()
