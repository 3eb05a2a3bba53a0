import json

import httpx
import pytest

from app.config import settings
from app.services.storage_client import StorageError, SupabaseStorage, get_storage

BASE = "https://demo-project.supabase.co"
BUCKET = "property-images"


def _storage(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SupabaseStorage(BASE, "service-key", BUCKET, client=client)


def test_upload_posts_object_without_upsert():
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["headers"] = request.headers
        seen["body"] = request.content
        return httpx.Response(200, json={"Key": f"{BUCKET}/1-abc.webp"})

    storage = _storage(handler)
    path = storage.upload("1-abc.webp", b"webp-bytes", "image/webp")

    assert path == "1-abc.webp"
    assert seen["method"] == "POST"
    assert seen["path"] == f"/storage/v1/object/{BUCKET}/1-abc.webp"
    assert seen["headers"]["x-upsert"] == "false"
    assert seen["headers"]["content-type"] == "image/webp"
    assert seen["headers"]["authorization"] == "Bearer service-key"
    assert seen["body"] == b"webp-bytes"
    assert storage.get_public_url(path) == f"{BASE}/storage/v1/object/public/{BUCKET}/1-abc.webp"


def test_upload_bucket_missing_is_not_found():
    def handler(request):
        return httpx.Response(400, json={"statusCode": "404", "error": "Bucket not found", "message": "Bucket not found"})

    with pytest.raises(StorageError) as exc_info:
        _storage(handler).upload("1-abc.webp", b"x", "image/webp")

    assert exc_info.value.is_not_found is True
    assert exc_info.value.message == "Bucket not found"


def test_upload_generic_failure_is_not_not_found():
    def handler(request):
        return httpx.Response(500, text="internal error")

    with pytest.raises(StorageError) as exc_info:
        _storage(handler).upload("1-abc.webp", b"x", "image/webp")

    assert exc_info.value.is_not_found is False
    assert exc_info.value.status_code == 500


def test_transport_error_becomes_storage_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StorageError):
        _storage(handler).list()


def test_remove_sends_prefixes():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["json"] = json.loads(request.content)
        return httpx.Response(200, json=[{"name": "1-a.webp"}, {"name": "2-b.webp"}])

    deleted = _storage(handler).remove(["1-a.webp", "2-b.webp"])

    assert seen["method"] == "DELETE"
    assert seen["path"] == f"/storage/v1/object/{BUCKET}"
    assert seen["json"] == {"prefixes": ["1-a.webp", "2-b.webp"]}
    assert len(deleted) == 2


def test_list_paginates_with_offset():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["json"] = json.loads(request.content)
        return httpx.Response(200, json=[{"name": "1-a.webp", "id": "uuid-1"}])

    entries = _storage(handler).list(limit=100, offset=200)

    assert seen["path"] == f"/storage/v1/object/list/{BUCKET}"
    assert seen["json"]["limit"] == 100
    assert seen["json"]["offset"] == 200
    assert entries == [{"name": "1-a.webp", "id": "uuid-1"}]


def test_storage_error_not_found_markers():
    assert StorageError("The resource was not found").is_not_found
    assert StorageError("object does not exist").is_not_found
    assert StorageError("boom", status_code=404).is_not_found
    assert not StorageError("permission denied", status_code=403).is_not_found


def test_get_storage_none_when_unconfigured(monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_URL", "")
    assert get_storage() is None

    monkeypatch.setattr(settings, "SUPABASE_URL", BASE)
    monkeypatch.setattr(settings, "SUPABASE_SERVICE_ROLE_KEY", "")
    monkeypatch.setattr(settings, "SUPABASE_ANON_KEY", "")
    assert get_storage() is None


def test_get_storage_prefers_service_role_key(monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_URL", BASE)
    monkeypatch.setattr(settings, "SUPABASE_SERVICE_ROLE_KEY", "service-key")
    monkeypatch.setattr(settings, "SUPABASE_ANON_KEY", "anon-key")

    storage = get_storage()

    assert isinstance(storage, SupabaseStorage)
    assert storage.api_key == "service-key"
    assert storage.bucket == settings.STORAGE_BUCKET


def test_storage_error_separates_missing_bucket_from_missing_object():
    bucket = StorageError("Bucket not found", status_code="404", error_code="Bucket not found")
    missing = StorageError("Object not found", status_code="404", error_code="not_found")

    assert bucket.is_not_found and bucket.is_bucket_missing
    assert not bucket.is_object_missing
    assert missing.is_object_missing
    assert not missing.is_bucket_missing
