"""Image Cleanup 서비스 레이어입니다. 매물 수정/삭제 시 더 이상 참조되지 않는 스토리지 이미지를 정리합니다."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.models.property import Property
from app.services.storage_client import StorageBackend, StorageError
from app.services.storage_paths import extract_key_from_url
from app.utils.helpers import parse_json_list

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 100


@dataclass
class CleanupResult:
    success_count: int = 0
    error_count: int = 0
    errors: list[str] = field(default_factory=list)


def _image_identity(url: str, bucket: str) -> str:
    return extract_key_from_url(url, bucket) or url


def removed_images(
    previous: Iterable[str] | None,
    new: Iterable[str] | None,
    bucket: str | None = None,
) -> list[str]:
    """이전 목록에는 있고 새 목록에는 없는 이미지 URL을 원래 순서대로 반환한다.

    같은 스토리지 키를 가리키는 URL(쿼리 문자열만 다른 경우 등)은 같은 이미지로 본다.
    """
    bucket_name = bucket or settings.STORAGE_BUCKET
    keep = {_image_identity(url, bucket_name) for url in new or [] if url}
    removed: list[str] = []
    seen: set[str] = set()
    for url in previous or []:
        if not url:
            continue
        identity = _image_identity(url, bucket_name)
        if identity in keep or identity in seen:
            continue
        seen.add(identity)
        removed.append(url)
    return removed


def delete_image_from_storage(key: str, storage: StorageBackend) -> tuple[bool, str | None]:
    try:
        storage.remove([key])
    except StorageError as exc:
        if exc.is_object_missing:
            logger.warning("[image-cleanup] image not found (may have been deleted already): %s", key)
            return True, None
        logger.error("[image-cleanup] error deleting image %s: %s", key, exc.message)
        return False, exc.message
    logger.info("[image-cleanup] deleted image: %s", key)
    return True, None


def delete_images_from_storage(
    urls: Iterable[Optional[str]],
    storage: StorageBackend | None,
    bucket: str | None = None,
) -> CleanupResult:
    result = CleanupResult()
    valid_urls = [url for url in urls if url]
    if not valid_urls:
        return result

    bucket_name = bucket or (storage.bucket if storage is not None else settings.STORAGE_BUCKET)
    keys: list[str] = []
    for url in valid_urls:
        key = extract_key_from_url(url, bucket_name)
        if key:
            keys.append(key)
        else:
            logger.warning("[image-cleanup] could not extract storage key from URL: %s", url)
            result.error_count += 1
            result.errors.append(f"Invalid URL: {url[:50]}...")

    if not keys:
        return result

    if storage is None:
        logger.error("[image-cleanup] storage not configured, skipping %d deletions", len(keys))
        result.error_count += len(keys)
        result.errors.append("Storage not configured")
        return result

    try:
        deleted = storage.remove(keys)
    except StorageError as exc:
        logger.error("[image-cleanup] batch delete failed, retrying individually: %s", exc.message)
        for key in keys:
            ok, error = delete_image_from_storage(key, storage)
            if ok:
                result.success_count += 1
            else:
                result.error_count += 1
                result.errors.append(f"{key}: {error or 'Unknown error'}")
        return result

    if deleted is None:
        # 백엔드가 삭제 건수를 보고하지 않으면 누락 여부를 추정하지 않는다.
        result.success_count += len(keys)
    else:
        result.success_count += len(deleted)
        missing = len(keys) - len(deleted)
        if missing > 0:
            result.error_count += missing
            result.errors.append(f"{missing} images may not have been deleted")

    logger.info("[image-cleanup] deleted %d images", result.success_count)
    return result


def delete_property_images(images: list[str] | None, storage: StorageBackend | None) -> CleanupResult:
    if not images:
        return CleanupResult()
    return delete_images_from_storage(images, storage)


def collect_referenced_image_keys(db: Session, bucket: str) -> set[str]:
    referenced: set[str] = set()
    for (raw,) in db.query(Property.images_json).all():
        for url in parse_json_list(raw):
            key = extract_key_from_url(url, bucket)
            if key:
                referenced.add(key)
    return referenced


def _parse_created_at(raw) -> datetime | None:
    if not raw or not isinstance(raw, str):
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def collect_existing_image_keys(storage: StorageBackend, prefix: str = "") -> dict[str, datetime | None]:
    """버킷 객체 키와 생성 시각(알 수 없으면 None)을 반환한다."""
    existing: dict[str, datetime | None] = {}
    offset = 0
    while True:
        entries = storage.list(prefix=prefix, limit=LIST_PAGE_SIZE, offset=offset)
        for entry in entries:
            name = entry.get("name")
            # id가 없는 항목은 폴더 placeholder
            if not name or entry.get("id") is None:
                continue
            key = f"{prefix.rstrip('/')}/{name}" if prefix else name
            existing[key] = _parse_created_at(entry.get("created_at"))
        if len(entries) < LIST_PAGE_SIZE:
            break
        offset += LIST_PAGE_SIZE
    return existing


def cleanup_orphan_property_images(
    db: Session,
    storage: StorageBackend,
    dry_run: bool = True,
    grace_minutes: int | None = None,
    now: datetime | None = None,
) -> dict:
    grace = settings.ORPHAN_GRACE_MINUTES if grace_minutes is None else grace_minutes
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(minutes=max(0, grace))

    referenced = collect_referenced_image_keys(db, storage.bucket)
    existing = collect_existing_image_keys(storage)

    orphan_keys: list[str] = []
    recent_keys: list[str] = []
    for key in sorted(set(existing) - referenced):
        created_at = existing[key]
        # 생성 시각을 모르거나 유예 시간 안이면 아직 매물 저장 전인 업로드로 본다.
        if created_at is None or created_at > cutoff:
            recent_keys.append(key)
        else:
            orphan_keys.append(key)

    deleted_count = 0
    errors: list[str] = []
    if not dry_run and orphan_keys:
        urls = [storage.get_public_url(key) for key in orphan_keys]
        outcome = delete_images_from_storage(urls, storage)
        deleted_count = outcome.success_count
        errors = outcome.errors
    if recent_keys:
        logger.info("[image-cleanup] skipped %d unreferenced images younger than %d minutes", len(recent_keys), grace)

    return {
        "dry_run": dry_run,
        "referenced_count": len(referenced),
        "existing_count": len(existing),
        "orphan_count": len(orphan_keys),
        "deleted_count": deleted_count,
        "orphan_keys": orphan_keys,
        "recent_count": len(recent_keys),
        "recent_keys": recent_keys,
        "grace_minutes": grace,
        "errors": errors,
    }
