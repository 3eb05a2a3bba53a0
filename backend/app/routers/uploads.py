"""Uploads 기능 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.middleware.auth_middleware import require_admin_session
from app.schemas.upload import ImageCleanupOut, StorageStatusOut
from app.services import image_cleanup_service, image_upload_service
from app.services.image_optimizer import ImageOptimizer, get_image_optimizer
from app.services.image_upload_service import OK, UploadOutcome
from app.services.storage_client import StorageBackend, StorageError, get_storage
from app.utils.helpers import UploadTooLargeError, remove_temp_file, save_temp_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["uploads"])

SUCCESS_CACHE_CONTROL = "public, s-maxage=31536000, stale-while-revalidate=86400, immutable"
NO_STORE = "no-store"


def _json(status_code: int, content: dict, cache_control: str = NO_STORE) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers={"Cache-Control": cache_control})


def _outcome_response(outcome: UploadOutcome) -> JSONResponse:
    # 스토리지 장애는 200 + placeholder로 내보내 폼 제출 흐름을 끊지 않는다.
    cache_control = SUCCESS_CACHE_CONTROL if outcome.kind == OK else NO_STORE
    return _json(outcome.status_code, outcome.to_payload(), cache_control)


@router.post("/upload-image")
def upload_image(
    file: UploadFile | None = File(None),
    optimizer: ImageOptimizer = Depends(get_image_optimizer),
    storage: StorageBackend | None = Depends(get_storage),
):
    if file is None or not file.filename:
        logger.error("[upload] no file in request")
        return _json(400, {"error": "No file uploaded"})

    temp_path = None
    try:
        try:
            temp_path = save_temp_upload(file, settings.MAX_UPLOAD_SIZE)
        except UploadTooLargeError as exc:
            logger.error("[upload] rejected oversized upload %s: %s", file.filename, exc)
            return _json(413, {"error": "File too large", "details": str(exc)})

        with open(temp_path, "rb") as f:
            data = f.read()
        logger.info("[upload] file received: %s (%d bytes, %s)", file.filename, len(data), file.content_type)

        outcome = image_upload_service.process_upload(
            data,
            filename=file.filename,
            optimizer=optimizer,
            storage=storage,
        )
        return _outcome_response(outcome)
    except Exception as exc:
        logger.exception("[upload] fatal upload error")
        return _json(500, {"error": "Failed to upload image", "details": str(exc) or exc.__class__.__name__})
    finally:
        # 임시 파일은 어떤 경로로 끝나든 남기지 않는다.
        remove_temp_file(temp_path)


@router.post("/uploads/cleanup", response_model=ImageCleanupOut)
def cleanup_property_images(
    dry_run: bool = True,
    grace_minutes: int | None = Query(None, ge=0),
    db: Session = Depends(get_db),
    storage: StorageBackend | None = Depends(get_storage),
    _session: str = Depends(require_admin_session),
):
    if storage is None:
        raise HTTPException(status_code=503, detail="Storage not configured")
    try:
        return image_cleanup_service.cleanup_orphan_property_images(
            db, storage, dry_run=dry_run, grace_minutes=grace_minutes
        )
    except StorageError as exc:
        raise HTTPException(status_code=502, detail=f"Storage listing failed: {exc.message}")


@router.get("/uploads/storage-status", response_model=StorageStatusOut)
def storage_status(
    storage: StorageBackend | None = Depends(get_storage),
    optimizer: ImageOptimizer = Depends(get_image_optimizer),
    _session: str = Depends(require_admin_session),
):
    status = StorageStatusOut(
        configured=storage is not None,
        bucket=storage.bucket if storage is not None else settings.STORAGE_BUCKET,
        optimization_enabled=optimizer.enabled,
    )
    if storage is None:
        status.error = "Storage not configured"
        return status

    status.public_url_format = storage.get_public_url("<key>")
    try:
        status.sample_files = [
            {"name": entry.get("name"), "size": (entry.get("metadata") or {}).get("size")}
            for entry in storage.list(limit=5)
        ]
    except StorageError as exc:
        status.error = exc.message
    return status
