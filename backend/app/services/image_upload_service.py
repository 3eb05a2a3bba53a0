"""Image Upload 서비스 레이어입니다. 검증 -> 최적화 -> 키 생성 -> 스토리지 업로드 흐름을 캡슐화합니다."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from app.config import settings
from app.services.image_optimizer import (
    FORMAT_CONTENT_TYPES,
    FORMAT_EXTENSIONS,
    ImageOptimizer,
    OptimizationOptions,
    OptimizationResult,
    sniff_image_format,
)
from app.services.storage_client import StorageBackend, StorageError
from app.services.storage_paths import generate_key

logger = logging.getLogger(__name__)

OK = "ok"
DEGRADED = "degraded"
FAILED = "failed"


@dataclass
class UploadOutcome:
    kind: str
    url: Optional[str] = None
    path: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None
    help: Optional[str] = None
    optimization: Optional[dict[str, Any]] = None
    status_code: int = 200

    @classmethod
    def ok(cls, url: str, path: str, optimization: dict[str, Any]) -> "UploadOutcome":
        return cls(kind=OK, url=url, path=path, optimization=optimization)

    @classmethod
    def degraded(cls, url: str, error: str, details: str | None = None, help: str | None = None) -> "UploadOutcome":
        return cls(kind=DEGRADED, url=url, error=error, details=details, help=help)

    @classmethod
    def failed(cls, status_code: int, error: str, details: str | None = None) -> "UploadOutcome":
        return cls(kind=FAILED, error=error, details=details, status_code=status_code)

    def to_payload(self) -> dict[str, Any]:
        if self.kind == OK:
            return {"url": self.url, "path": self.path, "success": True, "optimization": self.optimization}
        payload: dict[str, Any] = {}
        if self.url:
            payload["url"] = self.url
        payload["error"] = self.error
        if self.details:
            payload["details"] = self.details
        if self.help:
            payload["help"] = self.help
        return payload


def default_optimization_options() -> OptimizationOptions:
    return OptimizationOptions(
        max_width=settings.IMAGE_MAX_WIDTH,
        max_height=settings.IMAGE_MAX_HEIGHT,
        quality=settings.IMAGE_QUALITY,
        format=settings.IMAGE_FORMAT or None,
    )


def resolve_output_type(result: OptimizationResult, original: bytes) -> tuple[str, str]:
    """최적화 결과 포맷(또는 원본 시그니처)에 맞는 확장자와 Content-Type."""
    image_format = result.format if result.format in FORMAT_EXTENSIONS else sniff_image_format(original)
    image_format = image_format or "jpeg"
    return FORMAT_EXTENSIONS[image_format], FORMAT_CONTENT_TYPES[image_format]


def optimization_summary(result: OptimizationResult) -> dict[str, Any]:
    return {
        "originalSize": result.original_size,
        "optimizedSize": result.optimized_size,
        "reductionPercent": result.reduction_percent,
        "format": result.format,
        "dimensions": {"width": result.width, "height": result.height},
    }


def storage_not_configured() -> UploadOutcome:
    logger.warning("[upload] storage not configured, returning placeholder image (demo mode)")
    return UploadOutcome.degraded(
        settings.PLACEHOLDER_IMAGE_URL,
        error="Storage not configured",
        details="SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY) are not set.",
        help="Add the storage variables to backend/.env and restart the server.",
    )


def process_upload(
    data: bytes,
    *,
    filename: str,
    optimizer: ImageOptimizer,
    storage: StorageBackend | None,
) -> UploadOutcome:
    if storage is None:
        return storage_not_configured()

    logger.info("[upload] validating %s (%.2f KB)", filename, len(data) / 1024)
    if not optimizer.is_valid_image(data):
        logger.error("[upload] invalid image file: %s", filename)
        return UploadOutcome.failed(400, "Invalid image file", "File is not a valid image format")

    result = optimizer.optimize_image(data, default_optimization_options())
    extension, content_type = resolve_output_type(result, data)
    key = generate_key(extension)
    logger.info(
        "[upload] optimized %s: %d -> %d bytes (%s%%), %dx%d %s",
        filename,
        result.original_size,
        result.optimized_size,
        result.reduction_percent,
        result.width,
        result.height,
        result.format,
    )

    try:
        stored_path = storage.upload(key, result.buffer, content_type, upsert=False)
    except StorageError as exc:
        if exc.is_not_found:
            logger.error("[upload] bucket %s not found or inaccessible: %s", storage.bucket, exc.message)
            return UploadOutcome.degraded(
                settings.BUCKET_MISSING_PLACEHOLDER_URL,
                error="Storage bucket not found or inaccessible",
                details=exc.message,
                help=f'Verify the bucket "{storage.bucket}" exists, is public, and that the service role key is set.',
            )
        logger.error("[upload] storage upload failed (%s): %s", exc.status_code, exc.message)
        return UploadOutcome.degraded(
            settings.UPLOAD_FAILED_PLACEHOLDER_URL,
            error="Storage upload failed",
            details=exc.message,
        )

    url = storage.get_public_url(stored_path)
    logger.info("[upload] uploaded %s -> %s", stored_path, url)
    return UploadOutcome.ok(url, stored_path, optimization_summary(result))
