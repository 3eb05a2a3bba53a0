"""Upload 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from typing import Any, Optional

from pydantic import BaseModel


class ImageCleanupOut(BaseModel):
    dry_run: bool
    referenced_count: int
    existing_count: int
    orphan_count: int
    deleted_count: int
    orphan_keys: list[str]
    recent_count: int = 0
    recent_keys: list[str] = []
    grace_minutes: int = 0
    errors: list[str] = []


class StorageStatusOut(BaseModel):
    configured: bool
    bucket: str
    optimization_enabled: bool
    public_url_format: Optional[str] = None
    sample_files: list[dict[str, Any]] = []
    error: Optional[str] = None
