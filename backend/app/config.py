"""환경 변수 기반 애플리케이션 설정을 중앙에서 관리합니다."""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./property_images.db"
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Admin session (cpanel)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480
    ADMIN_PASSWORD: str = "change-me"
    ADMIN_SESSION_COOKIE: str = "admin_session"

    # Object storage (Supabase)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_ANON_KEY: str = ""
    STORAGE_BUCKET: str = "property-images"
    STORAGE_TIMEOUT_SECONDS: float = 30.0

    # Upload
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10 MB
    UPLOAD_TMP_DIR: str = ""

    # 매물 저장 전 업로드된 이미지를 고아 정리 대상에서 제외하는 유예 시간
    ORPHAN_GRACE_MINUTES: int = 60

    # Image optimization
    IMAGE_OPTIMIZATION_ENABLED: bool = True
    IMAGE_MAX_WIDTH: int = 1920
    IMAGE_MAX_HEIGHT: int = 1920
    IMAGE_QUALITY: int = 85
    IMAGE_FORMAT: str = "webp"

    # 업로드 파이프라인이 완료되지 못했을 때 UI에 돌려주는 고정 이미지
    PLACEHOLDER_IMAGE_URL: str = "https://placehold.co/1200x800/png?text=Property+Image"
    BUCKET_MISSING_PLACEHOLDER_URL: str = "https://placehold.co/1200x800/png?text=Storage+Unavailable"
    UPLOAD_FAILED_PLACEHOLDER_URL: str = "https://placehold.co/1200x800/png?text=Upload+Failed"

    def storage_api_key(self) -> str:
        # 서버 업로드는 service role 키를 우선 사용하고, 없으면 anon 키로 대체한다.
        return str(self.SUPABASE_SERVICE_ROLE_KEY or "").strip() or str(self.SUPABASE_ANON_KEY or "").strip()

    def is_storage_configured(self) -> bool:
        return bool(str(self.SUPABASE_URL or "").strip() and self.storage_api_key())

    class Config:
        # 실행 cwd와 무관하게 backend/.env를 로드한다.
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()
