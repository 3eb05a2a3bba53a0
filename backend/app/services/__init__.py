"""서비스 레이어 패키지 초기화 모듈입니다."""

from app.services import (
    auth_service,
    image_cleanup_service,
    image_optimizer,
    image_upload_service,
    property_service,
    storage_client,
    storage_paths,
)
