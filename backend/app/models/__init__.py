"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from app.models.property import Property

__all__ = [
    "Property",
]
