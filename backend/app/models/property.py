"""매물(Property) 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.sql import func

from app.database import Base


class Property(Base):
    __tablename__ = "properties"

    property_id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False, default="")
    property_type = Column(String(200), nullable=False)  # 콤마 구분 다중 유형
    bhk = Column(Integer, nullable=True)
    baths = Column(Integer, nullable=True)
    selling_type = Column(String(20), nullable=False, default="Sale")  # Sale/Rent
    price = Column(Float, nullable=True)
    area_size = Column(Float, nullable=True)
    area_unit = Column(String(30), nullable=False, default="Sq. Ft.")
    city = Column(String(100), nullable=False)
    address = Column(Text, nullable=False)
    state = Column(String(100), nullable=False, default="")
    owner_name = Column(String(100), nullable=False)
    owner_number = Column(String(30), nullable=False)
    amenities_json = Column(Text, nullable=False, default="[]")
    images_json = Column(Text, nullable=False, default="[]")  # 공개 이미지 URL 목록, 첫 번째가 대표 이미지
    status = Column(String(20), nullable=False, default="active")  # active/sold/inactive
    featured = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, onupdate=func.now(), nullable=True)

    __table_args__ = (
        Index("idx_property_status", "status", "created_at"),
    )
