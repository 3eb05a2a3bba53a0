"""Property Service 도메인 서비스 레이어입니다. 매물 CRUD와 이미지 정리 호출 순서를 캡슐화합니다."""

import logging
from typing import List

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.property import Property
from app.schemas.property import PropertyCreate, PropertyMutationOut, PropertyOut, PropertyUpdate
from app.services import image_cleanup_service
from app.services.image_cleanup_service import CleanupResult
from app.services.storage_client import StorageBackend
from app.utils.helpers import dump_json_list, parse_json_list

logger = logging.getLogger(__name__)

LAND_PROPERTY_TYPES = {"plot", "land", "commercial land"}
ALLOWED_STATUSES = {"active", "sold", "inactive"}
NULLABLE_FIELDS = {"bhk", "baths", "price", "area_size"}


def _property_types(raw: str | None) -> list[str]:
    return [t.strip() for t in (raw or "").split(",") if t.strip()]


def _is_land_only(raw: str | None) -> bool:
    types = _property_types(raw)
    return bool(types) and all(t.lower() in LAND_PROPERTY_TYPES for t in types)


def _attach_lists(row: Property) -> Property:
    setattr(row, "images", parse_json_list(row.images_json))
    setattr(row, "amenities", parse_json_list(row.amenities_json))
    return row


def _validate_status(status: str | None):
    if status is not None and status not in ALLOWED_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")


def _apply_land_rules(row: Property):
    # 토지 유형은 방/욕실/편의시설 정보를 갖지 않는다.
    if _is_land_only(row.property_type):
        row.bhk = None
        row.baths = None
        row.amenities_json = "[]"


def _get_or_404(db: Session, property_id: int) -> Property:
    row = db.query(Property).filter(Property.property_id == property_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Property not found")
    return row


def list_properties(db: Session, status: str | None = None, skip: int = 0, limit: int = 50) -> List[Property]:
    query = db.query(Property)
    if status:
        query = query.filter(Property.status == status)
    rows = query.order_by(Property.featured.desc(), Property.created_at.desc(), Property.property_id.desc())
    return [_attach_lists(row) for row in rows.offset(skip).limit(limit).all()]


def get_property(db: Session, property_id: int) -> Property:
    return _attach_lists(_get_or_404(db, property_id))


def create_property(db: Session, data: PropertyCreate) -> Property:
    _validate_status(data.status)
    payload = data.model_dump()
    images = payload.pop("images")
    amenities = payload.pop("amenities")
    payload["property_type"] = ",".join(_property_types(data.property_type))
    if not payload["property_type"]:
        raise HTTPException(status_code=400, detail="property_type is required")
    row = Property(
        **payload,
        images_json=dump_json_list(images),
        amenities_json=dump_json_list(amenities),
    )
    _apply_land_rules(row)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("[property] created property %s with %d images", row.property_id, len(images))
    return _attach_lists(row)


def update_property(
    db: Session,
    property_id: int,
    data: PropertyUpdate,
    storage: StorageBackend | None,
) -> PropertyMutationOut:
    row = _get_or_404(db, property_id)
    previous_images = parse_json_list(row.images_json)

    payload = data.model_dump(exclude_unset=True)
    _validate_status(payload.get("status"))
    images_provided = "images" in payload
    new_images = payload.pop("images", None) or []
    amenities = payload.pop("amenities", None)

    for key, value in payload.items():
        if value is None and key not in NULLABLE_FIELDS:
            continue
        if key == "property_type":
            value = ",".join(_property_types(value)) or row.property_type
        setattr(row, key, value)
    if amenities is not None:
        row.amenities_json = dump_json_list(amenities)
    removed: list[str] = []
    if images_provided:
        bucket = storage.bucket if storage is not None else None
        removed = image_cleanup_service.removed_images(previous_images, new_images, bucket)
        row.images_json = dump_json_list(new_images)
    _apply_land_rules(row)

    db.commit()
    db.refresh(row)

    # DB 변경이 기준이며, 스토리지 정리는 커밋 이후 best-effort로 수행한다.
    cleanup = CleanupResult()
    if removed:
        logger.info("[property] property %s removed %d images, cleaning up storage", property_id, len(removed))
        cleanup = image_cleanup_service.delete_images_from_storage(removed, storage)

    return PropertyMutationOut(
        success=True,
        message="Property updated",
        data=PropertyOut.model_validate(_attach_lists(row)),
        images_deleted=cleanup.success_count,
        image_errors=cleanup.errors,
    )


def delete_property(db: Session, property_id: int, storage: StorageBackend | None) -> PropertyMutationOut:
    row = _get_or_404(db, property_id)
    images = parse_json_list(row.images_json)
    db.delete(row)
    db.commit()

    cleanup = image_cleanup_service.delete_property_images(images, storage)
    if cleanup.error_count:
        logger.warning(
            "[property] property %s deleted but %d images were not cleaned up: %s",
            property_id,
            cleanup.error_count,
            cleanup.errors,
        )
    return PropertyMutationOut(
        success=True,
        message="Property deleted",
        images_deleted=cleanup.success_count,
        image_errors=cleanup.errors,
    )
