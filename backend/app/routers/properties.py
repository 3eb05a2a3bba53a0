"""Properties 기능 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.middleware.auth_middleware import require_admin_session
from app.schemas.property import PropertyCreate, PropertyMutationOut, PropertyOut, PropertyUpdate
from app.services import property_service
from app.services.storage_client import StorageBackend, get_storage

router = APIRouter(prefix="/api/properties", tags=["properties"])


@router.get("", response_model=List[PropertyOut])
def list_properties(
    status: str | None = Query(None, max_length=20),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    return property_service.list_properties(db, status=status, skip=skip, limit=limit)


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: int, db: Session = Depends(get_db)):
    return property_service.get_property(db, property_id)


@router.post("", response_model=PropertyOut)
def create_property(
    data: PropertyCreate,
    db: Session = Depends(get_db),
    _session: str = Depends(require_admin_session),
):
    return property_service.create_property(db, data)


@router.api_route("/{property_id}", methods=["PUT", "PATCH"], response_model=PropertyMutationOut)
def update_property(
    property_id: int,
    data: PropertyUpdate,
    db: Session = Depends(get_db),
    storage: StorageBackend | None = Depends(get_storage),
    _session: str = Depends(require_admin_session),
):
    return property_service.update_property(db, property_id, data, storage)


@router.delete("/{property_id}", response_model=PropertyMutationOut)
def delete_property(
    property_id: int,
    db: Session = Depends(get_db),
    storage: StorageBackend | None = Depends(get_storage),
    _session: str = Depends(require_admin_session),
):
    return property_service.delete_property(db, property_id, storage)
