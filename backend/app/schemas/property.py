"""Property 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PropertyBase(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = ""
    property_type: str = Field(min_length=1, max_length=200)
    bhk: Optional[int] = None
    baths: Optional[int] = None
    selling_type: str = "Sale"
    price: Optional[float] = None
    area_size: Optional[float] = None
    area_unit: str = "Sq. Ft."
    city: str = Field(min_length=1, max_length=100)
    address: str = Field(min_length=1)
    state: str = ""
    owner_name: str = Field(min_length=1, max_length=100)
    owner_number: str = Field(min_length=1, max_length=30)
    amenities: List[str] = []
    images: List[str] = []
    status: str = "active"
    featured: bool = False


class PropertyCreate(PropertyBase):
    pass


class PropertyUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = None
    property_type: Optional[str] = Field(None, min_length=1, max_length=200)
    bhk: Optional[int] = None
    baths: Optional[int] = None
    selling_type: Optional[str] = None
    price: Optional[float] = None
    area_size: Optional[float] = None
    area_unit: Optional[str] = None
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=1)
    state: Optional[str] = None
    owner_name: Optional[str] = Field(None, min_length=1, max_length=100)
    owner_number: Optional[str] = Field(None, min_length=1, max_length=30)
    amenities: Optional[List[str]] = None
    images: Optional[List[str]] = None
    status: Optional[str] = None
    featured: Optional[bool] = None


class PropertyOut(PropertyBase):
    property_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PropertyMutationOut(BaseModel):
    success: bool = True
    message: str
    data: Optional[PropertyOut] = None
    images_deleted: int = Field(0, alias="imagesDeleted")
    image_errors: List[str] = Field(default_factory=list, alias="imageErrors")

    model_config = {"populate_by_name": True}
