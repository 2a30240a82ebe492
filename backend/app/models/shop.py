"""
Модели магазина.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, model_validator


class ShopStatus(str, Enum):
    """Статус модерации магазина."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ShopBase(BaseModel):
    """Базовая модель магазина."""
    name: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = Field(None, max_length=500)
    address: str = Field(..., min_length=5, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    contact_phone: Optional[str] = Field(None, pattern=r"^\+?[0-9]{10,15}$")
    whatsapp: Optional[str] = Field(None, pattern=r"^\+?[0-9]{10,15}$")
    latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False)


class ShopCreate(ShopBase):
    """Модель для создания магазина."""
    pass


class ShopUpdate(BaseModel):
    """Модель для обновления магазина. Применяются только переданные поля."""
    name: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, min_length=5, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    contact_phone: Optional[str] = Field(None, pattern=r"^\+?[0-9]{10,15}$")
    whatsapp: Optional[str] = Field(None, pattern=r"^\+?[0-9]{10,15}$")
    latitude: Optional[float] = Field(None, ge=-90, le=90, allow_inf_nan=False)
    longitude: Optional[float] = Field(None, ge=-180, le=180, allow_inf_nan=False)

    @model_validator(mode="after")
    def check_coordinates_pair(self):
        # Координаты меняются только парой
        has_lat = "latitude" in self.model_fields_set and self.latitude is not None
        has_lon = "longitude" in self.model_fields_set and self.longitude is not None
        if has_lat != has_lon:
            raise ValueError("latitude and longitude must be provided together")
        return self


class Shop(ShopBase):
    """Полная модель магазина."""
    id: int
    owner_id: int
    status: ShopStatus = ShopStatus.PENDING
    rejection_reason: Optional[str] = None
    banner_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ShopRejection(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class Distance(BaseModel):
    """Расстояние до магазина."""
    meters: int
    kilometers: float


class NearbyShop(Shop):
    """Магазин с расстоянием от точки поиска."""
    distance: Distance


class NearbyShopsResponse(BaseModel):
    success: bool = True
    count: int
    data: List[NearbyShop]
