"""
Модели товара.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ProductBase(BaseModel):
    """Базовая модель товара."""
    title: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    description: Optional[str] = None
    stock: int = Field(0, ge=0)
    catalog_id: Optional[int] = None


class ProductCreate(ProductBase):
    """Модель для создания товара."""
    shop_id: int


class ProductUpdate(BaseModel):
    """Модель для обновления товара."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    description: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    catalog_id: Optional[int] = None


class Product(ProductBase):
    """Полная модель товара."""
    id: int
    shop_id: int
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductWithDetails(Product):
    """Товар с данными магазина и шаблона каталога."""
    shop_name: Optional[str] = None
    shop_address: Optional[str] = None
    catalog_name: Optional[str] = None
    catalog_brand: Optional[str] = None
