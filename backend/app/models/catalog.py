"""
Модели каталога (шаблоны товаров).
"""

from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class CatalogItemBase(BaseModel):
    """Базовая модель шаблона каталога."""
    name: str = Field(..., min_length=1, max_length=255)
    brand: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    specs: Dict[str, Any] = {}


class CatalogItemCreate(CatalogItemBase):
    """Модель для создания шаблона."""
    pass


class CatalogItemUpdate(BaseModel):
    """Модель для обновления шаблона."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    brand: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    specs: Optional[Dict[str, Any]] = None


class CatalogItem(CatalogItemBase):
    """Полная модель шаблона каталога."""
    id: int
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
