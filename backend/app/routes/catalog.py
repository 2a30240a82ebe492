"""
API Routes для каталога шаблонов товаров.
"""

from fastapi import APIRouter, Depends, Query, UploadFile, File
from typing import List, Optional

from ..models.catalog import CatalogItem, CatalogItemCreate, CatalogItemUpdate
from ..models.user import User
from ..services.catalog import CatalogService
from ..services.database import DatabaseService, get_db, paginate
from ..services.storage import ObjectStorage, get_storage, read_image
from .users import require_admin

router = APIRouter()


@router.get("")
async def get_catalog(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    brand: Optional[str] = None,
    sort_by: str = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    db: DatabaseService = Depends(get_db)
):
    """Список шаблонов с поиском по названию и бренду."""
    items, total = await CatalogService(db).list(
        page, limit, search=search, category=category, brand=brand, sort_by=sort_by, order=order
    )
    return {"items": items, "pagination": paginate(total, page, limit)}


@router.get("/categories", response_model=List[str])
async def get_catalog_categories(db: DatabaseService = Depends(get_db)):
    return await CatalogService(db).categories()


@router.get("/brands", response_model=List[str])
async def get_catalog_brands(
    category: Optional[str] = None,
    db: DatabaseService = Depends(get_db)
):
    return await CatalogService(db).brands(category)


@router.get("/category/{category}")
async def get_catalog_by_category(
    category: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: DatabaseService = Depends(get_db)
):
    """Шаблоны одной категории."""
    items, total = await CatalogService(db).list(page, limit, category=category, sort_by="name", order="asc")
    return {"items": items, "pagination": paginate(total, page, limit)}


@router.get("/{item_id}", response_model=CatalogItem)
async def get_catalog_item(item_id: int, db: DatabaseService = Depends(get_db)):
    return await CatalogService(db).get(item_id)


@router.post("", response_model=CatalogItem, status_code=201)
async def create_catalog_item(
    item_data: CatalogItemCreate,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db)
):
    return await CatalogService(db).create(item_data)


@router.put("/{item_id}", response_model=CatalogItem)
async def update_catalog_item(
    item_id: int,
    item_update: CatalogItemUpdate,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db)
):
    service = CatalogService(db)
    item = await service.get(item_id)
    return await service.update(item, item_update)


@router.post("/{item_id}/image", response_model=CatalogItem)
async def upload_catalog_image(
    item_id: int,
    file: UploadFile = File(...),
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage)
):
    service = CatalogService(db)
    item = await service.get(item_id)
    content = await read_image(file)
    image_url = await storage.upload(content, "catalog", file.content_type)
    return await service.set_image(item, image_url, storage)


@router.delete("/{item_id}")
async def delete_catalog_item(
    item_id: int,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage)
):
    """Удаляет шаблон. Товары остаются, ссылка на шаблон обнуляется."""
    service = CatalogService(db)
    item = await service.get(item_id)
    await service.delete(item, storage)
    return {"success": True, "message": "Catalog item deleted"}
