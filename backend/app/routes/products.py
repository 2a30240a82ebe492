"""
API Routes для товаров.
"""

from fastapi import APIRouter, Depends, Query, UploadFile, File
from typing import Optional

from ..models.product import Product, ProductCreate, ProductUpdate, ProductWithDetails
from ..models.user import User
from ..services.database import DatabaseService, get_db, paginate
from ..services.products import ProductService
from ..services.storage import ObjectStorage, get_storage, read_image
from .users import get_current_user, get_current_user_optional, require_shopkeeper

router = APIRouter()


@router.get("")
async def get_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    shop_id: Optional[int] = None,
    catalog_id: Optional[int] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort_by: str = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    db: DatabaseService = Depends(get_db)
):
    """Получает список товаров одобренных магазинов с фильтрацией."""
    products, total = await ProductService(db).list(
        page,
        limit,
        search=search,
        shop_id=shop_id,
        catalog_id=catalog_id,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        order=order,
    )
    return {"items": products, "pagination": paginate(total, page, limit)}


@router.get("/{product_id}", response_model=ProductWithDetails)
async def get_product(
    product_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: DatabaseService = Depends(get_db)
):
    """Получает товар по ID с информацией о магазине и шаблоне каталога."""
    return await ProductService(db).get_details(product_id, current_user)


@router.post("", response_model=Product, status_code=201)
async def create_product(
    product_data: ProductCreate,
    current_user: User = Depends(require_shopkeeper),
    db: DatabaseService = Depends(get_db)
):
    """Создаёт товар в своём магазине."""
    return await ProductService(db).create(product_data, current_user)


@router.put("/{product_id}", response_model=Product)
async def update_product(
    product_id: int,
    product_update: ProductUpdate,
    current_user: User = Depends(require_shopkeeper),
    db: DatabaseService = Depends(get_db)
):
    service = ProductService(db)
    product = await service.get(product_id)
    return await service.update(product, product_update, current_user)


@router.post("/{product_id}/image", response_model=Product)
async def upload_product_image(
    product_id: int,
    file: UploadFile = File(...),
    current_user: User = Depends(require_shopkeeper),
    db: DatabaseService = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage)
):
    """Загружает изображение товара, старое удаляется."""
    service = ProductService(db)
    product = await service.get(product_id)
    await service.ensure_can_edit(product, current_user)

    content = await read_image(file)
    image_url = await storage.upload(content, f"products/{product.shop_id}", file.content_type)
    return await service.set_image(product, image_url, current_user, storage)


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: DatabaseService = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage)
):
    """Удаляет товар (владелец магазина или администратор)."""
    service = ProductService(db)
    product = await service.get(product_id)
    await service.delete(product, current_user, storage)
    return {"success": True, "message": "Product deleted"}
