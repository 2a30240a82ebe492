"""
API Routes для магазинов.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, UploadFile, File
from typing import List, Optional

from ..models.shop import Shop, ShopCreate, ShopUpdate, NearbyShopsResponse
from ..models.user import User
from ..services.database import DatabaseService, get_db, paginate
from ..services.geo import make_coordinate
from ..services.products import ProductService
from ..services.proximity import ProximitySearch
from ..services.shops import ShopService, ensure_can_manage
from ..services.storage import ObjectStorage, get_storage, read_image
from ..services.telegram_notifier import TelegramNotifier
from .users import get_current_user, get_current_user_optional, require_shopkeeper

router = APIRouter()


@router.post("", response_model=Shop, status_code=201)
async def create_shop(
    shop_data: ShopCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_shopkeeper),
    db: DatabaseService = Depends(get_db)
):
    """Создаёт магазин. Он появится в поиске после одобрения."""
    shop = await ShopService(db).create(current_user, shop_data)
    background_tasks.add_task(TelegramNotifier.notify_shop_pending, shop, "new")
    return shop


@router.get("")
async def get_shops(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    db: DatabaseService = Depends(get_db)
):
    """Получает список одобренных магазинов."""
    shops, total = await ShopService(db).list_public(page, limit, search=search, category=category)
    return {"items": shops, "pagination": paginate(total, page, limit)}


@router.get("/nearby", response_model=NearbyShopsResponse)
async def get_nearby_shops(
    latitude: Optional[float] = Query(None, description="Широта точки поиска"),
    longitude: Optional[float] = Query(None, description="Долгота точки поиска"),
    radius: Optional[float] = Query(None, description="Радиус поиска в метрах"),
    limit: Optional[int] = Query(None, description="Максимум результатов"),
    category: Optional[str] = None,
    db: DatabaseService = Depends(get_db)
):
    """Одобренные магазины в радиусе от точки, ближайшие первыми."""
    origin = make_coordinate(latitude, longitude)
    search = ProximitySearch(ShopService(db))
    results = await search.find_nearby_shops(origin, radius_meters=radius, limit=limit, category=category)
    data = [item.to_nearby() for item in results]
    return NearbyShopsResponse(count=len(data), data=data)


@router.get("/my", response_model=List[Shop])
async def get_my_shops(
    current_user: User = Depends(require_shopkeeper),
    db: DatabaseService = Depends(get_db)
):
    """Магазины текущего продавца в любом статусе."""
    return await ShopService(db).list_by_owner(current_user.id)


@router.get("/{shop_id}", response_model=Shop)
async def get_shop(
    shop_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: DatabaseService = Depends(get_db)
):
    return await ShopService(db).get_visible(shop_id, current_user)


@router.put("/{shop_id}", response_model=Shop)
async def update_shop(
    shop_id: int,
    shop_update: ShopUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: DatabaseService = Depends(get_db)
):
    """Обновляет магазин. Правка названия, адреса или категории отправляет его на модерацию."""
    service = ShopService(db)
    shop = await service.get(shop_id)
    updated, resubmitted = await service.update(shop, shop_update, current_user)
    if resubmitted:
        background_tasks.add_task(TelegramNotifier.notify_shop_pending, updated, "edited")
    return updated


@router.post("/{shop_id}/banner", response_model=Shop)
async def upload_shop_banner(
    shop_id: int,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: DatabaseService = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage)
):
    """Загружает баннер магазина. Статус модерации не меняется."""
    service = ShopService(db)
    shop = await service.get(shop_id)
    ensure_can_manage(shop, current_user)

    content = await read_image(file)
    banner_url = await storage.upload(content, f"shops/{shop.id}", file.content_type)
    return await service.set_banner(shop, banner_url, storage)


@router.post("/{shop_id}/resubmit", response_model=Shop)
async def resubmit_shop(
    shop_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: DatabaseService = Depends(get_db)
):
    """Повторно отправляет отклонённый магазин на модерацию."""
    service = ShopService(db)
    shop = await service.resubmit(await service.get(shop_id), current_user)
    background_tasks.add_task(TelegramNotifier.notify_shop_pending, shop, "resubmitted")
    return shop


@router.delete("/{shop_id}")
async def delete_shop(
    shop_id: int,
    current_user: User = Depends(get_current_user),
    db: DatabaseService = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage)
):
    """Удаляет магазин вместе с товарами."""
    service = ShopService(db)
    shop = await service.get(shop_id)
    ensure_can_manage(shop, current_user)
    await service.delete(shop, storage)
    return {"success": True, "message": "Shop deleted"}


@router.get("/{shop_id}/products")
async def get_shop_products(
    shop_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: DatabaseService = Depends(get_db)
):
    """Товары магазина. Товары неодобренного магазина видят только владелец и администратор."""
    shop = await ShopService(db).get_visible(shop_id, current_user)
    products, total = await ProductService(db).list(page, limit, shop_id=shop.id, approved_only=False)
    return {"items": products, "pagination": paginate(total, page, limit)}
