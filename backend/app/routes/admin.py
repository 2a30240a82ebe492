"""
API Routes для администратора.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import datetime, timedelta

from ..models.shop import Shop, ShopRejection, ShopStatus
from ..models.user import User, UserStatusUpdate, UserType
from ..services.catalog import CatalogService
from ..services.database import DatabaseService, get_db, paginate
from ..services.products import ProductService
from ..services.shops import ShopService
from ..services.storage import ObjectStorage, get_storage
from ..services.users import UserService
from .users import require_admin

router = APIRouter()

STATS_DAYS = 7


async def _daily_counts(db: DatabaseService, table: str, since: str) -> dict:
    rows = await db.fetch_all(
        f"""SELECT date(created_at) AS day, COUNT(*) AS cnt
            FROM {table}
            WHERE date(created_at) >= ?
            GROUP BY day""",
        (since,)
    )
    return {row["day"]: row["cnt"] for row in rows}


# ==================== Статистика ====================

@router.get("/stats")
async def get_stats(
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db)
):
    """Сводка по платформе и новые записи за последние 7 дней."""
    shops = ShopService(db)
    users_by_type = await UserService(db).count_by_type()
    shops_by_status = {status.value: await shops.count(status) for status in ShopStatus}

    today = datetime.utcnow().date()
    days = [(today - timedelta(days=offset)).isoformat() for offset in range(STATS_DAYS - 1, -1, -1)]
    new_users = await _daily_counts(db, "users", days[0])
    new_shops = await _daily_counts(db, "shops", days[0])
    new_products = await _daily_counts(db, "products", days[0])

    return {
        "users": {"total": sum(users_by_type.values()), "by_type": users_by_type},
        "shops": {"total": sum(shops_by_status.values()), "by_status": shops_by_status},
        "products": {"total": await ProductService(db).count()},
        "catalog_items": {"total": await CatalogService(db).count()},
        "daily": [
            {
                "date": day,
                "users": new_users.get(day, 0),
                "shops": new_shops.get(day, 0),
                "products": new_products.get(day, 0),
            }
            for day in days
        ],
    }


# ==================== Пользователи ====================

@router.get("/users")
async def get_all_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_type: Optional[UserType] = None,
    search: Optional[str] = None,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db)
):
    """Получает список пользователей с фильтрами."""
    users, total = await UserService(db).list_admin(page, limit, user_type=user_type, search=search)
    return {"items": users, "pagination": paginate(total, page, limit)}


@router.get("/users/{user_id}", response_model=User)
async def get_user(
    user_id: int,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db)
):
    return await UserService(db).get(user_id)


@router.put("/users/{user_id}/status", response_model=User)
async def update_user_status(
    user_id: int,
    status_update: UserStatusUpdate,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db)
):
    """Блокирует или разблокирует пользователя."""
    return await UserService(db).set_active(user_id, status_update.is_active, admin_user)


# ==================== Магазины ====================

@router.get("/shops")
async def get_all_shops(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[ShopStatus] = None,
    search: Optional[str] = None,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db)
):
    """Получает список всех магазинов с фильтрами."""
    shops, total = await ShopService(db).list_admin(page, limit, status=status, search=search)
    return {"items": shops, "pagination": paginate(total, page, limit)}


@router.get("/shops/pending")
async def get_pending_shops(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db)
):
    """Очередь модерации."""
    shops, total = await ShopService(db).list_admin(page, limit, status=ShopStatus.PENDING)
    return {"items": shops, "pagination": paginate(total, page, limit)}


@router.put("/shops/{shop_id}/approve", response_model=Shop)
async def approve_shop(
    shop_id: int,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db)
):
    return await ShopService(db).approve(shop_id, admin_user)


@router.put("/shops/{shop_id}/reject", response_model=Shop)
async def reject_shop(
    shop_id: int,
    rejection: ShopRejection,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db)
):
    return await ShopService(db).reject(shop_id, admin_user, rejection.reason)


@router.delete("/shops/{shop_id}")
async def delete_shop(
    shop_id: int,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage)
):
    service = ShopService(db)
    shop = await service.get(shop_id)
    await service.delete(shop, storage)
    return {"success": True, "message": "Shop deleted"}


# ==================== Товары ====================

@router.delete("/products/{product_id}")
async def delete_product(
    product_id: int,
    admin_user: User = Depends(require_admin),
    db: DatabaseService = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage)
):
    service = ProductService(db)
    product = await service.get(product_id)
    await service.delete(product, admin_user, storage)
    return {"success": True, "message": "Product deleted"}
