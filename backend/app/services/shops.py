"""
Сервис магазинов: хранение, права владельца, модерация.
"""

import logging
from typing import Optional, List, Tuple

from ..errors import Forbidden, InvalidArgument, NotFound
from ..models.shop import Shop, ShopCreate, ShopUpdate, ShopStatus
from ..models.user import User, UserType
from .database import DatabaseService, WhereBuilder, now
from .geo import BoundingBox
from .moderation import ensure_can_moderate, ensure_transition, status_after_edit
from .storage import ObjectStorage, discard_image


logger = logging.getLogger(__name__)

# Поля, которые нельзя очистить правкой
REQUIRED_FIELDS = ("name", "address", "latitude", "longitude")


class ShopService:
    """Операции с магазинами поверх DatabaseService."""

    def __init__(self, db: DatabaseService):
        self.db = db

    # ==================== Чтение ====================

    async def get(self, shop_id: int) -> Shop:
        row = await self.db.fetch_one("SELECT * FROM shops WHERE id = ?", (shop_id,))
        if not row:
            raise NotFound("Shop not found")
        return Shop(**row)

    async def get_visible(self, shop_id: int, viewer: Optional[User]) -> Shop:
        """
        Магазин для просмотра. Неодобренный виден только владельцу
        и администратору, остальным - 404.
        """
        shop = await self.get(shop_id)
        if shop.status == ShopStatus.APPROVED or can_manage(shop, viewer):
            return shop
        raise NotFound("Shop not found")

    async def list_public(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Tuple[List[Shop], int]:
        """Одобренные магазины с фильтрами и пагинацией."""
        where = WhereBuilder().add("status = ?", ShopStatus.APPROVED.value)
        where.add_if(search, "(name LIKE ? OR description LIKE ?)", f"%{search}%", f"%{search}%")
        where.add_if(category, "category = ?")
        return await self._paginated(where, page, limit)

    async def list_admin(
        self,
        page: int,
        limit: int,
        status: Optional[ShopStatus] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Shop], int]:
        """Все магазины для администратора."""
        where = WhereBuilder()
        where.add_if(status.value if status else None, "status = ?")
        where.add_if(
            search,
            "(name LIKE ? OR address LIKE ? OR description LIKE ?)",
            f"%{search}%", f"%{search}%", f"%{search}%",
        )
        return await self._paginated(where, page, limit)

    async def list_by_owner(self, owner_id: int) -> List[Shop]:
        rows = await self.db.fetch_all(
            "SELECT * FROM shops WHERE owner_id = ? ORDER BY created_at DESC, id DESC",
            (owner_id,)
        )
        return [Shop(**row) for row in rows]

    async def _paginated(self, where: WhereBuilder, page: int, limit: int) -> Tuple[List[Shop], int]:
        clause, params = where.build()
        total = await self.db.count("shops", clause, params)
        rows = await self.db.fetch_all(
            f"SELECT * FROM shops WHERE {clause} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
            params + (limit, (page - 1) * limit)
        )
        return [Shop(**row) for row in rows], total

    async def list_approved_shops(
        self,
        box: Optional[BoundingBox] = None,
        category: Optional[str] = None,
    ) -> List[Shop]:
        """Кандидаты для поиска рядом: одобренные магазины внутри box."""
        where = WhereBuilder().add("status = ?", ShopStatus.APPROVED.value)
        if box is not None:
            where.add("latitude BETWEEN ? AND ?", box.min_lat, box.max_lat)
            if box.crosses_antimeridian:
                where.add("(longitude >= ? OR longitude <= ?)", box.min_lon, box.max_lon)
            elif not box.covers_all_longitudes:
                where.add("longitude BETWEEN ? AND ?", box.min_lon, box.max_lon)
        where.add_if(category, "category = ?")

        clause, params = where.build()
        rows = await self.db.fetch_all(f"SELECT * FROM shops WHERE {clause}", params)
        return [Shop(**row) for row in rows]

    async def count(self, status: Optional[ShopStatus] = None) -> int:
        if status is None:
            return await self.db.count("shops")
        return await self.db.count("shops", "status = ?", (status.value,))

    # ==================== Изменение ====================

    async def create(self, owner: User, shop_data: ShopCreate) -> Shop:
        """Создаёт магазин в статусе pending."""
        shop_dict = shop_data.model_dump()
        # Пустые строки храним как NULL
        for key, value in shop_dict.items():
            if isinstance(value, str) and value.strip() == "":
                shop_dict[key] = None

        shop_dict["owner_id"] = owner.id
        shop_dict["status"] = ShopStatus.PENDING.value

        shop_id = await self.db.insert("shops", shop_dict)
        logger.info(f"[SHOPS] Shop {shop_id} created by user {owner.id}, waiting for approval")
        return await self.get(shop_id)

    async def update(self, shop: Shop, shop_data: ShopUpdate, editor: User) -> Tuple[Shop, bool]:
        """
        Применяет только переданные поля.

        Returns:
            (магазин после правки, вернулся ли магазин на модерацию)
        """
        ensure_can_manage(shop, editor)
        update_data = shop_data.model_dump(exclude_unset=True)

        for key, value in update_data.items():
            if isinstance(value, str) and value.strip() == "":
                update_data[key] = None
        cleared = [field for field in REQUIRED_FIELDS if field in update_data and update_data[field] is None]
        if cleared:
            raise InvalidArgument(f"Fields cannot be empty: {', '.join(cleared)}")

        if not update_data:
            return shop, False

        new_status = status_after_edit(shop, update_data, editor)
        resubmitted = new_status != shop.status
        if resubmitted:
            update_data["status"] = new_status.value
            update_data["rejection_reason"] = None
            logger.info(
                f"[SHOPS] Shop {shop.id} critical fields changed by owner, "
                f"status {shop.status.value} -> {new_status.value}"
            )

        update_data["updated_at"] = now()
        await self.db.update("shops", update_data, "id = ?", (shop.id,))
        return await self.get(shop.id), resubmitted

    async def set_banner(self, shop: Shop, banner_url: str, storage: ObjectStorage) -> Shop:
        """Сохраняет новый баннер. Статус модерации не меняется."""
        await self.db.update(
            "shops",
            {"banner_url": banner_url, "updated_at": now()},
            "id = ?",
            (shop.id,)
        )
        if shop.banner_url and shop.banner_url != banner_url:
            await discard_image(storage, shop.banner_url)
        return await self.get(shop.id)

    async def _set_status(self, shop: Shop, target: ShopStatus, reason: Optional[str] = None) -> Shop:
        ensure_transition(shop.status, target)
        await self.db.update(
            "shops",
            {"status": target.value, "rejection_reason": reason, "updated_at": now()},
            "id = ?",
            (shop.id,)
        )
        logger.info(f"[SHOPS] Shop {shop.id} status {shop.status.value} -> {target.value}")
        return await self.get(shop.id)

    async def approve(self, shop_id: int, admin: User) -> Shop:
        ensure_can_moderate(admin, ShopStatus.APPROVED)
        shop = await self.get(shop_id)
        return await self._set_status(shop, ShopStatus.APPROVED)

    async def reject(self, shop_id: int, admin: User, reason: str) -> Shop:
        ensure_can_moderate(admin, ShopStatus.REJECTED)
        shop = await self.get(shop_id)
        return await self._set_status(shop, ShopStatus.REJECTED, reason)

    async def resubmit(self, shop: Shop, owner: User) -> Shop:
        """Владелец повторно отправляет отклонённый магазин на модерацию."""
        if shop.owner_id != owner.id:
            raise Forbidden("Only the owner can resubmit the shop")
        return await self._set_status(shop, ShopStatus.PENDING)

    async def delete(self, shop: Shop, storage: ObjectStorage) -> None:
        """Удаляет магазин вместе с товарами и их изображениями."""
        product_images = await self.db.fetch_all(
            "SELECT image_url FROM products WHERE shop_id = ? AND image_url IS NOT NULL",
            (shop.id,)
        )
        # Товары удаляются каскадом (ON DELETE CASCADE) в том же запросе
        await self.db.delete("shops", "id = ?", (shop.id,))
        logger.info(f"[SHOPS] Shop {shop.id} deleted with {len(product_images)} product images")

        for row in product_images:
            await discard_image(storage, row["image_url"])
        await discard_image(storage, shop.banner_url)


def can_manage(shop: Shop, user: Optional[User]) -> bool:
    """Владелец магазина или администратор."""
    if user is None:
        return False
    return user.user_type == UserType.ADMIN or shop.owner_id == user.id


def ensure_can_manage(shop: Shop, user: User) -> None:
    if not can_manage(shop, user):
        raise Forbidden("Not authorized to manage this shop")
