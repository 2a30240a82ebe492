"""
Сервис товаров.
"""

import logging
from typing import Optional, List, Tuple

from ..errors import Forbidden, InvalidArgument, NotFound
from ..models.product import Product, ProductCreate, ProductUpdate, ProductWithDetails
from ..models.shop import Shop, ShopStatus
from ..models.user import User
from .database import DatabaseService, WhereBuilder, now
from .shops import ShopService, can_manage
from .storage import ObjectStorage, discard_image


logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "created_at": "p.created_at",
    "price": "p.price",
    "title": "p.title",
    "stock": "p.stock",
}

DETAILS_SELECT = """
    SELECT p.*,
           s.name AS shop_name,
           s.address AS shop_address,
           c.name AS catalog_name,
           c.brand AS catalog_brand
    FROM products p
    JOIN shops s ON p.shop_id = s.id
    LEFT JOIN catalog_items c ON p.catalog_id = c.id
"""


def order_clause(sort_by: str, order: str) -> str:
    column = SORT_FIELDS.get(sort_by)
    if column is None:
        raise InvalidArgument(f"Cannot sort by '{sort_by}'. Allowed: {', '.join(SORT_FIELDS)}")
    direction = "ASC" if order.lower() == "asc" else "DESC"
    return f"{column} {direction}, p.id {direction}"


def ensure_owner(shop: Shop, user: User) -> None:
    if shop.owner_id != user.id:
        raise Forbidden("Only the shop owner can manage its products")


class ProductService:
    """Операции с товарами поверх DatabaseService."""

    def __init__(self, db: DatabaseService):
        self.db = db
        self.shops = ShopService(db)

    async def get(self, product_id: int) -> Product:
        row = await self.db.fetch_one("SELECT * FROM products WHERE id = ?", (product_id,))
        if not row:
            raise NotFound("Product not found")
        return Product(**row)

    async def get_details(self, product_id: int, viewer: Optional[User] = None) -> ProductWithDetails:
        """Товар с магазином и шаблоном. Товары неодобренных магазинов видят только владелец и админ."""
        row = await self.db.fetch_one(
            f"{DETAILS_SELECT} WHERE p.id = ?",
            (product_id,)
        )
        if not row:
            raise NotFound("Product not found")
        shop = await self.shops.get(row["shop_id"])
        if shop.status != ShopStatus.APPROVED and not can_manage(shop, viewer):
            raise NotFound("Product not found")
        return ProductWithDetails(**row)

    async def list(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        shop_id: Optional[int] = None,
        catalog_id: Optional[int] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort_by: str = "created_at",
        order: str = "desc",
        approved_only: bool = True,
    ) -> Tuple[List[ProductWithDetails], int]:
        """Список товаров с фильтрами. По умолчанию только одобренные магазины."""
        where = WhereBuilder()
        if approved_only:
            where.add("s.status = ?", ShopStatus.APPROVED.value)
        if search:
            search_lower = search.lower()
            where.add(
                "(LOWER(p.title) LIKE ? OR LOWER(p.description) LIKE ?)",
                f"%{search_lower}%", f"%{search_lower}%",
            )
        where.add_if(shop_id, "p.shop_id = ?")
        where.add_if(catalog_id, "p.catalog_id = ?")
        where.add_if(min_price, "p.price >= ?")
        where.add_if(max_price, "p.price <= ?")
        ordering = order_clause(sort_by, order)

        clause, params = where.build()
        total_row = await self.db.fetch_one(
            f"SELECT COUNT(*) AS cnt FROM products p JOIN shops s ON p.shop_id = s.id WHERE {clause}",
            params
        )
        rows = await self.db.fetch_all(
            f"{DETAILS_SELECT} WHERE {clause} ORDER BY {ordering} LIMIT ? OFFSET ?",
            params + (limit, (page - 1) * limit)
        )
        return [ProductWithDetails(**row) for row in rows], total_row["cnt"]

    async def _ensure_catalog_exists(self, catalog_id: Optional[int]) -> None:
        if catalog_id is None:
            return
        row = await self.db.fetch_one("SELECT id FROM catalog_items WHERE id = ?", (catalog_id,))
        if not row:
            raise InvalidArgument(f"Catalog item {catalog_id} does not exist")

    async def create(self, product_data: ProductCreate, user: User) -> Product:
        shop = await self.shops.get(product_data.shop_id)
        ensure_owner(shop, user)
        await self._ensure_catalog_exists(product_data.catalog_id)

        product_id = await self.db.insert("products", product_data.model_dump())
        logger.info(f"[PRODUCTS] Product {product_id} created in shop {shop.id}")
        return await self.get(product_id)

    async def update(self, product: Product, product_data: ProductUpdate, user: User) -> Product:
        shop = await self.shops.get(product.shop_id)
        ensure_owner(shop, user)

        update_data = product_data.model_dump(exclude_unset=True)
        for field in ("title", "price", "stock"):
            if field in update_data and update_data[field] is None:
                raise InvalidArgument(f"Field '{field}' cannot be empty")
        if "catalog_id" in update_data:
            await self._ensure_catalog_exists(update_data["catalog_id"])

        if update_data:
            update_data["updated_at"] = now()
            await self.db.update("products", update_data, "id = ?", (product.id,))
        return await self.get(product.id)

    async def set_image(self, product: Product, image_url: str, user: User, storage: ObjectStorage) -> Product:
        shop = await self.shops.get(product.shop_id)
        ensure_owner(shop, user)
        await self.db.update(
            "products",
            {"image_url": image_url, "updated_at": now()},
            "id = ?",
            (product.id,)
        )
        if product.image_url and product.image_url != image_url:
            await discard_image(storage, product.image_url)
        return await self.get(product.id)

    async def ensure_can_edit(self, product: Product, user: User) -> None:
        shop = await self.shops.get(product.shop_id)
        ensure_owner(shop, user)

    async def delete(self, product: Product, user: User, storage: ObjectStorage) -> None:
        """Удаляет товар. Может владелец магазина или администратор."""
        shop = await self.shops.get(product.shop_id)
        if not can_manage(shop, user):
            raise Forbidden("Not authorized to delete this product")
        await self.db.delete("products", "id = ?", (product.id,))
        logger.info(f"[PRODUCTS] Product {product.id} deleted by user {user.id}")
        await discard_image(storage, product.image_url)

    async def count(self) -> int:
        return await self.db.count("products")
