"""
Сервис каталога: шаблоны товаров, которыми управляет администратор.
"""

import json
import logging
from typing import Optional, List, Tuple

from ..errors import InvalidArgument, NotFound
from ..models.catalog import CatalogItem, CatalogItemCreate, CatalogItemUpdate
from .database import DatabaseService, WhereBuilder, now
from .storage import ObjectStorage, discard_image


logger = logging.getLogger(__name__)

SORT_FIELDS = ("created_at", "name", "brand", "category")


def _row_to_item(row: dict) -> CatalogItem:
    row = dict(row)
    row["specs"] = json.loads(row["specs"]) if row.get("specs") else {}
    return CatalogItem(**row)


class CatalogService:

    def __init__(self, db: DatabaseService):
        self.db = db

    async def get(self, item_id: int) -> CatalogItem:
        row = await self.db.fetch_one("SELECT * FROM catalog_items WHERE id = ?", (item_id,))
        if not row:
            raise NotFound("Catalog item not found")
        return _row_to_item(row)

    async def list(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        category: Optional[str] = None,
        brand: Optional[str] = None,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> Tuple[List[CatalogItem], int]:
        if sort_by not in SORT_FIELDS:
            raise InvalidArgument(f"Cannot sort by '{sort_by}'. Allowed: {', '.join(SORT_FIELDS)}")
        direction = "ASC" if order.lower() == "asc" else "DESC"

        where = WhereBuilder()
        where.add_if(search, "(name LIKE ? OR brand LIKE ?)", f"%{search}%", f"%{search}%")
        where.add_if(category, "category = ?")
        where.add_if(brand, "brand = ?")
        clause, params = where.build()

        total = await self.db.count("catalog_items", clause, params)
        rows = await self.db.fetch_all(
            f"SELECT * FROM catalog_items WHERE {clause} "
            f"ORDER BY {sort_by} {direction}, id {direction} LIMIT ? OFFSET ?",
            params + (limit, (page - 1) * limit)
        )
        return [_row_to_item(row) for row in rows], total

    async def categories(self) -> List[str]:
        rows = await self.db.fetch_all("SELECT DISTINCT category FROM catalog_items ORDER BY category")
        return [row["category"] for row in rows]

    async def brands(self, category: Optional[str] = None) -> List[str]:
        where = WhereBuilder().add_if(category, "category = ?")
        clause, params = where.build()
        rows = await self.db.fetch_all(
            f"SELECT DISTINCT brand FROM catalog_items WHERE {clause} ORDER BY brand",
            params
        )
        return [row["brand"] for row in rows]

    async def create(self, item_data: CatalogItemCreate) -> CatalogItem:
        data = item_data.model_dump()
        data["specs"] = json.dumps(data["specs"], ensure_ascii=False)
        item_id = await self.db.insert("catalog_items", data)
        logger.info(f"[CATALOG] Item {item_id} created")
        return await self.get(item_id)

    async def update(self, item: CatalogItem, item_data: CatalogItemUpdate) -> CatalogItem:
        update_data = item_data.model_dump(exclude_unset=True)
        for field in ("name", "brand", "category"):
            if field in update_data and update_data[field] is None:
                raise InvalidArgument(f"Field '{field}' cannot be empty")
        if "specs" in update_data:
            update_data["specs"] = json.dumps(update_data["specs"] or {}, ensure_ascii=False)

        if update_data:
            update_data["updated_at"] = now()
            await self.db.update("catalog_items", update_data, "id = ?", (item.id,))
        return await self.get(item.id)

    async def set_image(self, item: CatalogItem, image_url: str, storage: ObjectStorage) -> CatalogItem:
        await self.db.update(
            "catalog_items",
            {"image_url": image_url, "updated_at": now()},
            "id = ?",
            (item.id,)
        )
        if item.image_url and item.image_url != image_url:
            await discard_image(storage, item.image_url)
        return await self.get(item.id)

    async def delete(self, item: CatalogItem, storage: ObjectStorage) -> None:
        """Удаляет шаблон. У товаров ссылка на него обнуляется."""
        await self.db.delete("catalog_items", "id = ?", (item.id,))
        logger.info(f"[CATALOG] Item {item.id} deleted")
        await discard_image(storage, item.image_url)

    async def count(self) -> int:
        return await self.db.count("catalog_items")
