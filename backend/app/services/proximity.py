"""
Поиск одобренных магазинов рядом с точкой.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from ..config import settings
from ..errors import InvalidArgument
from ..models.shop import Shop, ShopStatus, NearbyShop, Distance
from .geo import Coordinate, BoundingBox, bounding_box, haversine_distance


logger = logging.getLogger(__name__)


class ShopLocator(Protocol):
    """Хранилище, из которого поиск берёт кандидатов."""

    async def list_approved_shops(
        self,
        box: Optional[BoundingBox] = None,
        category: Optional[str] = None,
    ) -> List[Shop]:
        """
        Одобренные магазины, порядок не важен.
        Если передан box, можно вернуть только магазины внутри него.
        """
        ...


@dataclass(frozen=True)
class ShopDistance:
    shop: Shop
    distance_meters: float

    def to_nearby(self) -> NearbyShop:
        return NearbyShop(
            **self.shop.model_dump(),
            distance=Distance(
                meters=round(self.distance_meters),
                kilometers=round(self.distance_meters / 1000, 1),
            ),
        )


class ProximitySearch:
    """
    Поиск магазинов в радиусе от точки.

    Кандидаты сначала отсекаются bounding box'ом, затем каждый проверяется
    точным расстоянием haversine. Результат отсортирован по расстоянию,
    при равенстве по id магазина.
    """

    def __init__(
        self,
        store: ShopLocator,
        default_radius_meters: float = settings.SEARCH_DEFAULT_RADIUS_METERS,
        default_limit: int = settings.SEARCH_DEFAULT_LIMIT,
        max_limit: int = settings.SEARCH_MAX_LIMIT,
    ):
        self.store = store
        self.default_radius_meters = default_radius_meters
        self.default_limit = default_limit
        self.max_limit = max_limit

    def resolve_radius(self, radius_meters: Optional[float]) -> float:
        if radius_meters is None:
            return self.default_radius_meters
        try:
            radius = float(radius_meters)
        except (TypeError, ValueError):
            raise InvalidArgument("Radius must be a number of meters")
        # NaN тоже отсекается: сравнение с ним всегда ложно
        if not radius > 0:
            raise InvalidArgument("Radius must be greater than 0 meters")
        return radius

    def resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return min(self.default_limit, self.max_limit)
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise InvalidArgument("Limit must be a positive integer")
        if limit < 1:
            raise InvalidArgument("Limit must be a positive integer")
        return min(limit, self.max_limit)

    async def find_nearby_shops(
        self,
        origin: Coordinate,
        radius_meters: Optional[float] = None,
        limit: Optional[int] = None,
        category: Optional[str] = None,
    ) -> List[ShopDistance]:
        """
        Одобренные магазины в радиусе radius_meters от origin.

        Args:
            origin: Точка поиска (проверенная через make_coordinate)
            radius_meters: Радиус в метрах, по умолчанию из настроек
            limit: Сколько вернуть; больше потолка - обрезается до потолка
            category: Необязательный фильтр по категории магазина

        Raises:
            InvalidArgument: радиус <= 0 или limit < 1
            Unavailable: хранилище недоступно (частичного результата нет)
        """
        radius = self.resolve_radius(radius_meters)
        max_results = self.resolve_limit(limit)

        box = bounding_box(origin, radius)
        candidates = await self.store.list_approved_shops(box=box, category=category)

        results: List[ShopDistance] = []
        for shop in candidates:
            if shop.status != ShopStatus.APPROVED:
                continue
            distance = haversine_distance(origin, Coordinate(shop.latitude, shop.longitude))
            if distance <= radius:
                results.append(ShopDistance(shop=shop, distance_meters=distance))

        results.sort(key=lambda item: (item.distance_meters, item.shop.id))

        logger.debug(
            f"[SEARCH] origin={origin.latitude},{origin.longitude} radius={radius}m "
            f"candidates={len(candidates)} matched={len(results)} limit={max_results}"
        )
        return results[:max_results]
