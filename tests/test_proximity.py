from datetime import datetime
from typing import List, Optional

import pytest

from backend.app.errors import InvalidArgument, Unavailable
from backend.app.models.shop import Shop, ShopStatus
from backend.app.services.geo import BoundingBox, Coordinate, haversine_distance
from backend.app.services.proximity import ProximitySearch
from backend.app.services.shops import ShopService


ORIGIN = Coordinate(37.7749, -122.4194)


def build_shop(shop_id: int, latitude: float, longitude: float, status=ShopStatus.APPROVED, category=None) -> Shop:
    return Shop(
        id=shop_id,
        owner_id=1,
        name=f"Shop {shop_id}",
        address="1 Market Street",
        category=category,
        latitude=latitude,
        longitude=longitude,
        status=status,
        created_at=datetime(2024, 1, 1),
        updated_at=datetime(2024, 1, 1),
    )


class MemoryStore:
    """Отдаёт все магазины как есть, без фильтрации."""

    def __init__(self, shops: List[Shop]):
        self.shops = shops
        self.calls = []

    async def list_approved_shops(self, box: Optional[BoundingBox] = None, category: Optional[str] = None):
        self.calls.append((box, category))
        return [s for s in self.shops if category is None or s.category == category]


class BrokenStore:
    async def list_approved_shops(self, box=None, category=None):
        raise Unavailable("store is down")


async def test_nearby_shop_is_found_with_distance():
    search = ProximitySearch(MemoryStore([build_shop(1, 37.7750, -122.4190)]))

    results = await search.find_nearby_shops(ORIGIN, radius_meters=5000)

    assert [r.shop.id for r in results] == [1]
    assert 30 < results[0].distance_meters < 45
    nearby = results[0].to_nearby()
    assert nearby.distance.meters == round(results[0].distance_meters)
    assert nearby.distance.kilometers == 0.0


async def test_unapproved_shops_are_excluded():
    store = MemoryStore([
        build_shop(1, 37.7750, -122.4190, status=ShopStatus.PENDING),
        build_shop(2, 37.7750, -122.4190, status=ShopStatus.REJECTED),
    ])
    assert await ProximitySearch(store).find_nearby_shops(ORIGIN, radius_meters=5000) == []


async def test_shop_outside_radius_is_excluded():
    store = MemoryStore([build_shop(1, 37.9, -122.4)])
    assert await ProximitySearch(store).find_nearby_shops(ORIGIN, radius_meters=5000) == []


@pytest.mark.parametrize("radius", [0, -5, float("nan"), "far"])
async def test_invalid_radius_is_rejected(radius):
    with pytest.raises(InvalidArgument):
        await ProximitySearch(MemoryStore([])).find_nearby_shops(ORIGIN, radius_meters=radius)


@pytest.mark.parametrize("limit", [0, -1, True, 2.5])
async def test_invalid_limit_is_rejected(limit):
    with pytest.raises(InvalidArgument):
        await ProximitySearch(MemoryStore([])).find_nearby_shops(ORIGIN, limit=limit)


async def test_limit_is_clamped_to_maximum():
    shops = [build_shop(i, 37.7749 + i * 0.0001, -122.4194) for i in range(1, 61)]
    search = ProximitySearch(MemoryStore(shops), max_limit=50)

    results = await search.find_nearby_shops(ORIGIN, radius_meters=10_000, limit=1000)

    assert len(results) == 50


async def test_default_radius_and_limit():
    shops = [build_shop(i, 37.7749 + i * 0.0001, -122.4194) for i in range(1, 31)]
    shops.append(build_shop(99, 37.83, -122.4194))  # ~6 km
    search = ProximitySearch(MemoryStore(shops), default_radius_meters=5000, default_limit=20)

    results = await search.find_nearby_shops(ORIGIN)

    assert len(results) == 20
    assert 99 not in [r.shop.id for r in results]


async def test_results_sorted_by_distance_then_id():
    store = MemoryStore([
        build_shop(7, 37.7800, -122.4194),
        build_shop(5, 37.7760, -122.4194),
        build_shop(3, 37.7760, -122.4194),
    ])

    results = await ProximitySearch(store).find_nearby_shops(ORIGIN, radius_meters=5000)

    assert [r.shop.id for r in results] == [3, 5, 7]
    distances = [r.distance_meters for r in results]
    assert distances == sorted(distances)


async def test_larger_radius_never_loses_results():
    shops = [build_shop(i, 37.7749 + i * 0.003, -122.4194 - i * 0.002) for i in range(1, 20)]
    search = ProximitySearch(MemoryStore(shops))

    small = await search.find_nearby_shops(ORIGIN, radius_meters=2000, limit=50)
    large = await search.find_nearby_shops(ORIGIN, radius_meters=6000, limit=50)

    assert {r.shop.id for r in small} <= {r.shop.id for r in large}


async def test_inclusion_is_symmetric():
    shop = build_shop(1, 37.79, -122.40)
    results = await ProximitySearch(MemoryStore([shop])).find_nearby_shops(ORIGIN, radius_meters=3000)

    back = haversine_distance(Coordinate(shop.latitude, shop.longitude), ORIGIN)
    assert results[0].distance_meters == pytest.approx(back)
    assert back <= 3000


async def test_category_is_passed_to_store():
    store = MemoryStore([
        build_shop(1, 37.7750, -122.4190, category="grocery"),
        build_shop(2, 37.7750, -122.4190, category="pharmacy"),
    ])

    results = await ProximitySearch(store).find_nearby_shops(ORIGIN, category="pharmacy")

    assert [r.shop.id for r in results] == [2]
    assert store.calls[0][1] == "pharmacy"
    assert store.calls[0][0] is not None


async def test_store_failure_propagates():
    with pytest.raises(Unavailable):
        await ProximitySearch(BrokenStore()).find_nearby_shops(ORIGIN)


async def test_sqlite_store_filters_by_box_and_status(db, make_account, make_shop):
    owner = await make_account("shopkeeper")
    near = await make_shop(owner, 37.7750, -122.4190)
    await make_shop(owner, 37.7751, -122.4191, status="pending")
    await make_shop(owner, 40.7128, -74.0060)

    results = await ProximitySearch(ShopService(db)).find_nearby_shops(ORIGIN, radius_meters=5000)

    assert [r.shop.id for r in results] == [near]


async def test_sqlite_store_across_antimeridian(db, make_account, make_shop):
    owner = await make_account("shopkeeper")
    west = await make_shop(owner, 0.0, -179.999)
    await make_shop(owner, 0.0, 0.0)

    results = await ProximitySearch(ShopService(db)).find_nearby_shops(
        Coordinate(0.0, 179.999), radius_meters=1000
    )

    assert [r.shop.id for r in results] == [west]
    assert results[0].distance_meters < 300
