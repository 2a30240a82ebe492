"""
API Routes для геокодирования адресов.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from ..services.geo import make_coordinate
from ..services.geocoding import GeocodingClient, get_geocoding_client

router = APIRouter()


@router.get("")
async def geocode_address(
    address: str = Query(..., min_length=1, description="Адрес для поиска"),
    client: GeocodingClient = Depends(get_geocoding_client)
):
    """Координаты по адресу (для формы создания магазина)."""
    return await client.geocode(address)


@router.get("/reverse")
async def reverse_geocode(
    latitude: Optional[float] = Query(None, description="Широта"),
    longitude: Optional[float] = Query(None, description="Долгота"),
    client: GeocodingClient = Depends(get_geocoding_client)
):
    """Адрес по координатам."""
    return await client.reverse(make_coordinate(latitude, longitude))
