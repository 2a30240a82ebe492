"""
Геокодирование адресов через Google Geocoding API.
"""

import logging
from typing import Optional, List, Dict, Any

import httpx

from ..config import settings
from ..errors import InvalidArgument, Unavailable
from .geo import Coordinate


logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingClient:
    """Адрес -> координаты и обратно."""

    def __init__(
        self,
        api_key: str = settings.GOOGLE_MAPS_API_KEY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 5.0,
    ):
        self.api_key = api_key
        self.transport = transport
        self.timeout = timeout

    async def _request(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        if not self.api_key:
            raise Unavailable("Geocoding is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(GEOCODE_URL, params={**params, "key": self.api_key})
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[GEOCODE] Request failed: {e}")
            raise Unavailable("Geocoding service is unavailable") from e

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"[GEOCODE] Provider returned invalid JSON: {e}")
            raise Unavailable("Geocoding service is unavailable") from e
        if not isinstance(data, dict):
            raise Unavailable("Geocoding service is unavailable")

        status = data.get("status")
        if status == "ZERO_RESULTS" or (status == "OK" and not data.get("results")):
            raise InvalidArgument("Address not found")
        if status != "OK":
            logger.error(f"[GEOCODE] Provider status {status}: {data.get('error_message', '')}")
            raise Unavailable("Geocoding service is unavailable")
        return data.get("results", [])

    @staticmethod
    def _to_result(item: Dict[str, Any]) -> Dict[str, Any]:
        location = item["geometry"]["location"]
        return {
            "address": item.get("formatted_address"),
            "latitude": location["lat"],
            "longitude": location["lng"],
            "place_id": item.get("place_id"),
        }

    async def geocode(self, address: str) -> Dict[str, Any]:
        """Первый найденный результат для адреса."""
        if not address or not address.strip():
            raise InvalidArgument("Address is required")
        results = await self._request({"address": address.strip()})
        return self._to_result(results[0])

    async def reverse(self, point: Coordinate) -> Dict[str, Any]:
        results = await self._request({"latlng": f"{point.latitude},{point.longitude}"})
        return self._to_result(results[0])


def get_geocoding_client() -> GeocodingClient:
    """Dependency для FastAPI."""
    return GeocodingClient()
