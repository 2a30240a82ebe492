import httpx
import pytest

from backend.app.errors import InvalidArgument, Unavailable
from backend.app.main import app
from backend.app.services.geo import Coordinate
from backend.app.services.geocoding import GeocodingClient, get_geocoding_client


def google_response(status: str = "OK", results=None) -> dict:
    if results is None:
        results = [{
            "formatted_address": "1 Market St, San Francisco, CA 94105, USA",
            "geometry": {"location": {"lat": 37.7942, "lng": -122.3951}},
            "place_id": "abc123",
        }]
    return {"status": status, "results": results}


def client_for(payload: dict = None, error: Exception = None, api_key: str = "key") -> GeocodingClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if error is not None:
            raise error
        assert request.url.params["key"] == api_key
        return httpx.Response(200, json=payload)

    return GeocodingClient(api_key=api_key, transport=httpx.MockTransport(handler))


async def test_geocode_address():
    result = await client_for(google_response()).geocode("1 Market Street")

    assert result == {
        "address": "1 Market St, San Francisco, CA 94105, USA",
        "latitude": 37.7942,
        "longitude": -122.3951,
        "place_id": "abc123",
    }


async def test_reverse_geocode_sends_latlng():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["latlng"] = request.url.params["latlng"]
        return httpx.Response(200, json=google_response())

    client = GeocodingClient(api_key="key", transport=httpx.MockTransport(handler))
    await client.reverse(Coordinate(37.7942, -122.3951))

    assert seen["latlng"] == "37.7942,-122.3951"


async def test_zero_results_is_invalid_argument():
    with pytest.raises(InvalidArgument):
        await client_for(google_response("ZERO_RESULTS", [])).geocode("nowhere at all")


async def test_provider_errors_are_unavailable():
    with pytest.raises(Unavailable):
        await client_for(google_response("REQUEST_DENIED", [])).geocode("1 Market Street")
    with pytest.raises(Unavailable):
        await client_for(error=httpx.ConnectError("down")).geocode("1 Market Street")


async def test_malformed_provider_body_is_unavailable():
    for body in (b"<html>Service Unavailable</html>", b"[]"):
        transport = httpx.MockTransport(lambda request, body=body: httpx.Response(200, content=body))
        with pytest.raises(Unavailable):
            await GeocodingClient(api_key="key", transport=transport).geocode("1 Market Street")


async def test_missing_api_key_is_unavailable():
    with pytest.raises(Unavailable):
        await GeocodingClient(api_key="").geocode("1 Market Street")


async def test_geocode_routes(client):
    app.dependency_overrides[get_geocoding_client] = lambda: client_for(google_response())

    response = await client.get("/api/geocode", params={"address": "1 Market Street"})
    assert response.status_code == 200
    assert response.json()["latitude"] == 37.7942

    reverse = await client.get("/api/geocode/reverse", params={"latitude": 37.7942, "longitude": -122.3951})
    assert reverse.status_code == 200

    missing = await client.get("/api/geocode/reverse", params={"latitude": 37.7942})
    assert missing.status_code == 400
