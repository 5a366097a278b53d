import json

import httpx
import pytest

from tripmark.exceptions import UpstreamUnavailable
from tripmark.services.google_places import DETAIL_FIELD_MASK, GooglePlacesClient

BASE = "https://places.test/v1"
GEOCODE = "https://geocode.test/json"


def make_client(handler) -> GooglePlacesClient:
    return GooglePlacesClient(
        api_key="test-key",
        base_url=BASE,
        geocoding_url=GEOCODE,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


async def test_search_text_sends_field_mask_and_keeps_ranking():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "places": [
                    {"id": "first", "displayName": {"text": "Sushi Dai"}},
                    {"displayName": {"text": "no id, skipped"}},
                    {"id": "second", "displayName": {"text": "Sushi Dai Annex"}},
                ]
            },
        )

    candidates = await make_client(handler).search_text("Sushi Dai Tokyo")

    assert seen["url"] == f"{BASE}/places:searchText"
    assert seen["body"] == {"textQuery": "Sushi Dai Tokyo"}
    assert seen["headers"]["X-Goog-Api-Key"] == "test-key"
    assert seen["headers"]["X-Goog-FieldMask"] == "places.id,places.displayName"
    assert [c.place_id for c in candidates] == ["first", "second"]
    assert candidates[0].name == "Sushi Dai"


async def test_search_text_with_no_results():
    client = make_client(lambda request: httpx.Response(200, json={}))
    assert await client.search_text("nowhere at all") == []


async def test_place_details_carry_session_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"id": "abc"})

    details = await make_client(handler).get_place_details("abc", session_token="tok-1")

    request = seen["request"]
    assert request.url.path == "/v1/places/abc"
    assert request.url.params["sessionToken"] == "tok-1"
    assert request.headers["X-Goog-FieldMask"] == DETAIL_FIELD_MASK
    assert details == {"id": "abc"}


async def test_photo_uri_requests_json_instead_of_redirect():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"photoUri": "https://lh3.test/photo.jpg"})

    uri = await make_client(handler).get_photo_uri("places/abc/photos/AAA")

    params = seen["request"].url.params
    assert seen["request"].url.path == "/v1/places/abc/photos/AAA/media"
    assert params["maxWidthPx"] == "800"
    assert params["skipHttpRedirect"] == "true"
    assert uri == "https://lh3.test/photo.jpg"


async def test_first_photo_uri_skips_failing_photos():
    def handler(request: httpx.Request) -> httpx.Response:
        if "AAA" in request.url.path:
            return httpx.Response(500, text="boom")
        return httpx.Response(200, json={"photoUri": "https://lh3.test/bbb.jpg"})

    uri = await make_client(handler).first_photo_uri(["places/x/photos/AAA", "places/x/photos/BBB"])
    assert uri == "https://lh3.test/bbb.jpg"


async def test_first_photo_uri_with_no_photos():
    client = make_client(lambda request: httpx.Response(200, json={}))
    assert await client.first_photo_uri([]) is None


async def test_http_errors_become_upstream_unavailable():
    client = make_client(lambda request: httpx.Response(503, text="quota"))
    with pytest.raises(UpstreamUnavailable) as exc_info:
        await client.search_text("anything")
    assert exc_info.value.service == "places"


async def test_network_errors_become_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamUnavailable):
        await make_client(handler).get_place_details("abc")


async def test_geocoding_fallback():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["place_id"] == "abc"
        return httpx.Response(
            200, json={"results": [{"geometry": {"location": {"lat": 35.0, "lng": 139.0}}}]}
        )

    coords = await make_client(handler).get_coordinates("abc")
    assert (coords.lat, coords.lng) == (35.0, 139.0)


async def test_geocoding_without_results_raises():
    client = make_client(lambda request: httpx.Response(200, json={"results": []}))
    with pytest.raises(UpstreamUnavailable) as exc_info:
        await client.get_coordinates("abc")
    assert exc_info.value.service == "geocoding"
