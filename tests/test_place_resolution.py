import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import place_fields
from tripmark.exceptions import NoCandidateFound, UpstreamUnavailable
from tripmark.models.places import Coordinates, PageMetadata, PlaceCandidate, PlaceRecord
from tripmark.services.place_cache import PlaceCacheStore
from tripmark.services.place_resolution import PlaceResolutionPipeline
from tripmark.services.session_tokens import SessionTokenManager


def mock_places(details):
    places = AsyncMock()
    places.search_text.return_value = [
        PlaceCandidate(place_id="ChIJsushidai", name="Sushi Dai"),
        PlaceCandidate(place_id="ChIJother", name="Sushi Dai Annex"),
    ]
    places.get_place_details.return_value = details
    places.first_photo_uri.return_value = "https://lh3.test/photo.jpg"
    places.get_coordinates.return_value = Coordinates(lat=1.0, lng=2.0)
    return places


def mock_metadata(image_url="https://lh5.test/og.jpg", stars=4):
    metadata = AsyncMock()
    metadata.resolve.return_value = PageMetadata(image_url=image_url, stars=stars)
    return metadata


def pipeline(places, metadata, session_factory) -> PlaceResolutionPipeline:
    return PlaceResolutionPipeline(
        places=places,
        metadata=metadata,
        cache=PlaceCacheStore(session_factory),
        sessions=SessionTokenManager(),
    )


async def test_cold_miss_fetches_and_caches(session_factory, sushi_dai_details):
    places, metadata = mock_places(sushi_dai_details), mock_metadata()

    resolved = await pipeline(places, metadata, session_factory).resolve("Sushi Dai Tsukiji", "user-1")

    assert resolved.cache_hit is False
    assert resolved.place.place_id == "ChIJsushidai"
    assert resolved.place.images == ["https://lh5.test/og.jpg"]
    assert resolved.place.rating == 4.0
    assert resolved.coordinates == Coordinates(lat=35.6655, lng=139.7708)
    metadata.resolve.assert_awaited_once_with("https://maps.google.com/?cid=123")
    places.first_photo_uri.assert_not_awaited()
    places.get_coordinates.assert_not_awaited()
    assert places.get_place_details.await_args.kwargs["session_token"]


async def test_cache_hit_makes_no_detail_or_photo_calls(session_factory, sushi_dai_details):
    await PlaceCacheStore(session_factory).insert_or_get(place_fields())
    places, metadata = mock_places(sushi_dai_details), mock_metadata()

    resolved = await pipeline(places, metadata, session_factory).resolve("Sushi Dai", "user-1")

    assert resolved.cache_hit is True
    assert resolved.place.place_id == "ChIJsushidai"
    places.search_text.assert_awaited_once()
    places.get_place_details.assert_not_awaited()
    places.first_photo_uri.assert_not_awaited()
    places.get_coordinates.assert_not_awaited()
    metadata.resolve.assert_not_awaited()


async def test_no_candidates_raises(session_factory):
    places = AsyncMock()
    places.search_text.return_value = []

    with pytest.raises(NoCandidateFound):
        await pipeline(places, mock_metadata(), session_factory).resolve("Atlantis", "user-1")


async def test_photo_api_used_when_page_has_no_image(session_factory, sushi_dai_details):
    places, metadata = mock_places(sushi_dai_details), mock_metadata(image_url=None, stars=None)

    resolved = await pipeline(places, metadata, session_factory).resolve("Sushi Dai", "user-1")

    places.first_photo_uri.assert_awaited_once_with(
        ["places/ChIJsushidai/photos/AAA", "places/ChIJsushidai/photos/BBB"]
    )
    assert resolved.place.images == ["https://lh3.test/photo.jpg"]
    assert resolved.place.rating is None


async def test_place_without_any_image_is_still_cached(session_factory, sushi_dai_details):
    places, metadata = mock_places(sushi_dai_details), mock_metadata(image_url=None)
    places.first_photo_uri.return_value = None

    resolved = await pipeline(places, metadata, session_factory).resolve("Sushi Dai", "user-1")

    assert resolved.place.images == []


async def test_geocoding_fills_missing_location(session_factory, sushi_dai_details):
    del sushi_dai_details["location"]
    places = mock_places(sushi_dai_details)

    resolved = await pipeline(places, mock_metadata(), session_factory).resolve("Sushi Dai", "user-1")

    places.get_coordinates.assert_awaited_once_with("ChIJsushidai")
    assert resolved.coordinates == Coordinates(lat=1.0, lng=2.0)


async def test_upstream_failure_propagates(session_factory):
    places = AsyncMock()
    places.search_text.side_effect = UpstreamUnavailable("places", "HTTP 503")

    with pytest.raises(UpstreamUnavailable):
        await pipeline(places, mock_metadata(), session_factory).resolve("Sushi Dai", "user-1")


async def test_concurrent_cold_misses_leave_one_row(sushi_dai_details):
    """Both callers miss; the store keeps the first insert and the loser re-reads it."""
    cache = AsyncMock()
    cache.get.return_value = None
    record_fields = place_fields()
    record_fields.update(id="row-1", last_cached="2026-01-01T00:00:00")
    record = PlaceRecord(**record_fields)
    cache.insert_or_get.side_effect = [(record, True), (record, False)]
    resolver = PlaceResolutionPipeline(
        places=mock_places(sushi_dai_details),
        metadata=mock_metadata(),
        cache=cache,
        sessions=SessionTokenManager(),
    )

    first, second = await asyncio.gather(
        resolver.resolve("Sushi Dai", "user-1"),
        resolver.resolve("Sushi Dai Tokyo", "user-2"),
    )

    assert first.place.id == second.place.id == "row-1"
    assert sorted([first.cache_hit, second.cache_hit]) == [False, True]
