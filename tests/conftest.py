"""Shared fixtures: a throwaway SQLite database and sample Places payloads."""
from typing import Any, Dict

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from tripmark.database import build_session_factory, init_models


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tripmark.db'}")
    await init_models(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def sushi_dai_details() -> Dict[str, Any]:
    return {
        "id": "ChIJsushidai",
        "displayName": {"text": "Sushi Dai", "languageCode": "ja"},
        "formattedAddress": "5 Chome-2-1 Tsukiji, Chuo City, Tokyo 104-0045, Japan",
        "location": {"latitude": 35.6655, "longitude": 139.7708},
        "googleMapsUri": "https://maps.google.com/?cid=123",
        "types": ["sushi_restaurant", "restaurant", "food"],
        "businessStatus": "OPERATIONAL",
        "priceLevel": "PRICE_LEVEL_MODERATE",
        "utcOffsetMinutes": 540,
        "photos": [
            {"name": "places/ChIJsushidai/photos/AAA"},
            {"name": "places/ChIJsushidai/photos/BBB"},
        ],
    }


def place_fields(place_id: str = "ChIJsushidai", images=None) -> Dict[str, Any]:
    """Column values for a place cache row."""
    return {
        "place_id": place_id,
        "name": "Sushi Dai",
        "rating": 4.0,
        "user_rating_count": 0,
        "info_url": "https://maps.google.com/?cid=123",
        "opening_hours": {"openNow": True},
        "images": ["https://img.example/sushi.jpg"] if images is None else images,
        "utc_offset_minutes": 540,
        "formatted_address": "Tsukiji, Tokyo, Japan",
        "lat": 35.6655,
        "lng": 139.7708,
        "business_status": "OPERATIONAL",
        "price_level": None,
        "types": ["restaurant"],
    }
