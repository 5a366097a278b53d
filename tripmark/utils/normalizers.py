"""
Data normalizers to ensure consistent data structure across the application.
These normalizers turn raw Google Places payloads and LLM output into the
shapes stored in the place cache and embedded for search.
"""

import json
import re
from typing import Any, Dict, List, Optional

from tripmark.models.places import Coordinates

STAR_GLYPH = "★"

# Placeholder until review counts are fetched; the Places SKU for them is billed separately
REVIEW_COUNT_PLACEHOLDER = 0

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

STRUCTURED_TEXT_FIELDS = (
    "name",
    "title",
    "location",
    "classification",
    "additional_info",
    "description",
    "category",
)


def always_open_hours() -> Dict[str, Any]:
    """
    Fixed "open 24 hours, every day" structure.

    Real opening hours are not scraped; every cached place gets this value.
    Follows the Places API convention for 24/7: one period opening Sunday
    00:00 with no close.
    """
    return {
        "openNow": True,
        "periods": [{"open": {"day": 0, "hour": 0, "minute": 0}}],
        "weekdayDescriptions": [f"{day}: Open 24 hours" for day in WEEKDAYS],
    }


def count_stars(text: Optional[str]) -> Optional[int]:
    """
    Count star glyphs in a meta description (e.g. "★★★★☆ · Sushi restaurant").

    Returns an integer rating in 1..5, or None when no stars are present.
    """
    if not text:
        return None
    match = re.search(f"{STAR_GLYPH}+", text)
    if not match:
        return None
    return min(len(match.group(0)), 5)


def extract_coordinates(raw_place: Dict[str, Any]) -> Optional[Coordinates]:
    """Read `location.latitude/longitude` (Places v1) or `geometry.location` (legacy)."""
    location = raw_place.get("location")
    if isinstance(location, dict) and "latitude" in location and "longitude" in location:
        return Coordinates(lat=location["latitude"], lng=location["longitude"])

    geometry = raw_place.get("geometry", {})
    if isinstance(geometry, dict):
        location = geometry.get("location") or {}
        if "lat" in location and "lng" in location:
            return Coordinates(lat=location["lat"], lng=location["lng"])
    return None


def extract_photo_names(raw_place: Dict[str, Any]) -> List[str]:
    """Photo resource names (`places/{id}/photos/{ref}`) in the order returned."""
    photos = raw_place.get("photos") or []
    return [p["name"] for p in photos if isinstance(p, dict) and p.get("name")]


def display_name(raw_place: Dict[str, Any]) -> str:
    name = raw_place.get("displayName")
    if isinstance(name, dict):
        return name.get("text") or ""
    return name or raw_place.get("name") or ""


def normalize_place_details(
    raw_place: Dict[str, Any],
    coordinates: Coordinates,
    image_url: Optional[str],
    stars: Optional[int],
) -> Dict[str, Any]:
    """
    Build the column values of a place cache row from a Places detail payload.

    `image_url` and `stars` come from the deep-link metadata scrape (or the
    photo fallback for the image); at most one image is stored.
    """
    return {
        "place_id": raw_place["id"],
        "name": display_name(raw_place),
        "rating": float(stars) if stars else None,
        "user_rating_count": REVIEW_COUNT_PLACEHOLDER,
        "info_url": raw_place.get("googleMapsUri"),
        "opening_hours": always_open_hours(),
        "images": [image_url] if image_url else [],
        "utc_offset_minutes": raw_place.get("utcOffsetMinutes"),
        "formatted_address": raw_place.get("formattedAddress"),
        "lat": coordinates.lat,
        "lng": coordinates.lng,
        "business_status": raw_place.get("businessStatus"),
        "price_level": raw_place.get("priceLevel"),
        "types": list(raw_place.get("types") or []),
    }


def _flatten_structured(data: Any) -> str:
    if isinstance(data, list):
        return " ".join(part for part in (_flatten_structured(item) for item in data) if part)
    if isinstance(data, dict):
        return " ".join(str(data[key]) for key in STRUCTURED_TEXT_FIELDS if data.get(key))
    if data is None:
        return ""
    return str(data)


def structured_data_text(structured_data: Optional[str]) -> str:
    """
    Text used for the structured-extraction embedding channel.

    Stored extraction JSON is flattened over its descriptive fields; anything
    that is not valid JSON is embedded as-is.
    """
    if not structured_data or not structured_data.strip():
        return ""
    try:
        parsed = json.loads(structured_data)
    except json.JSONDecodeError:
        return structured_data.strip()
    return _flatten_structured(parsed).strip()
