"""Client for the Google Places API (New) and the Geocoding API."""
import logging
from typing import Any, Dict, List, Optional

import httpx

from tripmark.config import settings
from tripmark.exceptions import UpstreamUnavailable
from tripmark.models.places import Coordinates, PlaceCandidate

logger = logging.getLogger(__name__)

SEARCH_FIELD_MASK = "places.id,places.displayName"

DETAIL_FIELD_MASK = ",".join(
    [
        "id",
        "displayName",
        "formattedAddress",
        "location",
        "googleMapsUri",
        "types",
        "businessStatus",
        "priceLevel",
        "utcOffsetMinutes",
        "photos",
    ]
)

PHOTOS_FIELD_MASK = "photos"


class GooglePlacesClient:
    """HTTP client wrapper for text search, place details and photo media."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        geocoding_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.base_url = (base_url or settings.places_base_url).rstrip("/")
        self.geocoding_url = geocoding_url or settings.geocoding_url
        self.timeout = timeout or settings.places_timeout
        self.max_width_px = settings.photo_max_width_px
        self._http_client = http_client

    def _headers(self, field_mask: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key or "",
        }
        if field_mask:
            headers["X-Goog-FieldMask"] = field_mask
        return headers

    async def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            if self._http_client is not None:
                response = await self._http_client.request(method, url, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(f"Places API HTTP error: {exc.response.status_code} - {exc.response.text}")
            raise UpstreamUnavailable("places", f"HTTP {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            logger.error(f"Failed to reach Places API: {exc}")
            raise UpstreamUnavailable("places", str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise UpstreamUnavailable("places", "invalid JSON response") from exc

    async def search_text(self, query: str) -> List[PlaceCandidate]:
        """Text search; candidates in the order Google ranks them."""
        data = await self._request(
            "POST",
            f"{self.base_url}/places:searchText",
            json={"textQuery": query},
            headers=self._headers(SEARCH_FIELD_MASK),
        )
        candidates = []
        for place in data.get("places") or []:
            if not place.get("id"):
                continue
            name = place.get("displayName")
            candidates.append(
                PlaceCandidate(
                    place_id=place["id"],
                    name=name.get("text") if isinstance(name, dict) else name,
                )
            )
        logger.debug(f"Text search {query!r} returned {len(candidates)} candidates")
        return candidates

    async def get_place_details(
        self, place_id: str, session_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Place details for the detail field mask, billed within `session_token`."""
        params = {"sessionToken": session_token} if session_token else None
        return await self._request(
            "GET",
            f"{self.base_url}/places/{place_id}",
            params=params,
            headers=self._headers(DETAIL_FIELD_MASK),
        )

    async def get_place_photos(self, place_id: str) -> List[str]:
        """Fresh photo resource names for a place (photo names expire)."""
        data = await self._request(
            "GET",
            f"{self.base_url}/places/{place_id}",
            headers=self._headers(PHOTOS_FIELD_MASK),
        )
        return [p["name"] for p in data.get("photos") or [] if p.get("name")]

    async def get_photo_uri(self, photo_name: str) -> Optional[str]:
        """Resolve a photo resource name to a temporary image URL."""
        data = await self._request(
            "GET",
            f"{self.base_url}/{photo_name}/media",
            params={
                "maxWidthPx": self.max_width_px,
                "skipHttpRedirect": "true",
                "key": self.api_key or "",
            },
        )
        return data.get("photoUri")

    async def first_photo_uri(self, photo_names: List[str]) -> Optional[str]:
        """Try photos in order and return the first URL that resolves."""
        for photo_name in photo_names:
            try:
                uri = await self.get_photo_uri(photo_name)
            except UpstreamUnavailable as exc:
                logger.warning(f"Failed to fetch photo URL for {photo_name}: {exc}")
                continue
            if uri:
                return uri
        return None

    async def get_coordinates(self, place_id: str) -> Coordinates:
        """Geocode a place id; used when the detail payload has no location."""
        data = await self._request(
            "GET",
            self.geocoding_url,
            params={"place_id": place_id, "key": self.api_key or ""},
        )
        results = data.get("results") or []
        location = (results[0].get("geometry") or {}).get("location") if results else None
        if not location:
            raise UpstreamUnavailable("geocoding", f"no location for place {place_id}")
        return Coordinates(lat=location["lat"], lng=location["lng"])
