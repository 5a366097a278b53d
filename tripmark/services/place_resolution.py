"""Turns one free-text location mention into one cached place."""
import logging
from typing import Any, Dict, Optional, Tuple

from tripmark.exceptions import NoCandidateFound
from tripmark.models.places import Coordinates, ResolvedPlace
from tripmark.services.google_places import GooglePlacesClient
from tripmark.services.metadata_resolver import MediaMetadataResolver
from tripmark.services.place_cache import PlaceCacheStore
from tripmark.services.session_tokens import SessionTokenManager
from tripmark.utils.normalizers import (
    extract_coordinates,
    extract_photo_names,
    normalize_place_details,
)

logger = logging.getLogger(__name__)


class PlaceResolutionPipeline:
    """
    Resolve a mention to a place cache row, reusing the cache when possible.

    The first text-search candidate is taken as canonical. A cache hit on its
    place id returns immediately with no further network calls; only a miss
    pays for details, metadata scraping and photos.
    """

    def __init__(
        self,
        places: GooglePlacesClient,
        metadata: MediaMetadataResolver,
        cache: PlaceCacheStore,
        sessions: SessionTokenManager,
    ):
        self.places = places
        self.metadata = metadata
        self.cache = cache
        self.sessions = sessions

    async def resolve(self, query_text: str, user_id: str) -> ResolvedPlace:
        candidates = await self.places.search_text(query_text)
        if not candidates:
            raise NoCandidateFound(query_text)
        candidate = candidates[0]
        logger.debug(f"For location {query_text!r} place_id {candidate.place_id}")

        cached = await self.cache.get(candidate.place_id)
        if cached is not None:
            logger.debug(f"Found place id {candidate.place_id} in place cache")
            return ResolvedPlace(
                place=cached,
                coordinates=Coordinates(lat=cached.lat, lng=cached.lng),
                cache_hit=True,
            )

        logger.debug(f"Place {candidate.place_id} not cached, fetching details")
        details = await self.places.get_place_details(
            candidate.place_id, session_token=self.sessions.token_for(user_id)
        )
        details.setdefault("id", candidate.place_id)

        coordinates = extract_coordinates(details)
        if coordinates is None:
            coordinates = await self.places.get_coordinates(candidate.place_id)

        image_url, stars = await self._resolve_image(details)
        fields = normalize_place_details(details, coordinates, image_url, stars)

        record, created = await self.cache.insert_or_get(fields)
        if created:
            logger.info(f"Created place cache entry {record.id} for place_id {record.place_id}")
        return ResolvedPlace(
            place=record,
            coordinates=Coordinates(lat=record.lat, lng=record.lng),
            cache_hit=not created,
        )

    async def _resolve_image(self, details: Dict[str, Any]) -> Tuple[Optional[str], Optional[int]]:
        """One representative image plus the scraped star rating."""
        image_url: Optional[str] = None
        stars: Optional[int] = None

        deep_link = details.get("googleMapsUri")
        if deep_link:
            page = await self.metadata.resolve(deep_link)
            image_url, stars = page.image_url, page.stars

        if not image_url:
            image_url = await self.places.first_photo_uri(extract_photo_names(details))
            if not image_url:
                logger.info(f"No image found for place {details.get('id')}")
        return image_url, stars
