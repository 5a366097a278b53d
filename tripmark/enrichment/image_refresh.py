"""
Stale image refresh.

Google photo URLs expire, so cached images are re-fetched once they are older
than the staleness window. Only the image list and `last_cached` change; the
rest of the row is left as first cached.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from tripmark.config import settings
from tripmark.exceptions import TripmarkError
from tripmark.models.places import RefreshFailure, RefreshReport
from tripmark.services.google_places import GooglePlacesClient
from tripmark.services.place_cache import PlaceCacheStore
from tripmark.tables import utcnow

logger = logging.getLogger(__name__)

NO_PHOTOS = "No photos available"


class StaleCacheRefresher:
    """Sequential batch job; the delay keeps us under the Places quota."""

    def __init__(
        self,
        places: GooglePlacesClient,
        cache: PlaceCacheStore,
        delay_seconds: Optional[float] = None,
    ):
        self.places = places
        self.cache = cache
        self.delay_seconds = (
            settings.image_refresh_delay_seconds if delay_seconds is None else delay_seconds
        )

    async def refresh_stale_places(self, stale_after: Optional[timedelta] = None) -> RefreshReport:
        stale_after = stale_after or timedelta(days=settings.image_stale_after_days)
        cutoff = utcnow() - stale_after
        logger.info(f"Looking for places last cached before {cutoff.isoformat()}")

        stale = await self.cache.find_stale(cutoff)
        report = RefreshReport(attempted=len(stale))
        if not stale:
            logger.info("No places need an image refresh")
            return report

        for index, place in enumerate(stale):
            try:
                photo_names = await self.places.get_place_photos(place.place_id)
                image_url = await self.places.first_photo_uri(photo_names)
                if not image_url:
                    raise LookupError(NO_PHOTOS)
                await self.cache.replace_images(place.id, [image_url])
                report.succeeded += 1
                logger.info(f"Refreshed image for {place.name} ({place.place_id})")
            except (TripmarkError, LookupError, SQLAlchemyError) as exc:
                report.failed += 1
                report.failures.append(RefreshFailure(place_id=place.place_id, reason=str(exc)))
                logger.error(f"Failed to refresh images for {place.name} ({place.place_id}): {exc}")

            if self.delay_seconds and index < len(stale) - 1:
                await asyncio.sleep(self.delay_seconds)

        logger.info(f"Image refresh completed: {report.succeeded} refreshed, {report.failed} failed")
        return report
