"""
Fan-out of one content item's extracted locations into pins.

Every location resolves independently and concurrently. One failing lookup
never fails its siblings: the report carries, per location, either the pin
that was created or the error that prevented it.
"""

import asyncio
import json
import logging
from typing import List, Optional, Sequence, Union

from tripmark.exceptions import ExtractionError, TripmarkError
from tripmark.models.extraction import ResolvedLocation, UnpinnedMention
from tripmark.models.places import EnrichmentOutcome, EnrichmentReport
from tripmark.services.llm import LocationExtractor
from tripmark.services.metadata_resolver import MediaMetadataResolver
from tripmark.services.pins import ContentStore, PinStore
from tripmark.services.place_resolution import PlaceResolutionPipeline

logger = logging.getLogger(__name__)

Location = Union[ResolvedLocation, UnpinnedMention]


class ContentEnrichmentOrchestrator:
    """Creates one pin per extracted location of a content item."""

    def __init__(self, pipeline: PlaceResolutionPipeline, pins: PinStore):
        self.pipeline = pipeline
        self.pins = pins

    async def enrich(
        self, content_id: str, locations: Sequence[Location], user_id: str = ""
    ) -> EnrichmentReport:
        """
        Resolve and pin every location of `content_id`.

        Args:
            content_id: Owning content row
            locations: Validated extractor output (may be empty)
            user_id: Requesting user, used for places session tokens

        Returns:
            Report with one outcome per location, in input order
        """
        if not locations:
            return EnrichmentReport(content_id=content_id)

        outcomes = await asyncio.gather(
            *[self._enrich_one(content_id, location, user_id) for location in locations]
        )
        report = EnrichmentReport(content_id=content_id, outcomes=list(outcomes))
        logger.info(f"Content {content_id}: {report.summary}")
        return report

    async def _enrich_one(
        self, content_id: str, location: Location, user_id: str
    ) -> EnrichmentOutcome:
        try:
            place = None
            if isinstance(location, ResolvedLocation):
                resolved = await self.pipeline.resolve(location.query_text, user_id)
                place = resolved.place

            pin = await self.pins.create_pin(
                content_id=content_id,
                name=location.name,
                category=location.classification,
                description=location.additional_info,
                place_cache_id=place.id if place else None,
            )
            return EnrichmentOutcome(location=location, pin=pin, place=place)
        except Exception as exc:
            if not isinstance(exc, TripmarkError):
                logger.exception(f"Unexpected error pinning {location.name!r} for content {content_id}")
            else:
                logger.warning(f"Failed to pin {location.name!r} for content {content_id}: {exc}")
            return EnrichmentOutcome(location=location, error=str(exc) or type(exc).__name__)


class ContentIngestor:
    """Stores a new content item, extracts its locations and pins them."""

    def __init__(
        self,
        contents: ContentStore,
        extractor: LocationExtractor,
        metadata: MediaMetadataResolver,
        orchestrator: ContentEnrichmentOrchestrator,
    ):
        self.contents = contents
        self.extractor = extractor
        self.metadata = metadata
        self.orchestrator = orchestrator

    async def ingest(
        self,
        url: str,
        text: str,
        user_id: str,
        trip_id: str,
        user_notes: Optional[str] = None,
    ) -> EnrichmentReport:
        description = (text or "").strip()
        if not description:
            logger.debug(f"No caption supplied, fetching metadata from {url}")
            description = (await self.metadata.fetch_description(url) or "").strip()
        if not description:
            raise ExtractionError(f"Could not fetch metadata for URL {url}")

        content_id = await self.contents.create_content(url, description, user_id, trip_id, user_notes)
        logger.debug(f"Created content entry {content_id}")

        locations: List[Location] = await self.extractor.extract(description)
        await self.contents.update_extraction(
            content_id,
            json.dumps([location.model_dump(exclude={"kind"}) for location in locations]),
            title=next((loc.title for loc in locations if loc.title), None),
        )
        return await self.orchestrator.enrich(content_id, locations, user_id=user_id)
