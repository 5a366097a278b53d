"""Content ingest and single-place resolution."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from tripmark.dependencies import get_ingestor, get_resolution_pipeline
from tripmark.enrichment import ContentIngestor
from tripmark.exceptions import (
    ExtractionError,
    NoCandidateFound,
    TripmarkError,
    UpstreamUnavailable,
)
from tripmark.models.places import (
    EnrichmentReport,
    IngestContentRequest,
    ResolvedPlace,
    ResolvePlaceRequest,
)
from tripmark.services.place_resolution import PlaceResolutionPipeline

router = APIRouter(tags=["places"])
logger = logging.getLogger(__name__)


def to_http_error(exc: TripmarkError) -> HTTPException:
    """Map service errors onto response codes."""
    if isinstance(exc, NoCandidateFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, UpstreamUnavailable):
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, ExtractionError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@router.post("/places/resolve", response_model=ResolvedPlace)
async def resolve_place(
    request: ResolvePlaceRequest,
    pipeline: PlaceResolutionPipeline = Depends(get_resolution_pipeline),
):
    """Resolve one free-text mention to a cached place."""
    try:
        return await pipeline.resolve(request.query, request.user_id)
    except TripmarkError as exc:
        logger.warning(f"Place resolution failed for {request.query!r}: {exc}")
        raise to_http_error(exc) from exc


@router.post("/content", response_model=EnrichmentReport)
async def ingest_content(
    request: IngestContentRequest,
    ingestor: ContentIngestor = Depends(get_ingestor),
):
    """
    Save a post, extract the places it mentions and pin them.

    Individual locations that cannot be resolved are reported in the
    response outcomes rather than failing the request.
    """
    try:
        report = await ingestor.ingest(
            url=request.url,
            text=request.content,
            user_id=request.user_id,
            trip_id=request.trip_id,
            user_notes=request.user_notes,
        )
    except TripmarkError as exc:
        logger.error(f"Content ingest failed for {request.url}: {exc}")
        raise to_http_error(exc) from exc
    logger.info(f"Ingested {request.url}: {report.summary}")
    return report
