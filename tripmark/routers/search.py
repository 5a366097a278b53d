"""Hybrid search endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from tripmark.dependencies import get_indexer, get_search_engine
from tripmark.exceptions import TripmarkError
from tripmark.models.search import (
    EmbeddingStats,
    PinSearchResult,
    SearchRequest,
    SearchResult,
    SearchScope,
)
from tripmark.routers.places import to_http_error
from tripmark.search import EmbeddingIndexer, HybridSearchEngine

router = APIRouter(prefix="/search", tags=["search"])
logger = logging.getLogger(__name__)


@router.post("", response_model=List[SearchResult])
async def search_content(
    request: SearchRequest,
    engine: HybridSearchEngine = Depends(get_search_engine),
):
    """Content ranked by pin-name matches first, then semantic similarity."""
    scope = SearchScope(user_id=request.user_id, trip_id=request.trip_id)
    try:
        return await engine.search(request.query, scope, request.limit)
    except TripmarkError as exc:
        raise to_http_error(exc) from exc


@router.post("/pins", response_model=List[PinSearchResult])
async def search_pins(
    request: SearchRequest,
    engine: HybridSearchEngine = Depends(get_search_engine),
):
    scope = SearchScope(user_id=request.user_id, trip_id=request.trip_id)
    try:
        return await engine.search_pins(request.query, scope, request.limit)
    except TripmarkError as exc:
        raise to_http_error(exc) from exc


@router.get("/stats")
async def embedding_stats(indexer: EmbeddingIndexer = Depends(get_indexer)):
    """Embedding coverage across content rows."""
    try:
        stats: EmbeddingStats = await indexer.stats()
    except Exception as exc:
        logger.error(f"Failed to read embedding stats: {exc}")
        raise HTTPException(status_code=500, detail="Failed to read embedding stats") from exc
    return {**stats.model_dump(), "percentage_complete": stats.percentage_complete}
