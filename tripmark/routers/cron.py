"""
Scheduled jobs.

The scheduler calls these with the `X-Appengine-Cron` header; requests
without it are rejected.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from tripmark.dependencies import get_indexer, get_refresher
from tripmark.enrichment import StaleCacheRefresher
from tripmark.models.places import RefreshReport
from tripmark.models.search import IndexReport
from tripmark.search import EmbeddingIndexer

router = APIRouter(prefix="/cron", tags=["cron"])
logger = logging.getLogger(__name__)


async def require_cron_header(x_appengine_cron: Optional[str] = Header(None)) -> None:
    if x_appengine_cron != "true":
        logger.warning("Rejected cron request without scheduler header")
        raise HTTPException(status_code=403, detail="Unauthorized")


@router.get(
    "/refresh-images",
    response_model=RefreshReport,
    dependencies=[Depends(require_cron_header)],
)
async def refresh_images(refresher: StaleCacheRefresher = Depends(get_refresher)):
    """Re-fetch images for places cached longer than the staleness window."""
    return await refresher.refresh_stale_places()


@router.get(
    "/index-embeddings",
    response_model=IndexReport,
    dependencies=[Depends(require_cron_header)],
)
async def index_embeddings(indexer: EmbeddingIndexer = Depends(get_indexer)):
    """Embed content rows that have no vectors yet."""
    return await indexer.index_pending()
