"""Dependencies for FastAPI routes."""
import logging
from functools import lru_cache

from tripmark.config import settings
from tripmark.database import AsyncSessionLocal
from tripmark.enrichment import (
    ContentEnrichmentOrchestrator,
    ContentIngestor,
    StaleCacheRefresher,
)
from tripmark.search import EmbeddingIndexer, HybridSearchEngine
from tripmark.services.google_places import GooglePlacesClient
from tripmark.services.llm import EmbeddingClient, LocationExtractor
from tripmark.services.metadata_resolver import MediaMetadataResolver
from tripmark.services.pins import ContentStore, PinStore
from tripmark.services.place_cache import PlaceCacheStore
from tripmark.services.place_resolution import PlaceResolutionPipeline
from tripmark.services.redis_client import RedisClient
from tripmark.services.session_tokens import (
    InMemorySessionStore,
    RedisSessionStore,
    SessionTokenManager,
)

logger = logging.getLogger(__name__)


@lru_cache
def get_places_client() -> GooglePlacesClient:
    return GooglePlacesClient()


@lru_cache
def get_metadata_resolver() -> MediaMetadataResolver:
    return MediaMetadataResolver()


@lru_cache
def get_place_cache() -> PlaceCacheStore:
    return PlaceCacheStore(AsyncSessionLocal)


@lru_cache
def get_session_tokens() -> SessionTokenManager:
    """Session tokens live in redis when configured, in process memory otherwise."""
    if settings.session_store == "redis":
        logger.info("Using redis for places session tokens")
        return SessionTokenManager(store=RedisSessionStore(RedisClient()))
    return SessionTokenManager(store=InMemorySessionStore())


@lru_cache
def get_resolution_pipeline() -> PlaceResolutionPipeline:
    return PlaceResolutionPipeline(
        places=get_places_client(),
        metadata=get_metadata_resolver(),
        cache=get_place_cache(),
        sessions=get_session_tokens(),
    )


@lru_cache
def get_orchestrator() -> ContentEnrichmentOrchestrator:
    return ContentEnrichmentOrchestrator(get_resolution_pipeline(), PinStore(AsyncSessionLocal))


@lru_cache
def get_ingestor() -> ContentIngestor:
    return ContentIngestor(
        contents=ContentStore(AsyncSessionLocal),
        extractor=LocationExtractor(),
        metadata=get_metadata_resolver(),
        orchestrator=get_orchestrator(),
    )


@lru_cache
def get_refresher() -> StaleCacheRefresher:
    return StaleCacheRefresher(get_places_client(), get_place_cache())


@lru_cache
def get_embedding_client() -> EmbeddingClient:
    return EmbeddingClient()


@lru_cache
def get_indexer() -> EmbeddingIndexer:
    return EmbeddingIndexer(AsyncSessionLocal, get_embedding_client())


@lru_cache
def get_search_engine() -> HybridSearchEngine:
    return HybridSearchEngine(AsyncSessionLocal, get_embedding_client())
