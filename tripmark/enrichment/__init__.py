"""
Enrichment jobs.

- Content enrichment: extracted locations -> resolved places -> pins
- Stale image refresh for cached places
"""

from .content_enrichment import (
    ContentEnrichmentOrchestrator,
    ContentIngestor,
)
from .image_refresh import StaleCacheRefresher

__all__ = [
    "ContentEnrichmentOrchestrator",
    "ContentIngestor",
    "StaleCacheRefresher",
]
