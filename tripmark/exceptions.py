"""Error taxonomy for place resolution, indexing and search."""


class TripmarkError(Exception):
    """Base class for errors raised by this service."""


class PlaceResolutionError(TripmarkError):
    """A single location mention could not be resolved to a place."""


class UpstreamUnavailable(PlaceResolutionError):
    """Places directory, metadata page or language model failed or was unreachable."""

    def __init__(self, service: str, detail: str):
        self.service = service
        self.detail = detail
        super().__init__(f"{service} unavailable: {detail}")


class NoCandidateFound(PlaceResolutionError):
    """Text search returned zero candidates for the query."""

    def __init__(self, query: str):
        self.query = query
        super().__init__(f"No places found for query: {query!r}")


class CacheRaceLoss(TripmarkError):
    """A concurrent insert won the uniqueness race for an external place id."""

    def __init__(self, place_id: str):
        self.place_id = place_id
        super().__init__(f"Place cache insert lost race for {place_id}")


class ExtractionError(TripmarkError):
    """The language model did not return usable location data."""


class EmbeddingGenerationFailure(TripmarkError):
    """Embedding could not be generated or stored for a content item."""

    def __init__(self, content_id: str, detail: str):
        self.content_id = content_id
        self.detail = detail
        super().__init__(f"Embedding failed for content {content_id}: {detail}")


class DegradedSearchPath(TripmarkError):
    """Trigram similarity is unavailable; lexical search falls back to substring matching."""
