"""Pydantic models for places, pins and enrichment results."""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from tripmark.models.extraction import ResolvedLocation, UnpinnedMention


class PlaceCandidate(BaseModel):
    """Provisional identity returned by a text search."""
    place_id: str
    name: Optional[str] = None


class Coordinates(BaseModel):
    lat: float
    lng: float


class PageMetadata(BaseModel):
    """Image + star rating scraped from a place's deep-link page."""
    image_url: Optional[str] = None
    stars: Optional[int] = None


class PlaceRecord(BaseModel):
    """Cached place metadata (one per external place id)."""
    id: str
    place_id: str
    name: Optional[str] = None
    rating: Optional[float] = None
    user_rating_count: Optional[int] = None
    info_url: Optional[str] = None
    opening_hours: Optional[Dict[str, Any]] = None
    images: List[str] = Field(default_factory=list)
    utc_offset_minutes: Optional[int] = None
    formatted_address: Optional[str] = None
    lat: float
    lng: float
    business_status: Optional[str] = None
    price_level: Optional[str] = None
    types: List[str] = Field(default_factory=list)
    last_cached: datetime

    model_config = {"from_attributes": True}


class ResolvedPlace(BaseModel):
    """Result of resolving one mention."""
    place: PlaceRecord
    coordinates: Coordinates
    cache_hit: bool = False


class PinRecord(BaseModel):
    id: str
    name: str
    category: str
    description: Optional[str] = None
    content_id: str
    place_cache_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class EnrichmentOutcome(BaseModel):
    """Per-location result: exactly one of `pin` / `error` is set."""
    location: Union[ResolvedLocation, UnpinnedMention]
    pin: Optional[PinRecord] = None
    place: Optional[PlaceRecord] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.pin is not None


class EnrichmentReport(BaseModel):
    content_id: str
    outcomes: List[EnrichmentOutcome] = Field(default_factory=list)

    @property
    def pins(self) -> List[PinRecord]:
        return [o.pin for o in self.outcomes if o.pin is not None]

    @property
    def failures(self) -> List[EnrichmentOutcome]:
        return [o for o in self.outcomes if o.error is not None]

    @property
    def summary(self) -> str:
        return f"{len(self.pins)} of {len(self.outcomes)} locations pinned"


class RefreshFailure(BaseModel):
    place_id: str
    reason: str


class RefreshReport(BaseModel):
    """Summary of one stale-image refresh run."""
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: List[RefreshFailure] = Field(default_factory=list)


class ResolvePlaceRequest(BaseModel):
    query: str = Field(..., min_length=1, description="Free-text place mention")
    user_id: str


class IngestContentRequest(BaseModel):
    url: str = Field(..., description="Source URL of the post")
    content: str = Field("", description="Caption text; fetched from the URL when empty")
    user_id: str
    trip_id: str
    user_notes: Optional[str] = None
