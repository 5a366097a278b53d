"""Pydantic models for hybrid search and embedding indexing."""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class MatchType(str, Enum):
    """How a content row entered the result set."""
    SEMANTIC = "semantic"
    PIN_NAME = "pin_name"
    HYBRID = "hybrid"


class SearchScope(BaseModel):
    user_id: Optional[str] = None
    trip_id: Optional[str] = None


class SemanticMatch(BaseModel):
    """One content row scored against the query embedding."""
    content_id: str
    created_at: datetime
    title: Optional[str] = None
    channel_scores: Dict[str, float] = Field(default_factory=dict)

    @property
    def score(self) -> float:
        return max(self.channel_scores.values(), default=0.0)


class PinMatch(BaseModel):
    """One pin whose name matched the query lexically."""
    pin_id: str
    pin_name: str
    content_id: str
    created_at: datetime
    title: Optional[str] = None
    score: float


class MatchedPin(BaseModel):
    pin_id: str
    pin_name: str
    similarity: float


class SearchResult(BaseModel):
    content_id: str
    title: Optional[str] = None
    created_at: datetime
    channel_scores: Dict[str, float] = Field(default_factory=dict)
    score: float
    match_type: MatchType
    matched_pins: List[MatchedPin] = Field(default_factory=list)


class PinSearchResult(BaseModel):
    pin_id: str
    pin_name: str
    content_id: str
    similarity: float
    match_type: str  # text_similarity | semantic


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    user_id: Optional[str] = None
    trip_id: Optional[str] = None
    limit: int = Field(10, ge=1, le=50)


class IndexReport(BaseModel):
    processed: int = 0
    succeeded: int = 0
    failures: Dict[str, str] = Field(default_factory=dict)


class EmbeddingStats(BaseModel):
    total_content: int = 0
    with_any_embedding: int = 0
    per_channel: Dict[str, int] = Field(default_factory=dict)

    @property
    def percentage_complete(self) -> float:
        if not self.total_content:
            return 0.0
        return round(self.with_any_embedding / self.total_content * 100, 1)
