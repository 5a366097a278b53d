"""ORM tables for cached places, content and pins."""

from datetime import datetime, timezone
from uuid import uuid4

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from tripmark.config import settings
from tripmark.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid4())


class PlaceCache(Base):
    """One row per external (Google) place id."""

    __tablename__ = "place_cache"

    id = Column(String(36), primary_key=True, default=_uuid)
    place_id = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(512), nullable=True)
    rating = Column(Float, nullable=True)  # scraped stars, 1-5
    user_rating_count = Column(Integer, nullable=True)
    info_url = Column(Text, nullable=True)  # Google Maps deep link
    opening_hours = Column(JSON, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    utc_offset_minutes = Column(Integer, nullable=True)
    formatted_address = Column(Text, nullable=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    business_status = Column(String(64), nullable=True)
    price_level = Column(String(64), nullable=True)
    types = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_cached = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    pins = relationship("Pin", back_populates="place")


class Content(Base):
    """A saved post/caption plus its per-field embeddings."""

    __tablename__ = "content"

    id = Column(String(36), primary_key=True, default=_uuid)
    url = Column(Text, nullable=False)
    title = Column(Text, nullable=True)
    raw_data = Column(Text, nullable=False, default="")
    structured_data = Column(Text, nullable=False, default="")
    user_notes = Column(Text, nullable=True)
    thumbnail = Column(Text, nullable=True)
    user_id = Column(String(64), nullable=False, index=True)
    trip_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    title_embedding = Column(Vector(settings.embedding_dimensions), nullable=True)
    raw_data_embedding = Column(Vector(settings.embedding_dimensions), nullable=True)
    user_notes_embedding = Column(Vector(settings.embedding_dimensions), nullable=True)
    structured_data_embedding = Column(Vector(settings.embedding_dimensions), nullable=True)
    last_embedding_update = Column(DateTime(timezone=True), nullable=True)

    pins = relationship("Pin", back_populates="content")


class Pin(Base):
    """One location mention extracted from a content item."""

    __tablename__ = "pin"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(512), nullable=False)
    category = Column(String(128), nullable=False)
    description = Column(Text, nullable=True)
    content_id = Column(String(36), ForeignKey("content.id"), nullable=False, index=True)
    place_cache_id = Column(
        String(36), ForeignKey("place_cache.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    content = relationship("Content", back_populates="pins")
    place = relationship("PlaceCache", back_populates="pins")


# Maps channel name -> (source text column, vector column)
EMBEDDING_CHANNELS = {
    "title": (Content.title, Content.title_embedding),
    "raw_data": (Content.raw_data, Content.raw_data_embedding),
    "user_notes": (Content.user_notes, Content.user_notes_embedding),
    "structured_data": (Content.structured_data, Content.structured_data_embedding),
}
