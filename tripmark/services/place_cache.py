"""Durable place cache: at most one row per external place id."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from tripmark.exceptions import CacheRaceLoss
from tripmark.models.places import PlaceRecord
from tripmark.tables import PlaceCache, utcnow

logger = logging.getLogger(__name__)


class PlaceCacheStore:
    """
    Read/write boundary for cached places.

    Each call opens its own session, so concurrent resolutions never share a
    session. Uniqueness of `place_id` is enforced by the database; inserts
    never update an existing row.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get(self, place_id: str) -> Optional[PlaceRecord]:
        async with self.session_factory() as session:
            row = await session.scalar(select(PlaceCache).where(PlaceCache.place_id == place_id))
            return PlaceRecord.model_validate(row) if row else None

    async def _insert(self, fields: Dict[str, Any]) -> PlaceRecord:
        async with self.session_factory() as session:
            now = utcnow()
            row = PlaceCache(**fields, created_at=now, last_cached=now)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise CacheRaceLoss(fields["place_id"]) from exc
            await session.refresh(row)
            return PlaceRecord.model_validate(row)

    async def insert_or_get(self, fields: Dict[str, Any]) -> Tuple[PlaceRecord, bool]:
        """
        Insert a new cache row, or return the row a concurrent writer created.

        Returns `(record, created)`.
        """
        try:
            return await self._insert(fields), True
        except CacheRaceLoss as exc:
            logger.info(f"Place {exc.place_id} was cached concurrently; re-reading")
            existing = await self.get(exc.place_id)
            if existing is None:
                raise
            return existing, False

    async def find_stale(self, cutoff: datetime) -> List[PlaceRecord]:
        """Rows last cached before `cutoff` that still hold at least one image."""
        async with self.session_factory() as session:
            rows = await session.scalars(
                select(PlaceCache)
                .where(PlaceCache.last_cached < cutoff)
                .where(func.json_array_length(PlaceCache.images) > 0)
                .order_by(PlaceCache.last_cached)
            )
            return [PlaceRecord.model_validate(row) for row in rows]

    async def replace_images(self, record_id: str, images: List[str]) -> None:
        """Overwrite the image list and mark the row freshly cached."""
        async with self.session_factory() as session:
            await session.execute(
                update(PlaceCache)
                .where(PlaceCache.id == record_id)
                .values(images=images, last_cached=utcnow())
            )
            await session.commit()
