"""Content and pin persistence."""
import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker

from tripmark.models.places import PinRecord
from tripmark.tables import Content, Pin

logger = logging.getLogger(__name__)


class PinStore:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def create_pin(
        self,
        content_id: str,
        name: Optional[str],
        category: Optional[str],
        description: Optional[str],
        place_cache_id: Optional[str] = None,
    ) -> PinRecord:
        async with self.session_factory() as session:
            pin = Pin(
                name=name or "Unnamed Pin",
                category=category or "Uncategorized",
                description=description or "N/A",
                content_id=content_id,
                place_cache_id=place_cache_id,
            )
            session.add(pin)
            await session.commit()
            await session.refresh(pin)
            logger.info(f"Created pin {pin.id} for content {content_id} (place {place_cache_id})")
            return PinRecord.model_validate(pin)


class ContentStore:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def create_content(
        self,
        url: str,
        raw_data: str,
        user_id: str,
        trip_id: str,
        user_notes: Optional[str] = None,
    ) -> str:
        async with self.session_factory() as session:
            content = Content(
                url=url,
                raw_data=raw_data,
                structured_data="",
                user_id=user_id,
                trip_id=trip_id,
                user_notes=user_notes,
            )
            session.add(content)
            await session.flush()
            content_id = content.id
            await session.commit()
            return content_id

    async def update_extraction(
        self, content_id: str, structured_data: str, title: Optional[str] = None
    ) -> None:
        values = {"structured_data": structured_data}
        if title:
            values["title"] = title
        async with self.session_factory() as session:
            await session.execute(update(Content).where(Content.id == content_id).values(**values))
            await session.commit()
