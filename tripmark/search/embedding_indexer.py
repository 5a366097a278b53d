"""Per-field embeddings for content rows."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from tripmark.config import settings
from tripmark.exceptions import EmbeddingGenerationFailure, TripmarkError
from tripmark.models.search import EmbeddingStats, IndexReport
from tripmark.services.llm import EmbeddingClient
from tripmark.tables import EMBEDDING_CHANNELS, Content, utcnow
from tripmark.utils.normalizers import structured_data_text

logger = logging.getLogger(__name__)


def _channel_texts(content: Content) -> dict[str, str]:
    """Source text per channel; empty channels are skipped."""
    texts = {
        "title": content.title or "",
        "raw_data": content.raw_data or "",
        "user_notes": content.user_notes or "",
        "structured_data": structured_data_text(content.structured_data),
    }
    return {channel: text for channel, text in texts.items() if text.strip()}


class EmbeddingIndexer:
    """Computes and stores the title/raw/notes/structured vectors of content."""

    def __init__(self, session_factory: async_sessionmaker, embedder: EmbeddingClient) -> None:
        self.session_factory = session_factory
        self.embedder = embedder

    async def index_content(self, content_id: str) -> list[str]:
        """Embed every non-empty channel of one content row; returns the channels written."""
        async with self.session_factory() as session:
            content = await session.get(Content, content_id)
            if content is None:
                raise EmbeddingGenerationFailure(content_id, "content not found")
            texts = _channel_texts(content)

        if not texts:
            logger.warning(f"No content to embed for {content_id}")
            return []

        channels = list(texts)
        try:
            vectors = await asyncio.gather(*[self.embedder.embed(texts[c]) for c in channels])
        except (TripmarkError, ValueError) as exc:
            raise EmbeddingGenerationFailure(content_id, str(exc)) from exc

        values = {EMBEDDING_CHANNELS[c][1].key: vector for c, vector in zip(channels, vectors)}
        values["last_embedding_update"] = utcnow()
        try:
            async with self.session_factory() as session:
                await session.execute(update(Content).where(Content.id == content_id).values(**values))
                await session.commit()
        except SQLAlchemyError as exc:
            raise EmbeddingGenerationFailure(content_id, str(exc)) from exc

        logger.info(f"Generated {len(channels)} embeddings for content {content_id}")
        return channels

    async def _pending_ids(self, limit: int | None = None) -> list[str]:
        vector_columns = [vector for _, vector in EMBEDDING_CHANNELS.values()]
        stmt = (
            select(Content.id)
            .where(*[column.is_(None) for column in vector_columns])
            .order_by(Content.created_at.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        async with self.session_factory() as session:
            return list(await session.scalars(stmt))

    async def index_pending(
        self,
        batch_size: int | None = None,
        concurrency: int | None = None,
        delay_seconds: float | None = None,
        limit: int | None = None,
    ) -> IndexReport:
        """
        Embed every content row that has no embeddings yet.

        Rows are processed `concurrency` at a time; a pause of `delay_seconds`
        follows each batch of `batch_size` rows. Failures are recorded per row.
        """
        batch_size = batch_size or settings.embedding_batch_size
        concurrency = concurrency or settings.embedding_batch_concurrency
        delay_seconds = settings.embedding_batch_delay_seconds if delay_seconds is None else delay_seconds

        content_ids = await self._pending_ids(limit)
        logger.info(f"Found {len(content_ids)} content items to embed")
        report = IndexReport()

        for start in range(0, len(content_ids), batch_size):
            batch = content_ids[start:start + batch_size]
            for offset in range(0, len(batch), concurrency):
                chunk = batch[offset:offset + concurrency]
                results = await asyncio.gather(
                    *[self.index_content(content_id) for content_id in chunk],
                    return_exceptions=True,
                )
                for content_id, result in zip(chunk, results):
                    report.processed += 1
                    if isinstance(result, EmbeddingGenerationFailure):
                        report.failures[content_id] = result.detail
                        logger.error(str(result))
                    elif isinstance(result, BaseException):
                        raise result
                    else:
                        report.succeeded += 1

            logger.info(f"Progress: {report.processed}/{len(content_ids)} ({report.succeeded} successful)")
            if delay_seconds and start + batch_size < len(content_ids):
                await asyncio.sleep(delay_seconds)

        return report

    async def stats(self) -> EmbeddingStats:
        vector_columns = {name: vector for name, (_, vector) in EMBEDDING_CHANNELS.items()}
        async with self.session_factory() as session:
            total = await session.scalar(select(func.count(Content.id)))
            with_any = await session.scalar(
                select(func.count(Content.id)).where(
                    or_(*[column.is_not(None) for column in vector_columns.values()])
                )
            )
            per_channel = {}
            for name, column in vector_columns.items():
                per_channel[name] = await session.scalar(
                    select(func.count(Content.id)).where(column.is_not(None))
                )
        return EmbeddingStats(
            total_content=total or 0,
            with_any_embedding=with_any or 0,
            per_channel=per_channel,
        )
