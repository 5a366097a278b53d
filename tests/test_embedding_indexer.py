import json

import pytest

from tripmark.config import settings
from tripmark.exceptions import EmbeddingGenerationFailure, UpstreamUnavailable
from tripmark.search import EmbeddingIndexer
from tripmark.tables import Content


class FakeEmbedder:
    def __init__(self, fail_on: str = ""):
        self.fail_on = fail_on
        self.texts = []

    async def embed(self, text: str):
        if self.fail_on and self.fail_on in text:
            raise UpstreamUnavailable("embeddings", "rate limited")
        self.texts.append(text)
        return [0.01] * settings.embedding_dimensions


async def add_content(session_factory, **fields) -> str:
    values = {"url": "https://example.test/p", "raw_data": "", "user_id": "user-1", "trip_id": "trip-1"}
    values.update(fields)
    async with session_factory() as session:
        content = Content(**values)
        session.add(content)
        await session.commit()
        return content.id


async def test_index_content_embeds_non_empty_channels(session_factory):
    content_id = await add_content(
        session_factory,
        title="Sushi Experience at Sushi Dai",
        raw_data="Had an amazing sushi experience at Sushi Dai",
        structured_data=json.dumps([{"name": "Sushi Dai", "location": "Tsukiji"}]),
    )
    embedder = FakeEmbedder()

    channels = await EmbeddingIndexer(session_factory, embedder).index_content(content_id)

    assert channels == ["title", "raw_data", "structured_data"]
    assert "Sushi Dai Tsukiji" in embedder.texts
    async with session_factory() as session:
        content = await session.get(Content, content_id)
        assert content.title_embedding is not None
        assert content.user_notes_embedding is None
        assert content.last_embedding_update is not None


async def test_index_missing_content(session_factory):
    with pytest.raises(EmbeddingGenerationFailure):
        await EmbeddingIndexer(session_factory, FakeEmbedder()).index_content("missing")


async def test_embedding_errors_are_wrapped(session_factory):
    content_id = await add_content(session_factory, raw_data="boom")

    with pytest.raises(EmbeddingGenerationFailure) as exc_info:
        await EmbeddingIndexer(session_factory, FakeEmbedder(fail_on="boom")).index_content(content_id)
    assert exc_info.value.content_id == content_id


async def test_index_pending_records_failures_per_item(session_factory):
    good = await add_content(session_factory, raw_data="Tokyo Tower at night")
    bad = await add_content(session_factory, raw_data="boom")
    indexer = EmbeddingIndexer(session_factory, FakeEmbedder(fail_on="boom"))

    report = await indexer.index_pending(batch_size=1, concurrency=1, delay_seconds=0)

    assert (report.processed, report.succeeded) == (2, 1)
    assert list(report.failures) == [bad]
    stats = await indexer.stats()
    assert stats.total_content == 2
    assert stats.with_any_embedding == 1
    assert stats.per_channel["raw_data"] == 1
    assert stats.percentage_complete == 50.0

    second = await indexer.index_pending(delay_seconds=0)
    assert second.processed == 1
    assert good not in second.failures
