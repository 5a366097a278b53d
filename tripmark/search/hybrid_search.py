"""
Hybrid search over saved content.

Two signals are gathered concurrently and merged into one ranked list:

- semantic: cosine similarity of the query embedding against the four
  content embedding channels, best channel wins;
- lexical: the query against pin names, substring containment (fixed high
  score) or pg_trgm similarity above a floor.

Lexical matches (`pin_name`, `hybrid`) rank ahead of pure semantic ones.
Content found by both signals appears once, tagged `hybrid`, with
`max(semantic, lexical) + boost`. The boosted score is not clamped.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Iterable, Sequence

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.ext.asyncio import async_sessionmaker

from tripmark.config import settings
from tripmark.exceptions import DegradedSearchPath
from tripmark.models.search import (
    MatchedPin,
    MatchType,
    PinMatch,
    PinSearchResult,
    SearchResult,
    SearchScope,
    SemanticMatch,
)
from tripmark.services.llm import EmbeddingClient
from tripmark.tables import EMBEDDING_CHANNELS, Content, Pin

logger = logging.getLogger(__name__)


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _recency(value: datetime) -> float:
    return value.timestamp()


def rank_substring_matches(
    query: str, candidates: Iterable[PinMatch], score: float | None = None
) -> list[PinMatch]:
    """
    Order substring matches: exact name, then prefix, then other substrings,
    newest content first within each group. Non-matching names are dropped.
    """
    score = settings.pin_fallback_score if score is None else score
    needle = query.strip().lower()
    ranked = []
    for candidate in candidates:
        name = candidate.pin_name.lower()
        if needle not in name:
            continue
        if name == needle:
            group = 0
        elif name.startswith(needle):
            group = 1
        else:
            group = 2
        ranked.append((group, -_recency(candidate.created_at), candidate.model_copy(update={"score": score})))
    ranked.sort(key=lambda item: (item[0], item[1]))
    return [candidate for _, _, candidate in ranked]


def merge_hybrid_results(
    semantic: Sequence[SemanticMatch],
    lexical: Sequence[PinMatch],
    limit: int,
    boost: float | None = None,
) -> list[SearchResult]:
    """Combine both signals into one deduplicated, ranked list of content."""
    boost = settings.hybrid_boost if boost is None else boost
    combined: dict[str, SearchResult] = {}

    for match in semantic:
        combined[match.content_id] = SearchResult(
            content_id=match.content_id,
            title=match.title,
            created_at=match.created_at,
            channel_scores={k: round(v, 3) for k, v in match.channel_scores.items()},
            score=round(match.score, 3),
            match_type=MatchType.SEMANTIC,
        )

    pins_by_content: dict[str, list[PinMatch]] = {}
    for pin in lexical:
        pins_by_content.setdefault(pin.content_id, []).append(pin)

    for content_id, pins in pins_by_content.items():
        lexical_score = max(pin.score for pin in pins)
        matched = [
            MatchedPin(pin_id=p.pin_id, pin_name=p.pin_name, similarity=round(p.score, 3))
            for p in pins
        ]
        existing = combined.get(content_id)
        if existing is not None:
            existing.score = round(max(existing.score, lexical_score) + boost, 3)
            existing.match_type = MatchType.HYBRID
            existing.matched_pins = matched
        else:
            first = pins[0]
            combined[content_id] = SearchResult(
                content_id=content_id,
                title=first.title,
                created_at=first.created_at,
                score=round(lexical_score, 3),
                match_type=MatchType.PIN_NAME,
                matched_pins=matched,
            )

    ordered = sorted(
        combined.values(),
        key=lambda r: (
            r.match_type == MatchType.SEMANTIC,
            -r.score,
            -_recency(r.created_at),
        ),
    )
    return ordered[:limit]


def merge_pin_results(
    lexical: Sequence[PinMatch],
    semantic_pins: Sequence[PinMatch],
    content_scores: dict[str, float],
    limit: int,
) -> list[PinSearchResult]:
    """
    Pin-level ranking: strong name matches first, then pins of semantically
    similar content. Each pin appears once.
    """
    results: dict[str, PinSearchResult] = {}
    for pin in lexical:
        if pin.score >= settings.pin_search_text_floor:
            results[pin.pin_id] = PinSearchResult(
                pin_id=pin.pin_id,
                pin_name=pin.pin_name,
                content_id=pin.content_id,
                similarity=round(pin.score, 3),
                match_type="text_similarity",
            )
    for pin in semantic_pins:
        if pin.pin_id in results:
            continue
        score = max(settings.pin_search_semantic_floor, content_scores.get(pin.content_id, 0.0))
        results[pin.pin_id] = PinSearchResult(
            pin_id=pin.pin_id,
            pin_name=pin.pin_name,
            content_id=pin.content_id,
            similarity=round(score, 3),
            match_type="semantic",
        )
    ordered = sorted(
        results.values(),
        key=lambda r: (r.match_type != "text_similarity", -r.similarity),
    )
    return ordered[:limit]


class HybridSearchEngine:
    """Semantic + pin-name search scoped to a user and/or trip."""

    def __init__(self, session_factory: async_sessionmaker, embedder: EmbeddingClient) -> None:
        self.session_factory = session_factory
        self.embedder = embedder
        self.trigram_available = True

    @staticmethod
    def _scope_filters(scope: SearchScope) -> list:
        filters = []
        if scope.user_id:
            filters.append(Content.user_id == scope.user_id)
        if scope.trip_id:
            filters.append(Content.trip_id == scope.trip_id)
        return filters

    async def search(
        self, query: str, scope: SearchScope, limit: int | None = None
    ) -> list[SearchResult]:
        limit = limit or settings.search_default_limit
        if not query or not query.strip():
            return []

        query_vector = await self.embedder.embed(query)
        semantic, lexical = await asyncio.gather(
            self.semantic_matches(query_vector, scope, limit),
            self.pin_name_matches(query, scope, limit),
        )
        results = merge_hybrid_results(semantic, lexical, limit)
        logger.info(
            f"Hybrid search {query!r}: {len(semantic)} semantic, "
            f"{len(lexical)} pin-name, {len(results)} combined"
        )
        return results

    async def search_pins(
        self, query: str, scope: SearchScope, limit: int | None = None
    ) -> list[PinSearchResult]:
        limit = limit or settings.search_default_limit
        if not query or not query.strip():
            return []

        query_vector = await self.embedder.embed(query)
        semantic, lexical = await asyncio.gather(
            self.semantic_matches(query_vector, scope, limit * 2),
            self.pin_name_matches(query, scope, limit),
        )
        semantic_pins = await self.pins_for_content([m.content_id for m in semantic])
        return merge_pin_results(
            lexical,
            semantic_pins,
            {m.content_id: m.score for m in semantic},
            limit,
        )

    async def semantic_matches(
        self, query_vector: list[float], scope: SearchScope, limit: int
    ) -> list[SemanticMatch]:
        """Content rows with at least one embedding, ordered by best channel similarity."""
        similarities = {
            name: case((vector.is_not(None), 1 - vector.cosine_distance(query_vector)), else_=None)
            for name, (_, vector) in EMBEDDING_CHANNELS.items()
        }
        best = func.greatest(*[func.coalesce(expr, 0.0) for expr in similarities.values()])
        stmt = (
            select(
                Content.id,
                Content.title,
                Content.created_at,
                *[expr.label(f"{name}_similarity") for name, expr in similarities.items()],
            )
            .where(*self._scope_filters(scope))
            .where(or_(*[vector.is_not(None) for _, vector in EMBEDDING_CHANNELS.values()]))
            .order_by(best.desc(), Content.created_at.desc())
            .limit(limit)
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).mappings().all()

        matches = []
        for row in rows:
            scores = {
                name: float(row[f"{name}_similarity"])
                for name in EMBEDDING_CHANNELS
                if row[f"{name}_similarity"] is not None
            }
            matches.append(
                SemanticMatch(
                    content_id=row["id"],
                    title=row["title"],
                    created_at=row["created_at"],
                    channel_scores=scores,
                )
            )
        return matches

    async def pin_name_matches(self, query: str, scope: SearchScope, limit: int) -> list[PinMatch]:
        """Lexical pin-name matches; falls back to substring matching without pg_trgm."""
        if not query or not query.strip():
            return []
        if self.trigram_available:
            try:
                return await self._trigram_pin_matches(query.strip(), scope, limit)
            except DegradedSearchPath as exc:
                self.trigram_available = False
                logger.warning(f"Falling back to substring pin search: {exc}")
        return await self._substring_pin_matches(query.strip(), scope, limit)

    def _pin_columns(self):
        return (Pin.id, Pin.name, Pin.content_id, Content.title, Content.created_at)

    async def _trigram_pin_matches(self, query: str, scope: SearchScope, limit: int) -> list[PinMatch]:
        trigram = func.similarity(Pin.name, query)
        contains = Pin.name.ilike(_like_pattern(query), escape="\\")
        floor = settings.pin_trigram_floor
        score = func.greatest(
            case((trigram > floor, trigram), else_=0.0),
            case((contains, settings.pin_substring_score), else_=0.0),
        )
        stmt = (
            select(*self._pin_columns(), score.label("score"))
            .join(Content, Pin.content_id == Content.id)
            .where(*self._scope_filters(scope))
            .where(or_(contains, trigram > floor))
            .order_by(score.desc(), Content.created_at.desc())
            .limit(limit)
        )
        try:
            async with self.session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except ProgrammingError as exc:
            raise DegradedSearchPath(f"trigram similarity unavailable: {exc.orig}") from exc
        return [self._pin_match(row, float(row.score)) for row in rows if row.score > 0]

    async def _substring_pin_matches(self, query: str, scope: SearchScope, limit: int) -> list[PinMatch]:
        stmt = (
            select(*self._pin_columns())
            .join(Content, Pin.content_id == Content.id)
            .where(*self._scope_filters(scope))
            .where(Pin.name.ilike(_like_pattern(query), escape="\\"))
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()
        candidates = [self._pin_match(row, settings.pin_fallback_score) for row in rows]
        return rank_substring_matches(query, candidates)[:limit]

    async def pins_for_content(self, content_ids: list[str]) -> list[PinMatch]:
        if not content_ids:
            return []
        stmt = (
            select(*self._pin_columns())
            .join(Content, Pin.content_id == Content.id)
            .where(Pin.content_id.in_(content_ids))
            .order_by(Pin.created_at.desc())
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [self._pin_match(row, 0.0) for row in rows]

    @staticmethod
    def _pin_match(row, score: float) -> PinMatch:
        return PinMatch(
            pin_id=row.id,
            pin_name=row.name,
            content_id=row.content_id,
            title=row.title,
            created_at=row.created_at,
            score=score,
        )
