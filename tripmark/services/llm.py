"""Utilities for interacting with OpenAI (location extraction + embeddings)."""

from __future__ import annotations

import json
import logging
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from tripmark.config import settings
from tripmark.exceptions import ExtractionError, UpstreamUnavailable
from tripmark.models.extraction import ResolvedLocation, UnpinnedMention, parse_extractions

logger = logging.getLogger(__name__)

CAPTION_PROMPT = """
You extract structured location information from travel captions.

1. Find every place mentioned in the caption. One caption may mention several.
2. Classify each as one of: Food, Night life, Activities, Nature, Attractions,
   Shopping, Accommodation, Not Pinned. Use "Not Pinned" when the caption
   names no specific place or only a city/country ("Tokyo travel tips").
3. Give the address, city and country as precisely as the caption allows.
4. Give latitude and longitude, or null for "Not Pinned" entries.
5. Put any other useful details in additional_info.
6. Write a short title for the content.
7. Translate to English where possible.

Return only JSON of the form:
{"locations": [{"name": "<Place Name>", "title": "<Content title>",
  "location": "<Address, City, Country>", "classification": "<class>",
  "additional_info": "<details>", "lat": <number or null>, "long": <number or null>}]}

Example caption: "Had an amazing sushi experience at Sushi Dai in Tokyo! Highly recommend this place in Tsukiji Market!"
Example output:
{"locations": [{"name": "Sushi Dai", "title": "Sushi Experience at Sushi Dai",
  "location": "Tsukiji Market, Tokyo, Japan", "classification": "Food",
  "additional_info": "Famous sushi spot in Tsukiji Market.", "lat": 35.6655, "long": 139.7708}]}
"""


def _client(api_key: str | None) -> AsyncOpenAI:
    key = api_key or settings.openai_api_key
    if not key:
        raise RuntimeError("OPENAI_API_KEY is not configured.")
    return AsyncOpenAI(api_key=key)


class LocationExtractor:
    """Wrapper around the chat API that returns validated locations."""

    def __init__(self, client: AsyncOpenAI | None = None, model: str | None = None) -> None:
        self._client = client or _client(None)
        self.model = model or settings.openai_extraction_model

    async def extract(self, caption: str) -> list[ResolvedLocation | UnpinnedMention]:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": CAPTION_PROMPT},
                    {
                        "role": "user",
                        "content": f'Given the caption: "{caption}", extract the locations, classification, and description.',
                    },
                ],
                response_format={"type": "json_object"},
                temperature=0.2,
            )
        except OpenAIError as exc:
            logger.error(f"Error calling OpenAI API: {exc}")
            raise UpstreamUnavailable("language model", str(exc)) from exc

        content = response.choices[0].message.content
        if not content:
            raise ExtractionError("No response content from OpenAI")
        logger.debug(f"Response from extractor {content}")

        try:
            data: Any = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"Extractor returned invalid JSON: {exc}") from exc
        return parse_extractions(data)


class EmbeddingClient:
    """Return OpenAI embedding vectors."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        max_chars: int | None = None,
    ) -> None:
        self._client = client or _client(None)
        self.model = model or settings.openai_embedding_model
        self.max_chars = max_chars or settings.embedding_max_chars

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")
        try:
            result = await self._client.embeddings.create(
                model=self.model,
                input=text[: self.max_chars],
            )
        except OpenAIError as exc:
            logger.error(f"Error generating embedding: {exc}")
            raise UpstreamUnavailable("embeddings", str(exc)) from exc
        return result.data[0].embedding
