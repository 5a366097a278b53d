"""Typed boundary for location data returned by the language model.

The extractor returns loosely structured JSON. Everything is validated once
here and converted into one of two variants before entering the pipeline:

- ``ResolvedLocation``: a concrete place to look up and cache.
- ``UnpinnedMention``: a country/area-only or generic caption; gets a pin
  without a place and never touches the places directory.
"""
import logging
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

logger = logging.getLogger(__name__)

NOT_PINNED = "not pinned"


class _LocationBase(BaseModel):
    name: str = ""
    title: Optional[str] = None
    location: Optional[str] = None
    classification: Optional[str] = None
    additional_info: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name_to_str(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


class ResolvedLocation(_LocationBase):
    """A mention that names a specific place."""

    kind: Literal["resolved"] = "resolved"
    lat: Optional[float] = None
    long: Optional[float] = None

    @property
    def query_text(self) -> str:
        """Composite text-search query: place name + free-text location."""
        return f"{self.name} {self.location or ''}".strip()


class UnpinnedMention(_LocationBase):
    """A mention with no specific place (e.g. "Tokyo travel tips")."""

    kind: Literal["unpinned"] = "unpinned"


ExtractedLocation = Annotated[
    Union[ResolvedLocation, UnpinnedMention], Field(discriminator="kind")
]

_extracted_list = TypeAdapter(List[ExtractedLocation])


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _is_unpinned(entry: dict) -> bool:
    classification = str(entry.get("classification") or "").strip().lower()
    if classification == NOT_PINNED:
        return True
    return _coerce_float(entry.get("lat")) is None and _coerce_float(entry.get("long")) is None


def parse_extractions(raw: Any) -> List[Union[ResolvedLocation, UnpinnedMention]]:
    """
    Validate raw extractor output into typed locations.

    Accepts a list of entries, a ``{"locations": [...]}`` wrapper, or a single
    entry object. Entries that are not objects, or that have neither a name
    nor a location, are dropped with a warning.
    """
    if raw is None:
        return []
    if isinstance(raw, dict):
        raw = raw.get("locations", [raw] if ("name" in raw or "location" in raw) else [])
    if not isinstance(raw, list):
        logger.warning(f"Discarding extractor output of type {type(raw).__name__}")
        return []

    tagged: List[dict] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            logger.warning(f"Discarding extraction #{index}: not an object")
            continue
        if not (entry.get("name") or entry.get("location")):
            logger.warning(f"Discarding extraction #{index}: no name or location")
            continue
        item = dict(entry)
        if _is_unpinned(item):
            item["kind"] = "unpinned"
            item.pop("lat", None)
            item.pop("long", None)
        else:
            item["kind"] = "resolved"
            item["lat"] = _coerce_float(item.get("lat"))
            item["long"] = _coerce_float(item.get("long"))
        for key in ("title", "location", "classification", "additional_info"):
            if item.get(key) is not None and not isinstance(item[key], str):
                item[key] = str(item[key])
        tagged.append(item)

    try:
        return _extracted_list.validate_python(tagged)
    except ValidationError as exc:
        logger.warning(f"Extractor output failed validation: {exc}")
        valid = []
        for item in tagged:
            try:
                valid.extend(_extracted_list.validate_python([item]))
            except ValidationError:
                continue
        return valid
