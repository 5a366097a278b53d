"""Utility functions for the backend."""

from tripmark.utils.normalizers import (
    always_open_hours,
    count_stars,
    normalize_place_details,
    structured_data_text,
)

__all__ = ["always_open_hours", "count_stars", "normalize_place_details", "structured_data_text"]
