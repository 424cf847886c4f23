"""Accent- and case-insensitive text matching for list filters."""

from __future__ import annotations

import unicodedata


def normalize_search_text(text: str) -> str:
    """Lowercase, strip diacritics and surrounding whitespace (``"Ações "`` -> ``"acoes"``)."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(char for char in decomposed if not unicodedata.combining(char)).strip()


def matches_search(query: str | None, *fields: str | None) -> bool:
    needle = normalize_search_text(query or "")
    if not needle:
        return True
    return any(needle in normalize_search_text(field or "") for field in fields)
