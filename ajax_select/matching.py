"""Text normalization for in-memory partial matching.

Both the query and the candidate text go through :func:`normalize_text`, so
``"Crème"`` matches ``"creme"`` and ``"ACME, Inc."`` matches ``"acme inc"``.
"""
from __future__ import annotations

import re

from unidecode import unidecode

# Keep letters, digits and spaces only.
_NON_ALNUM_SPACE_RE = re.compile(r"[^0-9a-z ]+")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    if not text:
        return ""
    ascii_text = unidecode(str(text)).lower()
    ascii_text = _NON_ALNUM_SPACE_RE.sub(" ", ascii_text)
    return _WHITESPACE_RE.sub(" ", ascii_text).strip()


def partial_match(query: str | None, candidate: str | None) -> bool:
    """True when every query token occurs somewhere in ``candidate``."""
    normalized_query = normalize_text(query)
    if not normalized_query:
        return False
    normalized_candidate = normalize_text(candidate)
    return all(token in normalized_candidate for token in normalized_query.split(" "))
