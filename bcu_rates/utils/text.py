"""Text helpers for matching BCU currency names."""

from __future__ import annotations

import unicodedata


def normalize_name(value: object) -> str:
    """Strip diacritics, upper-case and trim ``value`` for comparisons.

    ``None`` becomes an empty string so callers can match blindly against
    partially populated upstream rows.
    """

    if value is None:
        return ""
    decomposed = unicodedata.normalize("NFD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.upper().strip()


__all__ = ["normalize_name"]
