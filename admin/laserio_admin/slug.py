"""Slug utilities for catalog identifiers."""

from __future__ import annotations

import re
from typing import Dict

CYRILLIC_MAP: Dict[str, str] = {
    "а": "a",
    "б": "b",
    "в": "v",
    "г": "g",
    "д": "d",
    "е": "e",
    "ё": "e",
    "ж": "zh",
    "з": "z",
    "и": "i",
    "й": "y",
    "к": "k",
    "л": "l",
    "м": "m",
    "н": "n",
    "о": "o",
    "п": "p",
    "р": "r",
    "с": "s",
    "т": "t",
    "у": "u",
    "ф": "f",
    "х": "h",
    "ц": "c",
    "ч": "ch",
    "ш": "sh",
    "щ": "sch",
    "ъ": "",
    "ы": "y",
    "ь": "",
    "э": "e",
    "ю": "yu",
    "я": "ya",
}

_SLUG_PATTERN = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")


def transliterate(value: str) -> str:
    """Replace Cyrillic letters with Latin sequences, leaving the rest intact."""
    return "".join(CYRILLIC_MAP.get(ch, ch) for ch in value)


def slugify(source: str) -> str:
    """Convert a free-form label into a lowercase hyphen-separated slug.

    Returns an empty string when nothing slug-worthy remains.
    """
    transliterated = transliterate((source or "").lower())
    slug = re.sub(r"[^a-z0-9]+", "-", transliterated)
    slug = slug.strip("-")
    return re.sub(r"-{2,}", "-", slug)


def is_slug_safe(slug: str) -> bool:
    """Return True when slug matches the expected managed pattern."""
    return bool(_SLUG_PATTERN.fullmatch(str(slug or "")))
