"""
Cell name normalization used for duplicate detection.
"""

from __future__ import annotations

import re
import unicodedata

_DIGITS = re.compile(r"\d+")
_SPACES = re.compile(r"\s+")


def _strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_cell_name(name: str) -> str:
    """
    Return the comparison key for a cell name.

    Accents and case are ignored, whitespace is collapsed and leading zeros
    are dropped from numbers, so "Célula 01" and "celula 1" collide.
    """
    value = _strip_accents(name or "").casefold()
    value = _SPACES.sub(" ", value).strip()
    return _DIGITS.sub(lambda m: str(int(m.group(0))), value)


def slugify(value: str) -> str:
    """Filesystem-friendly slug for report file names."""
    value = _strip_accents(value or "").lower()
    value = re.sub(r"[^a-z0-9]+", "-", value).strip("-")
    return value or "usuario"
