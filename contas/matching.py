"""Token-based approximate string matching.

Used both for duplicate detection and for auto-filling imported bills from
similar saved ones. Word order, abbreviations ('equip' vs 'equipamentos')
and missing stop words are tolerated.
"""

from __future__ import annotations

import re
import unicodedata

SIMILARITY_THRESHOLD = 0.8

_PUNCTUATION_RE = re.compile(r"[^\w\s]|_")
_WHITESPACE_RE = re.compile(r"\s+")


def _normalize_for_tokenization(value: str) -> str:
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", value.lower().strip())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE_RE.sub(" ", _PUNCTUATION_RE.sub(" ", stripped)).strip()


def normalize_string(value: str) -> str:
    """Normalize for plain substring search: 'Conta de Luz' -> 'contadeluz'."""
    return _normalize_for_tokenization(value).replace(" ", "")


def _tokens(value: str) -> set[str]:
    return {token for token in _normalize_for_tokenization(value).split(" ") if token}


def _similarity(smaller: set[str], larger: set[str]) -> float:
    matches = sum(1 for token in smaller if any(token in other or other in token for other in larger))
    return matches / len(smaller)


def is_fuzzy_match(a: str, b: str) -> bool:
    if not a or not b:
        return False

    tokens_a = _tokens(a)
    tokens_b = _tokens(b)
    if not tokens_a or not tokens_b:
        return False

    if len(tokens_a) < len(tokens_b):
        similarity = _similarity(tokens_a, tokens_b)
    elif len(tokens_b) < len(tokens_a):
        similarity = _similarity(tokens_b, tokens_a)
    else:
        # Equal sizes: score both ways so the result does not depend on argument order.
        similarity = max(_similarity(tokens_a, tokens_b), _similarity(tokens_b, tokens_a))

    return similarity >= SIMILARITY_THRESHOLD
