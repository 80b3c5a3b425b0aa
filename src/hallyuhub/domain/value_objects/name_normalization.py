"""Artist name normalization for matching and deduplication.

Hey future me - this module decides whether two artist names are "the same person"!
Catalog data arrives from TMDB, MusicBrainz and manual admin input, so the same idol
shows up as "Jisoo", "JISOO", "Jisoó" or "Kim Jisoo".

Used by:
- ArtistMergeService (medium-confidence duplicate pairs)
- FilmographySyncService (fuzzy production title matching)

Examples:
    >>> normalize_name("Jisoó")
    'jisoo'
    >>> name_contains_other("Jisoo", "Kim Jisoo")
    True
    >>> name_contains_other("Lisa", "Elisa")
    False
"""

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

# Combining diacritical marks block (é → e + U+0301 after NFD)
_COMBINING_MARKS = re.compile("[\u0300-\u036f]")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def normalize_name(name: str) -> str:
    """Normalize a name for comparison.

    Lowercases, strips diacritics, drops everything except ASCII letters,
    digits and whitespace, then trims. Hangul and other non-Latin scripts
    are dropped entirely, so compare native-script names separately.

    Examples:
        >>> normalize_name("  Jeon Jung-kook ")
        'jeon jungkook'
        >>> normalize_name("Rosé")
        'rose'
    """
    if not name:
        return ""

    normalized = unicodedata.normalize("NFD", name.lower())
    normalized = _COMBINING_MARKS.sub("", normalized)
    normalized = _NON_ALNUM.sub("", normalized)
    return normalized.strip()


def name_contains_other(a: str, b: str) -> bool:
    """Check whether one name equals or contains the other as whole words.

    The shorter normalized name must appear in the longer one bounded by
    whitespace or string edges. "Jisoo" matches "Kim Jisoo", "Lisa" does not
    match "Elisa".

    Two names that normalize to nothing never match (otherwise every pair of
    Hangul-only names would be flagged).
    """
    na = normalize_name(a)
    nb = normalize_name(b)
    if not na or not nb:
        return False
    if na == nb:
        return True

    shorter, longer = (na, nb) if len(na) <= len(nb) else (nb, na)
    pattern = re.compile(rf"(^|\s){re.escape(shorter)}(\s|$)")
    return pattern.search(longer) is not None


def title_similarity(a: str, b: str) -> float:
    """Case-insensitive Levenshtein similarity in [0.0, 1.0].

    Computed as ``1 - distance / max(len(a), len(b))``. Two empty strings
    are identical (1.0).
    """
    return Levenshtein.normalized_similarity((a or "").lower(), (b or "").lower())


__all__ = ["name_contains_other", "normalize_name", "title_similarity"]
