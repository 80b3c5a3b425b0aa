"""Korean-culture relevance check for TMDB people.

Hey future me - cast sync creates artists for EVERY top-billed actor of a production. Korean
shows regularly have foreign guest stars, so anyone we can't positively tie to Korea gets
created with flagged_as_non_korean=True for moderation. Default answer is "not relevant":
a false negative can be unflagged later, a false positive pollutes the catalog.
"""

import re
from typing import Any

_HANGUL = re.compile("[\uac00-\ud7af]")

_KOREAN_BIRTHPLACE_MARKERS = ("korea", "seoul", "busan")
_KOREAN_CITIES = (
    "korea",
    "seoul",
    "busan",
    "incheon",
    "daegu",
    "gwangju",
    "daejeon",
    "ulsan",
    "suwon",
    "goyang",
    "yongin",
)
_STRONG_BIO_TERMS = (
    "k-pop",
    "kpop",
    "k-drama",
    "korean drama",
    "korean idol",
    "korean film",
    "korean cinema",
    "korean group",
    "korean band",
    "korean entertainment",
    "korean actor",
    "korean actress",
    "korean singer",
)
_CONFLICTING_COUNTRIES = (
    "china",
    "japan",
    "thailand",
    "vietnam",
    "philippines",
    "india",
    "indonesia",
    "malaysia",
)
_EXPLICIT_INDUSTRY_TERMS = ("k-drama", "k-pop", "korean film", "korean group")

# Below this TMDB popularity only hard evidence (birthplace/Hangul alias) counts
MIN_POPULARITY = 5


def has_hangul(text: str | None) -> bool:
    """True if the text contains at least one Hangul syllable."""
    return bool(text) and _HANGUL.search(text) is not None


def is_relevant_to_korean_culture(person: dict[str, Any]) -> bool:
    """Decide whether a TMDB person belongs in a Korean-culture catalog.

    Args:
        person: TMDB person details (place_of_birth, biography, popularity, also_known_as)

    Returns:
        True only on positive evidence of Korean relevance
    """
    birthplace = (person.get("place_of_birth") or "").lower()
    bio = (person.get("biography") or "").lower()
    popularity = person.get("popularity") or 0
    aliases = person.get("also_known_as") or []
    hangul_alias = any(has_hangul(alias) for alias in aliases)

    if popularity < MIN_POPULARITY:
        born_in_korea = any(marker in birthplace for marker in _KOREAN_BIRTHPLACE_MARKERS)
        return born_in_korea or hangul_alias

    if any(city in birthplace for city in _KOREAN_CITIES):
        return True

    if hangul_alias:
        return True

    if any(term in bio for term in _STRONG_BIO_TERMS):
        return True

    from_conflicting_country = any(country in birthplace for country in _CONFLICTING_COUNTRIES)
    if from_conflicting_country and "korean" not in bio:
        return any(term in bio for term in _EXPLICIT_INDUSTRY_TERMS)

    return False


__all__ = ["MIN_POPULARITY", "has_hangul", "is_relevant_to_korean_culture"]
