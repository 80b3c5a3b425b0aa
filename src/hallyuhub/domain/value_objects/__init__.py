"""Value objects - name normalization and Korean relevance rules."""

from hallyuhub.domain.value_objects.korean_relevance import (
    has_hangul,
    is_relevant_to_korean_culture,
)
from hallyuhub.domain.value_objects.name_normalization import (
    name_contains_other,
    normalize_name,
    title_similarity,
)

__all__ = [
    "has_hangul",
    "is_relevant_to_korean_culture",
    "name_contains_other",
    "normalize_name",
    "title_similarity",
]
