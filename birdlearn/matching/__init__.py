"""
Fuzzy answer matching.

Pure functions deciding whether a typed bird name counts as correct.
"""

from birdlearn.matching.distance import (
    DEFAULT_THRESHOLD,
    normalize,
    levenshtein_distance,
    similarity,
    is_close_match
)
from birdlearn.matching.strategies import (
    MatchType,
    MatchOptions,
    MatchResult,
    Suggestion,
    strip_accents,
    advanced_match,
    get_suggestions,
    is_reasonable_attempt
)

__all__ = [
    'DEFAULT_THRESHOLD',
    'normalize',
    'levenshtein_distance',
    'similarity',
    'is_close_match',
    'MatchType',
    'MatchOptions',
    'MatchResult',
    'Suggestion',
    'strip_accents',
    'advanced_match',
    'get_suggestions',
    'is_reasonable_attempt',
]
