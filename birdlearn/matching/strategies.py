"""
Layered Answer Matching

Richer matching used for feedback in the UI: accent-insensitive exact
matches, partial names ("Amsel" for "Schwarzamsel"), abbreviated
scientific names ("T. merula" for "Turdus merula"), "did you mean"
suggestions and a plausibility check for garbage input.

None of this decides the recall game verdict; that is ``is_close_match``.
"""

import enum
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from birdlearn.matching.distance import DEFAULT_THRESHOLD, normalize, similarity

DEFAULT_MAX_SUGGESTIONS = 3
MIN_SUGGESTION_SIMILARITY = 0.3


class MatchType(enum.Enum):
    """Strategy that produced a match result."""
    EXACT = "exact"
    PARTIAL = "partial"
    ABBREVIATION = "abbreviation"
    SIMILAR = "similar"
    DIFFERENT = "different"
    NONE = "none"               # input or answer absent


class MatchOptions(BaseModel):
    """Switches and thresholds for ``advanced_match``."""
    threshold: float = Field(default=DEFAULT_THRESHOLD, ge=0.0, le=1.0)
    allow_partial_match: bool = True
    ignore_accents: bool = True
    allow_abbreviations: bool = True
    partial_min_ratio: float = Field(default=0.6, ge=0.0, le=1.0)
    abbreviation_similarity: float = Field(default=0.9, ge=0.0, le=1.0)


@dataclass(frozen=True)
class MatchResult:
    """Outcome of a layered match."""
    is_match: bool
    similarity: float
    match_type: MatchType

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_match": self.is_match,
            "similarity": self.similarity,
            "match_type": self.match_type.value
        }


@dataclass(frozen=True)
class Suggestion:
    """A candidate answer ranked by similarity to what the learner typed."""
    text: str
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "similarity": self.similarity}


def strip_accents(text: str) -> str:
    """Remove combining diacritical marks ("Grünfink" -> "Grunfink")."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not "\u0300" <= ch <= "\u036f")


def _abbreviations(answer: str) -> List[str]:
    parts = answer.split()
    initials = [part[0] for part in parts]
    genus, rest = parts[0][0], " ".join(parts[1:])
    return [
        ". ".join(initials),        # "t. m"
        ".".join(initials),         # "t.m"
        f"{genus}. {rest}",         # "t. merula"
        f"{genus}.{rest}",          # "t.merula"
    ]


def advanced_match(
    user_input: Any,
    correct_answer: Any,
    options: Optional[MatchOptions] = None
) -> MatchResult:
    """
    Try each matching strategy in turn and report the first that succeeds.

    Order:
        1. exact match (optionally ignoring accents)
        2. one string contains the other and the shorter is at least
           ``partial_min_ratio`` of the longer
        3. initials abbreviation of a multi-word answer
        4. plain similarity against ``threshold``

    Args:
        user_input: What the learner typed
        correct_answer: Expected answer
        options: Strategy switches and thresholds

    Returns:
        MatchResult with the strategy tag and a similarity in [0, 1]
    """
    options = options or MatchOptions()

    normalized_input = normalize(user_input)
    normalized_answer = normalize(correct_answer)
    if not normalized_input or not normalized_answer:
        return MatchResult(False, 0.0, MatchType.NONE)

    if options.ignore_accents:
        normalized_input = strip_accents(normalized_input)
        normalized_answer = strip_accents(normalized_answer)

    if normalized_input == normalized_answer:
        return MatchResult(True, 1.0, MatchType.EXACT)

    if options.allow_partial_match and (
        normalized_input in normalized_answer or normalized_answer in normalized_input
    ):
        shorter, longer = sorted((len(normalized_input), len(normalized_answer)))
        ratio = shorter / longer
        if ratio >= options.partial_min_ratio:
            return MatchResult(True, ratio, MatchType.PARTIAL)

    if options.allow_abbreviations and " " in normalized_answer:
        compact_input = " ".join(normalized_input.split())
        if compact_input in _abbreviations(normalized_answer):
            return MatchResult(True, options.abbreviation_similarity, MatchType.ABBREVIATION)

    score = similarity(user_input, correct_answer)
    is_match = score >= options.threshold
    return MatchResult(is_match, score, MatchType.SIMILAR if is_match else MatchType.DIFFERENT)


def get_suggestions(
    user_input: Any,
    possible_answers: Optional[Iterable[Any]],
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    min_similarity: float = MIN_SUGGESTION_SIMILARITY
) -> List[Suggestion]:
    """
    Rank candidate answers for "did you mean" feedback.

    Candidates scoring below ``min_similarity`` are dropped; the rest are
    sorted by similarity, highest first, and cut to ``max_suggestions``.
    """
    if normalize(user_input) is None or not possible_answers:
        return []

    ranked = [
        Suggestion(text=answer, similarity=similarity(user_input, answer))
        for answer in possible_answers
        if isinstance(answer, str)
    ]
    ranked = [s for s in ranked if s.similarity >= min_similarity]
    ranked.sort(key=lambda s: s.similarity, reverse=True)
    return ranked[:max(max_suggestions, 0)]


def is_reasonable_attempt(
    user_input: Any,
    correct_answer: Any,
    min_length_ratio: float = 0.3,
    max_length_ratio: float = 2.0,
    min_letter_ratio: float = 0.7
) -> bool:
    """
    Cheap plausibility check run before any distance computation.

    Rejects input far shorter or longer than the answer, and input that is
    mostly digits, punctuation or spaces.
    """
    if not isinstance(user_input, str) or not isinstance(correct_answer, str):
        return False
    if not user_input or not correct_answer:
        return False

    if len(user_input) < len(correct_answer) * min_length_ratio:
        return False
    if len(user_input) > len(correct_answer) * max_length_ratio:
        return False

    letters = sum(1 for ch in user_input if ch.isalpha())
    return letters / len(user_input) >= min_letter_ratio
