"""
Practice Service

Drives the two games on top of the scheduler. The recognition game (memory
cards) asks for a batch and hands back pre-computed booleans; the recall
game shows one item and grades a typed name with the fuzzy matcher before
recording the outcome.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from birdlearn.common.error_handling import ItemNotInCollectionError, ValidationError
from birdlearn.common.logger import app_logger
from birdlearn.common.utils import percentage
from birdlearn.config import MatcherConfig
from birdlearn.domain.mastery.model import (
    AnswerType, AttemptMode, CollectionEntry, ItemId, LearnerId, OutcomeResult
)
from birdlearn.matching import (
    MatchOptions, MatchResult, Suggestion, advanced_match, get_suggestions,
    is_close_match, is_reasonable_attempt, similarity
)
from birdlearn.scheduling.scheduler import AdaptiveScheduler

logger = app_logger.getChild("practice.service")


@dataclass(frozen=True)
class RecognitionResult:
    """One card of a finished recognition round."""
    item_id: ItemId
    correct: bool
    response_time_ms: Optional[int] = None


@dataclass(frozen=True)
class RoundScore:
    correct: int
    total: int
    percentage: int

    def to_dict(self) -> Dict[str, Any]:
        return {"correct": self.correct, "total": self.total, "percentage": self.percentage}


@dataclass(frozen=True)
class RoundResult:
    """Outcomes of a recognition round and its score."""
    outcomes: List[OutcomeResult]
    score: RoundScore

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "score": self.score.to_dict()
        }


@dataclass(frozen=True)
class RecallVerdict:
    """Grading of one typed answer in the recall game."""
    correct: bool
    expected_answer: str
    user_answer: str
    similarity: float
    match: MatchResult
    plausible: bool
    outcome: OutcomeResult
    suggestions: List[Suggestion] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correct": self.correct,
            "expected_answer": self.expected_answer,
            "user_answer": self.user_answer,
            "similarity": self.similarity,
            "plausible": self.plausible,
            "match": self.match.to_dict(),
            "suggestions": [s.to_dict() for s in self.suggestions],
            "outcome": self.outcome.to_dict()
        }


class PracticeService:
    """
    Game-facing entry point.

    Delegates selection and mastery updates to ``AdaptiveScheduler`` and
    answer grading to ``birdlearn.matching``.
    """

    def __init__(self, scheduler: AdaptiveScheduler, matcher_config: Optional[MatcherConfig] = None):
        self.scheduler = scheduler
        self.matcher_config = matcher_config or MatcherConfig()

    async def recognition_batch(self, learner_id: LearnerId, count: Optional[int] = None) -> List[CollectionEntry]:
        """Items for one memory-card round; raises EmptyCollectionError if none."""
        return await self.scheduler.select_batch(learner_id, count)

    async def submit_recognition_round(
        self,
        learner_id: LearnerId,
        results: Iterable[RecognitionResult]
    ) -> RoundResult:
        """
        Record every card of a finished round.

        Outcomes are recorded one after another in the given order, each as
        its own atomic update. A failure stops the round; earlier cards stay
        recorded.
        """
        outcomes: List[OutcomeResult] = []
        correct = 0
        for result in results:
            outcome = await self.scheduler.record_outcome(
                learner_id, result.item_id, result.correct,
                mode=AttemptMode.RECOGNITION,
                response_time_ms=result.response_time_ms
            )
            outcomes.append(outcome)
            if result.correct:
                correct += 1

        total = len(outcomes)
        score = RoundScore(correct=correct, total=total, percentage=percentage(correct, total))
        logger.info(f"Learner {learner_id} finished recognition round: {correct}/{total}")
        return RoundResult(outcomes=outcomes, score=score)

    async def next_recall_item(self, learner_id: LearnerId) -> CollectionEntry:
        """The single most urgent item for the recall game."""
        batch = await self.scheduler.select_batch(learner_id, 1)
        return batch[0]

    async def check_recall_answer(
        self,
        learner_id: LearnerId,
        item_id: ItemId,
        answer: str,
        answer_type: Union[AnswerType, str] = AnswerType.COMMON,
        response_time_ms: Optional[int] = None
    ) -> RecallVerdict:
        """
        Grade a typed name and record the outcome.

        Args:
            learner_id: Learner answering
            item_id: Item shown
            answer: The typed name
            answer_type: Which name was asked for, common or scientific
            response_time_ms: How long the learner took to answer

        Raises:
            ItemNotInCollectionError: If the learner does not own the item
            ValidationError: If ``answer_type`` is unknown
        """
        answer_type = _answer_type(answer_type)
        entries = await self.scheduler.store.list_collection(learner_id)
        entry = next((e for e in entries if str(e.item_id) == str(item_id)), None)
        if entry is None:
            raise ItemNotInCollectionError(learner_id, item_id)

        expected = entry.item.name_for(answer_type) or entry.item.scientific_name
        cfg = self.matcher_config

        correct = is_close_match(answer, expected, cfg.close_match_threshold)
        # Advisory only; never changes the verdict.
        plausible = is_reasonable_attempt(
            answer, expected,
            min_length_ratio=cfg.min_length_ratio,
            max_length_ratio=cfg.max_length_ratio,
            min_letter_ratio=cfg.min_letter_ratio
        )
        match = advanced_match(answer, expected, MatchOptions(
            threshold=cfg.close_match_threshold,
            partial_min_ratio=cfg.partial_match_min_ratio,
            abbreviation_similarity=cfg.abbreviation_similarity
        ))

        suggestions: List[Suggestion] = []
        if not correct:
            candidates = [e.item.name_for(answer_type) for e in entries]
            suggestions = get_suggestions(
                answer,
                [name for name in candidates if name],
                max_suggestions=cfg.max_suggestions,
                min_similarity=cfg.suggestion_min_similarity
            )

        outcome = await self.scheduler.record_outcome(
            learner_id, entry.item_id, correct,
            mode=AttemptMode.RECALL,
            response_time_ms=response_time_ms
        )

        return RecallVerdict(
            correct=correct,
            expected_answer=expected,
            user_answer=answer,
            similarity=similarity(answer, expected),
            plausible=plausible,
            match=match,
            outcome=outcome,
            suggestions=suggestions
        )


def _answer_type(value: Union[AnswerType, str]) -> AnswerType:
    if isinstance(value, AnswerType):
        return value
    try:
        return AnswerType(str(value).lower())
    except ValueError:
        raise ValidationError(f"Unknown answer type: {value}", details={"answer_type": value})
