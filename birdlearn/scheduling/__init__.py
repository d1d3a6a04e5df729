"""
Spaced-repetition scheduling for birdlearn.

``policy`` holds the pure priority and promotion rules; ``AdaptiveScheduler``
applies them to a mastery store.
"""

from birdlearn.scheduling.policy import (
    LEVEL_WEIGHTS,
    PROMOTION_THRESHOLDS,
    REVIEW_INTERVAL_DAYS,
    priority_score,
    promotion_threshold,
    consecutive_correct,
    next_level,
    calculate_next_review,
    is_due,
    learning_streak
)
from birdlearn.scheduling.scheduler import AdaptiveScheduler

__all__ = [
    'LEVEL_WEIGHTS',
    'PROMOTION_THRESHOLDS',
    'REVIEW_INTERVAL_DAYS',
    'priority_score',
    'promotion_threshold',
    'consecutive_correct',
    'next_level',
    'calculate_next_review',
    'is_due',
    'learning_streak',
    'AdaptiveScheduler',
]
