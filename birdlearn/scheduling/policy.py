"""
Scheduling Policy

The rules that decide practice priority and how mastery levels move. These
are product behaviour, kept as plain tables and pure functions so the
scheduler, the stores and reporting all read the same numbers.

Priority (lower is sooner):
    level weight + recency weight
    level weight: 1, 2, 4, 8, 16 for levels 1-5; 0 if never practised
    recency weight: 0 if never practised or 7+ days ago, 2 if 3+ days,
                    4 if 1+ day, 8 if practised within the last day

Promotion needs a trailing run of correct answers (2, 3, 4, 5 for levels
1-4) and moves at most one level per answer. Any wrong answer drops the
item back to level 1.
"""

import datetime
from typing import Dict, Iterable, Optional, Sequence, Tuple

from birdlearn.domain.mastery.model import MAX_LEVEL, AttemptEvent, MasteryRecord

LEVEL_WEIGHTS: Dict[int, int] = {1: 1, 2: 2, 3: 4, 4: 8, 5: 16}
NEVER_PRACTICED_WEIGHT = 0

# (minimum age, weight), checked oldest band first
RECENCY_BANDS: Tuple[Tuple[datetime.timedelta, int], ...] = (
    (datetime.timedelta(days=7), 0),
    (datetime.timedelta(days=3), 2),
    (datetime.timedelta(days=1), 4),
)
FRESH_PRACTICE_WEIGHT = 8

PROMOTION_THRESHOLDS: Dict[int, int] = {1: 2, 2: 3, 3: 4, 4: 5}
DEFAULT_PROMOTION_THRESHOLD = 5

REVIEW_INTERVAL_DAYS: Dict[int, int] = {1: 1, 2: 3, 3: 7, 4: 14, 5: 30}
DEFAULT_REVIEW_INTERVAL_DAYS = 1


def level_weight(level: int) -> int:
    return LEVEL_WEIGHTS[level]


def recency_weight(last_practiced_at: Optional[datetime.datetime], now: datetime.datetime) -> int:
    """Weight for how recently an item was practised; fresher ranks later."""
    if last_practiced_at is None:
        return 0

    elapsed = now - last_practiced_at
    for min_age, weight in RECENCY_BANDS:
        if elapsed >= min_age:
            return weight
    return FRESH_PRACTICE_WEIGHT


def priority_score(record: MasteryRecord, now: datetime.datetime) -> int:
    """
    Selection priority of one item; lower scores are practised first.

    Never-practised items score 0 whatever their level.
    """
    if record.never_practiced:
        return NEVER_PRACTICED_WEIGHT
    return level_weight(record.level) + recency_weight(record.last_practiced_at, now)


def promotion_threshold(level: int) -> int:
    """Consecutive correct answers needed to leave ``level``."""
    return PROMOTION_THRESHOLDS.get(level, DEFAULT_PROMOTION_THRESHOLD)


def consecutive_correct(attempts: Iterable[AttemptEvent]) -> int:
    """
    Length of the run of correct answers at the head of ``attempts``.

    ``attempts`` must be ordered newest first; counting stops at the first
    wrong answer.
    """
    streak = 0
    for attempt in attempts:
        if not attempt.correct:
            break
        streak += 1
    return streak


def next_level(level: int, correct: bool, streak: int) -> int:
    """
    Level after one answer.

    Args:
        level: Current level
        correct: Whether the answer was correct
        streak: Consecutive correct answers including this one

    Returns:
        The new level
    """
    if not correct:
        return 1
    if level < MAX_LEVEL and streak >= promotion_threshold(level):
        return level + 1
    return level


def review_interval(level: int) -> datetime.timedelta:
    return datetime.timedelta(days=REVIEW_INTERVAL_DAYS.get(level, DEFAULT_REVIEW_INTERVAL_DAYS))


def calculate_next_review(level: int, last_practiced_at: datetime.datetime) -> datetime.datetime:
    """When an item practised at ``last_practiced_at`` should come up again."""
    return last_practiced_at + review_interval(level)


def is_due(record: MasteryRecord, now: datetime.datetime) -> bool:
    """Never practised, or the level's review interval has been exceeded."""
    if record.never_practiced:
        return True
    return now - record.last_practiced_at > review_interval(record.level)


def review_order_key(record: MasteryRecord) -> tuple:
    """Sort key: level ascending, then never practised, then oldest practice."""
    if record.never_practiced:
        return (record.level, 0, datetime.datetime.min.replace(tzinfo=datetime.timezone.utc))
    return (record.level, 1, record.last_practiced_at)


def learning_streak(practice_dates: Sequence[datetime.date], today: datetime.date) -> int:
    """
    Consecutive calendar days of practice ending today.

    Args:
        practice_dates: Distinct practice dates, newest first
        today: The current calendar date

    Returns:
        0 if the latest practice is more than a day old, otherwise the
        number of consecutive days present counting back from today
    """
    if not practice_dates:
        return 0

    if (today - practice_dates[0]).days > 1:
        return 0

    streak = 0
    expected = today
    for practice_date in practice_dates:
        if practice_date != expected:
            break
        streak += 1
        expected -= datetime.timedelta(days=1)
    return streak


def level_distribution(levels: Iterable[int]) -> Dict[int, int]:
    """Count of items per level, levels ascending, absent levels omitted."""
    counts: Dict[int, int] = {}
    for level in levels:
        counts[level] = counts.get(level, 0) + 1
    return dict(sorted(counts.items()))
