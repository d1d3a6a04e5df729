"""
Adaptive Scheduler

Chooses which items a learner practises next and moves mastery levels as
outcomes come in. State lives in a ``MasteryStore``; the scheduler itself
only holds per-key locks, so one instance can serve every request.

Outcome updates are read-modify-write on one (learner, item) record plus an
append to the attempt log. They run under an in-process lock for that key
and inside a store transaction, so duplicate submissions cannot lose an
update and a store failure leaves nothing half-written. The consecutive
correct streak is always re-derived from the attempt log; no running
counter is stored.
"""

import random
import datetime
from typing import Callable, List, Optional

from birdlearn.common.error_handling import (
    EmptyCollectionError, ItemNotInCollectionError, StoreUnavailableError,
    ValidationError, log_error
)
from birdlearn.common.locking import KeyedLock
from birdlearn.common.logger import LoggerAdapter, app_logger, log_execution_time
from birdlearn.common.utils import percentage, utc_now
from birdlearn.config import SchedulerConfig
from birdlearn.domain.mastery.model import (
    MAX_LEVEL, AttemptEvent, AttemptMode, CollectionEntry, Item, ItemId,
    LearnerId, LearningStats, MasteryRecord, OutcomeResult, Progress
)
from birdlearn.domain.mastery.repository import MasteryStore
from birdlearn.scheduling import policy

logger = app_logger.getChild("scheduling.scheduler")


class AdaptiveScheduler:
    """
    Spaced-repetition scheduler over a mastery store.

    Randomness (tie-breaks between equal priorities) and time both come
    from injectable sources so behaviour can be pinned down in tests.
    """

    def __init__(
        self,
        store: MasteryStore,
        config: Optional[SchedulerConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime.datetime] = utc_now
    ):
        """
        Initialize the scheduler.

        Args:
            store: Mastery record store
            config: Scheduler tunables (defaults when omitted)
            rng: Random source for tie-breaking
            clock: Returns the current time as an aware datetime
        """
        self.store = store
        self.config = config or SchedulerConfig()
        self._rng = rng or random.Random()
        self._clock = clock
        self._locks = KeyedLock()

    # Selection

    @log_execution_time(logger)
    async def select_batch(self, learner_id: LearnerId, count: Optional[int] = None) -> List[CollectionEntry]:
        """
        Pick up to ``count`` items to practise, highest priority first.

        Items with equal priority come back in random order.

        Raises:
            EmptyCollectionError: If the learner has no items
            ValidationError: If ``count`` is negative
        """
        count = self.config.default_batch_size if count is None else count
        if count < 0:
            raise ValidationError(f"Batch size must not be negative, got {count}",
                                  details={"count": count})

        entries = await self.store.list_collection(learner_id)
        if not entries:
            raise EmptyCollectionError(learner_id)

        now = self._clock()
        self._rng.shuffle(entries)
        entries.sort(key=lambda entry: policy.priority_score(entry.record, now))

        batch = entries[:count]
        logger.debug(f"Selected {len(batch)} of {len(entries)} items for learner {learner_id}")
        return batch

    # Outcomes

    async def record_outcome(
        self,
        learner_id: LearnerId,
        item_id: ItemId,
        correct: bool,
        mode: AttemptMode = AttemptMode.RECOGNITION,
        response_time_ms: Optional[int] = None
    ) -> OutcomeResult:
        """
        Log one attempt and update the item's mastery.

        A wrong answer drops the item to level 1. A correct answer promotes
        it by one level once the trailing run of correct attempts (this one
        included, at most the last ``streak_lookback`` looked at) reaches
        the threshold for the current level.

        Raises:
            ItemNotInCollectionError: If the learner does not own the item
            StoreUnavailableError: If the store fails; nothing was applied
        """
        log = LoggerAdapter(logger, {"learner_id": learner_id, "item_id": item_id})

        async with self._locks.acquire((learner_id, item_id)):
            try:
                async with self.store.transaction() as tx:
                    record = await tx.get_record(learner_id, item_id, for_update=True)
                    if record is None:
                        raise ItemNotInCollectionError(learner_id, item_id)

                    now = self._clock()
                    await tx.append_attempt(AttemptEvent(
                        learner_id=learner_id,
                        item_id=item_id,
                        mode=mode,
                        correct=bool(correct),
                        created_at=now,
                        response_time_ms=response_time_ms
                    ))

                    previous_level = record.level
                    streak = 0
                    if correct:
                        record.correct_count += 1
                        if record.level < MAX_LEVEL:
                            recent = await tx.recent_attempts(learner_id, item_id, self.config.streak_lookback)
                            streak = policy.consecutive_correct(recent)
                    else:
                        record.wrong_count += 1

                    record.level = policy.next_level(record.level, bool(correct), streak)
                    record.last_practiced_at = now
                    await tx.save_record(record)
            except ItemNotInCollectionError as e:
                log.warning(e.message)
                raise
            except StoreUnavailableError as e:
                log_error(e, log, include_stack_trace=True)
                raise

        result = OutcomeResult(
            item_id=item_id,
            previous_level=previous_level,
            new_level=record.level,
            correct_count=record.correct_count,
            wrong_count=record.wrong_count
        )
        if result.level_changed:
            log.info(f"Level changed {result.previous_level} -> {result.new_level}")
        return result

    # Collection lifecycle

    async def add_item(self, learner_id: LearnerId, item: Item) -> MasteryRecord:
        """
        Put an item into a learner's collection at level 1.

        Raises:
            DuplicateItemError: If the learner already has the item
        """
        record = await self.store.add_item(learner_id, item, self._clock())
        logger.info(f"Learner {learner_id} added item {item.item_id}")
        return record

    async def remove_item(self, learner_id: LearnerId, item_id: ItemId) -> bool:
        """Remove an item and its attempt history from a learner's collection."""
        async with self._locks.acquire((learner_id, item_id)):
            async with self.store.transaction() as tx:
                removed = await tx.remove_item(learner_id, item_id)
        if removed:
            logger.info(f"Learner {learner_id} removed item {item_id}")
        return removed

    # Reporting

    async def get_due_for_review(self, learner_id: LearnerId) -> List[CollectionEntry]:
        """
        Items whose review interval has passed or that were never practised.

        Ordered by level, then never-practised first, then oldest practice.
        """
        now = self._clock()
        entries = await self.store.list_collection(learner_id)
        due = [entry for entry in entries if policy.is_due(entry.record, now)]
        due.sort(key=lambda entry: policy.review_order_key(entry.record))
        return due

    async def get_learning_streak(self, learner_id: LearnerId) -> int:
        dates = await self.store.practice_dates(learner_id)
        return policy.learning_streak(dates, self._clock().date())

    async def get_learning_stats(self, learner_id: LearnerId) -> LearningStats:
        """Level distribution, attempt totals, 7-day accuracy and day streak."""
        now = self._clock()
        records = await self.store.list_records(learner_id)
        overall = await self.store.attempt_summary(learner_id)
        window_start = now - datetime.timedelta(days=self.config.stats_window_days)
        recent = await self.store.attempt_summary(learner_id, since=window_start)
        dates = await self.store.practice_dates(learner_id)

        return LearningStats(
            level_distribution=policy.level_distribution(r.level for r in records),
            total_sessions=overall.total,
            recent_accuracy=percentage(recent.correct, recent.total),
            streak=policy.learning_streak(dates, now.date())
        )

    async def get_progress(self, learner_id: LearnerId) -> Progress:
        entries = await self.store.list_collection(learner_id)
        activity = await self.store.recent_activity(learner_id, self.config.recent_activity_limit)
        upcoming = sorted(entries, key=lambda entry: policy.review_order_key(entry.record))

        return Progress(
            level_distribution=policy.level_distribution(e.level for e in entries),
            recent_activity=activity,
            next_items=upcoming[:self.config.next_items_limit]
        )


