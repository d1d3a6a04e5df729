"""
Test suite for the AdaptiveScheduler over the in-memory store.

Covers batch selection, mastery transitions, atomicity of outcome updates,
due-for-review lists and learning statistics.
"""

import asyncio
import logging
import random
import datetime
from dataclasses import replace
from unittest.mock import patch

import pytest

from birdlearn.common.error_handling import (
    DuplicateItemError, EmptyCollectionError, ItemNotInCollectionError,
    StoreUnavailableError, ValidationError
)
from birdlearn.domain.mastery import AttemptEvent, AttemptMode
from birdlearn.scheduling import AdaptiveScheduler

LEARNER = "learner-1"


async def _collect(scheduler, birds, learner=LEARNER):
    for bird in birds:
        await scheduler.add_item(learner, bird)


async def _set_record(store, item_id, **changes):
    record = await store.get_record(LEARNER, item_id)
    await store.save_record(replace(record, **changes))


async def _answer(scheduler, item_id, *outcomes):
    result = None
    for correct in outcomes:
        result = await scheduler.record_outcome(LEARNER, item_id, correct)
    return result


# Selection

@pytest.mark.asyncio
async def test_select_batch_size_and_uniqueness(scheduler, birds):
    await _collect(scheduler, birds)

    batch = await scheduler.select_batch(LEARNER, 5)
    ids = [entry.item_id for entry in batch]
    assert len(ids) == 5
    assert len(set(ids)) == 5


@pytest.mark.asyncio
async def test_select_batch_default_size(scheduler, birds):
    await _collect(scheduler, birds)
    assert len(await scheduler.select_batch(LEARNER)) == 5


@pytest.mark.asyncio
async def test_select_batch_larger_than_collection(scheduler, birds):
    await _collect(scheduler, birds[:3])
    batch = await scheduler.select_batch(LEARNER, 10)
    assert sorted(entry.item_id for entry in batch) == [1, 2, 3]


@pytest.mark.asyncio
async def test_select_batch_zero(scheduler, birds):
    await _collect(scheduler, birds[:3])
    assert await scheduler.select_batch(LEARNER, 0) == []


@pytest.mark.asyncio
async def test_select_batch_negative(scheduler, birds):
    await _collect(scheduler, birds[:3])
    with pytest.raises(ValidationError):
        await scheduler.select_batch(LEARNER, -1)


@pytest.mark.asyncio
async def test_select_batch_empty_collection(scheduler):
    with pytest.raises(EmptyCollectionError) as exc_info:
        await scheduler.select_batch(LEARNER, 5)
    assert exc_info.value.learner_id == LEARNER


@pytest.mark.asyncio
async def test_select_batch_prefers_never_practiced(scheduler, store, clock, birds):
    await _collect(scheduler, birds[:2])
    await _set_record(store, 1, level=5, last_practiced_at=clock.now)

    batch = await scheduler.select_batch(LEARNER, 1)
    assert batch[0].item_id == 2


@pytest.mark.asyncio
async def test_select_batch_orders_by_priority(scheduler, store, clock, birds):
    await _collect(scheduler, birds[:3])
    # priority 1 + 8 = 9
    await _set_record(store, 1, level=1, last_practiced_at=clock.now)
    # priority 2 + 0 = 2
    await _set_record(store, 2, level=2, last_practiced_at=clock.now - datetime.timedelta(days=10))
    # priority 4 + 2 = 6
    await _set_record(store, 3, level=3, last_practiced_at=clock.now - datetime.timedelta(days=4))

    batch = await scheduler.select_batch(LEARNER, 3)
    assert [entry.item_id for entry in batch] == [2, 3, 1]


@pytest.mark.asyncio
async def test_select_batch_seeded_ties_are_reproducible(store, clock, birds):
    first = AdaptiveScheduler(store, rng=random.Random(7), clock=clock)
    await _collect(first, birds)
    second = AdaptiveScheduler(store, rng=random.Random(7), clock=clock)

    a = [entry.item_id for entry in await first.select_batch(LEARNER, 7)]
    b = [entry.item_id for entry in await second.select_batch(LEARNER, 7)]
    assert a == b


@pytest.mark.asyncio
async def test_select_batch_does_not_mutate_store(scheduler, store, birds):
    await _collect(scheduler, birds)
    await scheduler.select_batch(LEARNER, 5)
    assert store.get_attempts() == []
    records = await store.list_records(LEARNER)
    assert all(r.never_practiced and r.level == 1 for r in records)


# Outcomes

@pytest.mark.asyncio
async def test_wrong_answer_resets_level(scheduler, store, birds):
    await _collect(scheduler, birds[:1])
    await _set_record(store, 1, level=4, correct_count=10, wrong_count=2)

    result = await scheduler.record_outcome(LEARNER, 1, False)

    assert result.previous_level == 4
    assert result.new_level == 1
    assert result.level_changed
    assert result.wrong_count == 3
    assert result.correct_count == 10


@pytest.mark.asyncio
async def test_two_correct_promotes_from_level_one(scheduler, birds):
    await _collect(scheduler, birds[:1])

    first = await scheduler.record_outcome(LEARNER, 1, True)
    assert first.new_level == 1
    second = await scheduler.record_outcome(LEARNER, 1, True)
    assert second.new_level == 2
    assert second.correct_count == 2


@pytest.mark.asyncio
async def test_wrong_in_between_blocks_promotion(scheduler, birds):
    await _collect(scheduler, birds[:1])

    result = await _answer(scheduler, 1, True, False, True)

    assert result.new_level == 1
    assert result.correct_count == 2
    assert result.wrong_count == 1


@pytest.mark.asyncio
async def test_almost_complete_streak_lost_on_miss(scheduler, store, birds):
    await _collect(scheduler, birds[:1])
    await _set_record(store, 1, level=3, correct_count=5, wrong_count=1)

    result = await _answer(scheduler, 1, True, True, True)
    assert result.new_level == 3
    result = await _answer(scheduler, 1, False)

    assert result.new_level == 1
    assert result.correct_count == 8
    assert result.wrong_count == 2


@pytest.mark.asyncio
async def test_promotion_is_one_level_at_most(scheduler, store, clock, birds):
    await _collect(scheduler, birds[:1])
    for _ in range(9):
        await store.append_attempt(AttemptEvent(
            learner_id=LEARNER, item_id=1, mode=AttemptMode.RECALL, correct=True, created_at=clock.now
        ))

    result = await scheduler.record_outcome(LEARNER, 1, True)
    assert result.new_level == 2


@pytest.mark.asyncio
async def test_level_five_stays(scheduler, store, birds):
    await _collect(scheduler, birds[:1])
    await _set_record(store, 1, level=5)

    result = await _answer(scheduler, 1, True, True, True, True, True, True)
    assert result.new_level == 5
    assert not result.level_changed


@pytest.mark.asyncio
async def test_outcome_logs_attempt_and_timestamp(scheduler, store, clock, birds):
    await _collect(scheduler, birds[:1])

    await scheduler.record_outcome(LEARNER, 1, True, mode=AttemptMode.RECALL, response_time_ms=1200)

    attempts = store.get_attempts()
    assert len(attempts) == 1
    assert attempts[0].mode is AttemptMode.RECALL
    assert attempts[0].response_time_ms == 1200
    assert attempts[0].created_at == clock.now
    record = await store.get_record(LEARNER, 1)
    assert record.last_practiced_at == clock.now


@pytest.mark.asyncio
async def test_outcome_for_unknown_item(scheduler, store, birds):
    await _collect(scheduler, birds[:1])

    with pytest.raises(ItemNotInCollectionError):
        await scheduler.record_outcome(LEARNER, 99, True)
    assert store.get_attempts() == []


@pytest.mark.asyncio
async def test_outcome_for_other_learners_item(scheduler, store, birds):
    await _collect(scheduler, birds[:1], learner="someone-else")

    with pytest.raises(ItemNotInCollectionError):
        await scheduler.record_outcome(LEARNER, 1, True)


@pytest.mark.asyncio
async def test_store_failure_rolls_back(scheduler, store, birds):
    await _collect(scheduler, birds[:1])
    before = await store.get_record(LEARNER, 1)

    failure = StoreUnavailableError("disk full", operation="save_record")
    with patch.object(store, "_save_record", side_effect=failure):
        with pytest.raises(StoreUnavailableError):
            await scheduler.record_outcome(LEARNER, 1, False)

    assert store.get_attempts() == []
    assert await store.get_record(LEARNER, 1) == before


@pytest.mark.asyncio
async def test_concurrent_outcomes_are_not_lost(scheduler, store, birds):
    await _collect(scheduler, birds[:1])

    results = await asyncio.gather(*[
        scheduler.record_outcome(LEARNER, 1, True) for _ in range(6)
    ])

    record = await store.get_record(LEARNER, 1)
    assert record.correct_count == 6
    assert len(store.get_attempts()) == 6
    assert sorted(r.correct_count for r in results) == [1, 2, 3, 4, 5, 6]
    assert record.level == 5


@pytest.mark.asyncio
async def test_concurrent_outcomes_on_different_items(scheduler, store, birds):
    await _collect(scheduler, birds[:3])

    await asyncio.gather(*[
        scheduler.record_outcome(LEARNER, item_id, correct)
        for item_id in (1, 2, 3) for correct in (True, False)
    ])

    for item_id in (1, 2, 3):
        record = await store.get_record(LEARNER, item_id)
        assert record.correct_count == 1
        assert record.wrong_count == 1


# Collection lifecycle

@pytest.mark.asyncio
async def test_add_item_starts_at_level_one(scheduler, clock, birds):
    record = await scheduler.add_item(LEARNER, birds[0])
    assert record.level == 1
    assert record.never_practiced
    assert record.added_at == clock.now


@pytest.mark.asyncio
async def test_add_duplicate_item(scheduler, birds):
    await scheduler.add_item(LEARNER, birds[0])
    with pytest.raises(DuplicateItemError):
        await scheduler.add_item(LEARNER, birds[0])


@pytest.mark.asyncio
async def test_remove_item_drops_attempts(scheduler, store, birds):
    await _collect(scheduler, birds[:2])
    await _answer(scheduler, 1, True, False)
    await _answer(scheduler, 2, True)

    assert await scheduler.remove_item(LEARNER, 1) is True
    assert await store.get_record(LEARNER, 1) is None
    assert [a.item_id for a in store.get_attempts()] == [2]
    assert await scheduler.remove_item(LEARNER, 1) is False


# Reporting

@pytest.mark.asyncio
async def test_due_for_review(scheduler, store, clock, birds):
    await _collect(scheduler, birds[:5])
    now = clock.now
    await _set_record(store, 1, level=1, last_practiced_at=now - datetime.timedelta(days=2))
    await _set_record(store, 2, level=2, last_practiced_at=now - datetime.timedelta(days=2))
    await _set_record(store, 3, level=1, last_practiced_at=now - datetime.timedelta(days=1))
    await _set_record(store, 4, level=3, last_practiced_at=now - datetime.timedelta(days=8))
    # item 5 never practised

    due = await scheduler.get_due_for_review(LEARNER)
    assert [entry.item_id for entry in due] == [5, 1, 4]


@pytest.mark.asyncio
async def test_due_for_review_oldest_first_within_level(scheduler, store, clock, birds):
    await _collect(scheduler, birds[:2])
    now = clock.now
    await _set_record(store, 1, level=1, last_practiced_at=now - datetime.timedelta(days=2))
    await _set_record(store, 2, level=1, last_practiced_at=now - datetime.timedelta(days=5))

    due = await scheduler.get_due_for_review(LEARNER)
    assert [entry.item_id for entry in due] == [2, 1]


@pytest.mark.asyncio
async def test_learning_stats(scheduler, clock, birds):
    await _collect(scheduler, birds[:2])

    clock.advance(days=-8)
    await _answer(scheduler, 1, False)
    clock.advance(days=7)
    await _answer(scheduler, 1, True)
    clock.advance(days=1)
    await _answer(scheduler, 1, True)
    await _answer(scheduler, 2, False)

    stats = await scheduler.get_learning_stats(LEARNER)
    assert stats.level_distribution == {1: 1, 2: 1}
    assert stats.total_sessions == 4
    assert stats.recent_accuracy == 67
    assert stats.streak == 2


@pytest.mark.asyncio
async def test_learning_stats_without_attempts(scheduler, birds):
    await _collect(scheduler, birds[:3])

    stats = await scheduler.get_learning_stats(LEARNER)
    assert stats.level_distribution == {1: 3}
    assert stats.total_sessions == 0
    assert stats.recent_accuracy == 0
    assert stats.streak == 0


@pytest.mark.asyncio
async def test_learning_streak_broken(scheduler, clock, birds):
    await _collect(scheduler, birds[:1])
    await _answer(scheduler, 1, True)
    clock.advance(days=2)

    assert await scheduler.get_learning_streak(LEARNER) == 0


@pytest.mark.asyncio
async def test_progress(scheduler, clock, birds):
    await _collect(scheduler, birds)
    await _answer(scheduler, 1, True)
    clock.advance(minutes=1)
    await _answer(scheduler, 2, False)

    progress = await scheduler.get_progress(LEARNER)
    assert progress.level_distribution == {1: 7}
    assert [a.event.item_id for a in progress.recent_activity] == [2, 1]
    assert progress.recent_activity[0].item.common_name == "Singdrossel"
    assert len(progress.next_items) == 5
    assert all(entry.record.never_practiced for entry in progress.next_items)
    assert progress.to_dict()["recent_activity"][1]["correct"] is True


@pytest.mark.asyncio
async def test_empty_collection_is_not_logged_as_error(scheduler, caplog):
    with caplog.at_level(logging.DEBUG, logger="birdlearn"):
        with pytest.raises(EmptyCollectionError):
            await scheduler.select_batch("nobody", 5)

    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert any(r.levelno == logging.INFO and "select_batch failed" in r.getMessage() for r in caplog.records)
