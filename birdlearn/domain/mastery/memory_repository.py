"""
Memory Mastery Store

In-memory implementation of the MasteryStore interface for development and
testing. Transactions keep an undo journal and replay it backwards when the
block fails, so a failed outcome update leaves neither a log entry nor a
changed record behind.
"""

import datetime
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Tuple

from birdlearn.common.error_handling import DuplicateItemError
from .model import (
    ActivityEntry, AttemptEvent, AttemptSummary, CollectionEntry, Item,
    ItemId, LearnerId, MasteryRecord
)
from .repository import MAX_RECENT_ATTEMPTS, MasteryStore

logger = logging.getLogger(__name__)

Journal = List[Callable[[], None]]


class MemoryMasteryStore(MasteryStore):
    """
    In-memory implementation of the MasteryStore.

    Intended for development and tests only; nothing survives the process.
    """

    def __init__(self, items: Optional[Iterable[Item]] = None):
        """
        Initialize the store with an optional item catalogue.

        Args:
            items: Items to register up front (not added to any collection)
        """
        self._items: Dict[ItemId, Item] = {}
        self._records: Dict[Tuple[LearnerId, ItemId], MasteryRecord] = {}
        self._attempts: List[AttemptEvent] = []

        for item in items or []:
            self._items[item.item_id] = item

    # Transactions

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MasteryStore]:
        journal: Journal = []
        try:
            yield _MemoryTransaction(self, journal)
        except BaseException:
            for undo in reversed(journal):
                undo()
            logger.debug(f"Rolled back memory transaction ({len(journal)} writes)")
            raise

    # Write primitives shared by the store and its transaction views

    def _add_item(self, learner_id: LearnerId, item: Item, added_at: datetime.datetime,
                  journal: Optional[Journal]) -> MasteryRecord:
        key = (learner_id, item.item_id)
        if key in self._records:
            raise DuplicateItemError(learner_id, item.item_id)

        if item.item_id not in self._items:
            self._items[item.item_id] = item
            if journal is not None:
                journal.append(lambda: self._items.pop(item.item_id, None))

        record = MasteryRecord(learner_id=learner_id, item_id=item.item_id, added_at=added_at)
        self._records[key] = record
        if journal is not None:
            journal.append(lambda: self._records.pop(key, None))
        return record.copy()

    def _remove_item(self, learner_id: LearnerId, item_id: ItemId, journal: Optional[Journal]) -> bool:
        key = (learner_id, item_id)
        record = self._records.pop(key, None)
        if record is None:
            return False

        removed = [e for e in self._attempts if (e.learner_id, e.item_id) == key]
        self._attempts = [e for e in self._attempts if (e.learner_id, e.item_id) != key]
        if journal is not None:
            def undo() -> None:
                self._records[key] = record
                self._attempts.extend(removed)
            journal.append(undo)
        return True

    def _save_record(self, record: MasteryRecord, journal: Optional[Journal]) -> MasteryRecord:
        key = record.key
        previous = self._records.get(key)
        self._records[key] = record.copy()
        if journal is not None:
            def undo() -> None:
                if previous is None:
                    self._records.pop(key, None)
                else:
                    self._records[key] = previous
            journal.append(undo)
        return record

    def _append_attempt(self, event: AttemptEvent, journal: Optional[Journal]) -> AttemptEvent:
        self._attempts.append(event)
        if journal is not None:
            def undo() -> None:
                # Identity match: equal events may legitimately exist twice.
                for index in range(len(self._attempts) - 1, -1, -1):
                    if self._attempts[index] is event:
                        del self._attempts[index]
                        break
            journal.append(undo)
        return event

    # MasteryStore interface

    async def get_item(self, item_id: ItemId) -> Optional[Item]:
        return self._items.get(item_id)

    async def add_item(self, learner_id: LearnerId, item: Item, added_at: datetime.datetime) -> MasteryRecord:
        return self._add_item(learner_id, item, added_at, None)

    async def remove_item(self, learner_id: LearnerId, item_id: ItemId) -> bool:
        return self._remove_item(learner_id, item_id, None)

    async def get_record(self, learner_id: LearnerId, item_id: ItemId,
                         for_update: bool = False) -> Optional[MasteryRecord]:
        record = self._records.get((learner_id, item_id))
        return record.copy() if record else None

    async def save_record(self, record: MasteryRecord) -> MasteryRecord:
        return self._save_record(record, None)

    async def list_records(self, learner_id: LearnerId) -> List[MasteryRecord]:
        return [r.copy() for (owner, _), r in self._records.items() if owner == learner_id]

    async def append_attempt(self, event: AttemptEvent) -> AttemptEvent:
        return self._append_attempt(event, None)

    async def recent_attempts(self, learner_id: LearnerId, item_id: ItemId,
                              limit: int = MAX_RECENT_ATTEMPTS) -> List[AttemptEvent]:
        limit = min(limit, MAX_RECENT_ATTEMPTS)
        matching = [
            (index, e) for index, e in enumerate(self._attempts)
            if e.learner_id == learner_id and e.item_id == item_id
        ]
        matching.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [e for _, e in matching[:limit]]

    async def list_collection(self, learner_id: LearnerId) -> List[CollectionEntry]:
        return [
            CollectionEntry(item=self._items[item_id], record=record.copy())
            for (owner, item_id), record in self._records.items()
            if owner == learner_id
        ]

    async def practice_dates(self, learner_id: LearnerId) -> List[datetime.date]:
        dates = {
            e.created_at.astimezone(datetime.timezone.utc).date()
            for e in self._attempts if e.learner_id == learner_id
        }
        return sorted(dates, reverse=True)

    async def attempt_summary(self, learner_id: LearnerId,
                              since: Optional[datetime.datetime] = None) -> AttemptSummary:
        events = [
            e for e in self._attempts
            if e.learner_id == learner_id and (since is None or e.created_at > since)
        ]
        return AttemptSummary(correct=sum(1 for e in events if e.correct), total=len(events))

    async def recent_activity(self, learner_id: LearnerId, limit: int = 10) -> List[ActivityEntry]:
        events = [(index, e) for index, e in enumerate(self._attempts) if e.learner_id == learner_id]
        events.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [ActivityEntry(event=e, item=self._items[e.item_id]) for _, e in events[:limit]]

    # Helpers specific to the memory implementation

    def get_attempts(self) -> List[AttemptEvent]:
        """All logged attempts in append order."""
        return list(self._attempts)

    def clear(self) -> None:
        self._items.clear()
        self._records.clear()
        self._attempts.clear()


class _MemoryTransaction(MasteryStore):
    """Store view whose writes are journaled for rollback."""

    def __init__(self, store: MemoryMasteryStore, journal: Journal):
        self._store = store
        self._journal = journal

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MasteryStore]:
        # Nested units of work join the enclosing one.
        yield self

    async def get_item(self, item_id: ItemId) -> Optional[Item]:
        return await self._store.get_item(item_id)

    async def add_item(self, learner_id: LearnerId, item: Item, added_at: datetime.datetime) -> MasteryRecord:
        return self._store._add_item(learner_id, item, added_at, self._journal)

    async def remove_item(self, learner_id: LearnerId, item_id: ItemId) -> bool:
        return self._store._remove_item(learner_id, item_id, self._journal)

    async def get_record(self, learner_id: LearnerId, item_id: ItemId,
                         for_update: bool = False) -> Optional[MasteryRecord]:
        return await self._store.get_record(learner_id, item_id, for_update)

    async def save_record(self, record: MasteryRecord) -> MasteryRecord:
        return self._store._save_record(record, self._journal)

    async def list_records(self, learner_id: LearnerId) -> List[MasteryRecord]:
        return await self._store.list_records(learner_id)

    async def append_attempt(self, event: AttemptEvent) -> AttemptEvent:
        return self._store._append_attempt(event, self._journal)

    async def recent_attempts(self, learner_id: LearnerId, item_id: ItemId,
                              limit: int = MAX_RECENT_ATTEMPTS) -> List[AttemptEvent]:
        return await self._store.recent_attempts(learner_id, item_id, limit)

    async def list_collection(self, learner_id: LearnerId) -> List[CollectionEntry]:
        return await self._store.list_collection(learner_id)

    async def practice_dates(self, learner_id: LearnerId) -> List[datetime.date]:
        return await self._store.practice_dates(learner_id)

    async def attempt_summary(self, learner_id: LearnerId,
                              since: Optional[datetime.datetime] = None) -> AttemptSummary:
        return await self._store.attempt_summary(learner_id, since)

    async def recent_activity(self, learner_id: LearnerId, limit: int = 10) -> List[ActivityEntry]:
        return await self._store.recent_activity(learner_id, limit)
