"""
Mastery Record Store Interface

The scheduler reads and writes mastery state only through this interface,
so it stays agnostic of the storage engine. Two implementations ship with
birdlearn: ``MemoryMasteryStore`` for development and tests, and
``SqlMasteryStore`` (``birdlearn.database``) backed by SQLAlchemy.
"""

import abc
import datetime
from typing import AsyncContextManager, List, Optional

from .model import (
    ActivityEntry, AttemptEvent, AttemptSummary, CollectionEntry, Item,
    ItemId, LearnerId, MasteryRecord
)

# Upper bound for per-item attempt scans.
MAX_RECENT_ATTEMPTS = 10


class MasteryStore(abc.ABC):
    """
    Abstract base class for mastery record stores.

    Implementations raise ``StoreUnavailableError`` when the backing storage
    fails. Records handed out are copies: changes reach the store only
    through ``save_record``.
    """

    @abc.abstractmethod
    def transaction(self) -> AsyncContextManager['MasteryStore']:
        """
        Open a unit of work.

        The context manager yields a store view. Every write made through
        the view is applied if the block exits normally and none is applied
        if it raises.
        """

    @abc.abstractmethod
    async def get_item(self, item_id: ItemId) -> Optional[Item]:
        """Get an item by its ID, or None if unknown."""

    @abc.abstractmethod
    async def add_item(
        self,
        learner_id: LearnerId,
        item: Item,
        added_at: datetime.datetime
    ) -> MasteryRecord:
        """
        Add an item to a learner's collection with a fresh level-1 record.

        Unknown items are registered first.

        Raises:
            DuplicateItemError: If the learner already holds the item
        """

    @abc.abstractmethod
    async def remove_item(self, learner_id: LearnerId, item_id: ItemId) -> bool:
        """
        Remove an item from a learner's collection together with the
        learner's attempts for it.

        Returns:
            True if a record was removed, False if there was none
        """

    @abc.abstractmethod
    async def get_record(
        self,
        learner_id: LearnerId,
        item_id: ItemId,
        for_update: bool = False
    ) -> Optional[MasteryRecord]:
        """
        Point read of one mastery record.

        ``for_update`` asks the backend to lock the row for the rest of the
        current transaction where it supports that.
        """

    @abc.abstractmethod
    async def save_record(self, record: MasteryRecord) -> MasteryRecord:
        """Write back an existing mastery record."""

    @abc.abstractmethod
    async def list_records(self, learner_id: LearnerId) -> List[MasteryRecord]:
        """All mastery records of a learner."""

    @abc.abstractmethod
    async def append_attempt(self, event: AttemptEvent) -> AttemptEvent:
        """Append one event to the attempt log."""

    @abc.abstractmethod
    async def recent_attempts(
        self,
        learner_id: LearnerId,
        item_id: ItemId,
        limit: int = MAX_RECENT_ATTEMPTS
    ) -> List[AttemptEvent]:
        """
        Most recent attempts for one (learner, item) pair, newest first.

        ``limit`` is capped at ``MAX_RECENT_ATTEMPTS``. Attempts sharing a
        timestamp come back in reverse order of appending.
        """

    @abc.abstractmethod
    async def list_collection(self, learner_id: LearnerId) -> List[CollectionEntry]:
        """Every item in a learner's collection with its mastery record."""

    @abc.abstractmethod
    async def practice_dates(self, learner_id: LearnerId) -> List[datetime.date]:
        """Distinct UTC calendar dates with at least one attempt, newest first."""

    @abc.abstractmethod
    async def attempt_summary(
        self,
        learner_id: LearnerId,
        since: Optional[datetime.datetime] = None
    ) -> AttemptSummary:
        """Count correct and total attempts, optionally only after ``since``."""

    @abc.abstractmethod
    async def recent_activity(self, learner_id: LearnerId, limit: int = 10) -> List[ActivityEntry]:
        """A learner's latest attempts across all items, newest first."""
