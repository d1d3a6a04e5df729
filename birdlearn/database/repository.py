"""
SQL Mastery Store

SQLAlchemy implementation of the MasteryStore interface. Each call runs in
its own session and transaction unless it is made through a view returned
by ``transaction()``, in which case all calls share one session and commit
together.

Database failures surface as ``StoreUnavailableError``; nothing
SQLAlchemy-specific leaks to the scheduler.
"""

import datetime
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from birdlearn.common.error_handling import DuplicateItemError, ItemNotInCollectionError, StoreUnavailableError
from birdlearn.common.logger import app_logger
from birdlearn.common.utils import ensure_utc
from birdlearn.database.models import BirdModel, LearningSessionModel, UserBirdModel
from birdlearn.domain.mastery.model import (
    ActivityEntry, AttemptEvent, AttemptMode, AttemptSummary, CollectionEntry,
    Item, ItemId, LearnerId, MasteryRecord
)
from birdlearn.domain.mastery.repository import MAX_RECENT_ATTEMPTS, MasteryStore

logger = app_logger.getChild("database.repository")


def _key(value: LearnerId) -> str:
    return str(value)


def _to_db_time(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    value = ensure_utc(value)
    return value.replace(tzinfo=None) if value is not None else None


class SqlMasteryStore(MasteryStore):
    """
    Mastery store backed by a relational database.

    Identifiers are stored as strings, so records read back carry string
    ``learner_id`` and ``item_id`` values.
    """

    def __init__(self, session_factory: async_sessionmaker, session: Optional[AsyncSession] = None):
        """
        Initialize the store.

        Args:
            session_factory: Factory for new async sessions
            session: Bind every call to this session (used by transaction views)
        """
        self._session_factory = session_factory
        self._session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MasteryStore]:
        if self._session is not None:
            # Nested units of work join the enclosing one.
            yield self
            return

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield SqlMasteryStore(self._session_factory, session=session)
        except SQLAlchemyError as e:
            logger.error(f"Database error in transaction: {e}")
            raise StoreUnavailableError("Database error in transaction", operation="transaction", cause=e) from e

    @asynccontextmanager
    async def _scope(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            if self._session is not None:
                yield self._session
            else:
                async with self._session_factory() as session:
                    async with session.begin():
                        yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error during {operation}: {e}")
            raise StoreUnavailableError(f"Database error during {operation}", operation=operation, cause=e) from e

    # Mapping

    @staticmethod
    def _to_item(row: BirdModel) -> Item:
        return Item(
            item_id=row.id,
            scientific_name=row.scientific_name,
            common_name=row.common_name,
            english_name=row.english_name,
            image_urls=list(row.image_urls or []),
            sound_urls=list(row.sound_urls or []),
            species_code=row.species_code
        )

    @staticmethod
    def _to_record(row: UserBirdModel) -> MasteryRecord:
        return MasteryRecord(
            learner_id=row.user_id,
            item_id=row.bird_id,
            level=row.level,
            correct_count=row.correct_count,
            wrong_count=row.wrong_count,
            last_practiced_at=ensure_utc(row.last_practiced),
            added_at=ensure_utc(row.added_at)
        )

    @staticmethod
    def _to_event(row: LearningSessionModel) -> AttemptEvent:
        return AttemptEvent(
            learner_id=row.user_id,
            item_id=row.bird_id,
            mode=AttemptMode(row.session_type),
            correct=bool(row.correct),
            created_at=ensure_utc(row.created_at),
            response_time_ms=row.response_time_ms
        )

    @staticmethod
    async def _has_record(session: AsyncSession, learner_id: LearnerId, item_id: ItemId) -> bool:
        result = await session.execute(
            select(UserBirdModel.id).where(
                UserBirdModel.user_id == _key(learner_id),
                UserBirdModel.bird_id == _key(item_id)
            )
        )
        return result.scalar_one_or_none() is not None

    # MasteryStore interface

    async def get_item(self, item_id: ItemId) -> Optional[Item]:
        async with self._scope("get_item") as session:
            row = await session.get(BirdModel, _key(item_id))
            return self._to_item(row) if row else None

    async def add_item(self, learner_id: LearnerId, item: Item, added_at: datetime.datetime) -> MasteryRecord:
        async with self._scope("add_item") as session:
            if await self._has_record(session, learner_id, item.item_id):
                raise DuplicateItemError(learner_id, item.item_id)

            if await session.get(BirdModel, _key(item.item_id)) is None:
                session.add(BirdModel(
                    id=_key(item.item_id),
                    scientific_name=item.scientific_name,
                    common_name=item.common_name,
                    english_name=item.english_name,
                    image_urls=list(item.image_urls),
                    sound_urls=list(item.sound_urls),
                    species_code=item.species_code
                ))
                await session.flush()

            row = UserBirdModel(
                user_id=_key(learner_id),
                bird_id=_key(item.item_id),
                level=1,
                correct_count=0,
                wrong_count=0,
                last_practiced=None,
                added_at=_to_db_time(added_at)
            )
            session.add(row)
            try:
                await session.flush()
            except IntegrityError as e:
                # A concurrent add won the race for the unique (user, bird) row.
                raise DuplicateItemError(learner_id, item.item_id) from e
            return self._to_record(row)

    async def remove_item(self, learner_id: LearnerId, item_id: ItemId) -> bool:
        async with self._scope("remove_item") as session:
            result = await session.execute(
                delete(UserBirdModel).where(
                    UserBirdModel.user_id == _key(learner_id),
                    UserBirdModel.bird_id == _key(item_id)
                )
            )
            if result.rowcount == 0:
                return False

            await session.execute(
                delete(LearningSessionModel).where(
                    LearningSessionModel.user_id == _key(learner_id),
                    LearningSessionModel.bird_id == _key(item_id)
                )
            )
            return True

    async def get_record(self, learner_id: LearnerId, item_id: ItemId,
                         for_update: bool = False) -> Optional[MasteryRecord]:
        stmt = select(UserBirdModel).where(
            UserBirdModel.user_id == _key(learner_id),
            UserBirdModel.bird_id == _key(item_id)
        )
        if for_update:
            stmt = stmt.with_for_update()

        async with self._scope("get_record") as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return self._to_record(row) if row else None

    async def save_record(self, record: MasteryRecord) -> MasteryRecord:
        async with self._scope("save_record") as session:
            result = await session.execute(
                update(UserBirdModel)
                .where(
                    UserBirdModel.user_id == _key(record.learner_id),
                    UserBirdModel.bird_id == _key(record.item_id)
                )
                .values(
                    level=record.level,
                    correct_count=record.correct_count,
                    wrong_count=record.wrong_count,
                    last_practiced=_to_db_time(record.last_practiced_at)
                )
            )
            if result.rowcount == 0:
                raise ItemNotInCollectionError(record.learner_id, record.item_id)
            return record

    async def list_records(self, learner_id: LearnerId) -> List[MasteryRecord]:
        async with self._scope("list_records") as session:
            result = await session.execute(
                select(UserBirdModel)
                .where(UserBirdModel.user_id == _key(learner_id))
                .order_by(UserBirdModel.id)
            )
            return [self._to_record(row) for row in result.scalars()]

    async def append_attempt(self, event: AttemptEvent) -> AttemptEvent:
        async with self._scope("append_attempt") as session:
            session.add(LearningSessionModel(
                user_id=_key(event.learner_id),
                bird_id=_key(event.item_id),
                session_type=event.mode.value,
                correct=event.correct,
                response_time_ms=event.response_time_ms,
                created_at=_to_db_time(event.created_at)
            ))
            await session.flush()
            return event

    async def recent_attempts(self, learner_id: LearnerId, item_id: ItemId,
                              limit: int = MAX_RECENT_ATTEMPTS) -> List[AttemptEvent]:
        limit = min(limit, MAX_RECENT_ATTEMPTS)
        async with self._scope("recent_attempts") as session:
            result = await session.execute(
                select(LearningSessionModel)
                .where(
                    LearningSessionModel.user_id == _key(learner_id),
                    LearningSessionModel.bird_id == _key(item_id)
                )
                .order_by(LearningSessionModel.created_at.desc(), LearningSessionModel.id.desc())
                .limit(limit)
            )
            return [self._to_event(row) for row in result.scalars()]

    async def list_collection(self, learner_id: LearnerId) -> List[CollectionEntry]:
        async with self._scope("list_collection") as session:
            result = await session.execute(
                select(UserBirdModel, BirdModel)
                .join(BirdModel, UserBirdModel.bird_id == BirdModel.id)
                .where(UserBirdModel.user_id == _key(learner_id))
                .order_by(UserBirdModel.id)
            )
            return [
                CollectionEntry(item=self._to_item(bird), record=self._to_record(user_bird))
                for user_bird, bird in result.all()
            ]

    async def practice_dates(self, learner_id: LearnerId) -> List[datetime.date]:
        async with self._scope("practice_dates") as session:
            result = await session.execute(
                select(LearningSessionModel.created_at)
                .where(LearningSessionModel.user_id == _key(learner_id))
            )
            dates = {ensure_utc(created_at).date() for created_at in result.scalars()}
        return sorted(dates, reverse=True)

    async def attempt_summary(self, learner_id: LearnerId,
                              since: Optional[datetime.datetime] = None) -> AttemptSummary:
        stmt = select(
            func.count(LearningSessionModel.id),
            func.coalesce(func.sum(case((LearningSessionModel.correct.is_(True), 1), else_=0)), 0)
        ).where(LearningSessionModel.user_id == _key(learner_id))
        if since is not None:
            stmt = stmt.where(LearningSessionModel.created_at > _to_db_time(since))

        async with self._scope("attempt_summary") as session:
            total, correct = (await session.execute(stmt)).one()
            return AttemptSummary(correct=int(correct or 0), total=int(total or 0))

    async def recent_activity(self, learner_id: LearnerId, limit: int = 10) -> List[ActivityEntry]:
        async with self._scope("recent_activity") as session:
            result = await session.execute(
                select(LearningSessionModel, BirdModel)
                .join(BirdModel, LearningSessionModel.bird_id == BirdModel.id)
                .where(LearningSessionModel.user_id == _key(learner_id))
                .order_by(LearningSessionModel.created_at.desc(), LearningSessionModel.id.desc())
                .limit(limit)
            )
            return [
                ActivityEntry(event=self._to_event(event), item=self._to_item(bird))
                for event, bird in result.all()
            ]
