"""
ORM models for the mastery store.

- BirdModel: the item catalogue (``birds``)
- UserBirdModel: one mastery record per learner and item (``user_birds``)
- LearningSessionModel: the append-only attempt log (``learning_sessions``)

Timestamps are stored as naive UTC; the store re-attaches the timezone on
the way out. Learner and item identifiers are stored as strings.
"""

import datetime

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String
)
from sqlalchemy.schema import UniqueConstraint

from birdlearn.database.base import Base


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class BirdModel(Base):
    """A species that learners can collect."""
    __tablename__ = 'birds'

    id = Column(String(64), primary_key=True)
    scientific_name = Column(String(255), nullable=False)
    common_name = Column(String(255), nullable=True)
    english_name = Column(String(255), nullable=True)
    image_urls = Column(JSON, nullable=False, default=list)
    sound_urls = Column(JSON, nullable=False, default=list)
    species_code = Column(String(32), nullable=True)


class UserBirdModel(Base):
    """Mastery of one bird by one learner."""
    __tablename__ = 'user_birds'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    bird_id = Column(String(64), ForeignKey('birds.id', ondelete='CASCADE'), nullable=False)
    level = Column(Integer, nullable=False, default=1)
    correct_count = Column(Integer, nullable=False, default=0)
    wrong_count = Column(Integer, nullable=False, default=0)
    last_practiced = Column(DateTime, nullable=True)
    added_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'bird_id', name='uq_user_birds_user_id_bird_id'),
    )


class LearningSessionModel(Base):
    """One logged practice attempt."""
    __tablename__ = 'learning_sessions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    bird_id = Column(String(64), ForeignKey('birds.id', ondelete='CASCADE'), nullable=False)
    session_type = Column(String(32), nullable=False)
    correct = Column(Boolean, nullable=False)
    response_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        Index('idx_learning_sessions_user_bird_created', user_id, bird_id, created_at),
        Index('idx_learning_sessions_user_created', user_id, created_at),
    )
