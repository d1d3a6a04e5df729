"""
Mastery domain module for birdlearn.

Contains the domain model of the spaced-repetition core and the store
interface the scheduler persists through.
"""

from .model import (
    MIN_LEVEL, MAX_LEVEL, AttemptMode, AnswerType, Item, MasteryRecord,
    AttemptEvent, CollectionEntry, AttemptSummary, ActivityEntry,
    OutcomeResult, LearningStats, Progress
)
from .repository import MasteryStore, MAX_RECENT_ATTEMPTS
from .memory_repository import MemoryMasteryStore

__all__ = [
    'MIN_LEVEL',
    'MAX_LEVEL',
    'AttemptMode',
    'AnswerType',
    'Item',
    'MasteryRecord',
    'AttemptEvent',
    'CollectionEntry',
    'AttemptSummary',
    'ActivityEntry',
    'OutcomeResult',
    'LearningStats',
    'Progress',
    'MasteryStore',
    'MAX_RECENT_ATTEMPTS',
    'MemoryMasteryStore',
]
