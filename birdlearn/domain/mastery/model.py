"""
Mastery Domain Model

Entities for the spaced-repetition core: the items a learner collects, the
per-(learner, item) mastery record, the append-only attempt log, and the
result objects returned by the scheduler.
"""

import enum
import datetime
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union

from birdlearn.common.error_handling import ValidationError
from birdlearn.common.utils import ensure_utc, parse_datetime, utc_now

MIN_LEVEL = 1
MAX_LEVEL = 5

LearnerId = Union[int, str]
ItemId = Union[int, str]


class AttemptMode(enum.Enum):
    """How an item was practised."""
    RECOGNITION = "recognition"     # memory game, pre-computed boolean
    RECALL = "recall"               # typed name, verdict from the matcher


class AnswerType(enum.Enum):
    """Which name the recall game asks for."""
    COMMON = "common"
    SCIENTIFIC = "scientific"


@dataclass
class Item:
    """
    A bird species as supplied by the species-data provider.

    Attributes:
        item_id: Stable identity, independent of any learner
        scientific_name: Binomial name, e.g. "Turdus merula"
        common_name: Name in the learner's language, e.g. "Amsel"
        english_name: English name, e.g. "Common Blackbird"
        image_urls: Image references, opaque to the core
        sound_urls: Sound references, opaque to the core
        species_code: Provider species code
    """
    item_id: ItemId
    scientific_name: str
    common_name: Optional[str] = None
    english_name: Optional[str] = None
    image_urls: List[str] = field(default_factory=list)
    sound_urls: List[str] = field(default_factory=list)
    species_code: Optional[str] = None

    def name_for(self, answer_type: AnswerType) -> Optional[str]:
        if answer_type is AnswerType.COMMON:
            return self.common_name
        return self.scientific_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "scientific_name": self.scientific_name,
            "common_name": self.common_name,
            "english_name": self.english_name,
            "image_urls": list(self.image_urls),
            "sound_urls": list(self.sound_urls),
            "species_code": self.species_code
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Item':
        return cls(
            item_id=data["item_id"],
            scientific_name=data["scientific_name"],
            common_name=data.get("common_name"),
            english_name=data.get("english_name"),
            image_urls=list(data.get("image_urls") or []),
            sound_urls=list(data.get("sound_urls") or []),
            species_code=data.get("species_code")
        )


@dataclass
class MasteryRecord:
    """
    How well one learner knows one item.

    ``level`` runs from 1 (unseen or struggling) to 5 (mastered). The
    counters are lifetime totals and only ever grow; ``last_practiced_at``
    is set by every recorded attempt and by nothing else.
    """
    learner_id: LearnerId
    item_id: ItemId
    level: int = MIN_LEVEL
    correct_count: int = 0
    wrong_count: int = 0
    last_practiced_at: Optional[datetime.datetime] = None
    added_at: datetime.datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not MIN_LEVEL <= self.level <= MAX_LEVEL:
            raise ValidationError(
                f"Mastery level must be between {MIN_LEVEL} and {MAX_LEVEL}, got {self.level}",
                details={"learner_id": self.learner_id, "item_id": self.item_id, "level": self.level}
            )
        self.last_practiced_at = ensure_utc(self.last_practiced_at)
        self.added_at = ensure_utc(self.added_at)

    @property
    def key(self) -> tuple:
        return (self.learner_id, self.item_id)

    @property
    def never_practiced(self) -> bool:
        return self.last_practiced_at is None

    def copy(self) -> 'MasteryRecord':
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "learner_id": self.learner_id,
            "item_id": self.item_id,
            "level": self.level,
            "correct_count": self.correct_count,
            "wrong_count": self.wrong_count,
            "last_practiced_at": self.last_practiced_at.isoformat() if self.last_practiced_at else None,
            "added_at": self.added_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MasteryRecord':
        return cls(
            learner_id=data["learner_id"],
            item_id=data["item_id"],
            level=data.get("level", MIN_LEVEL),
            correct_count=data.get("correct_count", 0),
            wrong_count=data.get("wrong_count", 0),
            last_practiced_at=parse_datetime(data.get("last_practiced_at")),
            added_at=parse_datetime(data.get("added_at")) or utc_now()
        )


@dataclass(frozen=True)
class AttemptEvent:
    """One practice trial. Immutable once written."""
    learner_id: LearnerId
    item_id: ItemId
    mode: AttemptMode
    correct: bool
    created_at: datetime.datetime
    response_time_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "learner_id": self.learner_id,
            "item_id": self.item_id,
            "mode": self.mode.value,
            "correct": self.correct,
            "response_time_ms": self.response_time_ms,
            "created_at": self.created_at.isoformat()
        }


@dataclass
class CollectionEntry:
    """An item in a learner's collection together with its mastery record."""
    item: Item
    record: MasteryRecord

    @property
    def item_id(self) -> ItemId:
        return self.item.item_id

    @property
    def level(self) -> int:
        return self.record.level

    def to_dict(self) -> Dict[str, Any]:
        data = self.item.to_dict()
        data.update({
            "level": self.record.level,
            "correct_count": self.record.correct_count,
            "wrong_count": self.record.wrong_count,
            "last_practiced_at": self.record.last_practiced_at.isoformat() if self.record.last_practiced_at else None,
            "added_at": self.record.added_at.isoformat()
        })
        return data


@dataclass(frozen=True)
class AttemptSummary:
    """Correct and total attempt counts over some window."""
    correct: int
    total: int


@dataclass(frozen=True)
class ActivityEntry:
    """A logged attempt joined with the item it was about."""
    event: AttemptEvent
    item: Item

    def to_dict(self) -> Dict[str, Any]:
        data = self.event.to_dict()
        data.update({
            "scientific_name": self.item.scientific_name,
            "common_name": self.item.common_name,
            "english_name": self.item.english_name
        })
        return data


@dataclass(frozen=True)
class OutcomeResult:
    """Mastery snapshot after one recorded outcome."""
    item_id: ItemId
    previous_level: int
    new_level: int
    correct_count: int
    wrong_count: int

    @property
    def level_changed(self) -> bool:
        return self.new_level != self.previous_level

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "previous_level": self.previous_level,
            "new_level": self.new_level,
            "level_changed": self.level_changed,
            "correct_count": self.correct_count,
            "wrong_count": self.wrong_count
        }


@dataclass(frozen=True)
class LearningStats:
    """Aggregate learning statistics for one learner."""
    level_distribution: Dict[int, int]
    total_sessions: int
    recent_accuracy: int
    streak: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level_distribution": dict(self.level_distribution),
            "total_sessions": self.total_sessions,
            "recent_accuracy": self.recent_accuracy,
            "streak": self.streak
        }


@dataclass(frozen=True)
class Progress:
    """Progress overview: levels, latest attempts, and what comes next."""
    level_distribution: Dict[int, int]
    recent_activity: List[ActivityEntry]
    next_items: List[CollectionEntry]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level_distribution": dict(self.level_distribution),
            "recent_activity": [entry.to_dict() for entry in self.recent_activity],
            "next_items": [entry.to_dict() for entry in self.next_items]
        }
