"""
Domain models for practice sessions.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum

from .constants import KEY_SEPARATOR


class ItemType(str, Enum):
    VOCABULARY = "vocabulary"
    KANJI = "kanji"
    RADICAL = "radical"


class SessionScope(str, Enum):
    """Why a card is in the session.

    MODULE cards belong to the current lesson (or are prerequisites of it);
    REVIEW cards are externally due items mixed in from the wider backlog.
    """

    MODULE = "module"
    REVIEW = "review"


class SessionStyle(str, Enum):
    """Presentation phase of a card within the current session."""

    INTRODUCTION = "introduction"
    MULTIPLE_CHOICE = "multiple-choice"
    WRITE = "write"
    FLASHCARD = "flashcard"
    DONE = "done"


class PracticeMode(str, Enum):
    READINGS = "readings"
    KANA = "kana"


class Rating(IntEnum):
    """Recall rating (1=Again, 2=Hard, 3=Good, 4=Easy)."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class ReviewState(IntEnum):
    """External spaced-repetition state of an item."""

    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


@dataclass(frozen=True)
class ItemKey:
    """
    Identity of a practice item.

    Two items with the same type and slug are the same entity. The canonical
    ``"<type>:<slug>"`` string is only used at storage and transport boundaries.
    """

    item_type: ItemType
    slug: str

    def __str__(self) -> str:
        return f"{self.item_type.value}{KEY_SEPARATOR}{self.slug}"

    @classmethod
    def parse(cls, raw: str) -> "ItemKey":
        type_part, sep, slug = raw.partition(KEY_SEPARATOR)
        if not sep or not slug:
            raise ValueError(f"Invalid item key {raw!r}: expected '<type>:<slug>'")
        try:
            item_type = ItemType(type_part)
        except ValueError:
            raise ValueError(f"Invalid item key {raw!r}: unknown item type {type_part!r}") from None
        return cls(item_type, slug)

    @classmethod
    def vocabulary(cls, slug: str) -> "ItemKey":
        return cls(ItemType.VOCABULARY, slug)

    @classmethod
    def kanji(cls, slug: str) -> "ItemKey":
        return cls(ItemType.KANJI, slug)

    @classmethod
    def radical(cls, slug: str) -> "ItemKey":
        return cls(ItemType.RADICAL, slug)


@dataclass
class SchedulingState:
    """
    Spaced-repetition state for one item, owned by the external scheduler.

    Attributes:
        state: Review state category (New/Learning/Review/Relearning).
        due: When the item is next due (timezone-aware UTC). None means "now".
        stability: FSRS stability in days, None until first review.
        difficulty: FSRS difficulty (1-10), None until first review.
        step: Current (re)learning step, None when in Review.
        last_review: Timestamp of the last review, None if never reviewed.
        reps: Total number of reviews.
        lapses: Number of times a Review item was forgotten.
    """

    state: ReviewState = ReviewState.NEW
    due: datetime | None = None
    stability: float | None = None
    difficulty: float | None = None
    step: int | None = None
    last_review: datetime | None = None
    reps: int = 0
    lapses: int = 0

    @property
    def is_new(self) -> bool:
        return self.state == ReviewState.NEW or self.last_review is None

    @property
    def in_review(self) -> bool:
        return self.state == ReviewState.REVIEW

    def is_due(self, now: datetime) -> bool:
        return self.due is None or self.due <= now


@dataclass(frozen=True)
class SchedulingRecord:
    """A stored scheduling state for an item in a given practice mode."""

    key: ItemKey
    mode: PracticeMode
    scheduling: SchedulingState


@dataclass(frozen=True)
class DisplayData:
    """What a UI needs to show an item. Read-only, supplied by a catalog."""

    text: str
    meanings: list[str] = field(default_factory=list)
    readings: list[str] = field(default_factory=list)
    meaning_mnemonic: str = ""
    reading_mnemonic: str | None = None


@dataclass
class Card:
    """
    A practice card: one item as it exists inside a session.

    ``style`` is the session-local phase; ``scheduling`` is the external
    spaced-repetition state and is only changed through the scheduler adapter.
    ``miss_count`` counts the answers that did not move the card forward.
    """

    key: ItemKey
    display: DisplayData
    scheduling: SchedulingState
    scope: SessionScope
    style: SessionStyle
    mode: PracticeMode = PracticeMode.READINGS
    prompt: str = ""
    valid_answers: list[str] = field(default_factory=list)
    is_disabled: bool = False
    miss_count: int = 0

    @property
    def item_type(self) -> ItemType:
        return self.key.item_type

    @property
    def is_done(self) -> bool:
        return self.style == SessionStyle.DONE


@dataclass
class QueueState:
    """The three ordered queues the pure queue helpers work on."""

    module_queue: list[ItemKey] = field(default_factory=list)
    review_queue: list[ItemKey] = field(default_factory=list)
    active_queue: list[ItemKey] = field(default_factory=list)


@dataclass
class SessionState:
    """
    The single mutable aggregate owned by a session manager.

    Invariants:
        - A key sits in at most one of locked_keys / module_queue /
          review_queue / active_queue, and in none once its card is done.
        - A locked key has a non-empty dependency_map entry.
        - card_map never loses entries.
    """

    card_map: dict[ItemKey, Card] = field(default_factory=dict)
    dependency_map: dict[ItemKey, list[ItemKey]] = field(default_factory=dict)
    unlocks_map: dict[ItemKey, list[ItemKey]] = field(default_factory=dict)
    locked_keys: set[ItemKey] = field(default_factory=set)
    module_queue: list[ItemKey] = field(default_factory=list)
    review_queue: list[ItemKey] = field(default_factory=list)
    active_queue: list[ItemKey] = field(default_factory=list)
    is_finished: bool = False

    @property
    def queues(self) -> QueueState:
        return QueueState(
            module_queue=self.module_queue,
            review_queue=self.review_queue,
            active_queue=self.active_queue,
        )

    def apply_queues(self, queues: QueueState) -> None:
        self.module_queue = queues.module_queue
        self.review_queue = queues.review_queue
        self.active_queue = queues.active_queue
