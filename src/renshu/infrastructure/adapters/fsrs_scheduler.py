"""
FSRS scheduler adapter: Infrastructure adapter for the ``fsrs`` library.

Implements SchedulerAdapter by translating SchedulingState to and from
``fsrs.Card`` and delegating the interval computation to ``fsrs.Scheduler``.
"""

import logging
from dataclasses import replace
from datetime import UTC, datetime

from fsrs import Card as FsrsCard
from fsrs import Rating as FsrsRating
from fsrs import Scheduler, State

from renshu.domain.constants import DEFAULT_DESIRED_RETENTION, DEFAULT_MAXIMUM_INTERVAL
from renshu.domain.models import Rating, ReviewState, SchedulingState
from renshu.domain.ports import SchedulerAdapter
from renshu.infrastructure.utils.dates import as_utc

logger = logging.getLogger(__name__)


class FsrsSchedulerAdapter(SchedulerAdapter):
    """
    Computes next due dates with FSRS.

    The ``fsrs`` card model has no New state and no review counters, so a new
    item is sent as a fresh Learning card and reps/lapses are tracked here.
    """

    def __init__(
        self,
        desired_retention: float = DEFAULT_DESIRED_RETENTION,
        maximum_interval: int = DEFAULT_MAXIMUM_INTERVAL,
        enable_fuzzing: bool = True,
    ):
        self.scheduler = Scheduler(
            desired_retention=desired_retention,
            maximum_interval=maximum_interval,
            enable_fuzzing=enable_fuzzing,
        )

    def to_fsrs_card(self, scheduling: SchedulingState, now: datetime) -> FsrsCard:
        if scheduling.is_new or scheduling.stability is None:
            return FsrsCard(card_id=0, state=State.Learning, step=0, due=now)

        return FsrsCard(
            card_id=0,
            state=State(int(scheduling.state)),
            step=scheduling.step,
            stability=scheduling.stability,
            difficulty=scheduling.difficulty,
            due=as_utc(scheduling.due) or now,
            last_review=as_utc(scheduling.last_review),
        )

    def from_fsrs_card(self, card: FsrsCard, previous: SchedulingState, rating: Rating) -> SchedulingState:
        lapses = previous.lapses
        if rating == Rating.AGAIN and previous.state == ReviewState.REVIEW:
            lapses += 1

        return replace(
            previous,
            state=ReviewState(card.state.value),
            due=card.due,
            stability=card.stability,
            difficulty=card.difficulty,
            step=card.step,
            last_review=card.last_review,
            reps=previous.reps + 1,
            lapses=lapses,
        )

    def compute_next(
        self,
        scheduling: SchedulingState,
        rating: Rating,
        now: datetime | None = None,
    ) -> SchedulingState:
        now = as_utc(now) or datetime.now(UTC)
        card = self.to_fsrs_card(scheduling, now)
        updated, _log = self.scheduler.review_card(card, FsrsRating(int(rating)), review_datetime=now)
        logger.debug(f"FSRS: {scheduling.state.name} -> {updated.state.name}, due {updated.due}")
        return self.from_fsrs_card(updated, scheduling, rating)
