"""
Runtime manager for a practice session.

Owns the SessionState, applies answers through the card state transition,
decides each answered card's queue membership, unlocks dependents and keeps
the active queue topped up. Observers are notified after every mutation.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from renshu.application.card_state import acknowledge_introduction, transition
from renshu.application.interleaving import InterleavingPolicy
from renshu.domain.constants import ACTIVE_QUEUE_CAPACITY
from renshu.domain.errors import EmptyActiveQueueError
from renshu.domain.models import (
    Card,
    ItemKey,
    QueueState,
    Rating,
    SessionScope,
    SessionState,
    SessionStyle,
)
from renshu.domain.ports import ProgressRepository, SchedulerAdapter

logger = logging.getLogger(__name__)

Observer = Callable[[], None]


@dataclass(frozen=True)
class ModuleProgress:
    done: int
    total: int


# --- Pure queue logic ---


def determine_key_fate(
    key: ItemKey,
    before: Card,
    after: Card,
    queues: QueueState,
) -> QueueState:
    """
    Compute queue membership for a key that was just answered.

    A finished card leaves every queue. Any other card is taken out of the
    source queues and cycled to the back of the active queue, so the other
    active cards get a turn before it repeats.
    """
    module_queue = [k for k in queues.module_queue if k != key]
    review_queue = [k for k in queues.review_queue if k != key]
    active_queue = [k for k in queues.active_queue if k != key]

    if after.style != SessionStyle.DONE:
        active_queue.append(key)

    return QueueState(module_queue, review_queue, active_queue)


def replenish_active_queue(
    queues: QueueState,
    policy: InterleavingPolicy | None = None,
    capacity: int = ACTIVE_QUEUE_CAPACITY,
) -> QueueState:
    """
    Fill the active queue up to ``capacity`` from the module and review queues.

    The policy picks the source for each slot; if that source is empty the
    other one is used.
    """
    policy = policy or InterleavingPolicy()
    module_queue = list(queues.module_queue)
    review_queue = list(queues.review_queue)
    active_queue = list(queues.active_queue)

    while len(active_queue) < capacity and (module_queue or review_queue):
        current = QueueState(module_queue, review_queue, active_queue)
        if review_queue and (not module_queue or policy.pull_from_review(current)):
            active_queue.append(review_queue.pop(0))
        else:
            active_queue.append(module_queue.pop(0))

    return QueueState(module_queue, review_queue, active_queue)


# --- Session manager ---


class PracticeSessionManager:
    """
    Drives one practice session.

    Single-threaded: every mutation completes inside one call with no
    suspension point. The only asynchronous work is persisting scheduling
    updates, which runs in the background; ``drain()`` waits for it.
    """

    def __init__(
        self,
        state: SessionState,
        review_only: bool = False,
        *,
        scheduler: SchedulerAdapter | None = None,
        progress_repo: ProgressRepository | None = None,
        policy: InterleavingPolicy | None = None,
        capacity: int = ACTIVE_QUEUE_CAPACITY,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            state: Initial session state; owned by the manager from now on.
            review_only: Finish only once every card is done, not just module cards.
            scheduler: Spaced-repetition adapter applied to every rating.
            progress_repo: Where updated scheduling states are saved.
            policy: Review/module interleaving policy for replenishment.
            capacity: Maximum size of the active queue.
            clock: Current-time source, injectable for tests.
        """
        self._state = state
        self._review_only = review_only
        self._scheduler = scheduler
        self._progress = progress_repo
        self._policy = policy or InterleavingPolicy()
        self._capacity = capacity
        self._clock = clock or (lambda: datetime.now(UTC))
        self._observers: list[Observer] = []
        self._pending: asyncio.Task | None = None

        # A resumed session keeps its active queue as-is.
        if not self._state.active_queue:
            self._replenish()
        self._update_finished()

    # --- Observers ---

    def on_change(self, fn: Observer) -> Callable[[], None]:
        """Register a callback run after every state change. Returns an unsubscribe function."""
        self._observers.append(fn)

        def unsubscribe() -> None:
            if fn in self._observers:
                self._observers.remove(fn)

        return unsubscribe

    def _notify(self) -> None:
        for fn in list(self._observers):
            fn()

    # --- Queries ---

    def get_current_card(self) -> Card:
        if not self._state.active_queue:
            raise EmptyActiveQueueError()
        return self._state.card_map[self._state.active_queue[0]]

    def is_finished(self) -> bool:
        return self._state.is_finished

    @property
    def review_only(self) -> bool:
        return self._review_only

    def get_active_queue(self) -> list[ItemKey]:
        return list(self._state.active_queue)

    def get_source_queue_sizes(self) -> dict[str, int]:
        return {
            "module": len(self._state.module_queue),
            "review": len(self._state.review_queue),
        }

    def get_card(self, key: ItemKey) -> Card | None:
        return self._state.card_map.get(key)

    def get_card_map(self) -> dict[ItemKey, Card]:
        return self._state.card_map

    def get_state(self) -> SessionState:
        return self._state

    def get_module_progress(self) -> ModuleProgress:
        module_cards = [
            card
            for card in self._state.card_map.values()
            if card.scope == SessionScope.MODULE and not card.is_disabled
        ]
        return ModuleProgress(
            done=sum(1 for card in module_cards if card.is_done),
            total=len(module_cards),
        )

    def get_missed_cards(self) -> list[Card]:
        """Cards answered wrong at least once, most-missed first."""
        missed = [card for card in self._state.card_map.values() if card.miss_count]
        return sorted(missed, key=lambda card: card.miss_count, reverse=True)

    # --- Commands ---

    async def process_answer(self, rating: Rating) -> None:
        """
        Apply a rating to the current card.

        Returns once the in-memory state is settled. The scheduling update is
        saved in the background; failures there are logged and never raised.
        """
        if self._state.is_finished:
            logger.debug("Ignoring answer: session already finished")
            return

        before = self.get_current_card()
        if before.style == SessionStyle.INTRODUCTION:
            self.process_introduction_completion()
            return

        key = before.key
        after = transition(before, rating, self._scheduler, self._clock())
        self._state.card_map[key] = after

        self._state.apply_queues(determine_key_fate(key, before, after, self._state.queues))
        if after.is_done:
            self._release_dependents(key)
        self._replenish()
        self._update_finished()

        if after.scheduling is not before.scheduling:
            self._start_persist(after)
        self._notify()

    def process_introduction_completion(self) -> None:
        """Move the current introduction card to multiple-choice, keeping its position."""
        card = self.get_current_card()
        self._state.card_map[card.key] = acknowledge_introduction(card)
        self._notify()

    async def drain(self) -> None:
        """Wait for background progress writes to finish."""
        if self._pending is not None:
            await self._pending

    # --- Internals ---

    def _replenish(self) -> None:
        self._state.apply_queues(
            replenish_active_queue(self._state.queues, self._policy, self._capacity)
        )

    def _release_dependents(self, key: ItemKey) -> None:
        """Drop a finished prerequisite from its dependents and unlock the ready ones."""
        for dependent in self._state.unlocks_map.get(key, []):
            deps = self._state.dependency_map.get(dependent)
            if deps is not None:
                if key in deps:
                    deps.remove(key)
                if not deps:
                    del self._state.dependency_map[dependent]

            if dependent in self._state.locked_keys and not self._state.dependency_map.get(dependent):
                self._state.locked_keys.discard(dependent)
                card = self._state.card_map[dependent]
                if card.scope == SessionScope.MODULE:
                    self._state.module_queue.append(dependent)
                else:
                    self._state.review_queue.append(dependent)
                logger.debug(f"Unlocked {dependent} after {key}")

    def _update_finished(self) -> None:
        if self._state.is_finished:
            return

        s = self._state
        if self._review_only:
            finished = not (s.module_queue or s.review_queue or s.active_queue or s.locked_keys)
        else:
            finished = (
                not s.module_queue
                and not any(s.card_map[k].scope == SessionScope.MODULE for k in s.locked_keys)
                and not any(
                    s.card_map[k].scope == SessionScope.MODULE and not s.card_map[k].is_done
                    for k in s.active_queue
                )
            )

        if finished:
            logger.info("Practice session finished")
        s.is_finished = finished

    def _start_persist(self, card: Card) -> None:
        if self._progress is None:
            return
        self._pending = asyncio.create_task(self._persist(card, self._pending))

    async def _persist(self, card: Card, previous: asyncio.Task | None) -> None:
        if previous is not None:
            await previous
        try:
            await self._progress.persist(card.key, card.scheduling, card.scope, card.mode)
        except Exception as e:
            logger.error(f"Failed to save progress for {card.key}: {e}", exc_info=True)
