"""
Practice Service: Application layer orchestrator.

Loads stored progress, builds the session graph for a deck and hands the
result to a PracticeSessionManager.
"""

import logging
import random
from collections.abc import Callable
from datetime import UTC, datetime

from renshu.application.config import AppConfig
from renshu.application.interleaving import InterleavingPolicy
from renshu.application.session_builder import build_session
from renshu.application.session_manager import PracticeSessionManager
from renshu.domain.hierarchy import Hierarchy
from renshu.domain.models import SessionState
from renshu.domain.ports import CatalogAdapter, HierarchyProvider, ProgressRepository, SchedulerAdapter

logger = logging.getLogger(__name__)


class PracticeService:
    """
    Application service for starting practice sessions.

    Depends only on the ports; the concrete adapters are chosen by the factory.
    """

    def __init__(
        self,
        config: AppConfig,
        progress_repo: ProgressRepository,
        scheduler: SchedulerAdapter | None = None,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            config: Session options (mode, capacity, toggles, review ratio).
            progress_repo: Source of stored records and target of updates.
            scheduler: Spaced-repetition adapter; None disables scheduling updates.
            clock: Current-time source, injectable for tests.
            rng: Random source for shuffling and interleaving.
        """
        self.config = config
        self._repo = progress_repo
        self._scheduler = scheduler
        self._clock = clock or (lambda: datetime.now(UTC))
        self._rng = rng or random.Random()

    async def build_state(
        self,
        deck: CatalogAdapter | None,
        hierarchy: Hierarchy | None = None,
        library: CatalogAdapter | None = None,
        review_only: bool = False,
    ) -> SessionState:
        """
        Build the initial session state.

        Args:
            deck: Catalog for the lesson's items.
            hierarchy: Lesson relationships; taken from ``deck`` when omitted.
            library: Catalog for due review items (defaults to ``deck``).
            review_only: Ignore the lesson and build from due records alone.
        """
        cfg = self.config
        now = self._clock()

        if review_only:
            hierarchy = Hierarchy()
        elif hierarchy is None:
            if not isinstance(deck, HierarchyProvider):
                raise TypeError("deck must provide a hierarchy when none is given")
            hierarchy = deck.get_hierarchy()

        catalog = deck if deck is not None else library
        if catalog is None:
            raise ValueError("A deck or a library catalog is required")

        module_records = [] if review_only else await self._repo.get_records(cfg.practice_mode)
        due_records = []
        if cfg.include_reviews or review_only:
            due_records = await self._repo.get_due_records(cfg.practice_mode, now)
        logger.debug(
            f"Loaded {len(module_records)} records and {len(due_records)} due reviews "
            f"for mode {cfg.practice_mode.value}"
        )

        return build_session(
            hierarchy,
            catalog,
            module_records,
            mode=cfg.practice_mode,
            due_records=due_records,
            review_catalog=library,
            shuffle=cfg.shuffle,
            enable_prerequisites=cfg.enable_prerequisites and not review_only,
            include_reviews=cfg.include_reviews or review_only,
            flip_vocabulary=cfg.flip_vocabulary,
            flip_kanji=cfg.flip_kanji,
            now=now,
            rng=self._rng,
        )

    async def start_session(
        self,
        deck: CatalogAdapter | None,
        library: CatalogAdapter | None = None,
        review_only: bool = False,
    ) -> PracticeSessionManager:
        """Build a session for ``deck`` and return its manager."""
        state = await self.build_state(deck, library=library, review_only=review_only)
        return PracticeSessionManager(
            state,
            review_only=review_only,
            scheduler=self._scheduler,
            progress_repo=self._repo,
            policy=InterleavingPolicy(review_ratio=self.config.review_ratio, rng=self._rng),
            capacity=self.config.active_capacity,
            clock=self._clock,
        )
