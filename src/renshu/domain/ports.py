"""
Ports (interfaces) the session core depends on.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .hierarchy import Hierarchy
from .models import (
    DisplayData,
    ItemKey,
    PracticeMode,
    Rating,
    SchedulingRecord,
    SchedulingState,
    SessionScope,
)


class CatalogAdapter(ABC):
    """
    Port for per-item display data.

    Implementations:
        - YamlDeck: a lesson deck loaded from a YAML file.
    """

    @abstractmethod
    def lookup(self, key: ItemKey) -> DisplayData | None:
        """Return display data for the item, or None if the catalog lacks it."""
        pass


class HierarchyProvider(ABC):
    """Port for the static relationship graph used at session-build time."""

    @abstractmethod
    def get_hierarchy(self) -> Hierarchy:
        pass


class SchedulerAdapter(ABC):
    """
    Port for the spaced-repetition interval algorithm.

    Implementations:
        - FsrsSchedulerAdapter: wraps the ``fsrs`` library.
    """

    @abstractmethod
    def compute_next(
        self,
        scheduling: SchedulingState,
        rating: Rating,
        now: datetime | None = None,
    ) -> SchedulingState:
        """
        Compute the scheduling state after a review.

        Args:
            scheduling: Current state (never mutated).
            rating: The learner's recall rating.
            now: Review time; defaults to the current UTC time.

        Returns:
            A new SchedulingState with updated due date and memory state.
        """
        pass


class ProgressRepository(ABC):
    """
    Port for loading and storing scheduling records.

    Implementations:
        - SqliteProgressRepository: local SQLite file.
        - HttpProgressRepository: remote JSON API.
    """

    @abstractmethod
    async def get_records(self, mode: PracticeMode) -> list[SchedulingRecord]:
        """Fetch every stored record for the practice mode."""
        pass

    @abstractmethod
    async def get_due_records(self, mode: PracticeMode, now: datetime) -> list[SchedulingRecord]:
        """Fetch records for the mode that are due at ``now``, soonest first."""
        pass

    @abstractmethod
    async def persist(
        self,
        key: ItemKey,
        scheduling: SchedulingState,
        scope: SessionScope,
        mode: PracticeMode,
    ) -> None:
        """Insert or replace the record for ``(key, mode)``."""
        pass

    async def close(self) -> None:
        """Release connections held by the repository. No-op by default."""
        return None
