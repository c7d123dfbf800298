"""
View adapter for UIs.

Mirrors manager state into a snapshot that is refreshed through the
manager's ``on_change`` hook, so a UI can re-render from plain values.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from renshu.application.session_manager import ModuleProgress, PracticeSessionManager
from renshu.domain.models import Card, ItemKey


@dataclass(frozen=True)
class SessionSnapshot:
    current_card: Card | None
    active_queue: list[ItemKey] = field(default_factory=list)
    is_finished: bool = False
    module_progress: ModuleProgress = ModuleProgress(done=0, total=0)
    source_queue_sizes: dict[str, int] = field(default_factory=dict)
    missed_cards: list[Card] = field(default_factory=list)


class SessionView:
    """Keeps a SessionSnapshot in sync with a PracticeSessionManager."""

    def __init__(self, manager: PracticeSessionManager):
        self.manager = manager
        self._listeners: list[Callable[[SessionSnapshot], None]] = []
        self.snapshot = self._take_snapshot()
        self._unsubscribe = manager.on_change(self._refresh)

    def subscribe(self, fn: Callable[[SessionSnapshot], None]) -> None:
        self._listeners.append(fn)

    def close(self) -> None:
        self._unsubscribe()
        self._listeners.clear()

    def _take_snapshot(self) -> SessionSnapshot:
        m = self.manager
        finished = m.is_finished()
        active = m.get_active_queue()
        return SessionSnapshot(
            current_card=None if finished or not active else m.get_current_card(),
            active_queue=active,
            is_finished=finished,
            module_progress=m.get_module_progress(),
            source_queue_sizes=m.get_source_queue_sizes(),
            missed_cards=m.get_missed_cards(),
        )

    def _refresh(self) -> None:
        self.snapshot = self._take_snapshot()
        for fn in list(self._listeners):
            fn(self.snapshot)
