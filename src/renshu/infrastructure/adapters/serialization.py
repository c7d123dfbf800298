"""JSON-friendly encoding of scheduling states shared by the progress adapters."""

from datetime import datetime
from typing import Any

from renshu.domain.models import ItemKey, PracticeMode, ReviewState, SchedulingRecord, SchedulingState
from renshu.infrastructure.utils.dates import as_utc


def _dt(value: str | None) -> datetime | None:
    return as_utc(datetime.fromisoformat(value)) if value else None


def scheduling_to_dict(scheduling: SchedulingState) -> dict[str, Any]:
    return {
        "state": int(scheduling.state),
        "due": scheduling.due.isoformat() if scheduling.due else None,
        "stability": scheduling.stability,
        "difficulty": scheduling.difficulty,
        "step": scheduling.step,
        "last_review": scheduling.last_review.isoformat() if scheduling.last_review else None,
        "reps": scheduling.reps,
        "lapses": scheduling.lapses,
    }


def scheduling_from_dict(data: dict[str, Any]) -> SchedulingState:
    return SchedulingState(
        state=ReviewState(int(data.get("state", 0))),
        due=_dt(data.get("due")),
        stability=data.get("stability"),
        difficulty=data.get("difficulty"),
        step=data.get("step"),
        last_review=_dt(data.get("last_review")),
        reps=int(data.get("reps", 0)),
        lapses=int(data.get("lapses", 0)),
    )


def record_from_dict(data: dict[str, Any]) -> SchedulingRecord:
    """Decode ``{"key": "kanji:食", "mode": "readings", "scheduling": {...}}``."""
    return SchedulingRecord(
        key=ItemKey.parse(data["key"]),
        mode=PracticeMode(data["mode"]),
        scheduling=scheduling_from_dict(data.get("scheduling") or {}),
    )
