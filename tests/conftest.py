from datetime import UTC, datetime, timedelta

import pytest

from renshu.domain.models import (
    Card,
    DisplayData,
    ItemKey,
    PracticeMode,
    ReviewState,
    SchedulingState,
    SessionScope,
    SessionStyle,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)

SAMPLE_DECK = """\
name: Lesson 1
vocabulary:
  - slug: 大人
    readings: [おとな]
    meanings: [adult]
    kanji: [大, 人]
kanji:
  - slug: 大
    meanings: [big]
    readings: [たい, おお]
    meaning_mnemonic: A person with arms spread wide is big.
    radicals: [big]
  - slug: 人
    meanings: [person]
    readings: [にん, ひと]
    meaning_mnemonic: Two legs walking.
    radicals: [person]
radicals:
  - slug: big
    characters: 大
    meanings: [big]
    meaning_mnemonic: Arms spread wide.
  - slug: person
    characters: 人
    meanings: [person]
    meaning_mnemonic: Two legs.
"""

LIBRARY_DECK = """\
name: Library
vocabulary:
  - slug: 山
    readings: [やま]
    meanings: [mountain]
  - slug: 川
    readings: [かわ]
    meanings: [river]
"""


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs/progress
    monkeypatch.setenv("HOME", str(home))
    for var in ("RENSHU_PRACTICE_MODE", "RENSHU_PROGRESS_BACKEND", "RENSHU_PROGRESS_DB"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def deck_file(tmp_path):
    path = tmp_path / "lesson1.yaml"
    path.write_text(SAMPLE_DECK, encoding="utf-8")
    return path


@pytest.fixture
def library_file(tmp_path):
    path = tmp_path / "library.yaml"
    path.write_text(LIBRARY_DECK, encoding="utf-8")
    return path


def reviewed(days_until_due: float, state: ReviewState = ReviewState.REVIEW) -> SchedulingState:
    """A scheduling state that has been reviewed before and is due relative to NOW."""
    return SchedulingState(
        state=state,
        due=NOW + timedelta(days=days_until_due),
        stability=5.0,
        difficulty=5.0,
        step=None if state == ReviewState.REVIEW else 0,
        last_review=NOW - timedelta(days=3),
        reps=3,
    )


@pytest.fixture
def make_card():
    """Factory for cards with sensible defaults."""

    def _make(
        raw_key: str,
        style: SessionStyle = SessionStyle.MULTIPLE_CHOICE,
        scope: SessionScope = SessionScope.MODULE,
        scheduling: SchedulingState | None = None,
        answers: list[str] | None = None,
    ) -> Card:
        key = ItemKey.parse(raw_key)
        answers = answers or [key.slug]
        return Card(
            key=key,
            display=DisplayData(text=key.slug, meanings=list(answers)),
            scheduling=scheduling or SchedulingState(),
            scope=scope,
            style=style,
            mode=PracticeMode.READINGS,
            prompt=key.slug,
            valid_answers=list(answers),
        )

    return _make


@pytest.fixture
def reviewed_state():
    return reviewed
