from datetime import UTC, datetime, timedelta

import pytest
from fsrs import State

from renshu.domain.models import Rating, ReviewState, SchedulingState
from renshu.infrastructure.adapters.fsrs_scheduler import FsrsSchedulerAdapter


@pytest.fixture
def adapter():
    return FsrsSchedulerAdapter(enable_fuzzing=False)


def test_new_item_gets_first_review(adapter, now):
    result = adapter.compute_next(SchedulingState(), Rating.GOOD, now)

    assert result.state in (ReviewState.LEARNING, ReviewState.REVIEW)
    assert result.due > now
    assert result.stability is not None
    assert result.difficulty is not None
    assert result.last_review == now
    assert result.reps == 1
    assert result.lapses == 0
    assert not result.is_new


def test_easy_is_scheduled_further_out_than_again(adapter, now):
    again = adapter.compute_next(SchedulingState(), Rating.AGAIN, now)
    easy = adapter.compute_next(SchedulingState(), Rating.EASY, now)
    assert easy.due > again.due


def test_forgetting_a_review_item_is_a_lapse(adapter, now, reviewed_state):
    result = adapter.compute_next(reviewed_state(-1), Rating.AGAIN, now)

    assert result.state == ReviewState.RELEARNING
    assert result.lapses == 1
    assert result.reps == 4


def test_remembered_review_item_stays_in_review(adapter, now, reviewed_state):
    before = reviewed_state(-1)
    result = adapter.compute_next(before, Rating.GOOD, now)

    assert result.state == ReviewState.REVIEW
    assert result.stability > before.stability
    assert result.due > now + timedelta(days=1)


def test_naive_datetimes_are_treated_as_utc(adapter):
    naive = datetime(2026, 10, 19, 12, 0)
    result = adapter.compute_next(SchedulingState(), Rating.GOOD, naive)
    assert result.last_review == naive.replace(tzinfo=UTC)


def test_to_fsrs_card_maps_existing_state(adapter, now, reviewed_state):
    scheduling = reviewed_state(2)
    card = adapter.to_fsrs_card(scheduling, now)

    assert card.state == State.Review
    assert card.stability == scheduling.stability
    assert card.due == scheduling.due


def test_to_fsrs_card_new_item(adapter, now):
    card = adapter.to_fsrs_card(SchedulingState(), now)
    assert card.state == State.Learning
    assert card.stability is None
    assert card.due == now
