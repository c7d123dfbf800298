from unittest.mock import MagicMock

import pytest

from renshu.application.card_state import acknowledge_introduction, is_miss, next_style, transition
from renshu.domain.models import Rating, SchedulingState, SessionScope, SessionStyle

S = SessionStyle


@pytest.mark.parametrize(
    "style, rating, expected",
    [
        (S.MULTIPLE_CHOICE, Rating.AGAIN, S.MULTIPLE_CHOICE),
        (S.MULTIPLE_CHOICE, Rating.HARD, S.MULTIPLE_CHOICE),
        (S.MULTIPLE_CHOICE, Rating.GOOD, S.WRITE),
        (S.MULTIPLE_CHOICE, Rating.EASY, S.WRITE),
        (S.WRITE, Rating.AGAIN, S.WRITE),
        (S.WRITE, Rating.HARD, S.WRITE),
        (S.WRITE, Rating.GOOD, S.DONE),
        (S.WRITE, Rating.EASY, S.DONE),
        (S.FLASHCARD, Rating.AGAIN, S.MULTIPLE_CHOICE),
        (S.FLASHCARD, Rating.HARD, S.DONE),
        (S.FLASHCARD, Rating.GOOD, S.DONE),
        (S.FLASHCARD, Rating.EASY, S.DONE),
    ],
)
def test_transition_table(style, rating, expected):
    assert next_style(style, rating) == expected


def test_acknowledge_introduction(make_card):
    card = make_card("radical:big", style=S.INTRODUCTION)
    acked = acknowledge_introduction(card)
    assert acked.style == S.MULTIPLE_CHOICE
    # original left untouched
    assert card.style == S.INTRODUCTION


def test_acknowledge_is_noop_for_other_styles(make_card):
    card = make_card("radical:big", style=S.WRITE)
    assert acknowledge_introduction(card) is card


def test_transition_forwards_rating_to_scheduler(make_card, now):
    card = make_card("kanji:大")
    updated = SchedulingState(stability=1.0)
    scheduler = MagicMock()
    scheduler.compute_next.return_value = updated

    after = transition(card, Rating.GOOD, scheduler, now)

    scheduler.compute_next.assert_called_once_with(card.scheduling, Rating.GOOD, now)
    assert after.scheduling is updated
    assert after.style == S.WRITE
    assert card.style == S.MULTIPLE_CHOICE


def test_scheduler_failure_keeps_scheduling_but_still_transitions(make_card, now):
    card = make_card("kanji:大", style=S.WRITE)
    scheduler = MagicMock()
    scheduler.compute_next.side_effect = RuntimeError("boom")

    after = transition(card, Rating.GOOD, scheduler, now)

    assert after.style == S.DONE
    assert after.scheduling is card.scheduling


def test_failed_review_flashcard_moves_into_module_scope(make_card):
    card = make_card("vocabulary:山", style=S.FLASHCARD, scope=SessionScope.REVIEW)

    assert transition(card, Rating.AGAIN).scope == SessionScope.MODULE
    assert transition(card, Rating.GOOD).scope == SessionScope.REVIEW


def test_rating_an_introduction_acknowledges_it(make_card):
    card = make_card("radical:big", style=S.INTRODUCTION)
    scheduler = MagicMock()

    after = transition(card, Rating.AGAIN, scheduler)

    assert after.style == S.MULTIPLE_CHOICE
    scheduler.compute_next.assert_not_called()
    assert after.miss_count == 0


@pytest.mark.parametrize(
    "style, rating, missed",
    [
        (S.MULTIPLE_CHOICE, Rating.AGAIN, True),
        (S.MULTIPLE_CHOICE, Rating.HARD, True),
        (S.MULTIPLE_CHOICE, Rating.GOOD, False),
        (S.WRITE, Rating.HARD, True),
        (S.WRITE, Rating.EASY, False),
        (S.FLASHCARD, Rating.AGAIN, True),
        (S.FLASHCARD, Rating.HARD, False),
        (S.INTRODUCTION, Rating.AGAIN, False),
    ],
)
def test_is_miss(style, rating, missed):
    assert is_miss(style, rating) is missed


def test_misses_accumulate_across_answers(make_card):
    card = make_card("vocabulary:水", answers=["water"])

    card = transition(card, Rating.AGAIN)
    card = transition(card, Rating.GOOD)
    card = transition(card, Rating.HARD)
    card = transition(card, Rating.GOOD)

    assert card.style == S.DONE
    assert card.miss_count == 2
