"""
Card state transitions.

Maps (card, rating) to the card's next session style. Queue bookkeeping
lives in the session manager; this module never touches queues.
"""

import logging
from dataclasses import replace
from datetime import datetime

from renshu.domain.models import Card, Rating, SessionScope, SessionStyle
from renshu.domain.ports import SchedulerAdapter

logger = logging.getLogger(__name__)

PASSING_RATINGS = frozenset({Rating.GOOD, Rating.EASY})


def next_style(style: SessionStyle, rating: Rating) -> SessionStyle:
    """
    Session style after answering a card with the given rating.

    multiple-choice -> write -> done on Good/Easy, unchanged on Again/Hard.
    A flashcard is done on anything but Again, which demotes it back to
    multiple-choice. Introduction cards move to multiple-choice.
    """
    if style == SessionStyle.INTRODUCTION:
        return SessionStyle.MULTIPLE_CHOICE

    if style == SessionStyle.MULTIPLE_CHOICE:
        return SessionStyle.WRITE if rating in PASSING_RATINGS else SessionStyle.MULTIPLE_CHOICE

    if style == SessionStyle.WRITE:
        return SessionStyle.DONE if rating in PASSING_RATINGS else SessionStyle.WRITE

    if style == SessionStyle.FLASHCARD:
        return SessionStyle.MULTIPLE_CHOICE if rating == Rating.AGAIN else SessionStyle.DONE

    return SessionStyle.DONE


def is_miss(style: SessionStyle, rating: Rating) -> bool:
    """True when a rating leaves the card where it was or sends a flashcard back."""
    if style == SessionStyle.INTRODUCTION:
        return False
    if style == SessionStyle.FLASHCARD:
        return rating == Rating.AGAIN
    return rating not in PASSING_RATINGS


def acknowledge_introduction(card: Card) -> Card:
    """Move an introduction card into the practice cycle."""
    if card.style != SessionStyle.INTRODUCTION:
        return card
    return replace(card, style=SessionStyle.MULTIPLE_CHOICE)


def transition(
    card: Card,
    rating: Rating,
    scheduler: SchedulerAdapter | None = None,
    now: datetime | None = None,
) -> Card:
    """
    Return the card as it stands after being answered with ``rating``.

    The rating is also forwarded to the scheduler to update the card's
    spaced-repetition state. A scheduler failure is logged and leaves the
    scheduling state as it was; the style transition still happens.

    A failed review flashcard is pulled into the module scope, since it now
    has to be relearned within the session.
    """
    if card.style == SessionStyle.INTRODUCTION:
        return acknowledge_introduction(card)

    style = next_style(card.style, rating)

    scope = card.scope
    if card.style == SessionStyle.FLASHCARD and style == SessionStyle.MULTIPLE_CHOICE:
        scope = SessionScope.MODULE

    scheduling = card.scheduling
    if scheduler is not None:
        try:
            scheduling = scheduler.compute_next(card.scheduling, rating, now)
        except Exception as e:
            logger.warning(f"Scheduler failed for {card.key}, keeping previous state: {e}")

    misses = card.miss_count + 1 if is_miss(card.style, rating) else card.miss_count

    return replace(card, style=style, scope=scope, scheduling=scheduling, miss_count=misses)
