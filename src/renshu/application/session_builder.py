"""
Session builder for dependency-aware practice sessions.

Builds the initial SessionState by:
1. Creating module cards for the lesson's vocabulary (and its kanji/radicals)
2. Creating review cards for externally due items
3. Wiring vocabulary -> kanji -> radical dependency edges
4. Locking dependents and filling the module/review source queues
"""

import logging
import random
from datetime import UTC, datetime

from renshu.application.prompts import build_prompt
from renshu.domain.hierarchy import Hierarchy
from renshu.domain.models import (
    Card,
    DisplayData,
    ItemKey,
    ItemType,
    PracticeMode,
    SchedulingRecord,
    SchedulingState,
    SessionScope,
    SessionState,
    SessionStyle,
)
from renshu.domain.ports import CatalogAdapter

logger = logging.getLogger(__name__)


def initial_style(item_type: ItemType, scheduling: SchedulingState) -> SessionStyle:
    """
    Starting session style for a module card.

    New kanji/radicals get an introduction first, kanji/radicals already in
    review only need a quick flashcard, everything else starts at
    multiple-choice.
    """
    if item_type == ItemType.VOCABULARY:
        return SessionStyle.MULTIPLE_CHOICE
    if scheduling.is_new:
        return SessionStyle.INTRODUCTION
    if scheduling.in_review:
        return SessionStyle.FLASHCARD
    return SessionStyle.MULTIPLE_CHOICE


def create_card(
    key: ItemKey,
    display: DisplayData,
    record: SchedulingRecord | None,
    scope: SessionScope,
    session_mode: PracticeMode,
    flip_vocabulary: bool = False,
    flip_kanji: bool = False,
) -> Card:
    """Create a card from catalog display data and an optional stored record."""
    scheduling = record.scheduling if record else SchedulingState()
    mode = record.mode if record else session_mode
    prompt, answers = build_prompt(display, key.item_type, mode, flip_vocabulary, flip_kanji)

    if scope == SessionScope.REVIEW:
        style = SessionStyle.FLASHCARD
    else:
        style = initial_style(key.item_type, scheduling)

    return Card(
        key=key,
        display=display,
        scheduling=scheduling,
        scope=scope,
        style=style,
        mode=mode,
        prompt=prompt,
        valid_answers=answers,
    )


def _add_edge(
    state: SessionState,
    dependent: ItemKey,
    prereq: ItemKey,
    now: datetime,
) -> None:
    """
    Record a dependent -> prerequisite edge.

    Prerequisites that are not yet due are disabled instead of enforced, so
    well-known material is not forced back into the session. A disabled
    dependent gets no edges at all: it is never locked, so nothing may wait
    on its prerequisites.
    """
    prereq_card = state.card_map.get(prereq)
    dependent_card = state.card_map.get(dependent)
    if prereq_card is None or dependent_card is None:
        logger.debug(f"Skipping edge {dependent} -> {prereq}: missing from session")
        return
    if dependent_card.is_disabled:
        logger.debug(f"Skipping edge {dependent} -> {prereq}: {dependent} is disabled")
        return

    unlocks = state.unlocks_map.setdefault(prereq, [])
    if dependent not in unlocks:
        unlocks.append(dependent)

    if prereq_card.scheduling.is_due(now):
        deps = state.dependency_map.setdefault(dependent, [])
        if prereq not in deps:
            deps.append(prereq)
    else:
        prereq_card.is_disabled = True


def build_session(
    hierarchy: Hierarchy,
    catalog: CatalogAdapter,
    module_records: list[SchedulingRecord] | None = None,
    *,
    mode: PracticeMode = PracticeMode.READINGS,
    due_records: list[SchedulingRecord] | None = None,
    review_catalog: CatalogAdapter | None = None,
    shuffle: bool = False,
    enable_prerequisites: bool = True,
    include_reviews: bool = True,
    flip_vocabulary: bool = False,
    flip_kanji: bool = False,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> SessionState:
    """
    Build the initial session state for a lesson.

    Args:
        hierarchy: Vocabulary -> kanji -> radical relationships for the lesson
        catalog: Display data for module items
        module_records: Stored scheduling records (only ``mode`` records are used)
        mode: Practice mode of the session
        due_records: Externally due records to mix in as review cards
        review_catalog: Display data for review items (defaults to ``catalog``)
        shuffle: Randomize the module queue order
        enable_prerequisites: Include kanji/radical cards and dependency locks
        include_reviews: Create review cards from ``due_records``
        now: Reference time for due-date checks (default: current UTC time)
        rng: Random source for shuffling

    Returns:
        SessionState with an empty active queue.
    """
    now = now or datetime.now(UTC)
    state = SessionState()
    records = {r.key: r for r in (module_records or []) if r.mode == mode}

    # Phase 1: module cards
    module_keys: list[ItemKey] = [ItemKey.vocabulary(v.slug) for v in hierarchy.vocabulary]
    if enable_prerequisites:
        module_keys += [ItemKey.kanji(k.slug) for k in hierarchy.kanji]
        module_keys += [ItemKey.radical(r.slug) for r in hierarchy.radicals]

    for key in module_keys:
        if key in state.card_map:
            continue
        display = catalog.lookup(key)
        if display is None:
            logger.debug(f"No display data for {key}, skipping")
            continue
        state.card_map[key] = create_card(
            key,
            display,
            records.get(key),
            SessionScope.MODULE,
            mode,
            flip_vocabulary,
            flip_kanji,
        )

    # Phase 2: standalone due reviews
    if include_reviews:
        lookup = review_catalog or catalog
        for record in due_records or []:
            if record.key in state.card_map:
                continue
            if record.mode != mode or not record.scheduling.is_due(now):
                continue
            display = lookup.lookup(record.key)
            if display is None:
                logger.debug(f"No display data for due review {record.key}, skipping")
                continue
            state.card_map[record.key] = create_card(
                record.key,
                display,
                record,
                SessionScope.REVIEW,
                mode,
                flip_vocabulary,
                flip_kanji,
            )

    # Phase 3: dependency edges. Vocabulary edges go first so kanji disabled
    # there are already marked when their radical edges are considered.
    if enable_prerequisites:
        for vocab in hierarchy.vocabulary:
            for kanji_slug in vocab.kanji:
                _add_edge(state, ItemKey.vocabulary(vocab.slug), ItemKey.kanji(kanji_slug), now)
        for kanji in hierarchy.kanji:
            for radical_slug in kanji.radicals:
                _add_edge(state, ItemKey.kanji(kanji.slug), ItemKey.radical(radical_slug), now)

    # Phase 4: locks and source queues
    for key, card in state.card_map.items():
        if card.is_disabled:
            continue
        if state.dependency_map.get(key):
            state.locked_keys.add(key)
        elif card.scope == SessionScope.MODULE:
            state.module_queue.append(key)
        else:
            state.review_queue.append(key)

    if shuffle:
        (rng or random.Random()).shuffle(state.module_queue)

    logger.info(
        f"Built session: {len(state.card_map)} cards, "
        f"{len(state.module_queue)} module, {len(state.review_queue)} review, "
        f"{len(state.locked_keys)} locked"
    )
    return state
