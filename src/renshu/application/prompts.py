"""Prompt and answer derivation for practice cards."""

import unicodedata

from renshu.domain.models import Card, DisplayData, ItemType, PracticeMode


def build_prompt(
    display: DisplayData,
    item_type: ItemType,
    mode: PracticeMode,
    flip_vocabulary: bool = False,
    flip_kanji: bool = False,
) -> tuple[str, list[str]]:
    """
    Derive the question shown for an item and the answers accepted for it.

    Vocabulary in ``readings`` mode asks for the meaning of the word; in
    ``kana`` mode it asks for the reading given the meaning. Kanji and
    radicals always ask for the meaning of the character. The flip switches
    swap question and answer.
    """
    meanings = ", ".join(display.meanings)

    if item_type != ItemType.VOCABULARY:
        if flip_kanji:
            return meanings, [display.text]
        return display.text, list(display.meanings)

    if mode == PracticeMode.READINGS:
        if flip_vocabulary:
            return meanings, [display.text]
        return display.text, list(display.meanings)

    if flip_vocabulary:
        return ", ".join(display.readings) or display.text, list(display.meanings)
    return meanings, list(dict.fromkeys(display.readings))


def _normalize(text: str) -> str:
    return " ".join(unicodedata.normalize("NFKC", text).casefold().split())


def check_answer(card: Card, response: str) -> bool:
    """Case and whitespace insensitive match against the card's valid answers."""
    answer = _normalize(response)
    if not answer:
        return False
    return any(_normalize(valid) == answer for valid in card.valid_answers)
