import pytest

from renshu.domain.errors import DeckFormatError
from renshu.domain.models import ItemKey
from renshu.infrastructure.catalog import load_deck, parse_deck


def test_load_deck(deck_file):
    deck = load_deck(deck_file)

    assert deck.name == "Lesson 1"
    assert len(deck) == 5

    word = deck.lookup(ItemKey.vocabulary("大人"))
    assert word.text == "大人"
    assert word.readings == ["おとな"]
    assert word.meanings == ["adult"]

    radical = deck.lookup(ItemKey.radical("big"))
    assert radical.text == "大"
    assert radical.meaning_mnemonic == "Arms spread wide."

    assert deck.lookup(ItemKey.kanji("小")) is None


def test_hierarchy(deck_file):
    hierarchy = load_deck(deck_file).get_hierarchy()

    assert [(v.slug, v.kanji) for v in hierarchy.vocabulary] == [("大人", ["大", "人"])]
    assert [(k.slug, k.radicals) for k in hierarchy.kanji] == [("大", ["big"]), ("人", ["person"])]
    assert [r.slug for r in hierarchy.radicals] == ["big", "person"]


def test_name_falls_back_to_file_stem(tmp_path):
    path = tmp_path / "week3.yaml"
    path.write_text("vocabulary:\n  - slug: 水\n    meanings: [water]\n", encoding="utf-8")
    assert load_deck(path).name == "week3"


def test_empty_document_is_an_empty_deck():
    deck = parse_deck("")
    assert len(deck) == 0
    assert deck.get_hierarchy().is_empty


def test_duplicate_entries_keep_first():
    deck = parse_deck(
        "kanji:\n"
        "  - slug: 大\n    meanings: [big]\n"
        "  - slug: 大\n    meanings: [large]\n"
    )
    assert deck.lookup(ItemKey.kanji("大")).meanings == ["big"]


@pytest.mark.parametrize(
    "text",
    [
        "vocabulary: [unclosed",
        "- just\n- a list\n",
        "vocabulary:\n  - meanings: [no slug]\n",
        "kanji:\n  - slug: 大\n    radicals: not-a-list\n",
    ],
)
def test_bad_decks_raise_deck_format_error(text):
    with pytest.raises(DeckFormatError):
        parse_deck(text)


def test_missing_file_raises_os_error(tmp_path):
    with pytest.raises(OSError):
        load_deck(tmp_path / "missing.yaml")
