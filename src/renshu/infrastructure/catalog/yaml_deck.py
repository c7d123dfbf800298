"""
YAML deck loader.

A deck file lists a lesson's vocabulary with the kanji it uses, the kanji
with their radicals, and the radicals themselves:

    vocabulary:
      - slug: 食べる
        readings: [たべる]
        meanings: [to eat]
        kanji: [食]
    kanji:
      - slug: 食
        meanings: [food]
        meaning_mnemonic: ...
        radicals: [person]
    radicals:
      - slug: person
        characters: 人
        meanings: [person]

The deck is both the catalog (display data) and the hierarchy provider.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from renshu.domain.errors import DeckFormatError
from renshu.domain.hierarchy import Hierarchy, KanjiNode, RadicalNode, VocabularyNode
from renshu.domain.models import DisplayData, ItemKey, ItemType
from renshu.domain.ports import CatalogAdapter, HierarchyProvider

logger = logging.getLogger(__name__)


class _Entry(BaseModel):
    slug: str
    characters: str | None = None
    meanings: list[str] = Field(default_factory=list)
    readings: list[str] = Field(default_factory=list)
    meaning_mnemonic: str = ""
    reading_mnemonic: str | None = None

    def display(self) -> DisplayData:
        return DisplayData(
            text=self.characters or self.slug,
            meanings=list(self.meanings),
            readings=list(self.readings),
            meaning_mnemonic=self.meaning_mnemonic,
            reading_mnemonic=self.reading_mnemonic,
        )


class VocabularyEntry(_Entry):
    kanji: list[str] = Field(default_factory=list)


class KanjiEntry(_Entry):
    radicals: list[str] = Field(default_factory=list)


class RadicalEntry(_Entry):
    pass


class DeckFile(BaseModel):
    name: str | None = None
    vocabulary: list[VocabularyEntry] = Field(default_factory=list)
    kanji: list[KanjiEntry] = Field(default_factory=list)
    radicals: list[RadicalEntry] = Field(default_factory=list)


class YamlDeck(CatalogAdapter, HierarchyProvider):
    """A lesson deck backed by a parsed DeckFile."""

    def __init__(self, deck: DeckFile, source: Path | None = None):
        self.deck = deck
        self.source = source
        self._display: dict[ItemKey, DisplayData] = {}

        for entries, item_type in (
            (deck.vocabulary, ItemType.VOCABULARY),
            (deck.kanji, ItemType.KANJI),
            (deck.radicals, ItemType.RADICAL),
        ):
            for entry in entries:
                key = ItemKey(item_type, entry.slug)
                if key in self._display:
                    logger.warning(f"Duplicate deck entry {key} in {source}, keeping the first")
                    continue
                self._display[key] = entry.display()

    @property
    def name(self) -> str:
        if self.deck.name:
            return self.deck.name
        return self.source.stem if self.source else "deck"

    def lookup(self, key: ItemKey) -> DisplayData | None:
        return self._display.get(key)

    def get_hierarchy(self) -> Hierarchy:
        return Hierarchy(
            vocabulary=[VocabularyNode(v.slug, list(v.kanji)) for v in self.deck.vocabulary],
            kanji=[KanjiNode(k.slug, list(k.radicals)) for k in self.deck.kanji],
            radicals=[RadicalNode(r.slug) for r in self.deck.radicals],
        )

    def __len__(self) -> int:
        return len(self._display)


def parse_deck(text: str, source: Path | None = None) -> YamlDeck:
    """Parse deck YAML text. Raises DeckFormatError on bad YAML or schema."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DeckFormatError(f"Invalid YAML in {source or 'deck'}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DeckFormatError(f"Deck {source or ''} must be a mapping at the top level")

    try:
        deck = DeckFile.model_validate(data)
    except ValidationError as e:
        raise DeckFormatError(f"Deck {source or ''} does not match the deck schema: {e}") from e

    return YamlDeck(deck, source)


def load_deck(path: Path) -> YamlDeck:
    """Load a deck from a YAML file."""
    path = Path(path)
    return parse_deck(path.read_text(encoding="utf-8"), source=path)
