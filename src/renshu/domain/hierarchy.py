"""
Static vocabulary -> kanji -> radical relationships for one lesson.

A hierarchy is only consulted while a session is being built.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RadicalNode:
    slug: str


@dataclass(frozen=True)
class KanjiNode:
    slug: str
    radicals: list[str] = field(default_factory=list)  # radical slugs


@dataclass(frozen=True)
class VocabularyNode:
    slug: str
    kanji: list[str] = field(default_factory=list)  # kanji slugs


@dataclass
class Hierarchy:
    """Relationship graph supplied by a hierarchy provider."""

    vocabulary: list[VocabularyNode] = field(default_factory=list)
    kanji: list[KanjiNode] = field(default_factory=list)
    radicals: list[RadicalNode] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.vocabulary or self.kanji or self.radicals)
