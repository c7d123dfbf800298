"""renshu: dependency-aware kanji and vocabulary practice sessions."""
