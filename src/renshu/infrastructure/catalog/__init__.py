from .yaml_deck import YamlDeck, load_deck, parse_deck

__all__ = ["YamlDeck", "load_deck", "parse_deck"]
