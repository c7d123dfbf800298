"""Exceptions raised by the practice session core."""


class SessionError(Exception):
    """Base class for session bookkeeping errors."""


class EmptyActiveQueueError(SessionError):
    """The current card was requested while the active queue is empty.

    This signals a bug in queue bookkeeping (or a caller that ignored
    ``is_finished()``), never a data or network condition.
    """

    def __init__(self, message: str = "Cannot get current card from an empty active queue."):
        super().__init__(message)


class DeckFormatError(ValueError):
    """A deck file could not be parsed or does not match the deck schema."""
