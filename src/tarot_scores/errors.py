"""
Exceptions raised by the score store.

NotFound and InvalidRound are caller errors; StoreUnavailable and StoreError
come from the storage engine and are never swallowed.
"""
from __future__ import annotations


class TarotScoresError(Exception):
    """Base exception for the package."""


class NotFound(TarotScoresError, LookupError):
    """A game, player or round id does not exist."""

    def __init__(self, kind: str, id: int):
        super().__init__(f"No {kind} with id {id}")
        self.kind = kind
        self.id = id


class InvalidRound(TarotScoresError, ValueError):
    """A round references players that do not belong to its game."""


class StoreUnavailable(TarotScoresError):
    """Storage could not be opened (or was closed); nothing can proceed without it."""


class StoreError(TarotScoresError):
    """Read or write failure inside a transaction. The transaction was rolled back."""

    def __init__(self, message: str, operation: str):
        super().__init__(f"{message} ({operation})")
        self.operation = operation
