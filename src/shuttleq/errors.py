"""Exceptions raised by the shuttleq rotation engine."""

from enum import Enum


class ShuttleqError(Exception):
    """Base exception for all shuttleq errors.

    Every operation of the engine raises a subclass of this on failure, after
    leaving the session state exactly as it was before the call.
    """

    pass


class ValidationError(ShuttleqError):
    """Raised on malformed or duplicate input, or an unknown id."""

    pass


class StateConflictError(ShuttleqError):
    """Raised when an action is invalid for the current state of an entity."""

    pass


class PairingError(StateConflictError):
    """Raised when two players cannot be paired."""

    pass


class CapacityError(ShuttleqError):
    """Raised when a selection, court pool or waiting queue is full."""

    pass


class GameErrorReason(Enum):
    NOT_ENOUGH_PLAYERS = "not_enough_players"
    NO_COURT_AVAILABLE = "no_court_available"
    QUEUE_FULL = "queue_full"


class GameError(ShuttleqError):
    """Raised when a game cannot be started.

    ``reason`` tells a short selection apart from a lack of courts or
    queue room.
    """

    def __init__(self, reason: GameErrorReason, message: str = ""):
        self.reason = reason
        super().__init__(message or reason.value.replace("_", " "))


class SelectionExhaustedError(ShuttleqError):
    """Raised when no valid selection is found within the attempt bound."""

    pass


class ConfigurationLimitError(ShuttleqError):
    """Raised when a round or position counter exceeds its fixed width."""

    pass
