"""Engine error taxonomy.

Every error is a deterministic validation failure caused by caller input or
stale client state. The engine never retries, and a failed operation leaves
the session exactly as it was.
"""


class EngineError(Exception):
    """Base class for all rejections raised by the engine."""

    pass


class InvalidBetError(EngineError):
    """Raised when a bet falls outside the table limits."""

    pass


class InsufficientBankrollError(EngineError):
    """Raised when the bankroll cannot cover a wager."""

    pass


class RoundInProgressError(EngineError):
    """Raised when a new round is dealt while the current one awaits the player."""

    pass


class NoActiveRoundError(EngineError):
    """Raised when an action is applied to a session without a round."""

    pass


class WrongPhaseError(EngineError):
    """Raised when an action arrives outside the player's turn."""

    pass


class InvalidHandIndexError(EngineError):
    """Raised when an action targets a hand other than the active one."""

    pass


class IllegalActionError(EngineError):
    """Raised when an action is not in the current legal set."""

    pass


class EmptyShoeError(EngineError, IndexError):
    """Raised when drawing past the last card of the shoe."""

    pass
