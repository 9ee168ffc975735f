"""Exceptions raised by the drill engine."""


class MathDrillError(Exception):
    """Base class for drill engine errors."""


class NoActiveProblemError(MathDrillError, RuntimeError):
    """An answer was submitted while no problem was being presented."""


class EmptyPoolError(MathDrillError, ValueError):
    """A problem pool produced no candidates for the requested ceiling."""


class UnknownUserError(MathDrillError, LookupError):
    """A player id that storage has never seen."""
